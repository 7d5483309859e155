"""
home.py

홈 화면용 조(region group) 조회 API.

- 전체 조 목록 : 로그인 불필요
- 같은 조 회원 목록 : 로그인 필요, region_group_id 없으면 400

"""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.deps import get_current_user, get_db
from app.models.user import RegionGroup, User

router = APIRouter(prefix="/home", tags=["home"])


@router.get("/region-groups")
def list_region_groups(db: Session = Depends(get_db)):
    groups = db.scalars(
        select(RegionGroup).order_by(RegionGroup.region.asc(), RegionGroup.group_number.asc())
    ).all()
    return {
        "success": True,
        "region_groups": [
            {
                "id": g.id,
                "name": f"{g.region} {g.group_number}",
                "description": f"{g.region} 지역 {g.group_number}",
            }
            for g in groups
        ],
    }


# 앱이 쓰는 경로 이름(regionMember) 그대로 유지
@router.get("/regionMember")
def list_region_members(
    region_group_id: int | None = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    if region_group_id is None:
        raise HTTPException(status_code=400, detail="region_group_id is required")

    members = db.execute(
        select(User.id, User.name)
        .where(User.region_group_id == region_group_id)
        .order_by(User.name.asc(), User.id.asc())
    ).all()
    return {"success": True, "members": [{"id": uid, "name": name} for uid, name in members]}
