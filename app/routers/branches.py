"""
branches.py

지부(지역) / 조 조회 API.

- 지부 목록 : 조 개수, 소속 회원 수, 지부장 이름
- 지부 상세 : 조별 회원 수
- 조 회원 목록

지부장은 해당 지역에 소속된 회원 중 BRANCH_DIRECTOR 권한이 활성화된 회원.

"""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import distinct, func, select
from sqlalchemy.orm import Session

from app.core.deps import get_current_user, get_db
from app.models.authority import Authority, UserAuthority
from app.models.user import RegionGroup, User

router = APIRouter(prefix="/branches", tags=["branches"])

BRANCH_LEADER_AUTHORITY = "BRANCH_DIRECTOR"


def _branch_leaders(db: Session) -> dict[str, dict]:
    rows = db.execute(
        select(RegionGroup.region, User.id, User.name)
        .join(User, User.region_group_id == RegionGroup.id)
        .join(UserAuthority, UserAuthority.user_id == User.id)
        .join(Authority, Authority.id == UserAuthority.authority_id)
        .where(
            Authority.name == BRANCH_LEADER_AUTHORITY,
            Authority.is_active.is_(True),
            UserAuthority.is_active.is_(True),
        )
        .order_by(UserAuthority.assigned_at.asc(), User.id.asc())
    ).all()

    leaders: dict[str, dict] = {}
    for region, user_id, name in rows:
        leaders.setdefault(region, {"id": user_id, "name": name})
    return leaders


@router.get("")
def list_branches(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    rows = db.execute(
        select(
            RegionGroup.region,
            func.count(distinct(RegionGroup.id)),
            func.count(User.id),
        )
        .outerjoin(User, User.region_group_id == RegionGroup.id)
        .group_by(RegionGroup.region)
        .order_by(RegionGroup.region.asc())
    ).all()

    leaders = _branch_leaders(db)
    branches = []
    for region, group_count, member_count in rows:
        leader = leaders.get(region)
        branches.append({
            "region": region,
            "group_count": group_count,
            "member_count": member_count,
            "branch_leader_id": leader["id"] if leader else None,
            "branch_leader_name": leader["name"] if leader else None,
        })

    return {"success": True, "branches": branches}


@router.get("/{region}")
def get_branch(
    region: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    rows = db.execute(
        select(RegionGroup.group_number, func.count(User.id))
        .outerjoin(User, User.region_group_id == RegionGroup.id)
        .where(RegionGroup.region == region)
        .group_by(RegionGroup.id, RegionGroup.group_number)
        .order_by(RegionGroup.group_number.asc())
    ).all()
    if not rows:
        raise HTTPException(status_code=404, detail="Branch not found")

    leader = _branch_leaders(db).get(region)
    return {
        "success": True,
        "region": region,
        "branch_leader_name": leader["name"] if leader else None,
        "groups": [{"group_number": number, "member_count": count} for number, count in rows],
    }


@router.get("/{region}/{group_number}/members")
def list_group_members(
    region: str,
    group_number: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    group = db.scalar(
        select(RegionGroup).where(RegionGroup.region == region, RegionGroup.group_number == group_number)
    )
    if not group:
        raise HTTPException(status_code=404, detail="Group not found")

    members = db.scalars(
        select(User).where(User.region_group_id == group.id).order_by(User.name.asc(), User.id.asc())
    ).all()
    return {
        "success": True,
        "region": region,
        "group_number": group_number,
        "members": [
            {"id": u.id, "name": u.name, "school": u.school, "grade": u.grade, "authority": u.authority}
            for u in members
        ],
    }
