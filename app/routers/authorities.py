"""
authorities.py

권한(Authority) 조회 / 관리 API 모음.

주요 기능:
- 전체 권한 / 카테고리 목록 조회
- 본인 / 특정 회원의 권한 조회
- 회원 권한 부여 / 제거 (팀장 이상)

설계 원칙:
- 권한 판단은 resolve_authorities 결과만 사용
- 권한 변경 직후 users.authority(레거시 표시용)를 함께 갱신
- 제거는 soft-deactivation (이미 없는 권한 제거도 성공 처리)

관련 파일:
- app.services.authority         : 권한 계산 / 부여 / 제거
- app.services.legacy_authority  : 레거시 컬럼 동기화

"""

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.core.deps import get_current_authorities, get_current_user, get_db
from app.models.authority import Authority
from app.models.user import User
from app.schemas.authority import AuthorityActionRequest
from app.services.authority import (
    ResolvedAuthoritySet,
    add_authority,
    format_authorities_for_api,
    format_authority,
    format_category,
    list_authorities,
    list_categories,
    remove_authority,
    resolve_authorities,
)
from app.services.legacy_authority import sync_legacy_authority

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/authorities", tags=["authorities"])


@router.get("")
def get_authorities(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return {
        "success": True,
        "data": {
            "authorities": [format_authority(a) for a in list_authorities(db)],
            "categories": [format_category(c) for c in list_categories(db)],
        },
    }


@router.get("/me")
def my_authorities(authorities: ResolvedAuthoritySet = Depends(get_current_authorities)):
    return {"success": True, "data": format_authorities_for_api(authorities)}


@router.get("/users/{user_id}")
def user_authorities(
    user_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    resolved = resolve_authorities(db, user_id)
    if resolved is None:
        raise HTTPException(status_code=404, detail="User not found")
    return {"success": True, "data": format_authorities_for_api(resolved)}


"""
회원 권한 부여 / 제거 API

- 요청자는 팀장 이상(can_manage_users)이어야 함 → 아니면 403
- 대상 회원이 없으면 404
- 권한이 없으면 404
- add    : 이미 있으면 재활성화 (중복 생성 없음)
- remove : 활성 권한이 없어도 성공

"""

@router.post("")
def manage_authority(
    data: AuthorityActionRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    authorities: ResolvedAuthoritySet = Depends(get_current_authorities),
):
    if not authorities.can_manage_users():
        raise HTTPException(status_code=403, detail="Not allowed to manage authorities")

    target = db.get(User, data.targetUserId)
    if not target:
        raise HTTPException(status_code=404, detail="Target user not found")

    if not db.get(Authority, data.authorityId):
        raise HTTPException(status_code=404, detail="Authority not found")

    try:
        if data.action == "add":
            add_authority(
                db,
                user_id=target.id,
                authority_id=data.authorityId,
                assigned_by=current_user.id,
            )
            message = "Authority added"
        else:
            removed = remove_authority(db, user_id=target.id, authority_id=data.authorityId)
            message = "Authority removed" if removed else "Authority was not active"

        resolved = resolve_authorities(db, target.id)
        sync_legacy_authority(target, resolved)
        db.commit()
    except ValueError as e:
        db.rollback()
        raise HTTPException(status_code=404, detail=str(e))
    except Exception as e:
        db.rollback()
        raise HTTPException(status_code=500, detail=f"Database error: {type(e).__name__}")

    logger.info(
        "Authority %s: target=%s authority=%s by=%s",
        data.action, target.id, data.authorityId, current_user.id,
    )
    formatted = format_authorities_for_api(resolved)
    return {
        "success": True,
        "message": message,
        "targetUser": {
            "userId": target.id,
            "authorities": formatted["authorities"],
        },
    }
