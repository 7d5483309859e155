"""
users.py

회원 정보 조회 / 수정 API 모음.

주요 기능:
- 회원 목록 조회 (지역 필터, 페이지네이션)
- 본인 / 특정 회원 정보 조회
- 회원 정보 부분 수정 (본인 또는 팀장 이상)
- 비밀번호 변경
- 이메일 변경
- 푸시(FCM) 토큰 등록

설계 원칙:
- 모든 API 는 로그인 필요
- 부분 수정은 요청에 들어 있는 필드만 반영 (apply_patch)
- 비밀번호 / 토큰 값은 응답에 포함하지 않음

관련 파일:
- app.services.users       : 사용자 직렬화 / 지역 조회
- app.services.patch       : 부분 수정 공통 함수
- app.services.authority   : 수정 권한 판단

"""

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.deps import Page, get_current_authorities, get_current_user, get_db, get_page
from app.core.security import get_password_hash, verify_password
from app.models.user import RegionGroup, User
from app.schemas.auth import ChangePasswordRequest
from app.schemas.user import PushTokenRequest, UpdateEmailRequest, UserUpdateRequest
from app.services.authority import ResolvedAuthoritySet
from app.services.notifications import register_push_token
from app.services.patch import apply_patch
from app.services.users import serialize_user

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["users"])


"""
회원 목록 조회 API

- region 을 주면 해당 지역 소속 회원만
- 이름 오름차순 정렬
- 목록에서는 권한 정보를 생략

"""

@router.get("")
def list_users(
    region: str | None = None,
    paging: Page = Depends(get_page),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    stmt = select(User)
    if region:
        stmt = stmt.join(RegionGroup, User.region_group_id == RegionGroup.id).where(RegionGroup.region == region)

    users = db.scalars(
        stmt.order_by(User.name.asc(), User.id.asc())
        .offset(paging.offset)
        .limit(paging.page_size)
    ).all()

    return {
        "success": True,
        "users": [serialize_user(db, u, with_authorities=False) for u in users],
        "pagination": paging.meta(len(users)),
    }


@router.get("/me")
def me(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return {"success": True, "user": serialize_user(db, current_user)}


"""
비밀번호 변경 API

- 현재 비밀번호 확인
- 새 비밀번호 / 확인 값 일치 여부 확인
- 현재 비밀번호와 동일한 값으로 변경 불가

"""

@router.patch("/me/password")
def change_password(
    data: ChangePasswordRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    if not verify_password(data.current_password, current_user.password_hash):
        raise HTTPException(status_code=400, detail="Current password is incorrect")

    if data.new_password != data.confirm_password:
        raise HTTPException(status_code=400, detail="Password confirmation does not match")

    if verify_password(data.new_password, current_user.password_hash):
        raise HTTPException(status_code=400, detail="New password must be different")

    try:
        current_user.password_hash = get_password_hash(data.new_password)
        # 비밀번호가 바뀌면 다른 기기의 재발급 토큰도 폐기
        current_user.refresh_token = None
        current_user.refresh_token_expires_at = None
        db.commit()
    except Exception as e:
        db.rollback()
        raise HTTPException(status_code=500, detail=f"Database error: {type(e).__name__}")

    return {"success": True}


@router.post("/update-email")
def update_email(
    data: UpdateEmailRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    if current_user.email == data.email:
        raise HTTPException(status_code=400, detail="Email is the same as the current one")

    taken = db.scalar(select(User.id).where(User.email == data.email, User.id != current_user.id))
    if taken:
        raise HTTPException(status_code=400, detail="Email already in use")

    try:
        current_user.email = data.email
        db.commit()
    except Exception as e:
        db.rollback()
        raise HTTPException(status_code=500, detail=f"Database error: {type(e).__name__}")

    logger.info("User %s changed email", current_user.id)
    return {"success": True, "message": "Email updated", "email": data.email}


@router.get("/{user_id}")
def get_user(
    user_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    user = db.get(User, user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return {"success": True, "user": serialize_user(db, user)}


"""
회원 정보 부분 수정 API

- 본인 또는 팀장 이상(can_manage_users)만 가능
- 요청에 포함된 필드만 변경
- 이름은 null 로 비울 수 없음

"""

@router.patch("/{user_id}")
def update_user(
    user_id: int,
    data: UserUpdateRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    authorities: ResolvedAuthoritySet = Depends(get_current_authorities),
):
    if user_id != current_user.id and not authorities.can_manage_users():
        raise HTTPException(status_code=403, detail="Not allowed to edit this user")

    user = db.get(User, user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")

    if "name" in data.model_fields_set and data.name is None:
        raise HTTPException(status_code=400, detail="name cannot be null")

    if data.region_group_id is not None and not db.get(RegionGroup, data.region_group_id):
        raise HTTPException(status_code=404, detail="Region group not found")

    try:
        changed = apply_patch(user, data)
        db.commit()
        db.refresh(user)
    except Exception as e:
        db.rollback()
        raise HTTPException(status_code=500, detail=f"Database error: {type(e).__name__}")

    logger.info("User %s updated by %s: %s", user.id, current_user.id, changed)
    return {"success": True, "updated_fields": changed, "user": serialize_user(db, user)}


@router.put("/{user_id}/fcm-token")
def update_fcm_token(
    user_id: int,
    data: PushTokenRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    if user_id != current_user.id:
        raise HTTPException(status_code=403, detail="Can only update your own push token")

    try:
        register_push_token(db, current_user, data.token)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    try:
        db.commit()
    except Exception as e:
        db.rollback()
        raise HTTPException(status_code=500, detail=f"Database error: {type(e).__name__}")

    return {"success": True}
