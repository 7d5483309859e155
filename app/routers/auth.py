"""
auth.py

인증(Authentication) API 모음.

이 파일은 로그인, 토큰 재발급, 로그아웃과 같이
사용자 인증 흐름 전반을 담당한다.
Access Token(JWT) + Refresh Token(64자리 hex, DB 저장) 구조를 따른다.

주요 기능:
- 로그인 및 토큰 발급 (전화번호 하이픈 유무 무관)
- Refresh Token 기반 Access Token 재발급 (Refresh Token 도 함께 교체)
- 로그아웃 (Refresh Token / 푸시 토큰 무효화)
- 전화번호 + 이메일 본인 확인 (비밀번호 찾기 전 단계)

설계 원칙:
- Access Token 은 Authorization Header(Bearer)로 전달
- Refresh Token 은 응답 바디로 전달하고 DB 에 만료 시각과 함께 저장
- Refresh Token 형식이 잘못되면 DB 조회 없이 400
- Access Token 의 role 클레임은 레거시 앱 호환용 (권한 판단에는 사용하지 않음)

관련 파일:
- app.core.security        : 비밀번호 해시 / JWT / Refresh Token 생성
- app.core.deps            : 인증 의존성(get_current_user)
- app.services.authority   : role 클레임 계산용 권한 조회

"""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.deps import get_db, get_current_user
from app.core.security import (
    create_access_token,
    generate_refresh_token,
    is_refresh_token_format,
    refresh_token_expiry,
    verify_password,
)
from app.models.user import User
from app.schemas.auth import LoginRequest, RefreshTokenRequest, VerifyUserInfoRequest
from app.services.authority import resolve_authorities
from app.services.legacy_authority import legacy_authority_label
from app.services.users import get_user_by_phone, serialize_user

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


# SQLite 는 timezone 정보 없이 돌려주므로 UTC 로 간주
def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _issue_tokens(db: Session, user: User) -> tuple[str, str]:
    role = legacy_authority_label(resolve_authorities(db, user.id))
    access = create_access_token(user.id, role)

    refresh = generate_refresh_token()
    user.refresh_token = refresh
    user.refresh_token_expires_at = refresh_token_expiry()
    return access, refresh


"""
로그인 API

- 전화번호 / 비밀번호 인증
- 등록되지 않은 전화번호 / 비밀번호 불일치 → 401
- Access Token + Refresh Token 반환

"""

@router.post("/login")
def login(data: LoginRequest, db: Session = Depends(get_db)):
    user = get_user_by_phone(db, data.phone)

    if not user or not verify_password(data.password, user.password_hash):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")

    try:
        access, refresh = _issue_tokens(db, user)
        db.commit()
        db.refresh(user)
    except Exception as e:
        db.rollback()
        raise HTTPException(status_code=500, detail=f"Database error: {type(e).__name__}")

    logger.info("User logged in: id=%s", user.id)
    return {
        "success": True,
        "user": serialize_user(db, user),
        "token": access,
        "refreshToken": refresh,
    }


"""
Access Token 재발급 API

- 토큰 없음 / 형식 오류 → 400 (DB 조회 전)
- 저장된 토큰과 일치하는 사용자가 없음 → 401
- 만료 → 저장된 토큰 삭제 후 401
- 성공 시 Access / Refresh Token 모두 새로 발급 (기존 Refresh Token 폐기)

"""

@router.post("/refresh-token")
def refresh_token(data: RefreshTokenRequest, db: Session = Depends(get_db)):
    token = data.refreshToken
    if not token:
        raise HTTPException(status_code=400, detail="Refresh token required")
    if not is_refresh_token_format(token):
        raise HTTPException(status_code=400, detail="Invalid refresh token format")

    user = db.scalar(select(User).where(User.refresh_token == token))
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid refresh token")

    expires_at = user.refresh_token_expires_at
    if expires_at is not None and _as_utc(expires_at) < datetime.now(timezone.utc):
        try:
            user.refresh_token = None
            user.refresh_token_expires_at = None
            db.commit()
        except Exception as e:
            db.rollback()
            raise HTTPException(status_code=500, detail=f"Database error: {type(e).__name__}")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Refresh token expired")

    try:
        access, refresh = _issue_tokens(db, user)
        db.commit()
    except Exception as e:
        db.rollback()
        raise HTTPException(status_code=500, detail=f"Database error: {type(e).__name__}")

    return {"success": True, "token": access, "refreshToken": refresh}


"""
로그아웃 API

- Refresh Token 무효화
- 푸시 토큰 제거 (로그아웃한 기기로 알림이 가지 않도록)

"""

@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
def logout(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    try:
        current_user.refresh_token = None
        current_user.refresh_token_expires_at = None
        current_user.fcm_token = None
        db.commit()
    except Exception as e:
        db.rollback()
        raise HTTPException(status_code=500, detail=f"Database error: {type(e).__name__}")

    return Response(status_code=status.HTTP_204_NO_CONTENT)


"""
본인 확인 API

- 전화번호(숫자만 비교) + 이메일이 모두 일치하는 사용자가 있는지 확인
- 일치하지 않으면 404
- 응답에는 이름만 포함 (다른 회원 정보는 노출하지 않음)

"""

@router.post("/verify-user-info")
def verify_user_info(data: VerifyUserInfoRequest, db: Session = Depends(get_db)):
    user = get_user_by_phone(db, data.phone)
    if not user or user.email != data.email:
        raise HTTPException(status_code=404, detail="No user matches the given phone and email")

    return {"success": True, "message": "User verified", "userName": user.name}
