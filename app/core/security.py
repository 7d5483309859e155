"""
security.py

비밀번호 해싱, Access Token(JWT) 발급/검증, Refresh Token 생성을 담당하는
보안 유틸리티 모음.

이 파일은 인증(auth) 로직에서 사용하는
저수준(low-level) 보안 기능만을 제공하며,
라우터나 비즈니스 로직은 포함하지 않는다.

주요 기능:
- 비밀번호 해싱 및 검증 (bcrypt)
- JWT Access Token 생성 / 디코딩
- 불투명(opaque) Refresh Token 생성 및 형식 검사
- 전화번호 정규화 (로그인 키 비교용)

설계 원칙:
- Access Token 은 서명된 JWT, Refresh Token 은 DB 에 저장되는 64자리 hex 문자열
- Refresh Token 형식 검사는 DB 조회 이전에 수행
- 시간 기반(exp) 만료는 UTC 기준으로 처리

관련 파일:
- app.core.config        : JWT 시크릿 키 및 만료 설정
- app.core.deps          : 토큰을 실제로 검증하는 인증 의존성
- app.routers.auth       : 로그인 / 재발급 API

"""

import re
import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import jwt, JWTError
from passlib.context import CryptContext

from app.core.config import settings


# bcrypt 기반 비밀번호 해싱 컨텍스트
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

_REFRESH_TOKEN_RE = re.compile(r"^[0-9a-fA-F]{64}$")
_NON_DIGIT_RE = re.compile(r"\D")


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain: str, hashed: str) -> bool:
    return pwd_context.verify(plain, hashed)


"""
Access Token 생성 함수

- sub  : 사용자 ID (문자열)
- role : 레거시 권한 표시명 (앱 호환용, 권한 판단에는 사용하지 않음)
- type : "access" 고정 → 다른 용도의 토큰과 구분

"""

def create_access_token(user_id: int, role: str | None = None, expires_delta: Optional[timedelta] = None) -> str:
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    payload = {
        "sub": str(user_id),
        "role": role,
        "type": "access",
        "exp": int(expire.timestamp()),
    }
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


"""
Access Token 디코딩 함수

- 서명 / 만료 검증은 python-jose 에 위임
- type 이 access 가 아니면 JWTError
- sub 가 없으면 JWTError

"""

def decode_access_token(token: str) -> dict:
    payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    if payload.get("type") != "access":
        raise JWTError("Not an access token")
    if not payload.get("sub"):
        raise JWTError("Missing subject")
    return payload


# 64자리 hex 문자열 (32바이트 난수)
def generate_refresh_token() -> str:
    return secrets.token_hex(32)


def is_refresh_token_format(token: str | None) -> bool:
    if not isinstance(token, str):
        return False
    return bool(_REFRESH_TOKEN_RE.match(token))


def refresh_token_expiry(now: datetime | None = None) -> datetime:
    return (now or datetime.now(timezone.utc)) + timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS)


# "010-1234-5678" → "01012345678"
def normalize_phone(phone: str) -> str:
    return _NON_DIGIT_RE.sub("", phone or "")
