"""
deps.py

FastAPI 의존성(Depends) 모음.

- get_db               : 요청 단위 DB 세션 (finally 에서 항상 close)
- get_session_factory  : 백그라운드 작업이 자체 세션을 열 때 사용하는 팩토리
- get_push_client      : 앱 시작 시 생성된 PushClient
- get_current_user     : Bearer 토큰 인증 (필수)
- get_optional_user    : Bearer 토큰 인증 (선택, 실패 시 익명)
- 권한 기반 의존성     : require_authority_level / manager / training manager / master
- get_page             : page / page_size 쿼리 검증 (잘못되면 400)

"""

from dataclasses import dataclass
from typing import Callable, Generator

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from app.core.push import PushClient
from app.core.security import decode_access_token
from app.db.session import SessionLocal
from app.models.user import User
from app.services.authority import (
    ResolvedAuthoritySet,
    TRAINING_MANAGER_LEVEL,
    USER_MANAGER_LEVEL,
    resolve_authorities,
)

# Swagger Authorize에서 "Bearer 토큰" 입력받는 스키마
bearer_scheme = HTTPBearer(auto_error=False)


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_session_factory() -> Callable[[], Session]:
    return SessionLocal


def get_push_client(request: Request) -> PushClient:
    client = getattr(request.app.state, "push_client", None)
    if client is None:
        # lifespan 밖에서 앱을 띄운 경우 (비활성 클라이언트)
        return PushClient(None, init_error="Push client not initialized")
    return client


def _user_id_from_token(token: str) -> int:
    payload = decode_access_token(token)
    return int(payload["sub"])


def get_current_user(
    cred: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> User:
    if cred is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        user_id = _user_id_from_token(cred.credentials)
    except Exception:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user = db.get(User, user_id)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return user


# 목록 조회처럼 로그인 없이도 볼 수 있는 API 용 (좋아요 여부 표시 등)
def get_optional_user(
    cred: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> User | None:
    if cred is None:
        return None
    try:
        user_id = _user_id_from_token(cred.credentials)
    except Exception:
        return None
    return db.get(User, user_id)


def get_current_authorities(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> ResolvedAuthoritySet:
    resolved = resolve_authorities(db, current_user.id)
    if resolved is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return resolved


def require_authority_level(max_level: int):
    def _checker(
        current_user: User = Depends(get_current_user),
        authorities: ResolvedAuthoritySet = Depends(get_current_authorities),
    ) -> User:
        if not authorities.can_access_by_level(max_level):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Requires authority level <= {max_level}",
            )
        return current_user
    return _checker


def get_current_master(
    current_user: User = Depends(get_current_user),
    authorities: ResolvedAuthoritySet = Depends(get_current_authorities),
) -> User:
    if not authorities.is_master_authority():
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Requires master authority",
        )
    return current_user


get_current_manager = require_authority_level(USER_MANAGER_LEVEL)
get_current_training_manager = require_authority_level(TRAINING_MANAGER_LEVEL)


MAX_PAGE_SIZE = 100


@dataclass
class Page:
    page: int
    page_size: int

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size

    def meta(self, count: int) -> dict:
        return {"page": self.page, "page_size": self.page_size, "has_more": count == self.page_size}


def get_page(page: int = 1, page_size: int = 10) -> Page:
    if page < 1 or page_size < 1 or page_size > MAX_PAGE_SIZE:
        raise HTTPException(status_code=400, detail="Invalid page parameters")
    return Page(page=page, page_size=page_size)
