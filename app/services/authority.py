"""
services/authority.py

권한(Authority) 도메인의 비즈니스 로직 모음.

이 파일은 사용자가 가진 모든 활성 권한을 계산하고,
라우터가 권한 판단에 사용하는 predicate 함수를 제공한다.

주요 기능:
- 사용자 권한 집합 계산 (resolve_authorities)
- 권한 부여 / 제거 (겸직 지원, soft-deactivation)
- 권한 / 카테고리 목록 조회
- 권한 판단 함수 (레벨 비교, 마스터 권한, 사용자 관리, 훈련 관리)
- API 응답 형식 변환 (format_authorities_for_api)

설계 원칙:
- 권한 레벨은 낮을수록 상위 권한 (0 = 관리자)
- 존재하는 사용자는 항상 최소 한 개의 권한을 가진다
  → 할당된 권한이 없으면 기본 권한(리더)을 채워서 반환
- 존재하지 않는 사용자는 None (기본 권한으로 채우지 않음)
- users.authority(레거시 컬럼)는 절대 읽지 않음

관련 파일:
- app.models.authority          : AuthorityCategory / Authority / UserAuthority
- app.services.legacy_authority : 레거시 권한 컬럼 동기화
- app.core.deps                 : 권한 기반 인증 의존성
- app.routers.authorities       : 권한 관리 API

"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.db.base import utcnow
from app.models.authority import Authority, AuthorityCategory, UserAuthority
from app.models.user import User

logger = logging.getLogger(__name__)


DEFAULT_AUTHORITY_NAME = "LEADER"
DEFAULT_CATEGORY_NAME = "MINISTRY"
DEFAULT_DISPLAY_NAME = "리더"

# 권한이 하나도 없을 때의 레벨 (기본 권한 데이터가 누락된 경우에만 사용)
NO_AUTHORITY_LEVEL = 999

MASTER_AUTHORITY_NAMES = ("ADMIN", "NCMN_STAFF")

# 팀장 이상 / 지부장 이상
USER_MANAGER_LEVEL = 4
TRAINING_MANAGER_LEVEL = 3


@dataclass
class ResolvedAuthority:
    id: int
    category_id: int
    name: str
    display_name: str
    level: int
    is_active: bool
    created_at: datetime | None


@dataclass
class ResolvedAuthoritySet:
    """한 사용자의 활성 권한 집합 (레벨 오름차순)."""

    user_id: int
    user_name: str
    authorities: list[ResolvedAuthority] = field(default_factory=list)
    highest_authority_level: int = NO_AUTHORITY_LEVEL
    authority_display_names: str = DEFAULT_DISPLAY_NAME

    def has_authority(self, name: str) -> bool:
        return any(a.name == name and a.is_active for a in self.authorities)

    def can_access_by_level(self, required_level: int) -> bool:
        return self.highest_authority_level <= required_level

    def is_master_authority(self) -> bool:
        return any(self.has_authority(name) for name in MASTER_AUTHORITY_NAMES)

    def can_manage_users(self) -> bool:
        return self.can_access_by_level(USER_MANAGER_LEVEL)

    def can_manage_training(self) -> bool:
        return self.can_access_by_level(TRAINING_MANAGER_LEVEL)

    @property
    def names(self) -> list[str]:
        return [a.name for a in self.authorities]


def _to_resolved(authority: Authority) -> ResolvedAuthority:
    return ResolvedAuthority(
        id=authority.id,
        category_id=authority.category_id,
        name=authority.name,
        display_name=authority.display_name,
        level=authority.level,
        is_active=authority.is_active,
        created_at=authority.created_at,
    )


def get_default_authority(db: Session) -> Authority | None:
    return db.scalar(
        select(Authority)
        .join(AuthorityCategory, Authority.category_id == AuthorityCategory.id)
        .where(
            Authority.name == DEFAULT_AUTHORITY_NAME,
            AuthorityCategory.name == DEFAULT_CATEGORY_NAME,
        )
        .limit(1)
    )


"""
사용자 권한 집합 계산

- 활성(user_authorities.is_active=True) 할당만 조회
- 권한 레벨 오름차순 정렬 (가장 높은 권한이 먼저)
- 할당이 하나도 없으면 기본 권한(LEADER / MINISTRY)으로 채움
- 사용자가 존재하지 않으면 None 반환

"""

def resolve_authorities(db: Session, user_id: int) -> ResolvedAuthoritySet | None:
    user = db.get(User, user_id)
    if not user:
        return None

    rows = db.scalars(
        select(Authority)
        .join(UserAuthority, UserAuthority.authority_id == Authority.id)
        .where(
            UserAuthority.user_id == user_id,
            UserAuthority.is_active.is_(True),
        )
        .order_by(Authority.level.asc(), Authority.id.asc())
    ).all()

    authorities = [_to_resolved(a) for a in rows]

    if not authorities:
        default = get_default_authority(db)
        if default:
            authorities.append(_to_resolved(default))
        else:
            logger.error(
                "Default authority %s/%s is missing from reference data",
                DEFAULT_CATEGORY_NAME,
                DEFAULT_AUTHORITY_NAME,
            )

    highest = min((a.level for a in authorities), default=NO_AUTHORITY_LEVEL)
    display_names = ", ".join(a.display_name for a in authorities)

    return ResolvedAuthoritySet(
        user_id=user.id,
        user_name=user.name,
        authorities=authorities,
        highest_authority_level=highest,
        authority_display_names=display_names or DEFAULT_DISPLAY_NAME,
    )


"""
권한 부여 (겸직 가능)

- 같은 (user, authority) 할당이 이미 있으면 새로 만들지 않고 재활성화
  → assigned_at / assigned_by 갱신
- 존재하지 않는 권한이면 ValueError

NOTE:
- db.commit()은 호출 측(라우터)에서 수행

"""

def add_authority(db: Session, *, user_id: int, authority_id: int, assigned_by: int | None) -> UserAuthority:
    authority = db.get(Authority, authority_id)
    if not authority:
        raise ValueError("authority not found")

    assignment = db.scalar(
        select(UserAuthority).where(
            UserAuthority.user_id == user_id,
            UserAuthority.authority_id == authority_id,
        )
    )

    if assignment:
        assignment.is_active = True
        assignment.assigned_at = utcnow()
        assignment.assigned_by = assigned_by
    else:
        assignment = UserAuthority(
            user_id=user_id,
            authority_id=authority_id,
            assigned_by=assigned_by,
            assigned_at=utcnow(),
            is_active=True,
        )
        db.add(assignment)

    db.flush()
    return assignment


"""
권한 제거 (soft-deactivation)

- 행을 삭제하지 않고 is_active=False 로 변경
- 활성 할당이 없으면 아무것도 하지 않고 False 반환 (에러 아님)

"""

def remove_authority(db: Session, *, user_id: int, authority_id: int) -> bool:
    assignment = db.scalar(
        select(UserAuthority).where(
            UserAuthority.user_id == user_id,
            UserAuthority.authority_id == authority_id,
            UserAuthority.is_active.is_(True),
        )
    )
    if not assignment:
        return False

    assignment.is_active = False
    db.flush()
    return True


def list_authorities(db: Session) -> list[Authority]:
    return list(
        db.scalars(
            select(Authority)
            .where(Authority.is_active.is_(True))
            .order_by(Authority.level.asc())
        ).all()
    )


def list_categories(db: Session) -> list[AuthorityCategory]:
    return list(db.scalars(select(AuthorityCategory).order_by(AuthorityCategory.id.asc())).all())


def _iso(value: datetime | None) -> str:
    if value is None:
        return datetime.now(timezone.utc).isoformat()
    return value.isoformat()


def format_authority(authority: Authority | ResolvedAuthority) -> dict:
    return {
        "id": authority.id if authority.id is not None else 0,
        "categoryId": authority.category_id if authority.category_id is not None else 0,
        "name": authority.name or "",
        "displayName": authority.display_name or "권한",
        "level": authority.level if authority.level is not None else NO_AUTHORITY_LEVEL,
        "isActive": authority.is_active if authority.is_active is not None else True,
        "createdAt": _iso(authority.created_at),
    }


def format_category(category: AuthorityCategory) -> dict:
    return {
        "id": category.id,
        "name": category.name,
        "description": category.description,
        "createdAt": _iso(category.created_at),
    }


"""
API 응답 형식 변환

- 모든 필드에 기본값을 채워 null 이 나가지 않도록 함
- authority : 레거시 앱 호환용 (가장 높은 권한의 표시명)

"""

def format_authorities_for_api(resolved: ResolvedAuthoritySet) -> dict:
    authorities = resolved.authorities or []
    return {
        "userId": resolved.user_id if resolved.user_id is not None else 0,
        "userName": resolved.user_name or "",
        "authorities": [format_authority(a) for a in authorities],
        "highestAuthorityLevel": (
            resolved.highest_authority_level
            if resolved.highest_authority_level is not None
            else NO_AUTHORITY_LEVEL
        ),
        "authorityDisplayNames": resolved.authority_display_names or DEFAULT_DISPLAY_NAME,
        "authority": (authorities[0].display_name if authorities else None) or DEFAULT_DISPLAY_NAME,
    }
