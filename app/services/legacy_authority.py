"""
services/legacy_authority.py

단일 권한 시절의 users.authority 컬럼과
다중 권한(user_authorities) 구조 사이의 호환 어댑터.

규칙:
- 권한 판단의 기준은 항상 user_authorities (resolve_authorities 결과)
- users.authority 는 구버전 앱 표시용으로 "쓰기만" 한다
- 레거시 숫자 레벨 → 새 권한 변환은 마이그레이션 스크립트에서만 사용

관련 파일:
- app.services.authority                : 권한 집합 계산
- scripts.migrate_legacy_authorities    : 레거시 데이터 이관 스크립트

"""

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.models.authority import Authority
from app.models.user import User
from app.services.authority import (
    DEFAULT_DISPLAY_NAME,
    ResolvedAuthoritySet,
    get_default_authority,
)


# 구버전 숫자 레벨 → 권한 이름
LEGACY_LEVEL_NAMES = {
    0: "ADMIN",
    1: "NCMN_STAFF",
    2: "LEADERSHIP",
    3: "BRANCH_DIRECTOR",
    4: "TEAM_LEADER",
    5: "GROUP_LEADER",
}


def legacy_authority_label(resolved: ResolvedAuthoritySet | None) -> str:
    if not resolved or not resolved.authorities:
        return DEFAULT_DISPLAY_NAME
    return resolved.authorities[0].display_name or DEFAULT_DISPLAY_NAME


def sync_legacy_authority(user: User, resolved: ResolvedAuthoritySet | None) -> str:
    """권한 변경 직후 users.authority 에 가장 높은 권한의 표시명을 기록한다."""
    label = legacy_authority_label(resolved)
    user.authority = label
    return label


def convert_legacy_level(db: Session, level: int | None) -> Authority | None:
    """
    레거시 숫자 레벨을 권한으로 변환한다.

    매핑에 없는 값(6 이상, None 등)은 기본 권한(리더)으로 본다.
    권한 데이터가 없으면 None.
    """
    name = LEGACY_LEVEL_NAMES.get(level) if level is not None else None
    if name is None:
        return get_default_authority(db)
    return db.scalar(select(Authority).where(Authority.name == name).limit(1))
