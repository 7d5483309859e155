"""
init_db.py

권한 기준 데이터(카테고리 / 권한) 초기화.

- 이름 기준으로 존재 여부를 확인하므로 여러 번 실행해도 안전
- 이미 있는 행은 수정하지 않음
- commit 은 호출 측에서 수행

"""

import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.models.authority import Authority, AuthorityCategory

logger = logging.getLogger(__name__)


AUTHORITY_CATEGORIES = [
    ("MINISTRY", "사역 권한"),
    ("ORGANIZATION", "조직 권한"),
]

# (name, display_name, level, category)
AUTHORITIES = [
    ("ADMIN", "관리자", 0, "MINISTRY"),
    ("NCMN_STAFF", "NCMN 간사", 1, "MINISTRY"),
    ("LEADERSHIP", "리더십", 2, "MINISTRY"),
    ("BRANCH_DIRECTOR", "지부장", 3, "ORGANIZATION"),
    ("TEAM_LEADER", "팀장", 4, "ORGANIZATION"),
    ("GROUP_LEADER", "조장", 5, "ORGANIZATION"),
    ("LEADER", "리더", 6, "MINISTRY"),
]


def seed_reference_data(db: Session) -> int:
    created = 0

    categories: dict[str, AuthorityCategory] = {}
    for name, description in AUTHORITY_CATEGORIES:
        category = db.scalar(select(AuthorityCategory).where(AuthorityCategory.name == name))
        if not category:
            category = AuthorityCategory(name=name, description=description)
            db.add(category)
            db.flush()
            created += 1
        categories[name] = category

    for name, display_name, level, category_name in AUTHORITIES:
        exists = db.scalar(select(Authority).where(Authority.name == name))
        if exists:
            continue
        db.add(Authority(
            name=name,
            display_name=display_name,
            level=level,
            category_id=categories[category_name].id,
            is_active=True,
        ))
        created += 1

    db.flush()
    logger.info("Reference data seeded: %d rows created", created)
    return created
