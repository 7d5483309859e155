"""
services/users.py

사용자 도메인 공통 로직.

- 전화번호로 사용자 조회 (정규화된 숫자 기준)
- 지역/조(RegionGroup) 조회 또는 생성
- API 응답용 사용자 직렬화 (권한 정보 포함)

"""

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.security import normalize_phone
from app.models.user import RegionGroup, User
from app.schemas.user import UserResponse
from app.services.authority import format_authorities_for_api, resolve_authorities


def get_user_by_phone(db: Session, phone: str) -> User | None:
    clean = normalize_phone(phone)
    if not clean:
        return None
    return db.scalar(select(User).where(User.phone == clean))


def get_or_create_region_group(db: Session, region: str, group_number: int | None) -> RegionGroup:
    number = group_number or 1
    group = db.scalar(
        select(RegionGroup).where(
            RegionGroup.region == region,
            RegionGroup.group_number == number,
        )
    )
    if not group:
        group = RegionGroup(region=region, group_number=number)
        db.add(group)
        db.flush()
    return group


def serialize_user(db: Session, user: User, *, with_authorities: bool = True) -> dict:
    data = UserResponse.model_validate(user).model_dump(mode="json")

    region = None
    group_number = None
    if user.region_group_id is not None:
        group = db.get(RegionGroup, user.region_group_id)
        if group:
            region = group.region
            group_number = group.group_number
    data["region"] = region
    data["group_number"] = group_number

    if with_authorities:
        resolved = resolve_authorities(db, user.id)
        if resolved:
            formatted = format_authorities_for_api(resolved)
            data["authorities"] = formatted["authorities"]
            data["highestAuthorityLevel"] = formatted["highestAuthorityLevel"]
            data["authorityDisplayNames"] = formatted["authorityDisplayNames"]
            data["authority"] = formatted["authority"]
    return data
