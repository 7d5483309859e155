"""

레거시 단일 권한(users.authority) → 다중 권한(user_authorities) 이관 스크립트.

- users.authority 값이 숫자 레벨("0" ~ "5")이거나 권한 표시명/이름인 회원을 대상으로 함
- 이미 활성 권한이 하나라도 있는 회원은 건너뜀 (여러 번 실행해도 안전)
- 매핑되지 않는 값은 기본 권한(리더)으로 이관
- 이관 후 users.authority 는 최고 권한 표시명으로 다시 기록

사용 방법
- 가상환경 접속
- (.venv) ~\backend~$ python -m scripts.migrate_legacy_authorities
- 실제 반영 없이 확인만 : python -m scripts.migrate_legacy_authorities --dry-run

"""

import sys
from dotenv import load_dotenv
load_dotenv()

from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from app.db.init_db import seed_reference_data
from app.db.session import SessionLocal
from app.models.authority import Authority, UserAuthority
from app.models.user import User
from app.services.authority import add_authority, resolve_authorities
from app.services.legacy_authority import convert_legacy_level, sync_legacy_authority


def _legacy_target(db: Session, value: str | None) -> Authority | None:
    value = (value or "").strip()
    if value.isdigit():
        return convert_legacy_level(db, int(value))

    if value:
        authority = db.scalar(
            select(Authority).where(or_(Authority.name == value, Authority.display_name == value)).limit(1)
        )
        if authority:
            return authority
    return convert_legacy_level(db, None)


def migrate(db: Session) -> tuple[int, int]:
    migrated = skipped = 0

    for user in db.scalars(select(User).order_by(User.id.asc())).all():
        has_active = db.scalar(
            select(UserAuthority.id).where(UserAuthority.user_id == user.id, UserAuthority.is_active.is_(True))
        )
        if has_active:
            skipped += 1
            continue

        authority = _legacy_target(db, user.authority)
        if not authority:
            raise RuntimeError("Authority reference data is missing")

        add_authority(db, user_id=user.id, authority_id=authority.id, assigned_by=None)
        sync_legacy_authority(user, resolve_authorities(db, user.id))
        migrated += 1

    return migrated, skipped


def main():
    dry_run = "--dry-run" in sys.argv[1:]

    db = SessionLocal()
    try:
        seed_reference_data(db)
        migrated, skipped = migrate(db)
        if dry_run:
            db.rollback()
            print(f"🔎 Dry run: {migrated} users would be migrated, {skipped} skipped")
        else:
            db.commit()
            print(f"✅ Migrated {migrated} users ({skipped} already had authorities)")
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


if __name__ == "__main__":
    main()
