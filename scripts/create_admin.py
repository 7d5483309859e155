"""

ADMIN 초기 계정 생성 스크립트.

- 서버 최초 세팅 시 단 한 번 실행하는 용도
- .env에 정의된 ADMIN_* 환경 변수를 읽어
  ADMIN 권한을 가진 계정을 생성한다.
- 같은 전화번호의 계정이 이미 있으면 새로 만들지 않고 ADMIN 권한만 부여한다.

사용 방법
- 가상환경 접속
- (.venv) ~\backend~$ python -m scripts.create_admin

"""

import os
from dotenv import load_dotenv
load_dotenv()

from sqlalchemy import select

from app.core.security import get_password_hash, normalize_phone
from app.db.init_db import seed_reference_data
from app.db.session import SessionLocal
from app.models.authority import Authority
from app.models.user import User
from app.services.authority import add_authority, resolve_authorities
from app.services.legacy_authority import sync_legacy_authority
from app.services.users import get_user_by_phone

ADMIN_AUTHORITY_NAME = "ADMIN"


def main():
    db = SessionLocal()
    try:
        seed_reference_data(db)

        phone = normalize_phone(os.environ["ADMIN_PHONE"])
        password = os.environ["ADMIN_PASSWORD"]
        name = os.environ.get("ADMIN_NAME", "관리자")

        user = get_user_by_phone(db, phone)
        if user:
            print(f"ℹ️ User {phone} already exists. Granting ADMIN only.")
        else:
            user = User(phone=phone, password_hash=get_password_hash(password), name=name)
            db.add(user)
            db.flush()

        authority = db.scalar(select(Authority).where(Authority.name == ADMIN_AUTHORITY_NAME))
        if not authority:
            raise RuntimeError("ADMIN authority is missing from reference data")

        add_authority(db, user_id=user.id, authority_id=authority.id, assigned_by=None)
        sync_legacy_authority(user, resolve_authorities(db, user.id))
        db.commit()

        print(f"🚀 ADMIN ready: {phone} (id={user.id})")

    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


if __name__ == "__main__":
    main()
