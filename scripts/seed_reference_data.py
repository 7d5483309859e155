"""

권한 기준 데이터(카테고리 / 권한) 초기화 스크립트.

- 서버 최초 세팅 시 / 권한 목록이 추가되었을 때 실행
- 이미 있는 카테고리 / 권한은 건드리지 않으므로 여러 번 실행해도 안전

사용 방법
- 가상환경 접속
- (.venv) ~\backend~$ python -m scripts.seed_reference_data

"""

from dotenv import load_dotenv
load_dotenv()

from app.db.base import Base
from app.db.session import SessionLocal, engine
from app.db.init_db import seed_reference_data

import app.models  # noqa: F401


def main():
    Base.metadata.create_all(bind=engine)

    db = SessionLocal()
    try:
        created = seed_reference_data(db)
        db.commit()
        print(f"✅ Reference data ready ({created} rows created)")
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


if __name__ == "__main__":
    main()
