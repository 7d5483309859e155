import os

# app import 전에 테스트용 환경 값 지정 (.env 보다 우선)
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ["PUSH_ENABLED"] = "false"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.main import app as fastapi_app
from app.core.config import settings
from app.core.deps import get_db, get_push_client, get_session_factory
from app.db.base import Base
from app.db.init_db import seed_reference_data

# ✅ 모델 import (Base.metadata에 테이블 등록)
import app.models  # noqa: F401

from tests.helpers import FakePushClient


TEST_DB_URL = settings.TEST_DATABASE_URL or "sqlite://"

if TEST_DB_URL.startswith("sqlite"):
    # 인메모리 SQLite 는 커넥션 하나를 모든 스레드가 공유해야 같은 DB 를 봄
    engine = create_engine(
        TEST_DB_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
else:
    engine = create_engine(TEST_DB_URL, pool_pre_ping=True)

TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture(scope="session", autouse=True)
def setup_test_db():
    """테스트 전체 시작/종료 때만 스키마 생성/삭제"""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def clean_tables():
    """각 테스트마다 데이터 초기화 후 권한 기준 데이터 다시 넣기"""
    with engine.begin() as conn:
        for table in reversed(Base.metadata.sorted_tables):
            conn.execute(table.delete())

    session = TestingSessionLocal()
    try:
        seed_reference_data(session)
        session.commit()
    finally:
        session.close()


@pytest.fixture()
def db_session():
    """테스트에서 직접 DB 조작할 때 쓰는 세션"""
    session = TestingSessionLocal()
    try:
        yield session
        session.commit()
    finally:
        session.close()


@pytest.fixture()
def push():
    return FakePushClient()


@pytest.fixture()
def client(push):
    fastapi_app.dependency_overrides[get_db] = override_get_db
    fastapi_app.dependency_overrides[get_session_factory] = lambda: TestingSessionLocal
    fastapi_app.dependency_overrides[get_push_client] = lambda: push
    with TestClient(fastapi_app) as c:
        yield c
    fastapi_app.dependency_overrides.clear()
