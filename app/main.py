"""
main.py

FastAPI 애플리케이션 진입점(Entry Point).

이 파일은 서버 실행 시 가장 먼저 로드되며,
애플리케이션 전반의 설정과 라우터 등록을 담당한다.

주요 역할:
- 로깅 설정
- FastAPI 앱 인스턴스 생성 및 푸시 클라이언트(FCM) 초기화
- CORS 미들웨어 설정
- 각 도메인별 라우터(auth, users, authorities, notices, testimonies, notifications, trainings 등) 등록
- 헬스 체크 및 DB 연결 상태 확인용 엔드포인트 제공

설계 원칙:
- 비즈니스 로직은 포함하지 않고 설정/조립 역할만 수행
- 실제 기능은 routers / services 계층에 위임
- 푸시 클라이언트 초기화 실패는 서버 기동을 막지 않음
  → 알림 생성 API 가 경고(warning)와 함께 동작
- 운영 환경에서도 안전하게 상태 확인 가능하도록 health/db-ping 제공

관련 파일:
- app.core.config        : 환경 변수 및 설정 로드
- app.core.deps          : DB 세션 / 푸시 클라이언트 의존성
- app.core.push          : FCM 푸시 클라이언트
- app.routers.*          : 기능별 API 라우터

"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Depends
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.orm import Session
from sqlalchemy import text

from app.core.config import settings
from app.core.deps import get_db, get_push_client
from app.core.push import PushClient
from app.routers import (
    academic_years,
    auth,
    authorities,
    branches,
    comments,
    events,
    home,
    join,
    notices,
    notifications,
    teams,
    testimonies,
    testimony_comments,
    trainings,
    users,
    vision_camp_batches,
)

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    app.state.push_client = PushClient.from_settings(settings)
    if app.state.push_client.is_available:
        logger.info("Push client ready")
    else:
        logger.warning("Push client unavailable: %s", app.state.push_client.init_error)
    yield


app = FastAPI(title="Campus Community Backend", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(join.router)
app.include_router(auth.router)
app.include_router(users.router)
app.include_router(authorities.router)
app.include_router(notices.router)
app.include_router(testimonies.router)
app.include_router(testimony_comments.router)
app.include_router(notifications.router)
app.include_router(events.router)
app.include_router(teams.router)
app.include_router(branches.router)
app.include_router(comments.router)
app.include_router(trainings.router)
app.include_router(academic_years.router)
app.include_router(vision_camp_batches.router)
app.include_router(home.router)

"""
서버 헬스 체크 엔드포인트

- 애플리케이션 프로세스가 정상 동작 중인지 확인
- 푸시 알림 사용 가능 여부를 함께 반환

"""
@app.get("/health")
def health(push: PushClient = Depends(get_push_client)):
    return {"status": "ok", "push": push.is_available}

"""
데이터베이스 연결 상태 확인 엔드포인트

- 간단한 SELECT 1 쿼리를 통해 DB 연결 여부 확인
- 서버는 살아 있으나 DB가 죽은 상황을 분리해서 감지 가능

"""
@app.get("/db-ping")
def db_ping(db: Session = Depends(get_db)):
    value = db.execute(text("SELECT 1")).scalar_one()
    return {"db": "ok", "value": value}
