"""
config.py

애플리케이션 전역 설정(Configuration) 관리 파일.

이 파일은 .env 환경 변수들을 Pydantic BaseSettings를 통해 로드하여
애플리케이션 전반에서 공통으로 사용하는 설정 값을 제공한다.

주요 설정 항목:
- 데이터베이스 연결 정보
- JWT Access Token / Refresh Token 만료 정책
- CORS 허용 도메인 목록
- 로그 레벨
- Firebase(FCM) 푸시 알림 서비스 계정 정보

설계 원칙:
- 모든 환경 변수는 이 파일을 통해서만 접근
- 로컬 / 테스트 / 운영 환경을 .env로 분리하여 관리
- 설정 값은 런타임 중 변경되지 않는 불변 객체로 취급

관련 파일:
- app.main               : CORS / 로깅 / 푸시 클라이언트 초기화 시 설정 사용
- app.core.security      : JWT 시크릿 / 만료 설정 사용
- app.core.push          : Firebase 서비스 계정 설정 사용
- app.db.session         : DATABASE_URL 사용

"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List

# .env 파일에 정의된 환경 변수를 로드하는 설정 클래스
# extra="ignore" 옵션으로 정의되지 않은 환경 변수는 무시
class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    DATABASE_URL: str
    TEST_DATABASE_URL: str | None = None

    SECRET_KEY: str
    ALGORITHM: str = "HS256"

    # access 토큰 24시간, refresh 토큰 30일
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24
    REFRESH_TOKEN_EXPIRE_DAYS: int = 30

    # CORS 허용 도메인 (프론트엔드 주소)
    CORS_ORIGINS: List[str] = ["http://localhost:3000", "http://127.0.0.1:3000"]

    LOG_LEVEL: str = "INFO"

    # 푸시 알림(FCM)
    # - FIREBASE_CREDENTIALS_PATH 의 서비스 계정 JSON 파일을 우선 사용
    # - 파일이 없으면 FIREBASE_* 환경 변수로 서비스 계정을 구성
    PUSH_ENABLED: bool = True
    FIREBASE_CREDENTIALS_PATH: str = "Firebase.json"
    FIREBASE_PROJECT_ID: str | None = None
    FIREBASE_PRIVATE_KEY_ID: str | None = None
    FIREBASE_PRIVATE_KEY: str | None = None
    FIREBASE_CLIENT_EMAIL: str | None = None
    FIREBASE_CLIENT_ID: str | None = None
    FIREBASE_CLIENT_X509_CERT_URL: str = ""

    # 알림 목록에 저장되는 메시지 / 푸시 본문 최대 길이
    NOTIFICATION_MESSAGE_LIMIT: int = 50
    PUSH_BODY_LIMIT: int = 100

    # 시스템 공지 푸시를 보낼 FCM 토픽
    NOTIFICATION_TOPIC: str = "all"

# 애플리케이션 전역에서 import하여 사용하는 Settings 인스턴스
# 실행 시 한 번만 생성됨
settings = Settings()
