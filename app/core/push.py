"""
push.py

푸시 알림(FCM) 클라이언트.

firebase-admin SDK 를 감싼 PushClient 를 제공한다.
앱 시작 시(lifespan) 한 번만 생성되어 app.state.push_client 에 저장되고,
라우터는 get_push_client 의존성을 통해 같은 객체를 받아 사용한다.

주요 기능:
- 서비스 계정 로드 (Firebase.json 우선, FIREBASE_* 환경 변수 폴백)
- 초기화 상태 / 초기화 오류 조회 (is_available, init_error)
- FCM 토큰 형식 검증 (네트워크 호출 없음)
- 단일 토큰 / 여러 토큰 / 토픽 전송

설계 원칙:
- 초기화 실패는 예외로 올리지 않고 init_error 에 기록 → 푸시만 비활성화
- 전송 실패도 예외로 올리지 않고 결과 값으로 반환
- 토큰은 로그에 앞 20자만 남김

관련 파일:
- app.core.config               : PUSH_ENABLED / FIREBASE_* 설정
- app.core.deps                 : get_push_client 의존성
- app.services.notifications    : 알림 생성 및 푸시 전송 파이프라인

"""

import json
import logging
import os
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable

import firebase_admin
from firebase_admin import credentials, messaging
from firebase_admin import exceptions as firebase_exceptions

logger = logging.getLogger(__name__)


FIREBASE_APP_NAME = "campus-push"
ANDROID_CHANNEL_ID = "high_importance_channel"

REQUIRED_SERVICE_ACCOUNT_FIELDS = (
    "type",
    "project_id",
    "private_key_id",
    "private_key",
    "client_email",
    "client_id",
)

TOKEN_MIN_LENGTH = 100
TOKEN_MAX_LENGTH = 300
_TOKEN_RE = re.compile(r"^[A-Za-z0-9_:-]+$")

# 클라이언트가 실수로 보내는 자리표시자 값들 (대소문자 무시)
PLACEHOLDER_TOKENS = frozenset({
    "invalid_token",
    "test_token",
    "dummy_token",
    "null",
    "undefined",
    "example_token",
})

# 제공자가 "영구적으로 무효"라고 알려주는 오류
_INVALID_TOKEN_ERRORS = (
    messaging.UnregisteredError,
    messaging.SenderIdMismatchError,
    firebase_exceptions.InvalidArgumentError,
)


class SendOutcome(str, Enum):
    SENT = "sent"
    FAILED = "failed"
    INVALID_TOKEN = "invalid_token"


@dataclass
class BatchResult:
    success: int = 0
    failure: int = 0
    invalid_tokens: list[str] = field(default_factory=list)


def mask_token(token: str | None) -> str:
    if not token:
        return "<empty>"
    return f"{token[:20]}..."


"""
FCM 토큰 형식 검증

- 문자열이어야 하고 공백만으로 이루어지면 안 됨
- 길이 100 ~ 300
- 영문 / 숫자 / '_' / ':' / '-' 만 허용
- 자리표시자 값(null, undefined, test_token 등) 거부

반환값: (유효 여부, 사유)

"""

def validate_push_token(token) -> tuple[bool, str | None]:
    if not token or not isinstance(token, str):
        return False, "token is empty or not a string"
    if token.strip() == "":
        return False, "token is blank"
    if len(token) < TOKEN_MIN_LENGTH or len(token) > TOKEN_MAX_LENGTH:
        return False, "token length out of range"
    if not _TOKEN_RE.match(token):
        return False, "token contains invalid characters"
    if token.lower() in PLACEHOLDER_TOKENS:
        return False, "token is a placeholder value"
    return True, None


def _load_service_account_file(path: str) -> dict | None:
    if not path or not os.path.exists(path):
        logger.warning("Firebase credentials file not found: %s", path)
        return None

    with open(path, "r", encoding="utf-8") as f:
        account = json.load(f)

    missing = [name for name in REQUIRED_SERVICE_ACCOUNT_FIELDS if not account.get(name)]
    if missing:
        raise ValueError(f"Firebase credentials file is missing fields: {', '.join(missing)}")

    logger.info("Loaded Firebase credentials from %s", path)
    return account


def _service_account_from_settings(settings) -> dict | None:
    values = {
        "FIREBASE_PROJECT_ID": settings.FIREBASE_PROJECT_ID,
        "FIREBASE_PRIVATE_KEY_ID": settings.FIREBASE_PRIVATE_KEY_ID,
        "FIREBASE_PRIVATE_KEY": settings.FIREBASE_PRIVATE_KEY,
        "FIREBASE_CLIENT_EMAIL": settings.FIREBASE_CLIENT_EMAIL,
        "FIREBASE_CLIENT_ID": settings.FIREBASE_CLIENT_ID,
    }
    missing = [name for name, value in values.items() if not value]
    if missing:
        logger.warning("Firebase environment variables missing: %s", ", ".join(missing))
        return None

    return {
        "type": "service_account",
        "project_id": settings.FIREBASE_PROJECT_ID,
        "private_key_id": settings.FIREBASE_PRIVATE_KEY_ID,
        # .env 에는 줄바꿈이 "\n" 문자열로 들어 있음
        "private_key": settings.FIREBASE_PRIVATE_KEY.replace("\\n", "\n"),
        "client_email": settings.FIREBASE_CLIENT_EMAIL,
        "client_id": settings.FIREBASE_CLIENT_ID,
        "auth_uri": "https://accounts.google.com/o/oauth2/auth",
        "token_uri": "https://oauth2.googleapis.com/token",
        "auth_provider_x509_cert_url": "https://www.googleapis.com/oauth2/v1/certs",
        "client_x509_cert_url": settings.FIREBASE_CLIENT_X509_CERT_URL or "",
    }


def build_message(*, title: str, body: str, data: dict | None = None,
                  badge: int | None = None, token: str | None = None,
                  topic: str | None = None) -> messaging.Message:
    # FCM data payload 는 문자열 값만 허용
    payload = {str(k): str(v) for k, v in (data or {}).items() if v is not None}
    return messaging.Message(
        token=token,
        topic=topic,
        notification=messaging.Notification(title=title, body=body),
        data=payload,
        android=messaging.AndroidConfig(
            priority="high",
            notification=messaging.AndroidNotification(
                channel_id=ANDROID_CHANNEL_ID,
                priority="high",
                sound="default",
            ),
        ),
        apns=messaging.APNSConfig(
            payload=messaging.APNSPayload(
                aps=messaging.Aps(
                    alert=messaging.ApsAlert(title=title, body=body),
                    badge=badge,
                    sound="default",
                ),
            ),
        ),
    )


class PushClient:
    """
    FCM 전송 클라이언트.

    프로세스 시작 시 한 번 생성하고 재생성하지 않는다.
    사용 전에 is_available 로 초기화 여부를 확인한다.
    """

    def __init__(self, app: firebase_admin.App | None = None, *, init_error: str | None = None):
        self._app = app
        self._init_error = init_error

    @classmethod
    def from_settings(cls, settings) -> "PushClient":
        if not settings.PUSH_ENABLED:
            logger.info("Push notifications disabled by configuration")
            return cls(None, init_error="Push notifications are disabled")

        try:
            account = _load_service_account_file(settings.FIREBASE_CREDENTIALS_PATH)
            if account is None:
                logger.info("Falling back to FIREBASE_* environment variables")
                account = _service_account_from_settings(settings)
            if account is None:
                raise ValueError(
                    "Firebase service account is not configured. "
                    "Provide a credentials file or FIREBASE_* environment variables."
                )

            try:
                app = firebase_admin.get_app(FIREBASE_APP_NAME)
            except ValueError:
                app = firebase_admin.initialize_app(
                    credentials.Certificate(account), name=FIREBASE_APP_NAME
                )
        except Exception as e:
            logger.error("Firebase initialization failed: %s", e)
            return cls(None, init_error=str(e))

        logger.info("Firebase Admin SDK initialized")
        return cls(app)

    @property
    def is_available(self) -> bool:
        return self._app is not None

    @property
    def init_error(self) -> str | None:
        return self._init_error

    def validate_token(self, token) -> tuple[bool, str | None]:
        return validate_push_token(token)

    def _send(self, message: messaging.Message) -> str:
        return messaging.send(message, app=self._app)

    def send_to_token(self, token: str, *, title: str, body: str,
                      data: dict | None = None, badge: int | None = None) -> SendOutcome:
        if not self.is_available:
            logger.warning("Push client unavailable, message not sent: %s", self._init_error)
            return SendOutcome.FAILED

        valid, reason = self.validate_token(token)
        if not valid:
            logger.warning("Push token rejected (%s): %s", mask_token(token), reason)
            return SendOutcome.FAILED

        message = build_message(title=title, body=body, data=data, badge=badge or 0, token=token)
        try:
            message_id = self._send(message)
        except _INVALID_TOKEN_ERRORS as e:
            logger.warning("Push token invalid (%s): %s", mask_token(token), e)
            return SendOutcome.INVALID_TOKEN
        except (firebase_exceptions.FirebaseError, ValueError) as e:
            logger.error("Push send failed (%s): %s", mask_token(token), e)
            return SendOutcome.FAILED

        logger.info("Push sent (%s): %s", mask_token(token), message_id)
        return SendOutcome.SENT

    """
    여러 토큰 전송

    - targets : (토큰, 뱃지 수) 목록
    - 토큰마다 독립적으로 전송 → 하나가 실패해도 나머지는 계속
    - 형식이 잘못된 토큰과 제공자가 무효 처리한 토큰은 invalid_tokens 에 모음

    """

    def send_to_tokens(self, targets: Iterable[tuple[str, int | None]], *, title: str, body: str,
                       data: dict | None = None) -> BatchResult:
        targets = list(targets)
        result = BatchResult()

        if not self.is_available:
            logger.warning("Push client unavailable, %d messages not sent: %s", len(targets), self._init_error)
            result.failure = len(targets)
            return result

        for token, badge in targets:
            valid, reason = self.validate_token(token)
            if not valid:
                logger.warning("Skipping invalid push token (%s): %s", mask_token(token), reason)
                result.failure += 1
                result.invalid_tokens.append(token)
                continue

            outcome = self.send_to_token(token, title=title, body=body, data=data, badge=badge)
            if outcome == SendOutcome.SENT:
                result.success += 1
            else:
                result.failure += 1
                if outcome == SendOutcome.INVALID_TOKEN:
                    result.invalid_tokens.append(token)

        logger.info(
            "Push batch finished: success=%d failure=%d invalid=%d",
            result.success, result.failure, len(result.invalid_tokens),
        )
        return result

    def send_to_topic(self, topic: str, *, title: str, body: str, data: dict | None = None) -> bool:
        if not self.is_available:
            logger.warning("Push client unavailable, topic message not sent: %s", self._init_error)
            return False

        message = build_message(title=title, body=body, data=data, topic=topic)
        try:
            message_id = self._send(message)
        except (firebase_exceptions.FirebaseError, ValueError) as e:
            logger.error("Topic push failed (%s): %s", topic, e)
            return False

        logger.info("Topic push sent (%s): %s", topic, message_id)
        return True
