# tests/helpers.py
import uuid

from firebase_admin import exceptions as firebase_exceptions
from firebase_admin import messaging
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.push import PushClient
from app.core.security import get_password_hash
from app.models.authority import Authority
from app.models.user import User
from app.services.authority import add_authority, resolve_authorities
from app.services.legacy_authority import sync_legacy_authority

DEFAULT_PASSWORD = "UserPassw0rd!"


def auth_header(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


def make_token(seed: str = "") -> str:
    """FCM 형식 검증을 통과하는 가짜 토큰 (152자)"""
    body = (seed or uuid.uuid4().hex).ljust(32, "x")
    return f"{body[:32]}:APA91b" + "A" * 114


def unique_phone() -> str:
    return "010" + str(uuid.uuid4().int)[:8]


def create_user(db: Session, *, name: str = "테스트유저", phone: str | None = None,
                password: str = DEFAULT_PASSWORD, fcm_token: str | None = None,
                region_group_id: int | None = None) -> User:
    user = User(
        phone=phone or unique_phone(),
        password_hash=get_password_hash(password),
        name=name,
        fcm_token=fcm_token,
        region_group_id=region_group_id,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def grant_authority(db: Session, user: User, name: str) -> None:
    authority = db.scalar(select(Authority).where(Authority.name == name))
    add_authority(db, user_id=user.id, authority_id=authority.id, assigned_by=None)
    sync_legacy_authority(user, resolve_authorities(db, user.id))
    db.commit()


def login(client, user: User, password: str = DEFAULT_PASSWORD) -> str:
    r = client.post("/auth/login", json={"phone": user.phone, "password": password})
    assert r.status_code == 200, r.text
    return r.json()["token"]


def setup_user(client, db: Session, *, name: str = "테스트유저", authority: str | None = None,
               fcm_token: str | None = None) -> dict:
    """
    사용자 생성 (+ 권한 부여) → 로그인까지 한 번에
    """
    user = create_user(db, name=name, fcm_token=fcm_token)
    if authority:
        grant_authority(db, user, authority)
    token = login(client, user)
    return {"user": user, "id": user.id, "token": token, "headers": auth_header(token)}


class FakePushClient(PushClient):
    """
    FCM 대신 메시지를 기록만 하는 푸시 클라이언트.

    - unregistered_tokens : UnregisteredError 로 응답할 토큰
    - failing_tokens      : 일시 오류(UnavailableError)로 응답할 토큰
    """

    def __init__(self, available: bool = True):
        super().__init__(
            object() if available else None,
            init_error=None if available else "Push notifications are disabled",
        )
        self.sent: list[messaging.Message] = []
        self.unregistered_tokens: set[str] = set()
        self.failing_tokens: set[str] = set()

    def _send(self, message: messaging.Message) -> str:
        if message.token in self.unregistered_tokens:
            raise messaging.UnregisteredError("Requested entity was not found.")
        if message.token in self.failing_tokens:
            raise firebase_exceptions.UnavailableError("Service unavailable")
        self.sent.append(message)
        return f"projects/test/messages/{len(self.sent)}"

    def sent_to(self, token: str) -> list[messaging.Message]:
        return [m for m in self.sent if m.token == token]
