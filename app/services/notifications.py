"""
services/notifications.py

알림(Notification) 생성 및 푸시 전송 파이프라인.

게시글 작성 / 좋아요 / 댓글 같은 이벤트 하나를
수신자별 알림 레코드와 푸시 전송 목록으로 펼친다(fan-out).

처리 순서:
1. 푸시 클라이언트 사용 가능 여부 확인
   → 사용 불가이면 수신자를 조회하지 않고 경고만 반환 (알림 행 0개)
2. 수신자 선택 (전체 / 게시글 작성자)
3. 수신자마다 순서대로
   - FCM 토큰 형식 검증 (무효 → 해당 수신자는 알림 행도 만들지 않음)
   - 알림 행 INSERT
   - 읽지 않은 알림 수(뱃지) 계산 (방금 넣은 행 포함)
   - (토큰, 뱃지) 를 전송 목록에 추가
4. 한 번에 commit
5. 응답 이후 BackgroundTasks 에서 푸시 전송 + 무효 토큰 정리

설계 원칙:
- 게시글 생성은 알림보다 먼저 commit → 알림 실패가 게시글을 되돌리지 않음
- 알림 경로의 예외는 로그만 남기고 호출 측으로 올리지 않음
- 알림은 수신자 본인만 읽음 처리 가능

관련 파일:
- app.core.push                 : PushClient (FCM)
- app.models.notification       : Notification 모델
- app.routers.notifications     : 알림 조회 / 읽음 처리 API

"""

import logging
from dataclasses import dataclass, field
from typing import Callable

from fastapi import BackgroundTasks
from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.push import BatchResult, PushClient, mask_token, validate_push_token
from app.models.notification import Notification, NotificationType
from app.models.user import User

logger = logging.getLogger(__name__)


PUSH_UNAVAILABLE_WARNING = "푸시 알림 서비스를 사용할 수 없어 알림이 전송되지 않았습니다."

# mark-related-read 에서 함께 읽음 처리되는 알림 타입 묶음
RELATED_TYPE_FAMILIES = {
    "notice": (
        NotificationType.NOTICE.value,
        NotificationType.LIKE.value,
        NotificationType.COMMENT.value,
        NotificationType.REPLY.value,
    ),
    "testimony": (
        NotificationType.TESTIMONY.value,
        NotificationType.LIKE.value,
        NotificationType.COMMENT.value,
        NotificationType.REPLY.value,
    ),
}


def truncate(text: str, limit: int) -> str:
    if text is None:
        return ""
    if len(text) > limit:
        return text[:limit] + "..."
    return text


@dataclass
class NotificationMessage:
    type: str
    title: str
    body: str
    related_id: int | None = None
    sender_id: int | None = None
    sender_name: str | None = None
    data: dict = field(default_factory=dict)

    @property
    def feed_message(self) -> str:
        return truncate(self.body, settings.NOTIFICATION_MESSAGE_LIMIT)

    @property
    def push_body(self) -> str:
        return truncate(self.body, settings.PUSH_BODY_LIMIT)

    def push_data(self) -> dict:
        payload = {"type": self.type}
        if self.related_id is not None:
            payload["related_id"] = str(self.related_id)
        for key, value in self.data.items():
            if value is not None:
                payload[key] = str(value)
        return payload


@dataclass
class Recipient:
    user_id: int
    token: str | None


@dataclass
class PushDelivery:
    user_id: int
    token: str
    badge_count: int


@dataclass
class FanOutResult:
    deliveries: list[PushDelivery] = field(default_factory=list)
    created: int = 0
    skipped: int = 0
    warning: str | None = None


"""
수신자 선택

- broadcast_recipients : FCM 토큰이 있는 모든 사용자 (작성자 포함)
- owner_recipients     : 게시글/댓글 작성자 한 명 (본인 행동이면 아무도 없음)

"""

def broadcast_recipients(db: Session) -> list[Recipient]:
    rows = db.execute(
        select(User.id, User.fcm_token)
        .where(User.fcm_token.is_not(None), User.fcm_token != "")
        .order_by(User.id.asc())
    ).all()
    return [Recipient(user_id=row.id, token=row.fcm_token) for row in rows]


def owner_recipients(db: Session, owner_id: int | None, actor_id: int | None) -> list[Recipient]:
    if owner_id is None or owner_id == actor_id:
        return []
    owner = db.get(User, owner_id)
    if not owner:
        return []
    return [Recipient(user_id=owner.id, token=owner.fcm_token)]


def fan_out(
    db: Session,
    push: PushClient,
    select_recipients: Callable[[Session], list[Recipient]],
    message: NotificationMessage,
) -> FanOutResult:
    if not push.is_available:
        logger.warning(
            "Push unavailable, skipping %s notifications (related_id=%s): %s",
            message.type, message.related_id, push.init_error,
        )
        return FanOutResult(warning=PUSH_UNAVAILABLE_WARNING)

    result = FanOutResult()
    try:
        recipients = select_recipients(db)

        for recipient in recipients:
            valid, reason = push.validate_token(recipient.token)
            if not valid:
                logger.warning(
                    "Excluding user %s from %s notification (%s): %s",
                    recipient.user_id, message.type, mask_token(recipient.token), reason,
                )
                result.skipped += 1
                continue

            db.add(Notification(
                user_id=recipient.user_id,
                title=message.title,
                message=message.feed_message,
                type=message.type,
                related_id=message.related_id,
                sender_id=message.sender_id,
                sender_name=message.sender_name,
                is_read=False,
            ))
            db.flush()

            badge = count_unread(db, recipient.user_id)
            result.deliveries.append(
                PushDelivery(user_id=recipient.user_id, token=recipient.token, badge_count=badge)
            )
            result.created += 1

        db.commit()
    except Exception:
        logger.exception("Notification fan-out failed (type=%s, related_id=%s)", message.type, message.related_id)
        db.rollback()
        return FanOutResult()

    logger.info(
        "Notification fan-out: type=%s related_id=%s created=%d skipped=%d",
        message.type, message.related_id, result.created, result.skipped,
    )
    return result


def broadcast(db: Session, push: PushClient, message: NotificationMessage) -> FanOutResult:
    return fan_out(db, push, broadcast_recipients, message)


def notify_owner(db: Session, push: PushClient, *, owner_id: int | None, actor_id: int | None,
                 message: NotificationMessage) -> FanOutResult:
    return fan_out(db, push, lambda s: owner_recipients(s, owner_id, actor_id), message)


"""
푸시 전송 (백그라운드 작업)

- 응답을 보낸 뒤 실행되므로 요청 세션을 쓰지 않음
- 제공자가 무효 처리한 토큰은 session_factory 로 새 세션을 열어 users.fcm_token 을 비움
- 정리 실패는 로그만 남김

"""

def deliver(
    push: PushClient,
    deliveries: list[PushDelivery],
    message: NotificationMessage,
    session_factory: Callable[[], Session],
) -> BatchResult:
    try:
        result = push.send_to_tokens(
            [(d.token, d.badge_count) for d in deliveries],
            title=message.title,
            body=message.push_body,
            data=message.push_data(),
        )
    except Exception:
        logger.exception("Push delivery failed (type=%s, related_id=%s)", message.type, message.related_id)
        return BatchResult(failure=len(deliveries))

    if result.invalid_tokens:
        clear_invalid_tokens(session_factory, result.invalid_tokens)
    return result


def clear_invalid_tokens(session_factory: Callable[[], Session], tokens: list[str]) -> int:
    db = session_factory()
    try:
        cleared = db.execute(
            update(User).where(User.fcm_token.in_(tokens)).values(fcm_token=None)
        ).rowcount
        db.commit()
        logger.info("Cleared %d invalid push tokens", cleared)
        return cleared
    except Exception:
        logger.exception("Failed to clear invalid push tokens")
        db.rollback()
        return 0
    finally:
        db.close()


def schedule_delivery(
    background_tasks: BackgroundTasks,
    push: PushClient,
    result: FanOutResult,
    message: NotificationMessage,
    session_factory: Callable[[], Session],
) -> None:
    if not result.deliveries:
        return
    background_tasks.add_task(deliver, push, list(result.deliveries), message, session_factory)


"""
읽음 상태 관리

- 모든 함수는 user_id 조건을 포함 → 다른 사람의 알림은 변경 불가
- commit 은 호출 측(라우터)에서 수행

"""

def count_unread(db: Session, user_id: int) -> int:
    return db.scalar(
        select(func.count(Notification.id)).where(
            Notification.user_id == user_id,
            Notification.is_read.is_(False),
        )
    ) or 0


def list_notifications(db: Session, user_id: int, *, page: int, page_size: int) -> list[Notification]:
    return list(
        db.scalars(
            select(Notification)
            .where(Notification.user_id == user_id)
            .order_by(Notification.created_at.desc(), Notification.id.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
        ).all()
    )


def mark_read(db: Session, user_id: int, notification_id: int) -> bool:
    updated = db.execute(
        update(Notification)
        .where(
            Notification.id == notification_id,
            Notification.user_id == user_id,
            Notification.is_read.is_(False),
        )
        .values(is_read=True)
    ).rowcount
    return updated > 0


def mark_all_read(db: Session, user_id: int) -> int:
    return db.execute(
        update(Notification)
        .where(Notification.user_id == user_id, Notification.is_read.is_(False))
        .values(is_read=True)
    ).rowcount


def mark_related_read(db: Session, user_id: int, related_type: str, related_id: int) -> int:
    types = RELATED_TYPE_FAMILIES.get(related_type)
    if types is None:
        raise ValueError("type must be 'notice' or 'testimony'")

    return db.execute(
        update(Notification)
        .where(
            Notification.user_id == user_id,
            Notification.related_id == related_id,
            Notification.type.in_(types),
            Notification.is_read.is_(False),
        )
        .values(is_read=True)
    ).rowcount


def create_notification(
    db: Session,
    *,
    user_id: int,
    title: str,
    message: str,
    type: str = NotificationType.SYSTEM.value,
    related_id: int | None = None,
    sender_id: int | None = None,
    sender_name: str | None = None,
) -> Notification:
    notification = Notification(
        user_id=user_id,
        title=title,
        message=truncate(message, settings.NOTIFICATION_MESSAGE_LIMIT),
        type=type,
        related_id=related_id,
        sender_id=sender_id,
        sender_name=sender_name,
        is_read=False,
    )
    db.add(notification)
    db.flush()
    return notification


def format_notification(notification: Notification) -> dict:
    return {
        "id": notification.id,
        "title": notification.title,
        "message": notification.message,
        "type": notification.type,
        "created_at": notification.created_at.isoformat() if notification.created_at else None,
        "is_read": bool(notification.is_read),
        "related_id": notification.related_id,
        "sender_id": notification.sender_id,
        "sender_name": notification.sender_name,
    }


"""
FCM 토큰 등록 / 해제

- 등록 시 형식 검증 실패 → ValueError
- 해제는 항상 성공 (이미 비어 있어도 그대로)

"""

def register_push_token(db: Session, user: User, token: str) -> None:
    valid, reason = validate_push_token(token)
    if not valid:
        raise ValueError(f"Invalid push token: {reason}")
    user.fcm_token = token
    db.flush()


def clear_push_token(db: Session, user: User) -> None:
    user.fcm_token = None
    db.flush()
