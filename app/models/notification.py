"""

notification.py

알림(Notification) 모델 정의 파일.

게시글 작성 / 좋아요 / 댓글 등 이벤트가 발생하면
수신자마다 한 행씩 생성되는 인앱 알림 레코드이다.

설계 원칙:
- (수신자, 이벤트) 쌍마다 한 행 → 여러 수신자가 한 행을 공유하지 않음
- 생성 이후에는 읽음 상태(is_read)만 변경
- 수신자 본인만 자신의 알림을 변경할 수 있음
- 읽지 않은 알림 수는 저장하지 않고 매번 계산 (푸시 뱃지 숫자)

"""

import datetime
from enum import Enum

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base, utcnow


class NotificationType(str, Enum):
    NOTICE = "notice"
    TESTIMONY = "testimony"
    LIKE = "like"
    COMMENT = "comment"
    REPLY = "reply"
    SYSTEM = "system"


class Notification(Base):
    __tablename__ = "notifications"
    __table_args__ = (
        Index("ix_notifications_user_id_is_read", "user_id", "is_read"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)

    title: Mapped[str] = mapped_column(String(100), nullable=False)
    message: Mapped[str] = mapped_column(String(255), nullable=False)
    type: Mapped[str] = mapped_column(String(20), nullable=False)
    related_id: Mapped[int | None] = mapped_column(Integer, nullable=True)

    sender_id: Mapped[int | None] = mapped_column(ForeignKey("users.id"), nullable=True)
    sender_name: Mapped[str | None] = mapped_column(String(50), nullable=True)

    is_read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)
