"""
training.py

훈련(Training) 기록 모델.

회원이 하루 단위로 남기는 훈련 체크 기록이다.
(묵상 / 성경 읽기 / 기도 / SOC / 세븐업)

- 한 회원은 같은 날짜, 같은 종류의 기록을 하나만 가짐
- 같은 조(region_group) 회원끼리 서로의 기록을 조회

"""

import datetime
from enum import Enum

from sqlalchemy import Boolean, Date, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base, utcnow


class TrainingType(str, Enum):
    MEDITATION = "meditation"
    READING = "reading"
    PRAYER = "prayer"
    SOC = "soc"
    SEVENUP = "sevenup"


class TrainingRecord(Base):
    __tablename__ = "training_records"
    __table_args__ = (
        UniqueConstraint("user_id", "type", "date", name="uq_training_records_user_type_date"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    type: Mapped[str] = mapped_column(String(20), nullable=False)
    date: Mapped[datetime.date] = mapped_column(Date, nullable=False, index=True)

    completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    content: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )
