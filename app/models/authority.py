"""
authority.py

권한(Authority) 관련 모델 정의 파일.

- AuthorityCategory : 권한 분류 (사역 / 조직)
- Authority         : 권한 이름 / 표시명 / 레벨 (낮을수록 상위 권한)
- UserAuthority     : 사용자-권한 연결 (겸직을 위해 여러 개 동시 활성 가능)

설계 원칙:
- 권한 제거는 행 삭제가 아닌 is_active=False 로 처리 (이력 보존)
- (user_id, authority_id) 쌍은 하나의 행만 존재 → 재부여 시 재활성화

"""

import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base, utcnow


class AuthorityCategory(Base):
    __tablename__ = "authority_categories"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    description: Mapped[str | None] = mapped_column(String(255), nullable=True)
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)


class Authority(Base):
    __tablename__ = "authorities"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    category_id: Mapped[int] = mapped_column(ForeignKey("authority_categories.id"), nullable=False, index=True)

    name: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    display_name: Mapped[str] = mapped_column(String(50), nullable=False)
    level: Mapped[int] = mapped_column(Integer, nullable=False)

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)


class UserAuthority(Base):
    __tablename__ = "user_authorities"
    __table_args__ = (
        UniqueConstraint("user_id", "authority_id", name="uq_user_authorities_user_authority"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    authority_id: Mapped[int] = mapped_column(ForeignKey("authorities.id"), nullable=False)

    assigned_at: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    assigned_by: Mapped[int | None] = mapped_column(ForeignKey("users.id"), nullable=True)

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, index=True)
