"""
user.py

사용자(User) 및 지역/조(RegionGroup) 모델 정의 파일.

이 파일은 캠퍼스 사역 회원의 기본 정보와
소속(지역/조), 인증 관련 정보(리프레시 토큰), 푸시 토큰을 관리한다.

모든 인증, 권한, 게시글, 알림 기능의 기준이 되는 핵심 모델이다.

"""

import datetime

from sqlalchemy import Date, DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base, utcnow


"""
지역 / 조(RegionGroup) 모델

- region       : 지부(지역) 이름 (예: 서울, 부산)
- group_number : 지역 내 조 번호

"""

class RegionGroup(Base):
    __tablename__ = "region_groups"
    __table_args__ = (
        UniqueConstraint("region", "group_number", name="uq_region_groups_region_group_number"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    region: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    group_number: Mapped[int] = mapped_column(Integer, nullable=False)


"""
사용자(User) 모델

- phone 은 로그인 키이며 숫자만 저장 (하이픈 제거 후 비교)
- authority 는 단일 권한 시절의 레거시 컬럼
  → 표시용으로만 기록하며, 권한 판단은 user_authorities 기준
- vision_camp_batch 는 비전캠프 수료 기수 표시값 (예: "12기", 미수료)
- fcm_token 은 푸시 알림 대상 여부를 결정 (NULL 이면 제외)
- refresh_token / refresh_token_expires_at 으로 토큰 재발급 관리
- 회원 정보는 하드 삭제하지 않음

"""

class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    phone: Mapped[str] = mapped_column(String(20), unique=True, index=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)

    name: Mapped[str] = mapped_column(String(50), nullable=False)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    birthday: Mapped[datetime.date | None] = mapped_column(Date, nullable=True)
    gender: Mapped[str | None] = mapped_column(String(10), nullable=True)

    school: Mapped[str | None] = mapped_column(String(100), nullable=True)
    major: Mapped[str | None] = mapped_column(String(100), nullable=True)
    student_id: Mapped[str | None] = mapped_column(String(20), nullable=True)
    grade: Mapped[int | None] = mapped_column(Integer, nullable=True)
    semester: Mapped[int | None] = mapped_column(Integer, nullable=True)

    region_group_id: Mapped[int | None] = mapped_column(ForeignKey("region_groups.id"), nullable=True, index=True)
    vision_camp_batch: Mapped[str | None] = mapped_column(String(20), nullable=True)

    authority: Mapped[str | None] = mapped_column(String(50), nullable=True)

    fcm_token: Mapped[str | None] = mapped_column(String(512), nullable=True)

    refresh_token: Mapped[str | None] = mapped_column(String(64), unique=True, nullable=True)
    refresh_token_expires_at: Mapped[datetime.datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    created_at: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )
