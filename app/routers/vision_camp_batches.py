"""
vision_camp_batches.py

비전캠프 기수 목록 API (가입 / 프로필 화면 선택지).

- 맨 앞에는 항상 "미수료"(batch_number=0)
- 활성 기수는 최신 기수부터
- 등록된 기수가 없거나 조회에 실패하면 30기 ~ 1기 기본 목록으로 응답

"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.deps import get_db
from app.models.academic import VisionCampBatch

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/vision-camp-batches", tags=["vision-camp-batches"])

NOT_COMPLETED = {"batch_number": 0, "display_name": "미수료", "is_active": True}
DEFAULT_BATCH_COUNT = 30


def _batch(number: int) -> dict:
    return {"batch_number": number, "display_name": f"{number}기", "is_active": True}


def default_batches() -> list[dict]:
    return [_batch(n) for n in range(DEFAULT_BATCH_COUNT, 0, -1)]


@router.get("")
def list_batches(db: Session = Depends(get_db)):
    try:
        numbers = db.scalars(
            select(VisionCampBatch.batch_number)
            .where(VisionCampBatch.is_active.is_(True))
            .order_by(VisionCampBatch.batch_number.desc())
        ).all()
    except SQLAlchemyError:
        logger.exception("Failed to load vision camp batches, using defaults")
        numbers = []

    batches = [_batch(n) for n in numbers] if numbers else default_batches()
    return {"success": True, "data": [NOT_COMPLETED, *batches]}
