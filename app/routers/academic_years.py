"""
academic_years.py

학번(Academic Year) API.

- 조회 : 로그인 불필요 (가입 화면에서 사용), 활성 학번만 최신순
- 추가 : 마스터 권한, year_code 중복 시 400

"""

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.deps import get_current_master, get_db
from app.models.academic import AcademicYear
from app.models.user import User
from app.schemas.academic import AcademicYearCreateRequest, AcademicYearResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/academic-years", tags=["academic-years"])


@router.get("")
def list_academic_years(db: Session = Depends(get_db)):
    years = db.scalars(
        select(AcademicYear)
        .where(AcademicYear.is_active.is_(True))
        .order_by(AcademicYear.year_code.desc())
    ).all()
    return {
        "success": True,
        "data": [AcademicYearResponse.model_validate(y).model_dump() for y in years],
    }


@router.post("", status_code=status.HTTP_201_CREATED)
def create_academic_year(
    data: AcademicYearCreateRequest,
    db: Session = Depends(get_db),
    master: User = Depends(get_current_master),
):
    exists = db.scalar(select(AcademicYear.id).where(AcademicYear.year_code == data.year_code))
    if exists:
        raise HTTPException(status_code=400, detail="Academic year already exists")

    try:
        year = AcademicYear(
            year_code=data.year_code,
            display_name=data.display_name,
            full_year=data.full_year,
            is_active=True,
        )
        db.add(year)
        db.commit()
        db.refresh(year)
    except Exception as e:
        db.rollback()
        raise HTTPException(status_code=500, detail=f"Database error: {type(e).__name__}")

    logger.info("Academic year %s added by %s", year.year_code, master.id)
    return {"success": True, "data": AcademicYearResponse.model_validate(year).model_dump()}
