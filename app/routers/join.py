"""
join.py

회원 가입 API.

- 전화번호 중복 확인
- 회원 가입 (전화번호는 숫자만 저장)

가입 직후에는 할당된 권한이 없으므로 기본 권한(리더)으로 취급된다.

"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.deps import get_db
from app.core.security import get_password_hash, normalize_phone
from app.models.user import User
from app.schemas.auth import JoinRequest
from app.services.users import get_or_create_region_group, get_user_by_phone

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/join", tags=["join"])


@router.get("/check-phone")
def check_phone(phone: str = Query(..., min_length=1), db: Session = Depends(get_db)):
    if not normalize_phone(phone):
        raise HTTPException(status_code=400, detail="Invalid phone number")
    exists = get_user_by_phone(db, phone) is not None
    return {"success": True, "available": not exists}


@router.post("", status_code=status.HTTP_201_CREATED)
def join(data: JoinRequest, db: Session = Depends(get_db)):
    phone = normalize_phone(data.phone)
    if len(phone) < 9:
        raise HTTPException(status_code=400, detail="Invalid phone number")

    if get_user_by_phone(db, phone):
        raise HTTPException(status_code=400, detail="Phone already registered")

    try:
        region_group_id = None
        if data.region:
            region_group_id = get_or_create_region_group(db, data.region, data.group_number).id

        user = User(
            phone=phone,
            password_hash=get_password_hash(data.password),
            name=data.name,
            email=data.email,
            birthday=data.birthday,
            gender=data.gender,
            school=data.school,
            major=data.major,
            student_id=data.student_id,
            grade=data.grade,
            semester=data.semester,
            region_group_id=region_group_id,
            vision_camp_batch=data.vision_camp_batch,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=400, detail="Phone already registered")
    except Exception as e:
        db.rollback()
        raise HTTPException(status_code=500, detail=f"Database error: {type(e).__name__}")

    logger.info("User joined: id=%s", user.id)
    return {"success": True, "id": user.id}
