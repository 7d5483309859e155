"""
trainings.py

훈련(Training) 기록 API.

주요 기능:
- 내 훈련 기록 저장 (같은 날짜 / 종류는 덮어쓰기)
- 같은 조(region_group) 회원들의 특정 날짜 훈련 기록 조회

권한 규칙:
- 자기 조의 기록은 로그인한 모든 회원이 조회
- 다른 조의 기록(region_group_id 지정)은 훈련 관리 권한(can_manage_training) 필요

type / date 쿼리가 없거나 잘못되면 422 가 아닌 400 으로 응답한다.

"""

import datetime

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.deps import get_current_authorities, get_current_user, get_db
from app.models.training import TrainingRecord, TrainingType
from app.models.user import RegionGroup, User
from app.schemas.training import TrainingRecordRequest
from app.services.authority import ResolvedAuthoritySet

router = APIRouter(prefix="/trainings", tags=["trainings"])

_TRAINING_TYPES = {t.value for t in TrainingType}


def _serialize_record(record: TrainingRecord, user_name: str | None = None) -> dict:
    return {
        "id": record.id,
        "user_id": record.user_id,
        "user_name": user_name,
        "type": record.type,
        "date": record.date.isoformat(),
        "completed": bool(record.completed),
        "content": record.content,
        "created_at": record.created_at.isoformat() if record.created_at else None,
        "updated_at": record.updated_at.isoformat() if record.updated_at else None,
    }


@router.post("")
def save_training(
    data: TrainingRecordRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    record = db.scalar(
        select(TrainingRecord).where(
            TrainingRecord.user_id == current_user.id,
            TrainingRecord.type == data.type.value,
            TrainingRecord.date == data.date,
        )
    )

    try:
        if record is None:
            record = TrainingRecord(user_id=current_user.id, type=data.type.value, date=data.date)
            db.add(record)
        record.completed = data.completed
        record.content = data.content
        db.commit()
        db.refresh(record)
    except Exception as e:
        db.rollback()
        raise HTTPException(status_code=500, detail=f"Database error: {type(e).__name__}")

    return {"success": True, "record": _serialize_record(record, current_user.name)}


"""
같은 조 훈련 기록 조회 API

- type : meditation / reading / prayer / soc / sevenup
- date : YYYY-MM-DD
- region_group_id 를 생략하면 내 조 기준
- 조가 없는 회원은 빈 목록

"""

@router.get("/region")
def region_trainings(
    type: str | None = None,
    date: str | None = None,
    region_group_id: int | None = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    authorities: ResolvedAuthoritySet = Depends(get_current_authorities),
):
    if not type or type not in _TRAINING_TYPES:
        raise HTTPException(status_code=400, detail="type must be one of: " + ", ".join(sorted(_TRAINING_TYPES)))
    if not date:
        raise HTTPException(status_code=400, detail="date is required")
    try:
        day = datetime.date.fromisoformat(date)
    except ValueError:
        raise HTTPException(status_code=400, detail="date must be YYYY-MM-DD")

    group_id = current_user.region_group_id
    if region_group_id is not None and region_group_id != group_id:
        if not authorities.can_manage_training():
            raise HTTPException(status_code=403, detail="Not allowed to view another group's trainings")
        if not db.get(RegionGroup, region_group_id):
            raise HTTPException(status_code=404, detail="Region group not found")
        group_id = region_group_id

    if group_id is None:
        return {"success": True, "data": []}

    rows = db.execute(
        select(TrainingRecord, User.name)
        .join(User, User.id == TrainingRecord.user_id)
        .where(
            User.region_group_id == group_id,
            TrainingRecord.type == type,
            TrainingRecord.date == day,
        )
        .order_by(User.name.asc(), TrainingRecord.id.asc())
    ).all()

    return {"success": True, "data": [_serialize_record(record, name) for record, name in rows]}
