"""
events.py

일정(Event) API 모음.

- 조회는 로그인한 모든 회원
- 작성 / 수정 / 삭제는 지부장 이상(can_manage_training)

"""

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.deps import get_current_training_manager, get_current_user, get_db
from app.models.event import Event
from app.models.user import User
from app.schemas.event import EventCreateRequest, EventUpdateRequest
from app.services.patch import apply_patch

router = APIRouter(prefix="/events", tags=["events"])


def _serialize_event(event: Event) -> dict:
    return {
        "id": event.id,
        "title": event.title,
        "description": event.description,
        "category": event.category,
        "location": event.location,
        "start_date": event.start_date.isoformat(),
        "end_date": event.end_date.isoformat(),
        "start_time": event.start_time.strftime("%H:%M"),
        "end_time": event.end_time.strftime("%H:%M"),
        "created_by": event.created_by,
    }


def _get_event_or_404(db: Session, event_id: int) -> Event:
    event = db.get(Event, event_id)
    if not event:
        raise HTTPException(status_code=404, detail="Event not found")
    return event


@router.get("")
def list_events(
    category: str | None = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    stmt = select(Event)
    if category:
        stmt = stmt.where(Event.category == category)
    events = db.scalars(stmt.order_by(Event.start_date.asc(), Event.start_time.asc(), Event.id.asc())).all()
    return {"success": True, "events": [_serialize_event(e) for e in events]}


@router.get("/{event_id}")
def get_event(
    event_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return {"success": True, "event": _serialize_event(_get_event_or_404(db, event_id))}


@router.post("", status_code=status.HTTP_201_CREATED)
def create_event(
    data: EventCreateRequest,
    db: Session = Depends(get_db),
    manager: User = Depends(get_current_training_manager),
):
    try:
        event = Event(**data.model_dump(), created_by=manager.id)
        db.add(event)
        db.commit()
        db.refresh(event)
    except Exception as e:
        db.rollback()
        raise HTTPException(status_code=500, detail=f"Database error: {type(e).__name__}")

    return {"success": True, "event": _serialize_event(event)}


@router.put("/{event_id}")
def update_event(
    event_id: int,
    data: EventUpdateRequest,
    db: Session = Depends(get_db),
    manager: User = Depends(get_current_training_manager),
):
    event = _get_event_or_404(db, event_id)

    for name in data.model_fields_set:
        if getattr(data, name) is None and name != "location":
            raise HTTPException(status_code=400, detail=f"{name} cannot be null")

    start = data.start_date or event.start_date
    end = data.end_date or event.end_date
    if end < start:
        raise HTTPException(status_code=400, detail="end_date must not be before start_date")

    try:
        changed = apply_patch(event, data)
        db.commit()
        db.refresh(event)
    except Exception as e:
        db.rollback()
        raise HTTPException(status_code=500, detail=f"Database error: {type(e).__name__}")

    return {"success": True, "updated_fields": changed, "event": _serialize_event(event)}


@router.delete("/{event_id}")
def delete_event(
    event_id: int,
    db: Session = Depends(get_db),
    manager: User = Depends(get_current_training_manager),
):
    event = _get_event_or_404(db, event_id)
    try:
        db.delete(event)
        db.commit()
    except Exception as e:
        db.rollback()
        raise HTTPException(status_code=500, detail=f"Database error: {type(e).__name__}")

    return {"success": True}
