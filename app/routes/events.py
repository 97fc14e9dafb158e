from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from app.core.auth import require_manager
from app.database.db import get_db
from app.models.users import User
from app.schemas.events import EventCreate, EventDetailOut, EventOut, EventStatsOut
from app.services.errors import NotFoundError, ServiceError
from app.services.events import create_event as create_event_record
from app.services.events import get_event_detail, get_event_stats, list_events

router = APIRouter(prefix="/event", tags=["events"])


@router.post("", response_model=EventOut, status_code=status.HTTP_201_CREATED)
def create_event(
    payload: EventCreate,
    db: Session = Depends(get_db),
    user: User = Depends(require_manager),
):
    try:
        return create_event_record(db, payload, created_by=user)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())


@router.get("", response_model=list[EventOut])
def all_events(db: Session = Depends(get_db)):
    return list_events(db)


@router.get("/{event_id}", response_model=EventDetailOut)
def event_detail(event_id: int, db: Session = Depends(get_db)):
    event = get_event_detail(db, event_id)
    if not event:
        error = NotFoundError("Event not found", reason="event_not_found")
        raise HTTPException(status_code=error.status_code, detail=error.to_detail())
    return event


@router.get("/{event_id}/stats", response_model=EventStatsOut)
def event_stats(event_id: int, db: Session = Depends(get_db)):
    stats = get_event_stats(db, event_id)
    if not stats:
        error = NotFoundError("Event not found", reason="event_not_found")
        raise HTTPException(status_code=error.status_code, detail=error.to_detail())
    return stats
