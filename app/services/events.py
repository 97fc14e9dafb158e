from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session, selectinload

from app.models.courts import Court
from app.models.events import Event
from app.models.membership import Participant, WaitlistEntry
from app.models.users import User
from app.schemas.events import EventCreate
from app.services.errors import NotFoundError


def create_event(db: Session, payload: EventCreate, *, created_by: User) -> Event:
    courts = list(db.scalars(select(Court).where(Court.id.in_(payload.court_ids))))
    missing = set(payload.court_ids) - {court.id for court in courts}
    if missing:
        raise NotFoundError(f"Unknown court ids: {sorted(missing)}", reason="court_not_found")

    event = Event(
        title=payload.title,
        event_type=payload.event_type.value,
        start=payload.start,
        end=payload.end,
        max_players=payload.max_players,
        current_players=0,
        min_skill=payload.min_skill.value if payload.min_skill else None,
        max_skill=payload.max_skill.value if payload.max_skill else None,
        notes=payload.notes,
        is_bookable=True,
        created_by_id=created_by.id,
        courts=courts,
    )
    db.add(event)
    db.commit()
    db.refresh(event)
    return event


def list_events(db: Session) -> list[Event]:
    return list(
        db.scalars(select(Event).options(selectinload(Event.courts)).order_by(Event.start, Event.id))
    )


def get_event_detail(db: Session, event_id: int) -> Optional[Event]:
    return db.scalar(
        select(Event)
        .where(Event.id == event_id)
        .options(
            selectinload(Event.courts),
            selectinload(Event.participants).selectinload(Participant.user),
            selectinload(Event.waitlist).selectinload(WaitlistEntry.user),
        )
    )


def get_event_stats(db: Session, event_id: int) -> dict:
    event = db.get(Event, event_id)
    if not event:
        return {}

    waitlist_count = db.scalar(
        select(func.count(WaitlistEntry.id)).where(WaitlistEntry.event_id == event_id)
    )

    return {
        "event_id": event.id,
        "max_players": event.max_players,
        "current_players": event.current_players,
        "open_slots": max(event.max_players - event.current_players, 0),
        "waitlist_count": int(waitlist_count or 0),
    }


def get_overall_report(db: Session) -> dict:
    """Return aggregated totals across all events."""
    total_capacity = db.scalar(select(func.sum(Event.max_players)))
    total_participants = db.scalar(select(func.count()).select_from(Participant))
    total_waitlisted = db.scalar(select(func.count(WaitlistEntry.id)))

    return {
        "total_events": int(db.scalar(select(func.count(Event.id))) or 0),
        "total_capacity": int(total_capacity or 0),
        "total_participants": int(total_participants or 0),
        "total_waitlisted": int(total_waitlisted or 0),
    }
