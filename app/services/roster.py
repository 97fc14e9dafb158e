from sqlalchemy import func, select
from sqlalchemy.orm import Session

from app.models.events import Event
from app.models.membership import Participant, WaitlistEntry


def participant_ids(db: Session, event_id: int) -> set[int]:
    return set(db.scalars(select(Participant.user_id).where(Participant.event_id == event_id)))


def waitlist_ids(db: Session, event_id: int) -> set[int]:
    return set(db.scalars(select(WaitlistEntry.user_id).where(WaitlistEntry.event_id == event_id)))


def count_participants(db: Session, event_id: int) -> int:
    return int(
        db.scalar(select(func.count()).select_from(Participant).where(Participant.event_id == event_id)) or 0
    )


def waitlist_queue(db: Session, event_id: int) -> list[WaitlistEntry]:
    """Waitlist entries in promotion order."""
    return list(
        db.scalars(
            select(WaitlistEntry)
            .where(WaitlistEntry.event_id == event_id)
            .order_by(WaitlistEntry.joined_at, WaitlistEntry.id)
        )
    )


def sync_player_count(db: Session, event: Event) -> int:
    """Set ``event.current_players`` from the live participant set."""
    db.flush()
    event.current_players = count_participants(db, event.id)
    db.flush()
    return event.current_players
