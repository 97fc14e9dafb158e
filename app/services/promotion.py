import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.models.events import Event
from app.models.membership import Participant, WaitlistEntry
from app.services.roster import count_participants, sync_player_count

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PromotionNotice:
    event_id: int
    user_id: int
    event_title: str


def promote_next(db: Session, event: Event) -> Optional[Participant]:
    """Move the earliest waitlisted user into the event.

    Must run inside the caller's transaction, after the slot was freed.
    Returns None when the waitlist is empty or the event is still full.
    """
    if count_participants(db, event.id) >= event.max_players:
        return None

    entry = db.scalar(
        select(WaitlistEntry)
        .where(WaitlistEntry.event_id == event.id)
        .order_by(WaitlistEntry.joined_at, WaitlistEntry.id)
        .limit(1)
        .with_for_update()
    )
    if entry is None:
        return None

    user_id = entry.user_id
    db.delete(entry)
    db.flush()

    participant = Participant(user_id=user_id, event_id=event.id)
    db.add(participant)
    sync_player_count(db, event)

    logger.info("Promoted user %s from waitlist of event %s", user_id, event.id)
    return participant
