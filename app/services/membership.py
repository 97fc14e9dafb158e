import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Callable, Iterator, Optional, Union

import redis
from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.core import config
from app.models.events import Event
from app.models.membership import Participant, WaitlistEntry
from app.models.users import User
from app.services.eligibility import (
    ALREADY_JOINED,
    ALREADY_WAITLISTED,
    Decision,
    Eligibility,
    SKILL_OUT_OF_RANGE,
    check_eligibility,
)
from app.services.errors import (
    ConflictError,
    EventFullError,
    InternalError,
    NotFoundError,
    ServiceError,
    ValidationError,
)
from app.services.promotion import PromotionNotice, promote_next
from app.services.roster import participant_ids, sync_player_count, waitlist_ids, waitlist_queue

logger = logging.getLogger(__name__)

Notifier = Callable[[PromotionNotice], None]


@dataclass
class LeaveResult:
    event_id: int
    user_id: int
    promoted: Optional[Participant] = None


def _raise_for(eligibility: Eligibility) -> None:
    if eligibility.reason == SKILL_OUT_OF_RANGE:
        raise ValidationError(eligibility.message, reason=eligibility.reason)
    if eligibility.reason in (ALREADY_JOINED, ALREADY_WAITLISTED):
        raise ConflictError(eligibility.message, reason=eligibility.reason)
    raise ConflictError(eligibility.message or "Membership request rejected", reason=eligibility.reason)


class MembershipLedger:
    """Participants and waitlist of events, mutated one event at a time.

    Every mutating call holds a Redis lock on ``event_lock:{event_id}`` and
    runs inside a single database transaction on ``db``. The event row is
    selected FOR UPDATE so databases with row locks also serialize writers
    that bypass Redis. Promotion notices are sent only after commit.
    """

    def __init__(
        self,
        db: Session,
        *,
        lock_client: redis.Redis,
        notifier: Optional[Notifier] = None,
        gate_waitlist_on_skill: bool = config.WAITLIST_SKILL_GATING,
        lock_timeout: float = config.EVENT_LOCK_TIMEOUT,
        blocking_timeout: float = config.EVENT_LOCK_BLOCKING_TIMEOUT,
    ):
        self.db = db
        self.lock_client = lock_client
        self.notifier = notifier
        self.gate_waitlist_on_skill = gate_waitlist_on_skill
        self.lock_timeout = lock_timeout
        self.blocking_timeout = blocking_timeout

    # -- transaction scope -------------------------------------------------

    @contextmanager
    def _event_lock(self, event_id: int) -> Iterator[None]:
        lock = self.lock_client.lock(
            f"event_lock:{event_id}",
            timeout=self.lock_timeout,
            blocking_timeout=self.blocking_timeout,
        )
        try:
            acquired = lock.acquire(blocking=True, blocking_timeout=self.blocking_timeout)
        except redis.exceptions.LockError as exc:
            raise ConflictError("Event is busy, please try again.", reason="event_busy") from exc
        except redis.exceptions.RedisError as exc:
            logger.exception("Could not reach lock server for event %s", event_id)
            raise InternalError("Lock server unavailable.") from exc
        if not acquired:
            logger.warning("Timed out waiting for lock on event %s", event_id)
            raise ConflictError("Event is busy, please try again.", reason="event_busy")

        try:
            yield
        finally:
            try:
                lock.release()
            except redis.exceptions.LockError:
                # Expired mid-transaction; the commit already happened or rolled back
                logger.warning("Lock on event %s expired before release", event_id)

    @contextmanager
    def atomic(self, event_id: int) -> Iterator[None]:
        """Serialize on ``event_id`` and commit or roll back as one unit."""
        with self._event_lock(event_id):
            try:
                yield
                self.db.commit()
            except ServiceError:
                self.db.rollback()
                raise
            except IntegrityError as exc:
                self.db.rollback()
                raise ConflictError(
                    "Membership changed concurrently, please retry.", reason="duplicate_membership"
                ) from exc
            except SQLAlchemyError as exc:
                self.db.rollback()
                logger.exception("Membership transaction on event %s failed", event_id)
                raise InternalError("Could not update event membership.") from exc
            except Exception:
                self.db.rollback()
                raise

    def _load_event(self, event_id: int) -> Event:
        event = self.db.scalar(select(Event).where(Event.id == event_id).with_for_update())
        if event is None:
            raise NotFoundError("Event not found", reason="event_not_found")
        return event

    def _load_user(self, user_id: int) -> User:
        user = self.db.get(User, user_id)
        if user is None:
            raise NotFoundError("User not found", reason="user_not_found")
        return user

    def _evaluate(self, event: Event, user: User, *, waitlist: bool) -> Eligibility:
        return check_eligibility(
            event,
            user,
            participant_ids(self.db, event.id),
            waitlist_ids(self.db, event.id),
            waitlist=waitlist,
            gate_waitlist_on_skill=self.gate_waitlist_on_skill,
        )

    # -- operations --------------------------------------------------------

    def check(self, event_id: int, user_id: int, *, waitlist: bool = False) -> Eligibility:
        """Preview the decision for ``user_id`` without changing anything."""
        event = self.db.get(Event, event_id)
        if event is None:
            raise NotFoundError("Event not found", reason="event_not_found")
        user = self._load_user(user_id)
        return self._evaluate(event, user, waitlist=waitlist)

    def join(self, event_id: int, user_id: int) -> Participant:
        with self.atomic(event_id):
            event = self._load_event(event_id)
            user = self._load_user(user_id)
            eligibility = self._evaluate(event, user, waitlist=False)

            if eligibility.decision is Decision.ALLOW_WAITLIST:
                raise EventFullError(eligibility.message, reason=eligibility.reason)
            if eligibility.decision is Decision.REJECT:
                _raise_for(eligibility)

            participant = Participant(user_id=user.id, event_id=event.id)
            self.db.add(participant)
            self.db.execute(
                delete(WaitlistEntry).where(
                    WaitlistEntry.event_id == event.id,
                    WaitlistEntry.user_id == user.id,
                )
            )
            sync_player_count(self.db, event)

        logger.info("User %s joined event %s", user_id, event_id)
        return participant

    def join_or_waitlist(self, event_id: int, user_id: int) -> Union[Participant, WaitlistEntry]:
        """Join, or queue the user when the event is full, in one unit.

        The capacity decision and the write share the lock, so a slot freed
        by a concurrent leave is never skipped over.
        """
        with self.atomic(event_id):
            event = self._load_event(event_id)
            user = self._load_user(user_id)
            eligibility = self._evaluate(event, user, waitlist=False)
            if eligibility.decision is Decision.REJECT:
                _raise_for(eligibility)

            if eligibility.decision is Decision.ALLOW_WAITLIST:
                record = WaitlistEntry(user_id=user.id, event_id=event.id)
                self.db.add(record)
                self.db.flush()
            else:
                record = Participant(user_id=user.id, event_id=event.id)
                self.db.add(record)
                sync_player_count(self.db, event)

        if isinstance(record, WaitlistEntry):
            logger.info("Event %s full, user %s joined its waitlist", event_id, user_id)
        else:
            logger.info("User %s joined event %s", user_id, event_id)
        return record

    def leave(self, event_id: int, user_id: int) -> LeaveResult:
        with self.atomic(event_id):
            event = self._load_event(event_id)
            participant = self.db.get(Participant, (user_id, event_id))
            if participant is None:
                raise NotFoundError("You are not a participant in this event", reason="not_participant")

            self.db.delete(participant)
            sync_player_count(self.db, event)
            promoted = promote_next(self.db, event)
            notice = (
                PromotionNotice(event_id=event.id, user_id=promoted.user_id, event_title=event.title)
                if promoted is not None
                else None
            )

        logger.info("User %s left event %s", user_id, event_id)
        if notice is not None:
            self._notify(notice)
        return LeaveResult(event_id=event_id, user_id=user_id, promoted=promoted)

    def join_waitlist(self, event_id: int, user_id: int) -> WaitlistEntry:
        with self.atomic(event_id):
            event = self._load_event(event_id)
            user = self._load_user(user_id)
            eligibility = self._evaluate(event, user, waitlist=True)
            if eligibility.decision is Decision.REJECT:
                _raise_for(eligibility)

            entry = WaitlistEntry(user_id=user.id, event_id=event.id)
            self.db.add(entry)
            self.db.flush()

        logger.info("User %s joined waitlist of event %s", user_id, event_id)
        return entry

    def leave_waitlist(self, event_id: int, user_id: int) -> None:
        with self.atomic(event_id):
            self._load_event(event_id)
            entry = self.db.scalar(
                select(WaitlistEntry).where(
                    WaitlistEntry.event_id == event_id,
                    WaitlistEntry.user_id == user_id,
                )
            )
            if entry is None:
                raise NotFoundError("You are not on the waitlist for this event", reason="not_waitlisted")
            self.db.delete(entry)

        logger.info("User %s left waitlist of event %s", user_id, event_id)

    def waitlist(self, event_id: int) -> list[WaitlistEntry]:
        if self.db.get(Event, event_id) is None:
            raise NotFoundError("Event not found", reason="event_not_found")
        return waitlist_queue(self.db, event_id)

    def reconcile(self, event_id: int) -> int:
        """Re-derive ``current_players`` for rows written outside the ledger."""
        with self.atomic(event_id):
            event = self._load_event(event_id)
            before = event.current_players
            count = sync_player_count(self.db, event)
        if before != count:
            logger.warning("Event %s player count drifted (%s -> %s)", event_id, before, count)
        return count

    def _notify(self, notice: PromotionNotice) -> None:
        if self.notifier is None:
            return
        try:
            self.notifier(notice)
        except Exception:
            # The promotion is committed; a lost notice must not fail the leave
            logger.exception("Failed to send promotion notice for event %s", notice.event_id)
