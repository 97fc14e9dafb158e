"""
Test the membership ledger: join, leave, waitlist and promotion.
"""
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.models.events import Event
from app.models.membership import Participant, WaitlistEntry
from app.models.skill_levels import SkillLevel
from app.services.eligibility import Decision
from app.services.errors import (
    ConflictError,
    EventFullError,
    InternalError,
    NotFoundError,
    ValidationError,
)
from app.services.membership import MembershipLedger
from app.services.promotion import PromotionNotice

TIERS = list(SkillLevel)


def participant_set(db: Session, event_id: int) -> set[int]:
    return set(db.scalars(select(Participant.user_id).where(Participant.event_id == event_id)))


def waitlist_order(db: Session, event_id: int) -> list[int]:
    return list(
        db.scalars(
            select(WaitlistEntry.user_id)
            .where(WaitlistEntry.event_id == event_id)
            .order_by(WaitlistEntry.joined_at, WaitlistEntry.id)
        )
    )


def assert_invariants(db: Session, event_id: int):
    db.expire_all()
    event = db.get(Event, event_id)
    participants = participant_set(db, event_id)
    waitlisted = set(waitlist_order(db, event_id))
    assert event.current_players == len(participants)
    assert len(participants) <= event.max_players
    assert not participants & waitlisted


class TestJoin:
    def test_join_creates_participant(self, ledger: MembershipLedger, db_session: Session, make_user, make_event):
        event = make_event(max_players=4)
        user = make_user()

        participant = ledger.join(event.id, user.id)

        assert participant.user_id == user.id
        assert participant.event_id == event.id
        assert participant.joined_at is not None
        db_session.refresh(event)
        assert event.current_players == 1
        assert_invariants(db_session, event.id)

    def test_join_twice_conflicts(self, ledger: MembershipLedger, make_user, make_event):
        event = make_event()
        user = make_user()
        ledger.join(event.id, user.id)

        with pytest.raises(ConflictError) as exc_info:
            ledger.join(event.id, user.id)
        assert exc_info.value.reason == "already_joined"

    def test_join_full_event_raises_event_full(self, ledger: MembershipLedger, db_session: Session, make_user, make_event):
        event = make_event(max_players=1)
        ledger.join(event.id, make_user().id)

        with pytest.raises(EventFullError) as exc_info:
            ledger.join(event.id, make_user().id)
        assert exc_info.value.reason == "event_full"
        assert exc_info.value.status_code == 409
        assert_invariants(db_session, event.id)

    def test_join_unknown_event(self, ledger: MembershipLedger, make_user):
        with pytest.raises(NotFoundError) as exc_info:
            ledger.join(99999, make_user().id)
        assert exc_info.value.reason == "event_not_found"

    def test_join_unknown_user(self, ledger: MembershipLedger, make_event):
        with pytest.raises(NotFoundError) as exc_info:
            ledger.join(make_event().id, 99999)
        assert exc_info.value.reason == "user_not_found"

    def test_join_rejects_skill_outside_range(self, ledger: MembershipLedger, db_session: Session, make_user, make_event):
        event = make_event(min_skill=TIERS[8].value, max_skill=TIERS[12].value)
        user = make_user(skill_level=TIERS[5].value)

        with pytest.raises(ValidationError) as exc_info:
            ledger.join(event.id, user.id)
        assert exc_info.value.reason == "skill_out_of_range"
        assert participant_set(db_session, event.id) == set()

    def test_join_allows_skill_inside_range(self, ledger: MembershipLedger, make_user, make_event):
        event = make_event(min_skill=TIERS[8].value, max_skill=TIERS[12].value)
        user = make_user(skill_level=TIERS[10].value)
        assert ledger.join(event.id, user.id).user_id == user.id

    def test_join_allows_unrecognized_skill(self, ledger: MembershipLedger, make_user, make_event):
        event = make_event(min_skill=TIERS[8].value, max_skill=TIERS[12].value)
        user = make_user(skill_level="BEGINNER")
        assert ledger.join(event.id, user.id).user_id == user.id

    def test_waitlisted_user_cannot_join(self, ledger: MembershipLedger, make_user, make_event):
        event = make_event(max_players=2)
        user = make_user()
        ledger.join_waitlist(event.id, user.id)

        with pytest.raises(ConflictError) as exc_info:
            ledger.join(event.id, user.id)
        assert exc_info.value.reason == "already_waitlisted"

    def test_join_repairs_drifted_counter(self, ledger: MembershipLedger, db_session: Session, make_user, make_event):
        event = make_event(max_players=3)
        event.current_players = 3
        db_session.commit()

        ledger.join(event.id, make_user().id)

        assert_invariants(db_session, event.id)
        assert db_session.get(Event, event.id).current_players == 1


class TestLeave:
    def test_leave_removes_participant(self, ledger: MembershipLedger, db_session: Session, make_user, make_event):
        event = make_event()
        user = make_user()
        ledger.join(event.id, user.id)

        result = ledger.leave(event.id, user.id)

        assert result.promoted is None
        assert participant_set(db_session, event.id) == set()
        assert_invariants(db_session, event.id)

    def test_leave_twice_is_not_found(self, ledger: MembershipLedger, make_user, make_event):
        event = make_event()
        user = make_user()
        ledger.join(event.id, user.id)

        ledger.leave(event.id, user.id)
        with pytest.raises(NotFoundError) as exc_info:
            ledger.leave(event.id, user.id)
        assert exc_info.value.reason == "not_participant"

    def test_leave_promotes_earliest_waitlisted(
        self, ledger: MembershipLedger, db_session: Session, make_user, make_event, notifications
    ):
        event = make_event(max_players=1, title="Friday Night Doubles")
        holder = make_user()
        ledger.join(event.id, holder.id)

        base = datetime(2026, 1, 1, tzinfo=timezone.utc)
        queued = [make_user() for _ in range(3)]
        for offset, user in zip((2, 1, 3), queued):
            db_session.add(WaitlistEntry(user_id=user.id, event_id=event.id, joined_at=base + timedelta(minutes=offset)))
        db_session.commit()

        first = ledger.leave(event.id, holder.id)
        assert first.promoted.user_id == queued[1].id

        second = ledger.leave(event.id, queued[1].id)
        assert second.promoted.user_id == queued[0].id

        assert participant_set(db_session, event.id) == {queued[0].id}
        assert waitlist_order(db_session, event.id) == [queued[2].id]
        assert notifications == [
            PromotionNotice(event_id=event.id, user_id=queued[1].id, event_title="Friday Night Doubles"),
            PromotionNotice(event_id=event.id, user_id=queued[0].id, event_title="Friday Night Doubles"),
        ]
        assert_invariants(db_session, event.id)

    def test_promotion_ties_break_on_entry_id(self, ledger: MembershipLedger, db_session: Session, make_user, make_event):
        event = make_event(max_players=1)
        holder = make_user()
        ledger.join(event.id, holder.id)

        same_time = datetime(2026, 1, 1, tzinfo=timezone.utc)
        first, second = make_user(), make_user()
        db_session.add(WaitlistEntry(user_id=first.id, event_id=event.id, joined_at=same_time))
        db_session.commit()
        db_session.add(WaitlistEntry(user_id=second.id, event_id=event.id, joined_at=same_time))
        db_session.commit()

        assert ledger.leave(event.id, holder.id).promoted.user_id == first.id

    def test_leave_without_waitlist_does_not_notify(self, ledger: MembershipLedger, make_user, make_event, notifications):
        event = make_event()
        user = make_user()
        ledger.join(event.id, user.id)
        ledger.leave(event.id, user.id)
        assert notifications == []

    def test_failing_notifier_does_not_undo_leave(self, db_session: Session, fake_redis, make_user, make_event):
        def broken_notifier(notice):
            raise RuntimeError("broker down")

        ledger = MembershipLedger(db_session, lock_client=fake_redis, notifier=broken_notifier)
        event = make_event(max_players=1)
        holder, queued = make_user(), make_user()
        ledger.join(event.id, holder.id)
        ledger.join_waitlist(event.id, queued.id)

        result = ledger.leave(event.id, holder.id)

        assert result.promoted.user_id == queued.id
        assert participant_set(db_session, event.id) == {queued.id}

    def test_store_failure_rolls_back_leave(
        self, ledger: MembershipLedger, db_session: Session, fake_redis, make_user, make_event, monkeypatch
    ):
        event = make_event(max_players=1)
        holder, queued = make_user(), make_user()
        ledger.join(event.id, holder.id)
        ledger.join_waitlist(event.id, queued.id)

        def failing_promotion(db, event):
            raise SQLAlchemyError("disk I/O error")

        monkeypatch.setattr("app.services.membership.promote_next", failing_promotion)

        with pytest.raises(InternalError) as exc_info:
            ledger.leave(event.id, holder.id)
        assert exc_info.value.reason == "store_failure"

        assert participant_set(db_session, event.id) == {holder.id}
        assert waitlist_order(db_session, event.id) == [queued.id]
        assert_invariants(db_session, event.id)
        # Lock was released
        lock = fake_redis.lock(f"event_lock:{event.id}", timeout=1)
        assert lock.acquire(blocking=False) is True
        lock.release()


class TestWaitlist:
    def test_join_waitlist(self, ledger: MembershipLedger, db_session: Session, make_user, make_event):
        event = make_event(max_players=1)
        ledger.join(event.id, make_user().id)
        user = make_user()

        entry = ledger.join_waitlist(event.id, user.id)

        assert entry.id is not None
        assert entry.user_id == user.id
        assert waitlist_order(db_session, event.id) == [user.id]
        assert db_session.get(Event, event.id).current_players == 1

    def test_join_waitlist_twice_conflicts(self, ledger: MembershipLedger, make_user, make_event):
        event = make_event()
        user = make_user()
        ledger.join_waitlist(event.id, user.id)

        with pytest.raises(ConflictError) as exc_info:
            ledger.join_waitlist(event.id, user.id)
        assert exc_info.value.reason == "already_waitlisted"

    def test_participant_cannot_join_waitlist(self, ledger: MembershipLedger, make_user, make_event):
        event = make_event()
        user = make_user()
        ledger.join(event.id, user.id)

        with pytest.raises(ConflictError) as exc_info:
            ledger.join_waitlist(event.id, user.id)
        assert exc_info.value.reason == "already_joined"

    def test_waitlist_join_is_skill_gated(self, ledger: MembershipLedger, make_user, make_event):
        event = make_event(min_skill=TIERS[8].value)
        with pytest.raises(ValidationError):
            ledger.join_waitlist(event.id, make_user(skill_level=TIERS[3].value).id)

    def test_waitlist_join_without_skill_gating(self, db_session: Session, fake_redis, make_user, make_event):
        ledger = MembershipLedger(db_session, lock_client=fake_redis, gate_waitlist_on_skill=False)
        event = make_event(min_skill=TIERS[8].value)
        user = make_user(skill_level=TIERS[3].value)

        entry = ledger.join_waitlist(event.id, user.id)

        assert entry.user_id == user.id
        # Direct join stays gated
        with pytest.raises(ValidationError):
            ledger.join(event.id, make_user(skill_level=TIERS[3].value).id)

    def test_leave_waitlist(self, ledger: MembershipLedger, db_session: Session, make_user, make_event):
        event = make_event()
        user = make_user()
        ledger.join_waitlist(event.id, user.id)

        ledger.leave_waitlist(event.id, user.id)

        assert waitlist_order(db_session, event.id) == []
        with pytest.raises(NotFoundError) as exc_info:
            ledger.leave_waitlist(event.id, user.id)
        assert exc_info.value.reason == "not_waitlisted"

    def test_waitlist_listing_is_fifo(self, ledger: MembershipLedger, make_user, make_event):
        event = make_event(max_players=1)
        ledger.join(event.id, make_user().id)
        users = [make_user() for _ in range(3)]
        for user in users:
            ledger.join_waitlist(event.id, user.id)

        assert [entry.user_id for entry in ledger.waitlist(event.id)] == [u.id for u in users]

    def test_waitlist_of_unknown_event(self, ledger: MembershipLedger):
        with pytest.raises(NotFoundError):
            ledger.waitlist(99999)


class TestScenario:
    def test_two_slot_event_with_waitlist(self, ledger: MembershipLedger, db_session: Session, make_user, make_event):
        event = make_event(max_players=2)
        a, b, c = make_user("Alice"), make_user("Bob"), make_user("Cara")

        assert ledger.check(event.id, a.id).decision is Decision.ALLOW_JOIN
        ledger.join(event.id, a.id)
        assert db_session.get(Event, event.id).current_players == 1

        assert ledger.check(event.id, b.id).decision is Decision.ALLOW_JOIN
        ledger.join(event.id, b.id)
        db_session.expire_all()
        assert db_session.get(Event, event.id).current_players == 2

        assert ledger.check(event.id, c.id).decision is Decision.ALLOW_WAITLIST
        with pytest.raises(EventFullError):
            ledger.join(event.id, c.id)
        ledger.join_waitlist(event.id, c.id)
        assert waitlist_order(db_session, event.id) == [c.id]

        result = ledger.leave(event.id, a.id)

        assert result.promoted.user_id == c.id
        db_session.expire_all()
        assert db_session.get(Event, event.id).current_players == 2
        assert participant_set(db_session, event.id) == {b.id, c.id}
        assert waitlist_order(db_session, event.id) == []
        assert_invariants(db_session, event.id)


class TestReconcile:
    def test_reconcile_fixes_drift(self, ledger: MembershipLedger, db_session: Session, make_user, make_event):
        event = make_event(max_players=4)
        for user in (make_user(), make_user()):
            db_session.add(Participant(user_id=user.id, event_id=event.id))
        event.current_players = 0
        db_session.commit()

        assert ledger.reconcile(event.id) == 2
        db_session.expire_all()
        assert db_session.get(Event, event.id).current_players == 2

    def test_counter_matches_count_query(self, ledger: MembershipLedger, db_session: Session, make_user, make_event):
        event = make_event(max_players=3)
        users = [make_user() for _ in range(3)]
        for user in users:
            ledger.join(event.id, user.id)
        ledger.leave(event.id, users[0].id)

        count = db_session.scalar(
            select(func.count()).select_from(Participant).where(Participant.event_id == event.id)
        )
        db_session.expire_all()
        assert db_session.get(Event, event.id).current_players == count == 2


class TestJoinOrWaitlist:
    def test_open_event_joins(self, ledger: MembershipLedger, db_session: Session, make_user, make_event):
        event = make_event(max_players=2)
        user = make_user()

        record = ledger.join_or_waitlist(event.id, user.id)

        assert isinstance(record, Participant)
        assert participant_set(db_session, event.id) == {user.id}
        assert_invariants(db_session, event.id)

    def test_full_event_queues(self, ledger: MembershipLedger, db_session: Session, make_user, make_event):
        event = make_event(max_players=1)
        holder, late = make_user(), make_user()
        ledger.join(event.id, holder.id)

        record = ledger.join_or_waitlist(event.id, late.id)

        assert isinstance(record, WaitlistEntry)
        assert waitlist_order(db_session, event.id) == [late.id]
        assert participant_set(db_session, event.id) == {holder.id}

    def test_rejections_still_apply(self, ledger: MembershipLedger, make_user, make_event):
        event = make_event(max_players=1, min_skill=TIERS[8].value)
        member = make_user(skill_level=TIERS[10].value)
        ledger.join(event.id, member.id)

        with pytest.raises(ConflictError) as exc_info:
            ledger.join_or_waitlist(event.id, member.id)
        assert exc_info.value.reason == "already_joined"

        with pytest.raises(ValidationError):
            ledger.join_or_waitlist(event.id, make_user(skill_level=TIERS[2].value).id)

    def test_decision_and_write_share_one_lock(
        self, ledger: MembershipLedger, make_user, make_event, monkeypatch
    ):
        event = make_event(max_players=1)
        ledger.join(event.id, make_user().id)
        acquired = []
        original = ledger._event_lock

        def counting_lock(event_id):
            acquired.append(event_id)
            return original(event_id)

        monkeypatch.setattr(ledger, "_event_lock", counting_lock)

        ledger.join_or_waitlist(event.id, make_user().id)

        assert acquired == [event.id]
