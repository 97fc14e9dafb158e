from typing import Optional

import redis
from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from app.core.auth import require_user
from app.core.redis_config import get_redis_client
from app.database.db import get_db
from app.models.membership import Participant
from app.models.users import User
from app.schemas.membership import EligibilityOut, LeaveOut, ParticipantOut, WaitlistEntryOut
from app.services.errors import ServiceError
from app.services.membership import MembershipLedger, Notifier
from app.tasks import enqueue_promotion_notice

router = APIRouter(prefix="/event", tags=["membership"])


def get_notifier() -> Optional[Notifier]:
    return enqueue_promotion_notice


def get_ledger(
    db: Session = Depends(get_db),
    lock_client: redis.Redis = Depends(get_redis_client),
    notifier: Optional[Notifier] = Depends(get_notifier),
) -> MembershipLedger:
    return MembershipLedger(db, lock_client=lock_client, notifier=notifier)


def _http_error(exc: ServiceError) -> HTTPException:
    return HTTPException(status_code=exc.status_code, detail=exc.to_detail())


@router.get("/{event_id}/eligibility", response_model=EligibilityOut)
def eligibility(
    event_id: int,
    waitlist: bool = False,
    user: User = Depends(require_user),
    ledger: MembershipLedger = Depends(get_ledger),
):
    try:
        result = ledger.check(event_id, user.id, waitlist=waitlist)
    except ServiceError as e:
        raise _http_error(e)
    return EligibilityOut(decision=result.decision.value, reason=result.reason, message=result.message)


@router.post(
    "/{event_id}/join",
    response_model=ParticipantOut,
    responses={status.HTTP_202_ACCEPTED: {"model": WaitlistEntryOut, "description": "Event full, caller queued"}},
)
def join_event(
    event_id: int,
    auto_waitlist: bool = Query(False, description="Queue the caller when the event is full"),
    user: User = Depends(require_user),
    ledger: MembershipLedger = Depends(get_ledger),
):
    try:
        if not auto_waitlist:
            return ledger.join(event_id, user.id)
        entry = ledger.join_or_waitlist(event_id, user.id)
    except ServiceError as e:
        raise _http_error(e)

    if isinstance(entry, Participant):
        return entry
    return JSONResponse(
        status_code=status.HTTP_202_ACCEPTED,
        content=jsonable_encoder(WaitlistEntryOut.model_validate(entry)),
    )


def _leave(event_id: int, user: User, ledger: MembershipLedger) -> LeaveOut:
    try:
        result = ledger.leave(event_id, user.id)
    except ServiceError as e:
        raise _http_error(e)
    promoted = ParticipantOut.model_validate(result.promoted) if result.promoted else None
    return LeaveOut(message="Successfully left event", promoted=promoted)


@router.post("/{event_id}/leave", response_model=LeaveOut)
def leave_event(
    event_id: int,
    user: User = Depends(require_user),
    ledger: MembershipLedger = Depends(get_ledger),
):
    return _leave(event_id, user, ledger)


@router.delete("/{event_id}/join", response_model=LeaveOut)
def cancel_join(
    event_id: int,
    user: User = Depends(require_user),
    ledger: MembershipLedger = Depends(get_ledger),
):
    return _leave(event_id, user, ledger)


@router.get("/{event_id}/waitlist", response_model=list[WaitlistEntryOut])
def list_waitlist(event_id: int, ledger: MembershipLedger = Depends(get_ledger)):
    try:
        return ledger.waitlist(event_id)
    except ServiceError as e:
        raise _http_error(e)


def _join_waitlist(event_id: int, user: User, ledger: MembershipLedger):
    try:
        return ledger.join_waitlist(event_id, user.id)
    except ServiceError as e:
        raise _http_error(e)


@router.post("/{event_id}/waitlist", response_model=WaitlistEntryOut)
def add_to_waitlist(
    event_id: int,
    user: User = Depends(require_user),
    ledger: MembershipLedger = Depends(get_ledger),
):
    return _join_waitlist(event_id, user, ledger)


@router.post("/{event_id}/waitlist/join", response_model=WaitlistEntryOut)
def join_waitlist(
    event_id: int,
    user: User = Depends(require_user),
    ledger: MembershipLedger = Depends(get_ledger),
):
    return _join_waitlist(event_id, user, ledger)


def _leave_waitlist(event_id: int, user: User, ledger: MembershipLedger) -> dict:
    try:
        ledger.leave_waitlist(event_id, user.id)
    except ServiceError as e:
        raise _http_error(e)
    return {"message": "Successfully left waitlist"}


@router.post("/{event_id}/waitlist/leave")
def leave_waitlist(
    event_id: int,
    user: User = Depends(require_user),
    ledger: MembershipLedger = Depends(get_ledger),
):
    return _leave_waitlist(event_id, user, ledger)


@router.delete("/{event_id}/waitlist")
def remove_from_waitlist(
    event_id: int,
    user: User = Depends(require_user),
    ledger: MembershipLedger = Depends(get_ledger),
):
    return _leave_waitlist(event_id, user, ledger)
