"""Player-matching listings: players post what partners they want, others respond.

Only the listing owner sees the responses and moves them between
PENDING, ACCEPTED and DECLINED.
"""
import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from app.models.listings import PlayerListing, PlayerResponse, ResponseStatus
from app.models.skill_levels import SkillLevel
from app.models.users import User
from app.schemas.listings import ListingCreate
from app.services.errors import ConflictError, ForbiddenError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)


def _band_overlaps(listing: PlayerListing, min_skill: Optional[SkillLevel], max_skill: Optional[SkillLevel]) -> bool:
    # Unset or unrecognized bounds on the listing are open-ended
    listing_min = SkillLevel.parse(listing.min_skill) or SkillLevel.lowest()
    listing_max = SkillLevel.parse(listing.max_skill) or SkillLevel.highest()
    if min_skill is not None and listing_max < min_skill:
        return False
    if max_skill is not None and listing_min > max_skill:
        return False
    return True


def create_listing(db: Session, payload: ListingCreate, *, owner: User) -> PlayerListing:
    listing = PlayerListing(
        user_id=owner.id,
        title=payload.title,
        description=payload.description,
        time_slot=payload.time_slot,
        min_skill=payload.min_skill.value if payload.min_skill else None,
        max_skill=payload.max_skill.value if payload.max_skill else None,
    )
    db.add(listing)
    db.commit()
    db.refresh(listing)
    logger.info("User %s posted listing %s", owner.id, listing.id)
    return listing


def browse_listings(
    db: Session,
    viewer: User,
    *,
    min_skill: Optional[SkillLevel] = None,
    max_skill: Optional[SkillLevel] = None,
) -> list[tuple[PlayerListing, Optional[PlayerResponse]]]:
    """Active listings of other players, newest first, with the viewer's own response."""
    listings = db.scalars(
        select(PlayerListing)
        .where(PlayerListing.active.is_(True), PlayerListing.user_id != viewer.id)
        .options(selectinload(PlayerListing.user), selectinload(PlayerListing.responses))
        .order_by(PlayerListing.created_at.desc(), PlayerListing.id.desc())
    )
    return [
        (listing, next((r for r in listing.responses if r.user_id == viewer.id), None))
        for listing in listings
        if _band_overlaps(listing, min_skill, max_skill)
    ]


def my_listings(db: Session, owner: User) -> list[PlayerListing]:
    return list(
        db.scalars(
            select(PlayerListing)
            .where(PlayerListing.user_id == owner.id)
            .options(selectinload(PlayerListing.responses))
            .order_by(PlayerListing.created_at.desc(), PlayerListing.id.desc())
        )
    )


def _get_listing(db: Session, listing_id: int) -> PlayerListing:
    listing = db.get(PlayerListing, listing_id)
    if listing is None:
        raise NotFoundError("Listing not found", reason="listing_not_found")
    return listing


def _owned_listing(db: Session, listing_id: int, owner: User) -> PlayerListing:
    listing = _get_listing(db, listing_id)
    if listing.user_id != owner.id:
        raise ForbiddenError("Only the listing owner can manage responses", reason="not_listing_owner")
    return listing


def respond_to_listing(db: Session, listing_id: int, user: User, message: Optional[str]) -> PlayerResponse:
    listing = _get_listing(db, listing_id)
    if listing.user_id == user.id:
        raise ValidationError("You cannot respond to your own listing", reason="own_listing")
    if not listing.active:
        raise ConflictError("This listing is closed", reason="listing_closed")

    existing = db.scalar(
        select(PlayerResponse).where(PlayerResponse.listing_id == listing_id, PlayerResponse.user_id == user.id)
    )
    if existing:
        raise ConflictError("You have already responded to this listing", reason="already_responded")

    response = PlayerResponse(listing_id=listing_id, user_id=user.id, message=message)
    db.add(response)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise ConflictError("You have already responded to this listing", reason="already_responded") from exc
    db.refresh(response)
    logger.info("User %s responded to listing %s", user.id, listing_id)
    return response


def list_responses(db: Session, listing_id: int, owner: User) -> list[PlayerResponse]:
    _owned_listing(db, listing_id, owner)
    return list(
        db.scalars(
            select(PlayerResponse)
            .where(PlayerResponse.listing_id == listing_id)
            .options(selectinload(PlayerResponse.user))
            .order_by(PlayerResponse.created_at.desc(), PlayerResponse.id.desc())
        )
    )


def set_response_status(
    db: Session, listing_id: int, response_id: int, owner: User, status: ResponseStatus
) -> PlayerResponse:
    _owned_listing(db, listing_id, owner)
    response = db.get(PlayerResponse, response_id)
    if response is None or response.listing_id != listing_id:
        raise NotFoundError("Response not found", reason="response_not_found")

    response.status = status.value
    db.commit()
    db.refresh(response)
    logger.info("Listing %s response %s marked %s", listing_id, response_id, status.value)
    return response
