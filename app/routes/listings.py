from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from app.core.auth import require_user
from app.database.db import get_db
from app.models.skill_levels import SkillLevel
from app.models.users import User
from app.schemas.listings import (
    BrowseListingOut,
    ListingCreate,
    ListingOut,
    MyListingOut,
    RespondRequest,
    ResponseDetailOut,
    ResponseOut,
    ResponseStatusUpdate,
)
from app.services.errors import ServiceError
from app.services.listings import (
    browse_listings,
    create_listing,
    list_responses,
    my_listings,
    respond_to_listing,
    set_response_status,
)

router = APIRouter(prefix="/players/listings", tags=["listings"])


@router.get("", response_model=list[BrowseListingOut])
def browse(
    min_skill: Optional[SkillLevel] = None,
    max_skill: Optional[SkillLevel] = None,
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
):
    """Other players' active listings whose skill band overlaps the filter."""
    results = browse_listings(db, user, min_skill=min_skill, max_skill=max_skill)
    return [
        BrowseListingOut.model_validate(listing).model_copy(
            update={"my_response": ResponseOut.model_validate(mine) if mine else None}
        )
        for listing, mine in results
    ]


@router.post("", response_model=ListingOut, status_code=status.HTTP_201_CREATED)
def post_listing(payload: ListingCreate, user: User = Depends(require_user), db: Session = Depends(get_db)):
    return create_listing(db, payload, owner=user)


@router.get("/my", response_model=list[MyListingOut])
def own_listings(user: User = Depends(require_user), db: Session = Depends(get_db)):
    return my_listings(db, user)


@router.post("/{listing_id}/respond", response_model=ResponseOut, status_code=status.HTTP_201_CREATED)
def respond(
    listing_id: int,
    body: RespondRequest,
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
):
    try:
        return respond_to_listing(db, listing_id, user, body.message)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())


@router.get("/{listing_id}/responses", response_model=list[ResponseDetailOut])
def responses(listing_id: int, user: User = Depends(require_user), db: Session = Depends(get_db)):
    try:
        return list_responses(db, listing_id, user)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())


@router.patch("/{listing_id}/responses/{response_id}", response_model=ResponseOut)
def update_response(
    listing_id: int,
    response_id: int,
    body: ResponseStatusUpdate,
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
):
    try:
        return set_response_status(db, listing_id, response_id, user, body.status)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())
