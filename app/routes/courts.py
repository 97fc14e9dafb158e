from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.core.auth import require_manager
from app.database.db import get_db
from app.models.users import User
from app.schemas.courts import CourtCreate, CourtOut
from app.services.courts import create_court, list_active_courts

router = APIRouter(prefix="/courts", tags=["courts"])


@router.get("", response_model=list[CourtOut])
def list_courts(db: Session = Depends(get_db)):
    return list_active_courts(db)


@router.post("", response_model=CourtOut, status_code=status.HTTP_201_CREATED)
def add_court(
    payload: CourtCreate,
    db: Session = Depends(get_db),
    user: User = Depends(require_manager),
):
    return create_court(db, payload)
