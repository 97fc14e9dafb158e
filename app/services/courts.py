import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.models.courts import Court
from app.schemas.courts import CourtCreate

logger = logging.getLogger(__name__)


def list_active_courts(db: Session) -> list[Court]:
    return list(db.scalars(select(Court).where(Court.active.is_(True)).order_by(Court.name)))


def create_court(db: Session, payload: CourtCreate) -> Court:
    court = Court(**payload.model_dump())
    db.add(court)
    db.commit()
    db.refresh(court)
    logger.info("Created court %s (%s)", court.id, court.name)
    return court
