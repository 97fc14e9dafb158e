import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.security import hash_password, verify_password
from app.models.users import User, UserRole
from app.schemas.users import ProfileUpdate, UserCreate
from app.services.errors import ConflictError

logger = logging.getLogger(__name__)


def get_user_by_email(db: Session, email: str) -> Optional[User]:
    return db.scalar(select(User).where(User.email == email.lower()))


def create_user(db: Session, payload: UserCreate, *, role: UserRole = UserRole.USER) -> User:
    if get_user_by_email(db, payload.email):
        raise ConflictError("User already exists", reason="email_taken")

    user = User(
        name=payload.name,
        email=payload.email.lower(),
        password_hash=hash_password(payload.password),
        skill_level=payload.skill_level.value,
        role=role.value,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def authenticate(db: Session, email: str, password: str) -> Optional[User]:
    user = get_user_by_email(db, email)
    if not user or not verify_password(password, user.password_hash):
        return None
    return user


def update_profile(db: Session, user: User, payload: ProfileUpdate) -> User:
    """Apply the fields present in ``payload``.

    A new skill level is read by the next eligibility check; existing
    participations and waitlist entries are left as they are.
    """
    if payload.name is not None:
        user.name = payload.name
    if payload.skill_level is not None and payload.skill_level.value != user.skill_level:
        logger.info("User %s skill level %s -> %s", user.id, user.skill_level, payload.skill_level.value)
        user.skill_level = payload.skill_level.value
    db.commit()
    db.refresh(user)
    return user
