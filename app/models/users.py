import enum
from datetime import datetime, timezone

from sqlalchemy import DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database.db import Base
from app.models.skill_levels import SkillLevel


class UserRole(str, enum.Enum):
    USER = "USER"
    COURT_MANAGER = "COURT_MANAGER"
    ADMIN = "ADMIN"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(120), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True, index=True)
    password_hash: Mapped[str] = mapped_column(String(128), nullable=False)
    # Plain string so rows carrying retired tiers still load
    skill_level: Mapped[str] = mapped_column(String(32), nullable=False, default=SkillLevel.BEGINNER_2_0.value)
    role: Mapped[str] = mapped_column(String(16), nullable=False, default=UserRole.USER.value)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)

    participations: Mapped[list["Participant"]] = relationship(back_populates="user")
    waitlist_entries: Mapped[list["WaitlistEntry"]] = relationship(back_populates="user")
