import enum
from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, ForeignKey, Integer, String, Table, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database.db import Base


class EventType(str, enum.Enum):
    OPEN_PLAY = "OPEN_PLAY"
    PRO_SESSION = "PRO_SESSION"
    CLINIC = "CLINIC"
    PRIVATE_LESSON = "PRIVATE_LESSON"
    TOURNAMENT = "TOURNAMENT"


event_courts = Table(
    "event_courts",
    Base.metadata,
    Column("event_id", ForeignKey("events.id", ondelete="CASCADE"), primary_key=True),
    Column("court_id", ForeignKey("courts.id", ondelete="CASCADE"), primary_key=True),
)


class Event(Base):
    __tablename__ = "events"
    __table_args__ = (
        CheckConstraint("max_players >= 1", name="ck_events_max_players_positive"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    event_type: Mapped[str] = mapped_column(String(32), nullable=False, default=EventType.OPEN_PLAY.value)
    start: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    max_players: Mapped[int] = mapped_column(Integer, nullable=False)
    # Derived from the participant set inside every membership transaction
    current_players: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    min_skill: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    max_skill: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    is_bookable: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_by_id: Mapped[Optional[int]] = mapped_column(ForeignKey("users.id"), nullable=True)

    created_by: Mapped[Optional["User"]] = relationship()
    courts: Mapped[list["Court"]] = relationship(secondary=event_courts)
    participants: Mapped[list["Participant"]] = relationship(
        back_populates="event",
        cascade="all, delete-orphan",
        order_by="Participant.joined_at",
    )
    waitlist: Mapped[list["WaitlistEntry"]] = relationship(
        back_populates="event",
        cascade="all, delete-orphan",
        order_by="[WaitlistEntry.joined_at, WaitlistEntry.id]",
    )
