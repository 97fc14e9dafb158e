import enum
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database.db import Base


class ResponseStatus(str, enum.Enum):
    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"
    DECLINED = "DECLINED"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PlayerListing(Base):
    """A player looking for partners in a skill band."""

    __tablename__ = "player_listings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    time_slot: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    min_skill: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    max_skill: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)

    user: Mapped["User"] = relationship()
    responses: Mapped[list["PlayerResponse"]] = relationship(
        back_populates="listing",
        cascade="all, delete-orphan",
        order_by="[PlayerResponse.created_at.desc(), PlayerResponse.id.desc()]",
    )

    @property
    def response_count(self) -> int:
        return len(self.responses)


class PlayerResponse(Base):
    __tablename__ = "player_responses"
    __table_args__ = (
        UniqueConstraint("listing_id", "user_id", name="uq_player_responses_listing_user"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    listing_id: Mapped[int] = mapped_column(
        ForeignKey("player_listings.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default=ResponseStatus.PENDING.value)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)

    listing: Mapped["PlayerListing"] = relationship(back_populates="responses")
    user: Mapped["User"] = relationship()
