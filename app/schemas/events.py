from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, model_validator

from app.models.events import EventType
from app.models.skill_levels import SkillLevel
from app.schemas.courts import CourtOut
from app.schemas.membership import ParticipantOut, WaitlistEntryOut


# ---------- Event ----------
class EventCreate(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    event_type: EventType = EventType.OPEN_PLAY
    start: datetime
    end: datetime
    max_players: int = Field(ge=1)
    min_skill: Optional[SkillLevel] = None
    max_skill: Optional[SkillLevel] = None
    notes: Optional[str] = None
    court_ids: list[int] = Field(min_length=1)

    @model_validator(mode="after")
    def check_ranges(self):
        if self.end <= self.start:
            raise ValueError("end must be after start")
        if self.min_skill and self.max_skill and self.min_skill > self.max_skill:
            raise ValueError("min_skill must not be above max_skill")
        return self


class EventOut(BaseModel):
    id: int
    title: str
    event_type: str
    start: datetime
    end: datetime
    max_players: int
    current_players: int
    min_skill: Optional[str]
    max_skill: Optional[str]
    notes: Optional[str]
    is_bookable: bool
    created_by_id: Optional[int]
    courts: list[CourtOut] = []

    class Config:
        from_attributes = True


class EventDetailOut(EventOut):
    participants: list[ParticipantOut] = []
    waitlist: list[WaitlistEntryOut] = []


class EventStatsOut(BaseModel):
    event_id: int
    max_players: int
    current_players: int
    open_slots: int
    waitlist_count: int
