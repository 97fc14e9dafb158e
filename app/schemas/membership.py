from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from app.schemas.users import UserSummary


class ParticipantOut(BaseModel):
    user_id: int
    event_id: int
    joined_at: datetime
    user: Optional[UserSummary] = None

    class Config:
        from_attributes = True


class WaitlistEntryOut(BaseModel):
    id: int
    user_id: int
    event_id: int
    joined_at: datetime
    user: Optional[UserSummary] = None

    class Config:
        from_attributes = True


class EligibilityOut(BaseModel):
    decision: str
    reason: Optional[str] = None
    message: str = ""


class LeaveOut(BaseModel):
    message: str
    promoted: Optional[ParticipantOut] = None
