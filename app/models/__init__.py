from app.models.courts import Court
from app.models.events import Event, EventType, event_courts
from app.models.listings import PlayerListing, PlayerResponse, ResponseStatus
from app.models.membership import Participant, WaitlistEntry
from app.models.skill_levels import SkillLevel
from app.models.users import User, UserRole

__all__ = [
    "Court",
    "Event",
    "EventType",
    "Participant",
    "PlayerListing",
    "PlayerResponse",
    "ResponseStatus",
    "SkillLevel",
    "User",
    "UserRole",
    "WaitlistEntry",
    "event_courts",
]
