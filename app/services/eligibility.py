"""Decide whether a user may join an event, join its waitlist, or neither.

Everything here is side-effect free apart from logging. Callers load the
event, the user and the current membership sets and pass them in.
"""

import enum
import logging
from collections.abc import Collection
from dataclasses import dataclass
from typing import Optional

from app.models.skill_levels import SkillLevel

logger = logging.getLogger(__name__)


class Decision(str, enum.Enum):
    ALLOW_JOIN = "ALLOW_JOIN"
    ALLOW_WAITLIST = "ALLOW_WAITLIST"
    REJECT = "REJECT"


ALREADY_JOINED = "already_joined"
ALREADY_WAITLISTED = "already_waitlisted"
SKILL_OUT_OF_RANGE = "skill_out_of_range"
EVENT_FULL = "event_full"


@dataclass(frozen=True)
class Eligibility:
    decision: Decision
    reason: Optional[str] = None
    message: str = ""

    @property
    def allowed(self) -> bool:
        return self.decision is not Decision.REJECT


def skill_in_range(user_skill: Optional[str], min_skill: Optional[str], max_skill: Optional[str]) -> bool:
    """Return False only when every tier resolves and the user is outside [min, max].

    Unset bounds default to the lowest and highest tiers. An unrecognized
    tier on either side skips the check entirely.
    """
    user_level = SkillLevel.parse(user_skill)
    min_level = SkillLevel.parse(min_skill) if min_skill else SkillLevel.lowest()
    max_level = SkillLevel.parse(max_skill) if max_skill else SkillLevel.highest()

    if user_level is None or min_level is None or max_level is None:
        logger.warning(
            "Skipping skill check, unrecognized tier (user=%r, min=%r, max=%r)",
            user_skill,
            min_skill,
            max_skill,
        )
        return True

    return min_level <= user_level <= max_level


def check_eligibility(
    event,
    user,
    participant_ids: Collection[int],
    waitlist_ids: Collection[int],
    *,
    waitlist: bool = False,
    gate_waitlist_on_skill: bool = True,
) -> Eligibility:
    if user.id in participant_ids:
        return Eligibility(Decision.REJECT, ALREADY_JOINED, "You are already a participant in this event")

    if user.id in waitlist_ids:
        return Eligibility(Decision.REJECT, ALREADY_WAITLISTED, "You are already on the waitlist for this event")

    if not waitlist or gate_waitlist_on_skill:
        if not skill_in_range(user.skill_level, event.min_skill, event.max_skill):
            return Eligibility(
                Decision.REJECT,
                SKILL_OUT_OF_RANGE,
                "Your skill level does not meet the requirements for this event",
            )

    if waitlist:
        # The waitlist has no ceiling
        return Eligibility(Decision.ALLOW_WAITLIST)

    if len(participant_ids) >= event.max_players:
        return Eligibility(Decision.ALLOW_WAITLIST, EVENT_FULL, "Event is full. Please join the waitlist instead.")

    return Eligibility(Decision.ALLOW_JOIN)
