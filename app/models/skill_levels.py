import enum
from typing import Optional


class SkillLevel(str, enum.Enum):
    """Player rating tiers, declared from lowest to highest.

    Declaration order is the ordering used for event skill bounds, so new
    tiers must be inserted at their position rather than appended.
    """

    BEGINNER_2_0 = "BEGINNER_2_0"
    BEGINNER_2_25 = "BEGINNER_2_25"
    BEGINNER_2_5 = "BEGINNER_2_5"
    RISING_BEGINNER_2_75 = "RISING_BEGINNER_2_75"
    LOW_INTERMEDIATE_3_0 = "LOW_INTERMEDIATE_3_0"
    INTERMEDIATE_3_25 = "INTERMEDIATE_3_25"
    INTERMEDIATE_3_5 = "INTERMEDIATE_3_5"
    RISING_INTERMEDIATE_3_75 = "RISING_INTERMEDIATE_3_75"
    LOW_ADVANCED_4_0 = "LOW_ADVANCED_4_0"
    ADVANCED_4_25 = "ADVANCED_4_25"
    ADVANCED_4_5 = "ADVANCED_4_5"
    RISING_ADVANCED_4_75 = "RISING_ADVANCED_4_75"
    TOURNAMENT_5_0 = "TOURNAMENT_5_0"
    PRO_5_5 = "PRO_5_5"

    @property
    def rank(self) -> int:
        return _RANKS[self]

    @classmethod
    def parse(cls, value: Optional[str]) -> Optional["SkillLevel"]:
        """Return the tier for ``value`` or None when it is not a known tier."""
        if value is None:
            return None
        try:
            return cls(value)
        except ValueError:
            return None

    @classmethod
    def lowest(cls) -> "SkillLevel":
        return _ORDERED[0]

    @classmethod
    def highest(cls) -> "SkillLevel":
        return _ORDERED[-1]

    def __lt__(self, other):
        if not isinstance(other, SkillLevel):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other):
        if not isinstance(other, SkillLevel):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other):
        if not isinstance(other, SkillLevel):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other):
        if not isinstance(other, SkillLevel):
            return NotImplemented
        return self.rank >= other.rank


_ORDERED = list(SkillLevel)
_RANKS = {level: index for index, level in enumerate(_ORDERED)}
