"""Skill levels, trail difficulties and the hard caps between them.

SkillLevel and TrailDifficulty are aligned index-for-index so that
skill - difficulty gives the "gap" used for transit willingness.
"""

from enum import IntEnum


class SkillLevel(IntEnum):
    BEGINNER = 0
    INTERMEDIATE = 1
    ADVANCED = 2
    EXPERT = 3

    @property
    def label(self) -> str:
        return self.name.lower()

    @classmethod
    def from_label(cls, label: str) -> "SkillLevel":
        return cls[label.upper()]


class TrailDifficulty(IntEnum):
    GREEN = 0
    BLUE = 1
    BLACK = 2
    DOUBLE_BLACK = 3

    @property
    def label(self) -> str:
        return self.name.lower()

    @classmethod
    def from_label(cls, label: str) -> "TrailDifficulty":
        return cls[label.upper()]


assert len(SkillLevel) == len(TrailDifficulty)


# Hard caps: what each skill level will ski outside of desperation
ALLOWED_DIFFICULTIES: dict[SkillLevel, frozenset[TrailDifficulty]] = {
    SkillLevel.BEGINNER: frozenset({TrailDifficulty.GREEN, TrailDifficulty.BLUE}),
    SkillLevel.INTERMEDIATE: frozenset({TrailDifficulty.GREEN, TrailDifficulty.BLUE, TrailDifficulty.BLACK}),
    SkillLevel.ADVANCED: frozenset(TrailDifficulty),
    SkillLevel.EXPERT: frozenset(TrailDifficulty),
}
assert set(ALLOWED_DIFFICULTIES) == set(SkillLevel)


def skill_gap(skill: SkillLevel, difficulty: TrailDifficulty) -> int:
    """Levels the trail sits below the skier (negative when the trail is harder)."""
    return int(skill) - int(difficulty)


def is_allowed(skill: SkillLevel, difficulty: TrailDifficulty) -> bool:
    """Check the hard cap for a skill/difficulty pair.

    Disallowed pairs are "desperate only": offered solely when a skier has no
    other option, and never used for route planning.
    """
    return difficulty in ALLOWED_DIFFICULTIES[skill]
