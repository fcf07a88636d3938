"""Segment references - what an agent is riding or skiing."""

from dataclasses import dataclass
from enum import Enum


class SegmentKind(Enum):
    TRAIL = "trail"
    LIFT = "lift"


@dataclass(frozen=True)
class SegmentRef:
    """A trail or lift an agent can travel along.

    Attributes:
        kind: TRAIL or LIFT
        structure_id: ID of the trail or lift (e.g., "T3", "L1")
    """

    kind: SegmentKind
    structure_id: str

    @property
    def is_lift(self) -> bool:
        return self.kind is SegmentKind.LIFT

    @property
    def is_trail(self) -> bool:
        return self.kind is SegmentKind.TRAIL

    @classmethod
    def trail(cls, trail_id: str) -> "SegmentRef":
        return cls(kind=SegmentKind.TRAIL, structure_id=trail_id)

    @classmethod
    def lift(cls, lift_id: str) -> "SegmentRef":
        return cls(kind=SegmentKind.LIFT, structure_id=lift_id)

    def __str__(self) -> str:
        return f"{self.kind.value}:{self.structure_id}"
