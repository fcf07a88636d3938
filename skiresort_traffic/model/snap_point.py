"""SnapPoint - named attachment point of a structure in the routing graph.

Every lift exposes a bottom and a top, every trail a start and an end, and the
base lodge a spawn point. Snap points are immutable once registered and are
removed only together with their owning structure.
"""

from dataclasses import dataclass
from enum import Enum

from skiresort_traffic.constants import SnapPointSuffixes
from skiresort_traffic.model.coordinate import Coordinate


class SnapPointType(Enum):
    BASE_SPAWN = "BaseSpawn"
    TRAIL_START = "TrailStart"
    TRAIL_END = "TrailEnd"
    LIFT_BOTTOM = "LiftBottom"
    LIFT_TOP = "LiftTop"


_SUFFIXES = {
    SnapPointType.BASE_SPAWN: SnapPointSuffixes.BASE_SPAWN,
    SnapPointType.TRAIL_START: SnapPointSuffixes.TRAIL_START,
    SnapPointType.TRAIL_END: SnapPointSuffixes.TRAIL_END,
    SnapPointType.LIFT_BOTTOM: SnapPointSuffixes.LIFT_BOTTOM,
    SnapPointType.LIFT_TOP: SnapPointSuffixes.LIFT_TOP,
}
assert set(_SUFFIXES) == set(SnapPointType)

# The other end of the same structure
COUNTERPART_TYPES = {
    SnapPointType.TRAIL_START: SnapPointType.TRAIL_END,
    SnapPointType.TRAIL_END: SnapPointType.TRAIL_START,
    SnapPointType.LIFT_BOTTOM: SnapPointType.LIFT_TOP,
    SnapPointType.LIFT_TOP: SnapPointType.LIFT_BOTTOM,
}


@dataclass(frozen=True)
class SnapPoint:
    """An attachment point exposed by a lift, trail or base lodge.

    Attributes:
        id: Unique identifier (e.g., "L1/bottom")
        type: Role of the point within its structure
        location: Ground coordinate
        owner_id: ID of the owning structure (e.g., "L1")
        name: Display name

    Example:
        point = SnapPoint(
            id="L1/bottom",
            type=SnapPointType.LIFT_BOTTOM,
            location=Coordinate(x=0.0, y=5.0),
            owner_id="L1",
            name="Summit Express (bottom)",
        )
    """

    id: str
    type: SnapPointType
    location: Coordinate
    owner_id: str
    name: str

    @staticmethod
    def make_id(owner_id: str, point_type: SnapPointType) -> str:
        """Build the conventional snap point id for a structure end."""
        return f"{owner_id}{SnapPointSuffixes.SEPARATOR}{_SUFFIXES[point_type]}"

    @classmethod
    def for_structure(cls, owner_id: str, point_type: SnapPointType, location: Coordinate, name: str) -> "SnapPoint":
        return cls(
            id=cls.make_id(owner_id=owner_id, point_type=point_type),
            type=point_type,
            location=location,
            owner_id=owner_id,
            name=name,
        )

    def distance_to(self, other: "SnapPoint") -> float:
        return self.location.distance_to(other.location)

    def __repr__(self) -> str:
        return f"SnapPoint({self.id}, {self.type.value}, x={self.location.x:.1f}, y={self.location.y:.1f})"
