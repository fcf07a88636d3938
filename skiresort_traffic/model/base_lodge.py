"""BaseLodge - where skiers spawn and return to."""

from dataclasses import dataclass

from skiresort_traffic.model.coordinate import Coordinate
from skiresort_traffic.model.snap_point import SnapPoint, SnapPointType


@dataclass
class BaseLodge:
    """The base lodge of the resort.

    Attributes:
        id: Unique identifier (e.g., "B1")
        name: Display name
        location: Spawn coordinate
    """

    id: str
    name: str
    location: Coordinate

    @property
    def spawn_point_id(self) -> str:
        return SnapPoint.make_id(owner_id=self.id, point_type=SnapPointType.BASE_SPAWN)

    def snap_points(self) -> tuple[SnapPoint]:
        return (SnapPoint.for_structure(self.id, SnapPointType.BASE_SPAWN, self.location, self.name),)
