"""Lift - uphill transport between a bottom and a top snap point.

Riding a lift is one "hop" of downstream lookahead. The lift line is a
straight segment from bottom to top station.
"""

import logging
from dataclasses import dataclass
from typing import Any

from skiresort_traffic.model.coordinate import Coordinate
from skiresort_traffic.model.snap_point import SnapPoint, SnapPointType

logger = logging.getLogger(__name__)

LIFT_TYPES = ("surface_lift", "chairlift", "gondola", "aerial_tram")


@dataclass
class Lift:
    """A ski lift.

    Attributes:
        id: Unique identifier (e.g., "L1")
        name: Display name
        bottom: Bottom station coordinate
        top: Top station coordinate
        lift_type: One of LIFT_TYPES

    Example:
        lift = Lift(id="L1", name="Summit Express", bottom=Coordinate(0, 5), top=Coordinate(0, 1))
    """

    id: str
    name: str
    bottom: Coordinate
    top: Coordinate
    lift_type: str = "chairlift"

    def __post_init__(self) -> None:
        if self.lift_type not in LIFT_TYPES:
            raise ValueError(f"Unknown lift type {self.lift_type!r}, expected one of {LIFT_TYPES}")
        if self.bottom.xy == self.top.xy:
            raise ValueError(f"Lift {self.id} has identical bottom and top positions")

    @property
    def bottom_point_id(self) -> str:
        return SnapPoint.make_id(owner_id=self.id, point_type=SnapPointType.LIFT_BOTTOM)

    @property
    def top_point_id(self) -> str:
        return SnapPoint.make_id(owner_id=self.id, point_type=SnapPointType.LIFT_TOP)

    @property
    def length(self) -> float:
        """Plan length of the lift line."""
        return self.bottom.distance_to(self.top)

    @property
    def vertical_rise(self) -> float:
        return self.top.elevation - self.bottom.elevation

    def position_at(self, fraction: float) -> Coordinate:
        """Coordinate at a normalized fraction along the lift line."""
        f = min(max(fraction, 0.0), 1.0)
        return Coordinate(
            x=self.bottom.x + (self.top.x - self.bottom.x) * f,
            y=self.bottom.y + (self.top.y - self.bottom.y) * f,
            elevation=self.bottom.elevation + self.vertical_rise * f,
        )

    def snap_points(self) -> tuple[SnapPoint, SnapPoint]:
        """LiftBottom and LiftTop snap points for registration."""
        return (
            SnapPoint.for_structure(self.id, SnapPointType.LIFT_BOTTOM, self.bottom, f"{self.name} (bottom)"),
            SnapPoint.for_structure(self.id, SnapPointType.LIFT_TOP, self.top, f"{self.name} (top)"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "bottom": self.bottom.to_dict(),
            "top": self.top.to_dict(),
            "lift_type": self.lift_type,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Lift":
        return cls(
            id=data["id"],
            name=data["name"],
            bottom=Coordinate.from_dict(data["bottom"]),
            top=Coordinate.from_dict(data["top"]),
            lift_type=data.get("lift_type", "chairlift"),
        )

    def __repr__(self) -> str:
        return f"Lift({self.id}, {self.name!r}, {self.lift_type}, len={self.length:.0f})"
