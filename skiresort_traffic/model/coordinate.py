"""Coordinate - the geometry atom of the resort.

A Coordinate is a point on the resort ground plane with elevation.
Snap points, trail polylines and lift lines are all built from it.
"""

from dataclasses import dataclass
from typing import Any

import numpy as np

from skiresort_traffic.core.geometry import PlanGeometry


@dataclass(frozen=True)
class Coordinate:
    """A point in resort world units.

    Attributes:
        x: East-west position
        y: North-south position
        elevation: Height above the resort datum

    Example:
        top = Coordinate(x=0.0, y=1.0, elevation=10.0)
    """

    x: float
    y: float
    elevation: float = 0.0

    def __post_init__(self) -> None:
        """Validate data after initialization."""
        if np.isnan(self.x) or np.isnan(self.y):
            raise ValueError(f"Coordinate cannot have NaN position ({self.x}, {self.y})")
        if np.isnan(self.elevation):
            raise ValueError(f"Coordinate cannot have NaN elevation at ({self.x}, {self.y})")

    @property
    def xy(self) -> tuple[float, float]:
        """Return (x, y) plan position."""
        return (self.x, self.y)

    @property
    def xyz(self) -> tuple[float, float, float]:
        """Return (x, y, elevation)."""
        return (self.x, self.y, self.elevation)

    def distance_to(self, other: "Coordinate") -> float:
        """Plan distance to another coordinate (elevation ignored)."""
        return PlanGeometry.distance(self.x, self.y, other.x, other.y)

    def to_dict(self) -> dict[str, float]:
        return {"x": self.x, "y": self.y, "elevation": self.elevation}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Coordinate":
        return cls(x=float(data["x"]), y=float(data["y"]), elevation=float(data.get("elevation", 0.0)))

    def __repr__(self) -> str:
        return f"Coordinate(x={self.x:.1f}, y={self.y:.1f}, elev={self.elevation:.1f})"
