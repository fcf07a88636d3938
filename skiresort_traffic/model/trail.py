"""Trail - a downhill run between a start and an end snap point.

A Trail is a polyline of Coordinates. Its first point is the TrailStart snap
point and its last point the TrailEnd. Difficulty is either given by the host
or classified by the TrailSurveyor when the trail is validated.
"""

import logging
from dataclasses import dataclass
from functools import cached_property
from typing import Any, Optional

from shapely.geometry import LineString

from skiresort_traffic.core.geometry import PlanGeometry
from skiresort_traffic.model.coordinate import Coordinate
from skiresort_traffic.model.skill import TrailDifficulty
from skiresort_traffic.model.snap_point import SnapPoint, SnapPointType

logger = logging.getLogger(__name__)


@dataclass
class Trail:
    """A ski trail.

    Attributes:
        id: Unique identifier (e.g., "T1")
        name: Display name
        points: Ordered polyline from top to bottom
        difficulty: Classification, None until surveyed

    Example:
        trail = Trail(
            id="T1",
            name="Bunny Hill",
            points=[Coordinate(0, 1, 10.0), Coordinate(0, 5, 0.0)],
            difficulty=TrailDifficulty.GREEN,
        )
    """

    id: str
    name: str
    points: list[Coordinate]
    difficulty: Optional[TrailDifficulty] = None

    def __post_init__(self) -> None:
        if len(self.points) < 2:
            raise ValueError(f"Trail {self.id} needs at least 2 points, got {len(self.points)}")

    @property
    def start(self) -> Coordinate:
        return self.points[0]

    @property
    def end(self) -> Coordinate:
        return self.points[-1]

    @property
    def start_point_id(self) -> str:
        return SnapPoint.make_id(owner_id=self.id, point_type=SnapPointType.TRAIL_START)

    @property
    def end_point_id(self) -> str:
        return SnapPoint.make_id(owner_id=self.id, point_type=SnapPointType.TRAIL_END)

    @cached_property
    def line(self) -> LineString:
        """3D LineString of the trail (x, y, elevation)."""
        return LineString([p.xyz for p in self.points])

    @property
    def length(self) -> float:
        """Plan length of the trail polyline."""
        return PlanGeometry.polyline_length([p.xy for p in self.points])

    def position_at(self, fraction: float) -> Coordinate:
        """Coordinate at a normalized fraction along the trail."""
        x, y, elevation = PlanGeometry.interpolate(line=self.line, fraction=fraction)
        return Coordinate(x=x, y=y, elevation=elevation)

    def snap_points(self) -> tuple[SnapPoint, SnapPoint]:
        """TrailStart and TrailEnd snap points for registration."""
        return (
            SnapPoint.for_structure(self.id, SnapPointType.TRAIL_START, self.start, f"{self.name} (start)"),
            SnapPoint.for_structure(self.id, SnapPointType.TRAIL_END, self.end, f"{self.name} (end)"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "points": [p.to_dict() for p in self.points],
            "difficulty": self.difficulty.label if self.difficulty is not None else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Trail":
        difficulty = data.get("difficulty")
        return cls(
            id=data["id"],
            name=data["name"],
            points=[Coordinate.from_dict(p) for p in data["points"]],
            difficulty=TrailDifficulty.from_label(difficulty) if difficulty else None,
        )

    def __repr__(self) -> str:
        label = self.difficulty.label if self.difficulty is not None else "unrated"
        return f"Trail({self.id}, {self.name!r}, {label}, {len(self.points)} pts)"
