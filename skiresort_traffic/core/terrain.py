"""Terrain access and trail surveying.

Provides the terrain collaborator contract and the analysis built on it:
- TerrainProvider: height-at-coordinate and in-bounds test
- HeightGrid: NumPy-backed height field with O(1) cell lookup
- TrailSurveyor: trail validation (length, bounds, downhill) and
  slope-based difficulty classification

The engine never generates terrain; a provider is handed to it by the host.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Protocol, Sequence

import numpy as np

from skiresort_traffic.constants import TrailConfig
from skiresort_traffic.exceptions import TrailValidationError
from skiresort_traffic.model.coordinate import Coordinate
from skiresort_traffic.model.skill import TrailDifficulty

logger = logging.getLogger(__name__)


class TerrainProvider(Protocol):
    """Read-only terrain collaborator."""

    def height_at(self, x: float, y: float) -> float: ...

    def in_bounds(self, x: float, y: float) -> bool: ...


class HeightGrid:
    """Height field sampled on a regular grid.

    Cell (row, col) covers x in [origin_x + col*cell_size, origin_x + (col+1)*cell_size)
    and likewise for y with rows. Lookups return the height of the containing cell.

    Example:
        grid = HeightGrid(heights=np.zeros((64, 64)), cell_size=1.0)
        grid.height_at(x=10.5, y=3.2)
    """

    def __init__(
        self,
        heights: np.ndarray,
        cell_size: float = 1.0,
        origin: tuple[float, float] = (0.0, 0.0),
    ) -> None:
        heights = np.asarray(heights, dtype=float)
        if heights.ndim != 2:
            raise ValueError(f"HeightGrid needs a 2D array, got shape {heights.shape}")
        if cell_size <= 0:
            raise ValueError(f"cell_size must be positive, got {cell_size}")
        self._heights = heights
        self._cell_size = float(cell_size)
        self._origin = (float(origin[0]), float(origin[1]))

    @property
    def shape(self) -> tuple[int, int]:
        return self._heights.shape

    @property
    def bounds(self) -> tuple[float, float, float, float]:
        """Return (min_x, min_y, max_x, max_y) in world units."""
        rows, cols = self._heights.shape
        ox, oy = self._origin
        return (ox, oy, ox + cols * self._cell_size, oy + rows * self._cell_size)

    def _cell(self, x: float, y: float) -> tuple[int, int]:
        col = int(np.floor((x - self._origin[0]) / self._cell_size))
        row = int(np.floor((y - self._origin[1]) / self._cell_size))
        return row, col

    def in_bounds(self, x: float, y: float) -> bool:
        row, col = self._cell(x, y)
        rows, cols = self._heights.shape
        return 0 <= row < rows and 0 <= col < cols

    def height_at(self, x: float, y: float) -> float:
        """Height of the cell containing (x, y).

        Raises:
            ValueError: If the coordinate is outside the grid.
        """
        if not self.in_bounds(x, y):
            raise ValueError(f"Coordinate ({x}, {y}) outside terrain bounds {self.bounds}")
        row, col = self._cell(x, y)
        return float(self._heights[row, col])


@dataclass(frozen=True)
class TrailSurvey:
    """Result of surveying a trail polyline.

    Attributes:
        elevation_drop: Start height minus end height
        avg_slope: Mean absolute slope ratio over the polyline's legs
        max_slope: Steepest absolute slope ratio of any leg
        difficulty: Classification derived from the slopes
    """

    elevation_drop: float
    avg_slope: float
    max_slope: float
    difficulty: TrailDifficulty


class TrailSurveyor:
    """Validates trail polylines and classifies their difficulty.

    Heights come from the terrain provider when one is given, otherwise from
    the elevation stored on each coordinate.
    """

    def __init__(self, terrain: Optional[TerrainProvider] = None) -> None:
        self.terrain = terrain

    def _height(self, point: Coordinate) -> float:
        if self.terrain is None:
            return point.elevation
        return self.terrain.height_at(point.x, point.y)

    def survey(self, points: Sequence[Coordinate]) -> TrailSurvey:
        """Validate a polyline and compute its slope metrics.

        Raises:
            TrailValidationError: If the trail is too short, leaves the terrain,
                or does not drop at least TrailConfig.MIN_ELEVATION_DROP.
        """
        if len(points) < TrailConfig.MIN_POINTS:
            raise TrailValidationError(f"Trail needs at least {TrailConfig.MIN_POINTS} points, got {len(points)}")

        if self.terrain is not None:
            for p in points:
                if not self.terrain.in_bounds(p.x, p.y):
                    raise TrailValidationError(f"Trail point ({p.x}, {p.y}) is outside the terrain")

        heights = np.array([self._height(p) for p in points], dtype=float)
        drop = float(heights[0] - heights[-1])
        if drop < TrailConfig.MIN_ELEVATION_DROP:
            raise TrailValidationError(
                f"Trail must drop at least {TrailConfig.MIN_ELEVATION_DROP} units, drops {drop:.1f}"
            )

        xy = np.array([p.xy for p in points], dtype=float)
        run = np.hypot(*np.diff(xy, axis=0).T)
        rise = np.abs(np.diff(heights))
        moving = run > 0
        if not np.any(moving):
            raise TrailValidationError("Trail has no horizontal extent")
        slopes = rise[moving] / run[moving]
        avg_slope = float(np.mean(slopes))
        max_slope = float(np.max(slopes))

        return TrailSurvey(
            elevation_drop=drop,
            avg_slope=avg_slope,
            max_slope=max_slope,
            difficulty=self.classify_difficulty(avg_slope=avg_slope, max_slope=max_slope),
        )

    @staticmethod
    def classify_difficulty(avg_slope: float, max_slope: float) -> TrailDifficulty:
        """Classify by slope ratio, hardest class first.

        A single steep pitch is enough to push a trail up a class.
        """
        for label, limits in TrailConfig.DIFFICULTY_SLOPE_LIMITS.items():
            if max_slope > limits["max"] or avg_slope > limits["avg"]:
                return TrailDifficulty.from_label(label)
        return TrailDifficulty.GREEN
