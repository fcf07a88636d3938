"""Plan-view geometry on the resort grid.

Provides the distance and polyline helpers used by the routing graph and motion:
- Plan (horizontal) distances between points, single and pairwise
- Radius pair queries over many points (KD-tree)
- Polyline length, interpolation and projection

Resort coordinates are flat world units: x/y on the ground plane, elevation
separate. Routing distances ignore elevation so that a lift top and the trail
start next to it connect regardless of how the terrain mesh is sampled.
"""

from math import hypot
from typing import Sequence

import numpy as np
from scipy.spatial import cKDTree
from shapely.geometry import LineString, Point


class PlanGeometry:
    """Static methods for plan-view geometry.

    Points are (x, y) or (x, y, elevation) sequences; only x and y are used
    for distances. Fractions along a polyline are normalized to [0, 1].
    """

    @staticmethod
    def distance(x1: float, y1: float, x2: float, y2: float) -> float:
        """Euclidean plan distance between two points."""
        return hypot(x2 - x1, y2 - y1)

    @staticmethod
    def pairs_within(xy: np.ndarray, radius: float) -> set[tuple[int, int]]:
        """All index pairs (i < j) whose plan distance is at most radius.

        Args:
            xy: Array of shape (n, 2)
            radius: Inclusive distance limit

        Returns:
            Set of (i, j) index pairs with i < j.
        """
        if len(xy) < 2:
            return set()
        tree = cKDTree(xy)
        return {(int(i), int(j)) for i, j in tree.query_pairs(r=radius)}

    @staticmethod
    def polyline_length(points: Sequence[Sequence[float]]) -> float:
        """Total plan length of a polyline."""
        xy = np.asarray([(p[0], p[1]) for p in points], dtype=float)
        if len(xy) < 2:
            return 0.0
        return float(np.sum(np.hypot(*np.diff(xy, axis=0).T)))

    @staticmethod
    def interpolate(line: LineString, fraction: float) -> tuple[float, float, float]:
        """Point at a normalized fraction along a 3D line.

        Returns:
            (x, y, elevation). Elevation is 0.0 for 2D lines.
        """
        fraction = min(max(fraction, 0.0), 1.0)
        pt = line.interpolate(fraction, normalized=True)
        return (pt.x, pt.y, pt.z if pt.has_z else 0.0)

    @staticmethod
    def project(line: LineString, x: float, y: float) -> float:
        """Normalized fraction of the point on the line closest to (x, y)."""
        return float(line.project(Point(x, y), normalized=True))

    @staticmethod
    def distance_to_line(line: LineString, x: float, y: float) -> float:
        """Shortest plan distance from (x, y) to the line."""
        return float(line.distance(Point(x, y)))
