"""ConnectivityGraph - undirected proximity graph over snap points.

Two snap points are adjacent when their plan distance is at most the network
snap radius. The graph is rebuilt wholesale whenever the registry changes and
is versioned by a generation counter that every rebuild increments.

Rebuild Atomicity
-----------------
All topology (points, adjacency, KD-tree) lives in one immutable GraphTopology.
A rebuild constructs the new topology completely before publishing it with a
single attribute assignment, so readers see either the old graph or the new
one, never a mix. If construction raises, nothing is published and the
previous topology and generation stay in place.

Structure links (LiftBottom -> LiftTop, TrailStart -> TrailEnd) are not
proximity edges; they are derived from the owning structure via counterpart().
"""

import logging
from dataclasses import dataclass, field
from typing import Iterable, Optional

import numpy as np
from scipy.spatial import cKDTree

from skiresort_traffic.core.geometry import PlanGeometry
from skiresort_traffic.model.coordinate import Coordinate
from skiresort_traffic.model.snap_point import COUNTERPART_TYPES, SnapPoint, SnapPointType
from skiresort_traffic.routing.registry import SnapPointRegistry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GraphTopology:
    """Immutable snapshot of the graph published by a rebuild.

    Attributes:
        generation: Rebuild counter this topology was published with
        radius: Snap radius the edges were computed with
        points: Snap points by id
        ids: Point ids in KD-tree index order
        adjacency: Neighbor ids per point id, sorted
        edges: Undirected edges as sorted (a, b) id pairs
        tree: KD-tree over plan coordinates (None when empty)
        by_owner_type: (owner id, point type) -> point id
    """

    generation: int
    radius: float
    points: dict[str, SnapPoint] = field(default_factory=dict)
    ids: tuple[str, ...] = ()
    adjacency: dict[str, tuple[str, ...]] = field(default_factory=dict)
    edges: frozenset[tuple[str, str]] = frozenset()
    tree: Optional[cKDTree] = None
    by_owner_type: dict[tuple[str, SnapPointType], str] = field(default_factory=dict)


class ConnectivityGraph:
    """Proximity graph over registered snap points.

    Example:
        graph = ConnectivityGraph()
        graph.rebuild(points=registry.all(), radius=25.0)
        graph.neighbors("L1/top")
        graph.nearest_of_type(location=top.location, point_type=SnapPointType.TRAIL_START, radius=25.0)
    """

    def __init__(self) -> None:
        self._topology = GraphTopology(generation=0, radius=0.0)
        self._built_from_change: Optional[int] = None

    # =========================================================================
    # Rebuild
    # =========================================================================

    def rebuild(self, points: Iterable[SnapPoint], radius: float) -> int:
        """Recompute every edge with plan distance <= radius and publish atomically.

        Args:
            points: All currently registered snap points
            radius: Network snap radius

        Returns:
            The new generation.

        Raises:
            ValueError: If radius is not positive or point ids repeat. The
                previous topology is kept.
        """
        if radius <= 0:
            raise ValueError(f"Snap radius must be positive, got {radius}")

        point_list = list(points)
        by_id: dict[str, SnapPoint] = {}
        for p in point_list:
            if p.id in by_id:
                raise ValueError(f"Duplicate snap point id {p.id} in rebuild input")
            by_id[p.id] = p

        ids = tuple(by_id)
        xy = np.array([by_id[i].location.xy for i in ids], dtype=float).reshape(-1, 2)
        pairs = PlanGeometry.pairs_within(xy=xy, radius=radius)

        neighbor_sets: dict[str, set[str]] = {i: set() for i in ids}
        edges = set()
        for i, j in pairs:
            a, b = ids[i], ids[j]
            neighbor_sets[a].add(b)
            neighbor_sets[b].add(a)
            edges.add((a, b) if a < b else (b, a))

        topology = GraphTopology(
            generation=self._topology.generation + 1,
            radius=float(radius),
            points=by_id,
            ids=ids,
            adjacency={i: tuple(sorted(n)) for i, n in neighbor_sets.items()},
            edges=frozenset(edges),
            tree=cKDTree(xy) if len(ids) else None,
            by_owner_type={(p.owner_id, p.type): p.id for p in by_id.values()},
        )

        self._topology = topology
        logger.info(
            f"Rebuilt connectivity graph: generation {topology.generation}, "
            f"{len(ids)} points, {len(edges)} edges (radius {radius})"
        )
        return topology.generation

    def rebuild_from(self, registry: SnapPointRegistry, radius: float) -> bool:
        """Rebuild only if the registry or radius changed since the last build.

        Returns:
            True if a rebuild happened.
        """
        if self._built_from_change == registry.change_counter and self._topology.radius == radius:
            return False
        self.rebuild(points=registry.all(), radius=radius)
        self._built_from_change = registry.change_counter
        return True

    # =========================================================================
    # Queries
    # =========================================================================

    @property
    def topology(self) -> GraphTopology:
        """Current published topology (immutable)."""
        return self._topology

    @property
    def generation(self) -> int:
        return self._topology.generation

    @property
    def radius(self) -> float:
        return self._topology.radius

    @property
    def edges(self) -> frozenset[tuple[str, str]]:
        return self._topology.edges

    def __contains__(self, point_id: object) -> bool:
        return point_id in self._topology.points

    def __len__(self) -> int:
        return len(self._topology.points)

    def get(self, point_id: str) -> Optional[SnapPoint]:
        return self._topology.points.get(point_id)

    def neighbors(self, point_id: str) -> tuple[str, ...]:
        """Adjacent point ids (empty for unknown ids)."""
        return self._topology.adjacency.get(point_id, ())

    def points_of_type(self, point_type: SnapPointType) -> list[SnapPoint]:
        return [p for p in self._topology.points.values() if p.type is point_type]

    def within(self, location: Coordinate, radius: float) -> list[SnapPoint]:
        """All points within radius of a location, nearest first (ties by id)."""
        topology = self._topology
        if topology.tree is None:
            return []
        indices = topology.tree.query_ball_point(location.xy, r=radius)
        found = [topology.points[topology.ids[i]] for i in indices]
        found.sort(key=lambda p: (location.distance_to(p.location), p.id))
        return found

    def nearest_of_type(self, location: Coordinate, point_type: SnapPointType, radius: float) -> list[SnapPoint]:
        """All points of a type within radius of a location, nearest first.

        Used for snap lookups, trail starts near a lift top, and lift
        bottoms near a trail end.
        """
        return [p for p in self.within(location=location, radius=radius) if p.type is point_type]

    def counterpart(self, point_id: str) -> Optional[SnapPoint]:
        """Other end of the owning structure (LiftBottom <-> LiftTop, TrailStart <-> TrailEnd).

        Returns:
            The counterpart point, or None for base spawns, unknown ids, or
            structures whose other end is not registered.
        """
        point = self.get(point_id)
        if point is None or point.type not in COUNTERPART_TYPES:
            return None
        other_id = self._topology.by_owner_type.get((point.owner_id, COUNTERPART_TYPES[point.type]))
        return self.get(other_id) if other_id is not None else None

    def __repr__(self) -> str:
        return f"ConnectivityGraph(generation={self.generation}, points={len(self)}, edges={len(self.edges)})"
