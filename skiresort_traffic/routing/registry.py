"""SnapPointRegistry - every attachment point currently placed in the resort.

Lifts, trails and the base lodge register their snap points here when they
are built and unregister them when they are removed. Each effective mutation
bumps a change counter; the ConnectivityGraph compares it with the counter it
was last built from to decide whether a rebuild is due.
"""

import logging
from typing import Iterable, Iterator, Optional

from skiresort_traffic.exceptions import DuplicateSnapPoint
from skiresort_traffic.model.snap_point import SnapPoint

logger = logging.getLogger(__name__)


class SnapPointRegistry:
    """Registry of snap points keyed by id.

    Example:
        registry = SnapPointRegistry()
        registry.register_all(points=lift.snap_points())
        registry.unregister_owner(owner_id=lift.id)
    """

    def __init__(self) -> None:
        self._points: dict[str, SnapPoint] = {}
        self._change_counter = 0

    @property
    def change_counter(self) -> int:
        """Number of effective mutations since creation."""
        return self._change_counter

    def register(self, point: SnapPoint) -> None:
        """Add a snap point.

        Raises:
            DuplicateSnapPoint: If a point with the same id is registered.
        """
        if point.id in self._points:
            raise DuplicateSnapPoint(point.id)
        self._points[point.id] = point
        self._change_counter += 1
        logger.debug(f"Registered {point!r}")

    def register_all(self, points: Iterable[SnapPoint]) -> None:
        """Add a structure's points atomically: either all are registered or none.

        Raises:
            DuplicateSnapPoint: If any id is already registered or repeats in the batch.
        """
        batch = list(points)
        seen: set[str] = set()
        for point in batch:
            if point.id in self._points or point.id in seen:
                raise DuplicateSnapPoint(point.id)
            seen.add(point.id)
        for point in batch:
            self.register(point)

    def unregister(self, point_id: str) -> None:
        """Remove a snap point. No-op if absent."""
        if self._points.pop(point_id, None) is None:
            return
        self._change_counter += 1
        logger.debug(f"Unregistered snap point {point_id}")

    def unregister_owner(self, owner_id: str) -> list[SnapPoint]:
        """Remove every point owned by a structure.

        Returns:
            The removed points (empty if the structure had none).
        """
        removed = self.by_owner(owner_id)
        for point in removed:
            self.unregister(point.id)
        return removed

    def all(self) -> tuple[SnapPoint, ...]:
        """Current points in registration order."""
        return tuple(self._points.values())

    def get(self, point_id: str) -> Optional[SnapPoint]:
        return self._points.get(point_id)

    def by_owner(self, owner_id: str) -> list[SnapPoint]:
        return [p for p in self._points.values() if p.owner_id == owner_id]

    def __contains__(self, point_id: object) -> bool:
        return point_id in self._points

    def __len__(self) -> int:
        return len(self._points)

    def __iter__(self) -> Iterator[SnapPoint]:
        return iter(self.all())

    def __repr__(self) -> str:
        return f"SnapPointRegistry({len(self)} points, change={self._change_counter})"
