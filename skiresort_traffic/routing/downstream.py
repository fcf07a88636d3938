"""Downstream Value Propagator - depth-limited lookahead of reachable terrain.

Lets a skier standing at a snap point "see" how good the terrain is that it
can reach within a few lift rides.

Algorithm Overview:
1. Frontier = {start point}, hop = 1
2. For every frontier point:
   - Lift bottoms within lift_search_radius -> ride to the lift top -> trail
     starts within trail_start_search_radius of the top
   - Trail starts within trail_start_search_radius of the point itself
     (trail-to-trail connections)
3. Score every newly reached trail the skill may ski with the preference
   matrix; hop value = max(preference) * discount(hop)
4. Next frontier = ends of the trails reached; repeat up to downstream_depth
5. Result = max over hops (not a sum: farther terrain matters only if it
   beats everything closer)

A start from which no lift is reachable within the horizon is a dead end and
is reported explicitly, never as a plain zero.

Caching
-------
Results are cached per (skill, point id, graph generation, tuning version).
When either the generation or the version differs from the cache epoch, the
whole cache is dropped before the lookup; entries are never partially
invalidated. Writes are idempotent, so concurrent recomputation of the same
key is harmless; the lock only guards the epoch swap.
"""

import logging
import threading
from dataclasses import dataclass
from typing import Mapping, Optional

from skiresort_traffic.model.skill import SkillLevel, is_allowed
from skiresort_traffic.model.snap_point import SnapPoint, SnapPointType
from skiresort_traffic.model.trail import Trail
from skiresort_traffic.model.tuning import TuningConfig
from skiresort_traffic.routing.connectivity_graph import ConnectivityGraph

logger = logging.getLogger(__name__)

CacheKey = tuple[SkillLevel, str, int, int]


@dataclass(frozen=True)
class DownstreamValue:
    """Result of a downstream lookahead.

    Attributes:
        value: Best discounted preference found (0.0 for dead ends)
        dead_end: True when no lift is reachable within the depth horizon
        best_hop: Hop at which the best value was found, None if nothing scored
        lifts_reached: Distinct lifts reachable within the horizon
    """

    value: float
    dead_end: bool
    best_hop: Optional[int] = None
    lifts_reached: int = 0


DEAD_END = DownstreamValue(value=0.0, dead_end=True)


class DownstreamValuePropagator:
    """Computes and caches downstream values over the connectivity graph.

    The graph is held by reference and always read through its current
    topology; the trail catalog supplies difficulties. Tuning is passed into
    every call.

    Example:
        propagator = DownstreamValuePropagator(graph=graph, trails=trails)
        result = propagator.value(skill=SkillLevel.EXPERT, point_id="T1/end", tuning=tuning)
        if result.dead_end: ...
    """

    def __init__(self, graph: ConnectivityGraph, trails: Mapping[str, Trail]) -> None:
        self.graph = graph
        self.trails = trails
        self._cache: dict[CacheKey, DownstreamValue] = {}
        self._epoch: tuple[int, int] = (-1, -1)
        self._lock = threading.Lock()
        self.computations = 0

    @property
    def cache_size(self) -> int:
        return len(self._cache)

    def clear(self) -> None:
        with self._lock:
            self._cache.clear()
            self._epoch = (-1, -1)

    def value(self, skill: SkillLevel, point_id: str, tuning: TuningConfig) -> DownstreamValue:
        """Downstream value for a skill standing at a snap point (cached)."""
        generation = self.graph.generation
        epoch = (generation, tuning.version)
        if self._epoch != epoch:
            with self._lock:
                if self._epoch != epoch:
                    if self._cache:
                        logger.debug(
                            f"Downstream cache invalidated ({len(self._cache)} entries): "
                            f"epoch {self._epoch} -> {epoch}"
                        )
                    self._cache = {}
                    self._epoch = epoch

        key = (skill, point_id, generation, tuning.version)
        cached = self._cache.get(key)
        if cached is not None:
            return cached

        result = self.compute(skill=skill, point_id=point_id, tuning=tuning)
        self._cache[key] = result
        return result

    def compute(
        self,
        skill: SkillLevel,
        point_id: str,
        tuning: TuningConfig,
        depth: Optional[int] = None,
    ) -> DownstreamValue:
        """Uncached breadth-first lookahead.

        Args:
            skill: Skill level whose preferences score the terrain
            point_id: Start snap point
            tuning: Tuning snapshot (radii, discounts, preferences)
            depth: Hop horizon, defaults to tuning.downstream_depth

        Returns:
            DownstreamValue; DEAD_END for unknown points or when no lift is reachable.
        """
        self.computations += 1
        start = self.graph.get(point_id)
        if start is None:
            return DEAD_END

        horizon = tuning.downstream_depth if depth is None else depth
        frontier: list[SnapPoint] = [start]
        visited_lifts: set[str] = set()
        visited_trails: set[str] = set()
        best = 0.0
        best_hop: Optional[int] = None

        for hop in range(1, horizon + 1):
            if not frontier:
                break
            reached: list[Trail] = []
            for point in frontier:
                for trail in self._trails_reached_from(point, tuning, visited_lifts, visited_trails, skill):
                    reached.append(trail)

            if reached:
                hop_best = max(tuning.preferences.weight(skill, t.difficulty) for t in reached)
                discounted = hop_best * tuning.discount_for_hop(hop)
                if discounted > best:
                    best = discounted
                    best_hop = hop

            frontier = [p for p in (self.graph.get(t.end_point_id) for t in reached) if p is not None]

        if not visited_lifts:
            return DEAD_END
        return DownstreamValue(value=best, dead_end=False, best_hop=best_hop, lifts_reached=len(visited_lifts))

    def _trails_reached_from(
        self,
        point: SnapPoint,
        tuning: TuningConfig,
        visited_lifts: set[str],
        visited_trails: set[str],
        skill: SkillLevel,
    ) -> list[Trail]:
        """Trails newly reached from one frontier point (mutates the visited sets)."""
        trail_starts: list[SnapPoint] = []

        for bottom in self.graph.nearest_of_type(point.location, SnapPointType.LIFT_BOTTOM, tuning.lift_search_radius):
            if bottom.owner_id in visited_lifts:
                continue
            top = self.graph.counterpart(bottom.id)
            if top is None:
                continue
            visited_lifts.add(bottom.owner_id)
            trail_starts.extend(
                self.graph.nearest_of_type(top.location, SnapPointType.TRAIL_START, tuning.trail_start_search_radius)
            )

        trail_starts.extend(
            self.graph.nearest_of_type(point.location, SnapPointType.TRAIL_START, tuning.trail_start_search_radius)
        )

        reached = []
        for start in trail_starts:
            trail = self.trails.get(start.owner_id)
            if trail is None or trail.id in visited_trails or trail.difficulty is None:
                continue
            if not is_allowed(skill, trail.difficulty):
                continue
            visited_trails.add(trail.id)
            reached.append(trail)
        return reached
