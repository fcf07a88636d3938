"""Goal - an agent's planned multi-hop destination.

A Goal names a target snap point and the ordered lifts/trails that lead there.
The next step of the route is the "suggested next" segment, which receives a
scoring bonus while the goal is live. Goals remember the graph generation and
tuning version they were computed against so staleness is a cheap check.
"""

from dataclasses import dataclass
from typing import Optional

from skiresort_traffic.model.segment import SegmentKind, SegmentRef


@dataclass(frozen=True)
class PathStep:
    """One ride or run along a goal route."""

    segment: SegmentRef

    @property
    def structure_id(self) -> str:
        return self.segment.structure_id

    @property
    def is_ride(self) -> bool:
        return self.segment.kind is SegmentKind.LIFT

    def __str__(self) -> str:
        verb = "RideLift" if self.is_ride else "SkiTrail"
        return f"{verb}({self.structure_id})"


@dataclass
class Goal:
    """A planned destination.

    Attributes:
        target_point_id: Snap point the route leads to
        destination_id: Trail to ski at the target, or the base lodge id when returning
        steps: Lifts and trails to take before reaching the target
        generation: Graph generation the route was computed on
        tuning_version: Tuning version the route was computed with
        returning_to_base: True for end-of-visit goals
        step_index: Index of the next step to take
        stale: Set when the goal must not be acted on any more
    """

    target_point_id: str
    destination_id: str
    steps: tuple[PathStep, ...]
    generation: int
    tuning_version: int
    returning_to_base: bool = False
    step_index: int = 0
    stale: bool = False

    @property
    def suggested_next_id(self) -> Optional[str]:
        """Lift or trail the agent should take next, if any."""
        if self.step_index < len(self.steps):
            return self.steps[self.step_index].structure_id
        if self.returning_to_base:
            return None
        return self.destination_id

    @property
    def remaining_steps(self) -> tuple[PathStep, ...]:
        return self.steps[self.step_index :]

    @property
    def route_complete(self) -> bool:
        return self.step_index >= len(self.steps)

    def advance(self, structure_id: str) -> bool:
        """Record that the agent took a segment.

        Returns:
            True if it was the suggested next step of the route.
        """
        if self.step_index < len(self.steps) and self.steps[self.step_index].structure_id == structure_id:
            self.step_index += 1
            return True
        return False

    def __repr__(self) -> str:
        route = " -> ".join(str(s) for s in self.remaining_steps) or "-"
        return f"Goal(target={self.target_point_id}, dest={self.destination_id}, route={route})"
