"""SkierAgent - one autonomous visitor.

An agent is either standing at a snap point (deciding, or parked when no route
exists) or travelling along a segment with a progress fraction in [0, 1].
Its goal lives in its own GoalStateMachine, so an agent has at most one live
Goal at a time.
"""

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Optional

from skiresort_traffic.model.goal import Goal
from skiresort_traffic.model.segment import SegmentRef
from skiresort_traffic.model.skill import SkillLevel

if TYPE_CHECKING:
    from skiresort_traffic.routing.goal_planner import GoalStateMachine


@dataclass
class SkierAgent:
    """A skier moving through the resort.

    Attributes:
        id: Unique positive integer id (also keys the agent's random stream)
        skill: Skill level
        point_id: Snap point the agent stands at, None while travelling
        segment: Lift or trail being travelled, None while standing
        progress: Fraction of the segment covered
        ridden_lifts: Lift ids ridden this visit
        runs_completed: Trails finished this visit
        desired_runs: Runs after which the agent heads home
        parked: True while waiting at a point with no viable route
        evaluated_junctions: Alternative trail ids already judged on the current run
        goal_machine: Goal planner state machine (attached by the engine)
    """

    id: int
    skill: SkillLevel
    point_id: Optional[str]
    segment: Optional[SegmentRef] = None
    progress: float = 0.0
    ridden_lifts: set[str] = field(default_factory=set)
    runs_completed: int = 0
    desired_runs: int = 1
    parked: bool = False
    evaluated_junctions: set[str] = field(default_factory=set)
    goal_machine: Optional["GoalStateMachine"] = field(default=None, repr=False, compare=False)

    def __post_init__(self) -> None:
        if self.id <= 0:
            raise ValueError(f"Skier id must be positive, got {self.id}")

    @property
    def goal(self) -> Optional[Goal]:
        """The live goal, if any."""
        if self.goal_machine is None:
            return None
        return self.goal_machine.context.goal

    @property
    def is_travelling(self) -> bool:
        return self.segment is not None

    @property
    def wants_to_leave(self) -> bool:
        return self.runs_completed >= self.desired_runs

    def board(self, segment: SegmentRef) -> None:
        """Leave the current point and start along a segment."""
        self.point_id = None
        self.segment = segment
        self.progress = 0.0
        self.parked = False
        self.evaluated_junctions.clear()
        if segment.is_lift:
            self.ridden_lifts.add(segment.structure_id)

    def arrive(self, point_id: str) -> Optional[SegmentRef]:
        """Finish the current segment at its end point.

        Returns:
            The segment just completed.
        """
        finished = self.segment
        self.segment = None
        self.progress = 0.0
        self.point_id = point_id
        self.evaluated_junctions.clear()
        if finished is not None and finished.is_trail:
            self.runs_completed += 1
        return finished

    def switch_trail(self, trail_id: str, progress: float) -> None:
        """Move onto another trail mid-run at the given fraction.

        The abandoned trail counts as an evaluated junction, so the agent does
        not switch straight back to it.
        """
        if self.segment is not None:
            self.evaluated_junctions.add(self.segment.structure_id)
        self.segment = SegmentRef.trail(trail_id)
        self.progress = min(max(progress, 0.0), 1.0)

    def place_at(self, point_id: str) -> None:
        """Put the agent at a point without completing anything."""
        self.segment = None
        self.progress = 0.0
        self.point_id = point_id
        self.evaluated_junctions.clear()

    def __repr__(self) -> str:
        where = str(self.segment) + f"@{self.progress:.2f}" if self.segment else self.point_id
        return f"SkierAgent({self.id}, {self.skill.label}, {where}, runs={self.runs_completed}/{self.desired_runs})"
