"""Decision records - what an agent considered and chose at a snap point.

Decisions are immutable snapshots. The engine keeps the latest one per agent
for debug overlays; reading them has no effect on the simulation.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from skiresort_traffic.model.segment import SegmentRef
from skiresort_traffic.model.skill import TrailDifficulty


class DecisionOutcome(Enum):
    CHOSEN = "Chosen"
    NO_VIABLE_ROUTE = "NoViableRoute"


@dataclass(frozen=True)
class Candidate:
    """A segment reachable from the agent's current snap point.

    Attributes:
        segment: The lift or trail
        entry_point_id: Snap point where the segment is boarded
        difficulty: Trail difficulty (None for lifts)
        desperate: True when offered only because nothing allowed was reachable
    """

    segment: SegmentRef
    entry_point_id: str
    difficulty: Optional[TrailDifficulty] = None
    desperate: bool = False


@dataclass(frozen=True)
class CandidateScore:
    """Score breakdown for one candidate.

    Attributes:
        candidate: The scored candidate
        base_score: Trail score, or best trail score at a lift's top
        multiplier: Lift variety and goal bonus factors combined
        final_score: base_score * multiplier, the selection weight
        dead_end: True when the base score is the dead-end score
        goal_suggested: True when this is the live goal's suggested next segment
    """

    candidate: Candidate
    base_score: float
    multiplier: float
    final_score: float
    dead_end: bool = False
    goal_suggested: bool = False

    @property
    def structure_id(self) -> str:
        return self.candidate.segment.structure_id


@dataclass(frozen=True)
class Decision:
    """Result of one decision at a snap point.

    Attributes:
        agent_id: Deciding agent
        tick: Simulation tick of the decision
        point_id: Snap point the agent decided at
        outcome: CHOSEN or NO_VIABLE_ROUTE
        scores: Every candidate's score, in candidate order
        chosen: Selected candidate's score (None for NO_VIABLE_ROUTE)
        jerry: True when the uniform random pick was used
    """

    agent_id: int
    tick: int
    point_id: str
    outcome: DecisionOutcome
    scores: tuple[CandidateScore, ...] = ()
    chosen: Optional[CandidateScore] = None
    jerry: bool = False

    @property
    def is_viable(self) -> bool:
        return self.outcome is DecisionOutcome.CHOSEN

    def score_for(self, structure_id: str) -> Optional[float]:
        """Final score of the candidate with the given structure id, if it was considered."""
        for s in self.scores:
            if s.structure_id == structure_id:
                return s.final_score
        return None

    @classmethod
    def no_viable_route(cls, agent_id: int, tick: int, point_id: str) -> "Decision":
        return cls(agent_id=agent_id, tick=tick, point_id=point_id, outcome=DecisionOutcome.NO_VIABLE_ROUTE)
