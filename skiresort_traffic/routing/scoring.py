"""Preference & Scoring Model - converts terrain value into selection weights.

Trail score for skill S and a trail of difficulty D:

    downstream   = Propagator(S, trail end)
    direct       = preferences[S][D]
    transitFloor = transit_floor_base + gap * transit_floor_gap_bonus   gap = S - D >= 0
                 = transit_floor_stretch                                D = S + 1
                 = 0                                                    otherwise
    score = dead_end_score                                              if downstream is a dead end
          = max(minimum_trail_score,
                direct_preference_weight * direct
                + downstream_weight * downstream * downstream_bonus_multiplier,
                transitFloor)                                           otherwise

Lift score = best trail score among trail starts near the lift top (the
dead-end score when the top leads nowhere), then multiplied by the lift
variety bonus for unridden lifts or the repeat penalty for ridden ones.

Selection is weighted-random over the final scores via a cumulative sum;
with probability jerry_chance the pick is uniform instead.
"""

import logging
from dataclasses import dataclass
from typing import Mapping, Sequence

import numpy as np

from skiresort_traffic.exceptions import ScoringConfigurationError
from skiresort_traffic.model.lift import Lift
from skiresort_traffic.model.skill import SkillLevel, TrailDifficulty, is_allowed, skill_gap
from skiresort_traffic.model.snap_point import SnapPointType
from skiresort_traffic.model.trail import Trail
from skiresort_traffic.model.tuning import TuningConfig
from skiresort_traffic.routing.connectivity_graph import ConnectivityGraph
from skiresort_traffic.routing.downstream import DownstreamValuePropagator

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TrailScore:
    """Score of a trail with the downstream result that produced it."""

    score: float
    downstream: float
    dead_end: bool


@dataclass(frozen=True)
class Selection:
    """Index picked by select() and whether the uniform pick was used."""

    index: int
    jerry: bool


class RouteScorer:
    """Scores trails and lifts for a skill level.

    Example:
        scorer = RouteScorer(propagator=propagator, graph=graph, trails=trails, lifts=lifts)
        scorer.score_trail(skill=SkillLevel.EXPERT, trail_id="T1", tuning=tuning).score
    """

    def __init__(
        self,
        propagator: DownstreamValuePropagator,
        graph: ConnectivityGraph,
        trails: Mapping[str, Trail],
        lifts: Mapping[str, Lift],
    ) -> None:
        self.propagator = propagator
        self.graph = graph
        self.trails = trails
        self.lifts = lifts

    @staticmethod
    def transit_floor(skill: SkillLevel, difficulty: TrailDifficulty, tuning: TuningConfig) -> float:
        """Minimum willingness to use a trail as a connector."""
        gap = skill_gap(skill, difficulty)
        if gap >= 0:
            return tuning.transit_floor_base + gap * tuning.transit_floor_gap_bonus
        if gap == -1:
            return tuning.transit_floor_stretch
        return 0.0

    def score_trail(self, skill: SkillLevel, trail_id: str, tuning: TuningConfig) -> TrailScore:
        trail = self.trails[trail_id]
        downstream = self.propagator.value(skill=skill, point_id=trail.end_point_id, tuning=tuning)
        if downstream.dead_end:
            return TrailScore(score=tuning.dead_end_score, downstream=0.0, dead_end=True)

        direct = tuning.preferences.weight(skill, trail.difficulty)
        blended = (
            tuning.direct_preference_weight * direct
            + tuning.downstream_weight * downstream.value * tuning.downstream_bonus_multiplier
        )
        score = max(
            tuning.minimum_trail_score,
            blended,
            self.transit_floor(skill, trail.difficulty, tuning),
        )
        return TrailScore(score=score, downstream=downstream.value, dead_end=False)

    def score_lift(self, skill: SkillLevel, lift_id: str, tuning: TuningConfig) -> TrailScore:
        """Best trail score reachable from the lift top (before the variety multiplier).

        Trails the skill may not ski are ignored; a top with nothing skiable
        scores as a dead end.
        """
        lift = self.lifts[lift_id]
        best: TrailScore | None = None
        for start in self.graph.nearest_of_type(lift.top, SnapPointType.TRAIL_START, tuning.trail_start_search_radius):
            trail = self.trails.get(start.owner_id)
            if trail is None or trail.difficulty is None or not is_allowed(skill, trail.difficulty):
                continue
            scored = self.score_trail(skill=skill, trail_id=trail.id, tuning=tuning)
            if best is None or scored.score > best.score:
                best = scored
        if best is None:
            return TrailScore(score=tuning.dead_end_score, downstream=0.0, dead_end=True)
        return best

    @staticmethod
    def lift_variety_multiplier(lift_id: str, ridden_lifts: set[str], tuning: TuningConfig) -> float:
        if lift_id in ridden_lifts:
            return tuning.lift_variety_repeat_penalty
        return tuning.lift_variety_new_bonus

    @staticmethod
    def select(scores: Sequence[float], rng: np.random.Generator, tuning: TuningConfig) -> Selection:
        """Weighted-random pick over scores.

        Draws u uniformly in [0, total) and returns the first index whose
        cumulative sum exceeds u. With probability jerry_chance the scores are
        ignored and the pick is uniform.

        Raises:
            ValueError: If scores is empty.
            ScoringConfigurationError: If the scores sum to zero.
        """
        if len(scores) == 0:
            raise ValueError("Cannot select from zero candidates")
        weights = np.asarray(scores, dtype=float)
        cumulative = np.cumsum(weights)
        total = float(cumulative[-1])
        if not total > 0.0:
            raise ScoringConfigurationError(
                f"All {len(scores)} candidate scores are zero; check minimum_trail_score and dead_end_score "
                f"(tuning v{tuning.version})"
            )

        if rng.random() < tuning.jerry_chance:
            return Selection(index=int(rng.integers(len(scores))), jerry=True)

        u = rng.random() * total
        index = int(np.searchsorted(cumulative, u, side="right"))
        return Selection(index=min(index, len(scores) - 1), jerry=False)
