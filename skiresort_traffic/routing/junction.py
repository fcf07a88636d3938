"""Junction Switch Evaluator - stochastic mid-trail rerouting.

While a skier is on a trail, trails passing within junction_detection_radius
of its position are junction alternatives. Continuing is worth the current
trail's score; an alternative is worth its own score. With
delta = best alternative - current, the first matching rule decides:

    1. delta >= junction_major_threshold     -> switch with junction_major_switch_chance
    2. delta >= junction_moderate_threshold  -> switch with junction_moderate_switch_chance
    3. alternative >= junction_exploration_min_value
                                             -> switch with junction_exploration_chance
    4. otherwise                             -> stay

Each alternative is judged at most once per run, so a skier riding past a
long parallel trail does not flip back and forth.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Mapping, Optional

import numpy as np

from skiresort_traffic.core.geometry import PlanGeometry
from skiresort_traffic.model.coordinate import Coordinate
from skiresort_traffic.model.skier import SkierAgent
from skiresort_traffic.model.skill import is_allowed
from skiresort_traffic.model.trail import Trail
from skiresort_traffic.model.tuning import TuningConfig
from skiresort_traffic.routing.scoring import RouteScorer

logger = logging.getLogger(__name__)


class SwitchRule(Enum):
    MAJOR = "major"
    MODERATE = "moderate"
    EXPLORATION = "exploration"
    NONE = "none"


@dataclass(frozen=True)
class JunctionDecision:
    """Outcome of one junction evaluation.

    Attributes:
        current_trail_id: Trail the skier is on
        alternative_id: Best alternative seen
        current_value: Score of continuing
        alternative_value: Score of the best alternative
        rule: First rule that matched
        switched: True if the skier moves onto the alternative
        entry_fraction: Position on the alternative where the skier joins it
    """

    current_trail_id: str
    alternative_id: str
    current_value: float
    alternative_value: float
    rule: SwitchRule
    switched: bool
    entry_fraction: float = 0.0

    @property
    def delta(self) -> float:
        return self.alternative_value - self.current_value


class JunctionSwitchEvaluator:
    """Evaluates mid-trail switches for one skier at a time."""

    def __init__(self, scorer: RouteScorer, trails: Mapping[str, Trail]) -> None:
        self.scorer = scorer
        self.trails = trails

    def alternatives_near(self, position: Coordinate, current_trail_id: str, agent: SkierAgent, tuning: TuningConfig) -> list[Trail]:
        """Other skiable trails whose geometry passes within the detection radius."""
        found = []
        for trail in self.trails.values():
            if trail.id == current_trail_id or trail.difficulty is None:
                continue
            if not is_allowed(agent.skill, trail.difficulty):
                continue
            if PlanGeometry.distance_to_line(trail.line, position.x, position.y) <= tuning.junction_detection_radius:
                found.append(trail)
        return found

    @staticmethod
    def choose_rule(delta: float, alternative_value: float, tuning: TuningConfig) -> tuple[SwitchRule, float]:
        """First matching rule and its switch probability."""
        if delta >= tuning.junction_major_threshold:
            return SwitchRule.MAJOR, tuning.junction_major_switch_chance
        if delta >= tuning.junction_moderate_threshold:
            return SwitchRule.MODERATE, tuning.junction_moderate_switch_chance
        if alternative_value >= tuning.junction_exploration_min_value:
            return SwitchRule.EXPLORATION, tuning.junction_exploration_chance
        return SwitchRule.NONE, 0.0

    def evaluate(
        self,
        agent: SkierAgent,
        position: Coordinate,
        tuning: TuningConfig,
        rng: np.random.Generator,
    ) -> Optional[JunctionDecision]:
        """Judge junctions not yet evaluated on this run.

        Marks every newly seen alternative as evaluated, whatever the outcome.

        Returns:
            JunctionDecision for the best new alternative, or None when there is no new junction.
        """
        if agent.segment is None or not agent.segment.is_trail:
            return None
        current_id = agent.segment.structure_id

        fresh = [
            t
            for t in self.alternatives_near(position, current_id, agent, tuning)
            if t.id not in agent.evaluated_junctions
        ]
        if not fresh:
            return None
        agent.evaluated_junctions.update(t.id for t in fresh)

        current_value = self.scorer.score_trail(skill=agent.skill, trail_id=current_id, tuning=tuning).score
        scored = [(self.scorer.score_trail(skill=agent.skill, trail_id=t.id, tuning=tuning).score, t.id, t) for t in fresh]
        best_value, _, best = max(scored, key=lambda s: (s[0], s[1]))

        rule, chance = self.choose_rule(best_value - current_value, best_value, tuning)
        switched = rule is not SwitchRule.NONE and rng.random() < chance
        entry = PlanGeometry.project(best.line, position.x, position.y) if switched else 0.0

        decision = JunctionDecision(
            current_trail_id=current_id,
            alternative_id=best.id,
            current_value=current_value,
            alternative_value=best_value,
            rule=rule,
            switched=switched,
            entry_fraction=entry,
        )
        if switched:
            logger.debug(
                f"Skier {agent.id} switched {current_id} -> {best.id} at junction "
                f"({rule.value}, delta={decision.delta:+.3f})"
            )
        return decision
