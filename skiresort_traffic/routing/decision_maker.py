"""DecisionMaker - picks an agent's next segment at a snap point.

Candidate discovery:
    at a lift top:   trails starting within trail_start_search_radius
    anywhere else:   lifts whose bottom is within lift_search_radius
                     + trails starting within trail_start_search_radius

Trails beyond the agent's hard cap are dropped unless nothing else is
reachable (desperation fallback). Each remaining candidate is scored by the
RouteScorer, lift candidates get the variety multiplier, the live goal's
suggested segment gets goal_trail_bonus, and one candidate is drawn.
"""

import logging
from typing import Mapping, Optional

import numpy as np

from skiresort_traffic.model.decision import Candidate, CandidateScore, Decision, DecisionOutcome
from skiresort_traffic.model.goal import Goal
from skiresort_traffic.model.lift import Lift
from skiresort_traffic.model.segment import SegmentRef
from skiresort_traffic.model.skier import SkierAgent
from skiresort_traffic.model.skill import is_allowed
from skiresort_traffic.model.snap_point import SnapPoint, SnapPointType
from skiresort_traffic.model.trail import Trail
from skiresort_traffic.model.tuning import TuningConfig
from skiresort_traffic.routing.connectivity_graph import ConnectivityGraph
from skiresort_traffic.routing.scoring import RouteScorer

logger = logging.getLogger(__name__)


class DecisionMaker:
    """Builds, scores and selects candidates for one agent at one point."""

    def __init__(
        self,
        graph: ConnectivityGraph,
        scorer: RouteScorer,
        trails: Mapping[str, Trail],
        lifts: Mapping[str, Lift],
    ) -> None:
        self.graph = graph
        self.scorer = scorer
        self.trails = trails
        self.lifts = lifts

    def candidates_at(self, point: SnapPoint, agent: SkierAgent, tuning: TuningConfig) -> list[Candidate]:
        """Segments the agent can board from a snap point."""
        allowed: list[Candidate] = []
        desperate: list[Candidate] = []

        if point.type is not SnapPointType.LIFT_TOP:
            for bottom in self.graph.nearest_of_type(point.location, SnapPointType.LIFT_BOTTOM, tuning.lift_search_radius):
                if bottom.owner_id in self.lifts:
                    allowed.append(Candidate(segment=SegmentRef.lift(bottom.owner_id), entry_point_id=bottom.id))

        for start in self.graph.nearest_of_type(point.location, SnapPointType.TRAIL_START, tuning.trail_start_search_radius):
            trail = self.trails.get(start.owner_id)
            if trail is None or trail.difficulty is None:
                continue
            candidate = Candidate(
                segment=SegmentRef.trail(trail.id),
                entry_point_id=start.id,
                difficulty=trail.difficulty,
            )
            if is_allowed(agent.skill, trail.difficulty):
                allowed.append(candidate)
            else:
                desperate.append(Candidate(candidate.segment, candidate.entry_point_id, trail.difficulty, desperate=True))

        if allowed:
            return allowed
        if desperate:
            logger.warning(
                f"Skier {agent.id} ({agent.skill.label}) at {point.id} has only trails beyond its skill; "
                f"offering {len(desperate)} in desperation"
            )
        return desperate

    def score(
        self,
        candidates: list[Candidate],
        agent: SkierAgent,
        tuning: TuningConfig,
        goal: Optional[Goal],
    ) -> list[CandidateScore]:
        """Score every candidate, applying lift variety and the goal bonus."""
        suggested = goal.suggested_next_id if goal is not None and not goal.stale else None
        scores = []
        for candidate in candidates:
            segment = candidate.segment
            multiplier = 1.0
            if segment.is_lift:
                result = self.scorer.score_lift(skill=agent.skill, lift_id=segment.structure_id, tuning=tuning)
                multiplier *= RouteScorer.lift_variety_multiplier(segment.structure_id, agent.ridden_lifts, tuning)
            else:
                result = self.scorer.score_trail(skill=agent.skill, trail_id=segment.structure_id, tuning=tuning)
            is_suggested = suggested is not None and segment.structure_id == suggested
            if is_suggested:
                multiplier *= tuning.goal_trail_bonus
            scores.append(
                CandidateScore(
                    candidate=candidate,
                    base_score=result.score,
                    multiplier=multiplier,
                    final_score=result.score * multiplier,
                    dead_end=result.dead_end,
                    goal_suggested=is_suggested,
                )
            )
        return scores

    def decide(
        self,
        agent: SkierAgent,
        point: SnapPoint,
        tuning: TuningConfig,
        rng: np.random.Generator,
        tick: int,
        goal: Optional[Goal] = None,
    ) -> Decision:
        """Choose the agent's next segment at a point.

        Returns:
            Decision with outcome CHOSEN, or NO_VIABLE_ROUTE when nothing is reachable.

        Raises:
            ScoringConfigurationError: If every candidate scored zero.
        """
        candidates = self.candidates_at(point=point, agent=agent, tuning=tuning)
        if not candidates:
            logger.warning(f"Skier {agent.id} has no viable route at {point.id}")
            return Decision.no_viable_route(agent_id=agent.id, tick=tick, point_id=point.id)

        scores = self.score(candidates=candidates, agent=agent, tuning=tuning, goal=goal)
        selection = RouteScorer.select([s.final_score for s in scores], rng=rng, tuning=tuning)
        chosen = scores[selection.index]

        decision = Decision(
            agent_id=agent.id,
            tick=tick,
            point_id=point.id,
            outcome=DecisionOutcome.CHOSEN,
            scores=tuple(scores),
            chosen=chosen,
            jerry=selection.jerry,
        )
        self._log_decision(decision=decision, agent=agent, tuning=tuning)
        return decision

    def _log_decision(self, decision: Decision, agent: SkierAgent, tuning: TuningConfig) -> None:
        debug_skier = tuning.is_debug_skier(agent.id)
        if not debug_skier and not logger.isEnabledFor(logging.DEBUG):
            return
        level = logging.INFO if debug_skier else logging.DEBUG
        for s in decision.scores:
            is_lift = s.candidate.segment.is_lift
            if debug_skier and ((is_lift and not tuning.log_lift_scores) or (not is_lift and not tuning.log_trail_scores)):
                continue
            flags = " dead-end" if s.dead_end else ""
            flags += " goal" if s.goal_suggested else ""
            logger.log(
                level,
                f"Skier {agent.id} ({agent.skill.label}) @ {decision.point_id}: {s.candidate.segment} "
                f"base={s.base_score:.3f} x{s.multiplier:.2f} = {s.final_score:.3f}{flags}",
            )
        pick = "jerry" if decision.jerry else "weighted"
        logger.log(level, f"Skier {agent.id} chose {decision.chosen.candidate.segment} ({pick})")
