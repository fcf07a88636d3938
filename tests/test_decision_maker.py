"""Tests for DecisionMaker: candidate discovery, multipliers and decide().

Test Coverage:
    - Lifts and trails offered at a spawn, trails only at a lift top
    - Hard caps with the desperation fallback
    - Lift variety and goal bonus multipliers
    - CHOSEN and NO_VIABLE_ROUTE decisions
"""

import numpy as np
import pytest
from resort_builders import ResortFixture, build_resort, make_base, make_lift, make_trail

from skiresort_traffic.model.decision import DecisionOutcome
from skiresort_traffic.model.goal import Goal
from skiresort_traffic.model.segment import SegmentRef
from skiresort_traffic.model.skier import SkierAgent
from skiresort_traffic.model.skill import SkillLevel, TrailDifficulty
from skiresort_traffic.model.tuning import TuningConfig


def _agent(skill: SkillLevel, point_id: str, ridden: set[str] | None = None) -> SkierAgent:
    return SkierAgent(id=1, skill=skill, point_id=point_id, ridden_lifts=set(ridden or ()))


@pytest.fixture
def two_greens() -> ResortFixture:
    """Two green trails starting next to the base, both ending nowhere."""
    return build_resort(
        [
            make_base("B1", 0.0, 0.0),
            make_trail("T1", [(0.0, 1.0, 10.0), (0.0, 5.0, 0.0)], TrailDifficulty.GREEN),
            make_trail("T2", [(1.0, 0.0, 10.0), (5.0, 0.0, 0.0)], TrailDifficulty.GREEN),
        ]
    )


class TestCandidates:
    """Candidate discovery by snap point type."""

    def test_spawn_offers_nearby_trail(self, scenario_resort: ResortFixture, tuning: TuningConfig) -> None:
        point = scenario_resort.graph.get("B1/spawn")
        candidates = scenario_resort.decision_maker.candidates_at(point, _agent(SkillLevel.BEGINNER, point.id), tuning)
        assert [c.segment for c in candidates] == [SegmentRef.trail("T1")]
        assert candidates[0].entry_point_id == "T1/start"
        assert candidates[0].difficulty is TrailDifficulty.GREEN

    def test_trail_end_offers_lift(self, scenario_resort: ResortFixture, tuning: TuningConfig) -> None:
        point = scenario_resort.graph.get("T1/end")
        candidates = scenario_resort.decision_maker.candidates_at(point, _agent(SkillLevel.BEGINNER, point.id), tuning)
        assert [c.segment for c in candidates] == [SegmentRef.lift("L1")]

    def test_lift_top_offers_trails_only(self, scenario_structures: list, tuning: TuningConfig) -> None:
        """L2's bottom sits 1.4 units from L1's top: reachable from the spawn, not from the lift top."""
        resort = build_resort(scenario_structures + [make_lift("L2", (1.0, 1.0, 10.0), (1.0, 9.0, 30.0))])
        agent = _agent(SkillLevel.BEGINNER, "L1/top")

        at_top = resort.decision_maker.candidates_at(resort.graph.get("L1/top"), agent, tuning)
        assert [c.segment for c in at_top] == [SegmentRef.trail("T1")]

        at_spawn = resort.decision_maker.candidates_at(resort.graph.get("B1/spawn"), agent, tuning)
        assert {c.segment for c in at_spawn} == {SegmentRef.trail("T1"), SegmentRef.lift("L2")}


class TestHardCaps:
    """Trails beyond the skill cap are desperate-only."""

    @pytest.fixture
    def black_only(self) -> ResortFixture:
        return build_resort(
            [
                make_base("B1", 0.0, 0.0),
                make_trail("T9", [(0.0, 1.0, 10.0), (0.0, 5.0, 0.0)], TrailDifficulty.BLACK),
            ]
        )

    def test_desperation_fallback(self, black_only: ResortFixture, tuning: TuningConfig) -> None:
        point = black_only.graph.get("B1/spawn")
        candidates = black_only.decision_maker.candidates_at(point, _agent(SkillLevel.BEGINNER, point.id), tuning)
        assert [c.segment.structure_id for c in candidates] == ["T9"]
        assert candidates[0].desperate

    def test_allowed_trail_not_desperate(self, black_only: ResortFixture, tuning: TuningConfig) -> None:
        point = black_only.graph.get("B1/spawn")
        candidates = black_only.decision_maker.candidates_at(point, _agent(SkillLevel.INTERMEDIATE, point.id), tuning)
        assert not candidates[0].desperate

    def test_allowed_option_hides_desperate_ones(self, black_only: ResortFixture, tuning: TuningConfig) -> None:
        black_only.add(make_trail("T1", [(1.0, 0.0, 10.0), (5.0, 0.0, 0.0)], TrailDifficulty.GREEN))
        point = black_only.graph.get("B1/spawn")
        candidates = black_only.decision_maker.candidates_at(point, _agent(SkillLevel.BEGINNER, point.id), tuning)
        assert [c.segment.structure_id for c in candidates] == ["T1"]


class TestMultipliers:
    """Lift variety and goal bonus."""

    @pytest.mark.parametrize("ridden,expected", [(set(), 1.4), ({"L1"}, 0.85)])
    def test_lift_variety(
        self, scenario_resort: ResortFixture, tuning: TuningConfig, ridden: set[str], expected: float
    ) -> None:
        dm = scenario_resort.decision_maker
        point = scenario_resort.graph.get("T1/end")
        agent = _agent(SkillLevel.BEGINNER, point.id, ridden)
        (score,) = dm.score(dm.candidates_at(point, agent, tuning), agent, tuning, goal=None)
        assert score.base_score == pytest.approx(1.2)  # best trail at the top: T1 for a beginner
        assert score.multiplier == pytest.approx(expected)
        assert score.final_score == pytest.approx(1.2 * expected)

    def test_goal_bonus_on_suggested_segment(self, two_greens: ResortFixture, tuning: TuningConfig) -> None:
        dm = two_greens.decision_maker
        point = two_greens.graph.get("B1/spawn")
        agent = _agent(SkillLevel.BEGINNER, point.id)
        goal = Goal(target_point_id="T2/start", destination_id="T2", steps=(), generation=0, tuning_version=0)

        scores = {s.structure_id: s for s in dm.score(dm.candidates_at(point, agent, tuning), agent, tuning, goal)}
        assert scores["T2"].goal_suggested
        assert scores["T2"].final_score == pytest.approx(scores["T2"].base_score * 1.2)
        assert not scores["T1"].goal_suggested
        assert scores["T1"].multiplier == 1.0

    def test_stale_goal_gives_no_bonus(self, two_greens: ResortFixture, tuning: TuningConfig) -> None:
        dm = two_greens.decision_maker
        point = two_greens.graph.get("B1/spawn")
        agent = _agent(SkillLevel.BEGINNER, point.id)
        goal = Goal(target_point_id="T2/start", destination_id="T2", steps=(), generation=0, tuning_version=0, stale=True)
        scores = dm.score(dm.candidates_at(point, agent, tuning), agent, tuning, goal)
        assert not any(s.goal_suggested for s in scores)


class TestDecide:
    """Full decisions."""

    def test_single_candidate_is_chosen(self, scenario_resort: ResortFixture, tuning: TuningConfig) -> None:
        point = scenario_resort.graph.get("B1/spawn")
        decision = scenario_resort.decision_maker.decide(
            _agent(SkillLevel.EXPERT, point.id), point, tuning, np.random.default_rng(0), tick=4
        )
        assert decision.outcome is DecisionOutcome.CHOSEN
        assert decision.is_viable
        assert decision.tick == 4
        assert decision.chosen.candidate.segment == SegmentRef.trail("T1")
        assert decision.score_for("T1") == pytest.approx(0.24)
        assert decision.score_for("L1") is None

    def test_no_viable_route(self, chain_resort: ResortFixture, tuning: TuningConfig) -> None:
        point = chain_resort.graph.get("T3/end")
        decision = chain_resort.decision_maker.decide(
            _agent(SkillLevel.EXPERT, point.id), point, tuning, np.random.default_rng(0), tick=0
        )
        assert decision.outcome is DecisionOutcome.NO_VIABLE_ROUTE
        assert decision.chosen is None
        assert decision.scores == ()

    def test_same_stream_same_choice(self, two_greens: ResortFixture, tuning: TuningConfig) -> None:
        point = two_greens.graph.get("B1/spawn")
        agent = _agent(SkillLevel.BEGINNER, point.id)
        picks = [
            two_greens.decision_maker.decide(agent, point, tuning, np.random.default_rng(11), tick=0).chosen.structure_id
            for _ in range(3)
        ]
        assert len(set(picks)) == 1
