"""Acceptance scenarios driven through the engine's public surface.

Each test builds its resort inline through the structure callbacks, ticks the
engine and checks what skiers decided.
"""

from collections import Counter
from typing import Callable

import pytest

from skiresort_traffic.model.base_lodge import BaseLodge
from skiresort_traffic.model.coordinate import Coordinate
from skiresort_traffic.model.decision import DecisionOutcome
from skiresort_traffic.model.lift import Lift
from skiresort_traffic.model.segment import SegmentRef
from skiresort_traffic.model.skill import SkillLevel, TrailDifficulty
from skiresort_traffic.model.trail import Trail
from skiresort_traffic.simulation.engine import SkierRoutingEngine


class TestReferenceLoop:
    """Base, green trail and lift from the scenario description."""

    @pytest.fixture
    def engine(self, new_engine: Callable[..., SkierRoutingEngine]) -> SkierRoutingEngine:
        engine = new_engine()
        engine.on_base_placed(BaseLodge(id="B1", name="Base", location=Coordinate(0.0, 0.0)))
        engine.on_trail_validated(
            Trail(
                id="T1", name="Green", points=[Coordinate(0.0, 1.0, 10.0), Coordinate(0.0, 5.0, 0.0)],
                difficulty=TrailDifficulty.GREEN,
            )
        )
        engine.on_lift_built(Lift(id="L1", name="Lift", bottom=Coordinate(0.0, 5.0, 0.0), top=Coordinate(0.0, 1.0, 10.0)))
        return engine

    def test_adjacent_pairs_connected(self, engine: SkierRoutingEngine) -> None:
        assert engine.graph.edges == {
            ("B1/spawn", "T1/start"),
            ("B1/spawn", "L1/top"),
            ("L1/top", "T1/start"),
            ("L1/bottom", "T1/end"),
        }

    def test_expert_green_score(self, engine: SkierRoutingEngine) -> None:
        tuning = engine.tuning_source.current()
        downstream = engine.propagator.value(SkillLevel.EXPERT, "T1/end", tuning).value
        expected = max(
            tuning.minimum_trail_score,
            tuning.direct_preference_weight * 0.02
            + tuning.downstream_weight * downstream * tuning.downstream_bonus_multiplier,
            tuning.transit_floor_base + 3 * tuning.transit_floor_gap_bonus,
        )
        agent_id = engine.spawn_skier(skill=SkillLevel.EXPERT)
        engine.tick()
        decision = engine.last_decision(agent_id)
        assert decision.point_id == "B1/spawn"
        assert decision.chosen.base_score == pytest.approx(expected)
        assert decision.chosen.goal_suggested  # the fresh goal points at T1, final score carries the bonus
        assert decision.score_for("T1") == pytest.approx(expected * tuning.goal_trail_bonus)


class TestNoViableRoute:
    """A lift to nowhere strands skiers at its top until a trail is built."""

    @pytest.fixture
    def engine(self, new_engine: Callable[..., SkierRoutingEngine]) -> SkierRoutingEngine:
        engine = new_engine()
        engine.on_base_placed(BaseLodge(id="B1", name="Base", location=Coordinate(0.0, 0.0)))
        engine.on_lift_built(Lift(id="L1", name="Lift", bottom=Coordinate(0.0, 1.0, 0.0), top=Coordinate(0.0, 7.0, 30.0)))
        return engine

    def test_stranded_then_rescued(self, engine: SkierRoutingEngine) -> None:
        agent_id = engine.spawn_skier(skill=SkillLevel.INTERMEDIATE)
        engine.tick()  # board L1 (6 long, 3 per tick)
        engine.tick()
        report = engine.tick()  # arrive at the top, nothing to ski

        decision = engine.last_decision(agent_id)
        assert decision.outcome is DecisionOutcome.NO_VIABLE_ROUTE
        assert decision.point_id == "L1/top"
        assert report.parked == (agent_id,)
        assert engine.agents[agent_id].parked

        position = engine.position(agent_id)
        report = engine.tick()
        assert engine.position(agent_id) == position
        assert engine.current_segment(agent_id) is None
        assert report.parked == (agent_id,)

        engine.on_trail_validated(
            Trail(
                id="T1", name="Way Down", points=[Coordinate(1.0, 7.0, 30.0), Coordinate(1.0, 0.5, 0.0)],
                difficulty=TrailDifficulty.BLUE,
            )
        )
        report = engine.tick()
        assert report.parked == ()
        assert engine.current_segment(agent_id) == SegmentRef.trail("T1")
        assert not engine.agents[agent_id].parked


class TestDesperation:
    """Skiers take terrain beyond their cap only when nothing else is reachable."""

    def test_beginner_takes_only_black_way_down(self, new_engine: Callable[..., SkierRoutingEngine]) -> None:
        engine = new_engine()
        engine.on_base_placed(BaseLodge(id="B1", name="Base", location=Coordinate(0.0, 0.0)))
        engine.on_lift_built(Lift(id="L1", name="Lift", bottom=Coordinate(0.0, 1.0, 0.0), top=Coordinate(0.0, 7.0, 30.0)))
        engine.on_trail_validated(
            Trail(
                id="T9", name="Wall", points=[Coordinate(1.0, 7.0, 30.0), Coordinate(1.0, 0.5, 0.0)],
                difficulty=TrailDifficulty.BLACK,
            )
        )
        agent_id = engine.spawn_skier(skill=SkillLevel.BEGINNER)
        engine.run(ticks=3)

        decision = engine.last_decision(agent_id)
        assert decision.point_id == "L1/top"
        assert decision.chosen.candidate.desperate
        assert engine.current_segment(agent_id) == SegmentRef.trail("T9")


class TestJerry:
    """Uniform picks when jerry_chance is 1."""

    def test_choices_ignore_scores(self, new_engine: Callable[..., SkierRoutingEngine]) -> None:
        """Expert at a lift top with a double black and a green: ~50/50 over many skiers."""
        engine = new_engine(seed=11, jerry_chance=1.0)
        engine.on_base_placed(BaseLodge(id="B1", name="Base", location=Coordinate(0.0, 0.0)))
        engine.on_lift_built(Lift(id="L1", name="Lift", bottom=Coordinate(0.0, 1.0, 0.0), top=Coordinate(0.0, 7.0, 30.0)))
        engine.on_trail_validated(
            Trail(
                id="T1", name="Easy", points=[Coordinate(1.0, 7.0, 30.0), Coordinate(1.0, 0.5, 0.0)],
                difficulty=TrailDifficulty.GREEN,
            )
        )
        engine.on_trail_validated(
            Trail(
                id="T2", name="Steep", points=[Coordinate(-1.0, 7.0, 30.0), Coordinate(-1.0, 0.5, 0.0)],
                difficulty=TrailDifficulty.DOUBLE_BLACK,
            )
        )
        agent_ids = [engine.spawn_skier(skill=SkillLevel.EXPERT) for _ in range(400)]
        engine.run(ticks=3)

        picks = Counter(engine.last_decision(i).chosen.structure_id for i in agent_ids)
        assert set(picks) == {"T1", "T2"}
        assert 140 < picks["T1"] < 260
        assert all(engine.last_decision(i).jerry for i in agent_ids)
