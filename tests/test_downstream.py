"""Tests for DownstreamValuePropagator.

Uses the chain resort from conftest.py:
    B1 -> L1 -> T1 green -> L2 -> T2 black -> L3 -> T3 double black -> nowhere

Expert values from B1/spawn with default preferences and discounts:
    hop 1: T1 green         0.02 * 1.00 = 0.020
    hop 2: T2 black         0.30 * 0.65 = 0.195
    hop 3: T3 double black  0.58 * 0.40 = 0.232
"""

import pytest
from resort_builders import ResortFixture, small_radius_tuning

from skiresort_traffic.model.skill import SkillLevel
from skiresort_traffic.model.tuning import TuningConfig
from skiresort_traffic.routing.downstream import DEAD_END


class TestLookahead:
    """Hop-by-hop discounted lookahead."""

    @pytest.mark.parametrize(
        "depth,expected,best_hop",
        [(1, 0.02, 1), (2, 0.195, 2), (3, 0.232, 3), (4, 0.232, 3)],
    )
    def test_expert_chain_values(
        self, chain_resort: ResortFixture, tuning: TuningConfig, depth: int, expected: float, best_hop: int
    ) -> None:
        result = chain_resort.propagator.compute(SkillLevel.EXPERT, "B1/spawn", tuning, depth=depth)
        assert result.value == pytest.approx(expected)
        assert result.best_hop == best_hop
        assert not result.dead_end

    def test_depth_monotonicity(self, chain_resort: ResortFixture, tuning: TuningConfig) -> None:
        for skill in SkillLevel:
            values = [chain_resort.propagator.compute(skill, "B1/spawn", tuning, depth=d).value for d in range(1, 6)]
            assert values == sorted(values), f"{skill.label}: {values}"

    def test_hard_capped_trails_not_traversed(self, chain_resort: ResortFixture, tuning: TuningConfig) -> None:
        """Intermediates cannot ski T3, so the best they see is T1 green at hop 1 (0.20)."""
        result = chain_resort.propagator.compute(SkillLevel.INTERMEDIATE, "B1/spawn", tuning)
        assert result.value == pytest.approx(0.20)
        assert result.best_hop == 1

    def test_lifts_reached_counted(self, chain_resort: ResortFixture, tuning: TuningConfig) -> None:
        assert chain_resort.propagator.compute(SkillLevel.EXPERT, "B1/spawn", tuning).lifts_reached == 3

    def test_max_not_sum(self, chain_resort: ResortFixture) -> None:
        """With a flat discount the farthest double black dominates, it is not added up."""
        flat = small_radius_tuning(depth_discount_2_hop=1.0, depth_discount_3_hop=1.0)
        result = chain_resort.propagator.compute(SkillLevel.EXPERT, "B1/spawn", flat)
        assert result.value == pytest.approx(0.58)


class TestDeadEnds:
    """Dead ends are explicit, not zeros."""

    def test_trail_end_without_lift_is_dead_end(self, chain_resort: ResortFixture, tuning: TuningConfig) -> None:
        assert chain_resort.propagator.compute(SkillLevel.EXPERT, "T3/end", tuning) == DEAD_END

    def test_unknown_point_is_dead_end(self, chain_resort: ResortFixture, tuning: TuningConfig) -> None:
        assert chain_resort.propagator.value(SkillLevel.EXPERT, "nowhere", tuning).dead_end

    def test_lift_to_nothing_is_not_dead_end(self, chain_resort: ResortFixture, tuning: TuningConfig) -> None:
        """A reachable lift means the skier can keep moving, even if nothing scores."""
        chain_resort.remove("T3")
        result = chain_resort.propagator.compute(SkillLevel.EXPERT, "T2/end", tuning)
        assert not result.dead_end
        assert result.value == 0.0
        assert result.best_hop is None


class TestCache:
    """Cache keyed by (skill, point, generation, tuning version)."""

    def test_second_lookup_hits_cache(self, chain_resort: ResortFixture, tuning: TuningConfig) -> None:
        propagator = chain_resort.propagator
        first = propagator.value(SkillLevel.EXPERT, "B1/spawn", tuning)
        second = propagator.value(SkillLevel.EXPERT, "B1/spawn", tuning)
        assert first is second
        assert propagator.computations == 1
        assert propagator.cache_size == 1

    def test_tuning_version_bump_recomputes(self, chain_resort: ResortFixture, tuning: TuningConfig) -> None:
        propagator = chain_resort.propagator
        before = propagator.value(SkillLevel.EXPERT, "B1/spawn", tuning)
        steeper = tuning.with_changes(depth_discount_3_hop=1.0)
        after = propagator.value(SkillLevel.EXPERT, "B1/spawn", steeper)
        assert propagator.computations == 2
        assert before.value == pytest.approx(0.232)
        assert after.value == pytest.approx(0.58)
        assert after == propagator.compute(SkillLevel.EXPERT, "B1/spawn", steeper)

    def test_graph_rebuild_recomputes(self, chain_resort: ResortFixture, tuning: TuningConfig) -> None:
        propagator = chain_resort.propagator
        assert propagator.value(SkillLevel.EXPERT, "B1/spawn", tuning).value == pytest.approx(0.232)
        chain_resort.remove("L3")
        assert propagator.value(SkillLevel.EXPERT, "B1/spawn", tuning).value == pytest.approx(0.195)
        assert propagator.cache_size == 1

    def test_clear(self, chain_resort: ResortFixture, tuning: TuningConfig) -> None:
        propagator = chain_resort.propagator
        propagator.value(SkillLevel.EXPERT, "B1/spawn", tuning)
        propagator.clear()
        assert propagator.cache_size == 0
