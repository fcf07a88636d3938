"""Tests for core modules: PlanGeometry, HeightGrid, TrailSurveyor, random streams.

Test Coverage:
    - Plan distances and KD-tree pair search
    - Height grid lookups and bounds
    - Trail validation and slope-based difficulty classification
    - Deterministic random streams
"""

from typing import TYPE_CHECKING

import numpy as np
import pytest
from shapely.geometry import LineString

from skiresort_traffic.core.geometry import PlanGeometry
from skiresort_traffic.core.random_source import agent_rng, stream_rng
from skiresort_traffic.core.terrain import HeightGrid, TrailSurveyor
from skiresort_traffic.exceptions import TrailValidationError
from skiresort_traffic.model.coordinate import Coordinate
from skiresort_traffic.model.skill import TrailDifficulty

if TYPE_CHECKING:
    from resort_builders import MockTerrain


class TestPlanGeometry:
    """Plan-view geometry helpers."""

    def test_pairs_within_is_inclusive(self) -> None:
        xy = np.array([[0.0, 0.0], [0.0, 2.0], [0.0, 4.5]])
        assert PlanGeometry.pairs_within(xy=xy, radius=2.0) == {(0, 1)}

    def test_pairs_within_small_inputs(self) -> None:
        assert PlanGeometry.pairs_within(xy=np.zeros((1, 2)), radius=5.0) == set()

    def test_polyline_length(self) -> None:
        assert PlanGeometry.polyline_length([(0, 0, 9), (3, 4, 0), (3, 10, 0)]) == 11.0

    def test_project_and_distance_to_line(self) -> None:
        line = LineString([(0.0, 0.0, 10.0), (0.0, 100.0, 0.0)])
        assert PlanGeometry.project(line, x=3.0, y=25.0) == pytest.approx(0.25)
        assert PlanGeometry.distance_to_line(line, x=3.0, y=25.0) == pytest.approx(3.0)

    def test_interpolate_clamps_and_carries_elevation(self) -> None:
        line = LineString([(0.0, 0.0, 10.0), (0.0, 100.0, 0.0)])
        assert PlanGeometry.interpolate(line, 0.5) == pytest.approx((0.0, 50.0, 5.0))
        assert PlanGeometry.interpolate(line, 1.7) == pytest.approx((0.0, 100.0, 0.0))


class TestHeightGrid:
    """NumPy-backed height field."""

    @pytest.fixture
    def grid(self) -> HeightGrid:
        # 3 rows (y) x 4 cols (x), cells of 2 units, origin (10, 20)
        return HeightGrid(heights=np.arange(12, dtype=float).reshape(3, 4), cell_size=2.0, origin=(10.0, 20.0))

    def test_bounds(self, grid: HeightGrid) -> None:
        assert grid.bounds == (10.0, 20.0, 18.0, 26.0)
        assert grid.shape == (3, 4)

    def test_height_lookup(self, grid: HeightGrid) -> None:
        assert grid.height_at(10.5, 20.5) == 0.0
        assert grid.height_at(12.0, 20.0) == 1.0
        assert grid.height_at(17.9, 25.9) == 11.0

    def test_out_of_bounds(self, grid: HeightGrid) -> None:
        assert not grid.in_bounds(18.0, 20.0)
        assert not grid.in_bounds(9.99, 21.0)
        with pytest.raises(ValueError, match="outside terrain"):
            grid.height_at(18.0, 20.0)

    def test_rejects_bad_input(self) -> None:
        with pytest.raises(ValueError):
            HeightGrid(heights=np.zeros(4))
        with pytest.raises(ValueError):
            HeightGrid(heights=np.zeros((2, 2)), cell_size=0.0)


class TestTrailSurveyor:
    """Trail validation against the terrain and difficulty classification."""

    def test_fall_line_blue(self, terrain_blue_slope: "MockTerrain") -> None:
        survey = TrailSurveyor(terrain_blue_slope).survey([Coordinate(0.0, 100.0), Coordinate(0.0, 0.0)])
        assert survey.elevation_drop == pytest.approx(25.0)
        assert survey.avg_slope == pytest.approx(0.25)
        assert survey.difficulty is TrailDifficulty.BLUE

    def test_fall_line_black(self, terrain_black_slope: "MockTerrain") -> None:
        survey = TrailSurveyor(terrain_black_slope).survey([Coordinate(0.0, 100.0), Coordinate(0.0, 0.0)])
        assert survey.difficulty is TrailDifficulty.BLACK

    def test_traverse_is_gentler(self, terrain_black_slope: "MockTerrain") -> None:
        """Crossing the slope at a shallow angle: 5 down over ~100 across -> slope 0.05 -> green."""
        points = [Coordinate(0.0, 20.0), Coordinate(100.0, 10.0)]
        survey = TrailSurveyor(terrain_black_slope).survey(points)
        assert survey.max_slope == pytest.approx(5.0 / np.hypot(100.0, 10.0))
        assert survey.difficulty is TrailDifficulty.GREEN

    def test_uphill_rejected(self, terrain_blue_slope: "MockTerrain") -> None:
        with pytest.raises(TrailValidationError, match="must drop"):
            TrailSurveyor(terrain_blue_slope).survey([Coordinate(0.0, 0.0), Coordinate(0.0, 100.0)])

    def test_out_of_bounds_rejected(self, terrain_blue_slope: "MockTerrain") -> None:
        with pytest.raises(TrailValidationError, match="outside"):
            TrailSurveyor(terrain_blue_slope).survey([Coordinate(0.0, 5000.0), Coordinate(0.0, 0.0)])

    def test_too_short_rejected(self) -> None:
        with pytest.raises(TrailValidationError, match="at least"):
            TrailSurveyor().survey([Coordinate(0.0, 0.0, 10.0)])

    def test_without_terrain_uses_coordinate_elevation(self) -> None:
        survey = TrailSurveyor().survey([Coordinate(0.0, 1.0, 10.0), Coordinate(0.0, 5.0, 0.0)])
        assert survey.elevation_drop == 10.0
        assert survey.difficulty is TrailDifficulty.DOUBLE_BLACK  # 10 down over 4 across

    @pytest.mark.parametrize(
        "avg_slope,max_slope,expected",
        [
            (0.10, 0.20, TrailDifficulty.GREEN),
            (0.10, 0.35, TrailDifficulty.BLUE),  # one steep pitch is enough
            (0.25, 0.28, TrailDifficulty.BLUE),
            (0.45, 0.50, TrailDifficulty.BLACK),
            (0.50, 1.20, TrailDifficulty.DOUBLE_BLACK),
        ],
    )
    def test_classify_difficulty(self, avg_slope: float, max_slope: float, expected: TrailDifficulty) -> None:
        assert TrailSurveyor.classify_difficulty(avg_slope=avg_slope, max_slope=max_slope) is expected


class TestRandomStreams:
    """Generators keyed by (seed, id, counter)."""

    def test_same_key_same_draws(self) -> None:
        assert agent_rng(7, 3, 10).random() == agent_rng(7, 3, 10).random()

    def test_different_keys_differ(self) -> None:
        draws = {agent_rng(7, agent_id, 10).random() for agent_id in range(1, 6)}
        assert len(draws) == 5
        assert agent_rng(7, 3, 10).random() != agent_rng(7, 3, 11).random()

    def test_stream_rng_counter_advances_stream(self) -> None:
        assert stream_rng(7, 0, 1).random() == stream_rng(7, 0, 1).random()
        assert stream_rng(7, 0, 1).random() != stream_rng(7, 0, 2).random()
