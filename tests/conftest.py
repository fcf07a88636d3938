"""Shared pytest fixtures for skiresort_traffic tests.

Provides mock terrains, the reference scenario resort, a lift chain for
lookahead tests and the small-radius tuning snapshot. Builders live in
resort_builders.py.
"""

import pytest
from resort_builders import (
    MockTerrain,
    ResortFixture,
    build_resort,
    make_base,
    make_lift,
    make_trail,
    small_radius_tuning,
)

from skiresort_traffic.model.skill import TrailDifficulty
from skiresort_traffic.model.tuning import TuningConfig


# =============================================================================
# MOCK TERRAIN FIXTURES
# =============================================================================


@pytest.fixture
def terrain_blue_slope() -> MockTerrain:
    """Slope ratio 0.25 everywhere.

    A fall-line trail has avg = max = 0.25: over the blue avg limit (0.2),
    under the black limits -> blue.
    """
    return MockTerrain(base_elevation=100.0, slope=0.25)


@pytest.fixture
def terrain_black_slope() -> MockTerrain:
    """Slope ratio 0.5 everywhere: over the black avg limit (0.4) -> black."""
    return MockTerrain(base_elevation=100.0, slope=0.5)


# =============================================================================
# TUNING FIXTURES
# =============================================================================


@pytest.fixture
def tuning() -> TuningConfig:
    """Defaults with every radius 2.0 and jerry_chance 0."""
    return small_radius_tuning()


# =============================================================================
# RESORT FIXTURES
# =============================================================================


@pytest.fixture
def scenario_structures() -> list:
    """The reference loop: base, one green trail, one lift.

    B1/spawn (0,0) - T1/start (0,1) - T1/end (0,5) with a 10-unit drop,
    L1/bottom (0,5) - L1/top (0,1). With radius 2 the adjacent pairs are
    spawn-start, spawn-top, start-top and end-bottom.
    """
    return [
        make_base("B1", 0.0, 0.0),
        make_trail("T1", [(0.0, 1.0, 10.0), (0.0, 5.0, 0.0)], TrailDifficulty.GREEN),
        make_lift("L1", (0.0, 5.0, 0.0), (0.0, 1.0, 10.0)),
    ]


@pytest.fixture
def scenario_resort(scenario_structures: list) -> ResortFixture:
    return build_resort(scenario_structures, radius=2.0)


@pytest.fixture
def chain_resort() -> ResortFixture:
    """Three lifts in a chain, each top feeding a harder trail.

    B1 (0,-1) -> L1 (0,0)->(0,100) -> T1 green -> L2 (10,0)->(10,100)
    -> T2 black -> L3 (20,0)->(20,100) -> T3 double black -> (30,0)

    Structures are 10 units apart, far beyond the 2.0 radius, so every hop
    goes through a lift. T3 ends where nothing continues.
    """
    return build_resort(
        [
            make_base("B1", 0.0, -1.0),
            make_lift("L1", (0.0, 0.0, 0.0), (0.0, 100.0, 100.0)),
            make_trail("T1", [(0.0, 100.0, 100.0), (10.0, 0.0, 0.0)], TrailDifficulty.GREEN),
            make_lift("L2", (10.0, 0.0, 0.0), (10.0, 100.0, 100.0)),
            make_trail("T2", [(10.0, 100.0, 100.0), (20.0, 0.0, 0.0)], TrailDifficulty.BLACK),
            make_lift("L3", (20.0, 0.0, 0.0), (20.0, 100.0, 100.0)),
            make_trail("T3", [(20.0, 100.0, 100.0), (30.0, 0.0, 0.0)], TrailDifficulty.DOUBLE_BLACK),
        ],
        radius=2.0,
    )
