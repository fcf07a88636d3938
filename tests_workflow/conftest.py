"""Shared pytest fixtures for skiresort_traffic workflow tests.

Workflow tests drive a SkierRoutingEngine end to end through its public
callbacks and queries. Minimal fixtures: an engine factory and one small resort.

COORDINATE SYSTEM:
    Plain world units with every search radius at 2.0, so proximity is easy to
    check by eye. Trails go from high y to low y.
"""

from typing import Callable

import pytest

from skiresort_traffic.model.base_lodge import BaseLodge
from skiresort_traffic.model.coordinate import Coordinate
from skiresort_traffic.model.lift import Lift
from skiresort_traffic.model.skill import TrailDifficulty
from skiresort_traffic.model.trail import Trail
from skiresort_traffic.model.tuning import TuningConfig, TuningSource
from skiresort_traffic.simulation.engine import SkierRoutingEngine

EngineFactory = Callable[..., SkierRoutingEngine]

SMALL_RADII = dict(
    trail_start_search_radius=2.0,
    lift_search_radius=2.0,
    base_walk_radius=2.0,
    junction_detection_radius=2.0,
    network_snap_radius=2.0,
    jerry_chance=0.0,
)


@pytest.fixture
def new_engine() -> EngineFactory:
    """Factory: active engine without structures.

    Tuning starts from SMALL_RADII; keyword arguments override single fields.
    """

    def _make(seed: int = 3, **tuning_changes: object) -> SkierRoutingEngine:
        tuning = TuningConfig(**{**SMALL_RADII, **tuning_changes})
        return SkierRoutingEngine.create(tuning_source=TuningSource(tuning), seed=seed).activate()

    return _make


@pytest.fixture
def small_resort() -> dict[str, object]:
    """Base B1 with one lift serving a green and a blue trail back to the bottom.

    B1/spawn (0,0) next to L1/bottom (0,1); L1/top (0,50).
    T1 green (1,50) -> (20,25) -> (1,1); T2 blue (-1,50) -> (-1,1).
    Both trails end next to L1/bottom, so skiers loop until they are done.
    """
    return {
        "B1": BaseLodge(id="B1", name="Village", location=Coordinate(0.0, 0.0, 0.0)),
        "L1": Lift(id="L1", name="Village Chair", bottom=Coordinate(0.0, 1.0, 0.0), top=Coordinate(0.0, 50.0, 40.0)),
        "T1": Trail(
            id="T1",
            name="Meander",
            points=[Coordinate(1.0, 50.0, 40.0), Coordinate(20.0, 25.0, 20.0), Coordinate(1.0, 1.0, 0.0)],
            difficulty=TrailDifficulty.GREEN,
        ),
        "T2": Trail(
            id="T2",
            name="Fall Line",
            points=[Coordinate(-1.0, 50.0, 40.0), Coordinate(-1.0, 1.0, 0.0)],
            difficulty=TrailDifficulty.BLUE,
        ),
    }


@pytest.fixture
def make_engine(new_engine: EngineFactory, small_resort: dict[str, object]) -> EngineFactory:
    """Factory: active engine with the small resort registered."""

    def _make(seed: int = 7, **tuning_changes: object) -> SkierRoutingEngine:
        engine = new_engine(seed=seed, **tuning_changes)
        engine.on_base_placed(small_resort["B1"])
        engine.on_lift_built(small_resort["L1"])
        engine.on_trail_validated(small_resort["T1"])
        engine.on_trail_validated(small_resort["T2"])
        return engine

    return _make
