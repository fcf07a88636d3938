"""Run skier traffic on a small demo resort and print where everyone went.

Developer utility: builds a single-valley resort on a synthetic height grid,
spawns a mixed population and runs the tick loop. Useful for eyeballing how
tuning changes shift traffic between trails.

Run:
    python scripts/run_traffic_demo.py --skiers 40 --ticks 900
    python scripts/run_traffic_demo.py --tuning my_tuning.json --debug-skier 3
"""

import argparse
import logging
from collections import Counter
from pathlib import Path

import numpy as np

from skiresort_traffic.core.terrain import HeightGrid
from skiresort_traffic.model import BaseLodge, Coordinate, Lift, SkillLevel, Trail, TrailDifficulty, TuningSource
from skiresort_traffic.model.tuning import load_tuning
from skiresort_traffic.simulation import SkierRoutingEngine

# Synthetic valley: height rises uniformly towards +y
GRID_ORIGIN = (-200.0, -20.0)
GRID_SHAPE = (640, 400)  # rows (y), cols (x)
VALLEY_SLOPE = 0.7


def build_terrain() -> HeightGrid:
    rows, _ = GRID_SHAPE
    y = np.arange(rows, dtype=float)[:, np.newaxis]
    heights = np.broadcast_to(y * VALLEY_SLOPE, GRID_SHAPE).copy()
    return HeightGrid(heights=heights, cell_size=1.0, origin=GRID_ORIGIN)


def on_terrain(grid: HeightGrid, x: float, y: float) -> Coordinate:
    return Coordinate(x=x, y=y, elevation=grid.height_at(x, y))


def build_resort(engine: SkierRoutingEngine, grid: HeightGrid) -> None:
    """Base, two lifts and five trails; the summit chute feeds back into the valley trails."""

    def path(*xy: tuple[float, float]) -> list[Coordinate]:
        return [on_terrain(grid, x, y) for x, y in xy]

    engine.on_base_placed(BaseLodge(id="B1", name="Valley Lodge", location=on_terrain(grid, 0, 0)))
    engine.on_lift_built(
        Lift(id="L1", name="Valley Chair", bottom=on_terrain(grid, 0, 10), top=on_terrain(grid, 0, 400))
    )
    engine.on_lift_built(
        Lift(
            id="L2",
            name="Summit T-Bar",
            bottom=on_terrain(grid, 20, 405),
            top=on_terrain(grid, 20, 600),
            lift_type="surface_lift",
        )
    )
    engine.on_trail_validated(
        Trail(id="T1", name="Meadow Run", points=path((10, 400), (150, 250), (10, 20)), difficulty=TrailDifficulty.GREEN)
    )
    engine.on_trail_validated(
        Trail(id="T2", name="Ridge", points=path((-10, 400), (-70, 200), (-10, 15)), difficulty=TrailDifficulty.BLUE)
    )
    # Difficulty classified from slope
    engine.on_trail_validated(Trail(id="T3", name="Couloir", points=path((5, 395), (5, 20))))
    # Lift tops only offer trails, so the T-bar is reached via a short traverse
    engine.on_trail_validated(
        Trail(id="T5", name="Summit Access", points=path((10, 404), (20, 398)), difficulty=TrailDifficulty.GREEN)
    )
    engine.on_trail_validated(
        Trail(
            id="T4",
            name="Summit Chute",
            points=path((20, 600), (15, 410)),
            difficulty=TrailDifficulty.DOUBLE_BLACK,
        )
    )


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--skiers", type=int, default=40)
    parser.add_argument("--ticks", type=int, default=900)
    parser.add_argument("--seed", type=int, default=12345)
    parser.add_argument("--tuning", type=Path, default=None, help="JSON file with TuningConfig overrides")
    parser.add_argument("--debug-skier", type=int, default=None, help="Log every decision of this skier")
    parser.add_argument("--verbose", action="store_true", help="DEBUG logging for all modules")
    args = parser.parse_args()

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO)

    source = TuningSource(load_tuning(args.tuning)) if args.tuning else TuningSource()
    if args.debug_skier is not None:
        source.update(enable_debug_logs=True, debug_skier_id=args.debug_skier, log_trail_scores=True, log_lift_scores=True)

    grid = build_terrain()
    engine = SkierRoutingEngine.create(tuning_source=source, terrain=grid, seed=args.seed).activate()
    build_resort(engine, grid)
    for trail in engine.trails.values():
        print(f"{trail.id} {trail.name}: {trail.difficulty.label}, {trail.length:.0f} units")

    skills = Counter(engine.agents[engine.spawn_skier()].skill for _ in range(args.skiers))

    boardings: Counter[str] = Counter()
    parked = switches = departed = 0
    for report in engine.run(ticks=args.ticks):
        for decision in report.decisions:
            if decision.is_viable:
                boardings[decision.chosen.structure_id] += 1
        parked += len(report.parked)
        switches += len(report.switches)
        departed += len(report.despawned)

    print()
    print("Population: " + ", ".join(f"{s.label}={skills[s]}" for s in SkillLevel))
    print(f"After {engine.tick_count} ticks: {len(engine.agents)} on the mountain, {departed} went home")
    print(f"Junction switches: {switches}, parked agent-ticks: {parked}")
    for structure_id, count in sorted(boardings.items()):
        print(f"  {structure_id}: {count} boardings")


if __name__ == "__main__":
    main()
