"""Configuration constants for the skier routing engine.

Structural parameters that are not part of the per-tick tuning snapshot live here.
Everything that changes how skiers score and choose segments lives in
model/tuning.py (TuningConfig) so it can be versioned.

Classes:
    SnapPointSuffixes: ID suffixes for snap points derived from structures
    TrailConfig: Trail validation and difficulty classification
    SkierConfig: Motion speeds and visit length
    GoalConfig: Goal planner thresholds
    SimulationConfig: Tick cadence and random stream layout
"""


class SnapPointSuffixes:
    """Suffixes appended to a structure id to name its snap points (e.g. "L3/bottom")."""

    SEPARATOR = "/"
    BASE_SPAWN = "spawn"
    TRAIL_START = "start"
    TRAIL_END = "end"
    LIFT_BOTTOM = "bottom"
    LIFT_TOP = "top"


class TrailConfig:
    """Trail validation limits and slope-based difficulty classification."""

    MIN_POINTS = 2  # Start and end at minimum
    MIN_ELEVATION_DROP = 2.0  # World units; a trail must go downhill overall

    # Classification by slope ratio (drop / plan distance), checked from hardest to easiest.
    # A trail gets the first difficulty whose max OR average slope limit is exceeded.
    DIFFICULTY_SLOPE_LIMITS = {
        "double_black": {"max": 1.0, "avg": 0.7},
        "black": {"max": 0.6, "avg": 0.4},
        "blue": {"max": 0.3, "avg": 0.2},
    }
    assert list(DIFFICULTY_SLOPE_LIMITS) == ["double_black", "black", "blue"]


class SkierConfig:
    """Motion and visit parameters for skier agents."""

    SKI_SPEED = 6.0  # World units per second along a trail
    LIFT_SPEED = 3.0  # World units per second along a lift line
    MIN_SEGMENT_LENGTH = 1.0  # Guards against zero-length segments finishing instantly

    # Desired runs per visit, drawn uniformly from [MIN, MAX]
    MIN_DESIRED_RUNS = 3
    MAX_DESIRED_RUNS = 12
    assert MIN_DESIRED_RUNS <= MAX_DESIRED_RUNS


class GoalConfig:
    """Goal planner thresholds."""

    # Preference weight at or above which a difficulty counts as "strongly preferred"
    # and receives TuningConfig.preferred_difficulty_boost during destination choice
    STRONG_PREFERENCE_THRESHOLD = 0.4


class SimulationConfig:
    """Tick cadence and random stream layout."""

    DEFAULT_SEED = 12345
    DEFAULT_TICK_SECONDS = 1.0

    # Junction sampling cadence and the part of a trail where switching is possible
    JUNCTION_CHECK_INTERVAL_TICKS = 2
    SWITCH_WINDOW_START = 0.1
    SWITCH_WINDOW_END = 0.9

    # Stream id reserved for spawn draws (agent ids start at 1, so 0 never collides)
    SPAWN_STREAM_ID = 0
