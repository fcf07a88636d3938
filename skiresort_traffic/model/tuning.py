"""Tuning configuration for skier scoring, propagation and goals.

TuningConfig is an immutable snapshot passed explicitly into every scoring and
propagation call. Any change produces a new snapshot with a higher version;
caches and goals keyed by the old version are discarded.

TuningSource is the configuration surface handed to the engine. Hosts publish
new snapshots into it at any time; the engine reads it exactly once per tick.
"""

import json
import logging
from dataclasses import asdict, dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Optional

from skiresort_traffic.exceptions import InvalidTuningError
from skiresort_traffic.model.skill import SkillLevel, TrailDifficulty

logger = logging.getLogger(__name__)


DEFAULT_PREFERENCES: dict[str, dict[str, float]] = {
    "beginner": {"green": 0.75, "blue": 0.25, "black": 0.0, "double_black": 0.0},
    "intermediate": {"green": 0.20, "blue": 0.60, "black": 0.20, "double_black": 0.0},
    "advanced": {"green": 0.05, "blue": 0.25, "black": 0.55, "double_black": 0.15},
    "expert": {"green": 0.02, "blue": 0.10, "black": 0.30, "double_black": 0.58},
}
assert set(DEFAULT_PREFERENCES) == {s.label for s in SkillLevel}
assert all(set(row) == {d.label for d in TrailDifficulty} for row in DEFAULT_PREFERENCES.values())


@dataclass(frozen=True)
class PreferenceMatrix:
    """Per-skill difficulty preference weights in [0, 1].

    Rows are independent weights, not probability distributions, so they need
    not sum to 1.

    Attributes:
        weights: weights[skill][difficulty], indexed by the enum values
    """

    weights: tuple[tuple[float, ...], ...]

    def __post_init__(self) -> None:
        if len(self.weights) != len(SkillLevel) or any(len(row) != len(TrailDifficulty) for row in self.weights):
            raise InvalidTuningError(
                f"PreferenceMatrix must be {len(SkillLevel)}x{len(TrailDifficulty)}, got {self.weights}"
            )
        for row in self.weights:
            for w in row:
                if not 0.0 <= w <= 1.0:
                    raise InvalidTuningError(f"Preference weight {w} outside [0, 1]")

    def weight(self, skill: SkillLevel, difficulty: TrailDifficulty) -> float:
        return self.weights[skill][difficulty]

    def row(self, skill: SkillLevel) -> dict[TrailDifficulty, float]:
        return {d: self.weights[skill][d] for d in TrailDifficulty}

    def to_dict(self) -> dict[str, dict[str, float]]:
        return {s.label: {d.label: self.weights[s][d] for d in TrailDifficulty} for s in SkillLevel}

    @classmethod
    def from_dict(cls, data: dict[str, dict[str, float]]) -> "PreferenceMatrix":
        try:
            weights = tuple(
                tuple(float(data[s.label][d.label]) for d in TrailDifficulty) for s in SkillLevel
            )
        except KeyError as e:
            raise InvalidTuningError(f"Preference matrix is missing entry {e}") from e
        return cls(weights=weights)

    @classmethod
    def default(cls) -> "PreferenceMatrix":
        return cls.from_dict(DEFAULT_PREFERENCES)


# Fields validated as probabilities
_UNIT_FIELDS = (
    "jerry_chance",
    "junction_major_switch_chance",
    "junction_moderate_switch_chance",
    "junction_exploration_chance",
)

# Fields validated as strictly positive radii
_RADIUS_FIELDS = (
    "trail_start_search_radius",
    "lift_search_radius",
    "base_walk_radius",
    "junction_detection_radius",
    "network_snap_radius",
)


@dataclass(frozen=True)
class TuningConfig:
    """Immutable snapshot of every scoring and propagation parameter.

    Create modified copies with with_changes(); it bumps the version so that
    downstream caches and goals computed against the old snapshot go stale.

    Example:
        tuning = TuningConfig()
        steeper = tuning.with_changes(jerry_chance=0.0)
        assert steeper.version == tuning.version + 1
    """

    # Scoring weights
    preferences: PreferenceMatrix = field(default_factory=PreferenceMatrix.default)
    direct_preference_weight: float = 1.0
    downstream_weight: float = 1.0
    dead_end_score: float = 0.02

    # Downstream lookahead
    downstream_depth: int = 3
    depth_discount_1_hop: float = 1.0
    depth_discount_2_hop: float = 0.65
    depth_discount_3_hop: float = 0.40
    depth_discount_farther: float = 0.25

    # Transit willingness
    transit_floor_base: float = 0.15
    transit_floor_gap_bonus: float = 0.03
    transit_floor_stretch: float = 0.08
    downstream_bonus_multiplier: float = 0.6

    # Goal system
    replan_after_every_run: bool = True
    replan_at_lift_top: bool = True
    preferred_difficulty_boost: float = 1.5
    goal_trail_bonus: float = 1.2

    # Randomness and floors
    jerry_chance: float = 0.02
    minimum_trail_score: float = 0.01

    # Lift variety
    lift_variety_new_bonus: float = 1.4
    lift_variety_repeat_penalty: float = 0.85

    # Junction switching
    allow_mid_trail_switching: bool = True
    junction_major_threshold: float = 0.25
    junction_major_switch_chance: float = 0.50
    junction_moderate_threshold: float = 0.10
    junction_moderate_switch_chance: float = 0.25
    junction_exploration_min_value: float = 0.20
    junction_exploration_chance: float = 0.12

    # Search radii (world units)
    trail_start_search_radius: float = 25.0
    lift_search_radius: float = 25.0
    base_walk_radius: float = 40.0
    junction_detection_radius: float = 15.0
    network_snap_radius: float = 25.0

    # Population mix: beginner, intermediate, advanced, expert
    population_mix: tuple[float, float, float, float] = (0.20, 0.30, 0.30, 0.20)

    # Debug logging
    enable_debug_logs: bool = False
    debug_skier_id: Optional[int] = None
    log_trail_scores: bool = False
    log_lift_scores: bool = False

    version: int = 0

    def __post_init__(self) -> None:
        """Validate ranges; a snapshot that exists is always usable."""
        if self.downstream_depth < 1:
            raise InvalidTuningError(f"downstream_depth must be >= 1, got {self.downstream_depth}")
        if self.minimum_trail_score <= 0:
            raise InvalidTuningError(f"minimum_trail_score must be > 0, got {self.minimum_trail_score}")
        if self.dead_end_score < 0:
            raise InvalidTuningError(f"dead_end_score must be >= 0, got {self.dead_end_score}")
        for name in _UNIT_FIELDS:
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise InvalidTuningError(f"{name} must be in [0, 1], got {value}")
        for name in _RADIUS_FIELDS:
            value = getattr(self, name)
            if value <= 0:
                raise InvalidTuningError(f"{name} must be > 0, got {value}")
        if self.goal_trail_bonus <= 0 or self.preferred_difficulty_boost <= 0:
            raise InvalidTuningError("goal_trail_bonus and preferred_difficulty_boost must be > 0")
        if self.lift_variety_new_bonus <= 0 or self.lift_variety_repeat_penalty <= 0:
            raise InvalidTuningError("Lift variety multipliers must be > 0")
        if len(self.population_mix) != len(SkillLevel) or any(p < 0 for p in self.population_mix):
            raise InvalidTuningError(f"population_mix needs {len(SkillLevel)} non-negative shares")
        if sum(self.population_mix) <= 0:
            raise InvalidTuningError("population_mix must not be all zero")
        if self.version < 0:
            raise InvalidTuningError(f"version must be >= 0, got {self.version}")

    def discount_for_hop(self, hop: int) -> float:
        """Discount factor for terrain found at the given hop (1-based)."""
        if hop <= 1:
            return self.depth_discount_1_hop
        if hop == 2:
            return self.depth_discount_2_hop
        if hop == 3:
            return self.depth_discount_3_hop
        return self.depth_discount_farther

    @property
    def population_shares(self) -> tuple[float, ...]:
        """Population mix normalized to sum to 1."""
        total = sum(self.population_mix)
        return tuple(p / total for p in self.population_mix)

    def is_debug_skier(self, agent_id: int) -> bool:
        return self.enable_debug_logs and (self.debug_skier_id is None or self.debug_skier_id == agent_id)

    def with_changes(self, **changes: Any) -> "TuningConfig":
        """Copy with the given fields replaced and the version bumped."""
        if "version" in changes:
            raise InvalidTuningError("version is managed by with_changes() and cannot be set directly")
        return replace(self, version=self.version + 1, **changes)

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["preferences"] = self.preferences.to_dict()
        data["population_mix"] = list(self.population_mix)
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TuningConfig":
        """Create TuningConfig from a dictionary; unknown keys are rejected."""
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise InvalidTuningError(f"Unknown tuning keys: {sorted(unknown)}")
        kwargs = dict(data)
        if "preferences" in kwargs:
            kwargs["preferences"] = PreferenceMatrix.from_dict(kwargs["preferences"])
        if "population_mix" in kwargs:
            kwargs["population_mix"] = tuple(float(p) for p in kwargs["population_mix"])
        return cls(**kwargs)


def load_tuning(path: Path) -> TuningConfig:
    """Load a TuningConfig from a JSON file.

    Args:
        path: JSON file with any subset of TuningConfig fields

    Returns:
        Validated TuningConfig.
    """
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    tuning = TuningConfig.from_dict(data)
    logger.info(f"Loaded tuning v{tuning.version} from {path}")
    return tuning


class TuningSource:
    """Configuration surface holding the latest published tuning snapshot.

    The engine calls current() once per tick; publish() may be called at any
    time and takes effect on the following tick.
    """

    def __init__(self, initial: Optional[TuningConfig] = None) -> None:
        self._current = initial or TuningConfig()

    def current(self) -> TuningConfig:
        return self._current

    def publish(self, tuning: TuningConfig) -> TuningConfig:
        """Replace the snapshot and return the published version of it.

        Snapshots from TuningConfig(), from_dict() or load_tuning() all carry
        version 0. Changed content whose version does not move past the
        current one is re-stamped at current version + 1, so caches and goals
        keyed by version see the change. Republishing identical content is a no-op.
        """
        current = self._current
        if tuning.version <= current.version:
            if replace(tuning, version=current.version) == current:
                return current
            logger.info(f"Re-stamping published tuning v{tuning.version} as v{current.version + 1}")
            tuning = replace(tuning, version=current.version + 1)
        logger.info(f"Published tuning v{tuning.version}")
        self._current = tuning
        return tuning

    def update(self, **changes: Any) -> TuningConfig:
        """Publish a copy of the current snapshot with changes applied."""
        return self.publish(self._current.with_changes(**changes))
