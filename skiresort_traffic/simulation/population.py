"""Population sampling for newly spawned skiers."""

from typing import Sequence

import numpy as np

from skiresort_traffic.constants import SkierConfig
from skiresort_traffic.model.skill import SkillLevel


def sample_skill(rng: np.random.Generator, shares: Sequence[float]) -> SkillLevel:
    """Draw a skill level from normalized population shares (beginner..expert)."""
    if len(shares) != len(SkillLevel):
        raise ValueError(f"Expected {len(SkillLevel)} population shares, got {len(shares)}")
    cumulative = np.cumsum(shares)
    index = int(np.searchsorted(cumulative, rng.random() * cumulative[-1], side="right"))
    return SkillLevel(min(index, len(SkillLevel) - 1))


def sample_desired_runs(rng: np.random.Generator) -> int:
    """Runs a skier wants before heading home, uniform in [MIN_DESIRED_RUNS, MAX_DESIRED_RUNS]."""
    return int(rng.integers(SkierConfig.MIN_DESIRED_RUNS, SkierConfig.MAX_DESIRED_RUNS + 1))
