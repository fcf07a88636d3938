"""Deterministic random streams.

Every stochastic draw an agent makes during a tick comes from a generator
keyed by (seed, agent id, tick). Agents can therefore be updated in any
order, or in parallel, and a run with the same seed replays exactly.
"""

import numpy as np


def agent_rng(seed: int, agent_id: int, tick: int) -> np.random.Generator:
    """Generator for one agent's draws during one tick."""
    return np.random.default_rng(np.random.SeedSequence([seed, agent_id, tick]))


def stream_rng(seed: int, stream_id: int, counter: int) -> np.random.Generator:
    """Generator for engine-level draws (e.g. spawning), keyed by a stream id and a counter."""
    return np.random.default_rng(np.random.SeedSequence([seed, stream_id, counter]))
