"""Exception hierarchy for the skier routing engine.

All errors derive from SkierRoutingError and additionally from the builtin
exception a caller would naturally catch (KeyError for lookups, ValueError for
bad input, RuntimeError for broken engine state).
"""


class SkierRoutingError(Exception):
    """Base class for routing engine errors."""


class DuplicateSnapPoint(SkierRoutingError, KeyError):
    """A snap point with the same id is already registered."""

    def __init__(self, point_id: str) -> None:
        super().__init__(f"Snap point {point_id} is already registered")
        self.point_id = point_id

    def __str__(self) -> str:
        return str(self.args[0])


class UnknownAgentError(SkierRoutingError, KeyError):
    """No skier agent with the given id exists."""

    def __init__(self, agent_id: int) -> None:
        super().__init__(f"Skier {agent_id} not found")
        self.agent_id = agent_id

    def __str__(self) -> str:
        return str(self.args[0])


class InvalidTuningError(SkierRoutingError, ValueError):
    """A tuning value is outside its allowed range."""


class TrailValidationError(SkierRoutingError, ValueError):
    """A trail was rejected by validation (too short, uphill, out of bounds)."""


class ScoringConfigurationError(SkierRoutingError, RuntimeError):
    """Every candidate score collapsed to zero.

    Unreachable with a positive minimum_trail_score, so it signals a
    misconfigured tuning snapshot and is treated as fatal.
    """


class EngineNotActiveError(SkierRoutingError, RuntimeError):
    """The engine was used before activate() or activated twice."""
