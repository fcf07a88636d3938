"""Core foundation classes: geometry, terrain and random streams.

- PlanGeometry: Plan-view distances, radius pair queries, polyline helpers
- HeightGrid / TerrainProvider: Terrain collaborator (import from core.terrain)
- TrailSurveyor: Trail validation and difficulty classification (core.terrain)
- agent_rng / stream_rng: Deterministic per-agent and per-stream generators

core.terrain imports the model package, which itself imports core.geometry,
so it is not re-exported here.
"""

from skiresort_traffic.core.geometry import PlanGeometry
from skiresort_traffic.core.random_source import agent_rng, stream_rng

__all__ = [
    "PlanGeometry",
    "agent_rng",
    "stream_rng",
]
