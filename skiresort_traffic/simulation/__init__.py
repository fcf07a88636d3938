"""Simulation: agent lifecycle and the tick loop."""

from skiresort_traffic.simulation.engine import SkierRoutingEngine, TickReport
from skiresort_traffic.simulation.population import sample_desired_runs, sample_skill

__all__ = ["SkierRoutingEngine", "TickReport", "sample_skill", "sample_desired_runs"]
