"""Routing: the skier decision engine proper.

- SnapPointRegistry: Registered attachment points with a change counter
- ConnectivityGraph: Proximity graph, rebuilt atomically per generation
- DownstreamValuePropagator: Discounted multi-hop terrain lookahead (cached)
- RouteScorer: Trail/lift scoring and weighted selection
- DecisionMaker: Candidate discovery and next-segment choice
- GoalPlanner / GoalStateMachine: Multi-hop goals and replanning
- JunctionSwitchEvaluator: Mid-trail switching
"""

from skiresort_traffic.routing.connectivity_graph import ConnectivityGraph, GraphTopology
from skiresort_traffic.routing.decision_maker import DecisionMaker
from skiresort_traffic.routing.downstream import DEAD_END, DownstreamValue, DownstreamValuePropagator
from skiresort_traffic.routing.goal_planner import GoalContext, GoalPlanner, GoalStateMachine
from skiresort_traffic.routing.junction import JunctionDecision, JunctionSwitchEvaluator, SwitchRule
from skiresort_traffic.routing.registry import SnapPointRegistry
from skiresort_traffic.routing.scoring import RouteScorer, Selection, TrailScore

__all__ = [
    "SnapPointRegistry",
    "ConnectivityGraph",
    "GraphTopology",
    "DownstreamValuePropagator",
    "DownstreamValue",
    "DEAD_END",
    "RouteScorer",
    "TrailScore",
    "Selection",
    "DecisionMaker",
    "GoalPlanner",
    "GoalStateMachine",
    "GoalContext",
    "JunctionSwitchEvaluator",
    "JunctionDecision",
    "SwitchRule",
]
