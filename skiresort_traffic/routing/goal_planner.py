"""Goal Planner - per-agent destination planning with python-statemachine.

States:
    NO_GOAL: No destination; entered at spawn and whenever a plan is abandoned or fails
    PLANNING: Choosing a destination trail (or the base lodge) and a route to it
    EN_ROUTE: Following the route; the suggested next segment gets goal_trail_bonus
    AT_GOAL: Destination trail boarded (or base reached)
    REPLANNING: Goal went stale or was dropped; waiting for the next planning point

Transitions:
    NO_GOAL | AT_GOAL | REPLANNING -> PLANNING: plan
    PLANNING -> EN_ROUTE: commit (a goal was found)
    PLANNING -> NO_GOAL: fail (nothing reachable)
    EN_ROUTE -> AT_GOAL: arrive
    EN_ROUTE | AT_GOAL -> REPLANNING: invalidate (stale, deviated, or run finished)
    any goal-holding state -> NO_GOAL: abandon

Replanning Triggers
-------------------
- A goal is stale when the graph generation or tuning version advanced since it
  was computed, or its target snap point is gone. Stale goals are invalidated
  at the next decision point and never contribute a bonus.
- replan_after_every_run: every completed trail invalidates an en-route goal.
- replan_at_lift_top: a REPLANNING agent plans again at a lift top instead of
  waiting for the next trail end or base.

Route Search
------------
A directed graph over snap points, built per skill and cached per
(generation, skill):
- walk: arrival points (BaseSpawn, TrailEnd, LiftTop) to their connectivity
  graph neighbors (within network_snap_radius) that are LiftBottom (except
  from lift tops), TrailStart or BaseSpawn points
- ride: LiftBottom -> LiftTop of the same lift
- ski: TrailStart -> TrailEnd for trails inside the skill's hard cap
SciPy's breadth_first_order gives fewest-edge routes from the agent's point.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

import numpy as np
from scipy.sparse import csr_matrix
from scipy.sparse.csgraph import breadth_first_order
from statemachine import State, StateMachine
from statemachine.exceptions import TransitionNotAllowed

from skiresort_traffic.constants import GoalConfig
from skiresort_traffic.model.goal import Goal, PathStep
from skiresort_traffic.model.lift import Lift
from skiresort_traffic.model.segment import SegmentRef
from skiresort_traffic.model.skier import SkierAgent
from skiresort_traffic.model.skill import SkillLevel, is_allowed
from skiresort_traffic.model.snap_point import SnapPoint, SnapPointType
from skiresort_traffic.model.trail import Trail
from skiresort_traffic.model.tuning import TuningConfig
from skiresort_traffic.routing.connectivity_graph import ConnectivityGraph
from skiresort_traffic.routing.downstream import DownstreamValuePropagator

logger = logging.getLogger(__name__)

# Predecessor marker scipy uses for unreachable nodes
_NO_PREDECESSOR = -9999

ARRIVAL_TYPES = frozenset({SnapPointType.BASE_SPAWN, SnapPointType.TRAIL_END, SnapPointType.LIFT_TOP})
WALK_TARGETS = frozenset({SnapPointType.LIFT_BOTTOM, SnapPointType.TRAIL_START, SnapPointType.BASE_SPAWN})
# Lift tops offer trails only
WALK_TARGETS_FROM_LIFT_TOP = frozenset({SnapPointType.TRAIL_START, SnapPointType.BASE_SPAWN})


# =============================================================================
# Context and State Machine
# =============================================================================


@dataclass
class GoalContext:
    """Model object of a GoalStateMachine.

    Attributes:
        agent_id: Owning agent
        goal: The live goal (None outside EN_ROUTE/AT_GOAL/REPLANNING)
        plans_made: Goals committed so far
        last_failure: Reason of the last failed planning attempt
    """

    agent_id: int
    goal: Optional[Goal] = None
    plans_made: int = 0
    last_failure: Optional[str] = None


class GoalStateMachine(StateMachine):
    """Goal lifecycle of one agent. See module docstring for transitions."""

    # ==========================================================================
    # State Definitions
    # ==========================================================================

    no_goal = State("NoGoal", initial=True)
    planning = State("Planning")
    en_route = State("EnRoute")
    at_goal = State("AtGoal")
    replanning = State("Replanning")

    # ==========================================================================
    # Transitions
    # ==========================================================================

    plan = no_goal.to(planning) | at_goal.to(planning) | replanning.to(planning)
    commit = planning.to(en_route)
    fail = planning.to(no_goal)
    arrive = en_route.to(at_goal)
    invalidate = en_route.to(replanning) | at_goal.to(replanning)
    abandon = planning.to(no_goal) | en_route.to(no_goal) | at_goal.to(no_goal) | replanning.to(no_goal)

    # ==========================================================================
    # State Check Properties
    # ==========================================================================

    @property
    def has_live_goal(self) -> bool:
        """True when a goal exists that may still be acted on."""
        return (self.en_route.is_active or self.at_goal.is_active) and self.context.goal is not None

    # ==========================================================================
    # Hooks
    # ==========================================================================

    def on_enter_no_goal(self) -> None:
        """Hook: Entering NO_GOAL drops any goal."""
        self.context.goal = None

    def on_enter_replanning(self) -> None:
        """Hook: Entering REPLANNING marks the goal stale so it is never acted on."""
        if self.context.goal is not None:
            self.context.goal.stale = True

    def before_commit(self, goal: Goal) -> None:
        """Action before committing a planned goal."""
        self.context.goal = goal
        self.context.plans_made += 1
        self.context.last_failure = None

    def before_fail(self, reason: str = "") -> None:
        """Action before a failed planning attempt."""
        self.context.last_failure = reason or None

    # ==========================================================================
    # Initialization
    # ==========================================================================

    def __init__(self, context: GoalContext, start_value: str | None = None) -> None:
        """Initialize state machine with model pattern.

        Args:
            context: Goal context of the owning agent
            start_value: Optional initial state value (for restoring state)
        """
        super().__init__(model=context, start_value=start_value)

    @property
    def context(self) -> GoalContext:
        """Alias for model."""
        return self.model

    def get_state_name(self) -> str:
        return self.current_state.name

    def try_transition(self, event: str, **kwargs: Any) -> bool:
        """Attempt a transition, returning success/failure.

        Args:
            event: Transition event name
            **kwargs: Arguments for transition

        Returns:
            True if transition succeeded, False otherwise.
        """
        try:
            self.send(event, **kwargs)
            return True
        except TransitionNotAllowed:
            logger.warning(
                f"Goal transition '{event}' not allowed from {self.get_state_name()} (skier {self.context.agent_id})"
            )
            return False

    def __repr__(self) -> str:
        return f"GoalStateMachine(state={self.get_state_name()}, goal={self.context.goal!r})"

    @staticmethod
    def create(agent_id: int) -> "GoalStateMachine":
        """Factory: state machine with a fresh context for one agent."""
        return GoalStateMachine(context=GoalContext(agent_id=agent_id))


# =============================================================================
# Route Search
# =============================================================================


@dataclass(frozen=True)
class RouteGraph:
    """Directed route graph for one skill on one graph generation.

    Attributes:
        ids: Snap point ids by matrix index
        index: Snap point id -> matrix index
        matrix: Sparse adjacency (1 for every edge)
        segments: (from index, to index) -> lift/trail for ride and ski edges
    """

    ids: tuple[str, ...]
    index: dict[str, int]
    matrix: csr_matrix
    segments: dict[tuple[int, int], SegmentRef] = field(default_factory=dict)

    def search(self, start_id: str) -> tuple[np.ndarray, np.ndarray]:
        """BFS order and predecessors from a start point."""
        return breadth_first_order(self.matrix, self.index[start_id], directed=True, return_predecessors=True)

    def steps_to(self, predecessors: np.ndarray, start_id: str, target_id: str) -> Optional[tuple[PathStep, ...]]:
        """Ride/ski steps along the BFS tree from start to target, None if unreachable."""
        start, node = self.index[start_id], self.index[target_id]
        if node != start and predecessors[node] == _NO_PREDECESSOR:
            return None
        steps: list[PathStep] = []
        while node != start:
            prev = int(predecessors[node])
            segment = self.segments.get((prev, node))
            if segment is not None:
                steps.append(PathStep(segment=segment))
            node = prev
        steps.reverse()
        return tuple(steps)


class GoalPlanner:
    """Plans goals, detects staleness and drives each agent's GoalStateMachine.

    Example:
        planner = GoalPlanner(graph=graph, propagator=propagator, trails=trails, lifts=lifts)
        goal = planner.prepare(agent=agent, point=point, tuning=tuning, rng=rng, trail_completed=True)
    """

    def __init__(
        self,
        graph: ConnectivityGraph,
        propagator: DownstreamValuePropagator,
        trails: Mapping[str, Trail],
        lifts: Mapping[str, Lift],
    ) -> None:
        self.graph = graph
        self.propagator = propagator
        self.trails = trails
        self.lifts = lifts
        self._route_graphs: dict[SkillLevel, RouteGraph] = {}
        self._route_generation = -1

    # =========================================================================
    # Staleness
    # =========================================================================

    def is_stale(self, goal: Goal, tuning: TuningConfig) -> bool:
        """Check a goal against the current graph generation and tuning version."""
        return (
            goal.stale
            or goal.generation != self.graph.generation
            or goal.tuning_version != tuning.version
            or goal.target_point_id not in self.graph
        )

    # =========================================================================
    # Decision-point driver
    # =========================================================================

    def prepare(
        self,
        agent: SkierAgent,
        point: SnapPoint,
        tuning: TuningConfig,
        rng: np.random.Generator,
        trail_completed: bool = False,
    ) -> Optional[Goal]:
        """Update the agent's goal before it decides at a point.

        Args:
            agent: Deciding agent (must have a goal machine)
            point: Snap point the agent stands at
            tuning: Current tuning snapshot
            rng: The agent's random stream for this tick
            trail_completed: True when the agent just finished a trail here

        Returns:
            The goal to apply as a bonus, or None.
        """
        sm = agent.goal_machine
        goal = sm.context.goal

        if sm.has_live_goal and self.is_stale(goal, tuning):
            logger.info(f"Skier {agent.id}: goal {goal!r} is stale, replanning")
            sm.invalidate()
        elif trail_completed and sm.en_route.is_active and tuning.replan_after_every_run:
            sm.invalidate()

        at_lift_top = point.type is SnapPointType.LIFT_TOP
        should_plan = (
            sm.no_goal.is_active
            or (sm.at_goal.is_active and trail_completed)
            or (sm.replanning.is_active and (not at_lift_top or tuning.replan_at_lift_top))
        )
        if should_plan:
            self.plan(agent=agent, point=point, tuning=tuning, rng=rng)

        if sm.has_live_goal and not sm.context.goal.stale:
            return sm.context.goal
        return None

    def record_boarding(self, agent: SkierAgent, segment: SegmentRef) -> None:
        """Advance, complete, or invalidate the goal after the agent boards a segment."""
        sm = agent.goal_machine
        if not sm.en_route.is_active:
            return
        goal = sm.context.goal
        if goal.advance(segment.structure_id):
            return
        if goal.route_complete and not goal.returning_to_base and segment.structure_id == goal.destination_id:
            sm.arrive()
            logger.debug(f"Skier {agent.id} reached goal {goal.destination_id}")
            return
        logger.debug(f"Skier {agent.id} deviated from {goal!r} onto {segment}")
        sm.invalidate()

    def plan(self, agent: SkierAgent, point: SnapPoint, tuning: TuningConfig, rng: np.random.Generator) -> Optional[Goal]:
        """Run PLANNING: choose a goal and commit it, or fail back to NO_GOAL."""
        sm = agent.goal_machine
        if not sm.try_transition("plan"):
            return None

        if agent.wants_to_leave:
            goal = self.plan_return_to_base(agent=agent, point=point, tuning=tuning)
        else:
            goal = self.plan_destination(agent=agent, point=point, tuning=tuning, rng=rng)

        if goal is None:
            sm.fail(reason=f"nothing reachable from {point.id}")
            logger.debug(f"Skier {agent.id}: no goal reachable from {point.id}")
            return None
        sm.commit(goal=goal)
        logger.debug(f"Skier {agent.id} planned {goal!r}")
        return goal

    # =========================================================================
    # Goal choice
    # =========================================================================

    def plan_destination(
        self,
        agent: SkierAgent,
        point: SnapPoint,
        tuning: TuningConfig,
        rng: np.random.Generator,
    ) -> Optional[Goal]:
        """Choose a destination trail among those the agent can reach.

        Weight = preference, times preferred_difficulty_boost when the
        preference is at least GoalConfig.STRONG_PREFERENCE_THRESHOLD.
        Destinations whose end is a dead end are skipped unless all are.
        """
        route_graph = self.route_graph(skill=agent.skill)
        if point.id not in route_graph.index:
            return None
        _, predecessors = route_graph.search(point.id)

        options: list[tuple[Trail, tuple[PathStep, ...]]] = []
        for trail in self.trails.values():
            if trail.difficulty is None or not is_allowed(agent.skill, trail.difficulty):
                continue
            if trail.start_point_id not in route_graph.index:
                continue
            steps = route_graph.steps_to(predecessors, point.id, trail.start_point_id)
            if steps is None:
                continue
            options.append((trail, steps))
        if not options:
            return None

        live = [
            (t, s)
            for t, s in options
            if not self.propagator.value(skill=agent.skill, point_id=t.end_point_id, tuning=tuning).dead_end
        ]
        if live:
            options = live

        weights = np.array([self._destination_weight(agent.skill, t, tuning) for t, _ in options], dtype=float)
        if not weights.sum() > 0:
            return None
        choice = int(rng.choice(len(options), p=weights / weights.sum()))
        trail, steps = options[choice]
        return Goal(
            target_point_id=trail.start_point_id,
            destination_id=trail.id,
            steps=steps,
            generation=self.graph.generation,
            tuning_version=tuning.version,
        )

    @staticmethod
    def _destination_weight(skill: SkillLevel, trail: Trail, tuning: TuningConfig) -> float:
        weight = tuning.preferences.weight(skill, trail.difficulty)
        if weight >= GoalConfig.STRONG_PREFERENCE_THRESHOLD:
            weight *= tuning.preferred_difficulty_boost
        return weight

    def plan_return_to_base(self, agent: SkierAgent, point: SnapPoint, tuning: TuningConfig) -> Optional[Goal]:
        """Route to the base spawn reachable with the fewest segments."""
        route_graph = self.route_graph(skill=agent.skill)
        if point.id not in route_graph.index:
            return None
        order, predecessors = route_graph.search(point.id)
        for idx in order:
            candidate = self.graph.get(route_graph.ids[idx])
            if candidate is None or candidate.type is not SnapPointType.BASE_SPAWN:
                continue
            steps = route_graph.steps_to(predecessors, point.id, candidate.id)
            if steps is None:
                continue
            return Goal(
                target_point_id=candidate.id,
                destination_id=candidate.owner_id,
                steps=steps,
                generation=self.graph.generation,
                tuning_version=tuning.version,
                returning_to_base=True,
            )
        return None

    # =========================================================================
    # Route graph
    # =========================================================================

    def route_graph(self, skill: SkillLevel) -> RouteGraph:
        """Route graph for a skill, cached per graph generation."""
        generation = self.graph.generation
        if self._route_generation != generation:
            self._route_graphs = {}
            self._route_generation = generation
        if skill not in self._route_graphs:
            self._route_graphs[skill] = self._build_route_graph(skill=skill)
        return self._route_graphs[skill]

    def _build_route_graph(self, skill: SkillLevel) -> RouteGraph:
        topology = self.graph.topology
        ids = topology.ids
        index = {pid: i for i, pid in enumerate(ids)}
        rows: list[int] = []
        cols: list[int] = []
        segments: dict[tuple[int, int], SegmentRef] = {}

        def add(a: str, b: str, segment: Optional[SegmentRef] = None) -> None:
            i, j = index[a], index[b]
            if i == j:
                return
            rows.append(i)
            cols.append(j)
            if segment is not None:
                segments[(i, j)] = segment

        for point in topology.points.values():
            if point.type in ARRIVAL_TYPES:
                # Walk edges follow the proximity edges of the connectivity graph
                walk_types = WALK_TARGETS_FROM_LIFT_TOP if point.type is SnapPointType.LIFT_TOP else WALK_TARGETS
                for neighbor_id in self.graph.neighbors(point.id):
                    if topology.points[neighbor_id].type in walk_types:
                        add(point.id, neighbor_id)
            elif point.type is SnapPointType.LIFT_BOTTOM:
                top = self.graph.counterpart(point.id)
                if top is not None and point.owner_id in self.lifts:
                    add(point.id, top.id, SegmentRef.lift(point.owner_id))
            elif point.type is SnapPointType.TRAIL_START:
                end = self.graph.counterpart(point.id)
                trail = self.trails.get(point.owner_id)
                if end is not None and trail is not None and trail.difficulty is not None and is_allowed(skill, trail.difficulty):
                    add(point.id, end.id, SegmentRef.trail(point.owner_id))

        n = len(ids)
        matrix = csr_matrix((np.ones(len(rows)), (rows, cols)), shape=(n, n))
        return RouteGraph(ids=ids, index=index, matrix=matrix, segments=segments)
