"""SkierRoutingEngine - ties registration, routing and agent motion together.

Lifecycle:
    engine = SkierRoutingEngine.create(tuning_source=source, terrain=grid, seed=7)
    engine.activate()
    engine.on_base_placed(base)
    engine.on_lift_built(lift)
    engine.on_trail_validated(trail)
    agent_id = engine.spawn_skier()
    report = engine.tick()

Tick Order
----------
1. Read the tuning source exactly once.
2. Apply structure changes queued during the previous tick and rebuild the
   connectivity graph if the registry or snap radius changed.
3. Relocate agents whose segment or point disappeared.
4. Update agents in id order, each with its own random stream keyed by
   (seed, agent id, tick): move along the current segment, check junctions,
   and decide at arrival points.

Structure callbacks outside a tick apply immediately; inside a tick they are
queued so that no agent sees the graph change half-way through.
"""

import logging
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Callable, Mapping, Optional

import numpy as np

from skiresort_traffic.constants import SimulationConfig, SkierConfig
from skiresort_traffic.core.random_source import agent_rng, stream_rng
from skiresort_traffic.core.terrain import TerrainProvider, TrailSurveyor
from skiresort_traffic.exceptions import (
    DuplicateSnapPoint,
    EngineNotActiveError,
    InvalidTuningError,
    SkierRoutingError,
    UnknownAgentError,
)
from skiresort_traffic.model.base_lodge import BaseLodge
from skiresort_traffic.model.coordinate import Coordinate
from skiresort_traffic.model.decision import Decision
from skiresort_traffic.model.lift import Lift
from skiresort_traffic.model.segment import SegmentRef
from skiresort_traffic.model.skier import SkierAgent
from skiresort_traffic.model.skill import SkillLevel
from skiresort_traffic.model.snap_point import SnapPoint, SnapPointType
from skiresort_traffic.model.trail import Trail
from skiresort_traffic.model.tuning import TuningConfig, TuningSource
from skiresort_traffic.routing.connectivity_graph import ConnectivityGraph
from skiresort_traffic.routing.decision_maker import DecisionMaker
from skiresort_traffic.routing.downstream import DownstreamValuePropagator
from skiresort_traffic.routing.goal_planner import GoalPlanner, GoalStateMachine
from skiresort_traffic.routing.junction import JunctionDecision, JunctionSwitchEvaluator
from skiresort_traffic.routing.registry import SnapPointRegistry
from skiresort_traffic.routing.scoring import RouteScorer
from skiresort_traffic.simulation.population import sample_desired_runs, sample_skill

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TickReport:
    """What happened during one tick.

    Attributes:
        tick: Tick number (0-based)
        tuning_version: Version of the tuning snapshot used
        generation: Graph generation agents saw
        rebuilt: True if the graph was rebuilt at the start of the tick
        decisions: Decisions made this tick, in agent id order
        switches: Junction evaluations that moved an agent onto another trail
        parked: Agents left waiting with no viable route
        relocated: Agents moved to a base because their structure was removed
        despawned: Agents that left the resort
    """

    tick: int
    tuning_version: int
    generation: int
    rebuilt: bool = False
    decisions: tuple[Decision, ...] = ()
    switches: tuple[JunctionDecision, ...] = ()
    parked: tuple[int, ...] = ()
    relocated: tuple[int, ...] = ()
    despawned: tuple[int, ...] = ()


@dataclass
class _TickLog:
    decisions: list[Decision] = field(default_factory=list)
    switches: list[JunctionDecision] = field(default_factory=list)
    parked: list[int] = field(default_factory=list)
    relocated: list[int] = field(default_factory=list)
    despawned: list[int] = field(default_factory=list)


class SkierRoutingEngine:
    """Drives skier agents through a resort built from registration callbacks.

    Construct with create(), then call activate() once before use.
    """

    def __init__(
        self,
        tuning_source: TuningSource,
        terrain: Optional[TerrainProvider],
        seed: int,
    ) -> None:
        self.tuning_source = tuning_source
        self.surveyor = TrailSurveyor(terrain=terrain)
        self.seed = seed

        self._trails: dict[str, Trail] = {}
        self._lifts: dict[str, Lift] = {}
        self._bases: dict[str, BaseLodge] = {}
        self._agents: dict[int, SkierAgent] = {}
        self._positions: dict[int, Coordinate] = {}
        self._decisions: dict[int, Decision] = {}

        self._active = False
        self._in_tick = False
        self._pending: list[Callable[[], None]] = []
        # Owners added or removed by changes still in _pending
        self._pending_added: set[str] = set()
        self._pending_removed: set[str] = set()
        self._tick = 0
        self._next_agent_id = 1
        self._spawn_counter = 0
        self._seen_tuning_version: Optional[int] = None

        self.registry: Optional[SnapPointRegistry] = None
        self.graph: Optional[ConnectivityGraph] = None
        self.propagator: Optional[DownstreamValuePropagator] = None
        self.scorer: Optional[RouteScorer] = None
        self.decision_maker: Optional[DecisionMaker] = None
        self.planner: Optional[GoalPlanner] = None
        self.junctions: Optional[JunctionSwitchEvaluator] = None

    # =========================================================================
    # Construction
    # =========================================================================

    @classmethod
    def create(
        cls,
        tuning_source: Optional[TuningSource] = None,
        terrain: Optional[TerrainProvider] = None,
        seed: int = SimulationConfig.DEFAULT_SEED,
    ) -> "SkierRoutingEngine":
        """Inert engine; call activate() before registering structures or ticking."""
        return cls(tuning_source=tuning_source or TuningSource(), terrain=terrain, seed=seed)

    def activate(self) -> "SkierRoutingEngine":
        """Build the routing components.

        Raises:
            EngineNotActiveError: If already active.
            InvalidTuningError: If the tuning source does not hold a TuningConfig.
        """
        if self._active:
            raise EngineNotActiveError("Engine is already active")
        tuning = self.tuning_source.current()
        if not isinstance(tuning, TuningConfig):
            raise InvalidTuningError(f"Tuning source returned {type(tuning).__name__}, expected TuningConfig")

        self.registry = SnapPointRegistry()
        self.graph = ConnectivityGraph()
        self.propagator = DownstreamValuePropagator(graph=self.graph, trails=self._trails)
        self.scorer = RouteScorer(propagator=self.propagator, graph=self.graph, trails=self._trails, lifts=self._lifts)
        self.decision_maker = DecisionMaker(graph=self.graph, scorer=self.scorer, trails=self._trails, lifts=self._lifts)
        self.planner = GoalPlanner(graph=self.graph, propagator=self.propagator, trails=self._trails, lifts=self._lifts)
        self.junctions = JunctionSwitchEvaluator(scorer=self.scorer, trails=self._trails)
        self._active = True
        logger.info(f"Skier routing engine activated (seed {self.seed}, tuning v{tuning.version})")
        return self

    @property
    def is_active(self) -> bool:
        return self._active

    def _require_active(self) -> None:
        if not self._active:
            raise EngineNotActiveError("Engine must be activated before use")

    # =========================================================================
    # Structure callbacks
    # =========================================================================

    def on_base_placed(self, base: BaseLodge) -> None:
        """Register a base lodge's spawn point."""
        self._require_active()
        self._check_points_free(base.snap_points())
        self._apply(lambda: self._add_structure(self._bases, base, base.snap_points()), added=base.id)

    def on_lift_built(self, lift: Lift) -> None:
        """Register a lift's bottom and top stations."""
        self._require_active()
        self._check_points_free(lift.snap_points())
        self._apply(lambda: self._add_structure(self._lifts, lift, lift.snap_points()), added=lift.id)

    def on_trail_validated(self, trail: Trail) -> Trail:
        """Validate a trail against the terrain and register its start and end.

        The trail's difficulty is classified from its slopes when not given.

        Returns:
            The registered trail (with difficulty filled in).

        Raises:
            TrailValidationError: If the trail is rejected.
            DuplicateSnapPoint: If the trail id is already registered.
        """
        self._require_active()
        survey = self.surveyor.survey(trail.points)
        if trail.difficulty is None:
            trail = replace(trail, difficulty=survey.difficulty)
        self._check_points_free(trail.snap_points())
        registered = trail
        self._apply(lambda: self._add_structure(self._trails, registered, registered.snap_points()), added=registered.id)
        return trail

    def remove_structure(self, owner_id: str) -> bool:
        """Remove a base, lift or trail and its snap points.

        Returns:
            True if the structure existed.
        """
        self._require_active()
        if not self._exists(owner_id):
            return False
        self._apply(lambda: self._remove_structure(owner_id), removed=owner_id)
        return True

    def _exists(self, owner_id: str) -> bool:
        """True if the structure is registered or queued, counting queued removals."""
        if owner_id in self._pending_added:
            return True
        registered = owner_id in self._trails or owner_id in self._lifts or owner_id in self._bases
        return registered and owner_id not in self._pending_removed

    def _check_points_free(self, points: tuple[SnapPoint, ...]) -> None:
        # Checked eagerly, against queued changes too, so callers inside a tick see the failure
        for point in points:
            queued = point.owner_id in self._pending_added
            registered = point.id in self.registry and point.owner_id not in self._pending_removed
            if queued or registered:
                raise DuplicateSnapPoint(point.id)

    def _apply(self, change: Callable[[], None], added: Optional[str] = None, removed: Optional[str] = None) -> None:
        if self._in_tick:
            self._pending.append(change)
            if added is not None:
                self._pending_added.add(added)
            if removed is not None:
                self._pending_removed.add(removed)
                self._pending_added.discard(removed)
            logger.debug(f"Structure change queued until tick {self._tick + 1}")
            return
        change()
        self.graph.rebuild_from(self.registry, self.tuning_source.current().network_snap_radius)

    def _add_structure(self, store: dict, structure: Trail | Lift | BaseLodge, points: tuple[SnapPoint, ...]) -> None:
        self.registry.register_all(points)
        store[structure.id] = structure
        logger.info(f"Registered {structure!r} with {len(points)} snap point(s)")

    def _remove_structure(self, owner_id: str) -> None:
        for store in (self._trails, self._lifts, self._bases):
            store.pop(owner_id, None)
        removed = self.registry.unregister_owner(owner_id)
        logger.info(f"Removed {owner_id} and {len(removed)} snap point(s)")

    # =========================================================================
    # Agents
    # =========================================================================

    def spawn_skier(self, skill: Optional[SkillLevel] = None, base_id: Optional[str] = None) -> int:
        """Spawn a skier at a base lodge.

        Args:
            skill: Skill level, sampled from the population mix when None
            base_id: Base lodge to spawn at, drawn at random when None

        Returns:
            The new agent's id.

        Raises:
            SkierRoutingError: If no base lodge is placed.
            KeyError: If base_id is unknown.
        """
        self._require_active()
        if not self._bases:
            raise SkierRoutingError("Cannot spawn a skier without a base lodge")
        tuning = self.tuning_source.current()
        rng = stream_rng(self.seed, SimulationConfig.SPAWN_STREAM_ID, self._spawn_counter)
        self._spawn_counter += 1

        if base_id is None:
            base_ids = sorted(self._bases)
            base = self._bases[base_ids[int(rng.integers(len(base_ids)))]]
        else:
            base = self._bases[base_id]
        if skill is None:
            skill = sample_skill(rng=rng, shares=tuning.population_shares)

        agent_id = self._next_agent_id
        self._next_agent_id += 1
        agent = SkierAgent(
            id=agent_id,
            skill=skill,
            point_id=base.spawn_point_id,
            desired_runs=sample_desired_runs(rng),
            goal_machine=GoalStateMachine.create(agent_id),
        )
        self._agents[agent_id] = agent
        self._positions[agent_id] = base.location
        logger.info(f"Spawned {agent!r} at {base.name}")
        return agent_id

    def despawn(self, agent_id: int) -> None:
        """Remove an agent from the resort."""
        self._get_agent(agent_id)
        del self._agents[agent_id]
        self._positions.pop(agent_id, None)
        self._decisions.pop(agent_id, None)
        logger.info(f"Skier {agent_id} left the resort")

    def _get_agent(self, agent_id: int) -> SkierAgent:
        try:
            return self._agents[agent_id]
        except KeyError:
            raise UnknownAgentError(agent_id) from None

    # =========================================================================
    # Tick
    # =========================================================================

    def tick(self, dt: float = SimulationConfig.DEFAULT_TICK_SECONDS) -> TickReport:
        """Advance the simulation by one tick of dt seconds."""
        self._require_active()
        if dt <= 0:
            raise ValueError(f"dt must be positive, got {dt}")

        tuning = self.tuning_source.current()
        if tuning.version != self._seen_tuning_version:
            if self._seen_tuning_version is not None:
                logger.info(f"Tuning changed v{self._seen_tuning_version} -> v{tuning.version}")
            self._seen_tuning_version = tuning.version

        pending, self._pending = self._pending, []
        self._pending_added.clear()
        self._pending_removed.clear()
        for change in pending:
            change()
        rebuilt = self.graph.rebuild_from(self.registry, tuning.network_snap_radius)

        log = _TickLog()
        self._in_tick = True
        try:
            self._relocate_orphans(log)
            for agent_id in sorted(self._agents):
                agent = self._agents.get(agent_id)
                if agent is None:
                    continue
                rng = agent_rng(self.seed, agent_id, self._tick)
                self._update_agent(agent=agent, tuning=tuning, rng=rng, dt=dt, log=log)
        finally:
            self._in_tick = False

        report = TickReport(
            tick=self._tick,
            tuning_version=tuning.version,
            generation=self.graph.generation,
            rebuilt=rebuilt,
            decisions=tuple(log.decisions),
            switches=tuple(log.switches),
            parked=tuple(log.parked),
            relocated=tuple(log.relocated),
            despawned=tuple(log.despawned),
        )
        self._tick += 1
        return report

    def run(self, ticks: int, dt: float = SimulationConfig.DEFAULT_TICK_SECONDS) -> list[TickReport]:
        return [self.tick(dt=dt) for _ in range(ticks)]

    def _update_agent(
        self,
        agent: SkierAgent,
        tuning: TuningConfig,
        rng: np.random.Generator,
        dt: float,
        log: _TickLog,
    ) -> None:
        if not agent.is_travelling:
            self._decide(agent=agent, tuning=tuning, rng=rng, log=log, trail_completed=False)
            return

        segment = agent.segment
        structure = self._structure_of(segment)
        speed = SkierConfig.LIFT_SPEED if segment.is_lift else SkierConfig.SKI_SPEED
        agent.progress += speed * dt / max(structure.length, SkierConfig.MIN_SEGMENT_LENGTH)

        if segment.is_trail and agent.progress < 1.0 and self._junction_check_due(agent, tuning):
            position = structure.position_at(agent.progress)
            junction = self.junctions.evaluate(agent=agent, position=position, tuning=tuning, rng=rng)
            if junction is not None and junction.switched:
                agent.switch_trail(junction.alternative_id, junction.entry_fraction)
                self.planner.record_boarding(agent, agent.segment)
                log.switches.append(junction)
                segment = agent.segment
                structure = self._structure_of(segment)

        if agent.progress < 1.0:
            self._positions[agent.id] = structure.position_at(agent.progress)
            return

        end_point_id = structure.end_point_id if segment.is_trail else structure.top_point_id
        finished = agent.arrive(end_point_id)
        self._positions[agent.id] = structure.end if segment.is_trail else structure.top
        self._decide(agent=agent, tuning=tuning, rng=rng, log=log, trail_completed=finished.is_trail)

    def _junction_check_due(self, agent: SkierAgent, tuning: TuningConfig) -> bool:
        return (
            tuning.allow_mid_trail_switching
            and self._tick % SimulationConfig.JUNCTION_CHECK_INTERVAL_TICKS == 0
            and SimulationConfig.SWITCH_WINDOW_START <= agent.progress <= SimulationConfig.SWITCH_WINDOW_END
        )

    def _decide(
        self,
        agent: SkierAgent,
        tuning: TuningConfig,
        rng: np.random.Generator,
        log: _TickLog,
        trail_completed: bool,
    ) -> None:
        point = self.graph.get(agent.point_id)
        if point is None:
            agent.parked = True
            log.parked.append(agent.id)
            logger.warning(f"Skier {agent.id} stands at unregistered point {agent.point_id}")
            return

        goal = self.planner.prepare(agent=agent, point=point, tuning=tuning, rng=rng, trail_completed=trail_completed)

        if agent.wants_to_leave and self.graph.nearest_of_type(point.location, SnapPointType.BASE_SPAWN, tuning.base_walk_radius):
            sm = agent.goal_machine
            if sm.en_route.is_active and goal is not None and goal.returning_to_base:
                sm.arrive()
            log.despawned.append(agent.id)
            self.despawn(agent.id)
            return

        decision = self.decision_maker.decide(agent=agent, point=point, tuning=tuning, rng=rng, tick=self._tick, goal=goal)
        self._decisions[agent.id] = decision
        log.decisions.append(decision)
        if not decision.is_viable:
            agent.parked = True
            log.parked.append(agent.id)
            return

        segment = decision.chosen.candidate.segment
        agent.board(segment)
        self.planner.record_boarding(agent, segment)
        structure = self._structure_of(segment)
        self._positions[agent.id] = structure.start if segment.is_trail else structure.bottom

    def _structure_of(self, segment: SegmentRef) -> Trail | Lift:
        return self._lifts[segment.structure_id] if segment.is_lift else self._trails[segment.structure_id]

    def _relocate_orphans(self, log: _TickLog) -> None:
        """Move agents whose segment or point was removed to the nearest base spawn."""
        for agent_id in sorted(self._agents):
            agent = self._agents[agent_id]
            if agent.is_travelling:
                store = self._lifts if agent.segment.is_lift else self._trails
                orphaned = agent.segment.structure_id not in store
            else:
                orphaned = agent.point_id not in self.graph
            if not orphaned:
                continue

            spawn = self._nearest_spawn(self._positions[agent_id])
            if spawn is None:
                logger.warning(f"Skier {agent_id} lost its structure and no base remains; removing")
                log.despawned.append(agent_id)
                self.despawn(agent_id)
                continue
            agent.place_at(spawn.id)
            agent.parked = False
            if not agent.goal_machine.no_goal.is_active:
                agent.goal_machine.abandon()
            self._positions[agent_id] = spawn.location
            log.relocated.append(agent_id)
            logger.info(f"Skier {agent_id} relocated to {spawn.id} after a structure was removed")

    def _nearest_spawn(self, location: Coordinate) -> Optional[SnapPoint]:
        spawns = self.graph.points_of_type(SnapPointType.BASE_SPAWN)
        if not spawns:
            return None
        return min(spawns, key=lambda p: (location.distance_to(p.location), p.id))

    # =========================================================================
    # Queries
    # =========================================================================

    def current_segment(self, agent_id: int) -> Optional[SegmentRef]:
        """Lift or trail the agent is on, None while standing at a point."""
        return self._get_agent(agent_id).segment

    def position(self, agent_id: int) -> Coordinate:
        """Agent position as of the end of the last tick."""
        self._get_agent(agent_id)
        return self._positions[agent_id]

    def last_decision(self, agent_id: int) -> Optional[Decision]:
        """Most recent decision with per-candidate scores, None before the first one."""
        self._get_agent(agent_id)
        return self._decisions.get(agent_id)

    def goal_state(self, agent_id: int) -> str:
        return self._get_agent(agent_id).goal_machine.get_state_name()

    @property
    def agents(self) -> Mapping[int, SkierAgent]:
        return MappingProxyType(self._agents)

    @property
    def trails(self) -> Mapping[str, Trail]:
        return MappingProxyType(self._trails)

    @property
    def lifts(self) -> Mapping[str, Lift]:
        return MappingProxyType(self._lifts)

    @property
    def bases(self) -> Mapping[str, BaseLodge]:
        return MappingProxyType(self._bases)

    @property
    def tick_count(self) -> int:
        return self._tick

    def __repr__(self) -> str:
        state = "active" if self._active else "inactive"
        return (
            f"SkierRoutingEngine({state}, tick={self._tick}, agents={len(self._agents)}, "
            f"trails={len(self._trails)}, lifts={len(self._lifts)}, bases={len(self._bases)})"
        )
