"""
Simulation engine: explicit state handle plus the inbound operations that
collaborators (map layer, forms, timers, persistence) call.

All mutable simulation data lives on a :class:`SimulationState`; a
:class:`SearchSimulation` wraps one and is the only writer. ``tick`` advances
every active assignment in every area by one step, claims cells, runs the
schedule monitor and returns (and dispatches) the resulting events.
"""
from __future__ import annotations

import logging
import math
import time
import uuid
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence, Tuple

import numpy as np

from search_coverage.algs.geometry import LatLng, coerce_vertices, covers_point, normalize_polygon, to_shape
from search_coverage.algs.grid import generate_grid
from search_coverage.algs.patterns import generate_waypoints, sample_interior_point
from search_coverage.common.constants import AGENT_COLORS, DEFAULT_PRIORITY, DEFAULT_TIME_THRESHOLD_MIN, PATTERNS, PRIORITIES
from search_coverage.common.errors import CellLimitExceeded, GeometryError, InvalidAssignment
from search_coverage.data.events import EventDict, alert_raised, coverage_changed, position_update
from search_coverage.data.schemas import (
    Agent,
    Alert,
    Assignment,
    GridCellSet,
    SearchArea,
    SimulationConfig,
)
from search_coverage.sim.coverage import claim_cell, coverage_percentage
from search_coverage.sim.monitor import ScheduleMonitor
from search_coverage.sim.stepper import step, step_distance_m

logger = logging.getLogger(__name__)

Listener = Callable[[EventDict], None]

__all__ = ["SimulationState", "SearchSimulation", "Listener"]


@dataclass
class SimulationState:
    config: SimulationConfig = field(default_factory=SimulationConfig)
    areas: Dict[str, SearchArea] = field(default_factory=dict)
    agents: Dict[str, Agent] = field(default_factory=dict)
    assignments: Dict[Tuple[str, str], Assignment] = field(default_factory=dict)
    alerts: List[Alert] = field(default_factory=list)
    speed: float = 1.0
    running: bool = False
    pending_grids: List[str] = field(default_factory=list)
    tick_count: int = 0
    last_tick_at: Optional[float] = None
    agents_registered: int = 0
    monitor: ScheduleMonitor = field(default_factory=ScheduleMonitor)
    rng: np.random.Generator = field(default=None, repr=False)  # type: ignore[assignment]

    def __post_init__(self) -> None:
        if self.rng is None:
            self.rng = np.random.default_rng(self.config.seed)
        self.monitor.cooldown_s = self.config.alert_cooldown_s
        self.monitor.margin_pct = self.config.behind_margin_pct
        self.monitor.min_elapsed_fraction = self.config.min_elapsed_fraction


def _new_id(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex[:12]}"


class SearchSimulation:
    def __init__(self, state: Optional[SimulationState] = None, config: Optional[SimulationConfig] = None) -> None:
        if state is None:
            state = SimulationState(config=config or SimulationConfig())
        self.state = state
        self._listeners: List[Listener] = []

    @property
    def config(self) -> SimulationConfig:
        return self.state.config

    # ------------------------------------------------------------------
    #  Listeners
    # ------------------------------------------------------------------
    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register ``listener`` for outbound events; returns an unsubscribe callable."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _dispatch(self, events: Sequence[EventDict]) -> None:
        for event in events:
            for listener in list(self._listeners):
                listener(event)

    # ------------------------------------------------------------------
    #  Lookups
    # ------------------------------------------------------------------
    def get_area(self, area_id: str) -> SearchArea:
        try:
            return self.state.areas[area_id]
        except KeyError:
            raise InvalidAssignment(f"unknown area {area_id!r}") from None

    def get_agent(self, agent_id: str) -> Agent:
        try:
            return self.state.agents[agent_id]
        except KeyError:
            raise InvalidAssignment(f"unknown agent {agent_id!r}") from None

    def assignments_for_area(self, area_id: str) -> List[Assignment]:
        return [a for a in self.state.assignments.values() if a.area_id == area_id]

    def assignments_for_agent(self, agent_id: str) -> List[Assignment]:
        return [a for a in self.state.assignments.values() if a.agent_id == agent_id]

    # ------------------------------------------------------------------
    #  Areas
    # ------------------------------------------------------------------
    def _build_grid(self, polygon: Sequence[LatLng], cell_size_m: float) -> GridCellSet:
        try:
            return generate_grid(polygon, cell_size_m, max_cells=self.config.max_cells)
        except CellLimitExceeded:
            raise
        except GeometryError as exc:
            logger.warning("grid generation failed, area starts with no cells: %s", exc)
            return GridCellSet.empty(cell_size_m)

    def create_area(
        self,
        polygon: Sequence[Sequence[float]],
        priority: str = DEFAULT_PRIORITY,
        time_threshold: float = DEFAULT_TIME_THRESHOLD_MIN,
        cell_size_m: Optional[float] = None,
        *,
        name: Optional[str] = None,
        now: Optional[float] = None,
        defer_grid: bool = False,
        area_id: Optional[str] = None,
    ) -> SearchArea:
        if priority not in PRIORITIES:
            raise InvalidAssignment(f"unknown priority {priority!r}; expected one of {PRIORITIES}")
        if not (math.isfinite(time_threshold) and time_threshold > 0.0):
            raise ValueError("time_threshold must be a positive number of minutes")
        cell_size = self.config.default_cell_size_m if cell_size_m is None else float(cell_size_m)
        if not (math.isfinite(cell_size) and cell_size > 0.0):
            raise ValueError("cell_size_m must be positive")

        # non-pair or non-finite vertices raise here, before any mutation
        vertices = coerce_vertices(polygon)
        try:
            ring: Tuple[LatLng, ...] = tuple(normalize_polygon(vertices))
        except GeometryError as exc:
            logger.warning("malformed polygon kept as drawn: %s", exc)
            ring = tuple(vertices)

        cells = None if defer_grid else self._build_grid(ring, cell_size)

        area = SearchArea(
            id=area_id or _new_id("area"),
            name=name or "Unnamed Area",
            polygon=ring,
            priority=priority,
            time_threshold=float(time_threshold),
            cell_size_m=cell_size,
            created_at=time.time() if now is None else float(now),
            cells=cells,
        )
        self.state.areas[area.id] = area
        if defer_grid:
            self.state.pending_grids.append(area.id)
        logger.info("created area %s (%s) with %d cells", area.id, area.name, area.total_cells)
        return area

    def build_pending_grids(self, limit: Optional[int] = None) -> int:
        """Generate deferred grids; call from an idle point between ticks."""
        built = 0
        while self.state.pending_grids and (limit is None or built < limit):
            area_id = self.state.pending_grids.pop(0)
            area = self.state.areas.get(area_id)
            if area is None or area.cells is not None:
                continue
            try:
                area.cells = self._build_grid(area.polygon, area.cell_size_m)
            except CellLimitExceeded as exc:
                logger.error("area %s: %s; leaving it without cells", area_id, exc)
                area.cells = GridCellSet.empty(area.cell_size_m)
            built += 1
        return built

    def delete_area(self, area_id: str) -> None:
        self.get_area(area_id)
        del self.state.areas[area_id]
        for key in [k for k in self.state.assignments if k[1] == area_id]:
            del self.state.assignments[key]
        if area_id in self.state.pending_grids:
            self.state.pending_grids.remove(area_id)
        self.state.monitor.forget(area_id)

    # ------------------------------------------------------------------
    #  Agents
    # ------------------------------------------------------------------
    def register_agent(
        self,
        name: Optional[str] = None,
        *,
        agent_id: Optional[str] = None,
        position: Optional[LatLng] = None,
        now: Optional[float] = None,
    ) -> Agent:
        index = self.state.agents_registered
        agent = Agent(
            id=agent_id or _new_id("agent"),
            name=name or f"Agent {index + 1}",
            color=AGENT_COLORS[index % len(AGENT_COLORS)],
            current_position=position,
            started_at=time.time() if now is None else float(now),
        )
        self.state.agents[agent.id] = agent
        self.state.agents_registered += 1
        return agent

    def remove_agent(self, agent_id: str) -> None:
        self.get_agent(agent_id)
        del self.state.agents[agent_id]
        for key in [k for k in self.state.assignments if k[0] == agent_id]:
            del self.state.assignments[key]

    def activate_agent(self, agent_id: str) -> None:
        self.get_agent(agent_id).active = True

    def deactivate_agent(self, agent_id: str) -> None:
        self.get_agent(agent_id).active = False

    def _start_point(self, agent: Agent, area: SearchArea) -> LatLng:
        try:
            ring = normalize_polygon(area.polygon)
        except GeometryError:
            if agent.current_position is not None:
                return agent.current_position
            return area.polygon[0] if area.polygon else (0.0, 0.0)
        if agent.current_position is not None and covers_point(to_shape(ring), agent.current_position):
            return agent.current_position
        return sample_interior_point(ring, self.state.rng, self.config.random_attempts)

    def assign_agent_to_area(self, agent_id: str, area_id: str, pattern: str = "grid") -> Assignment:
        """Plan ``pattern`` for the agent over the area; replaces any previous plan for the pair."""
        agent = self.get_agent(agent_id)
        area = self.get_area(area_id)
        if pattern not in PATTERNS:
            raise InvalidAssignment(f"unknown pattern {pattern!r}; expected one of {PATTERNS}")

        waypoints = generate_waypoints(
            area.polygon,
            pattern,
            self._start_point(agent, area),
            rng=self.state.rng,
            grid_step_m=self.config.grid_pattern_step_m,
            num_points=self.config.random_points,
            max_attempts=self.config.random_attempts,
        )
        assignment = Assignment(agent_id=agent.id, area_id=area.id, pattern=pattern, waypoints=tuple(waypoints))
        self.state.assignments[(agent.id, area.id)] = assignment
        logger.debug("agent %s -> area %s: %s plan, %d waypoints", agent.id, area.id, pattern, len(waypoints))
        return assignment

    def unassign_agent(self, agent_id: str, area_id: str) -> None:
        if self.state.assignments.pop((agent_id, area_id), None) is None:
            raise InvalidAssignment(f"agent {agent_id!r} is not assigned to area {area_id!r}")

    # ------------------------------------------------------------------
    #  Run control
    # ------------------------------------------------------------------
    def set_simulation_speed(self, multiplier: float) -> None:
        if not (math.isfinite(multiplier) and multiplier > 0.0):
            raise ValueError("simulation speed multiplier must be positive")
        self.state.speed = float(multiplier)

    @property
    def tick_interval_s(self) -> float:
        return self.config.tick_interval_s / self.state.speed

    def start_simulation(self) -> None:
        self.state.running = True

    def stop_simulation(self) -> None:
        self.state.running = False

    def reset(self) -> None:
        self.state = SimulationState(config=self.config)

    # ------------------------------------------------------------------
    #  Tick
    # ------------------------------------------------------------------
    def _record_alert(self, alert: Alert) -> None:
        self.state.alerts.append(alert)
        overflow = len(self.state.alerts) - self.config.max_alerts
        if overflow > 0:
            del self.state.alerts[:overflow]

    def tick(self, now: Optional[float] = None, interval_s: Optional[float] = None) -> List[EventDict]:
        """Advance every active assignment by one step and return the emitted events."""
        now = time.time() if now is None else float(now)
        interval = self.tick_interval_s if interval_s is None else float(interval_s)
        distance = step_distance_m(self.state.speed, interval, self.config.walking_speed_mps)

        events: List[EventDict] = []
        for area in list(self.state.areas.values()):
            updated: List[int] = []
            for assignment in self.assignments_for_area(area.id):
                agent = self.state.agents.get(assignment.agent_id)
                if agent is None or not agent.active:
                    continue
                position = step(assignment.cursor, assignment.waypoints, distance)
                if position is None:
                    continue
                agent.record_position(position, now)
                events.append(position_update(agent.id, area.id, position, now))
                if area.cells is not None:
                    cell_id = claim_cell(area.cells, position, agent.id, now)
                    if cell_id is not None:
                        updated.append(cell_id)

            if area.cells is None or area.cells.total == 0:
                continue
            coverage = coverage_percentage(area.cells)
            if updated:
                events.append(coverage_changed(area.id, coverage, updated))

            elapsed_minutes = max(0.0, (now - area.created_at) / 60.0)
            for alert in self.state.monitor.observe(area, coverage, elapsed_minutes, now):
                self._record_alert(alert)
                events.append(alert_raised(alert))

        self.state.tick_count += 1
        self.state.last_tick_at = now
        self._dispatch(events)
        return events
