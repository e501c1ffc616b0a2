"""Coverage tracking, stepping, alerting and the engine that ties them together."""

from __future__ import annotations

from search_coverage.sim.coverage import (
    claim_cell,
    coverage_by_agent,
    coverage_percentage,
    find_cell,
    mark_covered,
)
from search_coverage.sim.engine import SearchSimulation, SimulationState
from search_coverage.sim.monitor import ScheduleMonitor
from search_coverage.sim.scheduler import TickScheduler
from search_coverage.sim.stepper import step, step_distance_m

__all__ = [
    "claim_cell",
    "coverage_by_agent",
    "coverage_percentage",
    "find_cell",
    "mark_covered",
    "SearchSimulation",
    "SimulationState",
    "ScheduleMonitor",
    "TickScheduler",
    "step",
    "step_distance_m",
]
