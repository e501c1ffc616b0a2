# Core engine: default exports
from .algs import generate_grid, generate_waypoints
from .sim import (
    SearchSimulation,
    SimulationState,
    TickScheduler,
    coverage_by_agent,
    coverage_percentage,
    mark_covered,
    step,
)

# Data model, errors & constants
from .data.schemas import Agent, Alert, GridCell, GridCellSet, SearchArea, SimulationConfig
from .common.errors import (
    CellLimitExceeded,
    GeometryError,
    InvalidAssignment,
    PlanExhausted,
    StorageError,
)
from .common.constants import DEFAULT_SEED, EPS_GEOM, RNG_SEEDS, TOL_NUM, seed_everywhere

# Persistence boundary, available under .io_utils
from .data import io_utils as io_utils

__all__ = [
    # algorithms
    "generate_grid",
    "generate_waypoints",
    "mark_covered",
    "coverage_percentage",
    "coverage_by_agent",
    "step",
    # engine
    "SearchSimulation",
    "SimulationState",
    "TickScheduler",
    # data model
    "Agent",
    "Alert",
    "GridCell",
    "GridCellSet",
    "SearchArea",
    "SimulationConfig",
    # errors
    "GeometryError",
    "CellLimitExceeded",
    "InvalidAssignment",
    "PlanExhausted",
    "StorageError",
    # constants
    "EPS_GEOM",
    "TOL_NUM",
    "DEFAULT_SEED",
    "RNG_SEEDS",
    "seed_everywhere",
    # namespaced access to snapshot I/O
    "io_utils",
]
