"""Data model for search areas, grid cells, agents, plans and alerts."""

from __future__ import annotations

import math
import threading
from bisect import bisect_right
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Tuple

from search_coverage.algs.geometry import BBox, LatLng
from search_coverage.common.constants import (
    ALERT_COOLDOWN_S,
    BEHIND_SCHEDULE_MARGIN_PCT,
    DEFAULT_CELL_SIZE_M,
    DEFAULT_SEED,
    GRID_PATTERN_STEP_M,
    MAX_ALERTS,
    MIN_ELAPSED_FRACTION,
    PERSISTED_ALERTS,
    PERSISTED_PATH_POINTS,
    RANDOM_PATTERN_ATTEMPTS,
    RANDOM_PATTERN_POINTS,
    TICK_INTERVAL_S,
    WALKING_SPEED_MPS,
)

CellBounds = Tuple[LatLng, LatLng]  # (min_lat, min_lng), (max_lat, max_lng)

ALERT_SCHEDULE_BEHIND = "schedule-behind"
ALERT_AREA_COMPLETE = "area-complete"


@dataclass(slots=True)
class GridCell:
    id: int
    row: int
    col: int
    bounds: CellBounds
    center: LatLng
    covered: bool = False
    covered_by: Optional[str] = None
    covered_at: Optional[float] = None

    def contains(self, point: LatLng) -> bool:
        (min_lat, min_lng), (max_lat, max_lng) = self.bounds
        lat, lng = point
        return min_lat <= lat <= max_lat and min_lng <= lng <= max_lng


@dataclass
class GridCellSet:
    """Arena of grid cells for one search area, indexed by cell id.

    Ids follow row-major order (rows south to north, columns west to east), so
    ``cells[i].id == i`` and "first containing cell" means lowest id.
    """

    cells: List[GridCell]
    cell_size_m: float
    origin: LatLng
    lat_step: float
    lng_step: float
    bbox: Optional[BBox]
    skipped: int = 0
    index: Dict[Tuple[int, int], int] = field(default_factory=dict, repr=False)
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def __post_init__(self) -> None:
        if not self.index:
            self.index = {(cell.row, cell.col): cell.id for cell in self.cells}

    @classmethod
    def empty(cls, cell_size_m: float) -> "GridCellSet":
        return cls(cells=[], cell_size_m=cell_size_m, origin=(0.0, 0.0), lat_step=0.0, lng_step=0.0, bbox=None)

    def __len__(self) -> int:
        return len(self.cells)

    def __iter__(self) -> Iterator[GridCell]:
        return iter(self.cells)

    @property
    def total(self) -> int:
        return len(self.cells)

    @property
    def covered_count(self) -> int:
        return sum(1 for cell in self.cells if cell.covered)


@dataclass
class SearchArea:
    id: str
    name: str
    polygon: Tuple[LatLng, ...]
    priority: str
    time_threshold: float
    cell_size_m: float
    created_at: float
    cells: Optional[GridCellSet] = None

    @property
    def total_cells(self) -> int:
        return 0 if self.cells is None else self.cells.total


@dataclass(frozen=True, slots=True)
class PathPoint:
    lat: float
    lng: float
    timestamp: float


@dataclass
class Agent:
    id: str
    name: str
    color: str
    active: bool = True
    current_position: Optional[LatLng] = None
    path: List[PathPoint] = field(default_factory=list)
    started_at: float = 0.0

    def record_position(self, position: LatLng, timestamp: float) -> None:
        self.current_position = position
        self.path.append(PathPoint(position[0], position[1], timestamp))

    def position_at(self, timestamp: float) -> Optional[LatLng]:
        """Last recorded position at or before ``timestamp`` (playback)."""
        idx = bisect_right(self.path, timestamp, key=lambda p: p.timestamp)
        if idx == 0:
            return None
        point = self.path[idx - 1]
        return point.lat, point.lng


@dataclass
class AgentCursor:
    position: Optional[LatLng] = None
    index: int = 0
    done: bool = False


@dataclass
class Assignment:
    agent_id: str
    area_id: str
    pattern: str
    waypoints: Tuple[LatLng, ...]
    cursor: AgentCursor = field(default_factory=AgentCursor)


@dataclass(frozen=True, slots=True)
class Alert:
    id: str
    type: str
    message: str
    timestamp: float
    area_id: str
    details: str = ""


@dataclass(frozen=True)
class SimulationConfig:
    """Tunable knobs for the engine; defaults mirror the field-tested values."""

    tick_interval_s: float = TICK_INTERVAL_S
    walking_speed_mps: float = WALKING_SPEED_MPS
    default_cell_size_m: float = DEFAULT_CELL_SIZE_M
    max_cells: Optional[int] = None
    grid_pattern_step_m: float = GRID_PATTERN_STEP_M
    random_points: int = RANDOM_PATTERN_POINTS
    random_attempts: int = RANDOM_PATTERN_ATTEMPTS
    alert_cooldown_s: float = ALERT_COOLDOWN_S
    behind_margin_pct: float = BEHIND_SCHEDULE_MARGIN_PCT
    min_elapsed_fraction: float = MIN_ELAPSED_FRACTION
    max_alerts: int = MAX_ALERTS
    persisted_path_points: int = PERSISTED_PATH_POINTS
    persisted_alerts: int = PERSISTED_ALERTS
    seed: int = DEFAULT_SEED

    def __post_init__(self) -> None:
        for name in ("tick_interval_s", "walking_speed_mps", "default_cell_size_m", "grid_pattern_step_m"):
            value = getattr(self, name)
            if not (math.isfinite(value) and value > 0.0):
                raise ValueError(f"{name} must be positive and finite")
        if self.max_cells is not None and self.max_cells <= 0:
            raise ValueError("max_cells must be positive when set")
        if self.random_points <= 0 or self.random_attempts <= 0:
            raise ValueError("random pattern sizes must be positive")
        if self.alert_cooldown_s < 0.0:
            raise ValueError("alert_cooldown_s cannot be negative")
        if not 0.0 <= self.min_elapsed_fraction <= 1.0:
            raise ValueError("min_elapsed_fraction must lie in [0, 1]")
        if self.max_alerts <= 0 or self.persisted_alerts < 0 or self.persisted_path_points < 0:
            raise ValueError("history windows must be non-negative (max_alerts positive)")


__all__ = [
    "CellBounds",
    "ALERT_SCHEDULE_BEHIND",
    "ALERT_AREA_COMPLETE",
    "GridCell",
    "GridCellSet",
    "SearchArea",
    "PathPoint",
    "Agent",
    "AgentCursor",
    "Assignment",
    "Alert",
    "SimulationConfig",
]
