from __future__ import annotations

import os
import random
from typing import Dict, Tuple

import numpy as np

# Geometry tolerance shared by containment and snapping checks.
EPS_GEOM: float = 1e-9
TOL_NUM: float = 1e-6
DEFAULT_SEED: int = 1337

RNG_SEEDS: Dict[str, int] = {
    "tests": DEFAULT_SEED,
    "cli": 5150,
}

# Flat-earth conversion: metres per degree of latitude (and of longitude at the equator).
METERS_PER_DEGREE: float = 111_320.0

# Kinematics: ~5 km/h walking pace, one position update every 3 s.
WALKING_SPEED_MPS: float = 1.39
TICK_INTERVAL_S: float = 3.0

DEFAULT_CELL_SIZE_M: float = 10.0
DEFAULT_TIME_THRESHOLD_MIN: float = 60.0
DEFAULT_PRIORITY: str = "medium"
PRIORITIES: Tuple[str, ...] = ("low", "medium", "high")

# Movement patterns.
PATTERNS: Tuple[str, ...] = ("grid", "perimeter", "random")
GRID_PATTERN_STEP_M: float = 11.132  # 0.0001 deg of latitude
RANDOM_PATTERN_POINTS: int = 50
RANDOM_PATTERN_ATTEMPTS: int = 100

# Alerting.
ALERT_COOLDOWN_S: float = 300.0
BEHIND_SCHEDULE_MARGIN_PCT: float = 25.0
MIN_ELAPSED_FRACTION: float = 0.25
MAX_ALERTS: int = 50

# Snapshot windows.
PERSISTED_PATH_POINTS: int = 1000
PERSISTED_ALERTS: int = 20

AGENT_COLORS: Tuple[str, ...] = (
    "#ef4444",  # red
    "#3b82f6",  # blue
    "#10b981",  # green
    "#f59e0b",  # amber
    "#8b5cf6",  # purple
    "#ec4899",  # pink
    "#14b8a6",  # teal
    "#f97316",  # orange
)


def seed_everywhere(seed: int) -> None:
    """Seed all supported RNG backends deterministically."""
    random.seed(seed)
    os.environ["PYTHONHASHSEED"] = str(seed)
    np.random.seed(seed)


__all__ = [
    "EPS_GEOM",
    "TOL_NUM",
    "DEFAULT_SEED",
    "RNG_SEEDS",
    "METERS_PER_DEGREE",
    "WALKING_SPEED_MPS",
    "TICK_INTERVAL_S",
    "DEFAULT_CELL_SIZE_M",
    "DEFAULT_TIME_THRESHOLD_MIN",
    "DEFAULT_PRIORITY",
    "PRIORITIES",
    "PATTERNS",
    "GRID_PATTERN_STEP_M",
    "RANDOM_PATTERN_POINTS",
    "RANDOM_PATTERN_ATTEMPTS",
    "ALERT_COOLDOWN_S",
    "BEHIND_SCHEDULE_MARGIN_PCT",
    "MIN_ELAPSED_FRACTION",
    "MAX_ALERTS",
    "PERSISTED_PATH_POINTS",
    "PERSISTED_ALERTS",
    "AGENT_COLORS",
    "seed_everywhere",
]
