"""
Simulation stepper: one kinematic step toward the current waypoint per call.

Distances use the local flat-earth frame from :mod:`search_coverage.algs.geometry`;
the move itself is a linear lat/lng interpolation, which is accurate for
sub-kilometre steps.
"""
from __future__ import annotations

from typing import Optional, Sequence

from search_coverage.algs.geometry import LatLng, distance_m, interpolate
from search_coverage.common.constants import WALKING_SPEED_MPS
from search_coverage.common.errors import PlanExhausted
from search_coverage.data.schemas import AgentCursor

__all__ = ["step_distance_m", "step", "require_next", "remaining_path_m"]


def step_distance_m(
    speed_multiplier: float,
    interval_s: float,
    walking_speed_mps: float = WALKING_SPEED_MPS,
) -> float:
    return walking_speed_mps * speed_multiplier * interval_s


def step(cursor: AgentCursor, waypoints: Sequence[LatLng], step_distance: float) -> Optional[LatLng]:
    """Advance ``cursor`` one step along ``waypoints``.

    Returns the new position, or ``None`` once the plan is exhausted. The call
    that snaps onto the final waypoint still returns that waypoint.
    """
    if cursor.done:
        return None
    if cursor.index >= len(waypoints):
        cursor.done = True
        return None
    if cursor.position is None:
        cursor.position = waypoints[0]

    target = waypoints[cursor.index]
    remaining = distance_m(cursor.position, target)
    if remaining <= step_distance:
        cursor.position = target
        cursor.index += 1
        if cursor.index >= len(waypoints):
            cursor.done = True
        return target

    cursor.position = interpolate(cursor.position, target, step_distance / remaining)
    return cursor.position


def require_next(cursor: AgentCursor, waypoints: Sequence[LatLng], step_distance: float) -> LatLng:
    position = step(cursor, waypoints, step_distance)
    if position is None:
        raise PlanExhausted(f"plan of {len(waypoints)} waypoint(s) already consumed")
    return position


def remaining_path_m(cursor: AgentCursor, waypoints: Sequence[LatLng]) -> float:
    if cursor.done or cursor.index >= len(waypoints):
        return 0.0
    here = cursor.position if cursor.position is not None else waypoints[0]
    total = distance_m(here, waypoints[cursor.index])
    for a, b in zip(waypoints[cursor.index:], waypoints[cursor.index + 1:]):
        total += distance_m(a, b)
    return total
