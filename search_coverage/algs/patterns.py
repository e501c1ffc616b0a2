"""
Movement pattern generator: per-agent waypoint plans over a search polygon.

* ``grid``      : boustrophedon rows from the southern edge northward.
* ``perimeter`` : polygon vertices in order, closing the loop (single lap).
* ``random``    : rejection-sampled interior points with a centroid fallback.

Every waypoint returned lies inside or on the polygon; a polygon that yields no
samples produces the single-point plan ``[start_point]``.
"""
from __future__ import annotations

import logging
from typing import Callable, Dict, List, Optional, Sequence

import numpy as np
from shapely.errors import GEOSException
from shapely.prepared import prep

from search_coverage.algs.geometry import (
    LatLng,
    angular_steps,
    bounding_box,
    centroid,
    covers_point,
    normalize_polygon,
    to_shape,
)
from search_coverage.common.constants import (
    DEFAULT_SEED,
    GRID_PATTERN_STEP_M,
    PATTERNS,
    RANDOM_PATTERN_ATTEMPTS,
    RANDOM_PATTERN_POINTS,
)
from search_coverage.common.errors import GeometryError, InvalidAssignment

logger = logging.getLogger(__name__)

__all__ = [
    "grid_pattern",
    "perimeter_pattern",
    "random_pattern",
    "interior_fallback",
    "sample_interior_point",
    "generate_waypoints",
]


def _prepared(ring: Sequence[LatLng]):
    shape = to_shape(ring)
    try:
        return prep(shape)
    except GEOSException:  # pragma: no cover - depends on GEOS build
        return shape


def interior_fallback(ring: Sequence[LatLng]) -> LatLng:
    """Centroid, or a guaranteed-interior point when the centroid falls outside."""
    center = centroid(ring)
    if covers_point(_prepared(ring), center):
        return center
    try:
        rep = to_shape(ring).representative_point()
        return rep.y, rep.x
    except GEOSException as exc:
        logger.debug("representative point failed, keeping centroid: %s", exc)
        return center


def sample_interior_point(
    polygon: Sequence[Sequence[float]],
    rng: np.random.Generator,
    max_attempts: int = RANDOM_PATTERN_ATTEMPTS,
    *,
    _target=None,
) -> LatLng:
    ring = normalize_polygon(polygon)
    target = _target if _target is not None else _prepared(ring)
    min_lat, min_lng, max_lat, max_lng = bounding_box(ring)
    for _ in range(max_attempts):
        lat = float(rng.uniform(min_lat, max_lat))
        lng = float(rng.uniform(min_lng, max_lng))
        if covers_point(target, (lat, lng)):
            return lat, lng
    return interior_fallback(ring)


def grid_pattern(
    polygon: Sequence[Sequence[float]],
    start_point: Optional[LatLng] = None,
    step_m: float = GRID_PATTERN_STEP_M,
) -> List[LatLng]:
    ring = normalize_polygon(polygon)
    target = _prepared(ring)
    min_lat, min_lng, max_lat, max_lng = bounding_box(ring)
    lat_step, lng_step = angular_steps(step_m, (min_lat + max_lat) / 2.0)

    waypoints: List[LatLng] = []
    if start_point is not None and covers_point(target, start_point):
        waypoints.append((float(start_point[0]), float(start_point[1])))

    row = 0
    while True:
        lat = min_lat + row * lat_step
        if lat >= max_lat:
            break
        eastward = row % 2 == 0
        col = 0
        while True:
            lng = min_lng + col * lng_step if eastward else max_lng - col * lng_step
            if (eastward and lng >= max_lng) or (not eastward and lng <= min_lng):
                break
            if covers_point(target, (lat, lng)):
                waypoints.append((lat, lng))
            col += 1
        row += 1
    return waypoints


def perimeter_pattern(
    polygon: Sequence[Sequence[float]],
    start_point: Optional[LatLng] = None,
) -> List[LatLng]:
    # TODO: spiral inward once the intended inset spacing is agreed; today this is one lap.
    ring = normalize_polygon(polygon)
    return [*ring, ring[0]]


def random_pattern(
    polygon: Sequence[Sequence[float]],
    start_point: Optional[LatLng] = None,
    rng: Optional[np.random.Generator] = None,
    num_points: int = RANDOM_PATTERN_POINTS,
    max_attempts: int = RANDOM_PATTERN_ATTEMPTS,
) -> List[LatLng]:
    ring = normalize_polygon(polygon)
    rng = rng if rng is not None else np.random.default_rng(DEFAULT_SEED)
    target = _prepared(ring)
    return [sample_interior_point(ring, rng, max_attempts, _target=target) for _ in range(num_points)]


_GENERATORS: Dict[str, Callable[..., List[LatLng]]] = {
    "grid": grid_pattern,
    "perimeter": perimeter_pattern,
    "random": random_pattern,
}


def generate_waypoints(
    polygon: Sequence[Sequence[float]],
    pattern: str,
    start_point: LatLng,
    *,
    rng: Optional[np.random.Generator] = None,
    grid_step_m: float = GRID_PATTERN_STEP_M,
    num_points: int = RANDOM_PATTERN_POINTS,
    max_attempts: int = RANDOM_PATTERN_ATTEMPTS,
) -> List[LatLng]:
    """Build the waypoint plan for ``pattern`` over ``polygon``.

    Raises ``InvalidAssignment`` for an unknown pattern. Geometry problems never
    propagate: they collapse the plan to ``[start_point]``.
    """
    if pattern not in _GENERATORS:
        raise InvalidAssignment(f"unknown pattern {pattern!r}; expected one of {PATTERNS}")

    start = (float(start_point[0]), float(start_point[1]))
    try:
        if pattern == "grid":
            waypoints = grid_pattern(polygon, start, step_m=grid_step_m)
        elif pattern == "random":
            waypoints = random_pattern(polygon, start, rng=rng, num_points=num_points, max_attempts=max_attempts)
        else:
            waypoints = perimeter_pattern(polygon, start)
    except GeometryError as exc:
        logger.warning("%s pattern degraded to start point: %s", pattern, exc)
        waypoints = []

    if not waypoints:
        return [start]
    return waypoints
