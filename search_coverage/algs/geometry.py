from __future__ import annotations

import logging
import math
from typing import List, Sequence, Tuple

from shapely.errors import GEOSException
from shapely.geometry import Point, Polygon

from search_coverage.common.constants import EPS_GEOM, METERS_PER_DEGREE
from search_coverage.common.errors import GeometryError

logger = logging.getLogger(__name__)

LatLng = Tuple[float, float]
BBox = Tuple[float, float, float, float]  # min_lat, min_lng, max_lat, max_lng

__all__ = [
    "LatLng",
    "BBox",
    "coerce_vertices",
    "normalize_polygon",
    "to_shape",
    "bounding_box",
    "meters_per_degree_lng",
    "angular_steps",
    "planar_offset_m",
    "distance_m",
    "interpolate",
    "covers_point",
    "centroid",
    "polygon_area_m2",
]


def coerce_vertices(polygon: Sequence[Sequence[float]]) -> List[LatLng]:
    """Vertices as finite ``(lat, lng)`` floats, in input order; no ring checks."""
    try:
        ring = [(float(lat), float(lng)) for lat, lng in polygon]
    except (TypeError, ValueError) as exc:
        raise GeometryError(f"polygon vertices must be (lat, lng) pairs: {exc}") from exc
    for lat, lng in ring:
        if not (math.isfinite(lat) and math.isfinite(lng)):
            raise GeometryError("polygon coordinates must be finite")
    return ring


def normalize_polygon(polygon: Sequence[Sequence[float]]) -> List[LatLng]:
    """Return the open ring as ``(lat, lng)`` floats; drop an explicit closing vertex."""
    ring = coerce_vertices(polygon)
    if len(ring) > 3 and ring[0] == ring[-1]:
        ring.pop()
    if len(ring) < 3:
        raise GeometryError(f"polygon needs at least 3 vertices, got {len(ring)}")
    return ring


def to_shape(polygon: Sequence[LatLng]) -> Polygon:
    # shapely works in (x, y) == (lng, lat)
    return Polygon([(lng, lat) for lat, lng in polygon])


def bounding_box(polygon: Sequence[LatLng]) -> BBox:
    lats = [lat for lat, _ in polygon]
    lngs = [lng for _, lng in polygon]
    return min(lats), min(lngs), max(lats), max(lngs)


def meters_per_degree_lng(lat: float) -> float:
    return METERS_PER_DEGREE * math.cos(math.radians(lat))


def angular_steps(meters: float, ref_lat: float) -> Tuple[float, float]:
    """Convert a metric distance to (lat, lng) degree steps at ``ref_lat``.

    The longitude step is stretched by ``1 / cos(ref_lat)`` to compensate for
    meridian convergence.
    """
    lng_scale = meters_per_degree_lng(ref_lat)
    if lng_scale < EPS_GEOM:
        raise GeometryError(f"latitude {ref_lat} too close to a pole for a flat-earth grid")
    return meters / METERS_PER_DEGREE, meters / lng_scale


def planar_offset_m(origin: LatLng, target: LatLng) -> Tuple[float, float]:
    """East/north offset in metres from ``origin`` to ``target`` (local flat-earth)."""
    mean_lat = (origin[0] + target[0]) / 2.0
    dy = (target[0] - origin[0]) * METERS_PER_DEGREE
    dx = (target[1] - origin[1]) * meters_per_degree_lng(mean_lat)
    return dx, dy


def distance_m(a: LatLng, b: LatLng) -> float:
    dx, dy = planar_offset_m(a, b)
    return math.hypot(dx, dy)


def interpolate(a: LatLng, b: LatLng, ratio: float) -> LatLng:
    return a[0] + (b[0] - a[0]) * ratio, a[1] + (b[1] - a[1]) * ratio


def covers_point(shape, point: LatLng) -> bool:
    """Inside-or-on-boundary test; ``shape`` may be a prepared geometry."""
    try:
        return bool(shape.covers(Point(point[1], point[0])))
    except GEOSException as exc:
        logger.debug("containment test failed for %s: %s", point, exc)
        return False


def centroid(polygon: Sequence[LatLng]) -> LatLng:
    shape = to_shape(polygon)
    try:
        c = shape.centroid
        if not c.is_empty:
            return c.y, c.x
    except GEOSException:
        pass
    # Degenerate ring: vertex mean.
    lats = [lat for lat, _ in polygon]
    lngs = [lng for _, lng in polygon]
    return sum(lats) / len(lats), sum(lngs) / len(lngs)


def polygon_area_m2(polygon: Sequence[Sequence[float]]) -> float:
    """Planar area of the polygon after projecting onto a local metric frame."""
    try:
        ring = normalize_polygon(polygon)
    except GeometryError:
        return 0.0
    min_lat, min_lng, max_lat, max_lng = bounding_box(ring)
    ref_lat = (min_lat + max_lat) / 2.0
    lng_scale = meters_per_degree_lng(ref_lat)
    projected = [
        ((lng - min_lng) * lng_scale, (lat - min_lat) * METERS_PER_DEGREE)
        for lat, lng in ring
    ]
    try:
        return float(abs(Polygon(projected).area))
    except GEOSException as exc:
        logger.warning("area computation failed: %s", exc)
        return 0.0
