"""Geometry primitives, grid rasterisation and movement patterns."""

from __future__ import annotations

from search_coverage.algs.geometry import (
    angular_steps,
    bounding_box,
    centroid,
    distance_m,
    normalize_polygon,
    polygon_area_m2,
)
from search_coverage.algs.grid import GridSweep, generate_grid, iter_grid_cells
from search_coverage.algs.patterns import generate_waypoints, sample_interior_point

__all__ = [
    "angular_steps",
    "bounding_box",
    "centroid",
    "distance_m",
    "normalize_polygon",
    "polygon_area_m2",
    "GridSweep",
    "generate_grid",
    "iter_grid_cells",
    "generate_waypoints",
    "sample_interior_point",
]
