"""
Grid generator: rasterise a (lat, lng) polygon into fixed-size metric cells.

The bounding box is walked row-major (rows south to north, columns west to
east) with latitude-corrected angular steps; a candidate rectangle is kept only
if it geometrically intersects the polygon. Kept cells are numbered in walk
order, which pins "first containing cell" lookups to the lowest row, then the
lowest column.
"""
from __future__ import annotations

import logging
from typing import Iterator, List, Optional, Sequence

from shapely.errors import GEOSException
from shapely.geometry import box
from shapely.prepared import prep

from search_coverage.algs.geometry import (
    LatLng,
    angular_steps,
    bounding_box,
    normalize_polygon,
    to_shape,
)
from search_coverage.common.errors import CellLimitExceeded
from search_coverage.data.schemas import GridCell, GridCellSet

logger = logging.getLogger(__name__)

__all__ = ["GridSweep", "iter_grid_cells", "generate_grid"]


class GridSweep:
    """Lazy row-major sweep over a polygon's bounding box.

    Iterating yields retained :class:`GridCell` objects one at a time, so a
    caller can abandon a very fine grid part-way through. ``skipped`` counts
    candidates whose intersection test raised.
    """

    def __init__(self, polygon: Sequence[Sequence[float]], cell_size_m: float) -> None:
        if not cell_size_m > 0.0:
            raise ValueError(f"cell_size_m must be positive, got {cell_size_m}")
        self.polygon: List[LatLng] = normalize_polygon(polygon)
        self.cell_size_m = float(cell_size_m)
        self.bbox = bounding_box(self.polygon)
        min_lat, min_lng, max_lat, _ = self.bbox
        avg_lat = (min_lat + max_lat) / 2.0
        self.lat_step, self.lng_step = angular_steps(self.cell_size_m, avg_lat)
        self.origin: LatLng = (min_lat, min_lng)
        self.skipped = 0

        shape = to_shape(self.polygon)
        try:
            self._target = prep(shape)
        except GEOSException as exc:  # pragma: no cover - depends on GEOS build
            logger.debug("could not prepare polygon, using raw geometry: %s", exc)
            self._target = shape

    def _rows(self) -> Iterator[tuple[int, float]]:
        min_lat, _, max_lat, _ = self.bbox
        row = 0
        while True:
            lat = min_lat + row * self.lat_step
            if lat >= max_lat:
                return
            yield row, lat
            row += 1

    def _cols(self) -> Iterator[tuple[int, float]]:
        _, min_lng, _, max_lng = self.bbox
        col = 0
        while True:
            lng = min_lng + col * self.lng_step
            if lng >= max_lng:
                return
            yield col, lng
            col += 1

    def __iter__(self) -> Iterator[GridCell]:
        next_id = 0
        for row, lat in self._rows():
            for col, lng in self._cols():
                candidate = box(lng, lat, lng + self.lng_step, lat + self.lat_step)
                try:
                    hit = self._target.intersects(candidate)
                except GEOSException as exc:
                    self.skipped += 1
                    logger.debug("skipping cell (%d, %d): %s", row, col, exc)
                    continue
                if not hit:
                    continue
                yield GridCell(
                    id=next_id,
                    row=row,
                    col=col,
                    bounds=((lat, lng), (lat + self.lat_step, lng + self.lng_step)),
                    center=(lat + self.lat_step / 2.0, lng + self.lng_step / 2.0),
                )
                next_id += 1


def iter_grid_cells(polygon: Sequence[Sequence[float]], cell_size_m: float) -> Iterator[GridCell]:
    return iter(GridSweep(polygon, cell_size_m))


def generate_grid(
    polygon: Sequence[Sequence[float]],
    cell_size_m: float,
    *,
    max_cells: Optional[int] = None,
) -> GridCellSet:
    """Rasterise ``polygon`` into a :class:`GridCellSet` of ``cell_size_m`` cells.

    Raises ``GeometryError`` for rings that cannot be rasterised at all and
    ``CellLimitExceeded`` once more than ``max_cells`` cells are retained.
    """
    sweep = GridSweep(polygon, cell_size_m)
    cells: List[GridCell] = []
    for cell in sweep:
        cells.append(cell)
        if max_cells is not None and len(cells) > max_cells:
            raise CellLimitExceeded(max_cells)

    if sweep.skipped:
        logger.warning("skipped %d cell(s) whose intersection test failed", sweep.skipped)
    logger.info("generated %d cells at %.1f m", len(cells), sweep.cell_size_m)

    return GridCellSet(
        cells=cells,
        cell_size_m=sweep.cell_size_m,
        origin=sweep.origin,
        lat_step=sweep.lat_step,
        lng_step=sweep.lng_step,
        bbox=sweep.bbox,
        skipped=sweep.skipped,
    )
