"""Coverage tracker: monotonic, first-writer-wins cell attribution."""

from __future__ import annotations

import math
from collections import Counter
from typing import Dict, Iterable, Optional

from search_coverage.algs.geometry import LatLng
from search_coverage.data.schemas import Agent, GridCell, GridCellSet

__all__ = [
    "find_cell",
    "claim_cell",
    "mark_covered",
    "coverage_percentage",
    "coverage_by_agent",
]


def find_cell(cell_set: GridCellSet, position: LatLng) -> Optional[GridCell]:
    """Lowest-id cell whose (inclusive) bounds contain ``position``.

    Uses the row/col lattice index; the neighbouring rows and columns are also
    checked so shared edges resolve to the earlier cell regardless of rounding.
    """
    if not cell_set.cells or cell_set.lat_step <= 0.0 or cell_set.lng_step <= 0.0:
        return None
    lat, lng = position
    row = math.floor((lat - cell_set.origin[0]) / cell_set.lat_step)
    col = math.floor((lng - cell_set.origin[1]) / cell_set.lng_step)

    best: Optional[GridCell] = None
    for r in (row - 1, row, row + 1):
        for c in (col - 1, col, col + 1):
            cell_id = cell_set.index.get((r, c))
            if cell_id is None:
                continue
            cell = cell_set.cells[cell_id]
            if cell.contains(position) and (best is None or cell.id < best.id):
                best = cell
    return best


def claim_cell(cell_set: GridCellSet, position: LatLng, agent_id: str, now: float) -> Optional[int]:
    """Compare-and-set the cell under ``position``; return its id if newly covered."""
    cell = find_cell(cell_set, position)
    if cell is None:
        return None
    with cell_set.lock:
        if cell.covered:
            return None
        cell.covered = True
        cell.covered_by = agent_id
        cell.covered_at = now
    return cell.id


def mark_covered(cell_set: GridCellSet, position: LatLng, agent_id: str, now: float) -> GridCellSet:
    claim_cell(cell_set, position, agent_id, now)
    return cell_set


def coverage_percentage(cell_set: Optional[GridCellSet]) -> float:
    if cell_set is None or cell_set.total == 0:
        return 0.0
    return cell_set.covered_count / cell_set.total * 100.0


def coverage_by_agent(cell_set: Optional[GridCellSet], agents: Iterable[Agent]) -> Dict[str, Dict[str, object]]:
    total = 0 if cell_set is None else cell_set.total
    counts: Counter = Counter()
    if cell_set is not None:
        counts.update(cell.covered_by for cell in cell_set.cells if cell.covered)
    stats: Dict[str, Dict[str, object]] = {}
    for agent in agents:
        count = counts.get(agent.id, 0)
        stats[agent.id] = {
            "name": agent.name,
            "count": count,
            "percentage": count / total * 100.0 if total else 0.0,
            "color": agent.color,
        }
    return stats
