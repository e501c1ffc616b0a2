"""Exception taxonomy for the coverage engine."""

from __future__ import annotations

__all__ = [
    "GeometryError",
    "CellLimitExceeded",
    "InvalidAssignment",
    "PlanExhausted",
    "StorageError",
]


class GeometryError(ValueError):
    """Polygon is malformed (too few vertices, non-finite coordinates, broken ring)."""


class CellLimitExceeded(GeometryError):
    """Grid generation produced more cells than the configured guard allows."""

    def __init__(self, limit: int) -> None:
        super().__init__(f"grid exceeds max_cells={limit}")
        self.limit = limit


class InvalidAssignment(ValueError):
    """Unknown agent, area or pattern; rejected before any state is touched."""


class PlanExhausted(RuntimeError):
    """Agent has consumed every waypoint of its plan."""


class StorageError(RuntimeError):
    """Snapshot could not be read or written."""
