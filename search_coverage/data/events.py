"""Outbound event schema delivered to map, history and alert collaborators."""

from __future__ import annotations

from typing import Dict, List, Literal, Tuple, TypedDict

from search_coverage.data.schemas import Alert

LatLng = Tuple[float, float]


class PositionUpdateEvent(TypedDict):
    type: Literal["position_update"]
    agent_id: str
    area_id: str
    position: LatLng
    timestamp: float


class CoverageChangedEvent(TypedDict):
    type: Literal["coverage_changed"]
    area_id: str
    coverage_percentage: float
    updated_cell_ids: List[int]


class AlertEvent(TypedDict):
    type: Literal["alert"]
    area_id: str
    alert_id: str
    alert_type: Literal["schedule-behind", "area-complete"]
    message: str
    details: str
    timestamp: float


EventDict = Dict[str, object]


def position_update(agent_id: str, area_id: str, position: LatLng, timestamp: float) -> PositionUpdateEvent:
    return {
        "type": "position_update",
        "agent_id": agent_id,
        "area_id": area_id,
        "position": (float(position[0]), float(position[1])),
        "timestamp": float(timestamp),
    }


def coverage_changed(area_id: str, coverage_percentage: float, updated_cell_ids: List[int]) -> CoverageChangedEvent:
    return {
        "type": "coverage_changed",
        "area_id": area_id,
        "coverage_percentage": float(coverage_percentage),
        "updated_cell_ids": list(updated_cell_ids),
    }


def alert_raised(alert: Alert) -> AlertEvent:
    return {
        "type": "alert",
        "area_id": alert.area_id,
        "alert_id": alert.id,
        "alert_type": alert.type,  # type: ignore[typeddict-item]
        "message": alert.message,
        "details": alert.details,
        "timestamp": float(alert.timestamp),
    }


__all__ = [
    "EventDict",
    "PositionUpdateEvent",
    "CoverageChangedEvent",
    "AlertEvent",
    "position_update",
    "coverage_changed",
    "alert_raised",
]
