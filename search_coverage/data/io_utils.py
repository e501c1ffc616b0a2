from __future__ import annotations

import json
import logging
from dataclasses import asdict, fields
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

from search_coverage.common.errors import CellLimitExceeded, StorageError
from search_coverage.data.schemas import Agent, Alert, GridCellSet, PathPoint, SimulationConfig
from search_coverage.sim.engine import SearchSimulation, SimulationState

logger = logging.getLogger(__name__)

SNAPSHOT_VERSION = "1.0"

__all__ = [
    "SNAPSHOT_VERSION",
    "snapshot_state",
    "restore_state",
    "save_snapshot",
    "load_snapshot",
    "export_data",
    "load_config",
    "config_to_dict",
]


def _ensure_parent(path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)


def _alert_to_dict(alert: Alert) -> Dict[str, Any]:
    return {
        "id": alert.id,
        "type": alert.type,
        "message": alert.message,
        "details": alert.details,
        "timestamp": float(alert.timestamp),
        "area_id": alert.area_id,
    }


def _agent_to_dict(sim: SearchSimulation, agent: Agent, path_window: Optional[int]) -> Dict[str, Any]:
    if path_window is None:
        path = agent.path
    else:
        path = agent.path[-path_window:] if path_window else []
    return {
        "id": agent.id,
        "name": agent.name,
        "color": agent.color,
        "active": agent.active,
        "current_position": None if agent.current_position is None else list(agent.current_position),
        "started_at": float(agent.started_at),
        "path": [[p.lat, p.lng, p.timestamp] for p in path],
        "assignments": [
            {"area_id": a.area_id, "pattern": a.pattern} for a in sim.assignments_for_agent(agent.id)
        ],
    }


def snapshot_state(sim: SearchSimulation) -> Dict[str, Any]:
    """Bounded snapshot for persistence: no grid cells, recent path and alert windows only."""
    state = sim.state
    config = sim.config
    alerts = state.alerts[-config.persisted_alerts:] if config.persisted_alerts else []
    return {
        "schema_version": SNAPSHOT_VERSION,
        "saved_at": datetime.now(timezone.utc).isoformat(),
        "speed": state.speed,
        "areas": [
            {
                "id": area.id,
                "name": area.name,
                "polygon": [list(v) for v in area.polygon],
                "priority": area.priority,
                "time_threshold": area.time_threshold,
                "cell_size_m": area.cell_size_m,
                "created_at": area.created_at,
            }
            for area in state.areas.values()
        ],
        "agents": [_agent_to_dict(sim, agent, config.persisted_path_points) for agent in state.agents.values()],
        "alerts": [_alert_to_dict(alert) for alert in alerts],
    }


def export_data(sim: SearchSimulation) -> Dict[str, Any]:
    """Full, untruncated dump including per-cell coverage (for export collaborators)."""
    payload = snapshot_state(sim)
    payload["agents"] = [_agent_to_dict(sim, agent, None) for agent in sim.state.agents.values()]
    payload["alerts"] = [_alert_to_dict(alert) for alert in sim.state.alerts]
    for record in payload["areas"]:
        cells = sim.state.areas[record["id"]].cells
        record["cells"] = [] if cells is None else [
            {
                "id": cell.id,
                "bounds": [list(cell.bounds[0]), list(cell.bounds[1])],
                "center": list(cell.center),
                "covered": cell.covered,
                "covered_by": cell.covered_by,
                "covered_at": cell.covered_at,
            }
            for cell in cells
        ]
    payload["exported_at"] = payload.pop("saved_at")
    return payload


def restore_state(payload: Dict[str, Any], config: Optional[SimulationConfig] = None) -> SearchSimulation:
    """Rebuild a simulation from :func:`snapshot_state` output.

    Grid cells are regenerated from each polygon before anything else runs;
    coverage and waypoint cursors start over. Raises ``StorageError`` on a
    malformed payload.
    """
    if payload.get("schema_version") != SNAPSHOT_VERSION:
        raise StorageError(f"unsupported snapshot version {payload.get('schema_version')!r}")
    sim = SearchSimulation(config=config)
    try:
        sim.set_simulation_speed(float(payload.get("speed", 1.0)))
        for record in payload.get("areas", []):
            kwargs = dict(
                polygon=record["polygon"],
                priority=record.get("priority", "medium"),
                time_threshold=float(record.get("time_threshold", 60.0)),
                cell_size_m=float(record["cell_size_m"]),
                name=record.get("name"),
                now=float(record["created_at"]),
                area_id=record["id"],
            )
            try:
                sim.create_area(**kwargs)
            except CellLimitExceeded as exc:
                logger.error("area %s restored without cells: %s", record["id"], exc)
                area = sim.create_area(**kwargs, defer_grid=True)
                sim.state.pending_grids.remove(area.id)
                area.cells = GridCellSet.empty(area.cell_size_m)

        for record in payload.get("agents", []):
            position = record.get("current_position")
            agent = Agent(
                id=record["id"],
                name=record["name"],
                color=record["color"],
                active=bool(record.get("active", True)),
                current_position=None if position is None else (float(position[0]), float(position[1])),
                path=[PathPoint(float(lat), float(lng), float(ts)) for lat, lng, ts in record.get("path", [])],
                started_at=float(record.get("started_at", 0.0)),
            )
            sim.state.agents[agent.id] = agent
            sim.state.agents_registered += 1
            for assignment in record.get("assignments", []):
                if assignment["area_id"] in sim.state.areas:
                    sim.assign_agent_to_area(agent.id, assignment["area_id"], assignment["pattern"])

        for record in payload.get("alerts", []):
            alert = Alert(
                id=record["id"],
                type=record["type"],
                message=record["message"],
                timestamp=float(record["timestamp"]),
                area_id=record["area_id"],
                details=record.get("details", ""),
            )
            sim.state.alerts.append(alert)
            fired = sim.state.monitor.last_fired.setdefault(alert.area_id, {})
            fired[alert.type] = max(fired.get(alert.type, alert.timestamp), alert.timestamp)
    except (KeyError, TypeError, ValueError) as exc:
        raise StorageError(f"malformed snapshot: {exc!r}") from exc
    return sim


def _write_json(target: Path, payload: Dict[str, Any]) -> None:
    try:
        _ensure_parent(target)
        with target.open("w", encoding="utf-8") as handle:
            json.dump(payload, handle, sort_keys=True, separators=(",", ":"), allow_nan=False)
    except (OSError, TypeError, ValueError) as exc:
        raise StorageError(f"could not write snapshot to {target}: {exc}") from exc


def _read_json(target: Path) -> Dict[str, Any]:
    try:
        with target.open("r", encoding="utf-8") as handle:
            payload = json.load(handle)
    except (OSError, ValueError) as exc:
        raise StorageError(f"could not read snapshot {target}: {exc}") from exc
    if not isinstance(payload, dict):
        raise StorageError(f"snapshot {target} is not a JSON object")
    return payload


def save_snapshot(path: str | Path, sim: SearchSimulation) -> bool:
    target = Path(path)
    try:
        _write_json(target, snapshot_state(sim))
    except StorageError as exc:
        logger.error("%s", exc)
        return False
    return True


def load_snapshot(path: str | Path, config: Optional[SimulationConfig] = None) -> SearchSimulation:
    """Load a snapshot; any storage failure is logged and yields an empty simulation."""
    try:
        return restore_state(_read_json(Path(path)), config=config)
    except StorageError as exc:
        logger.error("%s; starting from an empty state", exc)
        return SearchSimulation(state=SimulationState(config=config or SimulationConfig()))


def load_config(path: str | Path) -> SimulationConfig:
    """Read a JSON object of :class:`SimulationConfig` overrides; unknown keys are rejected."""
    target = Path(path)
    with target.open("r", encoding="utf-8") as handle:
        overrides = json.load(handle)
    known = {f.name for f in fields(SimulationConfig)}
    unknown = sorted(set(overrides) - known)
    if unknown:
        raise ValueError(f"unknown config keys: {', '.join(unknown)}")
    return SimulationConfig(**overrides)


def config_to_dict(config: SimulationConfig) -> Dict[str, Any]:
    return asdict(config)
