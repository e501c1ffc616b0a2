from __future__ import annotations

import json
import logging

import pytest

from search_coverage.common.errors import GeometryError, StorageError
from search_coverage.data import io_utils
from search_coverage.data.schemas import ALERT_SCHEDULE_BEHIND, Alert, SimulationConfig
from search_coverage.sim.engine import SearchSimulation
from tests.test_utils import rect_polygon


def _populated(config: SimulationConfig) -> SearchSimulation:
    sim = SearchSimulation(config=config)
    area = sim.create_area(rect_polygon(100.0, 60.0), priority="high", time_threshold=45.0, name="Ridge", now=0.0)
    agent = sim.register_agent("Scout", now=0.0)
    sim.assign_agent_to_area(agent.id, area.id, "perimeter")
    for k in range(1, 11):
        sim.tick(3.0 * k, interval_s=3.0)
    for k in range(4):
        sim.state.alerts.append(
            Alert(
                id=f"alert-{k}",
                type=ALERT_SCHEDULE_BEHIND,
                message="behind",
                timestamp=100.0 + k,
                area_id=area.id,
                details="",
            )
        )
    return sim


# ---------------------------------------------------------------------------
#  Snapshot shape
# ---------------------------------------------------------------------------
def test_snapshot_is_bounded() -> None:
    sim = _populated(SimulationConfig(persisted_path_points=5, persisted_alerts=2))
    payload = io_utils.snapshot_state(sim)
    assert payload["schema_version"] == io_utils.SNAPSHOT_VERSION
    assert all("cells" not in area for area in payload["areas"])
    agent = payload["agents"][0]
    assert len(agent["path"]) == 5
    assert agent["path"][-1][2] == pytest.approx(30.0)
    assert agent["assignments"] == [{"area_id": payload["areas"][0]["id"], "pattern": "perimeter"}]
    assert [a["id"] for a in payload["alerts"]] == ["alert-2", "alert-3"]
    json.dumps(payload, allow_nan=False)


def test_export_is_complete() -> None:
    sim = _populated(SimulationConfig(persisted_path_points=5, persisted_alerts=2))
    payload = io_utils.export_data(sim)
    assert "exported_at" in payload and "saved_at" not in payload
    assert len(payload["agents"][0]["path"]) == 10
    assert len(payload["alerts"]) == 4
    cells = payload["areas"][0]["cells"]
    assert len(cells) == sim.state.areas[payload["areas"][0]["id"]].total_cells
    assert any(cell["covered"] for cell in cells)
    json.dumps(payload, allow_nan=False)


# ---------------------------------------------------------------------------
#  Round trip through disk
# ---------------------------------------------------------------------------
def test_save_and_load(tmp_path) -> None:
    config = SimulationConfig()
    sim = _populated(config)
    target = tmp_path / "nested" / "snapshot.json"
    assert io_utils.save_snapshot(target, sim)

    restored = io_utils.load_snapshot(target, config)
    (area,) = restored.state.areas.values()
    original = next(iter(sim.state.areas.values()))
    assert area.id == original.id
    assert area.name == "Ridge"
    assert area.priority == "high"
    assert area.created_at == 0.0
    assert area.total_cells == original.total_cells
    assert area.cells.covered_count == 0

    (agent,) = restored.state.agents.values()
    assert agent.name == "Scout"
    assert len(agent.path) == 10
    assert [a.pattern for a in restored.assignments_for_agent(agent.id)] == ["perimeter"]
    assert len(restored.state.alerts) == 4
    assert restored.state.monitor.last_alert_at(area.id, ALERT_SCHEDULE_BEHIND) == pytest.approx(103.0)

    # registration counter survives, so colours keep cycling
    assert restored.register_agent(now=0.0).color != agent.color


def test_save_survives_rejected_and_malformed_areas(tmp_path) -> None:
    sim = SearchSimulation()
    healthy = sim.create_area(rect_polygon(100.0, 100.0), name="Healthy", now=0.0)
    with pytest.raises(GeometryError):
        sim.create_area([(float("inf"), -122.0), (37.0, -122.0), (37.1, -122.1)], now=0.0)
    sliver = sim.create_area([(37.0, -122.0), (37.1, -122.1)], name="Sliver", now=0.0)

    target = tmp_path / "snapshot.json"
    assert io_utils.save_snapshot(target, sim)
    restored = io_utils.load_snapshot(target)
    assert restored.get_area(healthy.id).total_cells == healthy.total_cells
    assert restored.get_area(sliver.id).polygon == sliver.polygon
    assert restored.get_area(sliver.id).total_cells == 0


def test_restore_rejects_unknown_version() -> None:
    with pytest.raises(StorageError):
        io_utils.restore_state({"schema_version": "0.1"})


def test_restore_rejects_malformed_payload() -> None:
    with pytest.raises(StorageError):
        io_utils.restore_state({"schema_version": io_utils.SNAPSHOT_VERSION, "areas": [{"name": "x"}]})


def test_load_missing_file_falls_back(tmp_path, caplog) -> None:
    with caplog.at_level(logging.ERROR, logger="search_coverage.data.io_utils"):
        sim = io_utils.load_snapshot(tmp_path / "absent.json")
    assert sim.state.areas == {}
    assert "empty state" in caplog.text


def test_load_corrupt_file_falls_back(tmp_path, caplog) -> None:
    target = tmp_path / "broken.json"
    target.write_text("{not json", encoding="utf-8")
    with caplog.at_level(logging.ERROR, logger="search_coverage.data.io_utils"):
        sim = io_utils.load_snapshot(target)
    assert sim.state.agents == {}
    assert "could not read snapshot" in caplog.text


def test_save_failure_reports_false(tmp_path, caplog) -> None:
    sim = SearchSimulation()
    with caplog.at_level(logging.ERROR, logger="search_coverage.data.io_utils"):
        assert io_utils.save_snapshot(tmp_path, sim) is False
    assert "could not write snapshot" in caplog.text


# ---------------------------------------------------------------------------
#  Configuration
# ---------------------------------------------------------------------------
def test_load_config(tmp_path) -> None:
    target = tmp_path / "config.json"
    target.write_text(json.dumps({"tick_interval_s": 1.0, "max_cells": 500}), encoding="utf-8")
    config = io_utils.load_config(target)
    assert config.tick_interval_s == 1.0
    assert config.max_cells == 500
    assert io_utils.config_to_dict(config)["max_cells"] == 500


def test_load_config_unknown_key(tmp_path) -> None:
    target = tmp_path / "config.json"
    target.write_text(json.dumps({"tick_rate": 1.0}), encoding="utf-8")
    with pytest.raises(ValueError, match="tick_rate"):
        io_utils.load_config(target)


def test_config_validation() -> None:
    with pytest.raises(ValueError):
        SimulationConfig(tick_interval_s=0.0)
    with pytest.raises(ValueError):
        SimulationConfig(max_cells=0)
    with pytest.raises(ValueError):
        SimulationConfig(min_elapsed_fraction=1.5)
