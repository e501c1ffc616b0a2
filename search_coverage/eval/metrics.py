"""Search analytics: per-area progress, per-agent contribution and completion estimates."""

from __future__ import annotations

import time
from typing import Dict, List, Optional, Sequence

import numpy as np

from search_coverage.algs.geometry import polygon_area_m2
from search_coverage.common.constants import METERS_PER_DEGREE
from search_coverage.data.schemas import PathPoint
from search_coverage.sim.coverage import coverage_by_agent, coverage_percentage
from search_coverage.sim.engine import SearchSimulation
from search_coverage.sim.monitor import expected_coverage

__all__ = [
    "path_length_m",
    "area_status",
    "area_statistics",
    "agent_statistics",
    "estimate_time_to_completion",
    "summary",
]


def path_length_m(path: Sequence[PathPoint]) -> float:
    if len(path) < 2:
        return 0.0
    lat = np.array([p.lat for p in path], dtype=float)
    lng = np.array([p.lng for p in path], dtype=float)
    mean_lat = np.radians((lat[1:] + lat[:-1]) / 2.0)
    dy = np.diff(lat) * METERS_PER_DEGREE
    dx = np.diff(lng) * METERS_PER_DEGREE * np.cos(mean_lat)
    return float(np.hypot(dx, dy).sum())


def area_status(coverage: float) -> str:
    if coverage >= 100.0:
        return "complete"
    if coverage > 0.0:
        return "in_progress"
    return "unstarted"


def area_statistics(sim: SearchSimulation, now: Optional[float] = None) -> List[Dict[str, object]]:
    now = time.time() if now is None else now
    stats = []
    for area in sim.state.areas.values():
        coverage = coverage_percentage(area.cells)
        size = polygon_area_m2(area.polygon)
        elapsed_s = max(0.0, now - area.created_at)
        elapsed_minutes = elapsed_s / 60.0
        stats.append(
            {
                "area_id": area.id,
                "name": area.name,
                "priority": area.priority,
                "coverage": coverage,
                "total_cells": area.total_cells,
                "covered_cells": 0 if area.cells is None else area.cells.covered_count,
                "area_m2": size,
                "covered_area_m2": size * coverage / 100.0,
                "elapsed_minutes": elapsed_minutes,
                "expected_coverage": min(100.0, expected_coverage(elapsed_minutes, area.time_threshold)),
                # percent per hour
                "efficiency": coverage / (elapsed_s / 3600.0) if elapsed_s > 0.0 else 0.0,
                "status": area_status(coverage),
            }
        )
    return stats


def agent_statistics(sim: SearchSimulation, now: Optional[float] = None) -> List[Dict[str, object]]:
    now = time.time() if now is None else now
    agents = list(sim.state.agents.values())
    per_area = [coverage_by_agent(area.cells, agents) for area in sim.state.areas.values()]
    stats = []
    for agent in agents:
        contributions = [float(area_stats[agent.id]["percentage"]) for area_stats in per_area]
        active_minutes = max(0.0, now - agent.started_at) / 60.0
        stats.append(
            {
                "agent_id": agent.id,
                "name": agent.name,
                "color": agent.color,
                "active": agent.active,
                "path_points": len(agent.path),
                "path_length_m": path_length_m(agent.path),
                "cells_covered": sum(int(area_stats[agent.id]["count"]) for area_stats in per_area),
                "coverage_contribution": float(np.mean(contributions)) if contributions else 0.0,
                "time_active_minutes": active_minutes,
                "points_per_minute": len(agent.path) / active_minutes if active_minutes > 0.0 else 0.0,
            }
        )
    stats.sort(key=lambda s: s["coverage_contribution"], reverse=True)
    return stats


def estimate_time_to_completion(area_stats: Sequence[Dict[str, object]]) -> float:
    """Hours to finish every incomplete area at the mean observed efficiency (0 if unknown)."""
    efficiencies = np.array([float(s["efficiency"]) for s in area_stats], dtype=float)
    efficiencies = efficiencies[efficiencies > 0.0]
    in_progress = any(s["status"] == "in_progress" for s in area_stats)
    if not in_progress or efficiencies.size == 0:
        return 0.0
    mean_rate = float(efficiencies.mean())
    remaining = sum(100.0 - float(s["coverage"]) for s in area_stats if float(s["coverage"]) < 100.0)
    return remaining / mean_rate


def summary(sim: SearchSimulation, now: Optional[float] = None) -> Dict[str, object]:
    now = time.time() if now is None else now
    areas = area_statistics(sim, now)
    coverages = np.array([s["coverage"] for s in areas], dtype=float)
    return {
        "total_areas": len(areas),
        "total_agents": len(sim.state.agents),
        "active_agents": sum(1 for a in sim.state.agents.values() if a.active),
        "average_coverage": float(coverages.mean()) if coverages.size else 0.0,
        "total_area_m2": float(sum(s["area_m2"] for s in areas)),
        "total_covered_area_m2": float(sum(s["covered_area_m2"] for s in areas)),
        "completed_areas": sum(1 for s in areas if s["status"] == "complete"),
        "in_progress_areas": sum(1 for s in areas if s["status"] == "in_progress"),
        "unstarted_areas": sum(1 for s in areas if s["status"] == "unstarted"),
        "estimated_hours_to_completion": estimate_time_to_completion(areas),
        "alerts": len(sim.state.alerts),
    }
