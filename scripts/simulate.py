#!/usr/bin/env python3
"""Headless batch runner: simulate agents sweeping one search area and report coverage."""
from __future__ import annotations

import argparse
import json
import logging
import math
import sys
from collections import Counter
from pathlib import Path
from typing import List, Tuple

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.append(str(PROJECT_ROOT))

from search_coverage.common.constants import METERS_PER_DEGREE, PATTERNS, PRIORITIES, RNG_SEEDS, seed_everywhere
from search_coverage.data.io_utils import load_config, save_snapshot
from search_coverage.data.schemas import SimulationConfig
from search_coverage.eval.metrics import agent_statistics, summary
from search_coverage.sim.engine import SearchSimulation
from search_coverage.sim.scheduler import TickScheduler

logger = logging.getLogger("search_coverage.simulate")


def parse_polygon(value: str) -> List[Tuple[float, float]]:
    vertices = []
    for pair in value.split(";"):
        if not pair.strip():
            continue
        parts = [float(v) for v in pair.split(",")]
        if len(parts) != 2:
            raise argparse.ArgumentTypeError(f"expected LAT,LNG pairs separated by ';', got {pair!r}")
        vertices.append((parts[0], parts[1]))
    return vertices


def rectangle(lat: float, lng: float, width_m: float, height_m: float) -> List[Tuple[float, float]]:
    dlat = height_m / METERS_PER_DEGREE
    dlng = width_m / (METERS_PER_DEGREE * math.cos(math.radians(lat)))
    return [(lat, lng), (lat, lng + dlng), (lat + dlat, lng + dlng), (lat + dlat, lng)]


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run a headless search-coverage simulation.")
    parser.add_argument("--polygon", type=parse_polygon, default=None, metavar="LAT,LNG;LAT,LNG;...")
    parser.add_argument("--origin", type=str, default="37.7749,-122.4194", metavar="LAT,LNG",
                        help="south-west corner of the default rectangular area")
    parser.add_argument("--size", type=str, default="200,100", metavar="WIDTH_M,HEIGHT_M")
    parser.add_argument("--cell-size", type=float, default=None)
    parser.add_argument("--priority", choices=PRIORITIES, default="medium")
    parser.add_argument("--time-threshold", type=float, default=60.0, help="minutes")
    parser.add_argument("--agents", type=int, default=3)
    parser.add_argument("--patterns", type=str, default=",".join(PATTERNS))
    parser.add_argument("--duration", type=float, default=3600.0, help="simulated seconds")
    parser.add_argument("--speed", type=float, default=1.0)
    parser.add_argument("--seed", type=int, default=RNG_SEEDS["cli"])
    parser.add_argument("--config", type=Path, default=None, help="JSON file of SimulationConfig overrides")
    parser.add_argument("--snapshot", type=Path, default=None, help="write a snapshot here when done")
    parser.add_argument("--json", action="store_true", help="print the summary as JSON")
    parser.add_argument("-v", "--verbose", action="store_true")
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    seed_everywhere(args.seed)

    config = load_config(args.config) if args.config else SimulationConfig(seed=args.seed)
    if args.polygon:
        polygon = args.polygon
    else:
        lat, lng = (float(v) for v in args.origin.split(","))
        width, height = (float(v) for v in args.size.split(","))
        polygon = rectangle(lat, lng, width, height)

    patterns = [name.strip() for name in args.patterns.split(",") if name.strip()]
    if not patterns:
        raise ValueError("At least one pattern must be specified")

    sim = SearchSimulation(config=config)
    sim.set_simulation_speed(args.speed)
    area = sim.create_area(
        polygon,
        priority=args.priority,
        time_threshold=args.time_threshold,
        cell_size_m=args.cell_size,
        name="Batch area",
        now=0.0,
    )
    for idx in range(args.agents):
        agent = sim.register_agent(f"Agent {idx + 1}", now=0.0)
        sim.assign_agent_to_area(agent.id, area.id, patterns[idx % len(patterns)])

    scheduler = TickScheduler(sim, start=0.0)
    sim.start_simulation()
    events = scheduler.run_until(args.duration)
    sim.stop_simulation()

    counts = Counter(event["type"] for event in events)
    report = summary(sim, now=scheduler.clock)
    report["ticks"] = sim.state.tick_count
    report["events"] = dict(counts)
    report["agents"] = agent_statistics(sim, now=scheduler.clock)

    if args.snapshot is not None and not save_snapshot(args.snapshot, sim):
        logger.warning("snapshot was not written")

    if args.json:
        print(json.dumps(report, indent=2, sort_keys=True))
        return

    print("Simulation complete.")
    print(f"  ticks: {report['ticks']}  cells: {area.total_cells}")
    print(f"  coverage: {report['average_coverage']:.1f}%")
    for stats in report["agents"]:
        print(
            f"  {stats['name']:<10} {stats['cells_covered']:>5} cells "
            f"{stats['path_length_m']:>9.1f} m walked"
        )
    for alert in sim.state.alerts:
        print(f"  [{alert.type}] t={alert.timestamp:.0f}s {alert.message}")


if __name__ == "__main__":
    main()
