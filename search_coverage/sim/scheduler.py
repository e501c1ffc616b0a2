"""Clock-agnostic tick driver for :class:`~search_coverage.sim.engine.SearchSimulation`."""

from __future__ import annotations

import logging
from typing import List, Optional

from search_coverage.data.events import EventDict
from search_coverage.sim.engine import SearchSimulation

logger = logging.getLogger(__name__)

__all__ = ["TickScheduler"]


class TickScheduler:
    """Fire ``sim.tick`` every ``base_interval / speed`` seconds of advanced time.

    ``advance(dt)`` can be fed by a real timer, a test harness or a headless
    batch loop; nothing here reads the wall clock. While the simulation is
    stopped, ``advance`` only moves the clock.
    """

    def __init__(self, sim: SearchSimulation, start: float = 0.0) -> None:
        self.sim = sim
        self.clock = float(start)
        self._accumulated = 0.0

    @property
    def interval_s(self) -> float:
        return self.sim.tick_interval_s

    def advance(self, dt: float, max_ticks: Optional[int] = None) -> List[EventDict]:
        if dt < 0.0:
            raise ValueError("cannot advance by a negative duration")
        if not self.sim.state.running:
            self.clock += dt
            self._accumulated = 0.0
            return []

        events: List[EventDict] = []
        boundary = self.clock - self._accumulated  # time of the last tick
        self._accumulated += dt
        self.clock += dt
        fired = 0
        while self._accumulated >= self.interval_s:
            if max_ticks is not None and fired >= max_ticks:
                break
            interval = self.interval_s
            self._accumulated -= interval
            boundary += interval
            events.extend(self.sim.tick(boundary, interval_s=interval))
            fired += 1
            if not self.sim.state.running:
                # stop_simulation() from a listener cancels the remaining ticks
                self._accumulated = 0.0
                break
        logger.debug("advanced %.3fs: %d tick(s), clock=%.3f", dt, fired, self.clock)
        return events

    def run_until(self, end: float, max_ticks: Optional[int] = None) -> List[EventDict]:
        """Advance to absolute clock ``end`` (headless batch runs)."""
        return self.advance(max(0.0, end - self.clock), max_ticks=max_ticks)
