"""Schedule/alert monitor: behind-schedule warnings and one-shot completion alerts."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from search_coverage.common.constants import (
    ALERT_COOLDOWN_S,
    BEHIND_SCHEDULE_MARGIN_PCT,
    MIN_ELAPSED_FRACTION,
)
from search_coverage.data.schemas import (
    ALERT_AREA_COMPLETE,
    ALERT_SCHEDULE_BEHIND,
    Alert,
    SearchArea,
)

__all__ = ["expected_coverage", "is_behind_schedule", "ScheduleMonitor"]


def expected_coverage(elapsed_minutes: float, time_threshold: float) -> float:
    if time_threshold <= 0.0:
        return 100.0
    return elapsed_minutes / time_threshold * 100.0


def is_behind_schedule(
    coverage: float,
    elapsed_minutes: float,
    time_threshold: float,
    margin_pct: float = BEHIND_SCHEDULE_MARGIN_PCT,
    min_elapsed_fraction: float = MIN_ELAPSED_FRACTION,
) -> bool:
    expected = expected_coverage(elapsed_minutes, time_threshold)
    return coverage < expected - margin_pct and elapsed_minutes > min_elapsed_fraction * time_threshold


def _new_alert_id() -> str:
    return f"alert-{uuid.uuid4().hex[:12]}"


@dataclass
class ScheduleMonitor:
    """Per-area alert state; call :meth:`observe` once per tick per area."""

    cooldown_s: float = ALERT_COOLDOWN_S
    margin_pct: float = BEHIND_SCHEDULE_MARGIN_PCT
    min_elapsed_fraction: float = MIN_ELAPSED_FRACTION
    last_fired: Dict[str, Dict[str, float]] = field(default_factory=dict)
    previous_coverage: Dict[str, float] = field(default_factory=dict)

    def _cooled_down(self, area_id: str, kind: str, now: float) -> bool:
        last = self.last_fired.get(area_id, {}).get(kind)
        return last is None or now - last >= self.cooldown_s

    def _fire(self, area: SearchArea, kind: str, message: str, details: str, now: float) -> Alert:
        self.last_fired.setdefault(area.id, {})[kind] = now
        return Alert(id=_new_alert_id(), type=kind, message=message, timestamp=now, area_id=area.id, details=details)

    def observe(
        self,
        area: SearchArea,
        coverage: float,
        elapsed_minutes: float,
        now: float,
    ) -> List[Alert]:
        alerts: List[Alert] = []
        previous = self.previous_coverage.get(area.id, 0.0)
        self.previous_coverage[area.id] = coverage

        if previous < 100.0 <= coverage:
            alerts.append(
                self._fire(
                    area,
                    ALERT_AREA_COMPLETE,
                    f'Search area "{area.name}" is 100% complete!',
                    "All cells in this area have been searched.",
                    now,
                )
            )

        if is_behind_schedule(
            coverage,
            elapsed_minutes,
            area.time_threshold,
            margin_pct=self.margin_pct,
            min_elapsed_fraction=self.min_elapsed_fraction,
        ) and self._cooled_down(area.id, ALERT_SCHEDULE_BEHIND, now):
            expected = expected_coverage(elapsed_minutes, area.time_threshold)
            alerts.append(
                self._fire(
                    area,
                    ALERT_SCHEDULE_BEHIND,
                    f'Search area "{area.name}" is behind schedule',
                    f"Expected {expected:.1f}% coverage, but only {coverage:.1f}% complete.",
                    now,
                )
            )
        return alerts

    def last_alert_at(self, area_id: str, kind: str) -> Optional[float]:
        return self.last_fired.get(area_id, {}).get(kind)

    def forget(self, area_id: str) -> None:
        self.last_fired.pop(area_id, None)
        self.previous_coverage.pop(area_id, None)
