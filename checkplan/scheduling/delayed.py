"""Delayed-check detection and severity classification.

A check is delayed when it is still pending and its scheduled ISO
(year, week) is strictly before the current one.

Days overdue are counted as whole weeks times seven, with every year taken
as exactly 52 weeks. Across a year boundary, or in 53-week ISO years, that
count is off by a week; the severity thresholds are defined against this
arithmetic, so it is kept as is.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any

from .models import DeviceCheck, utcnow
from .repositories import CheckRepository
from .weeks import week_of

logger = logging.getLogger(__name__)

RECENT_MAX_DAYS = 7
MODERATE_MAX_DAYS = 14


class Severity(str, Enum):
    RECENT = "recently overdue"
    MODERATE = "moderately overdue"
    CRITICAL = "critically overdue"


def is_delayed(check: DeviceCheck, now: datetime) -> bool:
    return check.is_pending and check.scheduled_week < tuple(week_of(now))


def days_overdue(check: DeviceCheck, now: datetime) -> int:
    current = week_of(now)
    year, week = check.scheduled_week
    return ((current.year - year) * 52 + (current.week - week)) * 7


def classify(days: int) -> Severity:
    if days <= RECENT_MAX_DAYS:
        return Severity.RECENT
    if days <= MODERATE_MAX_DAYS:
        return Severity.MODERATE
    return Severity.CRITICAL


@dataclass
class DelayedCheck:
    """A delayed check annotated for reporting. Severity is never stored."""

    check: DeviceCheck
    days_overdue: int
    severity: Severity

    def to_dict(self) -> dict[str, Any]:
        d = self.check.to_dict()
        d["daysOverdue"] = self.days_overdue
        d["severity"] = self.severity.value
        return d


class DelayedCheckDetector:
    """Scans pending checks against the current ISO week."""

    def __init__(self, checks: CheckRepository, clock: Callable[[], datetime] = utcnow) -> None:
        self.checks = checks
        self._clock = clock

    def find_delayed(self, now: datetime | None = None) -> list[DeviceCheck]:
        now = now or self._clock()
        delayed = [c for c in self.checks.list_pending() if is_delayed(c, now)]
        logger.debug("Delayed-check scan at %s: %d overdue", week_of(now), len(delayed))
        return delayed

    def summarize(self, now: datetime | None = None) -> list[DelayedCheck]:
        """Delayed checks with days overdue and severity, most overdue first."""
        now = now or self._clock()
        summary = []
        for check in self.find_delayed(now):
            days = days_overdue(check, now)
            summary.append(DelayedCheck(check=check, days_overdue=days, severity=classify(days)))
        summary.sort(key=lambda d: (-d.days_overdue, d.check.id))
        return summary

    def group_by_severity(self, now: datetime | None = None) -> dict[Severity, list[DelayedCheck]]:
        groups: dict[Severity, list[DelayedCheck]] = {s: [] for s in Severity}
        for item in self.summarize(now):
            groups[item.severity].append(item)
        return groups
