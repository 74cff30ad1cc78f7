"""Scheduling subsystem: ISO weeks, check lifecycle, delayed-check detection."""

from .delayed import DelayedCheck, DelayedCheckDetector, Severity, classify, days_overdue, is_delayed
from .lifecycle import CheckLifecycleManager, CompletionResult, DeviceCatalog
from .models import CheckStatus, Device, DeviceCheck, WeeklyPlan
from .repositories import (
    CheckRepository,
    DeviceRepository,
    NotificationSettingsStore,
    PlanRepository,
)
from .weeks import IsoWeek, parse_week, week_of, week_range, week_start

__all__ = [
    "CheckLifecycleManager",
    "CheckRepository",
    "CheckStatus",
    "CompletionResult",
    "DelayedCheck",
    "DelayedCheckDetector",
    "Device",
    "DeviceCatalog",
    "DeviceCheck",
    "DeviceRepository",
    "IsoWeek",
    "NotificationSettingsStore",
    "PlanRepository",
    "Severity",
    "WeeklyPlan",
    "classify",
    "days_overdue",
    "is_delayed",
    "parse_week",
    "week_of",
    "week_range",
    "week_start",
]
