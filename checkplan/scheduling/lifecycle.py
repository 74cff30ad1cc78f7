"""Check lifecycle: plan creation, completion and automatic rescheduling.

A check moves from ``pending`` to ``completed`` exactly once. Completing a
check schedules the device's next check ``plannedFrequency`` weeks
after the completion instant, whatever week the completed check was for.
A check completed before its planned week is counted from the planned week
instead, so its successor always lands in a later week.

The steps of a completion are independent key writes. There is no
transaction around them: a storage failure part-way leaves the earlier
writes in place, and concurrent completions of one check resolve as
last-writer-wins (the successor key is deterministic, so a duplicate
successor just overwrites itself).
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

from checkplan.config import settings
from checkplan.errors import InvalidTransition, NotFound, ValidationError

from .delayed import is_delayed
from .models import (
    SYSTEM_ASSIGNER,
    CheckStatus,
    Device,
    DeviceCheck,
    WeeklyPlan,
    isoformat,
    utcnow,
)
from .repositories import CheckRepository, DeviceRepository, PlanRepository
from .weeks import parse_week, week_of, week_start

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


@dataclass
class CompletionResult:
    """Outcome of ``complete_check``: the completed check and its successor."""

    check: DeviceCheck
    next_check: DeviceCheck
    scheduled_for: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "check": self.check.to_dict(),
            "nextCheckScheduled": {
                "checkId": self.next_check.id,
                "week": int(self.next_check.week),
                "year": int(self.next_check.year),
                "scheduledFor": isoformat(self.scheduled_for),
            },
        }


class CheckLifecycleManager:
    """Creates, completes and reschedules device checks."""

    def __init__(
        self,
        devices: DeviceRepository,
        checks: CheckRepository,
        plans: PlanRepository,
        clock: Clock = utcnow,
        require_delayed_comment: bool | None = None,
    ) -> None:
        self.devices = devices
        self.checks = checks
        self.plans = plans
        self._clock = clock
        self.require_delayed_comment = (
            settings.require_delayed_comment
            if require_delayed_comment is None
            else require_delayed_comment
        )

    # ── Planning ──────────────────────────────────────────────────────────

    def create_checks_for_plan(
        self,
        year: int | str,
        week: int | str,
        device_ids: Iterable[str],
        assigned_by: str,
    ) -> list[DeviceCheck]:
        """Upsert one pending check per device for the week.

        Re-running for a device already planned that week overwrites its check.
        """
        iso = parse_week(year, week)
        assigned_at = isoformat(self._clock())
        checks = [
            DeviceCheck(
                device_id=device_id,
                year=str(iso.year),
                week=str(iso.week),
                assigned_by=assigned_by,
                assigned_at=assigned_at,
            )
            for device_id in _clean_device_ids(device_ids)
        ]
        self.checks.save_many(checks)
        return checks

    def create_plan(
        self,
        year: int | str,
        week: int | str,
        device_ids: Iterable[str] | None,
        assigned_by: str | None,
    ) -> tuple[WeeklyPlan, list[DeviceCheck]]:
        """Store the weekly plan and create its checks."""
        iso = parse_week(year, week)
        if device_ids is None:
            raise ValidationError("Missing required field: deviceIds", field="deviceIds")
        ids = _clean_device_ids(device_ids)
        if not ids:
            raise ValidationError("A plan needs at least one device", field="deviceIds")
        _require_text(assigned_by, "assignedBy")

        plan = WeeklyPlan(
            year=str(iso.year),
            week=str(iso.week),
            device_ids=ids,
            assigned_by=assigned_by,
            created_at=isoformat(self._clock()),
        )
        self.plans.save(plan)
        checks = self.create_checks_for_plan(iso.year, iso.week, ids, assigned_by)
        logger.info(
            "Weekly plan %s created by %s: %d checks", plan.id, assigned_by, len(checks)
        )
        return plan, checks

    # ── Completion ────────────────────────────────────────────────────────

    def complete_check(
        self,
        check_id: str,
        completed_by: str,
        comment: str | None = None,
    ) -> CompletionResult:
        """Mark a pending check completed and schedule the device's next check.

        Raises NotFound for a missing check or device and ValidationError for
        bad input, in both cases before anything is written.
        """
        now = self._clock()

        check = self.checks.get(check_id)
        if check is None:
            raise NotFound("check", check_id)
        device = self.devices.get(check.device_id)
        if device is None:
            raise NotFound("device", check.device_id)

        if check.status != CheckStatus.PENDING:
            raise InvalidTransition(
                f"Check is already {check.status.value}",
                field="status",
                checkId=check_id,
            )
        _require_text(completed_by, "completedBy")
        if device.planned_frequency < 1:
            raise ValidationError(
                f"Device has non-positive frequency: {device.planned_frequency}",
                field="plannedFrequency",
                deviceId=device.id,
            )
        if self.require_delayed_comment and is_delayed(check, now) and not (comment or "").strip():
            raise ValidationError(
                "A comment is required when completing a delayed check",
                field="comment",
                checkId=check_id,
            )

        completed_at = isoformat(now)
        check.status = CheckStatus.COMPLETED
        check.completed_at = completed_at
        check.completed_by = completed_by
        check.comment = comment or ""
        self.checks.save(check)

        device.last_checked_at = completed_at
        device.last_checked_by = completed_by
        self.devices.save(device)

        scheduled_for = now + timedelta(weeks=device.planned_frequency)
        nxt = week_of(scheduled_for)
        if tuple(nxt) <= check.scheduled_week:
            # Completed ahead of schedule: the successor must land after this check.
            planned = datetime.combine(week_start(*check.scheduled_week), now.timetz())
            scheduled_for = planned + timedelta(weeks=device.planned_frequency)
            nxt = week_of(scheduled_for)
        successor = self.checks.save(
            DeviceCheck(
                device_id=device.id,
                year=str(nxt.year),
                week=str(nxt.week),
                assigned_by=SYSTEM_ASSIGNER,
                assigned_at=completed_at,
            )
        )
        logger.info(
            "Check %s completed by %s; next check for %s scheduled %s",
            check_id, completed_by, device.id, nxt,
        )
        return CompletionResult(check=check, next_check=successor, scheduled_for=scheduled_for)


class DeviceCatalog:
    """Device CRUD with the application-level cascade onto checks."""

    def __init__(
        self,
        devices: DeviceRepository,
        checks: CheckRepository,
        clock: Clock = utcnow,
    ) -> None:
        self.devices = devices
        self.checks = checks
        self._clock = clock

    def create_device(
        self,
        name: str,
        identification_number: str,
        location: str,
        planned_frequency: Any,
        plan_comment: str | None = None,
        device_id: str | None = None,
    ) -> Device:
        _require_text(name, "name")
        _require_text(identification_number, "identificationNumber")
        _require_text(location, "location")
        frequency = _positive_int(planned_frequency, "plannedFrequency")

        device = Device(
            name=name,
            identification_number=identification_number,
            location=location,
            planned_frequency=frequency,
            plan_comment=plan_comment,
            created_at=isoformat(self._clock()),
        )
        if device_id:
            device.id = device_id
        self.devices.save(device)
        logger.info("Device %s (%s) registered at %s", device.id, identification_number, location)
        return device

    def get_device(self, device_id: str) -> Device:
        device = self.devices.get(device_id)
        if device is None:
            raise NotFound("device", device_id)
        return device

    def list_devices(self) -> list[Device]:
        return self.devices.list_all()

    def devices_by_location(self, location: str) -> list[Device]:
        needle = location.lower()
        return [d for d in self.devices.list_all() if needle in (d.location or "").lower()]

    def delete_device(self, device_id: str) -> int:
        """Delete a device and all of its checks. Returns the number of checks removed."""
        self.get_device(device_id)
        check_ids = [c.id for c in self.checks.list_for_device(device_id)]
        self.checks.delete_many(check_ids)
        self.devices.delete(device_id)
        logger.info("Deleted device %s and %d associated checks", device_id, len(check_ids))
        return len(check_ids)

    def last_check(self, device_id: str) -> dict[str, Any]:
        """Most recent completed check of a device plus the completed count."""
        device = self.get_device(device_id)
        completed = sorted(
            (c for c in self.checks.list_for_device(device_id)
             if c.status == CheckStatus.COMPLETED),
            key=lambda c: c.completed_at or "",
            reverse=True,
        )
        last = completed[0] if completed else None
        return {
            "device": device.to_dict(),
            "lastCheck": last.to_dict() if last else None,
            "hasBeenChecked": last is not None,
            "totalChecksCompleted": len(completed),
        }


# ── Helpers ──────────────────────────────────────────────────────────────


def _clean_device_ids(device_ids: Iterable[str]) -> list[str]:
    if isinstance(device_ids, str) or not isinstance(device_ids, Iterable):
        raise ValidationError("deviceIds must be a list", field="deviceIds")
    ids: list[str] = []
    for device_id in device_ids:
        if not isinstance(device_id, str) or not device_id.strip():
            raise ValidationError(f"Malformed device id: {device_id!r}", field="deviceIds")
        ids.append(device_id.strip())
    return list(dict.fromkeys(ids))


def _require_text(value: Any, field: str) -> None:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"Missing required field: {field}", field=field)


def _positive_int(value: Any, field: str) -> int:
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a positive integer", field=field)
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be a positive integer", field=field) from None
    if number != value and not (isinstance(value, str) and value.strip().isdigit()):
        raise ValidationError(f"{field} must be a positive integer", field=field)
    if number < 1:
        raise ValidationError(f"{field} must be a positive integer", field=field)
    return number
