"""Annual report: completed checks of a year grouped by device location."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from .models import CheckStatus
from .repositories import CheckRepository, DeviceRepository

UNKNOWN_LOCATION = "Unknown"


def _completed_year(completed_at: str | None) -> int | None:
    if not completed_at:
        return None
    try:
        value = datetime.fromisoformat(completed_at)
    except ValueError:
        return None
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc)
    return value.year


def annual_report(
    year: int,
    devices: DeviceRepository,
    checks: CheckRepository,
) -> dict[str, list[dict[str, Any]]]:
    """Completed checks whose completion falls in calendar ``year``, by location.

    Checks of devices that no longer exist are listed under ``Unknown``.
    """
    report: dict[str, list[dict[str, Any]]] = {}
    device_cache: dict[str, Any] = {}

    for check in checks.list_all():
        if check.status != CheckStatus.COMPLETED or _completed_year(check.completed_at) != year:
            continue
        if check.device_id not in device_cache:
            device_cache[check.device_id] = devices.get(check.device_id)
        device = device_cache[check.device_id]

        location = (device.location if device else "") or UNKNOWN_LOCATION
        report.setdefault(location, []).append({
            "deviceName": device.name if device else check.device_id,
            "deviceId": check.device_id,
            "week": check.week,
            "completedAt": check.completed_at,
            "completedBy": check.completed_by,
            "comment": check.comment or "",
        })

    for rows in report.values():
        rows.sort(key=lambda r: r["completedAt"] or "")
    return report
