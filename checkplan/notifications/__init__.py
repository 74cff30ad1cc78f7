"""Overdue-check digest for the external notification dispatcher.

The engine does not deliver anything. Once per run (typically a weekly
cron call) it builds one digest: the subscribed recipients plus every
delayed check with its severity, and a plain-text rendering an email or
chat dispatcher can send as-is.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from checkplan.scheduling.delayed import DelayedCheck, DelayedCheckDetector, Severity
from checkplan.scheduling.models import isoformat
from checkplan.scheduling.repositories import DeviceRepository, NotificationSettingsStore
from checkplan.scheduling.weeks import week_of, week_range

logger = logging.getLogger(__name__)

# Icon per severity, most urgent section first in the text body
_EMOJI = {
    Severity.CRITICAL: "🔴",
    Severity.MODERATE: "🟠",
    Severity.RECENT: "🟡",
}


def build_overdue_digest(
    detector: DelayedCheckDetector,
    roster: NotificationSettingsStore,
    devices: DeviceRepository,
    now: datetime,
) -> dict[str, Any]:
    """Assemble the payload the dispatcher consumes.

    ``shouldNotify`` is false when nobody is subscribed or nothing is overdue.
    """
    recipients = sorted(roster.get_selected_employees())
    summary = detector.summarize(now)
    counts = {s.value: 0 for s in Severity}
    for item in summary:
        counts[item.severity.value] += 1

    rows = []
    for item in summary:
        row = item.to_dict()
        device = devices.get(item.check.device_id)
        row["deviceName"] = device.name if device else item.check.device_id
        row["location"] = device.location if device else ""
        rows.append(row)

    should_notify = bool(recipients) and bool(summary)
    if not recipients:
        logger.info("No employees subscribed to delayed-check notifications")

    return {
        "generatedAt": isoformat(now),
        "currentWeek": str(week_of(now)),
        "shouldNotify": should_notify,
        "recipients": recipients,
        "totalDelayed": len(summary),
        "counts": counts,
        "checks": rows,
        "text": format_digest_text(summary, rows) if summary else "",
    }


def format_digest_text(summary: list[DelayedCheck], rows: list[dict[str, Any]]) -> str:
    names = {row["id"]: row["deviceName"] for row in rows}
    lines = [f"*Overdue device checks: {len(summary)}*"]
    for severity in (Severity.CRITICAL, Severity.MODERATE, Severity.RECENT):
        items = [s for s in summary if s.severity == severity]
        if not items:
            continue
        lines.append("")
        lines.append(f"{_EMOJI[severity]} {severity.value.capitalize()} ({len(items)})")
        for item in items:
            year, week = item.check.scheduled_week
            start, end = week_range(year, week)
            lines.append(
                f"- {names.get(item.check.id, item.check.device_id)}: week {week}/{year} "
                f"({start.isoformat()} – {end.isoformat()}), {item.days_overdue} days overdue"
            )
    return "\n".join(lines)
