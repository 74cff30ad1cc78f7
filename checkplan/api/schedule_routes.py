"""Scheduling API routes: weekly plans, check completion, delayed checks."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Request
from pydantic import BaseModel

from checkplan.api.deps import get_detector, get_lifecycle, get_roster, http_error, now
from checkplan.errors import CheckplanError
from checkplan.notifications import build_overdue_digest
from checkplan.scheduling.reports import annual_report
from checkplan.scheduling.weeks import parse_week, week_of

logger = logging.getLogger(__name__)

schedule_router = APIRouter(tags=["schedule"])


# ── Request models ───────────────────────────────────────────────────────
# Fields are loosely typed and default to None; the engine validates them.

class CreatePlanBody(BaseModel):
    week: Any = None
    year: Any = None
    deviceIds: Any = None
    assignedBy: Any = None


class CompleteCheckBody(BaseModel):
    completedBy: Any = None
    comment: str | None = None


class NotificationSettingsBody(BaseModel):
    selectedEmployees: list[str] = []


# ── Weekly plans ─────────────────────────────────────────────────────────

@schedule_router.post("/weekly-plans")
def create_weekly_plan(body: CreatePlanBody, request: Request) -> dict[str, Any]:
    """Create a plan and one pending check per listed device."""
    try:
        plan, checks = get_lifecycle(request).create_plan(
            body.year, body.week, body.deviceIds, body.assignedBy
        )
    except CheckplanError as e:
        raise http_error(e)
    return {"plan": plan.to_dict(), "checksCreated": len(checks)}


@schedule_router.get("/weekly-plans/{year}/{week}")
def get_weekly_plan_checks(year: str, week: str, request: Request) -> list[dict[str, Any]]:
    """All checks scheduled for one ISO week."""
    try:
        iso = parse_week(year, week)
        checks = get_lifecycle(request).checks.list_for_week(iso.year, iso.week)
    except CheckplanError as e:
        raise http_error(e)
    return [c.to_dict() for c in checks]


# ── Checks ───────────────────────────────────────────────────────────────

@schedule_router.put("/checks/{check_id}/complete")
def complete_check(check_id: str, body: CompleteCheckBody, request: Request) -> dict[str, Any]:
    """Complete a check and schedule the device's next one."""
    try:
        result = get_lifecycle(request).complete_check(check_id, body.completedBy, body.comment)
    except CheckplanError as e:
        raise http_error(e)
    return result.to_dict()


# ── Delayed checks ───────────────────────────────────────────────────────

@schedule_router.get("/delayed-checks")
def list_delayed_checks(request: Request) -> list[dict[str, Any]]:
    """Pending checks scheduled before the current ISO week."""
    try:
        delayed = get_detector(request).find_delayed(now(request))
    except CheckplanError as e:
        raise http_error(e)
    return [c.to_dict() for c in delayed]


@schedule_router.get("/delayed-checks/summary")
def delayed_checks_summary(request: Request) -> dict[str, Any]:
    """Delayed checks grouped by severity, with days overdue."""
    current = now(request)
    try:
        groups = get_detector(request).group_by_severity(current)
    except CheckplanError as e:
        raise http_error(e)
    return {
        "currentWeek": str(week_of(current)),
        "total": sum(len(items) for items in groups.values()),
        "groups": {s.value: [i.to_dict() for i in items] for s, items in groups.items()},
    }


# ── Notification roster ──────────────────────────────────────────────────

@schedule_router.get("/delayed-device-notifications")
def get_notification_settings(request: Request) -> dict[str, Any]:
    try:
        selected = get_roster(request).get_selected_employees()
    except CheckplanError as e:
        raise http_error(e)
    return {"selectedEmployees": sorted(selected)}


@schedule_router.post("/delayed-device-notifications")
def save_notification_settings(body: NotificationSettingsBody, request: Request) -> dict[str, Any]:
    try:
        selected = get_roster(request).set_selected_employees(body.selectedEmployees)
    except CheckplanError as e:
        raise http_error(e)
    return {"selectedEmployees": sorted(selected)}


@schedule_router.post("/cron/delayed-notifications")
def delayed_notifications_digest(request: Request) -> dict[str, Any]:
    """Overdue digest for the external dispatcher; called by a weekly cron job."""
    state = request.app.state
    try:
        digest = build_overdue_digest(state.detector, state.roster, state.devices, now(request))
    except CheckplanError as e:
        raise http_error(e)
    logger.info(
        "Delayed-check digest built: %d overdue, %d recipients",
        digest["totalDelayed"], len(digest["recipients"]),
    )
    return digest


# ── Reports ──────────────────────────────────────────────────────────────

@schedule_router.get("/reports/annual/{year}")
def get_annual_report(year: int, request: Request) -> dict[str, Any]:
    """Completed checks of a calendar year grouped by device location."""
    state = request.app.state
    try:
        return annual_report(year, state.devices, state.checks)
    except CheckplanError as e:
        raise http_error(e)
