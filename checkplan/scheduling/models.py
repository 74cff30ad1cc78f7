"""Domain records persisted in the key-value store.

Each record maps to one JSON document with camelCase field names, which is
also the shape the HTTP API returns. Keys are derived here so every caller
builds them the same way.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

DEVICE_PREFIX = "device:"
CHECK_PREFIX = "check:"
PLAN_PREFIX = "plan:"
SETTINGS_PREFIX = "settings:"

SYSTEM_ASSIGNER = "system"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def isoformat(value: datetime) -> str:
    return value.astimezone(timezone.utc).isoformat()


def device_key(device_id: str) -> str:
    return f"{DEVICE_PREFIX}{device_id}"


def check_key(year: int | str, week: int | str, device_id: str) -> str:
    return f"{CHECK_PREFIX}{int(year)}:{int(week)}:{device_id}"


def week_prefix(year: int | str, week: int | str) -> str:
    """Key prefix of all checks scheduled for one ISO week."""
    return f"{CHECK_PREFIX}{int(year)}:{int(week)}:"


def plan_key(year: int | str, week: int | str) -> str:
    return f"{PLAN_PREFIX}{int(year)}:{int(week)}"


class CheckStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"


@dataclass
class Device:
    """A physical device that gets inspected every ``planned_frequency`` weeks."""

    name: str
    identification_number: str
    location: str
    planned_frequency: int
    id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])
    plan_comment: str | None = None
    status: str = "active"
    created_at: str = field(default_factory=lambda: isoformat(utcnow()))
    last_checked_at: str | None = None
    last_checked_by: str | None = None

    @property
    def key(self) -> str:
        return device_key(self.id)

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "identificationNumber": self.identification_number,
            "location": self.location,
            "plannedFrequency": self.planned_frequency,
            "planComment": self.plan_comment,
            "status": self.status,
            "createdAt": self.created_at,
        }
        if self.last_checked_at is not None:
            d["lastCheckedAt"] = self.last_checked_at
            d["lastCheckedBy"] = self.last_checked_by
        return d

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Device":
        return cls(
            id=data["id"],
            name=data.get("name", ""),
            identification_number=data.get("identificationNumber", ""),
            location=data.get("location", ""),
            planned_frequency=int(data.get("plannedFrequency", 1)),
            plan_comment=data.get("planComment"),
            status=data.get("status", "active"),
            created_at=data.get("createdAt", ""),
            last_checked_at=data.get("lastCheckedAt"),
            last_checked_by=data.get("lastCheckedBy"),
        )


@dataclass
class DeviceCheck:
    """One scheduled inspection of one device in one ISO (year, week).

    ``year`` and ``week`` are kept as strings, matching the stored documents.
    """

    device_id: str
    year: str
    week: str
    assigned_by: str
    assigned_at: str = field(default_factory=lambda: isoformat(utcnow()))
    status: CheckStatus = CheckStatus.PENDING
    completed_at: str | None = None
    completed_by: str | None = None
    comment: str | None = None

    def __post_init__(self) -> None:
        self.year = str(int(self.year))
        self.week = str(int(self.week))
        self.status = CheckStatus(self.status)

    @property
    def id(self) -> str:
        return check_key(self.year, self.week, self.device_id)

    @property
    def scheduled_week(self) -> tuple[int, int]:
        return int(self.year), int(self.week)

    @property
    def is_pending(self) -> bool:
        return self.status == CheckStatus.PENDING

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "id": self.id,
            "deviceId": self.device_id,
            "week": self.week,
            "year": self.year,
            "status": self.status.value,
            "assignedAt": self.assigned_at,
            "assignedBy": self.assigned_by,
        }
        if self.status == CheckStatus.COMPLETED:
            d["completedAt"] = self.completed_at
            d["completedBy"] = self.completed_by
            d["comment"] = self.comment or ""
        return d

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "DeviceCheck":
        return cls(
            device_id=data["deviceId"],
            year=data["year"],
            week=data["week"],
            assigned_by=data.get("assignedBy", ""),
            assigned_at=data.get("assignedAt", ""),
            status=data.get("status", CheckStatus.PENDING.value),
            completed_at=data.get("completedAt"),
            completed_by=data.get("completedBy"),
            comment=data.get("comment"),
        )


@dataclass
class WeeklyPlan:
    """A batch of devices assigned for inspection in one ISO week."""

    year: str
    week: str
    device_ids: list[str]
    assigned_by: str
    created_at: str = field(default_factory=lambda: isoformat(utcnow()))
    status: str = "planned"

    def __post_init__(self) -> None:
        self.year = str(int(self.year))
        self.week = str(int(self.week))

    @property
    def id(self) -> str:
        return plan_key(self.year, self.week)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "week": self.week,
            "year": self.year,
            "deviceIds": list(self.device_ids),
            "assignedBy": self.assigned_by,
            "createdAt": self.created_at,
            "status": self.status,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "WeeklyPlan":
        return cls(
            year=data["year"],
            week=data["week"],
            device_ids=list(data.get("deviceIds", [])),
            assigned_by=data.get("assignedBy", ""),
            created_at=data.get("createdAt", ""),
            status=data.get("status", "planned"),
        )
