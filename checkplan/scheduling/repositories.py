"""Typed repositories over the shared key-value store.

One repository per entity; each owns its key prefix and turns stored
documents back into records. Listing is always a prefix scan; there is
no other index.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from checkplan.storage.kv_store import KVStore

from .models import (
    CHECK_PREFIX,
    DEVICE_PREFIX,
    SETTINGS_PREFIX,
    Device,
    DeviceCheck,
    WeeklyPlan,
    device_key,
    isoformat,
    plan_key,
    utcnow,
    week_prefix,
)

logger = logging.getLogger(__name__)

NOTIFICATION_SETTINGS_KEY = f"{SETTINGS_PREFIX}delayed-device-notifications"


class DeviceRepository:
    def __init__(self, kv: KVStore) -> None:
        self._kv = kv

    def get(self, device_id: str) -> Device | None:
        raw = self._kv.get(device_key(device_id))
        return Device.from_dict(raw) if raw else None

    def save(self, device: Device) -> Device:
        self._kv.set(device.key, device.to_dict())
        return device

    def delete(self, device_id: str) -> None:
        self._kv.delete(device_key(device_id))

    def list_all(self) -> list[Device]:
        return [Device.from_dict(v) for _, v in self._kv.scan_by_prefix(DEVICE_PREFIX)]


class CheckRepository:
    def __init__(self, kv: KVStore) -> None:
        self._kv = kv

    def get(self, check_id: str) -> DeviceCheck | None:
        if not check_id.startswith(CHECK_PREFIX):
            return None
        raw = self._kv.get(check_id)
        return DeviceCheck.from_dict(raw) if raw else None

    def save(self, check: DeviceCheck) -> DeviceCheck:
        """Upsert; a check for the same (year, week, device) is replaced."""
        self._kv.set(check.id, check.to_dict())
        return check

    def save_many(self, checks: Iterable[DeviceCheck]) -> list[DeviceCheck]:
        checks = list(checks)
        self._kv.mset([c.id for c in checks], [c.to_dict() for c in checks])
        return checks

    def delete_many(self, check_ids: Iterable[str]) -> None:
        self._kv.mdel(list(check_ids))

    def list_all(self) -> list[DeviceCheck]:
        return self.list_by_prefix(CHECK_PREFIX)

    def list_for_week(self, year: int | str, week: int | str) -> list[DeviceCheck]:
        return self.list_by_prefix(week_prefix(year, week))

    def list_for_device(self, device_id: str) -> list[DeviceCheck]:
        # Device id is the last key segment, so this is a full scan.
        return [c for c in self.list_all() if c.device_id == device_id]

    def list_pending(self) -> list[DeviceCheck]:
        return [c for c in self.list_all() if c.is_pending]

    def list_by_prefix(self, prefix: str) -> list[DeviceCheck]:
        return [DeviceCheck.from_dict(v) for _, v in self._kv.scan_by_prefix(prefix)]


class PlanRepository:
    def __init__(self, kv: KVStore) -> None:
        self._kv = kv

    def get(self, year: int | str, week: int | str) -> WeeklyPlan | None:
        raw = self._kv.get(plan_key(year, week))
        return WeeklyPlan.from_dict(raw) if raw else None

    def save(self, plan: WeeklyPlan) -> WeeklyPlan:
        self._kv.set(plan.id, plan.to_dict())
        return plan


class NotificationSettingsStore:
    """Roster of employees subscribed to delayed-check notifications.

    Identifiers are stored as given; checking them against the user
    directory is the directory's job.
    """

    def __init__(self, kv: KVStore) -> None:
        self._kv = kv

    def get_selected_employees(self) -> set[str]:
        raw = self._kv.get(NOTIFICATION_SETTINGS_KEY) or {}
        return set(raw.get("selectedEmployees", []))

    def set_selected_employees(self, employee_ids: Iterable[str]) -> set[str]:
        selected = list(dict.fromkeys(employee_ids))
        self._kv.set(
            NOTIFICATION_SETTINGS_KEY,
            {"selectedEmployees": selected, "updatedAt": isoformat(utcnow())},
        )
        logger.info("Delayed-check notification roster updated: %d employees", len(selected))
        return set(selected)
