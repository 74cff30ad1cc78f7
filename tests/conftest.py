"""Shared test fixtures."""

from __future__ import annotations

import sqlite3
from datetime import datetime, timedelta, timezone
from typing import Any

import pytest

from checkplan.errors import StorageError
from checkplan.scheduling import (
    CheckLifecycleManager,
    CheckRepository,
    DelayedCheckDetector,
    DeviceCatalog,
    DeviceRepository,
    NotificationSettingsStore,
    PlanRepository,
)
from checkplan.storage.kv_store import KVStore


class FailingKVStore(KVStore):
    """KVStore whose ``set`` fails for one chosen key."""

    fail_key: str | None = None

    def set(self, key: str, value: Any) -> None:
        if key == self.fail_key:
            raise StorageError("set", key, sqlite3.OperationalError("disk I/O error"))
        super().set(key, value)


class FixedClock:
    """Callable clock that tests move forward by hand."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def set(self, *args: int) -> None:
        self.now = datetime(*args, tzinfo=timezone.utc)

    def advance(self, **kwargs: float) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def clock() -> FixedClock:
    # Monday of ISO week 10, 2025
    return FixedClock(datetime(2025, 3, 3, 9, 0, tzinfo=timezone.utc))


@pytest.fixture
def kv(tmp_path) -> KVStore:
    """KVStore backed by a temp SQLite file."""
    return KVStore(db_path=tmp_path / "test_kv.db", table="kv_test")


@pytest.fixture
def failing_kv(tmp_path) -> FailingKVStore:
    return FailingKVStore(db_path=tmp_path / "failing_kv.db", table="kv_test")


@pytest.fixture
def devices(kv) -> DeviceRepository:
    return DeviceRepository(kv)


@pytest.fixture
def checks(kv) -> CheckRepository:
    return CheckRepository(kv)


@pytest.fixture
def plans(kv) -> PlanRepository:
    return PlanRepository(kv)


@pytest.fixture
def roster(kv) -> NotificationSettingsStore:
    return NotificationSettingsStore(kv)


@pytest.fixture
def lifecycle(devices, checks, plans, clock) -> CheckLifecycleManager:
    return CheckLifecycleManager(devices, checks, plans, clock=clock, require_delayed_comment=False)


@pytest.fixture
def catalog(devices, checks, clock) -> DeviceCatalog:
    return DeviceCatalog(devices, checks, clock=clock)


@pytest.fixture
def detector(checks, clock) -> DelayedCheckDetector:
    return DelayedCheckDetector(checks, clock=clock)


@pytest.fixture
def make_device(catalog):
    """Register a device with sensible defaults."""

    def _make(device_id: str, frequency: int = 1, location: str = "Hall A", **kwargs):
        return catalog.create_device(
            name=kwargs.pop("name", f"Device {device_id}"),
            identification_number=kwargs.pop("identification_number", f"ID-{device_id}"),
            location=location,
            planned_frequency=frequency,
            device_id=device_id,
            **kwargs,
        )

    return _make
