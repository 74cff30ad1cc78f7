"""Shared route helpers: service lookup on app.state and error translation."""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime

from fastapi import FastAPI, HTTPException, Request

from checkplan.admin import AdminMaintenance
from checkplan.errors import CheckplanError, InvalidTransition, NotFound, StorageError, ValidationError
from checkplan.scheduling import (
    CheckLifecycleManager,
    CheckRepository,
    DelayedCheckDetector,
    DeviceCatalog,
    DeviceRepository,
    NotificationSettingsStore,
    PlanRepository,
)
from checkplan.scheduling.models import utcnow
from checkplan.storage.kv_store import KVStore

logger = logging.getLogger(__name__)


def init_state(app: FastAPI, kv: KVStore, clock: Callable[[], datetime] = utcnow) -> None:
    """Wire repositories and services onto ``app.state``."""
    devices = DeviceRepository(kv)
    checks = CheckRepository(kv)
    plans = PlanRepository(kv)

    app.state.kv = kv
    app.state.clock = clock
    app.state.devices = devices
    app.state.checks = checks
    app.state.plans = plans
    app.state.lifecycle = CheckLifecycleManager(devices, checks, plans, clock=clock)
    app.state.catalog = DeviceCatalog(devices, checks, clock=clock)
    app.state.detector = DelayedCheckDetector(checks, clock=clock)
    app.state.roster = NotificationSettingsStore(kv)
    app.state.admin = AdminMaintenance(kv)


def get_lifecycle(request: Request) -> CheckLifecycleManager:
    return request.app.state.lifecycle  # type: ignore[no-any-return]


def get_catalog(request: Request) -> DeviceCatalog:
    return request.app.state.catalog  # type: ignore[no-any-return]


def get_detector(request: Request) -> DelayedCheckDetector:
    return request.app.state.detector  # type: ignore[no-any-return]


def get_roster(request: Request) -> NotificationSettingsStore:
    return request.app.state.roster  # type: ignore[no-any-return]


def now(request: Request) -> datetime:
    return request.app.state.clock()  # type: ignore[no-any-return]


def http_error(exc: CheckplanError) -> HTTPException:
    """Map an engine error to the HTTP status the caller should see."""
    detail = {"error": exc.message, "details": exc.details}
    if isinstance(exc, NotFound):
        return HTTPException(status_code=404, detail=detail)
    if isinstance(exc, InvalidTransition):
        return HTTPException(status_code=409, detail=detail)
    if isinstance(exc, ValidationError):
        return HTTPException(status_code=400, detail=detail)
    if isinstance(exc, StorageError):
        logger.error("Storage failure: %s", exc)
        return HTTPException(status_code=500, detail=detail)
    return HTTPException(status_code=500, detail=detail)
