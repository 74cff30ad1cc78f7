"""Device catalog API routes."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Request
from pydantic import BaseModel

from checkplan.api.deps import get_catalog, http_error
from checkplan.errors import CheckplanError

device_router = APIRouter(prefix="/devices", tags=["devices"])


class CreateDeviceBody(BaseModel):
    id: str | None = None
    name: Any = None
    identificationNumber: Any = None
    location: Any = None
    plannedFrequency: Any = None
    planComment: str | None = None


@device_router.post("")
def create_device(body: CreateDeviceBody, request: Request) -> dict[str, Any]:
    try:
        device = get_catalog(request).create_device(
            name=body.name,
            identification_number=body.identificationNumber,
            location=body.location,
            planned_frequency=body.plannedFrequency,
            plan_comment=body.planComment,
            device_id=body.id,
        )
    except CheckplanError as e:
        raise http_error(e)
    return {"device": device.to_dict()}


@device_router.get("")
def list_devices(request: Request) -> list[dict[str, Any]]:
    try:
        return [d.to_dict() for d in get_catalog(request).list_devices()]
    except CheckplanError as e:
        raise http_error(e)


@device_router.get("/by-location/{location}")
def devices_by_location(location: str, request: Request) -> list[dict[str, Any]]:
    """Devices whose location contains ``location`` (case-insensitive)."""
    try:
        return [d.to_dict() for d in get_catalog(request).devices_by_location(location)]
    except CheckplanError as e:
        raise http_error(e)


@device_router.get("/{device_id}")
def get_device(device_id: str, request: Request) -> dict[str, Any]:
    try:
        return {"device": get_catalog(request).get_device(device_id).to_dict()}
    except CheckplanError as e:
        raise http_error(e)


@device_router.delete("/{device_id}")
def delete_device(device_id: str, request: Request) -> dict[str, Any]:
    """Delete a device together with all of its checks."""
    try:
        removed = get_catalog(request).delete_device(device_id)
    except CheckplanError as e:
        raise http_error(e)
    return {"status": "deleted", "checksDeleted": removed}


@device_router.get("/{device_id}/last-check")
def device_last_check(device_id: str, request: Request) -> dict[str, Any]:
    try:
        return get_catalog(request).last_check(device_id)
    except CheckplanError as e:
        raise http_error(e)
