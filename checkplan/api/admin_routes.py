"""Administrative routes: bulk clears over the key-value store."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, HTTPException, Request

from checkplan.api.deps import http_error
from checkplan.errors import CheckplanError

admin_router = APIRouter(prefix="/admin", tags=["admin"])


@admin_router.delete("/clear-devices")
def clear_devices(request: Request) -> dict[str, Any]:
    """Delete all devices, checks and plans."""
    try:
        cleared = request.app.state.admin.clear_devices()
    except CheckplanError as e:
        raise http_error(e)
    return {"status": "cleared", "cleared": cleared}


@admin_router.delete("/cleanup-sample-data")
def cleanup_sample_data(request: Request, confirm: bool = False) -> dict[str, Any]:
    """Remove the sample devices and their checks/plans. Requires ?confirm=true."""
    if not confirm:
        raise HTTPException(
            status_code=400,
            detail={"error": "Operation not confirmed. Add ?confirm=true to execute.", "details": {}},
        )
    try:
        deleted = request.app.state.admin.cleanup_sample_data()
    except CheckplanError as e:
        raise http_error(e)
    return {"status": "cleaned", "deleted": deleted}
