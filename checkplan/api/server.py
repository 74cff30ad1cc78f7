"""FastAPI server for the maintenance check engine."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from checkplan import __version__
from checkplan.api.admin_routes import admin_router
from checkplan.api.deps import init_state
from checkplan.api.device_routes import device_router
from checkplan.api.schedule_routes import schedule_router
from checkplan.config import settings
from checkplan.storage.kv_store import KVStore

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Open the key-value store and wire services on startup."""
    if not hasattr(app.state, "kv"):
        kv = KVStore()
        init_state(app, kv)
        logger.info("Key-value store ready: %s (table %s)", settings.db_path, settings.kv_table_name)

    yield


def create_app() -> FastAPI:
    app = FastAPI(
        title="checkplan - Maintenance Check Scheduling",
        version=__version__,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(schedule_router, prefix="/api")
    app.include_router(device_router, prefix="/api")
    app.include_router(admin_router, prefix="/api")

    @app.get("/api/health")
    async def health():
        return {"status": "ok", "timestamp": datetime.now(timezone.utc).isoformat()}

    return app


app = create_app()
