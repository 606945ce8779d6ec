"""SkinTrack cycle API — FastAPI application entry point.

Run locally:
    uvicorn skintrack.main:app --reload --port 8000
"""

from __future__ import annotations

import logging
import sys
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from skintrack.config import Settings, get_settings
from skintrack.cycle.config_loader import get_cycle_policy, reload_cycle_policy
from skintrack.cycle.mutator import CycleService
from skintrack.middleware.security import SecurityHeadersMiddleware
from skintrack.routers import cycle, health
from skintrack.services.cycle_store import PostgresCycleStore
from skintrack.services.database import close_pool, init_pool

# ---------- Logging ----------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-8s %(name)s — %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
    stream=sys.stdout,
)
logger = logging.getLogger("skintrack")


# ---------- Lifespan ----------

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup / shutdown hooks."""
    settings: Settings = app.state.settings
    logger.info(
        "Starting SkinTrack API v%s [%s]",
        settings.app_version,
        settings.environment,
    )
    if settings.cycle_policy_path:
        policy = reload_cycle_policy(Path(settings.cycle_policy_path))
    else:
        policy = get_cycle_policy()
    pool = await init_pool(settings)
    app.state.cycle_service = CycleService(PostgresCycleStore(pool), policy)
    yield
    app.state.cycle_service = None
    await close_pool()
    logger.info("SkinTrack API shut down")


# ---------- App factory ----------

def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()
    logging.getLogger("skintrack").setLevel(settings.log_level.upper())

    app = FastAPI(
        title="SkinTrack API",
        description="Local cycle tracking and forecasting for the SkinTrack app.",
        version=settings.app_version,
        debug=settings.debug,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )
    app.state.settings = settings

    # ---------- Middleware (order matters — outermost first) ----------

    app.add_middleware(SecurityHeadersMiddleware)

    # CORS — must be the innermost middleware so it can handle preflight
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ---------- Health check (outside v1 prefix — always at /health) ----------
    app.include_router(health.router)

    # ---------- API v1 routes ----------
    app.include_router(cycle.router, prefix="/api/v1")

    return app


app = create_app()
