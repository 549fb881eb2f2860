"""FastAPI server exposing the monitor's results."""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from svcwatch import __version__
from svcwatch.api.health_routes import health_router
from svcwatch.config import settings
from svcwatch.health.scheduler import Monitor, MonitorState
from svcwatch.services.registry import DashboardConfig, load_config

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Start the monitor on startup and stop it on shutdown."""
    if getattr(app.state, "monitor", None) is None:
        cfg = load_config(settings.services_file)
        app.state.monitor = Monitor(cfg.services)
        app.state.dashboard = cfg.dashboard

    monitor: Monitor = app.state.monitor
    if monitor.state is MonitorState.NOT_STARTED:
        monitor.start()

    yield

    # stop() joins the check threads, keep it off the event loop
    await asyncio.to_thread(monitor.stop)


def create_app(
    monitor: Monitor | None = None,
    dashboard: DashboardConfig | None = None,
) -> FastAPI:
    """Build the app. Without a monitor, one is built from settings at startup."""
    app = FastAPI(
        title="svcwatch - Service Monitor",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.monitor = monitor
    app.state.dashboard = dashboard or DashboardConfig()

    app.include_router(health_router)

    return app
