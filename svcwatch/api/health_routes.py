"""API routes for the monitor.

Endpoints:
  GET  /                     — HTML dashboard
  GET  /health               — overall status + every service result
  GET  /api/services         — every service result
  GET  /api/services/{name}  — one service result
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import HTMLResponse

from svcwatch.api.dashboard import render_dashboard
from svcwatch.health.engine import CheckResult, Status

logger = logging.getLogger(__name__)

health_router = APIRouter()


def overall_status(results: list[CheckResult]) -> Status:
    """Down if anything is down, unknown if anything is unknown, else up."""
    statuses = {r.status for r in results}
    if Status.DOWN in statuses:
        return Status.DOWN
    if Status.UNKNOWN in statuses:
        return Status.UNKNOWN
    return Status.UP


@health_router.get("/", response_class=HTMLResponse)
def dashboard(request: Request) -> HTMLResponse:
    logger.info("Request received: %s %s", request.method, request.url.path)
    monitor = request.app.state.monitor
    html = render_dashboard(
        request.app.state.dashboard,
        monitor.services,
        monitor.results(),
    )
    return HTMLResponse(html)


@health_router.get("/health")
def health(request: Request) -> dict[str, Any]:
    """Overall health with one entry per service."""
    logger.info("Health check requested: %s %s", request.method, request.url.path)
    results = request.app.state.monitor.results_list()
    return {
        "status": overall_status(results).value,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "services": [r.to_dict() for r in results],
    }


@health_router.get("/api/services")
def list_services(request: Request) -> list[dict[str, Any]]:
    logger.info("API request: %s %s", request.method, request.url.path)
    return [r.to_dict() for r in request.app.state.monitor.results_list()]


@health_router.get("/api/services/{name}")
def get_service(name: str, request: Request) -> dict[str, Any]:
    result = request.app.state.monitor.results().get(name)
    if result is None:
        raise HTTPException(status_code=404, detail=f"Service not found: {name}")
    return result.to_dict()
