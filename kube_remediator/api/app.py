"""FastAPI application factory for the health and metrics endpoints.

Usage::

    from kube_remediator.api.app import create_app

    app = create_app(remediator_app=remediator_app)

Routes:
    GET /healthz  -- liveness, always 200 while the process serves HTTP.
    GET /readyz   -- 200 while every remediator task is running, 503 otherwise.
    GET /metrics  -- Prometheus text exposition.
"""

from __future__ import annotations

from typing import Any

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, Response
from prometheus_client import CONTENT_TYPE_LATEST, REGISTRY, CollectorRegistry, generate_latest

_log = structlog.get_logger(component="api.app")


def create_app(remediator_app: Any = None, registry: CollectorRegistry = REGISTRY) -> FastAPI:
    """Create the FastAPI application.

    Args:
        remediator_app: RemediatorApp whose task states back ``/readyz``.
                        When None, readiness always reports 503.
        registry:       Prometheus registry rendered by ``/metrics``.
    """
    from kube_remediator import __version__

    app = FastAPI(
        title="kube-remediator",
        version=__version__,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.state.remediator_app = remediator_app
    app.state.registry = registry

    @app.get("/healthz")
    async def healthz() -> dict[str, str]:
        return {"status": "ok"}

    @app.get("/readyz")
    async def readyz(request: Request) -> JSONResponse:
        owner = request.app.state.remediator_app
        remediators: dict[str, bool] = owner.status() if owner is not None else {}
        ready = bool(remediators) and all(remediators.values())
        return JSONResponse(
            status_code=200 if ready else 503,
            content={"status": "ok" if ready else "unavailable", "remediators": remediators},
        )

    @app.get("/metrics")
    async def metrics(request: Request) -> Response:
        return Response(content=generate_latest(request.app.state.registry), media_type=CONTENT_TYPE_LATEST)

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Catch-all for unhandled exceptions; never expose stack traces."""
        _log.error(
            "unhandled_exception",
            path=str(request.url.path),
            method=request.method,
            error=str(exc),
        )
        return JSONResponse(status_code=500, content={"error": "INTERNAL_ERROR"})

    return app
