"""Health and metrics endpoints."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Request, Response

from ..metrics import render

__all__ = ["router", "get_service_version", "health", "metrics_endpoint"]


router = APIRouter(prefix="/api/v1", tags=["health"])


_METRICS_MEDIA_TYPE = "text/plain; version=0.0.4"


def get_service_version(request: Request) -> str:
    """Return the service version attached to the application state."""

    return getattr(request.app.state, "service_version", "unknown")


@router.get("/healthz")
async def health(request: Request, version: str = Depends(get_service_version)) -> dict[str, Any]:
    """Report liveness plus storage and remote delivery status."""

    controller = getattr(request.app.state, "controller", None)
    exporter = getattr(request.app.state, "exporter", None)
    degraded = bool(controller is not None and controller.storage_degraded)
    payload: dict[str, Any] = {
        "status": "degraded" if degraded else "ok",
        "version": version,
        "storage_degraded": degraded,
    }
    if exporter is not None:
        payload["remote_circuit"] = exporter.resilience.breaker.state
    return payload


@router.get("/metrics")
async def metrics_endpoint(version: str = Depends(get_service_version)) -> Response:
    """Return the Prometheus metrics payload without implicit charsets."""

    response = Response(content=render(version).encode("utf-8"))
    response.headers["Content-Type"] = _METRICS_MEDIA_TYPE
    return response
