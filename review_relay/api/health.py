"""Dependency-aware health endpoint."""

import time
from datetime import datetime, timezone
from typing import Awaitable, Callable, Dict

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from review_relay.utils.logging import get_logger

logger = get_logger(__name__)

HealthCheck = Callable[[], Awaitable[bool]]


def create_health_router(service_name: str, checks: Dict[str, HealthCheck]) -> APIRouter:
    """
    Build a ``GET /health`` router.

    Args:
        service_name: Reported service name
        checks: Named async checks; any failing check yields 503

    Returns:
        Router exposing the health endpoint
    """
    router = APIRouter(tags=["health"])
    started_at = time.monotonic()

    @router.get("/health")
    async def health_check() -> JSONResponse:
        """Health check endpoint for container orchestration."""
        results: Dict[str, str] = {}
        for name, check in checks.items():
            try:
                results[name] = "ok" if await check() else "error"
            except Exception as e:
                logger.error(f"Health check {name} raised: {e}")
                results[name] = "error"

        healthy = all(result == "ok" for result in results.values())
        body = {
            "status": "ok" if healthy else "degraded",
            "service": service_name,
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "uptime": round(time.monotonic() - started_at, 3),
            "checks": results,
        }
        return JSONResponse(body, status_code=200 if healthy else 503)

    return router
