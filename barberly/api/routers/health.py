"""
Health Check Endpoints

Health, liveness and readiness checks for container orchestration.
"""

from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import APIRouter, Request, Response

from ... import __version__

router = APIRouter(tags=["health"])


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


@router.get("/health")
async def health_check() -> Dict[str, Any]:
    """Returns 200 while the process is serving."""
    return {
        "status": "healthy",
        "timestamp": _now(),
        "version": __version__,
    }


@router.get("/health/live")
async def liveness_check() -> Dict[str, str]:
    return {"status": "alive"}


@router.get("/health/ready")
async def readiness_check(request: Request, response: Response) -> Dict[str, Any]:
    """
    Returns 200 when the database answers; 503 otherwise.

    Worker state is reported but does not affect readiness, since workers
    may run in a separate process.
    """
    checks: Dict[str, str] = {}
    all_healthy = True

    container = getattr(request.app.state, "container", None)
    if container is None:
        checks["database"] = "not initialized"
        all_healthy = False
    else:
        try:
            await container.db.fetchval("SELECT 1")
            checks["database"] = "healthy"
        except Exception as e:
            checks["database"] = f"unhealthy: {str(e)[:100]}"
            all_healthy = False

        for worker in (container.dispatcher, container.reminders):
            checks[worker.name] = "running" if worker.is_running else "not running"

    if not all_healthy:
        response.status_code = 503

    return {
        "status": "ready" if all_healthy else "not_ready",
        "checks": checks,
        "timestamp": _now(),
    }
