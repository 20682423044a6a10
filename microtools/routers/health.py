# microtools/routers/health.py
# Health check endpoints for monitoring and load balancers
# Provides liveness and readiness probes

import time
import asyncio
import logging
from pathlib import Path
from typing import Dict, Any
from fastapi import APIRouter, Depends, Response, status
from pydantic import BaseModel

from microtools.bootstrap import Components
from microtools.middleware.error_handler import DatabaseError
from microtools.routers.deps import get_components
from microtools.storage.blob_store import LocalBlobStore

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])


class HealthStatus(BaseModel):
    """Health check response model."""
    status: str  # "healthy", "degraded", "unhealthy"
    timestamp: float
    version: str = "1.0.0"
    checks: Dict[str, Dict[str, Any]] = {}


class ComponentHealth(BaseModel):
    """Individual component health."""
    status: str
    latency_ms: float = 0.0
    message: str = ""


async def check_database_health(components: Components) -> ComponentHealth:
    """Round-trip a trivial query through the object store."""
    start = time.time()
    try:
        await asyncio.wait_for(components.store.ping(), timeout=5.0)
    except asyncio.TimeoutError:
        return ComponentHealth(
            status="unhealthy",
            latency_ms=(time.time() - start) * 1000,
            message="Database connection timeout"
        )
    except DatabaseError as e:
        logger.error(f"Database health check failed: {type(e).__name__}")
        return ComponentHealth(
            status="unhealthy",
            latency_ms=(time.time() - start) * 1000,
            message=f"Database error: {type(e).__name__}"
        )
    return ComponentHealth(status="healthy", latency_ms=(time.time() - start) * 1000)


def check_blob_storage_health(components: Components) -> ComponentHealth:
    """The blob root must exist and be writable; anything else only degrades file shares."""
    blobs = components.blobs
    if not isinstance(blobs, LocalBlobStore):
        return ComponentHealth(status="healthy", message=type(blobs).__name__)
    root = Path(blobs.root)
    if not root.is_dir():
        return ComponentHealth(status="degraded", message="Blob directory missing")
    probe = root / ".health"
    try:
        probe.write_bytes(b"")
        probe.unlink()
    except OSError as e:
        return ComponentHealth(status="degraded", message=f"Blob directory not writable: {type(e).__name__}")
    return ComponentHealth(status="healthy")


@router.get("/health", response_model=HealthStatus)
async def health_check(response: Response, components: Components = Depends(get_components)):
    """
    Full health check endpoint.
    Returns status of all components.
    """
    timestamp = time.time()
    checks = {}
    overall_status = "healthy"

    for name, result in (
        ("database", await check_database_health(components)),
        ("blob_storage", check_blob_storage_health(components)),
    ):
        checks[name] = {
            "status": result.status,
            "latency_ms": round(result.latency_ms, 2),
            "message": result.message
        }

    sweeper = components.sweeper
    checks["sweeper"] = {
        "status": "healthy",
        "running": sweeper.running,
        "last_report": sweeper.last_report.as_dict() if sweeper.last_report else None,
    }

    statuses = [c["status"] for c in checks.values()]
    if "unhealthy" in statuses:
        overall_status = "unhealthy"
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    elif "degraded" in statuses:
        overall_status = "degraded"
        response.status_code = status.HTTP_200_OK
    else:
        response.status_code = status.HTTP_200_OK

    return HealthStatus(
        status=overall_status,
        timestamp=timestamp,
        checks=checks
    )


@router.get("/health/live")
async def liveness_probe():
    """
    Kubernetes liveness probe.
    Does NOT check external dependencies.
    """
    return {"status": "alive"}


@router.get("/health/ready")
async def readiness_probe(response: Response, components: Components = Depends(get_components)):
    """
    Kubernetes readiness probe.
    Returns 200 only if the database answers.
    """
    db_health = await check_database_health(components)

    if db_health.status == "unhealthy":
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        return {
            "status": "not_ready",
            "reason": db_health.message
        }

    return {"status": "ready"}
