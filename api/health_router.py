"""
Health and Monitoring Router.

Public, unauthenticated endpoints for liveness probes and component checks.

Endpoints Provided:
- `/healthcheck`: Lightweight check that the process is serving requests.
- `/monitoring/ping`: Connectivity test.
- `/monitoring/detailed`: Status of the table gateway (and the local database
  when one is in use) plus whether the AI provider is configured.

Architectural Design:
- Graceful Degradation: a failing component marks the service `degraded`
  rather than failing the probe itself.
- The AI endpoint is not called here; `/api/chat/health` does that on demand
  for an authenticated caller.
"""

from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import APIRouter, Depends

from core.database import get_database_info
from core.logging_config import get_logger
from .dependencies import ServiceContainer, get_container

logger = get_logger(__name__)

VERSION = "1.0.0"
SERVICE_NAME = "NEXIA API"

health_router = APIRouter(tags=["Health & Monitoring"])

monitoring_router = APIRouter(prefix="/monitoring", tags=["Health & Monitoring"])


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


@health_router.get("/healthcheck")
async def health_check() -> Dict[str, Any]:
    """
    Basic health check endpoint (no authentication required)

    Returns:
        Dict with status, timestamp, and version info
    """
    logger.debug("Health check requested")

    return {
        "status": "healthy",
        "timestamp": _now(),
        "version": VERSION,
        "service": SERVICE_NAME,
    }


@monitoring_router.get("/ping")
async def ping() -> Dict[str, str]:
    """Simple ping endpoint for connectivity testing"""
    logger.debug("Ping requested")
    return {"message": "pong", "timestamp": _now(), "version": VERSION}


@monitoring_router.get("/detailed")
async def detailed_health_check(
    container: ServiceContainer = Depends(get_container),
) -> Dict[str, Any]:
    """Detailed health check with component status"""
    logger.info("Detailed health check requested")
    settings = container.settings

    health_status: Dict[str, Any] = {
        "status": "healthy",
        "timestamp": _now(),
        "version": VERSION,
        "service": SERVICE_NAME,
        "backend": settings.backend,
        "components": {},
    }

    backend_ok = await container.gateway.ping()
    health_status["components"]["backend"] = {
        "status": "healthy" if backend_ok else "unhealthy"
    }
    if not backend_ok:
        health_status["status"] = "degraded"

    if container.engine is not None:
        db_info = await get_database_info(container.engine, settings.database_url)
        health_status["components"]["database"] = {
            "status": "healthy" if db_info["connection_healthy"] else "unhealthy",
            "info": db_info,
        }
        if not db_info["connection_healthy"]:
            health_status["status"] = "degraded"

    if container.ai_provider is not None:
        health_status["components"]["ai"] = {
            "status": "configured",
            "model": container.ai_provider.model_name,
        }
    else:
        health_status["components"]["ai"] = {"status": "unavailable"}

    return health_status
