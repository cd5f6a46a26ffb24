"""Health check endpoint."""

import time
from typing import Any, Dict

from fastapi import APIRouter, Depends

from placecache.api.deps import get_container
from placecache.core.container import ServiceContainer

router = APIRouter(tags=["health"])

# Track startup time
startup_time = time.time()


@router.get("/health")
async def health_check(container: ServiceContainer = Depends(get_container)) -> Dict[str, Any]:
    """Report service status and cache tier availability."""
    settings = container.settings
    durable_enabled = container.durable_store.enabled
    healthy = durable_enabled and not container.durable_fallback

    if not durable_enabled:
        durable_status = "unavailable"
    elif container.durable_fallback:
        durable_status = "memory_fallback"
    else:
        durable_status = "healthy"

    return {
        "status": "healthy" if healthy else "degraded",
        "version": settings.app_version,
        "uptime_seconds": time.time() - startup_time,
        "components": {
            "fast_cache": {"status": "healthy"},
            "durable_cache": {"status": durable_status},
            "places_provider": {
                "status": "configured" if settings.google_places_api_key else "unconfigured"
            },
        },
    }
