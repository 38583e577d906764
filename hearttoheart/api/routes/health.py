"""Health check endpoints for monitoring and deployment verification."""

from fastapi import APIRouter

from hearttoheart.api.deps import Store
from hearttoheart.api.middleware.latency_logging import get_latency_stats
from hearttoheart.core.config import get_settings
from hearttoheart.core.openai import get_openai_metrics
from hearttoheart.schemas.common import HealthResponse, HealthStatus

router = APIRouter(tags=["health"])


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Liveness check",
    description="Basic health check to verify the service is running. Used for liveness probes.",
)
async def health_check(store: Store) -> HealthResponse:
    """Return basic health status.

    Does not call the generation backend; generation_enabled only reports
    whether a key is configured.

    Returns:
        HealthResponse: Current health status with timestamp.
    """
    return HealthResponse(
        status=HealthStatus.HEALTHY,
        generation_enabled=get_settings().generation_enabled,
        active_flows=store.count(),
    )


@router.get(
    "/health/metrics",
    summary="Latency and generation metrics",
    description="Request latency and OpenAI call statistics collected in memory.",
)
async def metrics() -> dict:
    """Return in-memory request and generation statistics."""
    latency_stats = get_latency_stats()
    return {
        "requests": latency_stats.get_stats(),
        "requests_by_path": latency_stats.get_stats_by_path(),
        "generation": get_openai_metrics().get_stats(),
    }
