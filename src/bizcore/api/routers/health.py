"""Unauthenticated operational endpoints.

- GET /health: process liveness
- GET /health/db: database round trip, 503 when it fails
- GET /metrics: Prometheus exposition
"""

import time
from datetime import UTC, datetime
from typing import Annotated

from fastapi import APIRouter, Depends, Response, status
from prometheus_client import CONTENT_TYPE_LATEST
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from bizcore import __version__
from bizcore.api.dependencies import get_app_settings
from bizcore.api.schemas.health import (
    ComponentHealth,
    HealthDetailResponse,
    HealthResponse,
    HealthStatus,
)
from bizcore.config.settings import Settings
from bizcore.core.logging import get_logger
from bizcore.db.dependencies import DbSession
from bizcore.observability.metrics import get_metrics

logger = get_logger(__name__)

router = APIRouter(tags=["health"])

SettingsDep = Annotated[Settings, Depends(get_app_settings)]


@router.get("/health", response_model=HealthResponse, summary="Liveness check")
async def health_check(settings: SettingsDep) -> HealthResponse:
    """Always 200 while the process serves requests; dependencies are not checked."""
    return HealthResponse(
        status=HealthStatus.HEALTHY,
        version=__version__,
        environment=settings.ENVIRONMENT,
        timestamp=datetime.now(UTC),
    )


@router.get(
    "/health/db",
    response_model=HealthDetailResponse,
    summary="Database health check",
    responses={503: {"model": HealthDetailResponse, "description": "Database unreachable"}},
)
async def health_db(db: DbSession, settings: SettingsDep, response: Response) -> HealthDetailResponse:
    database = await _ping_database(db)
    if database.status is HealthStatus.UNHEALTHY:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    return HealthDetailResponse(
        status=database.status,
        version=__version__,
        environment=settings.ENVIRONMENT,
        timestamp=datetime.now(UTC),
        database=database,
    )


@router.get("/metrics", include_in_schema=False)
async def metrics() -> Response:
    return Response(content=get_metrics(), media_type=CONTENT_TYPE_LATEST)


async def _ping_database(db: AsyncSession) -> ComponentHealth:
    started = time.perf_counter()
    try:
        await db.execute(text("SELECT 1"))
    except Exception as e:
        logger.warning("database_health_check_failed", error=str(e))
        return ComponentHealth(
            status=HealthStatus.UNHEALTHY,
            message=f"{type(e).__name__}: {str(e)[:100]}",
            latency_ms=_elapsed_ms(started),
        )
    return ComponentHealth(status=HealthStatus.HEALTHY, latency_ms=_elapsed_ms(started))


def _elapsed_ms(started: float) -> float:
    return round((time.perf_counter() - started) * 1000, 2)
