"""Health check response schemas."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field


class HealthStatus(str, Enum):
    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"


class HealthResponse(BaseModel):
    """Liveness of the API process."""

    status: HealthStatus
    version: str = Field(..., description="bizcore package version")
    environment: str = Field(..., description="Deployment environment from settings")
    timestamp: datetime


class ComponentHealth(BaseModel):
    status: HealthStatus
    message: str | None = None
    latency_ms: float | None = None


class HealthDetailResponse(HealthResponse):
    """Liveness plus a round trip to the relational store."""

    database: ComponentHealth
