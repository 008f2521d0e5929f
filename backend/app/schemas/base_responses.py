"""Shared response models for infrastructure endpoints."""

from datetime import datetime, timezone
from typing import Dict

from pydantic import BaseModel, ConfigDict, Field


class HealthCheckResponse(BaseModel):
    """Standard health check response."""

    status: str = Field(description="Service health status", pattern="^(healthy|degraded|unhealthy)$")
    service: str = Field(default="Parkspace API", description="Service name")
    version: str = Field(description="API version")
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc), description="Check timestamp"
    )
    checks: Dict[str, bool] = Field(description="Individual component health checks")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "status": "healthy",
                "service": "Parkspace API",
                "version": "1.0.0",
                "timestamp": "2024-06-08T12:00:00Z",
                "checks": {"database": True},
            }
        }
    )


class LiveHealthResponse(BaseModel):
    ok: bool
