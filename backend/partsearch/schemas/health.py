"""Health check schemas."""

from typing import Dict

from pydantic import BaseModel


class HealthCheckResponse(BaseModel):
    """Health check response schema."""

    status: str
    uptime: float  # Seconds since startup
    caches: Dict[str, bool] = {}
