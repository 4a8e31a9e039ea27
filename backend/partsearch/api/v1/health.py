"""Health check endpoint."""

import time

from fastapi import APIRouter, Depends

from partsearch.dependencies import get_search_service
from partsearch.schemas import HealthCheckResponse
from partsearch.services.search_service import SearchService

router = APIRouter()

_started_at = time.monotonic()


@router.get("/health", response_model=HealthCheckResponse)
async def health_check(service: SearchService = Depends(get_search_service)):
    """Return service health and which caches hold valid data.

    Supplier sessions that are not cached are reported as False; that is
    normal before the first search.
    """
    return HealthCheckResponse(
        status="ok",
        uptime=round(time.monotonic() - _started_at, 1),
        caches=service.get_cache_status(),
    )
