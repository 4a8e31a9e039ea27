"""FastAPI dependency injection providers."""

from partsearch.services.search_service import SearchService
from partsearch.services.search_service import get_search_service as _get_search_service


def get_search_service() -> SearchService:
    """Provide the process-wide SearchService.

    Usage:
        @router.get("/search")
        async def search(service: SearchService = Depends(get_search_service)):
            outcome = await service.search(q)
    """
    return _get_search_service()
