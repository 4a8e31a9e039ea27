"""Part search endpoint."""

import structlog
from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse

from partsearch.core.exceptions import QueryValidationError
from partsearch.dependencies import get_search_service
from partsearch.schemas import ErrorResponse, SearchResponse
from partsearch.services.search_service import SearchService

router = APIRouter()
logger = structlog.get_logger(__name__)


@router.get(
    "",
    response_model=SearchResponse,
    response_model_exclude_none=True,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def search(
    q: str = Query("", description="Part number to search for"),
    service: SearchService = Depends(get_search_service),
):
    """Search every supplier for a part number.

    Results from all suppliers are merged and sorted by sell price, cheapest
    first. Suppliers that fail contribute zero results.
    """
    try:
        outcome = await service.search(q)
    except QueryValidationError as e:
        return JSONResponse(
            status_code=400,
            content=ErrorResponse(error="Invalid query", message=e.message).model_dump(),
        )
    except Exception as e:
        logger.error("search_failed", query=q, error=str(e), exc_info=True)
        return JSONResponse(
            status_code=500,
            content=ErrorResponse(error="Search failed", message=str(e)).model_dump(),
        )

    return SearchResponse(**outcome.to_dict())
