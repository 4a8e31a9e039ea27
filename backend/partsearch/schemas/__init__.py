"""Pydantic schemas for the part search API.

All request/response models are defined here for easy import.
"""

from partsearch.schemas.common import ErrorResponse
from partsearch.schemas.health import HealthCheckResponse
from partsearch.schemas.search import PartResult, RatesResponse, SearchResponse

__all__ = [
    # Common
    "ErrorResponse",
    # Search
    "PartResult",
    "RatesResponse",
    "SearchResponse",
    # Health
    "HealthCheckResponse",
]
