"""Services module for business logic.

This module contains the pricing engine, the per-supplier normalizers and the
search service that fans a query out to every supplier and merges the
answers.
"""

from partsearch.services.normalizer import NORMALIZERS
from partsearch.services.search_service import SearchOutcome, SearchService, get_search_service

__all__ = [
    "NORMALIZERS",
    "SearchOutcome",
    "SearchService",
    "get_search_service",
]
