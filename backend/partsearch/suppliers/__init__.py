"""Supplier integrations for part search.

This package provides:
- Base adapter class and the common NormalizedResult record
- Per-supplier session caching and the currency rate provider
- Factory for creating and managing adapter instances
"""

from .base import BaseAdapter, NormalizedResult, StockStatus
from .factory import AdapterFactory, adapter_factory, get_adapter_factory
from .rates import CurrencyRateProvider, RateSnapshot
from .session import SessionCache, SessionState

__all__ = [
    # Base classes
    "BaseAdapter",
    # Data structures
    "NormalizedResult",
    "StockStatus",
    "RateSnapshot",
    "SessionState",
    # Shared state
    "SessionCache",
    "CurrencyRateProvider",
    # Factory
    "AdapterFactory",
    "adapter_factory",
    "get_adapter_factory",
]
