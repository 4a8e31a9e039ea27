"""Search service fanning one part-number query out to every supplier.

Suppliers are queried concurrently and independently: a supplier that fails,
times out or is not configured contributes zero results and never fails the
search as a whole. Results are normalized, merged, sorted by sell price and
truncated.
"""

import asyncio
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import structlog

from partsearch.config import settings
from partsearch.core.exceptions import QueryValidationError
from partsearch.services.normalizer import NORMALIZERS
from partsearch.suppliers.base import BaseAdapter, NormalizedResult
from partsearch.suppliers.factory import get_adapter_factory
from partsearch.suppliers.rates import CurrencyRateProvider, RateSnapshot
from partsearch.suppliers.register_adapters import register_all_adapters

logger = structlog.get_logger(__name__)


@dataclass
class SearchOutcome:
    """Merged result of one search across all suppliers."""

    query: str
    per_supplier_counts: Dict[str, int]
    raw_counts: Dict[str, int]
    total_count: int
    elapsed_ms: int
    rates: RateSnapshot
    results: List[NormalizedResult] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the storefront's JSON shape.

        Per-supplier counts are flattened into `<source>Count` keys.
        """
        data: Dict[str, Any] = {"success": True, "query": self.query}
        for source_id, count in self.per_supplier_counts.items():
            data[f"{source_id}Count"] = count
        data["emexRawCount"] = self.raw_counts.get("emex", 0)
        data.update(
            totalCount=self.total_count,
            elapsed=self.elapsed_ms,
            rates=self.rates.to_dict(),
            results=[r.to_dict() for r in self.results],
        )
        return data


class SearchService:
    """Aggregates supplier adapters behind a single search() call.

    Holds the process-wide state: adapter instances (and so their sessions)
    and the currency rate provider.
    """

    def __init__(
        self,
        adapters: Optional[List[BaseAdapter]] = None,
        rate_provider: Optional[CurrencyRateProvider] = None,
        adapter_timeout: Optional[float] = None,
        result_limit: Optional[int] = None,
    ):
        """Initialize search service.

        Args:
            adapters: Supplier adapters; every registered adapter if omitted
            rate_provider: Exchange rate source
            adapter_timeout: Upper bound in seconds for one supplier's search
            result_limit: Maximum number of merged results returned
        """
        if adapters is None:
            register_all_adapters()
            adapters = get_adapter_factory().create_all()
        self.adapters = adapters
        self.rate_provider = rate_provider or CurrencyRateProvider()
        self.adapter_timeout = adapter_timeout or settings.ADAPTER_TIMEOUT_SECONDS
        self.result_limit = result_limit or settings.RESULT_LIMIT
        self.logger = logger.bind(service="search_service")

    def validate_query(self, query: Optional[str]) -> str:
        """Trim the query and enforce the minimum length.

        Raises:
            QueryValidationError: If the trimmed query is too short
        """
        q = (query or "").strip()
        if len(q) < settings.MIN_QUERY_LENGTH:
            raise QueryValidationError(q, settings.MIN_QUERY_LENGTH)
        return q

    async def search(self, query: Optional[str]) -> SearchOutcome:
        """Search every supplier for a part number.

        Args:
            query: Part number as typed by the user

        Returns:
            SearchOutcome with at most result_limit results, cheapest first

        Raises:
            QueryValidationError: Before any upstream is contacted
        """
        q = self.validate_query(query)
        started = time.monotonic()

        rates, ready = await self._prepare()
        raw = await self._fan_out(ready, q)

        per_supplier_counts: Dict[str, int] = {a.source_id: 0 for a in self.adapters}
        raw_counts: Dict[str, int] = {a.source_id: 0 for a in self.adapters}
        merged: List[NormalizedResult] = []
        for source_id, items in raw.items():
            normalized = self._normalize(source_id, items, rates, q)
            raw_counts[source_id] = len(items)
            per_supplier_counts[source_id] = len(normalized)
            merged.extend(normalized)

        # sorted() is stable: equal prices keep supplier order
        merged = sorted(merged, key=lambda r: r.computed_sell_price)
        elapsed_ms = int((time.monotonic() - started) * 1000)

        self.logger.info(
            "search_complete",
            query=q,
            counts=per_supplier_counts,
            emex_raw_count=raw_counts.get("emex", 0),
            total=len(merged),
            elapsed_ms=elapsed_ms,
        )
        return SearchOutcome(
            query=q,
            per_supplier_counts=per_supplier_counts,
            raw_counts=raw_counts,
            total_count=len(merged),
            elapsed_ms=elapsed_ms,
            rates=rates,
            results=merged[: self.result_limit],
        )

    async def _prepare(self):
        """Fetch rates and warm up every adapter concurrently.

        Both are bounded by adapter_timeout. A warm-up that runs out of time
        skips its supplier; rates that run out of time fall back to the last
        known snapshot.

        Returns:
            Tuple of (RateSnapshot, adapters whose warm-up succeeded)
        """
        rates, warm = await asyncio.gather(
            self._get_rates(),
            asyncio.gather(
                *(asyncio.wait_for(a.warm_up(), timeout=self.adapter_timeout) for a in self.adapters),
                return_exceptions=True,
            ),
        )

        ready = []
        for adapter, result in zip(self.adapters, warm):
            if result is True:
                ready.append(adapter)
                continue
            if isinstance(result, asyncio.TimeoutError):
                reason = "warm_up_timeout"
            elif isinstance(result, BaseException):
                reason = str(result)
            else:
                reason = "warm_up_failed"
            self.logger.warning("supplier_skipped", source_id=adapter.source_id, reason=reason)
        return rates, ready

    async def _get_rates(self) -> RateSnapshot:
        try:
            return await asyncio.wait_for(
                self.rate_provider.get_rates(), timeout=self.adapter_timeout
            )
        except asyncio.TimeoutError:
            self.logger.warning("exchange_rates_timeout", timeout=self.adapter_timeout)
            return self.rate_provider.last_known()

    async def _fan_out(self, adapters: List[BaseAdapter], query: str) -> Dict[str, List[Any]]:
        """Run every adapter's search concurrently and wait for all of them."""
        outcomes = await asyncio.gather(
            *(asyncio.wait_for(a.search(query), timeout=self.adapter_timeout) for a in adapters),
            return_exceptions=True,
        )

        raw: Dict[str, List[Any]] = {}
        for adapter, outcome in zip(adapters, outcomes):
            if isinstance(outcome, asyncio.TimeoutError):
                self.logger.warning(
                    "supplier_timeout", source_id=adapter.source_id, timeout=self.adapter_timeout
                )
                raw[adapter.source_id] = []
            elif isinstance(outcome, BaseException):
                self.logger.error(
                    "supplier_failed",
                    source_id=adapter.source_id,
                    error=str(outcome),
                    error_type=type(outcome).__name__,
                )
                raw[adapter.source_id] = []
            else:
                raw[adapter.source_id] = list(outcome or [])
        return raw

    def _normalize(
        self, source_id: str, items: List[Any], rates: RateSnapshot, query: str
    ) -> List[NormalizedResult]:
        normalizer = NORMALIZERS.get(source_id)
        if normalizer is None:
            self.logger.warning("normalizer_not_found", source_id=source_id)
            return []
        try:
            return normalizer(items, rates, query)
        # ArithmeticError covers decimal overflow on absurd upstream amounts
        except (ArithmeticError, ValueError, TypeError, AttributeError) as e:
            self.logger.error("normalization_failed", source_id=source_id, error=str(e))
            return []

    def get_cache_status(self) -> Dict[str, bool]:
        """Report which process-wide caches currently hold valid data.

        Returns:
            Flags for the rates cache and every session-based supplier
        """
        status = {"rates": self.rate_provider.has_live_rates}
        for adapter in self.adapters:
            if adapter.session is not None:
                status[adapter.source_id] = adapter.session_valid
        return status

    async def close(self) -> None:
        for adapter in self.adapters:
            await adapter.cleanup()


_search_service: Optional[SearchService] = None


def get_search_service() -> SearchService:
    """Get the process-wide SearchService, creating it on first use."""
    global _search_service
    if _search_service is None:
        _search_service = SearchService()
    return _search_service
