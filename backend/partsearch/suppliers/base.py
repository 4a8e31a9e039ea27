"""Base supplier adapter interface.

All supplier-specific adapters inherit from BaseAdapter and implement
_search(). The public search() wraps it so that expected upstream failures
never escape an adapter.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any, List, Optional

import httpx
import structlog

from partsearch.config import settings
from partsearch.core.exceptions import (
    ConfigurationError,
    SupplierError,
    UpstreamAuthError,
    UpstreamProtocolError,
)
from partsearch.suppliers.session import SessionCache


class StockStatus(str, Enum):
    IN_STOCK = "in_stock"
    ON_ORDER = "on_order"
    OUT_OF_STOCK = "out_of_stock"


@dataclass
class NormalizedResult:
    """Common result record produced by the normalizer for every supplier."""

    part_number: str
    description: str
    brand: str
    price_in_base_currency: Decimal  # EUR, before markup
    computed_sell_price: Decimal  # EUR, landed
    stock_status: StockStatus
    stock_quantity: int
    estimated_delivery_label: str
    weight_kg: float
    source_id: str
    supplier_display_name: str
    option: Optional[str] = None  # Offer kind when a supplier returns several
    original_price: Optional[Decimal] = None
    original_currency: Optional[str] = None
    shipping_cost: Optional[Decimal] = None

    def __post_init__(self):
        """Validate data after initialization."""
        if not self.source_id:
            raise ValueError("source_id is required")
        if self.computed_sell_price is None or self.computed_sell_price < 0:
            raise ValueError("computed_sell_price must be a non-negative Decimal")
        if not isinstance(self.stock_status, StockStatus):
            self.stock_status = StockStatus(self.stock_status)

    def to_dict(self) -> dict:
        """Serialize to the JSON shape consumed by the storefront."""
        data = {
            "partNumber": self.part_number,
            "description": self.description,
            "brand": self.brand,
            "priceEUR": float(self.price_in_base_currency),
            "calculatedPrice": float(self.computed_sell_price),
            "stock": self.stock_quantity,
            "stockStatus": self.stock_status.value,
            "deliveryDays": self.estimated_delivery_label,
            "weight": self.weight_kg,
            "source": self.source_id,
            "supplierName": self.supplier_display_name,
        }
        if self.option:
            data["option"] = self.option
        if self.original_price is not None and self.original_currency:
            data[f"originalPrice{self.original_currency}"] = float(self.original_price)
        if self.shipping_cost is not None:
            data["shippingCost"] = float(self.shipping_cost)
        return data


class BaseAdapter(ABC):
    """Abstract base class for all supplier adapters.

    Subclasses implement _search() and may raise SupplierError subclasses or
    httpx errors freely; search() converts those into an empty result list.
    Adapters with a login own a SessionCache in `self.session`.
    """

    source_id: str = ""  # Must be overridden in subclass (e.g., "emex")
    display_name: str = ""  # Shown to customers (e.g., "Emex Dubai")
    protocol: str = ""  # 'rest', 'soap', 'html' or 'rpc'
    verify_tls: bool = True

    def __init__(self, logger: Optional[Any] = None, timeout: Optional[float] = None):
        """Initialize the adapter with dependency injection points.

        Args:
            logger: Bound structlog logger; one bound to source_id is created if omitted
            timeout: Per-request HTTP timeout in seconds
        """
        self.logger = logger or structlog.get_logger(adapter=self.source_id)
        self.session: Optional[SessionCache] = None
        self.transport: Optional[httpx.AsyncBaseTransport] = None  # Injected in tests
        self._timeout = timeout or settings.HTTP_TIMEOUT_SECONDS

    def _client(self, **kwargs) -> httpx.AsyncClient:
        """Create a short-lived HTTP client configured for this upstream."""
        return httpx.AsyncClient(
            timeout=self._timeout,
            verify=self.verify_tls,
            transport=self.transport,
            **kwargs,
        )

    async def search(self, part_number: str) -> List[Any]:
        """Search this supplier for a part number.

        Args:
            part_number: Part number as entered by the user

        Returns:
            Supplier-specific raw items; empty on any expected upstream failure
        """
        try:
            items = await self._search(part_number)
        except ConfigurationError as e:
            self.logger.warning("supplier_not_configured", error=e.message)
            return []
        except UpstreamAuthError as e:
            if self.session is not None:
                self.session.invalidate()
            self.logger.warning("supplier_auth_failed", error=e.message)
            return []
        except SupplierError as e:
            self.logger.error("supplier_protocol_error", error=e.message)
            return []
        except httpx.HTTPError as e:
            self.logger.error(
                "supplier_http_error",
                error=str(e),
                error_type=type(e).__name__,
            )
            return []

        self.logger.info("supplier_search_complete", query=part_number, count=len(items))
        return items

    @abstractmethod
    async def _search(self, part_number: str) -> List[Any]:
        """Fetch raw items from the upstream.

        Raises:
            SupplierError: On configuration, auth or protocol failures
            httpx.HTTPError: On transport failures
        """
        pass

    async def warm_up(self) -> bool:
        """Prepare the adapter before the fan-out (e.g. acquire a token).

        Returns:
            True if the adapter should take part in the search
        """
        return True

    def _json(self, response: httpx.Response) -> Any:
        """Decode a JSON body, reporting garbage as a protocol error."""
        try:
            return response.json()
        except ValueError as e:
            raise UpstreamProtocolError(self.source_id, f"invalid JSON body: {e}") from e

    @property
    def session_valid(self) -> bool:
        return self.session is not None and self.session.is_valid

    def _require(self, **values: str) -> None:
        """Raise ConfigurationError naming every empty setting."""
        missing = [name for name, value in values.items() if not value]
        if missing:
            raise ConfigurationError(
                self.source_id, f"missing configuration: {', '.join(missing)}"
            )

    async def cleanup(self) -> None:
        """Clean up resources. Clients are per-request, so nothing by default."""
        pass
