"""Search response schemas.

Field names are camelCase because the storefront consumes them directly.
"""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict


class RatesResponse(BaseModel):
    jpyToEur: float
    usdToEur: float


class PartResult(BaseModel):
    """One offer in the merged result list."""

    # Keeps per-supplier extras such as originalPriceJPY
    model_config = ConfigDict(extra="allow")

    partNumber: str
    description: str
    brand: str
    priceEUR: float
    calculatedPrice: float
    stock: int
    stockStatus: str
    deliveryDays: str
    weight: float
    source: str
    supplierName: str
    option: Optional[str] = None
    shippingCost: Optional[float] = None


class SearchResponse(BaseModel):
    """Merged search outcome."""

    success: bool = True
    query: str
    impexCount: int = 0
    apecCount: int = 0
    emexCount: int = 0
    emexRawCount: int = 0
    stimoCount: int = 0
    thunderCount: int = 0
    rotingerCount: int = 0
    totalCount: int
    elapsed: int  # Milliseconds
    rates: RatesResponse
    results: List[PartResult] = []
