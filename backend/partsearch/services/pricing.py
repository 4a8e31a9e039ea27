"""Pricing engine: currency conversion and sell-price formulas.

All amounts are Decimal and rounded to cents with half-up rounding only at
the end of a formula, so intermediate products keep full precision.
"""

from decimal import Decimal
from typing import Any, Optional

from partsearch.suppliers.base import StockStatus
from partsearch.suppliers.rates import RateSnapshot
from partsearch.suppliers.utils.normalizer import round_money, to_decimal

# ---------------------------------------------------------------------------
# Landed cost for parts shipped from Dubai (APEC, Emex)
# ---------------------------------------------------------------------------
DUTY_RATE = Decimal("0.05")
VAT_RATE = Decimal("0.20")
SHIPPING_PER_KG = Decimal("12.00")  # EUR
DEFAULT_WEIGHT_KG = Decimal("0.5")  # When the supplier reports no weight

# ---------------------------------------------------------------------------
# Flat markups
# ---------------------------------------------------------------------------
IMPEX_MARKUP = Decimal("1.47")  # Covers shipping from Japan
ROTINGER_SURCHARGE = Decimal("10")  # EUR per part


def convert(amount: Any, currency: str, rates: RateSnapshot) -> Decimal:
    """Convert an amount in `currency` to EUR without rounding.

    Raises:
        ValueError: For a currency the snapshot has no rate for
    """
    return to_decimal(amount) * rates.rate_for(currency)


def effective_weight(weight_kg: Any) -> Decimal:
    """Reported weight, or DEFAULT_WEIGHT_KG when missing or zero."""
    weight = to_decimal(weight_kg)
    return weight if weight > 0 else DEFAULT_WEIGHT_KG


def shipping_cost(weight_kg: Any) -> Decimal:
    return round_money(effective_weight(weight_kg) * SHIPPING_PER_KG)


def landed_price(price_eur: Decimal, weight_kg: Any) -> Decimal:
    """Duty, per-kg shipping and VAT on top of a EUR supplier price.

    (price * (1 + duty) + weight * shipping_per_kg) * (1 + vat)

    Example:
        100 USD at 0.92 -> 92.00 EUR, default weight
        (92 * 1.05 + 0.5 * 12) * 1.20 = 123.12
    """
    freight = effective_weight(weight_kg) * SHIPPING_PER_KG
    return round_money((price_eur * (1 + DUTY_RATE) + freight) * (1 + VAT_RATE))


def impex_sell_price(price_eur: Decimal) -> Decimal:
    return round_money(price_eur * IMPEX_MARKUP)


def rotinger_sell_price(base_price_eur: Decimal) -> Decimal:
    return round_money(base_price_eur + ROTINGER_SURCHARGE)


def stock_status(quantity: Optional[int], discontinued: bool = False) -> StockStatus:
    """Map a quantity to a stock status.

    Args:
        quantity: Units the supplier reports available
        discontinued: Supplier no longer sells the part

    Returns:
        OUT_OF_STOCK when discontinued, IN_STOCK for a positive quantity,
        otherwise ON_ORDER
    """
    if discontinued:
        return StockStatus.OUT_OF_STOCK
    if quantity and quantity > 0:
        return StockStatus.IN_STOCK
    return StockStatus.ON_ORDER
