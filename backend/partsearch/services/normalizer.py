"""Per-supplier transforms from raw adapter items to NormalizedResult.

Every normalizer has the same signature, (items, rates, query), so the
search service can look them up by source id in NORMALIZERS.
"""

import re
from typing import Any, Callable, Dict, Iterable, List, Optional

import structlog

from partsearch.config import settings
from partsearch.services.pricing import (
    convert,
    effective_weight,
    impex_sell_price,
    landed_price,
    rotinger_sell_price,
    shipping_cost,
    stock_status,
)
from partsearch.suppliers.adapters.emex import EmexItem
from partsearch.suppliers.adapters.rotinger import RotingerItem
from partsearch.suppliers.adapters.stimo import StimoRow
from partsearch.suppliers.adapters.thunder import ThunderOffer
from partsearch.suppliers.base import NormalizedResult, StockStatus
from partsearch.suppliers.rates import RateSnapshot
from partsearch.suppliers.utils.normalizer import (
    delivery_label,
    format_part_number,
    normalize_part_number,
    round_money,
    shift_delivery_label,
    to_decimal,
    to_int,
)

logger = structlog.get_logger(__name__)

DEFAULT_DESCRIPTION = "Auto part"

IMPEX_DELIVERY = delivery_label(20, 25)
APEC_DEFAULT_DAYS = 30
APEC_HANDLING_DAYS = 10
EMEX_DELIVERY_MIN_BUFFER = 15
EMEX_DELIVERY_MAX_BUFFER = 22
STIMO_HANDLING_DAYS = 2
THUNDER_DEFAULT_DELIVERY = delivery_label(15, 20)
ROTINGER_TIERED_DELIVERY = delivery_label(10, 12)
ROTINGER_STANDARD_DELIVERY = delivery_label(7, 8)


def normalize_impex(
    items: Iterable[Dict[str, Any]], rates: RateSnapshot, query: str
) -> List[NormalizedResult]:
    """Impex Japan: yen price, flat 1.47 markup."""
    results = []
    for part in items:
        price_jpy = to_decimal(part.get("price_yen"))
        price_eur = convert(price_jpy, "JPY", rates)
        brand = part.get("mark") or ""
        discontinued = bool(part.get("is_discontinued"))
        results.append(
            NormalizedResult(
                part_number=format_part_number(part.get("part") or part.get("part_no_raw"), brand),
                description=part.get("name_eng") or part.get("name") or "",
                brand=brand,
                price_in_base_currency=round_money(price_eur),
                computed_sell_price=impex_sell_price(price_eur),
                stock_status=stock_status(1, discontinued=discontinued),
                stock_quantity=0 if discontinued else 1,
                estimated_delivery_label=IMPEX_DELIVERY,
                weight_kg=float(to_decimal(part.get("weight"))),
                source_id="impex",
                supplier_display_name="Impex Japan",
                original_price=price_jpy,
                original_currency="JPY",
            )
        )
    return results


def normalize_apec(
    items: Iterable[Dict[str, Any]], rates: RateSnapshot, query: str
) -> List[NormalizedResult]:
    """APEC Dubai: USD price, landed cost formula."""
    results = []
    for item in items:
        price_usd = to_decimal(item.get("Price"))
        price_eur = convert(price_usd, "USD", rates)
        weight = effective_weight(item.get("WeightPhysical"))
        quantity = to_int(item.get("QtyInStock")) or to_int(item.get("Qty"))
        days = to_int(item.get("DeliveryDays")) or APEC_DEFAULT_DAYS
        results.append(
            NormalizedResult(
                part_number=item.get("PartNumber") or "",
                description=item.get("PartDescription") or DEFAULT_DESCRIPTION,
                brand=item.get("Brand") or "",
                price_in_base_currency=round_money(price_eur),
                computed_sell_price=landed_price(price_eur, weight),
                stock_status=stock_status(quantity),
                stock_quantity=quantity,
                estimated_delivery_label=delivery_label(days + APEC_HANDLING_DAYS),
                weight_kg=float(weight),
                source_id="apec",
                supplier_display_name="APEC Dubai",
                original_price=price_usd,
                original_currency="USD",
                shipping_cost=shipping_cost(weight),
            )
        )
    return results


def is_aftermarket(brand: str, denylist: List[str]) -> bool:
    brand = brand.upper()
    return any(entry in brand for entry in denylist)


def filter_emex(
    items: Iterable[EmexItem], query: str, denylist: Optional[List[str]] = None
) -> List[EmexItem]:
    """Keep exact part-number matches from original manufacturers.

    Emex returns substitutes and aftermarket brands that reuse the OEM
    number; those are dropped. Of the remaining offers only the cheapest per
    make is kept, in first-seen make order.

    Args:
        items: Raw Emex offers
        query: Part number the user searched for
        denylist: Upper-cased aftermarket brand names; defaults to settings

    Returns:
        At most one offer per make
    """
    if denylist is None:
        denylist = settings.get_aftermarket_brands()
    wanted = normalize_part_number(query)

    best: Dict[str, EmexItem] = {}
    for item in items:
        if normalize_part_number(item.number) != wanted:
            continue
        if is_aftermarket(item.make or item.make_name, denylist):
            continue
        key = item.make or "unknown"
        current = best.get(key)
        if current is None or item.price < current.price:
            best[key] = item
    return list(best.values())


def normalize_emex(
    items: Iterable[EmexItem], rates: RateSnapshot, query: str
) -> List[NormalizedResult]:
    """Emex Dubai: exact-match filter, per-make dedupe, landed cost formula."""
    items = list(items)
    kept = filter_emex(items, query)
    logger.debug("emex_filtered", raw_count=len(items), kept_count=len(kept))

    results = []
    for item in kept:
        price_eur = convert(item.price, "USD", rates)
        weight = effective_weight(item.weight_kg)
        results.append(
            NormalizedResult(
                part_number=item.number,
                description=item.name or DEFAULT_DESCRIPTION,
                brand=item.make_name or item.make,
                price_in_base_currency=round_money(price_eur),
                computed_sell_price=landed_price(price_eur, weight),
                stock_status=stock_status(item.qty),
                stock_quantity=item.qty,
                estimated_delivery_label=delivery_label(
                    item.days + EMEX_DELIVERY_MIN_BUFFER, item.days + EMEX_DELIVERY_MAX_BUFFER
                ),
                weight_kg=float(weight),
                source_id="emex",
                supplier_display_name="Emex Dubai",
                original_price=item.price,
                original_currency="USD",
            )
        )
    return results


def normalize_stimo(
    items: Iterable[StimoRow], rates: RateSnapshot, query: str
) -> List[NormalizedResult]:
    """Stimo: in-stock rows only, dealer price as is, two handling days."""
    return [
        NormalizedResult(
            part_number=row.part_number,
            description=row.description,
            brand=row.brand,
            price_in_base_currency=row.your_price,
            computed_sell_price=row.your_price,
            stock_status=StockStatus.IN_STOCK,
            stock_quantity=1,
            estimated_delivery_label=shift_delivery_label(row.delivery_days, STIMO_HANDLING_DAYS),
            weight_kg=0.0,
            source_id="stimo",
            supplier_display_name="Стимо",
        )
        for row in items
        if row.in_stock
    ]


def normalize_thunder(
    items: Iterable[ThunderOffer], rates: RateSnapshot, query: str
) -> List[NormalizedResult]:
    """Thunder: EUR client price as is, one row per selected option."""
    return [
        NormalizedResult(
            part_number=offer.product.oem or query.upper(),
            description=offer.product.name or "",
            brand=offer.product.brand or "",
            price_in_base_currency=offer.price,
            computed_sell_price=offer.price,
            stock_status=StockStatus.IN_STOCK,
            stock_quantity=1,
            estimated_delivery_label=(
                delivery_label(offer.days) if offer.days else THUNDER_DEFAULT_DELIVERY
            ),
            weight_kg=offer.product.weight,
            source_id="thunder",
            supplier_display_name="Тандер",
            option=offer.option,
        )
        for offer in items
    ]


def rotinger_delivery(part_number: str) -> str:
    """Tiered references (ending in T<digits>) ship slower."""
    if re.search(r"T\d+$", part_number, re.IGNORECASE):
        return ROTINGER_TIERED_DELIVERY
    return ROTINGER_STANDARD_DELIVERY


def normalize_rotinger(
    items: Iterable[RotingerItem], rates: RateSnapshot, query: str
) -> List[NormalizedResult]:
    """Rotinger: EUR price plus a flat surcharge per part."""
    pn = re.sub(r"\s+", "", query)
    results = []
    for item in items:
        base_price = round_money(item.price)
        results.append(
            NormalizedResult(
                part_number=item.rotinger_id,
                description=item.description or item.name or "Rotinger brake part",
                brand="ROTINGER",
                price_in_base_currency=base_price,
                computed_sell_price=rotinger_sell_price(base_price),
                stock_status=StockStatus.IN_STOCK if item.in_stock else StockStatus.ON_ORDER,
                stock_quantity=1 if item.in_stock else 0,
                estimated_delivery_label=rotinger_delivery(pn),
                weight_kg=0.0,
                source_id="rotinger",
                supplier_display_name="Rotinger",
                original_price=base_price,
                original_currency=item.currency.upper(),
            )
        )
    return results


Normalizer = Callable[[Iterable[Any], RateSnapshot, str], List[NormalizedResult]]

NORMALIZERS: Dict[str, Normalizer] = {
    "impex": normalize_impex,
    "apec": normalize_apec,
    "emex": normalize_emex,
    "stimo": normalize_stimo,
    "thunder": normalize_thunder,
    "rotinger": normalize_rotinger,
}
