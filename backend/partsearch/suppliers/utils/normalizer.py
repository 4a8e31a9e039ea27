"""Data normalization utilities for part numbers, prices and delivery labels."""

import re
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Optional


CENT = Decimal("0.01")

# Separators stripped when comparing part numbers across suppliers
PART_NUMBER_SEPARATORS = re.compile(r"[\s\-./\\,;:_]+")

# Brands whose part numbers are printed without separators
MAJOR_BRANDS = frozenset({"HONDA", "NISSAN", "MITSUBISHI", "SUBARU", "TOYOTA"})

DAY_SINGULAR = "ден"
DAY_PLURAL = "дни"


def normalize_part_number(raw: Optional[str]) -> str:
    """Strip whitespace and punctuation separators and uppercase.

    Args:
        raw: Part number as typed or as returned by a supplier

    Returns:
        Canonical part number, e.g. "90915-YZZE1" -> "90915YZZE1"
    """
    if not raw:
        return ""
    return PART_NUMBER_SEPARATORS.sub("", raw).upper()


def format_part_number(raw: Optional[str], brand: Optional[str]) -> str:
    """Canonicalize the part number only for the designated major brands."""
    raw = raw or ""
    if (brand or "").upper() in MAJOR_BRANDS:
        return normalize_part_number(raw)
    return raw


def round_money(value: Any) -> Decimal:
    """Round to cents using half-up rounding."""
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def to_decimal(value: Any, default: Decimal = Decimal("0")) -> Decimal:
    """Convert JSON numbers and numeric strings to Decimal.

    Floats go through str() so 0.1 stays 0.1. NaN and infinities yield
    `default`.
    """
    if value is None or value == "":
        return default
    if isinstance(value, Decimal):
        number = value
    else:
        try:
            number = Decimal(str(value).strip())
        except (InvalidOperation, ValueError):
            return default
    return number if number.is_finite() else default


def to_int(value: Any, default: int = 0) -> int:
    """Parse leading integer digits the way upstream feeds format counts."""
    if value is None:
        return default
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    match = re.match(r"\s*(-?\d+)", str(value))
    return int(match.group(1)) if match else default


def parse_comma_price(raw: Optional[str]) -> Decimal:
    """Parse a European-formatted price string.

    Handles "12,50 €", "€ 7,00" and "3.20". Unparseable input yields 0.

    Args:
        raw: Price text with comma decimal separator

    Returns:
        Decimal rounded to cents
    """
    if not raw:
        return Decimal("0.00")
    cleaned = re.sub(r"[€\s]", "", raw).replace(",", ".", 1)
    match = re.match(r"-?\d+(?:\.\d+)?", cleaned)
    if not match:
        return Decimal("0.00")
    return round_money(match.group(0))


def delivery_label(low: int, high: Optional[int] = None) -> str:
    """Render a day range as a localized delivery label.

    Examples:
        delivery_label(7) -> "7 дни"
        delivery_label(20, 25) -> "20-25 дни"
    """
    if high is None or high == low:
        return f"{low} {DAY_SINGULAR if low == 1 else DAY_PLURAL}"
    return f"{low}-{high} {DAY_PLURAL}"


def shift_delivery_label(raw: Optional[str], buffer_days: int) -> str:
    """Add a handling buffer to every number in a free-text delivery estimate.

    Empty or placeholder text ("-") means next-day delivery.
    """
    text = (raw or "").strip()
    if not text or text == "-":
        return delivery_label(1)
    shifted = re.sub(r"\d+", lambda m: str(int(m.group(0)) + buffer_days), text)
    if DAY_PLURAL not in shifted and DAY_SINGULAR not in shifted:
        shifted = f"{shifted} {DAY_PLURAL}"
    return shifted
