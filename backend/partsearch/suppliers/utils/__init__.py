"""Supplier utilities for markup scanning, cookies, normalization and retries."""

from .cookies import cookie_header, extract_cookies, merge_cookies
from .markup import escape_xml, soap_envelope, strip_tags, tag_blocks, tag_value
from .normalizer import (
    delivery_label,
    format_part_number,
    normalize_part_number,
    parse_comma_price,
    round_money,
    shift_delivery_label,
    to_decimal,
    to_int,
)
from .retry import relogin_retry


__all__ = [
    # Cookies
    "cookie_header",
    "extract_cookies",
    "merge_cookies",
    # Markup
    "escape_xml",
    "soap_envelope",
    "strip_tags",
    "tag_blocks",
    "tag_value",
    # Normalization
    "delivery_label",
    "format_part_number",
    "normalize_part_number",
    "parse_comma_price",
    "round_money",
    "shift_delivery_label",
    "to_decimal",
    "to_int",
    # Retry decorators
    "relogin_retry",
]
