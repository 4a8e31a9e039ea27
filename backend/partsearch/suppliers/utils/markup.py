"""Pattern-based extraction helpers for SOAP/XML and HTML payloads.

Upstream documents are scanned with regular expressions instead of being
parsed: the SOAP services return loosely namespaced XML and the dealer
portals return markup that is not well formed.
"""

import re
from typing import List, Optional


SOAP_ENVELOPE = (
    '<?xml version="1.0" encoding="utf-8"?>'
    '<soap:Envelope xmlns:xsi="http://www.w3.org/2001/XMLSchema-instance" '
    'xmlns:xsd="http://www.w3.org/2001/XMLSchema" '
    'xmlns:soap="http://schemas.xmlsoap.org/soap/envelope/">'
    "<soap:Body>{body}</soap:Body></soap:Envelope>"
)

_XML_ESCAPES = (
    ("&", "&amp;"),
    ("<", "&lt;"),
    (">", "&gt;"),
    ('"', "&quot;"),
    ("'", "&apos;"),
)

_HTML_ENTITIES = (
    ("&nbsp;", " "),
    ("&amp;", "&"),
    ("&euro;", "€"),
)


def escape_xml(value: str) -> str:
    for char, entity in _XML_ESCAPES:
        value = value.replace(char, entity)
    return value


def soap_envelope(body: str) -> str:
    """Wrap a SOAP 1.1 body fragment in the standard envelope."""
    return SOAP_ENVELOPE.format(body=body)


def _tag_pattern(tag: str, namespaced: bool) -> str:
    prefix = r"(?:[\w-]+:)?" if namespaced else ""
    return prefix + re.escape(tag)


def tag_value(xml: str, tag: str, namespaced: bool = False) -> Optional[str]:
    """Return the text of the first simple <tag>value</tag> element.

    Args:
        xml: Raw XML text
        tag: Element name, matched case-insensitively
        namespaced: Also match prefixed names such as <ns2:price>

    Returns:
        Element text, or None if absent
    """
    name = _tag_pattern(tag, namespaced)
    match = re.search(rf"<{name}(?:\s[^>]*)?>([^<]*)</{name}>", xml, re.IGNORECASE)
    return match.group(1) if match else None


def tag_blocks(xml: str, tag: str) -> List[str]:
    """Return the inner content of every <tag>...</tag> group, in order."""
    name = re.escape(tag)
    return re.findall(rf"<{name}(?:\s[^>]*)?>([\s\S]*?)</{name}>", xml, re.IGNORECASE)


def strip_tags(html: Optional[str]) -> str:
    """Remove tags, decode the common entities and collapse whitespace."""
    text = re.sub(r"<[^>]+>", " ", html or "")
    for entity, char in _HTML_ENTITIES:
        text = text.replace(entity, char)
    text = re.sub(r"&#?\w+;", "", text)
    return re.sub(r"\s+", " ", text).strip()
