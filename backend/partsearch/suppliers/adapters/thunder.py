"""Thunder (PitMax) string-table RPC adapter.

PitMax exposes only the RPC endpoints of its web client. Requests are
hand-built pipe-delimited call signatures; responses are "//OK"-prefixed
arrays whose last element is a string table. Instance data carries no field
names, so product fields are recovered from the shape of the strings.

The PitMax certificate does not validate, so this adapter (and only this
adapter) talks to its upstream with TLS verification disabled.
"""

import json
import re
from dataclasses import dataclass
from datetime import timedelta
from decimal import Decimal
from typing import Callable, List, Optional, Tuple

import httpx

from partsearch.config import settings
from partsearch.core.exceptions import (
    SessionExpiredError,
    UpstreamAuthError,
    UpstreamProtocolError,
)
from partsearch.suppliers.base import BaseAdapter
from partsearch.suppliers.session import SessionCache, SessionState
from partsearch.suppliers.utils.cookies import extract_cookies, merge_cookies
from partsearch.suppliers.utils.normalizer import round_money
from partsearch.suppliers.utils.retry import relogin_retry


SOURCE_ID = "thunder"

MODULE_PATH = "/com.iisd.uiw.pm.Start/"
PERMUTATION = "70709A8D465EC375F1DBE979394D3AB3"
LOGIN_POLICY = "CBA32746B023408F8C29D3768C24D68B"
SEARCH_POLICY = "48FDBB0C1ABD9AB543E5F4D21ABEB03D"
USER_AGENT = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36"

OK_PREFIX = "//OK"
EXCEPTION_PREFIX = "//EX"

# Type signatures and column names that appear in the table next to data
SIGNATURE_PREFIXES = ("com.iisd", "[L", "java.")
COLUMN_NAMES = frozenset(
    {
        "ProdStationID", "ProdID", "MarkGroupStationID", "MarkGroupID", "ProdNum",
        "ProdName", "NewProdNum", "NewProdName", "AltProdMarkStationID", "AltProdMarkID",
        "AltProdNum", "AltProdName", "Weight", "Active", "ProdImage", "ClientPrice",
        "ClientPriceCurrencyID", "Brand", "Seats",
    }
)

CLIENT_PRICE_LABEL = "Клиентска цена"
ORDER_LABEL_PREFIX = "Поръчка"
OPTION_SCAN_WINDOW = 7
MAX_LEAD_DAYS = 365


def login_payload(module_base: str, username: str, password: str) -> str:
    return (
        f"7|0|7|{module_base}|{LOGIN_POLICY}|com.iisd.uiw.um.client.user.s.UserGWTWS|login|"
        f"java.lang.String/2004016611|{username}|{password}|1|2|3|4|2|5|5|6|7|"
    )


def find_parts_payload(module_base: str, part_number: str) -> str:
    return (
        f"7|0|12|{module_base}|{SEARCH_POLICY}|"
        "com.iisd.uiw.auto.client.search.oe.s.PartSearchGWTWS|getManyParts|"
        "com.iisd.fw.data.IISDResultSetDef/4116809468|"
        "[Lcom.iisd.fw.data.IISDResultSetFilterDef;/1103246466|"
        "com.iisd.fw.data.IISDResultSetFilterDef/3152666539|"
        f"MarkGroupStationID|0|MarkGroupID|ProdNum|{part_number}|"
        "1|2|3|4|1|5|5|2|0|0|6|3|7|0|8|0|0|0|9|7|0|10|0|0|0|9|7|0|11|0|0|2|12|0|0|30|"
    )


def availability_payload(module_base: str, product_id: str) -> str:
    return (
        f"7|0|5|{module_base}|{SEARCH_POLICY}|"
        "com.iisd.uiw.auto.client.search.oe.s.PartSearchGWTWS|getPartAvailability|I|"
        f"1|2|3|4|2|5|5|1|{product_id}|"
    )


def _array_end(content: str, start: int) -> int:
    """Index just past the array opened at `start`, brackets inside strings ignored."""
    depth = 0
    in_string = escaped = False
    for i in range(start, len(content)):
        char = content[i]
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
        elif char == '"':
            in_string = True
        elif char == "[":
            depth += 1
        elif char == "]":
            depth -= 1
            if depth == 0:
                return i + 1
    return len(content)


def parse_string_table(body: str) -> List[str]:
    """Extract the string table from an RPC response body.

    The table is the last bracketed array that starts with a string. Its end
    is found by bracket depth; if the slice is not valid JSON every quoted
    string in the body is returned instead.

    Raises:
        UpstreamProtocolError: If the body is an exception or lacks the OK prefix
    """
    if body.startswith(EXCEPTION_PREFIX):
        raise UpstreamProtocolError(SOURCE_ID, "RPC call raised an exception")
    if not body.startswith(OK_PREFIX):
        raise UpstreamProtocolError(SOURCE_ID, "RPC response without OK prefix")

    content = body[len(OK_PREFIX):]
    start = content.rfind('["')
    if start == -1:
        return []

    try:
        table = json.loads(content[start:_array_end(content, start)])
        return [s for s in table if isinstance(s, str)]
    except ValueError:
        return re.findall(r'"((?:[^"\\]|\\.)*)"', content)


def data_tokens(table: List[str]) -> List[str]:
    """Drop type signatures and column names, keeping instance values."""
    return [
        s for s in table
        if not s.startswith(SIGNATURE_PREFIXES) and s not in COLUMN_NAMES
    ]


@dataclass
class ThunderProduct:
    """Product fields recovered from a getManyParts string table."""

    product_id: Optional[str] = None
    oem: Optional[str] = None
    name: Optional[str] = None
    brand: Optional[str] = None
    weight: float = 0.0


def _first(pattern: Callable[[str], bool]) -> Callable[[List[str]], Optional[str]]:
    return lambda tokens: next((t for t in tokens if pattern(t)), None)


def _last(pattern: Callable[[str], bool]) -> Callable[[List[str]], Optional[str]]:
    return lambda tokens: next((t for t in reversed(tokens) if pattern(t)), None)


# Ordered heuristics: field name, selector over the data tokens
PRODUCT_FIELD_RULES: List[Tuple[str, Callable[[List[str]], Optional[str]]]] = [
    ("product_id", _first(lambda t: re.fullmatch(r"\d{5,}", t) is not None)),
    (
        "oem",
        _first(
            lambda t: re.fullmatch(r"[A-Z0-9\-]{5,}", t, re.IGNORECASE) is not None
            and not t.isdigit()
        ),
    ),
    ("name", _first(lambda t: re.search(r"[\u0400-\u04FF]", t) is not None)),
    (
        "brand",
        _last(lambda t: re.fullmatch(r"[A-Za-z][A-Za-z\s]*", t) is not None and len(t) > 1),
    ),
    ("weight", _last(lambda t: re.fullmatch(r"0\.\d{2}", t) is not None)),
]


def recover_product(table: List[str]) -> ThunderProduct:
    """Apply PRODUCT_FIELD_RULES to a getManyParts string table."""
    tokens = data_tokens(table)
    product = ThunderProduct()
    for name, select in PRODUCT_FIELD_RULES:
        value = select(tokens)
        if value is None:
            continue
        if name == "weight":
            product.weight = float(value)
        else:
            setattr(product, name, value)
    return product


@dataclass
class AvailabilityOption:
    """A labelled price/lead-time group from getPartAvailability."""

    label: str
    price: Optional[Decimal] = None
    days: Optional[int] = None


@dataclass
class ThunderOffer:
    """One row emitted by the adapter."""

    product: ThunderProduct
    price: Decimal
    days: Optional[int]
    option: str  # "cheapest" or "fastest"
    query: str = ""


def _is_label(token: str) -> bool:
    return token == CLIENT_PRICE_LABEL or token.startswith(ORDER_LABEL_PREFIX)


def parse_availability(table: List[str]) -> List[AvailabilityOption]:
    """Collect labelled groups and the first price and lead time after each.

    For every label the following tokens (up to OPTION_SCAN_WINDOW, stopping
    at the next label) are scanned for the first decimal and the first
    integer no greater than MAX_LEAD_DAYS.
    """
    tokens = data_tokens(table)
    options = []
    for i, token in enumerate(tokens):
        if not _is_label(token):
            continue
        option = AvailabilityOption(label=token)
        for candidate in tokens[i + 1:i + 1 + OPTION_SCAN_WINDOW]:
            if _is_label(candidate):
                break
            if option.price is None and re.fullmatch(r"\d+\.\d+", candidate):
                option.price = Decimal(candidate)
            elif option.days is None and re.fullmatch(r"\d{1,3}", candidate):
                if int(candidate) <= MAX_LEAD_DAYS:
                    option.days = int(candidate)
        options.append(option)
    return options


def select_offers(options: List[AvailabilityOption]) -> List[Tuple[str, Decimal, Optional[int]]]:
    """Pick the cheapest option and, if strictly faster, the fastest one.

    Order groups without their own price are priced at the lowest price
    recorded anywhere in the table. When the table has no order groups but a
    client price, that price is used with the shortest lead time seen.

    Returns:
        Up to two (option tag, price, days) tuples
    """
    prices = [o.price for o in options if o.price is not None]
    if not prices:
        return []
    lowest = min(prices)

    orders = [o for o in options if o.label.startswith(ORDER_LABEL_PREFIX)]
    if orders:
        candidates = [(o.price if o.price is not None else lowest, o.days) for o in orders]
    else:
        days = [o.days for o in options if o.days is not None]
        candidates = [(lowest, min(days) if days else None)]

    def by_price(c):
        return (c[0], c[1] if c[1] is not None else MAX_LEAD_DAYS + 1)

    cheapest = min(candidates, key=by_price)
    offers = [("cheapest", cheapest[0], cheapest[1])]

    timed = [c for c in candidates if c[1] is not None]
    if timed:
        fastest = min(timed, key=lambda c: (c[1], c[0]))
        if fastest != cheapest and (cheapest[1] is None or fastest[1] < cheapest[1]):
            offers.append(("fastest", fastest[0], fastest[1]))
    return offers


class ThunderAdapter(BaseAdapter):
    """PitMax opaque RPC adapter."""

    source_id = SOURCE_ID
    display_name = "Тандер"
    protocol = "rpc"
    verify_tls = False

    USER_SERVICE = "GWTWebServiceUser"
    SEARCH_SERVICE = "GWTWebServicePITMax"
    SESSION_TTL = timedelta(minutes=30)

    def __init__(
        self,
        username: Optional[str] = None,
        password: Optional[str] = None,
        base_url: Optional[str] = None,
        **kwargs,
    ):
        super().__init__(**kwargs)
        self.username = settings.THUNDER_USER if username is None else username
        self.password = settings.THUNDER_PASS if password is None else password
        self.base_url = (base_url or settings.THUNDER_BASE_URL).rstrip("/")
        self.module_base = f"{self.base_url}{MODULE_PATH}"
        self.session = SessionCache(self.source_id, login=self._login)

    @property
    def protocol_headers(self) -> dict:
        return {
            "Content-Type": "text/x-gwt-rpc; charset=UTF-8",
            "X-GWT-Module-Base": self.module_base,
            "X-GWT-Permutation": PERMUTATION,
            "Origin": self.base_url,
            "Referer": f"{self.base_url}/",
            "User-Agent": USER_AGENT,
        }

    async def _call(self, service: str, payload: str, cookies: str) -> httpx.Response:
        async with self._client() as client:
            return await client.post(
                f"{self.module_base}{service}",
                content=payload.encode("utf-8"),
                headers={**self.protocol_headers, "Cookie": cookies},
            )

    async def _login(self) -> SessionState:
        self._require(THUNDER_USER=self.username, THUNDER_PASS=self.password)

        cookies = ""
        try:
            async with self._client() as client:
                home = await client.get(self.base_url, headers={"User-Agent": USER_AGENT})
            cookies = extract_cookies(home.headers)
        except httpx.HTTPError as e:
            self.logger.debug("thunder_home_page_failed", error=str(e))

        response = await self._call(
            self.USER_SERVICE, login_payload(self.module_base, self.username, self.password), cookies
        )
        cookies = merge_cookies(cookies, extract_cookies(response.headers))

        body = response.text
        if not body.startswith(OK_PREFIX):
            raise UpstreamAuthError(self.source_id, f"login rejected: {body[:50]!r}")
        if not cookies:
            # A cookie-less session cannot be cached or replayed
            self.logger.warning("thunder_login_without_cookie")
            raise UpstreamAuthError(self.source_id, "login produced no session cookie")

        self.logger.info("thunder_logged_in")
        return self.session.new_state(cookies, ttl=self.SESSION_TTL, credential=self.username)

    async def find_product(self, part_number: str, cookies: str) -> Optional[ThunderProduct]:
        response = await self._call(
            self.SEARCH_SERVICE,
            find_parts_payload(self.module_base, part_number.lower()),
            cookies,
        )
        body = response.text
        if body.startswith(EXCEPTION_PREFIX):
            # Expired sessions surface as RPC exceptions
            raise SessionExpiredError(self.source_id, "getManyParts raised an exception")

        product = recover_product(parse_string_table(body))
        self.logger.debug(
            "thunder_product_recovered",
            product_id=product.product_id,
            oem=product.oem,
            brand=product.brand,
        )
        return product if product.product_id else None

    async def fetch_availability(self, product_id: str, cookies: str) -> List[AvailabilityOption]:
        response = await self._call(
            self.SEARCH_SERVICE, availability_payload(self.module_base, product_id), cookies
        )
        body = response.text
        if not body.startswith(OK_PREFIX):
            self.logger.warning("thunder_availability_failed", body=body[:50])
            return []
        return parse_availability(parse_string_table(body))

    @relogin_retry
    async def _search(self, part_number: str) -> List[ThunderOffer]:
        try:
            return await self._search_with_session(part_number)
        except SessionExpiredError:
            self.session.invalidate()
            raise

    async def _search_with_session(self, part_number: str) -> List[ThunderOffer]:
        state = await self.session.ensure()
        product = await self.find_product(part_number, state.token)
        if product is None:
            return []

        options = await self.fetch_availability(product.product_id, state.token)
        offers = [
            ThunderOffer(
                product=product,
                price=round_money(price),
                days=days,
                option=tag,
                query=part_number,
            )
            for tag, price, days in select_offers(options)
        ]
        if not offers:
            self.logger.info("thunder_no_price", product_id=product.product_id)
        return offers
