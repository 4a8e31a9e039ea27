"""Stimo (OEM Japan Parts dealer portal) scraping adapter.

The portal has no API. Login is a form post whose session lives in cookies
that are carried by hand across the home page, the login post and its
redirect. Search results are an HTML table read with regular expressions.
Prices are in EUR with a comma decimal separator.
"""

import re
from dataclasses import dataclass
from datetime import timedelta
from decimal import Decimal
from typing import List, Optional
from urllib.parse import urljoin

import httpx

from partsearch.config import settings
from partsearch.core.exceptions import UpstreamAuthError
from partsearch.suppliers.base import BaseAdapter
from partsearch.suppliers.session import SessionCache, SessionState
from partsearch.suppliers.utils.cookies import extract_cookies, merge_cookies
from partsearch.suppliers.utils.markup import strip_tags
from partsearch.suppliers.utils.normalizer import parse_comma_price


USER_AGENT = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36"

# Shown on every page when the visitor is not logged in
LOGIN_PROMPT_MARKER = "ВХОД ЗА КЛИЕНТИ"
# Column title of the results table; present only for logged-in searches
RESULTS_MARKER = "ИЗТОЧНИК"
HEADER_LABEL = "ое номер"
OUT_OF_STOCK_MARKER = "Nopresent"
OUT_OF_STOCK_TEXT = "---"

_CELL = r"<td[^>]*>([\s\S]*?)</td>\s*"
ROW_PATTERN = re.compile(r"<tr[^>]*>\s*" + _CELL * 8, re.IGNORECASE)


@dataclass
class StimoRow:
    """One row of the advanced search results table."""

    source: str
    part_number: str
    description: str
    brand: str
    price_with_vat: Decimal
    your_price: Decimal
    in_stock: bool
    delivery_days: str


def is_logged_out(html: str) -> bool:
    """Detect a search page rendered for an anonymous visitor.

    The page shows the login prompt and lacks the results table header.
    """
    return LOGIN_PROMPT_MARKER in html and RESULTS_MARKER not in html


def parse_results_table(html: str) -> List[StimoRow]:
    """Extract every data row of the 8-column results table.

    Header rows (first data cell equal to the OE-number column title) and
    rows without a part number are skipped.
    """
    rows = []
    for match in ROW_PATTERN.finditer(html):
        source, oe_number, description, brand, price_vat, your_price, availability, delivery = (
            match.groups()
        )
        part_number = strip_tags(oe_number)
        if not part_number or part_number.lower() == HEADER_LABEL:
            continue

        in_stock = (
            OUT_OF_STOCK_MARKER not in availability
            and OUT_OF_STOCK_TEXT not in strip_tags(availability)
        )
        rows.append(
            StimoRow(
                source=strip_tags(source),
                part_number=part_number,
                description=strip_tags(description),
                brand=strip_tags(brand),
                price_with_vat=parse_comma_price(strip_tags(price_vat)),
                your_price=parse_comma_price(strip_tags(your_price)),
                in_stock=in_stock,
                delivery_days=strip_tags(delivery) or "-",
            )
        )
    return rows


class StimoAdapter(BaseAdapter):
    """Cookie-session HTML adapter for the Stimo dealer portal."""

    source_id = "stimo"
    display_name = "Стимо"
    protocol = "html"

    LOGIN_PATH = "/login.html"
    SEARCH_PATH = "/advsearch.html"
    SESSION_TTL = timedelta(minutes=25)

    def __init__(
        self,
        email: Optional[str] = None,
        password: Optional[str] = None,
        base_url: Optional[str] = None,
        **kwargs,
    ):
        super().__init__(**kwargs)
        self.email = settings.STIMO_EMAIL if email is None else email
        self.password = settings.STIMO_PASS if password is None else password
        self.base_url = (base_url or settings.STIMO_BASE_URL).rstrip("/")
        self.session = SessionCache(self.source_id, login=self._login)

    async def _login(self) -> SessionState:
        """Home page, login form post, then the redirect target.

        Cookies from all three responses are merged, later values winning.
        """
        self._require(STIMO_EMAIL=self.email, STIMO_PASS=self.password)

        cookies = ""
        async with self._client(follow_redirects=False) as client:
            try:
                home = await client.get(f"{self.base_url}/", headers={"User-Agent": USER_AGENT})
                cookies = extract_cookies(home.headers)
            except httpx.HTTPError as e:
                # The login post works without the home page cookies
                self.logger.debug("stimo_home_page_failed", error=str(e))

            login = await client.post(
                f"{self.base_url}{self.LOGIN_PATH}",
                data={"info": "", "email": self.email, "pass": self.password},
                headers={
                    "User-Agent": USER_AGENT,
                    "Referer": f"{self.base_url}/",
                    "Cookie": cookies,
                },
            )
            if login.status_code >= 400:
                raise UpstreamAuthError(self.source_id, f"login post failed: {login.status_code}")
            cookies = merge_cookies(cookies, extract_cookies(login.headers))

            location = login.headers.get("location")
            if location:
                redirect = await client.get(
                    urljoin(f"{self.base_url}/", location),
                    headers={"User-Agent": USER_AGENT, "Cookie": cookies},
                )
                cookies = merge_cookies(cookies, extract_cookies(redirect.headers))

        if not cookies:
            raise UpstreamAuthError(self.source_id, "login produced no cookies")

        self.logger.info("stimo_logged_in", redirected=bool(location))
        return self.session.new_state(cookies, ttl=self.SESSION_TTL, credential=self.email)

    async def _search(self, part_number: str) -> List[StimoRow]:
        state = await self.session.ensure()
        pn = re.sub(r"[\s-]", "", part_number).lower()

        async with self._client(follow_redirects=False) as client:
            response = await client.get(
                f"{self.base_url}{self.SEARCH_PATH}",
                params={"search_type": "full", "partnums": pn, "submit": "1"},
                headers={"User-Agent": USER_AGENT, "Cookie": state.token},
            )

        if not response.is_success:
            self.logger.warning("stimo_http_error", status_code=response.status_code)
            return []

        html = response.text
        if is_logged_out(html):
            # No re-login in this call; the next search logs in again.
            raise UpstreamAuthError(self.source_id, "portal reports session logged out")

        return parse_results_table(html)
