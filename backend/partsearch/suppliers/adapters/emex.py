"""Emex Dubai SOAP adapter.

Logs in with a SOAP call that yields a customer id, then searches with a
second call that carries it. Responses are scanned tag by tag; no XML
parser is involved. Prices are in USD, weights in grams.
"""

import re
from dataclasses import dataclass
from datetime import timedelta
from decimal import Decimal
from typing import List, Optional

from partsearch.config import settings
from partsearch.core.exceptions import (
    SessionExpiredError,
    UpstreamAuthError,
    UpstreamProtocolError,
)
from partsearch.suppliers.base import BaseAdapter
from partsearch.suppliers.session import SessionCache, SessionState
from partsearch.suppliers.utils.markup import escape_xml, soap_envelope, tag_blocks, tag_value
from partsearch.suppliers.utils.normalizer import to_decimal, to_int
from partsearch.suppliers.utils.retry import relogin_retry


SOURCE_ID = "emex"

# Fault texts that mean the customer session is no longer accepted
_AUTH_FAULT = re.compile(r"customer|login|session|auth|password", re.IGNORECASE)


@dataclass
class EmexItem:
    """One FindByNumber offer from SearchPartEx."""

    make: str
    make_name: str
    number: str
    name: str
    price: Decimal
    days: int
    qty: int
    weight_kg: float
    percent_supplied: int


def parse_login_response(xml: str) -> str:
    """Extract the customer id from a Login response.

    Raises:
        UpstreamAuthError: If the id is missing or "0"
    """
    customer_id = tag_value(xml, "CustomerId")
    if not customer_id or customer_id.strip() == "0":
        raise UpstreamAuthError(SOURCE_ID, tag_value(xml, "faultstring") or "login failed")
    return customer_id.strip()


def parse_search_response(xml: str) -> List[EmexItem]:
    """Turn a SearchPartEx response into offers with a positive price.

    Raises:
        SessionExpiredError: If the fault points at the customer session
        UpstreamProtocolError: For any other SOAP fault
    """
    fault = tag_value(xml, "faultstring")
    if fault is not None:
        if _AUTH_FAULT.search(fault):
            raise SessionExpiredError(SOURCE_ID, fault)
        raise UpstreamProtocolError(SOURCE_ID, fault)

    items = []
    for block in tag_blocks(xml, "FindByNumber"):
        item = EmexItem(
            make=tag_value(block, "Make") or "",
            make_name=tag_value(block, "MakeName") or "",
            number=tag_value(block, "DetailNum") or "",
            name=tag_value(block, "PartNameEng") or tag_value(block, "PartNameRus") or "",
            price=to_decimal(tag_value(block, "Price")),
            days=to_int(tag_value(block, "Delivery")),
            qty=to_int(tag_value(block, "Available")),
            weight_kg=float(to_decimal(tag_value(block, "WeightGr"))) / 1000,
            percent_supplied=to_int(tag_value(block, "PercentSupped")),
        )
        if item.price > 0:
            items.append(item)
    return items


class EmexAdapter(BaseAdapter):
    """Emex SOAP/XML adapter with a cached customer id."""

    source_id = SOURCE_ID
    display_name = "Emex Dubai"
    protocol = "soap"

    SESSION_TTL = timedelta(minutes=30)

    def __init__(
        self,
        username: Optional[str] = None,
        password: Optional[str] = None,
        soap_url: Optional[str] = None,
        namespace: Optional[str] = None,
        **kwargs,
    ):
        super().__init__(**kwargs)
        self.username = settings.EMEX_USER if username is None else username
        self.password = settings.EMEX_PASS if password is None else password
        self.soap_url = soap_url or settings.EMEX_SOAP_URL
        self.namespace = namespace or settings.EMEX_NAMESPACE
        self.session = SessionCache(self.source_id, login=self._login)

    async def _soap_call(self, action: str, body: str) -> str:
        async with self._client() as client:
            response = await client.post(
                self.soap_url,
                content=soap_envelope(body).encode("utf-8"),
                headers={
                    "Content-Type": "text/xml; charset=utf-8",
                    "SOAPAction": f'"{self.namespace}{action}"',
                },
            )
        # SOAP faults come back as HTTP 500 with a fault body; let the
        # parsers read it.
        return response.text

    def _customer_xml(self, customer_id: Optional[str] = None) -> str:
        xml = (
            f"<Customer><UserName>{escape_xml(self.username)}</UserName>"
            f"<Password>{escape_xml(self.password)}</Password>"
        )
        if customer_id:
            xml += f"<CustomerId>{escape_xml(customer_id)}</CustomerId>"
        return xml + "</Customer>"

    async def _login(self) -> SessionState:
        self._require(EMEX_USER=self.username, EMEX_PASS=self.password)
        xml = await self._soap_call(
            "Login", f'<Login xmlns="{self.namespace}">{self._customer_xml()}</Login>'
        )
        customer_id = parse_login_response(xml)
        return self.session.new_state(customer_id, ttl=self.SESSION_TTL, credential=self.username)

    @relogin_retry
    async def _search(self, part_number: str) -> List[EmexItem]:
        state = await self.session.ensure()
        body = (
            f'<SearchPartEx xmlns="{self.namespace}">'
            f"{self._customer_xml(state.token)}"
            f"<DetailNum>{escape_xml(part_number)}</DetailNum>"
            f"<ShowSubsts>false</ShowSubsts>"
            f"</SearchPartEx>"
        )
        xml = await self._soap_call("SearchPartEx", body)
        try:
            return parse_search_response(xml)
        except SessionExpiredError:
            self.session.invalidate()
            raise
