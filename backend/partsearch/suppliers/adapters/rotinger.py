"""Rotinger brake parts SOAP adapter.

A single priceRequest call per search; credentials travel in the request
body, so there is no session to cache. Prices are in EUR.
"""

import re
from dataclasses import dataclass
from decimal import Decimal
from typing import List, Optional

from partsearch.config import settings
from partsearch.suppliers.base import BaseAdapter
from partsearch.suppliers.utils.markup import escape_xml, soap_envelope, tag_value
from partsearch.suppliers.utils.normalizer import to_decimal, to_int


SOAP_ACTION = "urn:GetProductBrief"
SERVICE_NAMESPACE = "http://ws.proacta.pl/"
REQUEST_NAMESPACE = "http://cxfservice.proacta.pl/"


@dataclass
class RotingerItem:
    """Price answer for one Rotinger reference."""

    rotinger_id: str
    name: Optional[str]
    description: Optional[str]
    price: Decimal
    availability: str
    currency: str

    @property
    def in_stock(self) -> bool:
        text = self.availability.lower()
        return "tak" in text or "yes" in text or to_int(text) > 0


def parse_price_response(xml: str, part_number: str) -> List[RotingerItem]:
    """Read the first price answer out of a priceRequest response.

    Tags may carry any namespace prefix. A response without a usable
    positive price yields no items.
    """
    raw_price = tag_value(xml, "price", namespaced=True)
    if raw_price is None:
        return []
    price = to_decimal(raw_price.replace(",", "."))
    if price <= 0:
        return []
    return [
        RotingerItem(
            rotinger_id=tag_value(xml, "rotingerId", namespaced=True) or part_number,
            name=tag_value(xml, "name", namespaced=True),
            description=tag_value(xml, "description", namespaced=True),
            price=price,
            availability=tag_value(xml, "availability", namespaced=True) or "",
            currency=tag_value(xml, "currency", namespaced=True) or "EUR",
        )
    ]


class RotingerAdapter(BaseAdapter):
    """Rotinger SOAP price adapter."""

    source_id = "rotinger"
    display_name = "Rotinger"
    protocol = "soap"

    def __init__(
        self,
        login: Optional[str] = None,
        password: Optional[str] = None,
        endpoint: Optional[str] = None,
        **kwargs,
    ):
        super().__init__(**kwargs)
        self.login = settings.ROTINGER_LOGIN if login is None else login
        self.password = settings.ROTINGER_PASSWORD if password is None else password
        self.endpoint = endpoint or settings.ROTINGER_ENDPOINT

    def _request_body(self, part_number: str) -> str:
        return (
            f'<priceRequest xmlns="{SERVICE_NAMESPACE}"><requestObject>'
            f'<login xmlns="{REQUEST_NAMESPACE}">{escape_xml(self.login)}</login>'
            f'<password xmlns="{REQUEST_NAMESPACE}">{escape_xml(self.password)}</password>'
            f'<productQuery xmlns="{REQUEST_NAMESPACE}">'
            f"<quantity>1</quantity>"
            f"<rotingerId>{escape_xml(part_number)}</rotingerId>"
            f"</productQuery></requestObject></priceRequest>"
        )

    async def _search(self, part_number: str) -> List[RotingerItem]:
        self._require(ROTINGER_LOGIN=self.login, ROTINGER_PASSWORD=self.password)
        pn = re.sub(r"\s+", "", part_number)

        async with self._client() as client:
            response = await client.post(
                self.endpoint,
                content=soap_envelope(self._request_body(pn)).encode("utf-8"),
                headers={
                    "Content-Type": "text/xml; charset=utf-8",
                    "SOAPAction": SOAP_ACTION,
                },
            )

        if not response.is_success:
            self.logger.warning("rotinger_http_error", status_code=response.status_code)
            return []

        items = parse_price_response(response.text, pn)
        if not items:
            self.logger.info("rotinger_no_price", query=pn)
        return items
