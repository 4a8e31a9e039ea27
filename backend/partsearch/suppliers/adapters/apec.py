"""APEC Dubai API adapter.

Uses an OAuth-style password grant for a bearer token, a delivery point
lookup, and a two-stage (brands, then batched search) part query.
Prices are in USD.
"""

from datetime import timedelta
from typing import Any, Dict, List, Optional
from urllib.parse import quote, urlencode

from partsearch.config import settings
from partsearch.core.exceptions import UpstreamAuthError
from partsearch.suppliers.base import BaseAdapter
from partsearch.suppliers.session import SessionCache, SessionState
from partsearch.suppliers.utils.normalizer import normalize_part_number, to_decimal


class ApecAdapter(BaseAdapter):
    """APEC token-auth REST adapter."""

    source_id = "apec"
    display_name = "APEC Dubai"
    protocol = "rest"

    TOKEN_PATH = "/token"
    DELIVERY_POINTS_PATH = "/api/getdeliverypoints"
    BRANDS_PATH = "/api/search/{part_number}/brands"
    SEARCH_PATH = "/api/search"

    MAX_BRANDS = 3
    DEFAULT_TOKEN_TTL_SECONDS = 3600
    TOKEN_SAFETY_MARGIN = timedelta(minutes=5)

    def __init__(
        self,
        username: Optional[str] = None,
        password: Optional[str] = None,
        base_url: Optional[str] = None,
        **kwargs,
    ):
        super().__init__(**kwargs)
        self.username = settings.APEC_USERNAME if username is None else username
        self.password = settings.APEC_PASSWORD if password is None else password
        self.base_url = (base_url or settings.APEC_BASE_URL).rstrip("/")

        self.session = SessionCache(
            self.source_id,
            login=self._login,
            safety_margin=self.TOKEN_SAFETY_MARGIN,
        )
        # Delivery points never change during the process lifetime
        self._delivery_points: Optional[List[Dict[str, Any]]] = None

    async def _login(self) -> SessionState:
        """Acquire a bearer token with the password grant.

        Raises:
            ConfigurationError: If credentials are not configured
            UpstreamAuthError: If the token endpoint rejects the request
        """
        self._require(APEC_USERNAME=self.username, APEC_PASSWORD=self.password)

        body = urlencode(
            {
                "username": self.username,
                "password": self.password,
                "grant_type": "password",
            }
        )
        async with self._client() as client:
            response = await client.post(
                f"{self.base_url}{self.TOKEN_PATH}",
                content=body,
                headers={"Content-Type": "text/plain"},
            )

        if not response.is_success:
            raise UpstreamAuthError(self.source_id, f"token request failed: {response.status_code}")

        data = self._json(response)
        token = data.get("access_token") if isinstance(data, dict) else None
        if not token:
            raise UpstreamAuthError(self.source_id, "token response without access_token")

        expires_in = int(data.get("expires_in") or self.DEFAULT_TOKEN_TTL_SECONDS)
        self.logger.info("apec_token_acquired", expires_in=expires_in)
        return self.session.new_state(
            token, ttl=timedelta(seconds=expires_in), credential=self.username
        )

    async def get_token(self) -> str:
        state = await self.session.ensure()
        return state.token

    async def get_delivery_points(self, token: str) -> List[Dict[str, Any]]:
        """Fetch the account's delivery points, cached after the first success."""
        if self._delivery_points is not None:
            return self._delivery_points

        async with self._client() as client:
            response = await client.get(
                f"{self.base_url}{self.DELIVERY_POINTS_PATH}",
                headers=self._auth_headers(token),
            )

        if not response.is_success:
            self.logger.warning("apec_delivery_points_failed", status_code=response.status_code)
            return []

        data = self._json(response)
        self._delivery_points = data if isinstance(data, list) else []
        self.logger.info("apec_delivery_points_cached", count=len(self._delivery_points))
        return self._delivery_points

    async def get_delivery_point_id(self, token: str) -> int:
        points = await self.get_delivery_points(token)
        if points and isinstance(points[0], dict):
            return points[0].get("DeliveryPointID") or 0
        return 0

    async def warm_up(self) -> bool:
        """Acquire the token and delivery points ahead of the fan-out."""
        try:
            token = await self.get_token()
            await self.get_delivery_points(token)
            return True
        except Exception as e:
            self.logger.warning("apec_warm_up_failed", error=str(e))
            return False

    async def _search(self, part_number: str) -> List[Dict[str, Any]]:
        token = await self.get_token()
        delivery_point_id = await self.get_delivery_point_id(token)
        clean_pn = normalize_part_number(part_number)
        headers = self._auth_headers(token)

        async with self._client() as client:
            brands_response = await client.get(
                f"{self.base_url}{self.BRANDS_PATH.format(part_number=quote(clean_pn, safe=''))}",
                params={"analogues": "false", "deliveryPointID": delivery_point_id},
                headers=headers,
            )
            self._check_auth(brands_response)
            if not brands_response.is_success:
                return []

            brands = self._json(brands_response)
            if not brands or not isinstance(brands, list):
                return []

            batch = [
                {"PartNumber": clean_pn, "Brand": b.get("Brand")}
                for b in brands[: self.MAX_BRANDS]
                if isinstance(b, dict)
            ]
            self.logger.debug("apec_brands_found", brands=[b["Brand"] for b in batch])

            search_response = await client.post(
                f"{self.base_url}{self.SEARCH_PATH}",
                params={"deliveryPointID": delivery_point_id},
                json=batch,
                headers=headers,
            )
            self._check_auth(search_response)
            if not search_response.is_success:
                return []

        data = self._json(search_response)
        items = data if isinstance(data, list) else []
        return [
            item
            for item in items
            if isinstance(item, dict)
            and item.get("Price") is not None
            and to_decimal(item.get("Price")) > 0
        ]

    def _check_auth(self, response) -> None:
        if response.status_code == 401:
            raise UpstreamAuthError(self.source_id, "bearer token rejected")

    @staticmethod
    def _auth_headers(token: str) -> Dict[str, str]:
        return {"Authorization": f"Bearer {token}"}
