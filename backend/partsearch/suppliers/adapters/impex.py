"""Impex Japan parts API adapter.

Stateless JSON search keyed by a fixed API key. Prices are in JPY.
"""

from typing import Any, Dict, List, Optional

from partsearch.config import settings
from partsearch.suppliers.base import BaseAdapter


class ImpexAdapter(BaseAdapter):
    """Impex Japan REST/JSON adapter."""

    source_id = "impex"
    display_name = "Impex Japan"
    protocol = "rest"

    SEARCH_PATH = "/api/parts/search.html"

    # Pricing factors are fixed so that Impex returns its raw yen price
    PRICING_PARAMS = {
        "original_only": "0",
        "price_factor": "1",
        "price_increase": "0",
    }

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        **kwargs,
    ):
        super().__init__(**kwargs)
        self.api_key = settings.IMPEX_API_KEY if api_key is None else api_key
        self.base_url = (base_url or settings.IMPEX_BASE_URL).rstrip("/")

    async def _search(self, part_number: str) -> List[Dict[str, Any]]:
        self._require(IMPEX_API_KEY=self.api_key)

        params = {"key": self.api_key, "part_no": part_number, **self.PRICING_PARAMS}
        async with self._client() as client:
            response = await client.get(
                f"{self.base_url}{self.SEARCH_PATH}",
                params=params,
                headers={"Accept": "application/json"},
            )

        if not response.is_success:
            self.logger.warning("impex_http_error", status_code=response.status_code)
            return []

        data = self._json(response)
        parts = data.get("original_parts") if isinstance(data, dict) else None
        return parts if isinstance(parts, list) else []
