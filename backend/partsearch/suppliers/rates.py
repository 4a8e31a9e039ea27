"""Exchange rate provider with in-memory caching and static fallback."""

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Callable, Dict, Optional

import httpx
import structlog

from partsearch.config import settings


logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class RateSnapshot:
    """EUR conversion rates in effect for one search."""

    jpy_to_eur: Decimal
    usd_to_eur: Decimal
    fetched_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    is_fallback: bool = False

    def __post_init__(self):
        if self.jpy_to_eur < 0 or self.usd_to_eur < 0:
            raise ValueError("exchange rates must be non-negative")

    def rate_for(self, currency: str) -> Decimal:
        """Get the multiplier that converts `currency` into EUR."""
        currency = currency.upper()
        if currency == "EUR":
            return Decimal("1")
        if currency == "JPY":
            return self.jpy_to_eur
        if currency == "USD":
            return self.usd_to_eur
        raise ValueError(f"Unsupported currency: {currency}")

    def to_dict(self) -> Dict[str, float]:
        return {"jpyToEur": float(self.jpy_to_eur), "usdToEur": float(self.usd_to_eur)}


FALLBACK_RATES = RateSnapshot(
    jpy_to_eur=Decimal("0.0061"),
    usd_to_eur=Decimal("0.92"),
    fetched_at=datetime(1970, 1, 1, tzinfo=timezone.utc),
    is_fallback=True,
)


class CurrencyRateProvider:
    """Fetches JPY and USD rates against EUR and caches them.

    Rates come from the Frankfurter API (EUR base) and are kept for 12 hours.
    When the source is unreachable the last good snapshot is returned, and
    before any successful fetch the hardcoded fallback is used. get_rates()
    never raises.
    """

    TTL = timedelta(hours=12)

    def __init__(
        self,
        url: Optional[str] = None,
        timeout: Optional[float] = None,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self.url = url or settings.RATES_URL
        self._timeout = timeout or settings.HTTP_TIMEOUT_SECONDS
        self._clock = clock
        self.transport: Optional[httpx.AsyncBaseTransport] = None  # Injected in tests

        self._snapshot: Optional[RateSnapshot] = None
        self._expires_at: Optional[datetime] = None

    @property
    def has_live_rates(self) -> bool:
        return self._snapshot is not None

    def last_known(self) -> RateSnapshot:
        """Last good snapshot without touching the network, else the fallback."""
        return self._snapshot or FALLBACK_RATES

    async def get_rates(self) -> RateSnapshot:
        """Return cached rates, refreshing them when stale.

        Returns:
            Fresh, last-known-good, or fallback RateSnapshot
        """
        now = self._clock()
        if self._snapshot and self._expires_at and now < self._expires_at:
            return self._snapshot

        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self.transport) as client:
                resp = await client.get(self.url)
                resp.raise_for_status()
                data = resp.json()

            rates = data.get("rates") or {}
            jpy = rates.get("JPY")
            usd = rates.get("USD")
            if not jpy or not usd or float(jpy) <= 0 or float(usd) <= 0:
                raise ValueError(f"incomplete rates payload: {rates}")

            snapshot = RateSnapshot(
                jpy_to_eur=Decimal("1") / Decimal(str(jpy)),
                usd_to_eur=Decimal("1") / Decimal(str(usd)),
                fetched_at=now,
            )
            self._snapshot = snapshot
            self._expires_at = now + self.TTL
            logger.info("exchange_rates_updated", rates=snapshot.to_dict())
            return snapshot
        except Exception as e:
            logger.warning("exchange_rate_fetch_failed", error=str(e))

        if self._snapshot is not None:
            return self._snapshot
        return FALLBACK_RATES
