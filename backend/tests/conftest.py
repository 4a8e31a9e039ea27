"""Pytest configuration and shared fixtures."""

import asyncio
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from partsearch.suppliers.base import BaseAdapter
from partsearch.suppliers.rates import CurrencyRateProvider, RateSnapshot


@pytest.fixture
def rates() -> RateSnapshot:
    """The static fallback rates, as a regular snapshot."""
    return RateSnapshot(jpy_to_eur=Decimal("0.0061"), usd_to_eur=Decimal("0.92"))


class FakeClock:
    """Manually advanced, timezone-aware clock."""

    def __init__(self, start: datetime = datetime(2024, 1, 1, tzinfo=timezone.utc)):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


class StaticRateProvider(CurrencyRateProvider):
    """Rate provider that never touches the network."""

    def __init__(self, snapshot: RateSnapshot):
        super().__init__()
        self.snapshot = snapshot
        self.calls = 0

    @property
    def has_live_rates(self) -> bool:
        return True

    async def get_rates(self) -> RateSnapshot:
        self.calls += 1
        return self.snapshot


@pytest.fixture
def rate_provider(rates) -> StaticRateProvider:
    return StaticRateProvider(rates)


class FakeAdapter(BaseAdapter):
    """Adapter returning canned raw items, or failing, or stalling."""

    protocol = "fake"

    def __init__(self, source_id, items=None, error=None, delay=0.0, warm=True):
        self.source_id = source_id
        super().__init__()
        self.items = items or []
        self.error = error
        self.delay = delay
        self.warm = warm
        self.search_calls = 0
        self.warm_up_calls = 0

    async def warm_up(self) -> bool:
        self.warm_up_calls += 1
        return self.warm

    async def _search(self, part_number):
        self.search_calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return list(self.items)


@pytest.fixture
def make_adapter():
    """Factory fixture building FakeAdapter instances."""
    return FakeAdapter
