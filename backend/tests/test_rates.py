"""Tests for the currency rate provider."""

from decimal import Decimal

import httpx
import pytest

from partsearch.suppliers.rates import FALLBACK_RATES, CurrencyRateProvider, RateSnapshot


def frankfurter(jpy=160.0, usd=1.08):
    return {"amount": 1.0, "base": "EUR", "date": "2024-01-01", "rates": {"JPY": jpy, "USD": usd}}


def make_provider(clock, handler):
    provider = CurrencyRateProvider(url="https://rates.test/latest", clock=clock)
    provider.transport = httpx.MockTransport(handler)
    return provider


class TestRateSnapshot:
    def test_rate_for_known_currencies(self, rates):
        assert rates.rate_for("EUR") == Decimal("1")
        assert rates.rate_for("jpy") == Decimal("0.0061")
        assert rates.rate_for("USD") == Decimal("0.92")

    def test_rate_for_unknown_currency(self, rates):
        with pytest.raises(ValueError, match="Unsupported currency"):
            rates.rate_for("GBP")

    def test_negative_rates_rejected(self):
        with pytest.raises(ValueError):
            RateSnapshot(jpy_to_eur=Decimal("-1"), usd_to_eur=Decimal("0.92"))

    def test_to_dict_uses_wire_keys(self, rates):
        assert rates.to_dict() == {"jpyToEur": 0.0061, "usdToEur": 0.92}


class TestCurrencyRateProvider:
    async def test_fetches_and_inverts_rates(self, clock):
        provider = make_provider(clock, lambda request: httpx.Response(200, json=frankfurter()))

        snapshot = await provider.get_rates()

        assert snapshot.jpy_to_eur == Decimal("1") / Decimal("160.0")
        assert snapshot.usd_to_eur == Decimal("1") / Decimal("1.08")
        assert not snapshot.is_fallback
        assert provider.has_live_rates

    async def test_cached_for_twelve_hours(self, clock):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(200, json=frankfurter())

        provider = make_provider(clock, handler)

        await provider.get_rates()
        clock.advance(hours=11)
        await provider.get_rates()
        assert len(calls) == 1

        clock.advance(hours=2)
        await provider.get_rates()
        assert len(calls) == 2

    async def test_falls_back_to_static_rates(self, clock):
        provider = make_provider(clock, lambda request: httpx.Response(503))

        snapshot = await provider.get_rates()

        assert snapshot is FALLBACK_RATES
        assert snapshot.jpy_to_eur == Decimal("0.0061")
        assert snapshot.usd_to_eur == Decimal("0.92")
        assert not provider.has_live_rates

    async def test_network_error_keeps_last_good_snapshot(self, clock):
        responses = [httpx.Response(200, json=frankfurter(jpy=150.0, usd=1.10))]

        def handler(request):
            if responses:
                return responses.pop()
            raise httpx.ConnectError("unreachable", request=request)

        provider = make_provider(clock, handler)
        good = await provider.get_rates()

        clock.advance(hours=13)
        again = await provider.get_rates()

        assert again is good

    async def test_incomplete_payload_uses_fallback(self, clock):
        provider = make_provider(
            clock, lambda request: httpx.Response(200, json={"rates": {"JPY": 160.0}})
        )

        snapshot = await provider.get_rates()

        assert snapshot.is_fallback
