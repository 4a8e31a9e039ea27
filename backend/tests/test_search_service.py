"""Tests for the multi-supplier search service."""

import asyncio
import time
from decimal import Decimal

import httpx
import pytest

from partsearch.core.exceptions import QueryValidationError, UpstreamAuthError
from partsearch.services.search_service import SearchService
from partsearch.suppliers.adapters.apec import ApecAdapter
from partsearch.suppliers.adapters.emex import EmexItem
from partsearch.suppliers.adapters.rotinger import RotingerAdapter
from partsearch.suppliers.adapters.stimo import StimoRow
from partsearch.suppliers.adapters.thunder import ThunderOffer, ThunderProduct
from partsearch.suppliers.rates import FALLBACK_RATES, CurrencyRateProvider


def impex_item(part="A1-23", price_yen=1000):
    return {"part": part, "mark": "TOYOTA", "price_yen": price_yen, "name_eng": "Filter"}


def stimo_row(price="20.00"):
    return StimoRow(
        source="JP",
        part_number="A1-23",
        description="Filter",
        brand="TOYOTA",
        price_with_vat=Decimal(price),
        your_price=Decimal(price),
        in_stock=True,
        delivery_days="1",
    )


def thunder_offer(price="20.00", option="cheapest", days=5):
    product = ThunderProduct(product_id="1234567", oem=None, name="Филтър", brand="TOYOTA")
    return ThunderOffer(product=product, price=Decimal(price), days=days, option=option)


def emex_item(make, price, number="9091510003"):
    return EmexItem(
        make=make,
        make_name=make,
        number=number,
        name="Oil filter",
        price=Decimal(price),
        days=3,
        qty=2,
        weight_kg=0.0,
        percent_supplied=90,
    )


# ============================================================================
# QUERY VALIDATION
# ============================================================================


class TestValidation:
    async def test_short_query_rejected_before_any_io(self, make_adapter, rate_provider):
        adapter = make_adapter("impex", items=[impex_item()])
        service = SearchService(adapters=[adapter], rate_provider=rate_provider)

        with pytest.raises(QueryValidationError):
            await service.search("  ab ")

        assert adapter.warm_up_calls == 0
        assert adapter.search_calls == 0
        assert rate_provider.calls == 0

    async def test_missing_query_rejected(self, rate_provider):
        service = SearchService(adapters=[], rate_provider=rate_provider)

        with pytest.raises(QueryValidationError, match="at least 3"):
            await service.search(None)

    async def test_query_trimmed(self, make_adapter, rate_provider):
        service = SearchService(adapters=[make_adapter("impex")], rate_provider=rate_provider)

        outcome = await service.search("  abc  ")

        assert outcome.query == "abc"


# ============================================================================
# FAN-OUT
# ============================================================================


class TestFanOut:
    async def test_failing_suppliers_count_zero(self, make_adapter, rate_provider):
        adapters = [
            make_adapter("impex", items=[impex_item()]),
            make_adapter("apec", error=RuntimeError("boom")),
            make_adapter("emex", error=UpstreamAuthError("emex", "bad login")),
            make_adapter("stimo", items=[stimo_row()]),
            make_adapter("thunder", items=[thunder_offer("30.00")]),
        ]
        service = SearchService(adapters=adapters, rate_provider=rate_provider)

        outcome = await service.search("A1-23")

        assert outcome.per_supplier_counts == {
            "impex": 1,
            "apec": 0,
            "emex": 0,
            "stimo": 1,
            "thunder": 1,
        }
        assert outcome.total_count == 3
        assert {r.source_id for r in outcome.results} == {"impex", "stimo", "thunder"}

    async def test_slow_supplier_times_out(self, make_adapter, rate_provider):
        adapters = [
            make_adapter("impex", items=[impex_item()], delay=5),
            make_adapter("stimo", items=[stimo_row()]),
        ]
        service = SearchService(adapters=adapters, rate_provider=rate_provider, adapter_timeout=0.05)

        outcome = await service.search("A1-23")

        assert outcome.per_supplier_counts == {"impex": 0, "stimo": 1}

    async def test_failed_warm_up_skips_supplier(self, make_adapter, rate_provider):
        cold = make_adapter("apec", items=[{"PartNumber": "A1", "Price": 1}], warm=False)
        warm = make_adapter("stimo", items=[stimo_row()])
        service = SearchService(adapters=[cold, warm], rate_provider=rate_provider)

        outcome = await service.search("A1-23")

        assert cold.search_calls == 0
        assert outcome.per_supplier_counts == {"apec": 0, "stimo": 1}

    async def test_warm_up_exception_skips_supplier(self, make_adapter, rate_provider):
        class Exploding(make_adapter):
            async def warm_up(self):
                raise RuntimeError("no route")

        adapter = Exploding("apec", items=[{"PartNumber": "A1", "Price": 1}])
        service = SearchService(adapters=[adapter], rate_provider=rate_provider)

        outcome = await service.search("A1-23")

        assert adapter.search_calls == 0
        assert outcome.total_count == 0

    async def test_rates_fetched_once_per_search(self, make_adapter, rate_provider):
        service = SearchService(adapters=[make_adapter("impex")], rate_provider=rate_provider)

        await service.search("A1-23")

        assert rate_provider.calls == 1

    async def test_stalled_warm_up_is_bounded(self, make_adapter, rate_provider):
        async def stall(request):
            await asyncio.sleep(2)
            return httpx.Response(200, json={"access_token": "tok", "expires_in": 3600})

        apec = ApecAdapter(username="user", password="pass", base_url="https://apec.test")
        apec.transport = httpx.MockTransport(stall)
        adapters = [apec, make_adapter("impex", items=[impex_item()])]
        service = SearchService(adapters=adapters, rate_provider=rate_provider, adapter_timeout=0.1)

        started = time.monotonic()
        outcome = await service.search("A1-23")

        assert time.monotonic() - started < 1.0
        assert outcome.per_supplier_counts == {"apec": 0, "impex": 1}

    async def test_stalled_rates_fall_back(self, make_adapter):
        class StallingRates(CurrencyRateProvider):
            async def get_rates(self):
                await asyncio.sleep(5)

        adapters = [make_adapter("impex", items=[impex_item()])]
        service = SearchService(adapters=adapters, rate_provider=StallingRates(), adapter_timeout=0.05)

        outcome = await service.search("A1-23")

        assert outcome.rates is FALLBACK_RATES
        assert outcome.per_supplier_counts == {"impex": 1}


# ============================================================================
# MALFORMED UPSTREAM DATA
# ============================================================================


class TestMalformedAmounts:
    async def test_nan_price_empties_only_that_supplier(self, make_adapter, rate_provider):
        xml = (
            "<soap:Envelope><soap:Body><ns2:priceRequestResponse><return>"
            "<ns3:rotingerId>20176GL</ns3:rotingerId><ns3:price>NaN</ns3:price>"
            "</return></ns2:priceRequestResponse></soap:Body></soap:Envelope>"
        )
        rotinger = RotingerAdapter(login="shop", password="pw", endpoint="https://rotinger.test/ws")
        rotinger.transport = httpx.MockTransport(lambda request: httpx.Response(200, text=xml))
        service = SearchService(
            adapters=[make_adapter("impex", items=[impex_item()]), rotinger],
            rate_provider=rate_provider,
        )

        outcome = await service.search("A1-23")

        assert outcome.per_supplier_counts == {"impex": 1, "rotinger": 0}

    async def test_overflowing_price_empties_only_that_supplier(self, make_adapter, rate_provider):
        apec_item = {"PartNumber": "A123", "Brand": "TOYOTA", "Price": 10}
        adapters = [
            make_adapter("impex", items=[impex_item(price_yen=1e30)]),
            make_adapter("apec", items=[apec_item]),
        ]
        service = SearchService(adapters=adapters, rate_provider=rate_provider)

        outcome = await service.search("A1-23")

        assert outcome.per_supplier_counts == {"impex": 0, "apec": 1}

    async def test_infinite_price_does_not_fail_search(self, make_adapter, rate_provider):
        adapters = [make_adapter("impex", items=[impex_item(price_yen="Infinity")])]
        service = SearchService(adapters=adapters, rate_provider=rate_provider)

        outcome = await service.search("A1-23")

        assert all(r.computed_sell_price.is_finite() for r in outcome.results)


# ============================================================================
# MERGING
# ============================================================================


class TestMerging:
    async def test_sorted_and_truncated(self, make_adapter, rate_provider):
        items = [impex_item(part=f"P{i}", price_yen=10000 - i * 100) for i in range(70)]
        service = SearchService(adapters=[make_adapter("impex", items=items)], rate_provider=rate_provider)

        outcome = await service.search("P0-00")

        prices = [r.computed_sell_price for r in outcome.results]
        assert len(prices) == 60
        assert prices == sorted(prices)
        assert outcome.total_count == 70
        assert outcome.per_supplier_counts["impex"] == 70
        assert outcome.results[0].part_number == "P69"

    async def test_equal_prices_keep_supplier_order(self, make_adapter, rate_provider):
        adapters = [
            make_adapter("stimo", items=[stimo_row("20.00")]),
            make_adapter("thunder", items=[thunder_offer("20.00")]),
        ]
        service = SearchService(adapters=adapters, rate_provider=rate_provider)

        outcome = await service.search("A1-23")

        assert [r.source_id for r in outcome.results] == ["stimo", "thunder"]

    async def test_landed_price_for_dubai_item(self, make_adapter, rate_provider):
        item = {"PartNumber": "9091510003", "Brand": "TOYOTA", "Price": 100, "WeightPhysical": 1.0}
        service = SearchService(adapters=[make_adapter("apec", items=[item])], rate_provider=rate_provider)

        (result,) = (await service.search("9091510003")).results

        assert result.price_in_base_currency == Decimal("92.00")
        assert result.computed_sell_price == Decimal("130.32")
        assert result.shipping_cost == Decimal("12.00")

    async def test_emex_raw_count_reported(self, make_adapter, rate_provider):
        items = [
            emex_item("TOYOTA", "10.00"),
            emex_item("TOYOTA", "8.00"),
            emex_item("MASUMA", "2.00"),
            emex_item("LEXUS", "9.00", number="9091510004"),
        ]
        service = SearchService(adapters=[make_adapter("emex", items=items)], rate_provider=rate_provider)

        outcome = await service.search("90915-10003")

        assert outcome.raw_counts["emex"] == 4
        assert outcome.per_supplier_counts["emex"] == 1
        assert outcome.results[0].original_price == Decimal("8.00")

    async def test_thunder_options_become_rows(self, make_adapter, rate_provider):
        offers = [thunder_offer("45.50", "cheapest", 12), thunder_offer("52.00", "fastest", 7)]
        service = SearchService(adapters=[make_adapter("thunder", items=offers)], rate_provider=rate_provider)

        outcome = await service.search("04465-33471")

        assert [(r.option, r.estimated_delivery_label) for r in outcome.results] == [
            ("cheapest", "12 дни"),
            ("fastest", "7 дни"),
        ]
        # No OEM recovered: the query stands in
        assert outcome.results[0].part_number == "04465-33471"

    async def test_unknown_source_contributes_nothing(self, make_adapter, rate_provider):
        service = SearchService(
            adapters=[make_adapter("mystery", items=[{"a": 1}])], rate_provider=rate_provider
        )

        outcome = await service.search("A1-23")

        assert outcome.per_supplier_counts == {"mystery": 0}


# ============================================================================
# SERIALIZATION AND CACHE STATUS
# ============================================================================


class TestOutcome:
    async def test_wire_keys(self, make_adapter, rate_provider):
        adapters = [
            make_adapter(source_id)
            for source_id in ("impex", "apec", "emex", "stimo", "thunder", "rotinger")
        ]
        service = SearchService(adapters=adapters, rate_provider=rate_provider)

        data = (await service.search("A1-23")).to_dict()

        assert data["success"] is True
        assert data["query"] == "A1-23"
        counts = (
            "impexCount",
            "apecCount",
            "emexCount",
            "emexRawCount",
            "stimoCount",
            "thunderCount",
            "rotingerCount",
            "totalCount",
        )
        assert all(data[key] == 0 for key in counts)
        assert data["elapsed"] >= 0
        assert data["rates"] == {"jpyToEur": 0.0061, "usdToEur": 0.92}
        assert data["results"] == []

    async def test_result_keys(self, make_adapter, rate_provider):
        service = SearchService(
            adapters=[make_adapter("impex", items=[impex_item(price_yen=10000)])],
            rate_provider=rate_provider,
        )

        (result,) = (await service.search("A1-23")).to_dict()["results"]

        assert result["partNumber"] == "A123"
        assert result["priceEUR"] == 61.0
        assert result["calculatedPrice"] == 89.67
        assert result["originalPriceJPY"] == 10000.0
        assert result["source"] == "impex"
        assert result["supplierName"] == "Impex Japan"
        assert "option" not in result
        assert "shippingCost" not in result

    def test_cache_status_lists_session_suppliers(self, rate_provider):
        service = SearchService(rate_provider=rate_provider)

        status = service.get_cache_status()

        assert set(status) == {"rates", "apec", "emex", "stimo", "thunder"}
        assert status["rates"] is True
        assert not any(status[k] for k in ("apec", "emex", "stimo", "thunder"))
