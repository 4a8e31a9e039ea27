"""Tests for the HTTP endpoints."""

from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from partsearch.dependencies import get_search_service
from partsearch.main import app
from partsearch.services.search_service import SearchService


class BrokenService(SearchService):
    async def search(self, query):
        self.validate_query(query)
        raise RuntimeError("rates table corrupted")


@pytest.fixture
def client_for(rate_provider):
    """Build a TestClient whose search service uses the given adapters."""

    def build(adapters, service_class=SearchService):
        service = service_class(adapters=adapters, rate_provider=rate_provider)
        app.dependency_overrides[get_search_service] = lambda: service
        return TestClient(app)

    yield build
    app.dependency_overrides.clear()


class TestSearchEndpoint:
    def test_search_returns_merged_results(self, client_for, make_adapter):
        item = {"PartNumber": "9091510003", "Brand": "TOYOTA", "Price": 100, "WeightPhysical": 1.0}
        client = client_for([make_adapter("apec", items=[item]), make_adapter("impex")])

        response = client.get("/api/v1/search", params={"q": "90915-10003"})

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["query"] == "90915-10003"
        assert data["apecCount"] == 1
        assert data["impexCount"] == 0
        assert data["thunderCount"] == 0
        assert data["totalCount"] == 1
        assert data["rates"] == {"jpyToEur": 0.0061, "usdToEur": 0.92}

        (result,) = data["results"]
        assert result["calculatedPrice"] == 130.32
        assert result["priceEUR"] == 92.0
        assert result["originalPriceUSD"] == 100.0
        assert result["shippingCost"] == 12.0
        assert result["supplierName"] == "APEC Dubai"
        assert "option" not in result

    def test_short_query_is_400(self, client_for, make_adapter):
        adapter = make_adapter("impex")
        client = client_for([adapter])

        response = client.get("/api/v1/search", params={"q": " ab "})

        assert response.status_code == 400
        assert response.json() == {
            "success": False,
            "error": "Invalid query",
            "message": "Query must be at least 3 characters",
        }
        assert adapter.search_calls == 0

    def test_missing_query_is_400(self, client_for):
        response = client_for([]).get("/api/v1/search")

        assert response.status_code == 400

    def test_unexpected_failure_is_500(self, client_for):
        response = client_for([], service_class=BrokenService).get(
            "/api/v1/search", params={"q": "A1-23"}
        )

        assert response.status_code == 500
        assert response.json() == {
            "success": False,
            "error": "Search failed",
            "message": "rates table corrupted",
        }


class TestHealthEndpoint:
    def test_health_reports_caches(self, client_for, make_adapter):
        client = client_for([make_adapter("impex")])

        response = client.get("/api/v1/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert data["uptime"] >= 0
        assert data["caches"] == {"rates": True}

    def test_root(self, client_for):
        data = client_for([]).get("/").json()

        assert data["search"] == "/api/v1/search?q="


def test_price_fields_are_numbers(client_for, make_adapter):
    offer = {"part": "A1-23", "mark": "HKS", "price_yen": Decimal("12345")}
    client = client_for([make_adapter("impex", items=[offer])])

    (result,) = client.get("/api/v1/search", params={"q": "A1-23"}).json()["results"]

    assert result["partNumber"] == "A1-23"
    assert result["calculatedPrice"] == 110.7
    assert result["originalPriceJPY"] == 12345.0
