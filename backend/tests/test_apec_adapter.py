"""Tests for the APEC Dubai token-auth adapter."""

import json
from datetime import timedelta

import httpx

from partsearch.suppliers.adapters.apec import ApecAdapter


class FakeApec:
    """In-memory APEC API."""

    def __init__(self, expires_in=3600, brands=None, items=None, reject_search=False):
        self.expires_in = expires_in
        self.brands = brands if brands is not None else [{"Brand": "TOYOTA"}]
        self.items = items if items is not None else [{"PartNumber": "9091510003", "Price": 5.2}]
        self.reject_search = reject_search
        self.token_calls = 0
        self.delivery_calls = 0
        self.requests = []

    def __call__(self, request):
        self.requests.append(request)
        path = request.url.path
        if path == "/token":
            self.token_calls += 1
            return httpx.Response(
                200, json={"access_token": f"tok{self.token_calls}", "expires_in": self.expires_in}
            )
        assert request.headers["authorization"].startswith("Bearer tok")
        if path == "/api/getdeliverypoints":
            self.delivery_calls += 1
            return httpx.Response(200, json=[{"DeliveryPointID": 17}, {"DeliveryPointID": 3}])
        if path.endswith("/brands"):
            if self.reject_search:
                return httpx.Response(401)
            return httpx.Response(200, json=self.brands)
        if path == "/api/search":
            return httpx.Response(200, json=self.items)
        return httpx.Response(404)


def make_adapter(api, username="user", password="pass"):
    adapter = ApecAdapter(username=username, password=password, base_url="https://apec.test")
    adapter.transport = httpx.MockTransport(api)
    return adapter


class TestApecAdapter:
    async def test_token_request_body(self):
        api = FakeApec()
        adapter = make_adapter(api)

        await adapter.get_token()

        token_request = api.requests[0]
        assert token_request.method == "POST"
        assert token_request.headers["content-type"] == "text/plain"
        assert token_request.content == b"username=user&password=pass&grant_type=password"

    async def test_token_cached_until_margin(self, clock):
        api = FakeApec(expires_in=3600)
        adapter = make_adapter(api)
        adapter.session._clock = clock

        await adapter.get_token()
        clock.advance(minutes=54)
        await adapter.get_token()
        assert api.token_calls == 1

        clock.advance(minutes=2)
        assert not adapter.session.is_valid
        await adapter.get_token()
        assert api.token_calls == 2

    async def test_search_flow(self):
        api = FakeApec(
            brands=[{"Brand": b} for b in ("TOYOTA", "LEXUS", "DAIHATSU", "DENSO")],
            items=[
                {"PartNumber": "9091510003", "Brand": "TOYOTA", "Price": 5.2},
                {"PartNumber": "9091510003", "Brand": "LEXUS", "Price": 0},
                {"PartNumber": "9091510003", "Brand": "DENSO", "Price": None},
            ],
        )
        adapter = make_adapter(api)

        assert await adapter.warm_up() is True
        items = await adapter.search("90915-10003")

        assert [i["Brand"] for i in items] == ["TOYOTA"]

        brands_request = next(r for r in api.requests if r.url.path.endswith("/brands"))
        assert brands_request.url.path == "/api/search/9091510003/brands"
        assert brands_request.url.params["analogues"] == "false"
        assert brands_request.url.params["deliveryPointID"] == "17"

        search_request = next(r for r in api.requests if r.url.path == "/api/search")
        assert json.loads(search_request.content) == [
            {"PartNumber": "9091510003", "Brand": "TOYOTA"},
            {"PartNumber": "9091510003", "Brand": "LEXUS"},
            {"PartNumber": "9091510003", "Brand": "DAIHATSU"},
        ]

    async def test_delivery_points_fetched_once(self):
        api = FakeApec()
        adapter = make_adapter(api)

        await adapter.search("9091510003")
        await adapter.search("9091510003")

        assert api.delivery_calls == 1

    async def test_no_brands_is_empty(self):
        adapter = make_adapter(FakeApec(brands=[]))

        assert await adapter.search("9091510003") == []

    async def test_unauthorized_search_invalidates_token(self):
        api = FakeApec(reject_search=True)
        adapter = make_adapter(api)

        assert await adapter.search("9091510003") == []
        assert not adapter.session.is_valid

        await adapter.get_token()
        assert api.token_calls == 2

    async def test_rejected_login_fails_warm_up(self):
        adapter = make_adapter(lambda request: httpx.Response(400, json={"error": "invalid_grant"}))

        assert await adapter.warm_up() is False
        assert await adapter.search("9091510003") == []

    async def test_missing_credentials_fail_warm_up_without_request(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(200)

        adapter = make_adapter(handler, username="", password="")

        assert await adapter.warm_up() is False
        assert calls == []

    def test_safety_margin_is_five_minutes(self):
        assert make_adapter(FakeApec()).session.safety_margin == timedelta(minutes=5)
