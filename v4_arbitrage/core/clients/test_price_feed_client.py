from decimal import Decimal

import httpx
import pytest

from v4_arbitrage.core.clients.PriceFeedClient import PriceFeedClient
from v4_arbitrage.core.errors import FeedUnavailable
from v4_arbitrage.core.registry import load_registries

BASE_URL = "https://prices.test/api/v3"


def _client(handler, api_key=None) -> PriceFeedClient:
    client = PriceFeedClient(base_url=BASE_URL, api_key=api_key)
    client.client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return client


@pytest.mark.asyncio
class TestFetchSpotPrices:
    async def test_parses_usd_prices_exactly(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = request.url
            seen["headers"] = request.headers
            return httpx.Response(
                200,
                text='{"bitcoin": {"usd": 60000.12}, "ethereum": {"usd": 3000}}',
            )

        async with _client(handler, api_key="cg-key") as client:
            prices = await client.fetch_spot_prices(["ethereum", "bitcoin"])

        assert prices == {
            "bitcoin": Decimal("60000.12"),
            "ethereum": Decimal(3000),
        }
        assert seen["url"].path == "/api/v3/simple/price"
        assert seen["url"].params["ids"] == "bitcoin,ethereum"
        assert seen["url"].params["vs_currencies"] == "usd"
        assert seen["headers"]["x-cg-demo-api-key"] == "cg-key"

    async def test_no_key_sends_no_key_header(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["headers"] = request.headers
            return httpx.Response(200, json={"tether": {"usd": 1}})

        async with _client(handler, api_key="") as client:
            await client.fetch_spot_prices(["tether"])
        assert "x-cg-demo-api-key" not in seen["headers"]

    async def test_empty_request_skips_http(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise AssertionError("no request expected")

        async with _client(handler) as client:
            assert await client.fetch_spot_prices([]) == {}

    async def test_http_error_is_feed_unavailable(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(429, json={"status": "rate limited"})

        async with _client(handler) as client:
            with pytest.raises(FeedUnavailable, match="request failed"):
                await client.fetch_spot_prices(["bitcoin"])

    async def test_transport_error_is_feed_unavailable(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        async with _client(handler) as client:
            with pytest.raises(FeedUnavailable):
                await client.fetch_spot_prices(["bitcoin"])

    async def test_malformed_json_is_feed_unavailable(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, text="<html>")

        async with _client(handler) as client:
            with pytest.raises(FeedUnavailable, match="malformed"):
                await client.fetch_spot_prices(["bitcoin"])

    async def test_missing_asset_is_feed_unavailable(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"bitcoin": {"usd": 60000}})

        async with _client(handler) as client:
            with pytest.raises(FeedUnavailable, match="ethereum"):
                await client.fetch_spot_prices(["bitcoin", "ethereum"])

    async def test_non_numeric_price_is_feed_unavailable(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"bitcoin": {"usd": "n/a"}})

        async with _client(handler) as client:
            with pytest.raises(FeedUnavailable, match="missing assets"):
                await client.fetch_spot_prices(["bitcoin"])


@pytest.mark.asyncio
async def test_fetch_snapshot_maps_symbols_through_price_ids():
    tokens, _ = load_registries()
    requested = {}

    def handler(request: httpx.Request) -> httpx.Response:
        requested["ids"] = request.url.params["ids"]
        return httpx.Response(
            200, json={"ethereum": {"usd": 3000}, "tether": {"usd": 1.0}}
        )

    async with _client(handler) as client:
        snapshot = await client.fetch_snapshot(
            tokens, ["native_eth", "usdt", "eth", "usdt"]
        )

    assert requested["ids"] == "ethereum,tether"
    assert snapshot == {
        "native_eth": Decimal(3000),
        "usdt": Decimal("1.0"),
        "eth": Decimal(3000),
    }
