from __future__ import annotations

import json
from collections.abc import Iterable
from decimal import Decimal

import httpx
from loguru import logger

from v4_arbitrage.core.clients.HttpClient import HttpClient
from v4_arbitrage.core.config import get_price_api_base_url, get_price_api_key
from v4_arbitrage.core.errors import FeedUnavailable
from v4_arbitrage.core.registry import TokenRegistry

PriceSnapshot = dict[str, Decimal]


class PriceFeedClient(HttpClient):
    """USD spot prices from a CoinGecko-compatible ``simple/price`` endpoint.

    Every call hits the API; there is no cache between analysis passes.
    """

    def __init__(self, base_url: str | None = None, api_key: str | None = None):
        api_key = api_key if api_key is not None else get_price_api_key()
        headers = {"x-cg-demo-api-key": api_key} if api_key else None
        super().__init__(base_url or get_price_api_base_url(), headers=headers)

    async def fetch_spot_prices(self, asset_ids: Iterable[str]) -> dict[str, Decimal]:
        ids = sorted(set(asset_ids))
        if not ids:
            return {}
        try:
            resp = await self._request(
                "GET",
                "/simple/price",
                params={"ids": ",".join(ids), "vs_currencies": "usd"},
            )
            # Decimal keeps the quoted digits exactly
            payload = json.loads(resp.text, parse_float=Decimal)
        except httpx.HTTPError as exc:
            raise FeedUnavailable(f"Price API request failed: {exc}") from exc
        except ValueError as exc:
            raise FeedUnavailable(f"Price API returned malformed JSON: {exc}") from exc

        if not isinstance(payload, dict):
            raise FeedUnavailable(f"Unexpected price API payload: {payload!r}")

        prices: dict[str, Decimal] = {}
        missing: list[str] = []
        for asset_id in ids:
            entry = payload.get(asset_id)
            usd = entry.get("usd") if isinstance(entry, dict) else None
            if isinstance(usd, bool) or not isinstance(usd, (int, Decimal)):
                missing.append(asset_id)
                continue
            prices[asset_id] = Decimal(usd)
        if missing:
            raise FeedUnavailable(f"Price API response missing assets: {missing}")

        logger.debug(f"Fetched USD prices for {len(prices)} assets")
        return prices

    async def fetch_snapshot(
        self, tokens: TokenRegistry, symbols: Iterable[str]
    ) -> PriceSnapshot:
        """symbol -> USD price for `symbols`, via each token's price id."""
        symbols = list(dict.fromkeys(symbols))
        asset_by_symbol: dict[str, str] = {}
        for symbol in symbols:
            price_id = tokens[symbol].price_id
            if not price_id:
                raise FeedUnavailable(f"Token {symbol} has no reference price id")
            asset_by_symbol[symbol] = price_id

        prices = await self.fetch_spot_prices(asset_by_symbol.values())
        return {symbol: prices[asset] for symbol, asset in asset_by_symbol.items()}
