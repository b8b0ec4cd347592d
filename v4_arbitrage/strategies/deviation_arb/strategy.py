from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING, Any

from loguru import logger

from v4_arbitrage.core.clients.PriceFeedClient import PriceFeedClient, PriceSnapshot
from v4_arbitrage.core.clients.StateViewClient import StateViewClient
from v4_arbitrage.core.errors import PoolNotFound, TransientError
from v4_arbitrage.core.registry import PoolIdentity, PoolRegistry

from . import planner
from .analyzer import analyze_pool
from .types import DeviationResult, PoolReport, SwapIntent

if TYPE_CHECKING:
    from v4_arbitrage.adapters.swap_adapter import SwapAdapter


class DeviationArbStrategy:
    """Observe pools against reference prices, plan and execute corrective swaps.

    Pools are read one at a time in registry order. Prices are fetched fresh
    for every pass or plan.
    """

    def __init__(
        self,
        pools: PoolRegistry,
        *,
        price_feed: PriceFeedClient,
        state_view: StateViewClient,
        swap_adapter: SwapAdapter | None = None,
    ) -> None:
        self.pools = pools
        self.tokens = pools.tokens
        self.price_feed = price_feed
        self.state_view = state_view
        self.swap_adapter = swap_adapter

    async def fetch_prices(self, pools: list[PoolIdentity]) -> PriceSnapshot:
        symbols = [s for pool in pools for s in (pool.token0, pool.token1)]
        return await self.price_feed.fetch_snapshot(self.tokens, symbols)

    async def analyze(self, pool: PoolIdentity, prices: PriceSnapshot) -> PoolReport:
        pool_id = self.pools.pool_id(pool)
        report = PoolReport(pool=pool, pool_id=pool_id)
        try:
            slot0 = await self.state_view.get_slot0(pool_id)
        except (PoolNotFound, TransientError) as exc:
            logger.warning(f"Skipping {pool.name} ({pool_id}): {exc}")
            report.error = exc
            return report

        token0, token1 = self.pools.canonical_pair(pool)
        report.result = analyze_pool(
            pool.name, token0, token1, slot0.sqrt_price_x96, prices, self.tokens
        )
        if not report.result.available:
            logger.warning(f"Deviation unavailable for {pool.name}")
        return report

    async def run_pass(self) -> list[PoolReport]:
        """One report per registered pool, in registry order.

        FeedUnavailable propagates: no deviations are computed from a partial
        price set.
        """
        pools = list(self.pools)
        prices = await self.fetch_prices(pools)
        reports = []
        for pool in pools:
            reports.append(await self.analyze(pool, prices))
        return reports

    async def deviation(self, pool_name: str) -> DeviationResult:
        pool = self.pools.get(pool_name)
        prices = await self.fetch_prices([pool])
        report = await self.analyze(pool, prices)
        if report.error is not None:
            raise report.error
        return report.result

    async def plan_swap(
        self, pool_name: str, trade_size: int | str | Decimal
    ) -> SwapIntent | None:
        """Plan with the live market sqrt price as the limit."""
        result = await self.deviation(pool_name)
        intent = planner.plan(result, trade_size, self.tokens)
        if intent is None:
            logger.info(f"No swap planned for {pool_name}: deviation {result}")
        return intent

    def plan_with_limit(
        self,
        pool_name: str,
        trade_size: int | str | Decimal,
        *,
        sqrt_price_limit: int,
        zero_for_one: bool,
    ) -> SwapIntent:
        """Plan with an operator-supplied limit; no price feed involved."""
        pool = self.pools.get(pool_name)
        token0, token1 = self.pools.canonical_pair(pool)
        return planner.plan_with_limit(
            pool_name=pool.name,
            token0=token0,
            token1=token1,
            zero_for_one=zero_for_one,
            trade_size=trade_size,
            sqrt_price_limit=sqrt_price_limit,
            tokens=self.tokens,
        )

    async def execute(self, intent: SwapIntent, **kwargs: Any) -> dict[str, Any]:
        if self.swap_adapter is None:
            raise RuntimeError("No swap adapter configured; cannot execute swaps")
        return await self.swap_adapter.execute(intent, **kwargs)
