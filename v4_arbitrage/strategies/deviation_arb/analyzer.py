"""Deviation between a pool's on-chain price and the market-implied price.

All arithmetic is rational until the final percentage, which is rendered as a
high-precision Decimal. Integer sqrt prices are never routed through floats.
"""

from __future__ import annotations

from collections.abc import Mapping
from decimal import Decimal, localcontext
from fractions import Fraction

from loguru import logger

from v4_arbitrage.core.errors import ConversionInvalid
from v4_arbitrage.core.registry import TokenRegistry
from v4_arbitrage.core.utils.sqrt_price_math import (
    PriceLike,
    price_to_sqrt_price_x96,
    to_fraction,
)

from .types import DeviationResult, Direction

_PERCENT_PRECISION = 40


def market_ratio(
    prices: Mapping[str, PriceLike], token0: str, token1: str
) -> Fraction | None:
    """USD(token0) / USD(token1), or None if either price is missing or not positive."""
    try:
        p0 = to_fraction(prices[token0])
        p1 = to_fraction(prices[token1])
    except (KeyError, ConversionInvalid):
        return None
    if p0 <= 0 or p1 <= 0:
        return None
    return p0 / p1


def market_sqrt_price(
    prices: Mapping[str, PriceLike],
    tokens: TokenRegistry,
    token0: str,
    token1: str,
) -> int:
    ratio = market_ratio(prices, token0, token1)
    if ratio is None:
        return 0
    try:
        return price_to_sqrt_price_x96(
            ratio, tokens[token0].decimals, tokens[token1].decimals
        )
    except ConversionInvalid as exc:
        logger.warning(f"Cannot convert {token0}/{token1} market price: {exc}")
        return 0


def deviation_percent(on_chain_sqrt_price: int, market_sqrt_price: int) -> Decimal:
    if market_sqrt_price <= 0:
        raise ConversionInvalid("Market sqrt price must be positive")
    exact = Fraction(int(on_chain_sqrt_price) - int(market_sqrt_price)) * 100
    exact /= int(market_sqrt_price)
    with localcontext() as ctx:
        ctx.prec = _PERCENT_PRECISION
        return Decimal(exact.numerator) / Decimal(exact.denominator)


def direction_for(deviation: Decimal | None) -> Direction:
    if deviation is None or deviation == 0:
        return Direction.NONE
    return Direction.ZERO_FOR_ONE if deviation > 0 else Direction.ONE_FOR_ZERO


def analyze_pool(
    pool_name: str,
    token0: str,
    token1: str,
    on_chain_sqrt_price: int,
    prices: Mapping[str, PriceLike],
    tokens: TokenRegistry,
) -> DeviationResult:
    """Compare a pool's sqrtPriceX96 with the reference prices.

    `token0`/`token1` must be given in canonical (currency0, currency1) order,
    the orientation `on_chain_sqrt_price` is quoted in.
    """
    market = market_sqrt_price(prices, tokens, token0, token1)
    deviation = None
    if market > 0 and on_chain_sqrt_price > 0:
        deviation = deviation_percent(on_chain_sqrt_price, market)

    return DeviationResult(
        pool_name=pool_name,
        token0=token0,
        token1=token1,
        on_chain_sqrt_price=int(on_chain_sqrt_price),
        market_sqrt_price=market,
        deviation_percent=deviation,
        direction=direction_for(deviation),
    )
