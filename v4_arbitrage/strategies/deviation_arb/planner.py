"""Turns a deviation into a directional exact-input swap.

Pure functions only: no network access, no wallet. Trade sizing is an input.
"""

from __future__ import annotations

from decimal import Decimal

from v4_arbitrage.core.constants.base import MAX_SQRT_PRICE, MIN_SQRT_PRICE
from v4_arbitrage.core.registry import TokenRegistry
from v4_arbitrage.core.utils.units import to_erc20_raw

from .types import DeviationResult, Direction, SwapIntent


def validate_sqrt_price_limit(sqrt_price_limit: int) -> int:
    limit = int(sqrt_price_limit)
    if not MIN_SQRT_PRICE < limit < MAX_SQRT_PRICE:
        raise ValueError(
            f"sqrtPriceLimitX96 {limit} outside ({MIN_SQRT_PRICE}, {MAX_SQRT_PRICE})"
        )
    return limit


def _exact_input_amount(
    trade_size: int | str | Decimal, symbol: str, tokens: TokenRegistry
) -> int:
    amount = to_erc20_raw(trade_size, tokens[symbol].decimals)
    if amount <= 0:
        raise ValueError(f"Trade size must be positive, got {trade_size} {symbol}")
    return -amount


def plan(
    result: DeviationResult,
    trade_size: int | str | Decimal,
    tokens: TokenRegistry,
) -> SwapIntent | None:
    """Swap toward the market price, bounded by the market sqrt price.

    Returns None when the deviation is unavailable or exactly zero.
    `trade_size` is in human units of whichever token ends up as input.
    """
    if not result.available or result.direction is Direction.NONE:
        return None

    zero_for_one = result.direction is Direction.ZERO_FOR_ONE
    if zero_for_one:
        input_symbol, output_symbol = result.token0, result.token1
    else:
        input_symbol, output_symbol = result.token1, result.token0

    return SwapIntent(
        pool_name=result.pool_name,
        input_symbol=input_symbol,
        output_symbol=output_symbol,
        amount_specified=_exact_input_amount(trade_size, input_symbol, tokens),
        sqrt_price_limit=validate_sqrt_price_limit(result.market_sqrt_price),
        zero_for_one=zero_for_one,
    )


def plan_with_limit(
    *,
    pool_name: str,
    token0: str,
    token1: str,
    zero_for_one: bool,
    trade_size: int | str | Decimal,
    sqrt_price_limit: int,
    tokens: TokenRegistry,
) -> SwapIntent:
    """Swap with an operator-supplied direction and price limit."""
    if zero_for_one:
        input_symbol, output_symbol = token0, token1
    else:
        input_symbol, output_symbol = token1, token0

    return SwapIntent(
        pool_name=pool_name,
        input_symbol=input_symbol,
        output_symbol=output_symbol,
        amount_specified=_exact_input_amount(trade_size, input_symbol, tokens),
        sqrt_price_limit=validate_sqrt_price_limit(sqrt_price_limit),
        zero_for_one=bool(zero_for_one),
    )
