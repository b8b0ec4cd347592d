"""Conversions between human-readable prices and Uniswap ``sqrtPriceX96``.

``sqrtPriceX96 = floor(sqrt(price * 10**(decimals1 - decimals0)) * 2**96)`` where
``price`` is the value of one token0 expressed in token1. The forward direction
is computed with exact rational arithmetic and an integer square root, so the
only error is the final floor (relative error below ``1 / sqrtPriceX96``).
"""

from __future__ import annotations

import math
from decimal import Decimal, localcontext
from fractions import Fraction

from v4_arbitrage.core.constants.base import MAX_UINT160, Q96
from v4_arbitrage.core.errors import ConversionInvalid

PriceLike = int | float | str | Decimal | Fraction

_DECIMAL_PRECISION = 80


def to_fraction(price: PriceLike) -> Fraction:
    if isinstance(price, bool):
        raise ConversionInvalid(f"Invalid price: {price!r}")
    try:
        if isinstance(price, str):
            return Fraction(price.strip())
        return Fraction(price)
    except (ValueError, TypeError, OverflowError, ZeroDivisionError) as exc:
        raise ConversionInvalid(f"Invalid price: {price!r}") from exc


def decimal_scale(decimals0: int, decimals1: int) -> Fraction:
    return Fraction(10) ** (int(decimals1) - int(decimals0))


def price_to_sqrt_price_x96(price: PriceLike, decimals0: int, decimals1: int) -> int:
    ratio = to_fraction(price)
    if ratio <= 0:
        raise ConversionInvalid(f"Price ratio must be positive, got {price!r}")

    # floor(sqrt(x) * 2**96) == isqrt(floor(x * 2**192)) for any real x >= 0
    scaled = ratio * decimal_scale(decimals0, decimals1) * (Q96 * Q96)
    result = math.isqrt(scaled.numerator // scaled.denominator)
    if result > MAX_UINT160:
        raise ConversionInvalid(
            f"sqrtPriceX96 for price {price!r} exceeds 160 bits ({result})"
        )
    return result


def sqrt_price_x96_to_price(
    sqrt_price_x96: int, decimals0: int, decimals1: int
) -> Decimal:
    if sqrt_price_x96 <= 0:
        return Decimal(0)
    with localcontext() as ctx:
        ctx.prec = _DECIMAL_PRECISION
        raw = Decimal(int(sqrt_price_x96)) ** 2 / Decimal(Q96 * Q96)
        scale = Decimal(10) ** (int(decimals1) - int(decimals0))
        return raw / scale
