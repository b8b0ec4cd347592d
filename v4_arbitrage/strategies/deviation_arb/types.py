from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum

from v4_arbitrage.core.errors import ArbitrageError
from v4_arbitrage.core.registry import PoolIdentity


class Direction(Enum):
    ZERO_FOR_ONE = "zero_for_one"  # token0 overvalued on-chain, sell it
    ONE_FOR_ZERO = "one_for_zero"  # token0 undervalued on-chain, buy it
    NONE = "none"


@dataclass(frozen=True)
class DeviationResult:
    pool_name: str
    token0: str  # canonical currency0 symbol
    token1: str  # canonical currency1 symbol
    on_chain_sqrt_price: int
    market_sqrt_price: int  # 0 when the market price is unavailable
    deviation_percent: Decimal | None
    direction: Direction

    @property
    def available(self) -> bool:
        return self.deviation_percent is not None


@dataclass(frozen=True)
class SwapIntent:
    pool_name: str
    input_symbol: str
    output_symbol: str
    amount_specified: int  # negative = exact input
    sqrt_price_limit: int
    zero_for_one: bool

    @property
    def amount_in(self) -> int:
        return abs(self.amount_specified)


@dataclass
class PoolReport:
    pool: PoolIdentity
    pool_id: str
    result: DeviationResult | None = None
    error: ArbitrageError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.result is not None
