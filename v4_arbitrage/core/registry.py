"""Static token and pool tables.

Both registries are built once at startup and handed to every component that
needs them; nothing reads them from module globals.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any

from eth_utils import is_address, to_checksum_address

from v4_arbitrage.core.constants.base import DYNAMIC_FEE_FLAG
from v4_arbitrage.core.constants.base_sepolia import POOL_CONFIGS, TOKEN_INFO
from v4_arbitrage.core.utils.tokens import is_native_token
from v4_arbitrage.core.utils.uniswap_v4 import (
    PoolKeyTuple,
    build_pool_key,
    is_dynamic_fee,
    pool_id,
    validate_fee,
)


@dataclass(frozen=True)
class TokenInfo:
    symbol: str
    address: str
    decimals: int
    price_id: str | None = None  # reference price API asset id

    def __post_init__(self) -> None:
        if not is_address(self.address):
            raise ValueError(f"Invalid address for {self.symbol}: {self.address}")
        if not 0 <= int(self.decimals) <= 255:
            raise ValueError(f"Invalid decimals for {self.symbol}: {self.decimals}")
        object.__setattr__(self, "address", to_checksum_address(self.address))
        object.__setattr__(self, "decimals", int(self.decimals))

    @property
    def is_native(self) -> bool:
        return is_native_token(self.address)


@dataclass(frozen=True)
class PoolIdentity:
    name: str
    token0: str  # symbol
    token1: str  # symbol
    fee: int  # fixed fee in pips or DYNAMIC_FEE_FLAG
    tick_spacing: int
    hooks: str

    def __post_init__(self) -> None:
        if self.token0 == self.token1:
            raise ValueError(f"Pool {self.name} uses {self.token0} on both sides")
        if not is_address(self.hooks):
            raise ValueError(f"Invalid hook address for {self.name}: {self.hooks}")
        object.__setattr__(self, "fee", validate_fee(self.fee))
        object.__setattr__(self, "tick_spacing", int(self.tick_spacing))
        object.__setattr__(self, "hooks", to_checksum_address(self.hooks))

    @property
    def dynamic_fee(self) -> bool:
        return is_dynamic_fee(self.fee)


class TokenRegistry(Mapping[str, TokenInfo]):
    def __init__(self, tokens: Iterable[TokenInfo]):
        by_symbol: dict[str, TokenInfo] = {}
        by_address: dict[str, TokenInfo] = {}
        for token in tokens:
            if token.symbol in by_symbol:
                raise ValueError(f"Duplicate token symbol {token.symbol}")
            by_symbol[token.symbol] = token
            by_address.setdefault(token.address.lower(), token)
        self._by_symbol = MappingProxyType(by_symbol)
        self._by_address = MappingProxyType(by_address)

    @classmethod
    def from_config(cls, tokens: Mapping[str, Mapping[str, Any]]) -> TokenRegistry:
        return cls(
            TokenInfo(
                symbol=symbol,
                address=info["address"],
                decimals=info["decimals"],
                price_id=info.get("price_id"),
            )
            for symbol, info in tokens.items()
        )

    def __getitem__(self, symbol: str) -> TokenInfo:
        try:
            return self._by_symbol[symbol]
        except KeyError:
            raise KeyError(f"Unknown token symbol {symbol!r}") from None

    def __iter__(self) -> Iterator[str]:
        return iter(self._by_symbol)

    def __len__(self) -> int:
        return len(self._by_symbol)

    def find_by_address(self, address: str) -> TokenInfo | None:
        return self._by_address.get(str(address).lower())


def _parse_fee(value: Any) -> int:
    if isinstance(value, str) and value.strip().lower() == "dynamic":
        return DYNAMIC_FEE_FLAG
    return int(value)


class PoolRegistry:
    def __init__(self, pools: Iterable[PoolIdentity], tokens: TokenRegistry):
        self.tokens = tokens
        pools = tuple(pools)
        seen: set[str] = set()
        for pool in pools:
            if pool.name in seen:
                raise ValueError(f"Duplicate pool name {pool.name}")
            seen.add(pool.name)
            for symbol in (pool.token0, pool.token1):
                if symbol not in tokens:
                    raise ValueError(
                        f"Pool {pool.name} references unknown token {symbol}"
                    )
        self._pools = pools

    @classmethod
    def from_config(
        cls, pools: Iterable[Mapping[str, Any]], tokens: TokenRegistry
    ) -> PoolRegistry:
        return cls(
            (
                PoolIdentity(
                    name=p["name"],
                    token0=p["token0"],
                    token1=p["token1"],
                    fee=_parse_fee(p["fee"]),
                    tick_spacing=p["tick_spacing"],
                    hooks=p["hooks"],
                )
                for p in pools
            ),
            tokens,
        )

    def __iter__(self) -> Iterator[PoolIdentity]:
        return iter(self._pools)

    def __len__(self) -> int:
        return len(self._pools)

    @property
    def names(self) -> list[str]:
        return [p.name for p in self._pools]

    def get(self, name: str) -> PoolIdentity:
        for pool in self._pools:
            if pool.name == name:
                return pool
        raise KeyError(f"Unknown pool {name!r}; configured: {self.names}")

    def canonical_pair(self, pool: PoolIdentity) -> tuple[str, str]:
        """Pool symbols ordered as the PoolManager orders currency0/currency1."""
        a = self.tokens[pool.token0]
        b = self.tokens[pool.token1]
        if int(a.address, 16) < int(b.address, 16):
            return pool.token0, pool.token1
        return pool.token1, pool.token0

    def pool_key(self, pool: PoolIdentity) -> PoolKeyTuple:
        return build_pool_key(
            currency_a=self.tokens[pool.token0].address,
            currency_b=self.tokens[pool.token1].address,
            fee=pool.fee,
            tick_spacing=pool.tick_spacing,
            hooks=pool.hooks,
        )

    def pool_id(self, pool: PoolIdentity) -> str:
        return pool_id(self.pool_key(pool))

    def price_ids(self) -> dict[str, str]:
        """symbol -> reference price asset id for every token the pools use."""
        out: dict[str, str] = {}
        for pool in self._pools:
            for symbol in (pool.token0, pool.token1):
                price_id = self.tokens[symbol].price_id
                if price_id is None:
                    raise ValueError(f"Token {symbol} has no reference price id")
                out[symbol] = price_id
        return out


def load_registries(
    registry_config: Mapping[str, Any] | None = None,
) -> tuple[TokenRegistry, PoolRegistry]:
    registry_config = registry_config or {}
    tokens = TokenRegistry.from_config(registry_config.get("tokens") or TOKEN_INFO)
    pools = PoolRegistry.from_config(
        registry_config.get("pools") or POOL_CONFIGS, tokens
    )
    return tokens, pools
