from __future__ import annotations

from eth_abi import encode as abi_encode
from eth_utils import keccak, to_checksum_address

from v4_arbitrage.core.constants.base import DYNAMIC_FEE_FLAG, MAX_LP_FEE
from v4_arbitrage.core.constants.uniswap_v4_abi import POOL_KEY_ABI_TYPES

PoolKeyTuple = tuple[str, str, int, int, str]


def sort_currencies(currency_a: str, currency_b: str) -> tuple[str, str]:
    a = to_checksum_address(currency_a)
    b = to_checksum_address(currency_b)
    return (a, b) if int(a, 16) < int(b, 16) else (b, a)


def is_dynamic_fee(fee: int) -> bool:
    return int(fee) == DYNAMIC_FEE_FLAG


def validate_fee(fee: int) -> int:
    fee = int(fee)
    if is_dynamic_fee(fee):
        return fee
    if not 0 <= fee <= MAX_LP_FEE:
        raise ValueError(
            f"Fee {fee} is neither the dynamic fee flag nor within [0, {MAX_LP_FEE}]"
        )
    return fee


def build_pool_key(
    *,
    currency_a: str,
    currency_b: str,
    fee: int,
    tick_spacing: int,
    hooks: str,
) -> PoolKeyTuple:
    if int(currency_a, 16) == int(currency_b, 16):
        raise ValueError(f"Pool currencies must differ, got {currency_a} twice")
    c0, c1 = sort_currencies(currency_a, currency_b)
    return (c0, c1, validate_fee(fee), int(tick_spacing), to_checksum_address(hooks))


def encode_pool_key(key: PoolKeyTuple) -> bytes:
    c0, c1, fee, tick_spacing, hooks = key
    return abi_encode(
        POOL_KEY_ABI_TYPES,
        [
            to_checksum_address(c0),
            to_checksum_address(c1),
            int(fee),
            int(tick_spacing),
            to_checksum_address(hooks),
        ],
    )


def pool_id(key: PoolKeyTuple) -> str:
    """keccak256(abi.encode(key)) for the key exactly as given.

    No reordering happens here: a key whose currencies are not sorted hashes to
    an id the PoolManager never produces.
    """
    return "0x" + keccak(encode_pool_key(key)).hex()


def compute_pool_id(
    token0_address: str,
    token1_address: str,
    fee: int,
    tick_spacing: int,
    hooks: str,
) -> str:
    key = build_pool_key(
        currency_a=token0_address,
        currency_b=token1_address,
        fee=fee,
        tick_spacing=tick_spacing,
        hooks=hooks,
    )
    return pool_id(key)
