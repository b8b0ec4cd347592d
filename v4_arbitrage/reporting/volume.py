"""Swap volume reconstructed from a mined transaction's logs."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from eth_abi import decode as abi_decode
from eth_utils import keccak, to_checksum_address
from hexbytes import HexBytes
from loguru import logger
from web3.exceptions import TransactionNotFound

from v4_arbitrage.core.constants.erc20_abi import TRANSFER_EVENT_SIGNATURE
from v4_arbitrage.core.constants.uniswap_v4_abi import (
    SWAP_EVENT_DATA_TYPES,
    SWAP_EVENT_SIGNATURE,
)
from v4_arbitrage.core.errors import TransientError
from v4_arbitrage.core.registry import TokenRegistry
from v4_arbitrage.core.utils.units import from_erc20_raw
from v4_arbitrage.core.utils.web3 import RPC_ERRORS, web3_from_chain_id

SWAP_TOPIC = HexBytes(keccak(text=SWAP_EVENT_SIGNATURE))
TRANSFER_TOPIC = HexBytes(keccak(text=TRANSFER_EVENT_SIGNATURE))

UNKNOWN_TOKEN_DECIMALS = 18


@dataclass(frozen=True)
class SwapEvent:
    pool_id: str
    sender: str
    amount0: int
    amount1: int
    sqrt_price_x96: int
    liquidity: int
    tick: int
    fee: int


@dataclass(frozen=True)
class VolumeLeg:
    address: str
    amount: Decimal
    symbol: str | None


@dataclass(frozen=True)
class SwapVolume:
    swap: SwapEvent
    sold: VolumeLeg
    bought: VolumeLeg


def _topic_address(topic: Any) -> str:
    return to_checksum_address(HexBytes(topic)[-20:])


def decode_swap_event(log: Mapping[str, Any]) -> SwapEvent:
    topics = [HexBytes(t) for t in log["topics"]]
    amount0, amount1, sqrt_price_x96, liquidity, tick, fee = abi_decode(
        SWAP_EVENT_DATA_TYPES, bytes(HexBytes(log["data"]))
    )
    return SwapEvent(
        pool_id="0x" + topics[1].hex().removeprefix("0x"),
        sender=_topic_address(topics[2]),
        amount0=amount0,
        amount1=amount1,
        sqrt_price_x96=sqrt_price_x96,
        liquidity=liquidity,
        tick=tick,
        fee=fee,
    )


def _leg(log: Mapping[str, Any], value: int, tokens: TokenRegistry) -> VolumeLeg:
    address = to_checksum_address(log["address"])
    info = tokens.find_by_address(address)
    decimals = info.decimals if info else UNKNOWN_TOKEN_DECIMALS
    return VolumeLeg(
        address=address,
        amount=from_erc20_raw(value, decimals),
        symbol=info.symbol.upper() if info else None,
    )


def decode_swap_volume(
    receipt: Mapping[str, Any], tokens: TokenRegistry
) -> SwapVolume | None:
    """Pair the PoolManager Swap event with the sender's ERC-20 transfers.

    The sold leg is the last transfer out of the transaction sender, the
    bought leg the last transfer into it. Returns None when either is missing.
    """
    swap_log = None
    transfer_logs = []
    for log in receipt.get("logs", []):
        topics = log.get("topics") or []
        if not topics:
            continue
        topic0 = HexBytes(topics[0])
        if topic0 == SWAP_TOPIC:
            swap_log = log
        elif topic0 == TRANSFER_TOPIC and len(topics) == 3:
            transfer_logs.append(log)

    if swap_log is None:
        logger.warning("No Swap event found in the transaction logs")
        return None

    sender = str(receipt["from"]).lower()
    sold = bought = None
    for log in transfer_logs:
        src = _topic_address(log["topics"][1]).lower()
        dst = _topic_address(log["topics"][2]).lower()
        (value,) = abi_decode(["uint256"], bytes(HexBytes(log["data"])))
        if src == sender:
            sold = _leg(log, value, tokens)
        elif dst == sender:
            bought = _leg(log, value, tokens)

    if sold is None or bought is None:
        logger.warning("Could not determine sold/bought tokens from Transfer events")
        return None

    return SwapVolume(swap=decode_swap_event(swap_log), sold=sold, bought=bought)


async def get_swap_volume_from_tx(
    txn_hash: str, tokens: TokenRegistry, chain_id: int
) -> SwapVolume | None:
    async with web3_from_chain_id(chain_id) as web3:
        try:
            receipt = await web3.eth.get_transaction_receipt(txn_hash)
        except TransactionNotFound:
            logger.error(f"Transaction receipt not found for {txn_hash}")
            return None
        except RPC_ERRORS as exc:
            raise TransientError(
                f"Receipt lookup failed for {txn_hash}: {exc}"
            ) from exc
    return decode_swap_volume(receipt, tokens)
