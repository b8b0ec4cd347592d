from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock, patch

import aiohttp
import pytest
from eth_abi import encode as abi_encode
from web3.exceptions import TransactionNotFound

from v4_arbitrage.core.constants.uniswap_v4_abi import SWAP_EVENT_DATA_TYPES
from v4_arbitrage.core.errors import TransientError
from v4_arbitrage.core.registry import load_registries
from v4_arbitrage.reporting.volume import (
    SWAP_TOPIC,
    TRANSFER_TOPIC,
    decode_swap_event,
    decode_swap_volume,
    get_swap_volume_from_tx,
)

SENDER = "0x" + "11" * 20
POOL_MANAGER = "0x" + "22" * 20
POOL_ID = "0x" + "ab" * 32
BTC = "0x9d5f910c91e69adddb06919825305efea5c9c604"
ETH = "0xe7711aa6557a69592520bbe7d704d64438f160e7"
MODULE = "v4_arbitrage.reporting.volume"


@pytest.fixture
def tokens():
    return load_registries()[0]


def _padded(address: str) -> bytes:
    return bytes(12) + bytes.fromhex(address[2:])


def _swap_log(amount0=-50_000_000, amount1=10**19):
    return {
        "address": POOL_MANAGER,
        "topics": [SWAP_TOPIC, bytes.fromhex(POOL_ID[2:]), _padded(SENDER)],
        "data": abi_encode(
            SWAP_EVENT_DATA_TYPES, [amount0, amount1, 2**96, 10**18, -120, 3000]
        ),
    }


def _transfer_log(token, src, dst, value):
    return {
        "address": token,
        "topics": [TRANSFER_TOPIC, _padded(src), _padded(dst)],
        "data": abi_encode(["uint256"], [value]),
    }


def _receipt(*logs):
    return {"from": SENDER, "logs": list(logs)}


def test_decode_swap_event():
    event = decode_swap_event(_swap_log())

    assert event.pool_id == POOL_ID
    assert event.sender.lower() == SENDER
    assert (event.amount0, event.amount1) == (-50_000_000, 10**19)
    assert event.sqrt_price_x96 == 2**96
    assert event.tick == -120
    assert event.fee == 3000


def test_sold_and_bought_legs_use_registry_decimals(tokens):
    receipt = _receipt(
        _transfer_log(BTC, SENDER, POOL_MANAGER, 50_000_000),
        _swap_log(),
        _transfer_log(ETH, POOL_MANAGER, SENDER, 10**19),
    )
    volume = decode_swap_volume(receipt, tokens)

    assert volume.sold.symbol == "BTC"
    assert volume.sold.amount == Decimal("0.5")
    assert volume.sold.address.lower() == BTC
    assert volume.bought.symbol == "ETH"
    assert volume.bought.amount == Decimal(10)
    assert volume.swap.pool_id == POOL_ID


def test_unknown_token_falls_back_to_18_decimals(tokens):
    unknown = "0x" + "33" * 20
    receipt = _receipt(
        _swap_log(),
        _transfer_log(unknown, SENDER, POOL_MANAGER, 2 * 10**18),
        _transfer_log(ETH, POOL_MANAGER, SENDER, 10**18),
    )
    volume = decode_swap_volume(receipt, tokens)

    assert volume.sold.symbol is None
    assert volume.sold.amount == Decimal(2)


def test_no_swap_event(tokens):
    receipt = _receipt(_transfer_log(BTC, SENDER, POOL_MANAGER, 1))
    assert decode_swap_volume(receipt, tokens) is None


def test_missing_bought_leg(tokens):
    receipt = _receipt(_swap_log(), _transfer_log(BTC, SENDER, POOL_MANAGER, 1))
    assert decode_swap_volume(receipt, tokens) is None


def test_logs_without_topics_are_ignored(tokens):
    receipt = _receipt(
        {"address": POOL_MANAGER, "topics": [], "data": b""},
        _swap_log(),
        _transfer_log(BTC, SENDER, POOL_MANAGER, 1),
        _transfer_log(ETH, POOL_MANAGER, SENDER, 1),
    )
    assert decode_swap_volume(receipt, tokens) is not None


def _patched_web3(get_receipt):
    web3 = MagicMock()
    web3.eth.get_transaction_receipt = get_receipt
    ctx = MagicMock()
    ctx.__aenter__ = AsyncMock(return_value=web3)
    ctx.__aexit__ = AsyncMock(return_value=None)
    return patch(f"{MODULE}.web3_from_chain_id", return_value=ctx)


@pytest.mark.asyncio
class TestGetSwapVolumeFromTx:
    async def test_fetches_receipt(self, tokens):
        receipt = _receipt(
            _swap_log(),
            _transfer_log(BTC, SENDER, POOL_MANAGER, 50_000_000),
            _transfer_log(ETH, POOL_MANAGER, SENDER, 10**19),
        )
        get_receipt = AsyncMock(return_value=receipt)
        with _patched_web3(get_receipt):
            volume = await get_swap_volume_from_tx("0xfeed", tokens, 84532)

        get_receipt.assert_awaited_once_with("0xfeed")
        assert volume.sold.symbol == "BTC"

    async def test_unknown_transaction(self, tokens):
        get_receipt = AsyncMock(side_effect=TransactionNotFound("missing"))
        with _patched_web3(get_receipt):
            assert await get_swap_volume_from_tx("0xfeed", tokens, 84532) is None

    async def test_rpc_failure_is_transient(self, tokens):
        get_receipt = AsyncMock(side_effect=aiohttp.ClientConnectionError("reset"))
        with _patched_web3(get_receipt):
            with pytest.raises(TransientError, match="Receipt lookup failed"):
                await get_swap_volume_from_tx("0xfeed", tokens, 84532)
