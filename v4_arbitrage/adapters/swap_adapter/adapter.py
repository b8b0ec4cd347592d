from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from eth_account import Account
from eth_utils import to_checksum_address
from hexbytes import HexBytes

from v4_arbitrage.core.adapters.BaseAdapter import BaseAdapter
from v4_arbitrage.core.config import get_chain_id, get_contract_address
from v4_arbitrage.core.constants.base import (
    DEFAULT_SWAP_GAS_LIMIT,
    DEFAULT_TRANSACTION_TIMEOUT,
)
from v4_arbitrage.core.constants.uniswap_v4_abi import POOL_SWAP_TEST_ABI
from v4_arbitrage.core.errors import (
    ApprovalFailed,
    SwapReverted,
    TransactionRevertedError,
)
from v4_arbitrage.core.registry import PoolRegistry
from v4_arbitrage.core.utils.tokens import (
    ensure_allowance,
    get_token_balance,
    is_native_token,
)
from v4_arbitrage.core.utils.transaction import (
    encode_call,
    send_transaction,
    sign_callback_from_private_key,
)
from v4_arbitrage.core.utils.units import format_token_amount
from v4_arbitrage.strategies.deviation_arb.types import SwapIntent

# (takeClaims, settleUsingBurn): settle and take real ERC-20s, not claims
DEFAULT_TEST_SETTINGS = (False, False)

_SIGNER_LOCKS: dict[str, asyncio.Lock] = {}


def signer_lock(address: str) -> asyncio.Lock:
    key = address.lower()
    lock = _SIGNER_LOCKS.get(key)
    if lock is None:
        lock = _SIGNER_LOCKS[key] = asyncio.Lock()
    return lock


@dataclass(frozen=True)
class WalletContext:
    address: str
    sign_callback: Callable

    @classmethod
    def from_private_key(cls, private_key: str) -> WalletContext:
        account = Account.from_key(private_key)
        return cls(
            address=account.address,
            sign_callback=sign_callback_from_private_key(private_key),
        )


def calldata_words(data: str | bytes) -> list[str]:
    """Selector followed by the 32-byte argument words, hex encoded."""
    raw = bytes(HexBytes(data))
    words = [raw[:4].hex()]
    words.extend(raw[i : i + 32].hex() for i in range(4, len(raw), 32))
    return words


class SwapAdapter(BaseAdapter):
    adapter_type = "UNISWAP_V4_SWAP"

    def __init__(
        self,
        config: dict[str, Any] | None,
        *,
        pools: PoolRegistry,
        wallet: WalletContext,
    ) -> None:
        super().__init__("swap_adapter", config)
        self.pools = pools
        self.tokens = pools.tokens
        self.wallet = wallet
        self.chain_id = int(self.config.get("chain_id") or get_chain_id())
        self.router = to_checksum_address(
            self.config.get("pool_swap_test")
            or get_contract_address("pool_swap_test", self.chain_id)
        )

    async def execute(
        self,
        intent: SwapIntent,
        *,
        gas_limit: int | None = None,
        timeout: float = DEFAULT_TRANSACTION_TIMEOUT,
        hook_data: bytes = b"",
        test_settings: tuple[bool, bool] = DEFAULT_TEST_SETTINGS,
    ) -> dict[str, Any]:
        """Approve if needed, swap through PoolSwapTest and return the receipt.

        Approval and swap for one signer never interleave with another
        execution by the same signer. A confirmed approval stays in place
        even if the swap then reverts.
        """
        pool = self.pools.get(intent.pool_name)
        key = self.pools.pool_key(pool)
        token_in = self.tokens[intent.input_symbol]
        expected = key[0] if intent.zero_for_one else key[1]
        if token_in.address != expected:
            raise ValueError(
                f"{intent.input_symbol} is not the input currency of "
                f"{pool.name} for zeroForOne={intent.zero_for_one}"
            )

        amount_in = intent.amount_in
        async with signer_lock(self.wallet.address):
            balance = await get_token_balance(
                token_in.address, self.chain_id, self.wallet.address
            )
            self.logger.info(
                f"{self.wallet.address} holds "
                f"{format_token_amount(balance, token_in.decimals, token_in.symbol)}; "
                f"swapping "
                f"{format_token_amount(amount_in, token_in.decimals, token_in.symbol)}"
            )
            if balance < amount_in:
                self.logger.warning(
                    f"Balance below swap amount for {token_in.symbol}; "
                    "the swap is expected to revert"
                )

            if not is_native_token(token_in.address):
                await self._ensure_allowance(token_in.address, amount_in, timeout)

            tx = await encode_call(
                target=self.router,
                abi=POOL_SWAP_TEST_ABI,
                fn_name="swap",
                args=[
                    key,
                    (
                        intent.zero_for_one,
                        intent.amount_specified,
                        intent.sqrt_price_limit,
                    ),
                    test_settings,
                    hook_data,
                ],
                from_address=self.wallet.address,
                chain_id=self.chain_id,
                value=amount_in if is_native_token(token_in.address) else 0,
            )
            for i, word in enumerate(calldata_words(tx["data"])):
                self.logger.debug(f"calldata[{i}] {word}")

            try:
                receipt = await send_transaction(
                    tx,
                    self.wallet.sign_callback,
                    gas_limit=gas_limit or DEFAULT_SWAP_GAS_LIMIT,
                    timeout=timeout,
                )
            except TransactionRevertedError as exc:
                raise SwapReverted(
                    exc.txn_hash,
                    exc.receipt,
                    reason=exc.reason,
                    message=f"Swap on {pool.name} failed: {exc}",
                ) from exc

        self.logger.info(
            f"Swap on {pool.name} included in block {receipt.get('blockNumber')}"
        )
        return receipt

    async def _ensure_allowance(
        self, token_address: str, amount: int, timeout: float
    ) -> None:
        try:
            receipt = await ensure_allowance(
                token_address=token_address,
                owner=self.wallet.address,
                spender=self.router,
                amount=amount,
                chain_id=self.chain_id,
                signing_callback=self.wallet.sign_callback,
                timeout=timeout,
            )
        except TransactionRevertedError as exc:
            raise ApprovalFailed(
                exc.txn_hash,
                exc.receipt,
                reason=exc.reason,
                message=f"Approval of {token_address} failed: {exc}",
            ) from exc
        if receipt is not None:
            self.logger.info(f"Approved {self.router} to spend {token_address}")
