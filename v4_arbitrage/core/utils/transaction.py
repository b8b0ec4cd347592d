import asyncio
import math
from collections.abc import Callable
from typing import Any

from eth_account import Account
from loguru import logger
from web3 import AsyncWeb3
from web3.exceptions import ContractLogicError, TimeExhausted, Web3RPCError

from v4_arbitrage.core.constants.base import (
    DEFAULT_RECEIPT_POLL_INTERVAL,
    DEFAULT_TRANSACTION_TIMEOUT,
    GAS_BUFFER_MULTIPLIER,
    MAX_BASE_FEE_GROWTH_MULTIPLIER,
    SUGGESTED_GAS_PRICE_MULTIPLIER,
    SUGGESTED_PRIORITY_FEE_MULTIPLIER,
)
from v4_arbitrage.core.constants.chains import PRE_EIP_1559_CHAIN_IDS
from v4_arbitrage.core.errors import (
    ReceiptTimeout,
    TransactionRevertedError,
    TransientError,
)
from v4_arbitrage.core.utils.web3 import (
    NETWORK_ERRORS,
    RPC_ERRORS,
    get_transaction_chain_id,
    web3_from_chain_id,
    web3s_from_chain_id,
)


def _contract_error_reason(exc: ContractLogicError) -> str:
    message = getattr(exc, "message", None)
    return str(message) if message else str(exc)


def _get_transaction_from_address(transaction: dict) -> str:
    if "from" not in transaction:
        raise ValueError("Transaction does not contain from address")
    return AsyncWeb3.to_checksum_address(transaction["from"])


async def nonce_transaction(transaction: dict):
    transaction = transaction.copy()

    from_address = _get_transaction_from_address(transaction)

    async def _get_nonce(web3: AsyncWeb3, from_address: str) -> int:
        return await web3.eth.get_transaction_count(
            from_address, block_identifier="pending"
        )

    async with web3s_from_chain_id(get_transaction_chain_id(transaction)) as web3s:
        nonces = await asyncio.gather(
            *[_get_nonce(web3, from_address) for web3 in web3s]
        )

        transaction["nonce"] = max(nonces)

    return transaction


async def gas_price_transaction(transaction: dict):
    transaction = transaction.copy()

    async def _get_gas_price(web3: AsyncWeb3) -> int:
        return await web3.eth.gas_price

    async def _get_base_fee(web3: AsyncWeb3) -> int:
        latest_block = await web3.eth.get_block("latest")
        return latest_block.baseFeePerGas

    async def _get_priority_fee(web3: AsyncWeb3) -> int:
        lookback_blocks = 10
        percentile = 80
        fee_history = await web3.eth.fee_history(
            lookback_blocks, "latest", [percentile]
        )
        historical_priority_fees = [i[0] for i in fee_history.reward]
        return sum(historical_priority_fees) // len(historical_priority_fees)

    chain_id = get_transaction_chain_id(transaction)
    async with web3s_from_chain_id(chain_id) as web3s:
        if chain_id in PRE_EIP_1559_CHAIN_IDS:
            gas_prices = await asyncio.gather(*[_get_gas_price(web3) for web3 in web3s])
            transaction["gasPrice"] = int(
                max(gas_prices) * SUGGESTED_GAS_PRICE_MULTIPLIER
            )
        else:
            base_fees = await asyncio.gather(*[_get_base_fee(web3) for web3 in web3s])
            priority_fees = await asyncio.gather(
                *[_get_priority_fee(web3) for web3 in web3s]
            )

            base_fee = max(base_fees)
            priority_fee = max(priority_fees)

            transaction["maxFeePerGas"] = int(
                base_fee * MAX_BASE_FEE_GROWTH_MULTIPLIER
                + priority_fee * SUGGESTED_PRIORITY_FEE_MULTIPLIER
            )
            transaction["maxPriorityFeePerGas"] = int(
                priority_fee * SUGGESTED_PRIORITY_FEE_MULTIPLIER
            )

    return transaction


async def gas_limit_transaction(transaction: dict, gas_limit: int | None = None):
    transaction = transaction.copy()

    if gas_limit is not None:
        transaction["gas"] = int(gas_limit)
        return transaction

    # prevents RPCs from taking this as a serious limit
    transaction.pop("gas", None)

    async def _estimate_gas(web3: AsyncWeb3, transaction: dict) -> int | str:
        try:
            return await web3.eth.estimate_gas(transaction, block_identifier="latest")
        except ContractLogicError as e:
            return _contract_error_reason(e)
        except RPC_ERRORS as e:
            logger.info(
                f"Failed to estimate gas using {web3.provider.endpoint_uri}. Error: {e}"
            )
            return 0

    async with web3s_from_chain_id(get_transaction_chain_id(transaction)) as web3s:
        results = await asyncio.gather(
            *[_estimate_gas(web3, transaction) for web3 in web3s]
        )

    gas_limits = [r for r in results if isinstance(r, int)]
    reasons = [r for r in results if isinstance(r, str)]
    estimated = max(gas_limits, default=0)
    if estimated == 0:
        if reasons:
            raise TransactionRevertedError(
                None,
                reason=reasons[0],
                message=f"Transaction would revert: {reasons[0]}",
            )
        logger.error("Gas estimation failed on all RPCs")
        raise TransientError("Gas estimation failed on all RPCs")

    transaction["gas"] = int(math.ceil(estimated * GAS_BUFFER_MULTIPLIER))
    return transaction


async def broadcast_transaction(chain_id, signed_transaction: bytes) -> str:
    async with web3_from_chain_id(chain_id) as web3:
        tx_hash = await web3.eth.send_raw_transaction(signed_transaction)
        return tx_hash.hex()


async def wait_for_transaction_receipt(
    chain_id: int,
    txn_hash: str,
    poll_interval: float = DEFAULT_RECEIPT_POLL_INTERVAL,
    timeout: float = DEFAULT_TRANSACTION_TIMEOUT,
    confirmations: int = 1,
) -> dict:
    """Wait until `txn_hash` is mined (and confirmed) or `timeout` elapses.

    Raises ReceiptTimeout once the deadline passes; the transaction may still
    be mined afterwards.
    """
    if isinstance(txn_hash, str) and not txn_hash.startswith("0x"):
        txn_hash = f"0x{txn_hash}"

    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout

    async def _wait_for_receipt(web3: AsyncWeb3, tx_hash: str) -> dict:
        return await web3.eth.wait_for_transaction_receipt(
            tx_hash, poll_latency=poll_interval, timeout=timeout
        )

    async def _get_block_number(web3: AsyncWeb3) -> int:
        return await web3.eth.block_number

    async with web3s_from_chain_id(chain_id) as web3s:
        tasks = [
            asyncio.create_task(_wait_for_receipt(web3, txn_hash)) for web3 in web3s
        ]
        done, pending = await asyncio.wait(
            tasks, timeout=timeout, return_when=asyncio.FIRST_COMPLETED
        )
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)
        if not done:
            raise ReceiptTimeout(txn_hash, timeout)
        task = done.pop()
        exc = task.exception()
        if isinstance(exc, TimeExhausted):
            raise ReceiptTimeout(txn_hash, timeout) from exc
        if isinstance(exc, RPC_ERRORS):
            raise TransientError(
                f"Receipt lookup failed for {txn_hash}: {exc}"
            ) from exc
        receipt = dict(task.result())

        if receipt.get("status") == 0:
            raise TransactionRevertedError(txn_hash, receipt)

        target_block = receipt["blockNumber"] + confirmations - 1
        while (
            max(await asyncio.gather(*[_get_block_number(w) for w in web3s]))
            < target_block
        ):
            if loop.time() >= deadline:
                raise ReceiptTimeout(txn_hash, timeout)
            await asyncio.sleep(poll_interval)
        return receipt


async def replay_revert_reason(transaction: dict, block_number: int) -> str | None:
    """Re-run a mined, reverted transaction as eth_call to recover its reason."""
    call = {
        k: transaction[k]
        for k in ("from", "to", "data", "value", "gas")
        if k in transaction
    }
    async with web3_from_chain_id(get_transaction_chain_id(transaction)) as web3:
        try:
            await web3.eth.call(call, block_identifier=block_number)
        except ContractLogicError as exc:
            return _contract_error_reason(exc)
        except RPC_ERRORS as exc:
            logger.warning(f"Could not replay reverted transaction: {exc}")
    return None


async def send_transaction(
    transaction: dict,
    sign_callback: Callable,
    *,
    gas_limit: int | None = None,
    timeout: float = DEFAULT_TRANSACTION_TIMEOUT,
    confirmations: int = 1,
) -> dict[str, Any]:
    """Price, nonce, sign, broadcast and await a transaction; returns the receipt."""
    if sign_callback is None:
        raise ValueError("sign_callback must be provided to send transaction")

    logger.info(f"Broadcasting transaction {transaction}...")
    chain_id = get_transaction_chain_id(transaction)
    try:
        transaction = await gas_limit_transaction(transaction, gas_limit)
        transaction = await nonce_transaction(transaction)
        transaction = await gas_price_transaction(transaction)
        signed_transaction = await sign_callback(transaction)
        txn_hash = await broadcast_transaction(chain_id, signed_transaction)
    except Web3RPCError as exc:
        raise TransactionRevertedError(
            None, reason=str(exc), message=f"Transaction rejected by node: {exc}"
        ) from exc
    except NETWORK_ERRORS as exc:
        raise TransientError(f"RPC failure while sending transaction: {exc}") from exc

    if isinstance(txn_hash, str) and not txn_hash.startswith("0x"):
        txn_hash = f"0x{txn_hash}"
    logger.info(f"Transaction broadcasted: {txn_hash}")

    try:
        return await wait_for_transaction_receipt(
            chain_id, txn_hash, timeout=timeout, confirmations=confirmations
        )
    except TransactionRevertedError as exc:
        receipt = exc.receipt
        reason = None
        if receipt.get("blockNumber") is not None:
            reason = await replay_revert_reason(transaction, receipt["blockNumber"])
        gas_used = int(receipt.get("gasUsed") or 0)
        gas_limit_used = int(transaction.get("gas") or 0)
        oogs = bool(gas_used and gas_limit_used and gas_used >= gas_limit_used)
        suffix = f" gasUsed={gas_used} gasLimit={gas_limit_used}" + (
            " (likely out of gas)" if oogs else ""
        )
        detail = f": {reason}" if reason else ""
        raise TransactionRevertedError(
            txn_hash,
            receipt,
            reason=reason,
            message=f"Transaction reverted (status=0): {txn_hash}{detail}{suffix}",
        ) from exc


def sign_callback_from_private_key(private_key: str) -> Callable:
    account = Account.from_key(private_key)

    async def sign_callback(tx: dict) -> bytes:
        signed = account.sign_transaction(tx)
        return signed.raw_transaction

    return sign_callback


async def encode_call(
    *,
    target: str,
    abi: list[dict[str, Any]],
    fn_name: str,
    args: list[Any],
    from_address: str,
    chain_id: int,
    value: int = 0,
) -> dict[str, Any]:
    async with web3_from_chain_id(chain_id) as web3:
        try:
            contract = web3.eth.contract(
                address=web3.to_checksum_address(target),
                abi=abi,
            )
            data = contract.encode_abi(fn_name, args)
        except (ValueError, TypeError) as exc:
            raise ValueError(f"Failed to encode {fn_name}: {exc}") from exc

        return {
            "chainId": int(chain_id),
            "from": AsyncWeb3.to_checksum_address(from_address),
            "to": AsyncWeb3.to_checksum_address(target),
            "data": data,
            "value": int(value),
        }
