from collections.abc import Callable
from typing import Any

from web3 import AsyncWeb3

from v4_arbitrage.core.constants.base import DEFAULT_TRANSACTION_TIMEOUT, MAX_UINT256
from v4_arbitrage.core.constants.erc20_abi import ERC20_ABI
from v4_arbitrage.core.errors import TransientError

NATIVE_TOKEN_ADDRESSES: set = {
    "0x0000000000000000000000000000000000000000",
    "0xeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeee",
}


def is_native_token(token_address: str | None) -> bool:
    if token_address is None:
        return True
    normalized = str(token_address).strip().lower()
    if normalized in ("", "native"):
        return True
    return normalized in NATIVE_TOKEN_ADDRESSES


async def get_token_balance(
    token_address: str | None,
    chain_id: int,
    wallet_address: str,
    *,
    web3: AsyncWeb3 | None = None,
    block_identifier: str | int = "pending",
) -> int:
    async def _read_with_web3(w3: AsyncWeb3) -> int:
        checksum_wallet = w3.to_checksum_address(wallet_address)

        if is_native_token(token_address):
            balance = await w3.eth.get_balance(
                checksum_wallet,
                block_identifier=block_identifier,
            )
            return int(balance)

        checksum_token = w3.to_checksum_address(str(token_address))
        contract = w3.eth.contract(address=checksum_token, abi=ERC20_ABI)
        balance = await contract.functions.balanceOf(checksum_wallet).call(
            block_identifier=block_identifier
        )
        return int(balance)

    try:
        if web3 is None:
            async with web3_from_chain_id(chain_id) as w3:
                return await _read_with_web3(w3)
        return await _read_with_web3(web3)
    except RPC_ERRORS as exc:
        raise TransientError(
            f"Balance read failed for {wallet_address}: {exc}"
        ) from exc


async def get_token_allowance(
    token_address: str, chain_id: int, owner_address: str, spender_address: str
) -> int:
    async with web3_from_chain_id(chain_id) as web3:
        contract = web3.eth.contract(
            address=web3.to_checksum_address(token_address), abi=ERC20_ABI
        )
        try:
            allowance = await contract.functions.allowance(
                web3.to_checksum_address(owner_address),
                web3.to_checksum_address(spender_address),
            ).call(block_identifier="pending")
        except RPC_ERRORS as exc:
            raise TransientError(
                f"Allowance read failed for {token_address}: {exc}"
            ) from exc
        return int(allowance)


async def build_approve_transaction(
    from_address: str,
    chain_id: int,
    token_address: str,
    spender_address: str,
    amount: int,
) -> dict:
    async with web3_from_chain_id(chain_id) as web3:
        contract = web3.eth.contract(
            address=web3.to_checksum_address(token_address), abi=ERC20_ABI
        )
        data = contract.encode_abi(
            "approve",
            [
                web3.to_checksum_address(spender_address),
                amount,
            ],
        )
        return {
            "to": web3.to_checksum_address(token_address),
            "from": web3.to_checksum_address(from_address),
            "data": data,
            "chainId": chain_id,
        }


async def ensure_allowance(
    *,
    token_address: str,
    owner: str,
    spender: str,
    amount: int,
    chain_id: int,
    signing_callback: Callable,
    approval_amount: int | None = MAX_UINT256,
    timeout: float = DEFAULT_TRANSACTION_TIMEOUT,
) -> dict[str, Any] | None:
    """Approve `spender` for `token_address` when the allowance is below `amount`.

    Returns the approval receipt, or None when the existing allowance already
    covers `amount`. The default approval is unbounded and outlives this call.
    """
    allowance = await get_token_allowance(token_address, chain_id, owner, spender)
    if allowance >= amount:
        return None

    approve_tx = await build_approve_transaction(
        from_address=owner,
        chain_id=chain_id,
        token_address=token_address,
        spender_address=spender,
        amount=approval_amount if approval_amount is not None else amount,
    )
    return await send_transaction(approve_tx, signing_callback, timeout=timeout)


from v4_arbitrage.core.utils.transaction import send_transaction  # noqa: E402
from v4_arbitrage.core.utils.web3 import RPC_ERRORS, web3_from_chain_id  # noqa: E402
