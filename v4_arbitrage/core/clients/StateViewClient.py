from __future__ import annotations

from dataclasses import dataclass

from hexbytes import HexBytes
from loguru import logger
from web3.exceptions import BadFunctionCallOutput, ContractLogicError

from v4_arbitrage.core.config import get_chain_id, get_contract_address
from v4_arbitrage.core.constants.uniswap_v4_abi import STATE_VIEW_ABI
from v4_arbitrage.core.errors import PoolNotFound, TransientError
from v4_arbitrage.core.utils.web3 import RPC_ERRORS, web3_from_chain_id


@dataclass(frozen=True)
class Slot0:
    sqrt_price_x96: int
    tick: int
    protocol_fee: int
    lp_fee: int


class StateViewClient:
    """Read-only pool state through the Uniswap v4 StateView lens."""

    def __init__(self, chain_id: int | None = None, address: str | None = None):
        self.chain_id = int(chain_id) if chain_id is not None else get_chain_id()
        self.address = address or get_contract_address("state_view", self.chain_id)

    async def get_slot0(self, pool_id: str) -> Slot0:
        pool_id_bytes = HexBytes(pool_id)
        if len(pool_id_bytes) != 32:
            raise ValueError(f"Pool id must be 32 bytes, got {pool_id}")

        async with web3_from_chain_id(self.chain_id) as web3:
            contract = web3.eth.contract(
                address=web3.to_checksum_address(self.address), abi=STATE_VIEW_ABI
            )
            try:
                sqrt_price_x96, tick, protocol_fee, lp_fee = (
                    await contract.functions.getSlot0(bytes(pool_id_bytes)).call()
                )
            except (ContractLogicError, BadFunctionCallOutput) as exc:
                raise PoolNotFound(pool_id, str(exc)) from exc
            except RPC_ERRORS as exc:
                raise TransientError(f"getSlot0({pool_id}) failed: {exc}") from exc

        # StateView returns zeros for ids the PoolManager has never initialised
        if int(sqrt_price_x96) == 0:
            raise PoolNotFound(pool_id, "not initialized")

        slot0 = Slot0(
            sqrt_price_x96=int(sqrt_price_x96),
            tick=int(tick),
            protocol_fee=int(protocol_fee),
            lp_fee=int(lp_fee),
        )
        logger.debug(f"slot0 for {pool_id}: {slot0}")
        return slot0
