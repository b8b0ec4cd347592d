import asyncio
from contextlib import asynccontextmanager

import aiohttp
from web3 import AsyncHTTPProvider, AsyncWeb3
from web3.exceptions import Web3RPCError

from v4_arbitrage.core.config import get_rpc_urls
from v4_arbitrage.core.constants.base import DEFAULT_HTTP_TIMEOUT

NETWORK_ERRORS = (aiohttp.ClientError, asyncio.TimeoutError, OSError)
# Node-side RPC errors plus transport failures; contract reverts are not included.
RPC_ERRORS = (Web3RPCError, *NETWORK_ERRORS)


def _get_rpcs_for_chain_id(chain_id: int) -> list:
    mapping = get_rpc_urls()
    rpcs = mapping.get(str(chain_id))
    if rpcs is None:
        rpcs = mapping.get(chain_id)  # allow int keys
    if rpcs is None:
        raise ValueError(f"No RPCs configured for chain ID {chain_id}")
    if isinstance(rpcs, str):
        return [rpcs]
    return rpcs


def _get_web3(rpc: str) -> AsyncWeb3:
    provider = AsyncHTTPProvider(
        rpc,
        request_kwargs={"timeout": aiohttp.ClientTimeout(total=DEFAULT_HTTP_TIMEOUT)},
    )
    return AsyncWeb3(provider)


def get_transaction_chain_id(transaction: dict) -> int:
    if "chainId" not in transaction:
        raise ValueError("Transaction does not contain chainId")
    return int(transaction["chainId"])


def get_web3s_from_chain_id(chain_id: int) -> list[AsyncWeb3]:
    rpcs = _get_rpcs_for_chain_id(chain_id)
    return [_get_web3(rpc) for rpc in rpcs]


@asynccontextmanager
async def web3s_from_chain_id(chain_id: int):
    web3s = get_web3s_from_chain_id(chain_id)
    try:
        yield web3s
    finally:
        for web3 in web3s:
            await web3.provider.disconnect()


@asynccontextmanager
async def web3_from_chain_id(chain_id: int):
    web3s = get_web3s_from_chain_id(chain_id)
    try:
        yield web3s[0]
    finally:
        for web3 in web3s:
            await web3.provider.disconnect()
