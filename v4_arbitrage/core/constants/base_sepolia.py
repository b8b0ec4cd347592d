from v4_arbitrage.core.constants.base import DYNAMIC_FEE_FLAG, ZERO_ADDRESS

# Test tokens deployed alongside the hooked pools on Base Sepolia.
TOKEN_INFO: dict[str, dict] = {
    "usdc": {
        "address": "0x24429b8f2C8ebA374Dd75C0a72BCf4dF4C545BeD",
        "decimals": 6,
        "price_id": "usd-coin",
    },
    "usdt": {
        "address": "0x9F785fEb65DBd0170bd6Ca1A045EEda44ae9b4dC",
        "decimals": 6,
        "price_id": "tether",
    },
    "eth": {
        "address": "0xE7711aa6557A69592520Bbe7D704D64438f160e7",
        "decimals": 18,
        "price_id": "ethereum",
    },
    "btc": {
        "address": "0x9d5F910c91E69ADDDB06919825305eFEa5c9c604",
        "decimals": 8,
        "price_id": "bitcoin",
    },
    "native_eth": {
        "address": ZERO_ADDRESS,
        "decimals": 18,
        "price_id": "ethereum",
    },
}

HOOK_ADDRESS = "0xd450f7f8e4C11EE8620a349f73e7aC3905Dfd000"

POOL_CONFIGS: list[dict] = [
    {
        "name": "aUSDC/aUSDT",
        "token0": "usdc",
        "token1": "usdt",
        "fee": DYNAMIC_FEE_FLAG,
        "tick_spacing": 1,
        "hooks": HOOK_ADDRESS,
    },
    {
        "name": "aUSDT/aETH",
        "token0": "usdt",
        "token1": "eth",
        "fee": DYNAMIC_FEE_FLAG,
        "tick_spacing": 100,
        "hooks": HOOK_ADDRESS,
    },
    {
        "name": "aBTC/aETH",
        "token0": "btc",
        "token1": "eth",
        "fee": DYNAMIC_FEE_FLAG,
        "tick_spacing": 60,
        "hooks": HOOK_ADDRESS,
    },
    {
        "name": "aUSDC/aBTC",
        "token0": "usdc",
        "token1": "btc",
        "fee": DYNAMIC_FEE_FLAG,
        "tick_spacing": 80,
        "hooks": HOOK_ADDRESS,
    },
    {
        "name": "ETH/aUSDT",
        "token0": "native_eth",
        "token1": "usdt",
        "fee": DYNAMIC_FEE_FLAG,
        "tick_spacing": 45,
        "hooks": HOOK_ADDRESS,
    },
]
