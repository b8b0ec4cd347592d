# Minimal ABIs for Uniswap v4 StateView (reads) + PoolSwapTest (swaps).

POOL_KEY_COMPONENTS = [
    {"name": "currency0", "type": "address"},
    {"name": "currency1", "type": "address"},
    {"name": "fee", "type": "uint24"},
    {"name": "tickSpacing", "type": "int24"},
    {"name": "hooks", "type": "address"},
]

POOL_KEY_ABI_TYPES = ["address", "address", "uint24", "int24", "address"]

STATE_VIEW_ABI = [
    {
        "name": "getSlot0",
        "type": "function",
        "stateMutability": "view",
        "inputs": [{"name": "poolId", "type": "bytes32"}],
        "outputs": [
            {"name": "sqrtPriceX96", "type": "uint160"},
            {"name": "tick", "type": "int24"},
            {"name": "protocolFee", "type": "uint24"},
            {"name": "lpFee", "type": "uint24"},
        ],
    }
]

POOL_SWAP_TEST_ABI = [
    {
        "name": "swap",
        "type": "function",
        "stateMutability": "payable",
        "inputs": [
            {
                "name": "key",
                "type": "tuple",
                "components": POOL_KEY_COMPONENTS,
            },
            {
                "name": "params",
                "type": "tuple",
                "components": [
                    {"name": "zeroForOne", "type": "bool"},
                    {"name": "amountSpecified", "type": "int256"},
                    {"name": "sqrtPriceLimitX96", "type": "uint160"},
                ],
            },
            {
                "name": "testSettings",
                "type": "tuple",
                "components": [
                    {"name": "takeClaims", "type": "bool"},
                    {"name": "settleUsingBurn", "type": "bool"},
                ],
            },
            {"name": "hookData", "type": "bytes"},
        ],
        "outputs": [{"name": "delta", "type": "int256"}],
    }
]

# PoolManager Swap event; `id` and `sender` are indexed.
SWAP_EVENT_SIGNATURE = (
    "Swap(bytes32,address,int128,int128,uint160,uint128,int24,uint24)"
)
SWAP_EVENT_DATA_TYPES = ["int128", "int128", "uint160", "uint128", "int24", "uint24"]
