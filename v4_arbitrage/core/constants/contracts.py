from v4_arbitrage.core.constants.chains import CHAIN_ID_BASE_SEPOLIA

# Uniswap v4 deployments used by the bot, keyed by chain id.
STATE_VIEW: dict[int, str] = {
    CHAIN_ID_BASE_SEPOLIA: "0x571291b572ed32ce6751a2cb2486ebee8defb9b4",
}

POOL_SWAP_TEST: dict[int, str] = {
    CHAIN_ID_BASE_SEPOLIA: "0x8b5bcc363dde2614281ad875bad385e0a785d3b9",
}

POOL_MANAGER: dict[int, str] = {
    CHAIN_ID_BASE_SEPOLIA: "0x5FbDB2315678afecb367f032d93F642f64180aa3",
}

CONTRACTS_BY_NAME: dict[str, dict[int, str]] = {
    "state_view": STATE_VIEW,
    "pool_swap_test": POOL_SWAP_TEST,
    "pool_manager": POOL_MANAGER,
}
