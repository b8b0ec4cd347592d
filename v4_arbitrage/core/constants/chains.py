CHAIN_ID_BASE_SEPOLIA = 84532

PRE_EIP_1559_CHAIN_IDS: set[int] = set()

DEFAULT_CHAIN_ID = CHAIN_ID_BASE_SEPOLIA

DEFAULT_RPC_URLS: dict[int, list[str]] = {
    CHAIN_ID_BASE_SEPOLIA: ["https://base-sepolia.drpc.org"],
}
