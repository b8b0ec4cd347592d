ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"

GAS_BUFFER_MULTIPLIER = 1.1
SUGGESTED_PRIORITY_FEE_MULTIPLIER = 1.5
SUGGESTED_GAS_PRICE_MULTIPLIER = 1.5
MAX_BASE_FEE_GROWTH_MULTIPLIER = 2

# Gas budget used for swaps when the caller does not pass one. PoolSwapTest
# swaps through a hooked pool are not reliably estimable on testnets.
DEFAULT_SWAP_GAS_LIMIT = 500_000

# Timeout constants (seconds)
DEFAULT_HTTP_TIMEOUT = 30.0  # HTTP client timeout
DEFAULT_TRANSACTION_TIMEOUT = 180  # Transaction receipt timeout (seconds)
DEFAULT_RECEIPT_POLL_INTERVAL = 0.5

MAX_UINT256 = 2**256 - 1
MAX_UINT160 = 2**160 - 1

Q96 = 2**96

# Uniswap v4 LPFeeLibrary.DYNAMIC_FEE_FLAG
DYNAMIC_FEE_FLAG = 0x800000
MAX_LP_FEE = 1_000_000

# TickMath bounds for sqrtPriceX96
MIN_SQRT_PRICE = 4295128739
MAX_SQRT_PRICE = 1461446703485210103287273052203988822378723970342

DEFAULT_PRICE_API_BASE_URL = "https://api.coingecko.com/api/v3"
