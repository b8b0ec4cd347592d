import pytest

from v4_arbitrage.core.constants.base import DYNAMIC_FEE_FLAG, ZERO_ADDRESS
from v4_arbitrage.core.constants.base_sepolia import POOL_CONFIGS, TOKEN_INFO
from v4_arbitrage.core.registry import (
    PoolIdentity,
    PoolRegistry,
    TokenInfo,
    TokenRegistry,
    load_registries,
)
from v4_arbitrage.core.utils.uniswap_v4 import compute_pool_id

HOOKS = "0xd450f7f8e4C11EE8620a349f73e7aC3905Dfd000"

# Ids of the hooked pools as initialised by the Base Sepolia PoolManager.
DEPLOYED_POOL_IDS = {
    "aUSDC/aUSDT": "0xfaa0e80397dda369eb68f6f67c9cd4d4884841f1417078e20844addc11170127",
    "aUSDT/aETH": "0x4e1b037b56e13bea1dfe20e8f592b95732cc52b5b10777b9f9bea856c145e7c7",
    "aBTC/aETH": "0xe9b5f2692da366148c42074373f37d00f368edcae46bcf7e39dd1aab5207d7c2",
    "aUSDC/aBTC": "0x8392f09ccc3c387d027d189f13a1f1f2e9d73f34011191a3d58157b9b2bf8bdd",
    "ETH/aUSDT": "0xe6a2c6909de49149dced232f472247979fdc098cd2de74b0923e3cefb5602c15",
}


@pytest.fixture
def registries():
    return load_registries()


class TestTokenRegistry:
    def test_defaults_loaded(self, registries):
        tokens, _ = registries
        assert set(tokens) == set(TOKEN_INFO)
        assert tokens["btc"].decimals == 8
        assert tokens["usdc"].price_id == "usd-coin"

    def test_find_by_address_is_case_insensitive(self, registries):
        tokens, _ = registries
        address = TOKEN_INFO["eth"]["address"]
        assert tokens.find_by_address(address.lower()).symbol == "eth"
        assert tokens.find_by_address(address.upper().replace("0X", "0x")) is not None
        assert tokens.find_by_address(HOOKS) is None

    def test_unknown_symbol(self, registries):
        tokens, _ = registries
        with pytest.raises(KeyError, match="Unknown token symbol"):
            tokens["doge"]

    def test_native_token_flag(self, registries):
        tokens, _ = registries
        assert tokens["native_eth"].is_native
        assert tokens["native_eth"].address == ZERO_ADDRESS
        assert not tokens["usdc"].is_native

    def test_token_info_validation(self):
        with pytest.raises(ValueError, match="Invalid address"):
            TokenInfo("bad", "0x1234", 18)
        with pytest.raises(ValueError, match="Invalid decimals"):
            TokenInfo("bad", HOOKS, 256)

    def test_duplicate_symbol_rejected(self):
        token = TokenInfo("usdc", TOKEN_INFO["usdc"]["address"], 6)
        with pytest.raises(ValueError, match="Duplicate token"):
            TokenRegistry([token, token])

    def test_registry_is_read_only(self, registries):
        tokens, _ = registries
        with pytest.raises(TypeError):
            tokens["usdc"] = None  # type: ignore[index]


class TestPoolRegistry:
    def test_defaults_in_registry_order(self, registries):
        _, pools = registries
        assert pools.names == [p["name"] for p in POOL_CONFIGS]
        assert all(p.dynamic_fee for p in pools)

    def test_get_unknown_pool(self, registries):
        _, pools = registries
        with pytest.raises(KeyError, match="Unknown pool"):
            pools.get("aDOGE/aETH")

    def test_pool_id_matches_compute_pool_id(self, registries):
        tokens, pools = registries
        pool = pools.get("aBTC/aETH")
        assert pools.pool_id(pool) == compute_pool_id(
            tokens["btc"].address,
            tokens["eth"].address,
            DYNAMIC_FEE_FLAG,
            60,
            HOOKS,
        )

    @pytest.mark.parametrize("name,expected", sorted(DEPLOYED_POOL_IDS.items()))
    def test_pool_ids_match_deployed_pools(self, registries, name, expected):
        _, pools = registries
        assert pools.pool_id(pools.get(name)) == expected

    def test_canonical_pair_follows_address_order(self, registries):
        tokens, pools = registries
        reversed_pool = PoolIdentity(
            name="aETH/aBTC",
            token0="eth",
            token1="btc",
            fee=DYNAMIC_FEE_FLAG,
            tick_spacing=60,
            hooks=HOOKS,
        )
        registry = PoolRegistry([reversed_pool], tokens)
        assert registry.canonical_pair(reversed_pool) == ("btc", "eth")
        assert registry.pool_id(reversed_pool) == pools.pool_id(pools.get("aBTC/aETH"))

    def test_native_currency_sorts_first(self, registries):
        _, pools = registries
        pool = pools.get("ETH/aUSDT")
        assert pools.canonical_pair(pool) == ("native_eth", "usdt")
        assert pools.pool_key(pool)[0] == ZERO_ADDRESS

    def test_pool_with_same_token_twice_rejected(self):
        with pytest.raises(ValueError, match="on both sides"):
            PoolIdentity("x", "usdc", "usdc", 3000, 1, HOOKS)

    def test_unknown_token_in_pool_rejected(self, registries):
        tokens, _ = registries
        pool = PoolIdentity("x", "usdc", "doge", 3000, 1, HOOKS)
        with pytest.raises(ValueError, match="unknown token doge"):
            PoolRegistry([pool], tokens)

    def test_from_config_accepts_dynamic_keyword(self, registries):
        tokens, _ = registries
        registry = PoolRegistry.from_config(
            [
                {
                    "name": "p",
                    "token0": "usdc",
                    "token1": "usdt",
                    "fee": "dynamic",
                    "tick_spacing": 1,
                    "hooks": HOOKS,
                }
            ],
            tokens,
        )
        assert registry.get("p").fee == DYNAMIC_FEE_FLAG

    def test_price_ids_cover_every_pool_token(self, registries):
        _, pools = registries
        assert pools.price_ids() == {
            "usdc": "usd-coin",
            "usdt": "tether",
            "eth": "ethereum",
            "btc": "bitcoin",
            "native_eth": "ethereum",
        }


def test_load_registries_uses_config_overrides():
    tokens, pools = load_registries(
        {
            "tokens": {
                "a": {
                    "address": "0x1111111111111111111111111111111111111111",
                    "decimals": 18,
                },
                "b": {
                    "address": "0x2222222222222222222222222222222222222222",
                    "decimals": 6,
                },
            },
            "pools": [
                {
                    "name": "A/B",
                    "token0": "a",
                    "token1": "b",
                    "fee": 3000,
                    "tick_spacing": 60,
                    "hooks": ZERO_ADDRESS,
                }
            ],
        }
    )
    assert list(tokens) == ["a", "b"]
    assert pools.names == ["A/B"]
