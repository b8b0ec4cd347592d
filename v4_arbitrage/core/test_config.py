import json

import pytest

from v4_arbitrage.core import config as config_module
from v4_arbitrage.core.config import (
    CONFIG,
    get_chain_id,
    get_contract_address,
    get_price_api_base_url,
    get_price_api_key,
    get_private_key,
    get_registry_config,
    get_rpc_urls,
    load_config,
    resolve_config_path,
)
from v4_arbitrage.core.constants.base import DEFAULT_PRICE_API_BASE_URL
from v4_arbitrage.core.constants.chains import CHAIN_ID_BASE_SEPOLIA
from v4_arbitrage.core.constants.contracts import STATE_VIEW


def test_defaults_without_config():
    assert get_chain_id() == CHAIN_ID_BASE_SEPOLIA
    assert str(CHAIN_ID_BASE_SEPOLIA) in get_rpc_urls()
    assert get_price_api_base_url() == DEFAULT_PRICE_API_BASE_URL
    assert get_registry_config() == {"tokens": None, "pools": None}


def test_load_config_replaces_global_in_place(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(
        json.dumps(
            {
                "strategy": {"chain_id": 1301, "rpc_urls": {"1301": ["http://rpc"]}},
                "system": {"price_api_base_url": " http://prices "},
            }
        )
    )
    load_config(path)
    assert config_module.CONFIG is CONFIG
    assert get_chain_id() == 1301
    assert get_rpc_urls() == {"1301": ["http://rpc"]}
    assert get_price_api_base_url() == "http://prices"


def test_load_config_invalid_json(tmp_path):
    path = tmp_path / "config.json"
    path.write_text("{not json")
    with pytest.raises(ValueError, match="Invalid JSON"):
        load_config(path)


def test_load_config_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_config(tmp_path / "missing.json", require_exists=True)
    load_config(tmp_path / "missing.json")
    assert CONFIG == {}


def test_resolve_config_path_from_env(monkeypatch, tmp_path):
    path = tmp_path / "custom.json"
    monkeypatch.setenv("V4_ARBITRAGE_CONFIG_PATH", str(path))
    assert resolve_config_path() == path


def test_secrets_fall_back_to_environment(monkeypatch):
    monkeypatch.setenv("V4_ARBITRAGE_PRIVATE_KEY", " 0xabc ")
    monkeypatch.setenv("V4_ARBITRAGE_PRICE_API_KEY", "cg-key")
    assert get_private_key() == "0xabc"
    assert get_price_api_key() == "cg-key"

    CONFIG["wallet"] = {"private_key": "0xdef"}
    CONFIG["system"] = {"price_api_key": "cfg-key"}
    assert get_private_key() == "0xdef"
    assert get_price_api_key() == "cfg-key"


def test_private_key_missing(monkeypatch):
    monkeypatch.delenv("V4_ARBITRAGE_PRIVATE_KEY", raising=False)
    assert get_private_key() is None


class TestContractAddress:
    def test_default(self):
        assert get_contract_address("state_view") == STATE_VIEW[CHAIN_ID_BASE_SEPOLIA]

    def test_override(self):
        CONFIG["contracts"] = {
            "state_view": "0x1111111111111111111111111111111111111111"
        }
        assert get_contract_address("state_view").startswith("0x1111")

    def test_unknown_name(self):
        with pytest.raises(ValueError, match="Unknown contract"):
            get_contract_address("router")

    def test_unsupported_chain(self):
        with pytest.raises(ValueError, match="chain ID 1"):
            get_contract_address("state_view", chain_id=1)
