import json
import os
from pathlib import Path
from typing import Any

from v4_arbitrage.core.constants.base import DEFAULT_PRICE_API_BASE_URL
from v4_arbitrage.core.constants.chains import DEFAULT_CHAIN_ID, DEFAULT_RPC_URLS
from v4_arbitrage.core.constants.contracts import CONTRACTS_BY_NAME

_CONFIG_ENV_KEYS = ("V4_ARBITRAGE_CONFIG_PATH", "V4_ARBITRAGE_CONFIG")
_DEFAULT_CONFIG_FILENAME = "config.json"
_PRIVATE_KEY_ENV = "V4_ARBITRAGE_PRIVATE_KEY"
_PRICE_API_KEY_ENV = "V4_ARBITRAGE_PRICE_API_KEY"


def _find_project_root(start: Path) -> Path | None:
    cur = start.resolve()
    for parent in [cur, *cur.parents]:
        if (parent / "pyproject.toml").exists():
            return parent
    return None


def _project_root() -> Path | None:
    return _find_project_root(Path.cwd()) or _find_project_root(Path(__file__).parent)


def resolve_config_path(path: str | Path | None = None) -> Path:
    if path is not None:
        return Path(path).expanduser()

    env_path = next(
        (os.getenv(k, "").strip() for k in _CONFIG_ENV_KEYS if os.getenv(k)), ""
    )
    if env_path:
        p = Path(env_path).expanduser()
        if p.is_absolute():
            return p
        root = _project_root()
        return (root / p) if root else p

    root = _project_root()
    return (root / _DEFAULT_CONFIG_FILENAME) if root else Path(_DEFAULT_CONFIG_FILENAME)


def load_config_json(
    path: str | Path | None = None, *, require_exists: bool = False
) -> dict[str, Any]:
    cfg_path = resolve_config_path(path)
    if not cfg_path.exists():
        if require_exists:
            raise FileNotFoundError(f"Config file not found: {cfg_path}")
        return {}
    try:
        return json.loads(cfg_path.read_text())
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid JSON in config file {cfg_path}: {exc}") from exc


CONFIG: dict[str, Any] = load_config_json()


def set_config(config: dict[str, Any]) -> None:
    """Replace the global CONFIG dict in-place.

    This allows code that imported CONFIG at module import time to see updates.
    """
    CONFIG.clear()
    CONFIG.update(config)


def load_config(
    path: str | Path | None = None, *, require_exists: bool = False
) -> None:
    """Load config from disk into the global CONFIG dict."""
    set_config(load_config_json(path, require_exists=require_exists))


def get_chain_id() -> int:
    chain_id = CONFIG.get("strategy", {}).get("chain_id")
    return int(chain_id) if chain_id is not None else DEFAULT_CHAIN_ID


def get_rpc_urls() -> dict[str, Any]:
    configured = CONFIG.get("strategy", {}).get("rpc_urls")
    if configured:
        return configured
    return {str(k): v for k, v in DEFAULT_RPC_URLS.items()}


def get_price_api_base_url() -> str:
    system = CONFIG.get("system", {})
    api_url = system.get("price_api_base_url")
    if api_url:
        return str(api_url).strip()
    return DEFAULT_PRICE_API_BASE_URL


def get_price_api_key() -> str | None:
    system = CONFIG.get("system", {})
    api_key = system.get("price_api_key")
    if api_key:
        return str(api_key).strip()
    return os.environ.get(_PRICE_API_KEY_ENV)


def get_private_key() -> str | None:
    wallet = CONFIG.get("wallet", {})
    value = wallet.get("private_key")
    if isinstance(value, str) and value.strip():
        return value.strip()
    env_value = os.environ.get(_PRIVATE_KEY_ENV, "").strip()
    return env_value or None


def get_contract_address(name: str, chain_id: int | None = None) -> str:
    chain_id = get_chain_id() if chain_id is None else int(chain_id)
    overrides = CONFIG.get("contracts", {})
    if overrides.get(name):
        return str(overrides[name])
    defaults = CONTRACTS_BY_NAME.get(name)
    if defaults is None:
        raise ValueError(f"Unknown contract {name!r}")
    address = defaults.get(chain_id)
    if address is None:
        raise ValueError(f"No {name} address configured for chain ID {chain_id}")
    return address


def get_registry_config() -> dict[str, Any]:
    return {
        "tokens": CONFIG.get("tokens"),
        "pools": CONFIG.get("pools"),
    }
