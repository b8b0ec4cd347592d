import pytest

from v4_arbitrage.core.config import CONFIG, set_config


def pytest_configure(config):
    config.addinivalue_line("markers", "smoke: mark test as a smoke test")


def pytest_collection_modifyitems(config, items):
    for item in items:
        if "smoke" in item.nodeid:
            item.add_marker(pytest.mark.smoke)


@pytest.fixture(autouse=True)
def isolated_config():
    """Run every test against the built-in defaults, whatever config.json holds."""
    saved = dict(CONFIG)
    set_config({})
    yield CONFIG
    set_config(saved)
