from v4_arbitrage.core.clients.HttpClient import HttpClient
from v4_arbitrage.core.clients.PriceFeedClient import PriceFeedClient, PriceSnapshot
from v4_arbitrage.core.clients.StateViewClient import Slot0, StateViewClient

__all__ = [
    "HttpClient",
    "PriceFeedClient",
    "PriceSnapshot",
    "Slot0",
    "StateViewClient",
]
