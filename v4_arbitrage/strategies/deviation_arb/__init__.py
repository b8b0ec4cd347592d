from .strategy import DeviationArbStrategy
from .types import DeviationResult, Direction, PoolReport, SwapIntent

__all__ = [
    "DeviationArbStrategy",
    "DeviationResult",
    "Direction",
    "PoolReport",
    "SwapIntent",
]
