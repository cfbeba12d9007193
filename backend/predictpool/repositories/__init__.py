"""Repository abstractions for database interactions."""

from .market_repository import MarketRepository, to_market_snapshot
from .platform_repository import PlatformNotInitialized, PlatformRepository
from .prediction_repository import PredictionRepository, to_prediction_snapshot
from .stats_repository import StatsRepository

__all__ = [
    "MarketRepository",
    "PlatformNotInitialized",
    "PlatformRepository",
    "PredictionRepository",
    "StatsRepository",
    "to_market_snapshot",
    "to_prediction_snapshot",
]
