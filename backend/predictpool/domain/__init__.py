"""Domain types shared by services, the API and the CLI."""

from .models import (
    Direction,
    MarketPage,
    MarketPhase,
    MarketSnapshot,
    MarketStatusView,
    ParticipantStatsView,
    PayoutBreakdown,
    PlatformStats,
    PredictionKey,
    PredictionSnapshot,
)

__all__ = [
    "Direction",
    "MarketPage",
    "MarketPhase",
    "MarketSnapshot",
    "MarketStatusView",
    "ParticipantStatsView",
    "PayoutBreakdown",
    "PlatformStats",
    "PredictionKey",
    "PredictionSnapshot",
]
