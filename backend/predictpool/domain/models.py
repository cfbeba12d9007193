"""Immutable views of settlement state handed out by the services."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class Direction(str, Enum):
    UP = "up"
    DOWN = "down"


class MarketPhase(str, Enum):
    """Lifecycle phase derived from the clock; only ``RESOLVED`` is stored."""

    CREATED = "created"
    OPEN = "open"
    CLOSED = "closed"
    RESOLVED = "resolved"


@dataclass(frozen=True, slots=True)
class PredictionKey:
    """Composite identity of a stake: one per participant per market."""

    market_id: int
    participant: str


@dataclass(frozen=True, slots=True)
class MarketSnapshot:
    market_id: int
    creator: str
    reference_price: int
    final_price: int | None
    total_up: int
    total_down: int
    open_height: int
    close_height: int
    resolution_height: int | None
    resolved: bool

    @property
    def total_pool(self) -> int:
        return self.total_up + self.total_down

    def pool_for(self, direction: Direction) -> int:
        return self.total_up if direction is Direction.UP else self.total_down

    def is_open(self, height: int) -> bool:
        return not self.resolved and self.open_height <= height < self.close_height

    def phase(self, height: int) -> MarketPhase:
        if self.resolved:
            return MarketPhase.RESOLVED
        if height < self.open_height:
            return MarketPhase.CREATED
        if height < self.close_height:
            return MarketPhase.OPEN
        return MarketPhase.CLOSED


@dataclass(frozen=True, slots=True)
class PredictionSnapshot:
    market_id: int
    participant: str
    direction: Direction
    amount: int
    placed_height: int
    claimed: bool
    payout: int

    @property
    def key(self) -> PredictionKey:
        return PredictionKey(self.market_id, self.participant)


@dataclass(frozen=True, slots=True)
class PayoutBreakdown:
    """Integer split of a winning stake's share of the pool."""

    gross: int
    fee: int
    net: int


@dataclass(frozen=True, slots=True)
class MarketStatusView:
    market_id: int
    is_active: bool
    is_resolved: bool
    blocks_remaining: int
    phase: MarketPhase


@dataclass(frozen=True, slots=True)
class PlatformStats:
    total_markets: int
    total_volume: int
    fee_rate_bps: int
    minimum_stake: int
    owner: str
    oracle: str


@dataclass(frozen=True, slots=True)
class ParticipantStatsView:
    participant: str
    total_predictions: int = 0
    total_staked: int = 0
    total_won: int = 0
    win_rate_bps: int = 0


@dataclass(frozen=True, slots=True)
class MarketPage:
    """One page of markets plus the number matching the filter overall."""

    total: int
    markets: list[MarketSnapshot]
