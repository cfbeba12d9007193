"""Stake intake: one escrowed prediction per participant per market."""

from __future__ import annotations

from loguru import logger
from sqlalchemy.orm import Session

from predictpool.domain import Direction, PredictionKey, PredictionSnapshot
from predictpool.errors import (
    AlreadyClaimed,
    InsufficientBalance,
    InvalidParameter,
    InvalidPrediction,
    MarketClosed,
    NotFound,
)
from predictpool.ledger import ValueLedger
from predictpool.models import PlatformConfigRecord, PredictionRecord
from predictpool.repositories import PredictionRepository, to_prediction_snapshot

from .registry import MarketRegistry
from .stats_tracker import StatsTracker


def parse_direction(value: Direction | str) -> Direction:
    """Map an exact ``"up"`` or ``"down"`` tag onto :class:`Direction`."""

    if isinstance(value, Direction):
        return value
    try:
        return Direction(value)
    except ValueError as exc:
        raise InvalidPrediction(f"Unknown direction {value!r}; expected 'up' or 'down'") from exc


class PredictionLedger:
    """Owns prediction records; pool totals change only through the registry."""

    def __init__(
        self,
        session: Session,
        config: PlatformConfigRecord,
        registry: MarketRegistry,
        ledger: ValueLedger,
        stats: StatsTracker,
    ) -> None:
        self._predictions = PredictionRepository(session)
        self._config = config
        self._registry = registry
        self._ledger = ledger
        self._stats = stats

    def place_stake(
        self,
        market_id: int,
        participant: str,
        direction: Direction | str,
        amount: int,
        *,
        height: int,
    ) -> PredictionSnapshot:
        market = self._registry.get_market(market_id)
        if market is None:
            raise NotFound(f"Market {market_id} does not exist", market_id=market_id)
        if not market.is_open(height):
            raise MarketClosed(
                "Market is not accepting predictions",
                market_id=market_id,
                phase=market.phase(height).value,
                height=height,
            )
        side = parse_direction(direction)
        if amount < self._config.minimum_stake:
            raise InvalidParameter(
                f"Stake must be at least {self._config.minimum_stake}",
                amount=amount,
                minimum_stake=self._config.minimum_stake,
            )
        if self._ledger.balance_of(participant) < amount:
            raise InsufficientBalance(
                "Balance does not cover the stake", participant=participant, amount=amount
            )
        if participant == self._config.pool_account:
            raise InvalidParameter("The pool account cannot place predictions", participant=participant)
        key = PredictionKey(market_id, participant)
        if self._predictions.get(key) is not None:
            raise InvalidParameter(
                "Participant already holds a prediction in this market",
                market_id=market_id,
                participant=participant,
            )

        if not self._ledger.transfer(participant, self._config.pool_account, amount):
            raise InsufficientBalance(
                "Escrow transfer was rejected by the ledger", participant=participant, amount=amount
            )
        record = self._predictions.add(key, direction=side, amount=amount, height=height)
        self._registry.record_stake(market_id, side, amount)
        self._registry.record_volume(amount)
        self._stats.on_stake_placed(participant, amount)
        logger.info(
            "{} staked {} on {} in market {} at height {}",
            participant,
            amount,
            side.value,
            market_id,
            height,
        )
        return to_prediction_snapshot(record)

    def get_prediction(self, market_id: int, participant: str) -> PredictionSnapshot | None:
        record = self._predictions.get(PredictionKey(market_id, participant))
        return to_prediction_snapshot(record) if record is not None else None

    def list_predictions(self, market_id: int) -> list[PredictionSnapshot]:
        return [to_prediction_snapshot(record) for record in self._predictions.list_for_market(market_id)]

    def mark_claimed(self, key: PredictionKey, *, payout: int) -> PredictionSnapshot:
        record = self._require(key)
        if record.claimed:
            raise AlreadyClaimed("Prediction was already claimed", market_id=key.market_id)
        self._predictions.mark_claimed(record, payout=payout)
        return to_prediction_snapshot(record)

    def _require(self, key: PredictionKey) -> PredictionRecord:
        record = self._predictions.get(key)
        if record is None:
            raise NotFound(
                "No prediction for this participant in this market",
                market_id=key.market_id,
                participant=key.participant,
            )
        return record
