"""Payout math and the single-claim payout flow."""

from __future__ import annotations

from loguru import logger

from predictpool.domain import Direction, PayoutBreakdown, PredictionKey
from predictpool.errors import (
    AlreadyClaimed,
    InsufficientBalance,
    InvalidParameter,
    InvalidPrediction,
    MarketNotResolved,
    NotFound,
)
from predictpool.ledger import ValueLedger
from predictpool.models import PlatformConfigRecord

from .prediction_ledger import PredictionLedger
from .registry import MarketRegistry
from .stats_tracker import StatsTracker

BASIS_POINTS = 10_000


def winning_direction(reference_price: int, final_price: int) -> Direction:
    """``UP`` only on a strict rise; an unchanged price settles ``DOWN``."""

    return Direction.UP if final_price > reference_price else Direction.DOWN


def gross_winnings(stake: int, total_pool: int, winning_pool: int) -> int:
    if winning_pool <= 0:
        raise InvalidParameter("Winning pool is empty", winning_pool=winning_pool)
    return stake * total_pool // winning_pool


def compute_payout(
    stake: int,
    total_pool: int,
    winning_pool: int,
    fee_rate_bps: int,
    *,
    denominator: int = BASIS_POINTS,
) -> PayoutBreakdown:
    gross = gross_winnings(stake, total_pool, winning_pool)
    fee = gross * fee_rate_bps // denominator
    return PayoutBreakdown(gross=gross, fee=fee, net=gross - fee)


class SettlementEngine:
    """Pays each winning prediction exactly once.

    Every check runs before the first transfer. The claimed flag is written
    only after both transfers succeed; a failed fee transfer reverses the
    participant transfer before the error propagates.
    """

    def __init__(
        self,
        config: PlatformConfigRecord,
        registry: MarketRegistry,
        predictions: PredictionLedger,
        ledger: ValueLedger,
        stats: StatsTracker,
    ) -> None:
        self._config = config
        self._registry = registry
        self._predictions = predictions
        self._ledger = ledger
        self._stats = stats

    def claim(self, market_id: int, participant: str) -> int:
        market = self._registry.get_market(market_id)
        if market is None:
            raise NotFound(f"Market {market_id} does not exist", market_id=market_id)
        prediction = self._predictions.get_prediction(market_id, participant)
        if prediction is None:
            raise NotFound(
                "No prediction for this participant in this market",
                market_id=market_id,
                participant=participant,
            )
        if not market.resolved or market.final_price is None:
            raise MarketNotResolved("Market has not been resolved yet", market_id=market_id)
        if prediction.claimed:
            raise AlreadyClaimed("Winnings were already claimed", market_id=market_id)

        winner = winning_direction(market.reference_price, market.final_price)
        if prediction.direction is not winner:
            raise InvalidPrediction(
                "Prediction did not win", market_id=market_id, winning_direction=winner.value
            )
        payout = compute_payout(
            prediction.amount,
            market.total_pool,
            market.pool_for(winner),
            self._config.fee_rate_bps,
        )

        self._pay_out(participant, payout)
        self._predictions.mark_claimed(PredictionKey(market_id, participant), payout=payout.net)
        self._stats.on_payout_claimed(participant, payout.net)
        logger.info(
            "{} claimed {} from market {} (gross {}, fee {})",
            participant,
            payout.net,
            market_id,
            payout.gross,
            payout.fee,
        )
        return payout.net

    def estimate_potential_winnings(self, market_id: int, participant: str) -> int:
        """Gross share if the participant's side won with the current pools."""

        market = self._registry.require_market(market_id)
        prediction = self._predictions.get_prediction(market_id, participant)
        if prediction is None:
            raise NotFound(
                "No prediction for this participant in this market",
                market_id=market_id,
                participant=participant,
            )
        side_pool = market.pool_for(prediction.direction)
        if side_pool == 0:
            return 0
        return gross_winnings(prediction.amount, market.total_pool, side_pool)

    def outstanding_liabilities(self) -> int:
        """Pool value still owed: open escrow plus unclaimed winning shares."""

        owed = 0
        for market in self._registry.all_markets():
            if not market.resolved or market.final_price is None:
                owed += market.total_pool
                continue
            winner = winning_direction(market.reference_price, market.final_price)
            winning_pool = market.pool_for(winner)
            if winning_pool == 0:
                continue
            for prediction in self._predictions.list_predictions(market.market_id):
                if prediction.direction is winner and not prediction.claimed:
                    owed += gross_winnings(prediction.amount, market.total_pool, winning_pool)
        return owed

    def _pay_out(self, participant: str, payout: PayoutBreakdown) -> None:
        pool = self._config.pool_account
        if payout.net > 0 and not self._ledger.transfer(pool, participant, payout.net):
            raise InsufficientBalance("Pool cannot cover the payout", amount=payout.net)
        if payout.fee == 0:
            return
        try:
            fee_paid = self._ledger.transfer(pool, self._config.owner, payout.fee)
        except Exception:
            self._reverse(participant, payout.net)
            raise
        if not fee_paid:
            self._reverse(participant, payout.net)
            raise InsufficientBalance("Pool cannot cover the platform fee", amount=payout.fee)

    def _reverse(self, participant: str, amount: int) -> None:
        if amount == 0:
            return
        if not self._ledger.transfer(participant, self._config.pool_account, amount):
            logger.error(
                "Could not return {} from {} to the pool after a failed fee transfer",
                amount,
                participant,
            )
