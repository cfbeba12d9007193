"""Public operations of the settlement engine, one unit of work each."""

from __future__ import annotations

import threading
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass

from loguru import logger
from sqlalchemy.orm import Session, sessionmaker

from .clock import Clock
from .core.config import Settings, get_settings
from .db import session_scope
from .domain import (
    Direction,
    MarketPage,
    MarketSnapshot,
    MarketStatusView,
    ParticipantStatsView,
    PlatformStats,
    PredictionSnapshot,
)
from .errors import InvalidParameter, NotFound, SettlementError
from .ledger import SqlValueLedger, ValueLedger
from .models import PlatformConfigRecord
from .repositories import PlatformRepository
from .services.admin import PlatformAdmin, initialize_platform
from .services.prediction_ledger import PredictionLedger
from .services.registry import MarketRegistry
from .services.settlement import SettlementEngine
from .services.stats_tracker import StatsTracker

LedgerFactory = Callable[[Session], ValueLedger]


def _observe_height(config: PlatformConfigRecord, height: int, *, mutating: bool) -> int:
    """Hold heights non-decreasing across operations.

    Mutations reject a reading below the highest height already acted on and
    record new highs; reads are evaluated at the recorded height instead.
    """

    if height < config.last_height:
        if mutating:
            raise InvalidParameter(
                "Height is behind the last recorded height",
                height=height,
                last_height=config.last_height,
            )
        return config.last_height
    if mutating:
        config.last_height = height
    return height


@dataclass(slots=True)
class OperationContext:
    """Services wired to one session and one clock reading."""

    height: int
    config: PlatformConfigRecord
    registry: MarketRegistry
    predictions: PredictionLedger
    settlement: SettlementEngine
    stats: StatsTracker
    admin: PlatformAdmin


class PredictionPlatform:
    """Entry point for callers; every method commits fully or not at all."""

    def __init__(
        self,
        *,
        clock: Clock,
        session_factory: sessionmaker[Session] | None = None,
        ledger_factory: LedgerFactory = SqlValueLedger,
        settings: Settings | None = None,
        lock: threading.Lock | None = None,
    ) -> None:
        self._clock = clock
        self._session_factory = session_factory
        self._ledger_factory = ledger_factory
        self._settings = settings or get_settings()
        self._lock = lock or threading.Lock()

    @contextmanager
    def _operation(self, name: str, *, mutating: bool = True) -> Iterator[OperationContext]:
        with self._lock, session_scope(self._session_factory) as session:
            config = PlatformRepository(session).load()
            try:
                height = _observe_height(config, self._clock.current_height(), mutating=mutating)
                ledger = self._ledger_factory(session)
                stats = StatsTracker(session)
                registry = MarketRegistry(session, config)
                predictions = PredictionLedger(session, config, registry, ledger, stats)
                settlement = SettlementEngine(config, registry, predictions, ledger, stats)
                yield OperationContext(
                    height=height,
                    config=config,
                    registry=registry,
                    predictions=predictions,
                    settlement=settlement,
                    stats=stats,
                    admin=PlatformAdmin(config, ledger, reserved=settlement.outstanding_liabilities),
                )
            except SettlementError as exc:
                logger.warning("{} rejected with {}: {}", name, exc.code, exc.message)
                raise

    def initialize(self, *, owner: str | None = None, oracle: str | None = None) -> PlatformStats:
        with self._lock, session_scope(self._session_factory) as session:
            config = initialize_platform(session, self._settings, owner=owner, oracle=oracle)
            return PlatformAdmin(config, self._ledger_factory(session)).platform_stats()

    # ------------------------------------------------------------------
    # State-mutating operations

    def create_market(self, caller: str, reference_price: int, open_height: int, close_height: int) -> int:
        with self._operation("create_market") as ctx:
            return ctx.registry.create_market(
                caller, reference_price, open_height, close_height, height=ctx.height
            )

    def make_prediction(
        self, caller: str, market_id: int, direction: Direction | str, stake_amount: int
    ) -> PredictionSnapshot:
        with self._operation("make_prediction") as ctx:
            return ctx.predictions.place_stake(
                market_id, caller, direction, stake_amount, height=ctx.height
            )

    def resolve_market(self, caller: str, market_id: int, final_price: int) -> MarketSnapshot:
        with self._operation("resolve_market") as ctx:
            return ctx.registry.resolve_market(caller, market_id, final_price, height=ctx.height)

    def claim_winnings(self, caller: str, market_id: int) -> int:
        with self._operation("claim_winnings") as ctx:
            return ctx.settlement.claim(market_id, caller)

    def update_oracle_address(self, caller: str, new_oracle: str) -> None:
        with self._operation("update_oracle_address") as ctx:
            ctx.admin.update_oracle_address(caller, new_oracle)

    def update_minimum_stake(self, caller: str, new_minimum: int) -> None:
        with self._operation("update_minimum_stake") as ctx:
            ctx.admin.update_minimum_stake(caller, new_minimum)

    def update_platform_fee(self, caller: str, new_rate_bps: int) -> None:
        with self._operation("update_platform_fee") as ctx:
            ctx.admin.update_platform_fee(caller, new_rate_bps)

    def withdraw_platform_fees(self, caller: str, amount: int) -> None:
        with self._operation("withdraw_platform_fees") as ctx:
            ctx.admin.withdraw_platform_fees(caller, amount)

    # ------------------------------------------------------------------
    # Read-only operations

    def get_market_details(self, market_id: int) -> MarketSnapshot:
        with self._operation("get_market_details", mutating=False) as ctx:
            return ctx.registry.require_market(market_id)

    def list_markets(self, *, resolved: bool | None = None, limit: int = 50, offset: int = 0) -> MarketPage:
        with self._operation("list_markets", mutating=False) as ctx:
            return ctx.registry.list_markets(resolved=resolved, limit=limit, offset=offset)

    def get_prediction_details(self, market_id: int, participant: str) -> PredictionSnapshot:
        with self._operation("get_prediction_details", mutating=False) as ctx:
            prediction = ctx.predictions.get_prediction(market_id, participant)
            if prediction is None:
                raise NotFound(
                    "No prediction for this participant in this market",
                    market_id=market_id,
                    participant=participant,
                )
            return prediction

    def list_market_predictions(self, market_id: int) -> list[PredictionSnapshot]:
        with self._operation("list_market_predictions", mutating=False) as ctx:
            ctx.registry.require_market(market_id)
            return ctx.predictions.list_predictions(market_id)

    def calculate_potential_winnings(self, market_id: int, participant: str) -> int:
        with self._operation("calculate_potential_winnings", mutating=False) as ctx:
            return ctx.settlement.estimate_potential_winnings(market_id, participant)

    def get_platform_stats(self) -> PlatformStats:
        with self._operation("get_platform_stats", mutating=False) as ctx:
            return ctx.admin.platform_stats()

    def get_participant_stats(self, participant: str) -> ParticipantStatsView:
        with self._operation("get_participant_stats", mutating=False) as ctx:
            return ctx.stats.get_stats(participant)

    def get_market_status(self, market_id: int) -> MarketStatusView:
        with self._operation("get_market_status", mutating=False) as ctx:
            return ctx.registry.market_status(market_id, height=ctx.height)


__all__ = ["LedgerFactory", "OperationContext", "PredictionPlatform"]
