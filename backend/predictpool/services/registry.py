"""Market lifecycle: creation, pool bookkeeping and oracle resolution."""

from __future__ import annotations

from loguru import logger
from sqlalchemy.orm import Session

from predictpool.domain import Direction, MarketPage, MarketSnapshot, MarketStatusView
from predictpool.errors import InvalidParameter, MarketClosed, NotFound, Unauthorized
from predictpool.models import MarketRecord, PlatformConfigRecord
from predictpool.repositories import MarketRepository, to_market_snapshot


class MarketRegistry:
    """Owns market records plus the market counter and volume on the config."""

    def __init__(self, session: Session, config: PlatformConfigRecord) -> None:
        self._markets = MarketRepository(session)
        self._config = config

    # ------------------------------------------------------------------
    # Mutations

    def create_market(
        self,
        creator: str,
        reference_price: int,
        open_height: int,
        close_height: int,
        *,
        height: int,
    ) -> int:
        if creator != self._config.owner:
            raise Unauthorized("Only the platform owner can create markets", caller=creator)
        if reference_price <= 0:
            raise InvalidParameter("Reference price must be positive", reference_price=reference_price)
        if close_height <= open_height:
            raise InvalidParameter(
                "Close height must be after open height",
                open_height=open_height,
                close_height=close_height,
            )
        if open_height < height:
            raise InvalidParameter(
                "Open height must not be in the past", open_height=open_height, height=height
            )
        if close_height - open_height < self._config.min_market_duration:
            raise InvalidParameter(
                f"Markets must stay open for at least {self._config.min_market_duration} blocks",
                open_height=open_height,
                close_height=close_height,
            )

        market_id = self._config.next_market_id
        self._markets.add_market(
            market_id=market_id,
            creator=creator,
            reference_price=reference_price,
            open_height=open_height,
            close_height=close_height,
        )
        self._config.next_market_id = market_id + 1
        logger.info(
            "Created market {} at reference price {} for heights [{}, {})",
            market_id,
            reference_price,
            open_height,
            close_height,
        )
        return market_id

    def resolve_market(self, oracle: str, market_id: int, final_price: int, *, height: int) -> MarketSnapshot:
        if oracle != self._config.oracle:
            raise Unauthorized("Only the oracle can resolve markets", caller=oracle)
        record = self._require(market_id)
        if height < record.close_height:
            raise MarketClosed(
                "Market cannot be resolved before its close height",
                market_id=market_id,
                close_height=record.close_height,
                height=height,
            )
        if record.resolved:
            raise MarketClosed("Market is already resolved", market_id=market_id)
        if final_price <= 0:
            raise InvalidParameter("Final price must be positive", final_price=final_price)

        self._markets.mark_resolved(record, final_price=final_price, height=height)
        logger.info(
            "Resolved market {} at height {}: reference {} -> final {}",
            market_id,
            height,
            record.reference_price,
            final_price,
        )
        return to_market_snapshot(record)

    def record_stake(self, market_id: int, direction: Direction, amount: int) -> None:
        """Add an already validated stake to the matching pool."""

        self._markets.add_to_pool(self._require(market_id), direction, amount)

    def record_volume(self, amount: int) -> None:
        self._config.total_volume += amount

    # ------------------------------------------------------------------
    # Queries

    def get_market(self, market_id: int) -> MarketSnapshot | None:
        record = self._markets.get_market(market_id)
        return to_market_snapshot(record) if record is not None else None

    def require_market(self, market_id: int) -> MarketSnapshot:
        return to_market_snapshot(self._require(market_id))

    def market_status(self, market_id: int, *, height: int) -> MarketStatusView:
        market = self.require_market(market_id)
        return MarketStatusView(
            market_id=market.market_id,
            is_active=market.is_open(height),
            is_resolved=market.resolved,
            blocks_remaining=max(0, market.close_height - height),
            phase=market.phase(height),
        )

    def list_markets(self, *, resolved: bool | None = None, limit: int = 50, offset: int = 0) -> MarketPage:
        records, total = self._markets.list_markets(resolved=resolved, limit=limit, offset=offset)
        return MarketPage(total=total, markets=[to_market_snapshot(record) for record in records])

    def all_markets(self) -> list[MarketSnapshot]:
        return [to_market_snapshot(record) for record in self._markets.all_markets()]

    def _require(self, market_id: int) -> MarketRecord:
        record = self._markets.get_market(market_id)
        if record is None:
            raise NotFound(f"Market {market_id} does not exist", market_id=market_id)
        return record
