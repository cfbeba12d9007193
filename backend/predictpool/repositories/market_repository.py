"""Market persistence helpers."""

from __future__ import annotations

from typing import Any

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from predictpool.domain import Direction, MarketSnapshot
from predictpool.models import MarketRecord


def to_market_snapshot(record: MarketRecord) -> MarketSnapshot:
    return MarketSnapshot(
        market_id=record.market_id,
        creator=record.creator,
        reference_price=record.reference_price,
        final_price=record.final_price,
        total_up=record.total_up,
        total_down=record.total_down,
        open_height=record.open_height,
        close_height=record.close_height,
        resolution_height=record.resolution_height,
        resolved=record.resolved,
    )


class MarketRepository:
    """Encapsulate all market table access."""

    def __init__(self, session: Session) -> None:
        self._session = session

    # ------------------------------------------------------------------
    # Mutations

    def add_market(
        self,
        *,
        market_id: int,
        creator: str,
        reference_price: int,
        open_height: int,
        close_height: int,
    ) -> MarketRecord:
        record = MarketRecord(
            market_id=market_id,
            creator=creator,
            reference_price=reference_price,
            final_price=None,
            total_up=0,
            total_down=0,
            open_height=open_height,
            close_height=close_height,
            resolution_height=None,
            resolved=False,
        )
        self._session.add(record)
        self._session.flush()
        return record

    def add_to_pool(self, record: MarketRecord, direction: Direction, amount: int) -> None:
        if direction is Direction.UP:
            record.total_up += amount
        else:
            record.total_down += amount

    def mark_resolved(self, record: MarketRecord, *, final_price: int, height: int) -> None:
        record.final_price = final_price
        record.resolution_height = height
        record.resolved = True

    # ------------------------------------------------------------------
    # Queries

    def get_market(self, market_id: int) -> MarketRecord | None:
        return self._session.get(MarketRecord, market_id)

    def list_markets(
        self, *, resolved: bool | None = None, limit: int = 50, offset: int = 0
    ) -> tuple[list[MarketRecord], int]:
        filters: list[Any] = []
        if resolved is not None:
            filters.append(MarketRecord.resolved.is_(resolved))

        query = (
            select(MarketRecord)
            .where(*filters)
            .order_by(MarketRecord.market_id.asc())
            .limit(limit)
            .offset(offset)
        )
        total_query = select(func.count(MarketRecord.market_id)).where(*filters)

        markets = list(self._session.execute(query).scalars().all())
        total = self._session.execute(total_query).scalar_one()
        return markets, total

    def all_markets(self) -> list[MarketRecord]:
        query = select(MarketRecord).order_by(MarketRecord.market_id.asc())
        return list(self._session.execute(query).scalars().all())
