"""Prediction persistence helpers keyed by (market, participant)."""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.orm import Session

from predictpool.domain import Direction, PredictionKey, PredictionSnapshot
from predictpool.models import PredictionRecord


def to_prediction_snapshot(record: PredictionRecord) -> PredictionSnapshot:
    return PredictionSnapshot(
        market_id=record.market_id,
        participant=record.participant,
        direction=Direction(record.direction),
        amount=record.amount,
        placed_height=record.placed_height,
        claimed=record.claimed,
        payout=record.payout,
    )


class PredictionRepository:
    """Encapsulate prediction table access."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def get(self, key: PredictionKey) -> PredictionRecord | None:
        return self._session.get(PredictionRecord, (key.market_id, key.participant))

    def add(self, key: PredictionKey, *, direction: Direction, amount: int, height: int) -> PredictionRecord:
        record = PredictionRecord(
            market_id=key.market_id,
            participant=key.participant,
            direction=direction.value,
            amount=amount,
            placed_height=height,
            claimed=False,
            payout=0,
        )
        self._session.add(record)
        self._session.flush()
        return record

    def mark_claimed(self, record: PredictionRecord, *, payout: int) -> None:
        record.claimed = True
        record.payout = payout
        record.claimed_at = datetime.now(timezone.utc)

    def list_for_market(self, market_id: int) -> list[PredictionRecord]:
        query = (
            select(PredictionRecord)
            .where(PredictionRecord.market_id == market_id)
            .order_by(PredictionRecord.placed_height.asc(), PredictionRecord.participant.asc())
        )
        return list(self._session.execute(query).scalars().all())
