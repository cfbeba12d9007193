"""Lifetime participant counters fed by stake and claim events."""

from __future__ import annotations

from sqlalchemy.orm import Session

from predictpool.domain import ParticipantStatsView
from predictpool.repositories import StatsRepository


class StatsTracker:
    """Additive aggregation only; callers invoke each hook once per event.

    ``win_rate_bps`` is carried on the record but has no update rule yet.
    """

    def __init__(self, session: Session) -> None:
        self._stats = StatsRepository(session)

    def on_stake_placed(self, participant: str, amount: int) -> None:
        record = self._stats.get_or_create(participant)
        record.total_predictions += 1
        record.total_staked += amount

    def on_payout_claimed(self, participant: str, amount: int) -> None:
        record = self._stats.get_or_create(participant)
        record.total_won += amount

    def get_stats(self, participant: str) -> ParticipantStatsView:
        record = self._stats.get(participant)
        if record is None:
            return ParticipantStatsView(participant=participant)
        return ParticipantStatsView(
            participant=record.participant,
            total_predictions=record.total_predictions,
            total_staked=record.total_staked,
            total_won=record.total_won,
            win_rate_bps=record.win_rate_bps,
        )
