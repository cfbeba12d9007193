"""Participant statistics persistence."""

from __future__ import annotations

from sqlalchemy.orm import Session

from predictpool.models import ParticipantStatsRecord


class StatsRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def get(self, participant: str) -> ParticipantStatsRecord | None:
        return self._session.get(ParticipantStatsRecord, participant)

    def get_or_create(self, participant: str) -> ParticipantStatsRecord:
        record = self.get(participant)
        if record is None:
            record = ParticipantStatsRecord(
                participant=participant,
                total_predictions=0,
                total_staked=0,
                total_won=0,
                win_rate_bps=0,
            )
            self._session.add(record)
            self._session.flush()
        return record
