"""Access to the singleton platform configuration row."""

from __future__ import annotations

from sqlalchemy.orm import Session

from predictpool.models import PLATFORM_CONFIG_ID, PlatformConfigRecord


class PlatformNotInitialized(RuntimeError):
    """Raised when an operation runs before the platform config exists."""


class PlatformRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def find(self) -> PlatformConfigRecord | None:
        return self._session.get(PlatformConfigRecord, PLATFORM_CONFIG_ID)

    def load(self) -> PlatformConfigRecord:
        record = self.find()
        if record is None:
            raise PlatformNotInitialized(
                "Platform configuration is missing; run the initialization step first"
            )
        return record

    def create(
        self,
        *,
        owner: str,
        oracle: str,
        pool_account: str,
        minimum_stake: int,
        fee_rate_bps: int,
        max_fee_rate_bps: int,
        max_minimum_stake: int,
        min_market_duration: int,
    ) -> PlatformConfigRecord:
        record = PlatformConfigRecord(
            config_id=PLATFORM_CONFIG_ID,
            owner=owner,
            oracle=oracle,
            pool_account=pool_account,
            minimum_stake=minimum_stake,
            fee_rate_bps=fee_rate_bps,
            max_fee_rate_bps=max_fee_rate_bps,
            max_minimum_stake=max_minimum_stake,
            min_market_duration=min_market_duration,
            next_market_id=0,
            total_volume=0,
            last_height=0,
        )
        self._session.add(record)
        self._session.flush()
        return record
