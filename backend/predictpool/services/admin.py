"""Owner-gated platform configuration and fee withdrawal."""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timezone

from loguru import logger
from sqlalchemy.orm import Session

from predictpool.core.config import Settings
from predictpool.domain import PlatformStats
from predictpool.errors import InsufficientBalance, InvalidParameter, Unauthorized
from predictpool.ledger import ValueLedger
from predictpool.models import PlatformConfigRecord
from predictpool.repositories import PlatformRepository


def initialize_platform(
    session: Session,
    settings: Settings,
    *,
    owner: str | None = None,
    oracle: str | None = None,
) -> PlatformConfigRecord:
    """Create the singleton config from settings, or return the existing one."""

    repo = PlatformRepository(session)
    existing = repo.find()
    if existing is not None:
        logger.info("Platform already initialized for owner {}", existing.owner)
        return existing

    record = repo.create(
        owner=owner or settings.platform_owner,
        oracle=oracle or settings.platform_oracle,
        pool_account=settings.pool_account,
        minimum_stake=settings.default_minimum_stake,
        fee_rate_bps=settings.default_platform_fee_bps,
        max_fee_rate_bps=settings.max_platform_fee_bps,
        max_minimum_stake=settings.max_minimum_stake,
        min_market_duration=settings.min_market_duration,
    )
    logger.info(
        "Initialized platform: owner={} oracle={} minimum_stake={} fee_rate_bps={}",
        record.owner,
        record.oracle,
        record.minimum_stake,
        record.fee_rate_bps,
    )
    return record


class PlatformAdmin:
    def __init__(
        self,
        config: PlatformConfigRecord,
        ledger: ValueLedger,
        *,
        reserved: Callable[[], int] | None = None,
    ) -> None:
        self._config = config
        self._ledger = ledger
        # Pool value that belongs to participants and cannot be withdrawn.
        self._reserved = reserved or (lambda: 0)

    def update_oracle_address(self, caller: str, new_oracle: str) -> None:
        self._require_owner(caller)
        candidate = (new_oracle or "").strip()
        if not candidate:
            raise InvalidParameter("Oracle identity must not be blank")
        if candidate == self._config.pool_account:
            raise InvalidParameter("The pool account cannot act as oracle")
        previous = self._config.oracle
        self._config.oracle = candidate
        self._touch()
        logger.info("Oracle changed from {} to {}", previous, candidate)

    def update_minimum_stake(self, caller: str, new_minimum: int) -> None:
        self._require_owner(caller)
        if not 0 < new_minimum <= self._config.max_minimum_stake:
            raise InvalidParameter(
                f"Minimum stake must be within (0, {self._config.max_minimum_stake}]",
                minimum_stake=new_minimum,
            )
        self._config.minimum_stake = new_minimum
        self._touch()
        logger.info("Minimum stake set to {}", new_minimum)

    def update_platform_fee(self, caller: str, new_rate_bps: int) -> None:
        self._require_owner(caller)
        if not 0 <= new_rate_bps <= self._config.max_fee_rate_bps:
            raise InvalidParameter(
                f"Platform fee must be within [0, {self._config.max_fee_rate_bps}] basis points",
                fee_rate_bps=new_rate_bps,
            )
        self._config.fee_rate_bps = new_rate_bps
        self._touch()
        logger.info("Platform fee set to {} bps", new_rate_bps)

    def withdraw_platform_fees(self, caller: str, amount: int) -> None:
        self._require_owner(caller)
        if amount <= 0:
            raise InvalidParameter("Withdrawal amount must be positive", amount=amount)
        pool = self._config.pool_account
        available = self._ledger.balance_of(pool) - self._reserved()
        if amount > available:
            raise InsufficientBalance(
                "Withdrawal exceeds the pool balance not owed to participants",
                amount=amount,
                available=max(available, 0),
            )
        if not self._ledger.transfer(pool, self._config.owner, amount):
            raise InsufficientBalance("Withdrawal was rejected by the ledger", amount=amount)
        logger.info("Withdrew {} from the pool to {}", amount, self._config.owner)

    def platform_stats(self) -> PlatformStats:
        return PlatformStats(
            total_markets=self._config.next_market_id,
            total_volume=self._config.total_volume,
            fee_rate_bps=self._config.fee_rate_bps,
            minimum_stake=self._config.minimum_stake,
            owner=self._config.owner,
            oracle=self._config.oracle,
        )

    def _require_owner(self, caller: str) -> None:
        if caller != self._config.owner:
            raise Unauthorized("Only the platform owner can change platform settings", caller=caller)

    def _touch(self) -> None:
        self._config.updated_at = datetime.now(timezone.utc)
