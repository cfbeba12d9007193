from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import (
    BigInteger,
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    String,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .db import Base

PLATFORM_CONFIG_ID = 1


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PlatformConfigRecord(Base):
    __tablename__ = "platform_config"

    config_id: Mapped[int] = mapped_column(Integer, primary_key=True, default=PLATFORM_CONFIG_ID)
    owner: Mapped[str] = mapped_column(String, nullable=False)
    oracle: Mapped[str] = mapped_column(String, nullable=False)
    pool_account: Mapped[str] = mapped_column(String, nullable=False)
    minimum_stake: Mapped[int] = mapped_column(BigInteger, nullable=False)
    fee_rate_bps: Mapped[int] = mapped_column(Integer, nullable=False)
    max_fee_rate_bps: Mapped[int] = mapped_column(Integer, nullable=False)
    max_minimum_stake: Mapped[int] = mapped_column(BigInteger, nullable=False)
    min_market_duration: Mapped[int] = mapped_column(Integer, nullable=False)
    next_market_id: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    total_volume: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    last_height: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    initialized_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)

    __table_args__ = (
        CheckConstraint("config_id = 1", name="ck_platform_config_singleton"),
        CheckConstraint("fee_rate_bps >= 0 AND fee_rate_bps <= max_fee_rate_bps", name="ck_platform_fee_cap"),
        CheckConstraint("minimum_stake > 0", name="ck_platform_minimum_stake"),
    )


class MarketRecord(Base):
    __tablename__ = "markets"

    market_id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=False)
    creator: Mapped[str] = mapped_column(String, nullable=False)
    reference_price: Mapped[int] = mapped_column(BigInteger, nullable=False)
    final_price: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    total_up: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    total_down: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    open_height: Mapped[int] = mapped_column(BigInteger, nullable=False)
    close_height: Mapped[int] = mapped_column(BigInteger, nullable=False)
    resolution_height: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    resolved: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)

    predictions: Mapped[list["PredictionRecord"]] = relationship(
        "PredictionRecord", back_populates="market", cascade="all, delete-orphan"
    )

    __table_args__ = (
        CheckConstraint("close_height > open_height", name="ck_market_window"),
        CheckConstraint("reference_price > 0", name="ck_market_reference_price"),
        CheckConstraint("total_up >= 0 AND total_down >= 0", name="ck_market_pools"),
    )


class PredictionRecord(Base):
    __tablename__ = "predictions"

    market_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("markets.market_id"), primary_key=True, autoincrement=False
    )
    participant: Mapped[str] = mapped_column(String, primary_key=True)
    direction: Mapped[str] = mapped_column(String(8), nullable=False)
    amount: Mapped[int] = mapped_column(BigInteger, nullable=False)
    placed_height: Mapped[int] = mapped_column(BigInteger, nullable=False)
    claimed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    payout: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    claimed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    market: Mapped[MarketRecord] = relationship("MarketRecord", back_populates="predictions")

    __table_args__ = (
        CheckConstraint("direction IN ('up', 'down')", name="ck_prediction_direction"),
        CheckConstraint("amount > 0", name="ck_prediction_amount"),
    )


class ParticipantStatsRecord(Base):
    __tablename__ = "participant_stats"

    participant: Mapped[str] = mapped_column(String, primary_key=True)
    total_predictions: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_staked: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    total_won: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    win_rate_bps: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


class LedgerAccountRecord(Base):
    __tablename__ = "ledger_accounts"

    principal: Mapped[str] = mapped_column(String, primary_key=True)
    balance: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)

    __table_args__ = (CheckConstraint("balance >= 0", name="ck_ledger_balance"),)
