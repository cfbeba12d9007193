from __future__ import annotations

import os
import sys
import tempfile
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))
os.environ.setdefault(
    "DATABASE_URL", f"sqlite:///{Path(tempfile.mkdtemp()) / 'predictpool-import.db'}"
)

import pytest

from predictpool.clock import ManualClock
from predictpool.core.config import Settings
from predictpool.db import build_db_components, init_db, session_scope
from predictpool.ledger import SqlValueLedger
from predictpool.platform import PredictionPlatform

OWNER = "owner"
ORACLE = "oracle"
POOL = "pool"


@pytest.fixture
def test_settings(tmp_path) -> Settings:
    return Settings(
        database_url=f"sqlite:///{tmp_path / 'predictpool.db'}",
        platform_owner=OWNER,
        platform_oracle=ORACLE,
        pool_account=POOL,
        default_minimum_stake=1_000000,
        default_platform_fee_bps=250,
    )


@pytest.fixture
def db_components(test_settings):
    engine, factory = build_db_components(test_settings.resolved_database_url)
    init_db(bind=engine)
    yield engine, factory
    engine.dispose()


@pytest.fixture
def session_factory(db_components):
    return db_components[1]


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock(900)


@pytest.fixture
def platform(session_factory, clock, test_settings) -> PredictionPlatform:
    platform = PredictionPlatform(
        clock=clock, session_factory=session_factory, settings=test_settings
    )
    platform.initialize()
    return platform


@pytest.fixture
def fund(session_factory):
    """Credit ledger accounts directly, outside any platform operation."""

    def _fund(principal: str, amount: int) -> int:
        with session_scope(session_factory) as session:
            return SqlValueLedger(session).credit(principal, amount)

    return _fund


@pytest.fixture
def balance_of(session_factory):
    def _balance(principal: str) -> int:
        with session_scope(session_factory) as session:
            return SqlValueLedger(session).balance_of(principal)

    return _balance


@pytest.fixture
def open_market(platform, clock):
    """Market 0 from height 1000 to 1100 at a 50_000_000_000 reference price."""

    market_id = platform.create_market(OWNER, 50_000_000_000, 1000, 1100)
    clock.set_height(1000)
    return market_id
