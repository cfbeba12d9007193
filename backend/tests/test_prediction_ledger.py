from __future__ import annotations

import pytest

from predictpool.domain import Direction
from predictpool.errors import (
    InsufficientBalance,
    InvalidParameter,
    InvalidPrediction,
    MarketClosed,
    NotFound,
)

from conftest import ORACLE, OWNER, POOL


def test_stake_escrows_funds_and_updates_pools(platform, open_market, fund, balance_of):
    fund("alice", 100_000000)

    prediction = platform.make_prediction("alice", open_market, "up", 60_000000)

    assert prediction.direction is Direction.UP
    assert prediction.amount == 60_000000
    assert prediction.placed_height == 1000
    assert prediction.claimed is False
    assert prediction.payout == 0
    assert balance_of("alice") == 40_000000
    assert balance_of(POOL) == 60_000000

    market = platform.get_market_details(open_market)
    assert (market.total_up, market.total_down) == (60_000000, 0)
    assert platform.get_platform_stats().total_volume == 60_000000


def test_stake_updates_participant_stats(platform, open_market, fund):
    fund("alice", 10_000000)
    platform.make_prediction("alice", open_market, Direction.DOWN, 2_000000)

    stats = platform.get_participant_stats("alice")
    assert stats.total_predictions == 1
    assert stats.total_staked == 2_000000
    assert stats.total_won == 0
    assert stats.win_rate_bps == 0


def test_unknown_market(platform, fund):
    fund("alice", 10_000000)
    with pytest.raises(NotFound):
        platform.make_prediction("alice", 99, "up", 1_000000)


def test_stake_before_open_is_rejected(platform, clock, fund, balance_of):
    market_id = platform.create_market(OWNER, 100, 1000, 1100)
    fund("alice", 10_000000)
    clock.set_height(999)

    with pytest.raises(MarketClosed):
        platform.make_prediction("alice", market_id, "up", 1_000000)
    assert balance_of("alice") == 10_000000


@pytest.mark.parametrize("height", [1100, 1150])
def test_stake_at_or_after_close_is_rejected(platform, open_market, clock, fund, height):
    fund("alice", 10_000000)
    clock.set_height(height)
    with pytest.raises(MarketClosed):
        platform.make_prediction("alice", open_market, "up", 1_000000)


def test_stake_on_last_open_height_is_accepted(platform, open_market, clock, fund):
    fund("alice", 10_000000)
    clock.set_height(1099)
    prediction = platform.make_prediction("alice", open_market, "up", 1_000000)
    assert prediction.placed_height == 1099


def test_stake_on_resolved_market_is_rejected(platform, open_market, clock, fund):
    fund("alice", 10_000000)
    clock.set_height(1100)
    platform.resolve_market(ORACLE, open_market, 1)
    with pytest.raises(MarketClosed):
        platform.make_prediction("alice", open_market, "down", 1_000000)


@pytest.mark.parametrize("direction", ["sideways", "", "UPP"])
def test_unknown_direction_is_rejected(platform, open_market, fund, direction):
    fund("alice", 10_000000)
    with pytest.raises(InvalidPrediction):
        platform.make_prediction("alice", open_market, direction, 1_000000)


@pytest.mark.parametrize("direction", [" up ", "UP", "Down"])
def test_direction_tag_must_match_exactly(platform, open_market, fund, balance_of, direction):
    fund("alice", 10_000000)
    with pytest.raises(InvalidPrediction):
        platform.make_prediction("alice", open_market, direction, 1_000000)
    assert balance_of("alice") == 10_000000


def test_pool_account_cannot_stake_escrowed_funds(platform, open_market, fund, balance_of):
    fund("alice", 100_000000)
    platform.make_prediction("alice", open_market, "up", 60_000000)

    with pytest.raises(InvalidParameter):
        platform.make_prediction(POOL, open_market, "down", 40_000000)

    market = platform.get_market_details(open_market)
    assert (market.total_up, market.total_down) == (60_000000, 0)
    assert balance_of(POOL) == 60_000000
    assert platform.get_platform_stats().total_volume == 60_000000
    assert platform.get_participant_stats(POOL).total_predictions == 0


def test_stake_below_minimum_is_rejected(platform, open_market, fund, balance_of):
    fund("alice", 10_000000)
    with pytest.raises(InvalidParameter):
        platform.make_prediction("alice", open_market, "up", 999_999)
    assert balance_of(POOL) == 0


def test_stake_above_balance_is_rejected(platform, open_market, fund):
    fund("alice", 500_000)
    platform.update_minimum_stake(OWNER, 100_000)
    with pytest.raises(InsufficientBalance):
        platform.make_prediction("alice", open_market, "up", 600_000)
    assert platform.get_participant_stats("alice").total_predictions == 0


def test_restaking_is_rejected_without_side_effects(platform, open_market, fund, balance_of):
    fund("alice", 10_000000)
    platform.make_prediction("alice", open_market, "up", 2_000000)

    with pytest.raises(InvalidParameter):
        platform.make_prediction("alice", open_market, "down", 3_000000)

    prediction = platform.get_prediction_details(open_market, "alice")
    assert prediction.direction is Direction.UP
    assert prediction.amount == 2_000000
    assert balance_of("alice") == 8_000000

    market = platform.get_market_details(open_market)
    assert (market.total_up, market.total_down) == (2_000000, 0)
    assert platform.get_participant_stats("alice").total_predictions == 1


def test_same_participant_can_stake_in_different_markets(platform, open_market, fund):
    other = platform.create_market(OWNER, 100, 1000, 1020)
    fund("alice", 10_000000)

    platform.make_prediction("alice", open_market, "up", 1_000000)
    platform.make_prediction("alice", other, "down", 1_000000)

    stats = platform.get_participant_stats("alice")
    assert stats.total_predictions == 2
    assert stats.total_staked == 2_000000


def test_prediction_lookup(platform, open_market, fund):
    with pytest.raises(NotFound):
        platform.get_prediction_details(open_market, "nobody")

    fund("alice", 10_000000)
    fund("bob", 10_000000)
    platform.make_prediction("bob", open_market, "down", 1_000000)
    platform.make_prediction("alice", open_market, "up", 1_000000)

    participants = [p.participant for p in platform.list_market_predictions(open_market)]
    assert participants == ["alice", "bob"]
