from __future__ import annotations

from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from conftest import ORACLE, OWNER, POOL
from predictpool.domain import MarketPhase, MarketStatusView
from predictpool.errors import Unauthorized
from predictpool.main import _clock, _platform, app
from predictpool.platform import PredictionPlatform
from predictpool.repositories import PlatformNotInitialized


@pytest.fixture
def client():
    """Test client that cleans up dependency overrides after each test."""
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def live_client(client, platform, clock, session_factory, test_settings):
    """Client wired to the temporary database and the test clock."""

    app.dependency_overrides[_clock] = lambda: clock
    app.dependency_overrides[_platform] = lambda: PredictionPlatform(
        clock=clock, session_factory=session_factory, settings=test_settings
    )
    return client


def _headers(caller: str) -> dict[str, str]:
    return {"X-Caller": caller}


def test_healthcheck(client):
    response = client.get("/healthz")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_chain_height_reports_server_clock(live_client, clock):
    clock.set_height(1234)
    assert live_client.get("/chain/height").json() == {"height": 1234}


def test_market_lifecycle_over_http(live_client, clock, fund, balance_of):
    fund("alice", 100_000000)
    fund("bob", 100_000000)

    created = live_client.post(
        "/markets",
        json={"reference_price": 50_000_000_000, "open_height": 1000, "close_height": 1100},
        headers=_headers(OWNER),
    )
    assert created.status_code == 201
    market_id = created.json()["market_id"]
    assert market_id == 0

    clock.set_height(1010)
    for caller, direction, amount in (("alice", "up", 60_000000), ("bob", "down", 40_000000)):
        response = live_client.post(
            f"/markets/{market_id}/predictions",
            json={"direction": direction, "stake_amount": amount},
            headers=_headers(caller),
        )
        assert response.status_code == 201
    assert response.json()["direction"] == "down"
    assert response.json()["placed_height"] == 1010

    listed = live_client.get(f"/markets/{market_id}/predictions")
    assert listed.json()["total"] == 2
    assert [item["participant"] for item in listed.json()["items"]] == ["alice", "bob"]

    estimate = live_client.get(f"/markets/{market_id}/predictions/alice/potential-winnings")
    assert estimate.json()["amount"] == 100_000000

    clock.set_height(1100)
    resolved = live_client.post(
        f"/markets/{market_id}/resolution",
        json={"final_price": 51_000_000_000},
        headers=_headers(ORACLE),
    )
    assert resolved.status_code == 200
    assert resolved.json()["resolved"] is True
    assert resolved.json()["resolution_height"] == 1100

    clock.set_height(1101)
    claim = live_client.post(f"/markets/{market_id}/claim", headers=_headers("alice"))
    assert claim.status_code == 200
    assert claim.json() == {"market_id": 0, "participant": "alice", "net_payout": 97_500000}
    assert balance_of("alice") == 137_500000
    assert balance_of(OWNER) == 2_500000
    assert balance_of(POOL) == 0

    stats = live_client.get("/participants/alice/stats").json()
    assert stats["total_predictions"] == 1
    assert stats["total_won"] == 97_500000

    platform_stats = live_client.get("/platform/stats").json()
    assert platform_stats["total_markets"] == 1
    assert platform_stats["total_volume"] == 100_000000


def test_client_supplied_height_is_ignored(live_client, clock, fund):
    fund("mallory", 10_000000)
    live_client.post(
        "/markets",
        json={"reference_price": 10, "open_height": 1000, "close_height": 1100},
        headers=_headers(OWNER),
    )
    clock.set_height(1200)

    response = live_client.post(
        "/markets/0/predictions",
        json={"direction": "up", "stake_amount": 1_000000},
        headers={"X-Caller": "mallory", "X-Block-Height": "1050"},
    )
    assert response.status_code == 409
    assert response.json()["error"]["code"] == "market_closed"
    assert live_client.get("/markets/0").json()["total_up"] == 0


def test_market_list_reports_overall_total(live_client):
    for _ in range(3):
        live_client.post(
            "/markets",
            json={"reference_price": 10, "open_height": 1000, "close_height": 1100},
            headers=_headers(OWNER),
        )
    body = live_client.get("/markets", params={"limit": 2}).json()
    assert body["total"] == 3
    assert [item["market_id"] for item in body["items"]] == [0, 1]


def test_market_status_reports_phase(live_client, clock):
    live_client.post(
        "/markets",
        json={"reference_price": 10, "open_height": 1000, "close_height": 1100},
        headers=_headers(OWNER),
    )
    clock.set_height(1090)
    response = live_client.get("/markets/0/status")
    assert response.json() == {
        "market_id": 0,
        "is_active": True,
        "is_resolved": False,
        "blocks_remaining": 10,
        "phase": "open",
    }


def test_non_owner_cannot_create_market(live_client):
    response = live_client.post(
        "/markets",
        json={"reference_price": 10, "open_height": 1000, "close_height": 1100},
        headers=_headers("mallory"),
    )
    assert response.status_code == 401
    error = response.json()["error"]
    assert error["code"] == "unauthorized"
    assert error["details"]["caller"] == "mallory"


def test_unknown_market_returns_not_found(live_client):
    response = live_client.get("/markets/42")
    assert response.status_code == 404
    assert response.json()["error"]["code"] == "not_found"


def test_admin_updates_return_no_content(live_client):
    response = live_client.put("/platform/fee", json={"fee_rate_bps": 500}, headers=_headers(OWNER))
    assert response.status_code == 204

    rejected = live_client.put("/platform/fee", json={"fee_rate_bps": 5000}, headers=_headers(OWNER))
    assert rejected.status_code == 422
    assert rejected.json()["error"]["code"] == "invalid_parameter"

    stats = live_client.get("/platform/stats").json()
    assert stats["fee_rate_bps"] == 500


def test_caller_header_is_required(live_client):
    response = live_client.post("/markets/0/claim")
    assert response.status_code == 422


def test_errors_from_mocked_platform_are_mapped(client):
    mock_platform = MagicMock()
    mock_platform.claim_winnings.side_effect = Unauthorized("nope", caller="eve")
    app.dependency_overrides[_platform] = lambda: mock_platform

    response = client.post("/markets/3/claim", headers={"X-Caller": "eve"})
    assert response.status_code == 401
    assert response.json() == {
        "error": {"code": "unauthorized", "message": "nope", "details": {"caller": "eve"}}
    }
    mock_platform.claim_winnings.assert_called_once_with("eve", 3)


def test_status_from_mocked_platform(client):
    mock_platform = MagicMock()
    mock_platform.get_market_status.return_value = MarketStatusView(
        market_id=7, is_active=False, is_resolved=True, blocks_remaining=0, phase=MarketPhase.RESOLVED
    )
    app.dependency_overrides[_platform] = lambda: mock_platform

    response = client.get("/markets/7/status")
    assert response.status_code == 200
    assert response.json()["phase"] == "resolved"


def test_uninitialized_platform_is_unavailable(client):
    mock_platform = MagicMock()
    mock_platform.get_platform_stats.side_effect = PlatformNotInitialized("platform is not initialized")
    app.dependency_overrides[_platform] = lambda: mock_platform

    response = client.get("/platform/stats")
    assert response.status_code == 503
    assert response.json()["error"]["code"] == "not_initialized"
