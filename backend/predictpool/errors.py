"""Error taxonomy surfaced by every settlement operation."""

from __future__ import annotations


class SettlementError(Exception):
    """Base class for rejected operations; nothing is mutated when raised."""

    code = "settlement_error"
    status_code = 400

    def __init__(self, message: str, **details: object) -> None:
        self.message = message
        self.details = details
        super().__init__(message)


class Unauthorized(SettlementError):
    """Caller is not the identity required by a gated operation."""

    code = "unauthorized"
    status_code = 401


class NotFound(SettlementError):
    """Unknown market or prediction."""

    code = "not_found"
    status_code = 404


class InvalidPrediction(SettlementError):
    """Bad direction tag, or a claim on a losing prediction."""

    code = "invalid_prediction"
    status_code = 422


class MarketClosed(SettlementError):
    """Operation attempted outside the window it is valid in."""

    code = "market_closed"
    status_code = 409


class AlreadyClaimed(SettlementError):
    code = "already_claimed"
    status_code = 409


class InsufficientBalance(SettlementError):
    code = "insufficient_balance"
    status_code = 402


class InvalidParameter(SettlementError):
    """Parameter outside its allowed range, or a conflicting record."""

    code = "invalid_parameter"
    status_code = 422


class MarketNotResolved(SettlementError):
    code = "market_not_resolved"
    status_code = 409


__all__ = [
    "AlreadyClaimed",
    "InsufficientBalance",
    "InvalidParameter",
    "InvalidPrediction",
    "MarketClosed",
    "MarketNotResolved",
    "NotFound",
    "SettlementError",
    "Unauthorized",
]
