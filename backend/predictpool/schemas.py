from __future__ import annotations

from pydantic import BaseModel, Field, field_validator

from .domain import Direction, MarketPhase


class MarketCreate(BaseModel):
    reference_price: int = Field(gt=0, description="Open price in the smallest price unit")
    open_height: int = Field(ge=0)
    close_height: int = Field(ge=0)


class PredictionCreate(BaseModel):
    direction: str = Field(description="Bet side, 'up' or 'down'")
    stake_amount: int = Field(gt=0)


class MarketResolve(BaseModel):
    final_price: int = Field(gt=0)


class OracleUpdate(BaseModel):
    oracle: str = Field(min_length=1)


class MinimumStakeUpdate(BaseModel):
    minimum_stake: int = Field(gt=0)


class PlatformFeeUpdate(BaseModel):
    fee_rate_bps: int = Field(ge=0)


class FeeWithdrawal(BaseModel):
    amount: int = Field(gt=0)


class Market(BaseModel):
    market_id: int
    creator: str
    reference_price: int
    final_price: int | None = None
    total_up: int
    total_down: int
    open_height: int
    close_height: int
    resolution_height: int | None = None
    resolved: bool

    model_config = {"from_attributes": True}


class MarketList(BaseModel):
    total: int
    items: list[Market]


class ChainHeight(BaseModel):
    height: int


class MarketCreated(BaseModel):
    market_id: int


class Prediction(BaseModel):
    market_id: int
    participant: str
    direction: Direction
    amount: int
    placed_height: int
    claimed: bool
    payout: int

    model_config = {"from_attributes": True}


class PredictionList(BaseModel):
    total: int
    items: list[Prediction]


class ClaimResult(BaseModel):
    market_id: int
    participant: str
    net_payout: int


class PotentialWinnings(BaseModel):
    market_id: int
    participant: str
    amount: int


class MarketStatus(BaseModel):
    market_id: int
    is_active: bool
    is_resolved: bool
    blocks_remaining: int
    phase: MarketPhase

    model_config = {"from_attributes": True}


class PlatformStats(BaseModel):
    total_markets: int
    total_volume: int
    fee_rate_bps: int
    minimum_stake: int
    owner: str
    oracle: str

    model_config = {"from_attributes": True}


class ParticipantStats(BaseModel):
    participant: str
    total_predictions: int
    total_staked: int
    total_won: int
    win_rate_bps: int

    model_config = {"from_attributes": True}


class ErrorBody(BaseModel):
    code: str
    message: str
    details: dict[str, object] = Field(default_factory=dict)

    @field_validator("details", mode="before")
    @classmethod
    def _stringify_details(cls, value: object) -> dict[str, object]:
        if not isinstance(value, dict):
            return {}
        return {key: item if isinstance(item, (int, str, bool)) or item is None else str(item) for key, item in value.items()}


class ErrorResponse(BaseModel):
    error: ErrorBody
