from __future__ import annotations

import threading
from typing import Annotated

from fastapi import Depends, FastAPI, Header, Query, Request, status
from fastapi.responses import JSONResponse
from loguru import logger

from . import schemas
from .clock import ChainClock, Clock
from .core.config import settings
from .core.logging import configure_logging
from .db import init_db
from .errors import SettlementError
from .platform import PredictionPlatform
from .repositories import PlatformNotInitialized

app = FastAPI(title="PredictPool API", version="0.1.0", debug=settings.debug)

# Requests are served from a thread pool; whole operations run one at a time.
_operation_lock = threading.Lock()
_chain_clock = ChainClock(settings.chain_genesis, settings.block_time_seconds)


@app.on_event("startup")
def on_startup() -> None:
    """Configure logging, create tables and seed the platform config."""

    configure_logging(settings.log_level)
    init_db()
    PredictionPlatform(clock=_chain_clock, settings=settings, lock=_operation_lock).initialize()
    logger.info("PredictPool API ready ({})", settings.environment)


@app.exception_handler(SettlementError)
async def _settlement_error_handler(request: Request, exc: SettlementError) -> JSONResponse:
    body = schemas.ErrorResponse(
        error=schemas.ErrorBody(code=exc.code, message=exc.message, details=exc.details)
    )
    return JSONResponse(status_code=exc.status_code, content=body.model_dump(mode="json"))


@app.exception_handler(PlatformNotInitialized)
async def _not_initialized_handler(request: Request, exc: PlatformNotInitialized) -> JSONResponse:
    logger.error("Request to {} before platform initialization", request.url.path)
    body = schemas.ErrorResponse(error=schemas.ErrorBody(code="not_initialized", message=str(exc)))
    return JSONResponse(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, content=body.model_dump(mode="json"))


@app.get("/healthz", tags=["system"])
def healthcheck() -> dict[str, str]:
    """Basic readiness probe consumed by infrastructure monitors."""

    return {"status": "ok"}


def _clock() -> Clock:
    return _chain_clock


def _platform(clock: Clock = Depends(_clock)) -> PredictionPlatform:
    """Provide a platform whose window checks read the server-side clock."""

    return PredictionPlatform(clock=clock, settings=settings, lock=_operation_lock)


@app.get("/chain/height", response_model=schemas.ChainHeight, tags=["system"])
def chain_height(clock: Clock = Depends(_clock)):
    return schemas.ChainHeight(height=clock.current_height())


Caller = Annotated[str, Header(alias="X-Caller", min_length=1, description="Authenticated caller identity")]


@app.post("/markets", response_model=schemas.MarketCreated, status_code=201, tags=["markets"])
def create_market(
    payload: schemas.MarketCreate,
    caller: Caller,
    platform: PredictionPlatform = Depends(_platform),
):
    market_id = platform.create_market(
        caller, payload.reference_price, payload.open_height, payload.close_height
    )
    return schemas.MarketCreated(market_id=market_id)


@app.get("/markets", response_model=schemas.MarketList, tags=["markets"])
def list_markets(
    *,
    resolved: Annotated[bool | None, Query(description="Filter by resolution state")] = None,
    limit: Annotated[int, Query(ge=1, le=200)] = 50,
    offset: Annotated[int, Query(ge=0)] = 0,
    platform: PredictionPlatform = Depends(_platform),
):
    page = platform.list_markets(resolved=resolved, limit=limit, offset=offset)
    items = [schemas.Market.model_validate(market) for market in page.markets]
    return schemas.MarketList(total=page.total, items=items)


@app.get("/markets/{market_id}", response_model=schemas.Market, tags=["markets"])
def get_market(market_id: int, platform: PredictionPlatform = Depends(_platform)):
    return schemas.Market.model_validate(platform.get_market_details(market_id))


@app.get("/markets/{market_id}/status", response_model=schemas.MarketStatus, tags=["markets"])
def get_market_status(market_id: int, platform: PredictionPlatform = Depends(_platform)):
    return schemas.MarketStatus.model_validate(platform.get_market_status(market_id))


@app.post("/markets/{market_id}/resolution", response_model=schemas.Market, tags=["markets"])
def resolve_market(
    market_id: int,
    payload: schemas.MarketResolve,
    caller: Caller,
    platform: PredictionPlatform = Depends(_platform),
):
    return schemas.Market.model_validate(
        platform.resolve_market(caller, market_id, payload.final_price)
    )


@app.post(
    "/markets/{market_id}/predictions",
    response_model=schemas.Prediction,
    status_code=201,
    tags=["predictions"],
)
def make_prediction(
    market_id: int,
    payload: schemas.PredictionCreate,
    caller: Caller,
    platform: PredictionPlatform = Depends(_platform),
):
    prediction = platform.make_prediction(caller, market_id, payload.direction, payload.stake_amount)
    return schemas.Prediction.model_validate(prediction)


@app.get("/markets/{market_id}/predictions", response_model=schemas.PredictionList, tags=["predictions"])
def list_predictions(market_id: int, platform: PredictionPlatform = Depends(_platform)):
    items = [
        schemas.Prediction.model_validate(prediction)
        for prediction in platform.list_market_predictions(market_id)
    ]
    return schemas.PredictionList(total=len(items), items=items)


@app.get(
    "/markets/{market_id}/predictions/{participant}",
    response_model=schemas.Prediction,
    tags=["predictions"],
)
def get_prediction(market_id: int, participant: str, platform: PredictionPlatform = Depends(_platform)):
    return schemas.Prediction.model_validate(platform.get_prediction_details(market_id, participant))


@app.get(
    "/markets/{market_id}/predictions/{participant}/potential-winnings",
    response_model=schemas.PotentialWinnings,
    tags=["predictions"],
)
def potential_winnings(market_id: int, participant: str, platform: PredictionPlatform = Depends(_platform)):
    amount = platform.calculate_potential_winnings(market_id, participant)
    return schemas.PotentialWinnings(market_id=market_id, participant=participant, amount=amount)


@app.post("/markets/{market_id}/claim", response_model=schemas.ClaimResult, tags=["predictions"])
def claim_winnings(market_id: int, caller: Caller, platform: PredictionPlatform = Depends(_platform)):
    net_payout = platform.claim_winnings(caller, market_id)
    return schemas.ClaimResult(market_id=market_id, participant=caller, net_payout=net_payout)


@app.get("/participants/{participant}/stats", response_model=schemas.ParticipantStats, tags=["participants"])
def participant_stats(participant: str, platform: PredictionPlatform = Depends(_platform)):
    return schemas.ParticipantStats.model_validate(platform.get_participant_stats(participant))


@app.get("/platform/stats", response_model=schemas.PlatformStats, tags=["platform"])
def platform_stats(platform: PredictionPlatform = Depends(_platform)):
    return schemas.PlatformStats.model_validate(platform.get_platform_stats())


@app.put("/platform/oracle", status_code=204, tags=["platform"])
def update_oracle(payload: schemas.OracleUpdate, caller: Caller, platform: PredictionPlatform = Depends(_platform)):
    platform.update_oracle_address(caller, payload.oracle)


@app.put("/platform/minimum-stake", status_code=204, tags=["platform"])
def update_minimum_stake(
    payload: schemas.MinimumStakeUpdate, caller: Caller, platform: PredictionPlatform = Depends(_platform)
):
    platform.update_minimum_stake(caller, payload.minimum_stake)


@app.put("/platform/fee", status_code=204, tags=["platform"])
def update_platform_fee(
    payload: schemas.PlatformFeeUpdate, caller: Caller, platform: PredictionPlatform = Depends(_platform)
):
    platform.update_platform_fee(caller, payload.fee_rate_bps)


@app.post("/platform/withdrawals", status_code=204, tags=["platform"])
def withdraw_platform_fees(
    payload: schemas.FeeWithdrawal, caller: Caller, platform: PredictionPlatform = Depends(_platform)
):
    platform.withdraw_platform_fees(caller, payload.amount)
