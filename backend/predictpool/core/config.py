from datetime import datetime, timezone
from functools import lru_cache
from typing import Any
from urllib.parse import parse_qsl, urlencode, urlparse, urlunparse

from pydantic import AnyUrl, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _ensure_sqlalchemy_postgres_scheme(value: str) -> str:
    if not value.lower().startswith("postgres"):
        return value

    parsed = urlparse(value)
    scheme = parsed.scheme.lower()

    if scheme in {"postgres", "postgresql"}:
        scheme = "postgresql+psycopg"

    if scheme not in {"postgresql+psycopg", "postgresql+asyncpg"}:
        scheme = "postgresql+psycopg"

    query_params = dict(parse_qsl(parsed.query, keep_blank_values=True))
    query_params.setdefault("target_session_attrs", "read-write")
    new_query = urlencode(query_params, doseq=True)

    return urlunparse(parsed._replace(scheme=scheme, query=new_query))


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    debug: bool = Field(False, description="Enable FastAPI debug mode")
    environment: str = Field(
        default="development",
        description="Runtime environment (development|staging|production)",
    )
    log_level: str = Field(default="INFO", description="Minimum loguru level for entry points")
    database_url: AnyUrl | str = Field(
        default="sqlite:///../data/predictpool.db",
        description="SQLAlchemy compatible database URL",
    )
    platform_owner: str = Field(
        default="platform-owner",
        description="Identity allowed to create markets and run administrative operations",
    )
    platform_oracle: str = Field(
        default="platform-oracle",
        description="Initial identity allowed to resolve markets",
    )
    pool_account: str = Field(
        default="platform-pool",
        description="Ledger principal that escrows every stake until it is claimed",
    )
    default_minimum_stake: int = Field(
        default=1_000000,
        description="Minimum stake written to the platform config on initialization",
        gt=0,
    )
    max_minimum_stake: int = Field(
        default=100_000000,
        description="Upper bound accepted by the minimum stake admin update",
        gt=0,
    )
    default_platform_fee_bps: int = Field(
        default=250,
        description="Platform fee in basis points written on initialization",
        ge=0,
    )
    max_platform_fee_bps: int = Field(
        default=1000,
        description="Cap for the platform fee in basis points",
        ge=0,
    )
    min_market_duration: int = Field(
        default=10,
        description="Minimum number of height units between market open and close",
        ge=1,
    )
    chain_genesis: datetime = Field(
        default=datetime(2024, 1, 1, tzinfo=timezone.utc),
        description="Instant of height 0 for the API's server-side clock",
    )
    block_time_seconds: float = Field(
        default=12.0,
        description="Seconds per height unit for the API's server-side clock",
        gt=0,
    )

    @field_validator("platform_owner", "platform_oracle", "pool_account")
    @classmethod
    def _require_identity(cls, value: str) -> str:
        candidate = value.strip()
        if not candidate:
            raise ValueError("platform identities must not be blank")
        return candidate

    @field_validator("log_level")
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        return value.strip().upper() or "INFO"

    @field_validator("database_url", mode="before")
    @classmethod
    def _normalize_postgres_urls(cls, value: Any) -> Any:
        if value is None or not isinstance(value, str):
            return value
        if value.startswith("postgres://"):
            return "postgresql://" + value[len("postgres://") :]
        return value

    @model_validator(mode="after")
    def _check_platform_bounds(self) -> "Settings":
        if self.default_platform_fee_bps > self.max_platform_fee_bps:
            raise ValueError("DEFAULT_PLATFORM_FEE_BPS must not exceed MAX_PLATFORM_FEE_BPS")
        if self.max_platform_fee_bps > 10_000:
            raise ValueError("MAX_PLATFORM_FEE_BPS must not exceed 10000 basis points")
        if self.default_minimum_stake > self.max_minimum_stake:
            raise ValueError("DEFAULT_MINIMUM_STAKE must not exceed MAX_MINIMUM_STAKE")
        if self.pool_account in {self.platform_owner, self.platform_oracle}:
            raise ValueError("POOL_ACCOUNT must differ from the owner and oracle identities")
        return self

    @property
    def resolved_database_url(self) -> str:
        return _ensure_sqlalchemy_postgres_scheme(str(self.database_url))


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
