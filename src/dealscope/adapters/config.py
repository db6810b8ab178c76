# src/dealscope/adapters/config.py
from typing import Any

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppConfig(BaseSettings):
    # App & logging
    ENV: str = Field(default="dev")
    LOG_LEVEL: str = Field(default="INFO")

    # -----------------------------
    # Cache / rate limiting
    # -----------------------------
    CACHE_DEFAULT_TTL_S: float | None = Field(default=300.0)
    CACHE_SWEEP_INTERVAL_S: float | None = Field(default=60.0)
    MARKET_DATA_TTL_S: float = Field(default=3600.0)

    RATE_LIMIT_MAX_REQUESTS: int = Field(default=10)
    RATE_LIMIT_PER_S: float = Field(default=1.0)

    # -----------------------------
    # Market data API
    # -----------------------------
    MARKET_API_BASE_URL: str = Field(default="https://api.dealscope.dev/v1")
    MARKET_API_KEY: str | None = Field(default=None)
    MARKET_API_TIMEOUT_S: float = Field(default=20.0)
    MARKET_API_MAX_RETRIES: int = Field(default=3)
    MARKET_API_BACKOFF_BASE_S: float = Field(default=1.0)

    # -----------------------------
    # Listing defaults (plain percentages, 7 means 7%)
    # -----------------------------
    DEFAULT_DOWN_PAYMENT_PCT: float = Field(default=20.0)
    DEFAULT_INTEREST_RATE_PCT: float = Field(default=7.0)
    DEFAULT_LOAN_TERM_YEARS: int = Field(default=30)
    DEFAULT_PROPERTY_TAX_RATE_PCT: float = Field(default=1.5)
    DEFAULT_INSURANCE_RATE_PCT: float = Field(default=0.5)
    DEFAULT_MAINTENANCE_RATE_PCT: float = Field(default=5.0)
    DEFAULT_VACANCY_RATE_PCT: float = Field(default=8.0)
    DEFAULT_MANAGEMENT_FEE_PCT: float = Field(default=10.0)
    DEFAULT_CLOSING_COST_PCT: float = Field(default=3.0)
    DEFAULT_APPRECIATION_RATE_PCT: float = Field(default=3.0)
    RENT_TO_PRICE_RULE_PCT: float = Field(default=1.0)

    IRR_HOLD_YEARS: int = Field(default=5)

    model_config = SettingsConfigDict(
        env_prefix="DEALSCOPE_",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator(
        "DEFAULT_DOWN_PAYMENT_PCT",
        "DEFAULT_INTEREST_RATE_PCT",
        "DEFAULT_PROPERTY_TAX_RATE_PCT",
        "DEFAULT_INSURANCE_RATE_PCT",
        "DEFAULT_MAINTENANCE_RATE_PCT",
        "DEFAULT_VACANCY_RATE_PCT",
        "DEFAULT_MANAGEMENT_FEE_PCT",
        "DEFAULT_CLOSING_COST_PCT",
        "DEFAULT_APPRECIATION_RATE_PCT",
        "RENT_TO_PRICE_RULE_PCT",
        mode="before",
    )
    @classmethod
    def _to_non_negative_percent(cls, v: Any) -> Any:
        if v is None:
            return v
        if isinstance(v, str):
            v = v.strip().replace("%", "")
        try:
            f = float(v)
        except Exception as err:
            raise ValueError("rate must be numeric or percent-like") from err
        if f < 0:
            raise ValueError("rate must be non-negative")
        return f

    @field_validator(
        "RATE_LIMIT_MAX_REQUESTS",
        "RATE_LIMIT_PER_S",
        "DEFAULT_LOAN_TERM_YEARS",
        "IRR_HOLD_YEARS",
        mode="before",
    )
    @classmethod
    def _positive(cls, v: Any) -> Any:
        f = float(v)
        if f <= 0:
            raise ValueError("value must be > 0")
        return v


config = AppConfig()
