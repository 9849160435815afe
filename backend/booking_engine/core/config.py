"""Application configuration via pydantic settings."""

from functools import lru_cache
from pathlib import Path

from typing import Any

from pydantic import Field
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Typed application configuration."""

    app_env: str = Field("local", alias="APP_ENV")
    app_name: str = "Rental Booking Engine"
    api_v1_prefix: str = "/api/v1"

    database_url: str = Field(..., alias="DATABASE_URL")
    sync_database_url: str | None = Field(default=None, alias="SYNC_DATABASE_URL")

    jwt_secret_key: str = Field(..., alias="JWT_SECRET_KEY")
    jwt_algorithm: str = Field("HS256", alias="JWT_ALGORITHM")

    pending_hold_minutes: int = Field(30, ge=1, alias="PENDING_HOLD_MINUTES")
    customer_cancellation_cutoff_hours: int = Field(
        24, ge=0, alias="CUSTOMER_CANCELLATION_CUTOFF_HOURS"
    )
    storage_timeout_seconds: float = Field(8.0, gt=0, alias="STORAGE_TIMEOUT_SECONDS")
    batch_max_vehicles: int = Field(500, ge=1, alias="BATCH_MAX_VEHICLES")
    batch_fail_open: bool = Field(False, alias="BATCH_FAIL_OPEN")
    marketplace_timezone: str = Field("Asia/Manila", alias="MARKETPLACE_TIMEZONE")

    cors_allowlist: list[str] = Field(
        default_factory=lambda: ["http://localhost:3000"], alias="CORS_ALLOWLIST"
    )
    cors_allow_credentials: bool = Field(default=False, alias="CORS_ALLOW_CREDENTIALS")

    model_config = SettingsConfigDict(
        env_file=Path(__file__).resolve().parents[3] / ".env",
        case_sensitive=False,
    )

    @field_validator("cors_allowlist", mode="before")
    @classmethod
    def _split_origins(cls, value: Any) -> Any:
        if isinstance(value, str):
            return [origin.strip() for origin in value.split(",") if origin.strip()]
        return value


@lru_cache
def get_settings() -> Settings:
    """Return a cached settings instance."""
    return Settings()  # type: ignore[call-arg]
