"""Application configuration settings."""
from __future__ import annotations

import os
from functools import lru_cache

from pydantic import AliasChoices, BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# --- Runtime toggles -----------------------------------------------------
# Execution environment: "dev" | "staging" | "prod"
ENV = os.getenv("CF_ENV", "dev").lower()

# Background reconciliation of the milestone sequence (optional)
SCHEDULER_ENABLED = os.getenv("CF_SCHEDULER_ENABLED", "0") in {
    "1",
    "true",
    "yes",
    "True",
    "YES",
}
RECONCILE_INTERVAL_MINUTES = int(os.getenv("CF_RECONCILE_MINUTES", "15"))


class Settings(BaseSettings):
    """Environment configuration for the crowdfunding backend."""

    app_env: str = ENV
    database_url: str = "sqlite:///crowdfund.db"
    SECRET_KEY: str = "change-me"

    # Shared secret used to sign "order_id|payment_id" on the gateway side.
    payment_signature_secret: str | None = Field(
        default=None,
        validation_alias=AliasChoices("PAYMENT_SIGNATURE_SECRET", "PSP_KEY_SECRET"),
    )
    PAYMENT_CURRENCY: str = "INR"

    STRIPE_ENABLED: bool = False
    STRIPE_SECRET_KEY: str | None = None

    # Share of unique donors needed to approve/reject a milestone.
    VOTE_DECISION_THRESHOLD: float = 0.6

    SCHEDULER_ENABLED: bool = SCHEDULER_ENABLED
    RECONCILE_INTERVAL_MINUTES: int = RECONCILE_INTERVAL_MINUTES
    ALLOW_DB_CREATE_ALL: bool = False

    CORS_ALLOW_ORIGINS: list[str] = [
        "http://localhost:3000",
        "http://localhost:5173",
    ]
    SENTRY_DSN: str | None = None
    PROMETHEUS_ENABLED: bool = True
    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env", env_prefix="", env_file_encoding="utf-8", populate_by_name=True
    )

    @field_validator("payment_signature_secret")
    @classmethod
    def _strip_empty_secret(cls, value: str | None) -> str | None:
        """Normalise empty signature secrets to ``None`` for easier validation."""

        if value is None:
            return None
        cleaned = value.strip()
        return cleaned or None


class AppInfo(BaseModel):
    name: str = "crowdfund-backend"
    version: str = "0.1.0"


settings = Settings()


@lru_cache
def get_settings() -> Settings:
    """Return cached application settings."""

    return settings


__all__ = [
    "ENV",
    "SCHEDULER_ENABLED",
    "RECONCILE_INTERVAL_MINUTES",
    "Settings",
    "AppInfo",
    "settings",
    "get_settings",
]
