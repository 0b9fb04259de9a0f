"""
PayHub Backend Configuration.

Environment-based configuration using Pydantic Settings.
All sensitive values should be set via environment variables.
"""

from functools import lru_cache
from typing import Any

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "PayHub Backend"
    app_version: str = "1.0.0"
    debug: bool = False

    # API
    api_v1_prefix: str = "/api/v1"

    # Database
    database_url: str = "sqlite+aiosqlite:///./payhub.db"

    # JWT Authentication
    jwt_secret_key: str = "CHANGE-ME-JWT-SECRET"
    jwt_algorithm: str = "HS256"
    jwt_access_token_expire_minutes: int = 60

    # Stripe (card processor)
    stripe_secret_key: str = ""
    stripe_webhook_secret: str = ""

    # PayPal (wallet processor)
    paypal_client_id: str = ""
    paypal_client_secret: str = ""
    paypal_webhook_secret: str = ""
    paypal_environment: str = "sandbox"

    # Payments
    default_payment_method: str = "stripe"
    provider_timeout_seconds: float = 15.0
    payment_success_url: str = (
        "http://localhost:8000/api/v1/payments/success?session_id={CHECKOUT_SESSION_ID}"
    )
    payment_cancel_url: str = "http://localhost:8000/api/v1/payments/cancel"
    paypal_return_url: str = "http://localhost:8000/api/v1/payments/paypal/success"
    paypal_cancel_url: str = "http://localhost:8000/api/v1/payments/paypal/cancel"

    # Logging
    log_level: str = "INFO"
    log_json: bool = False

    # CORS
    cors_origins: list[str] = [
        "http://localhost:3000",
        "http://localhost:8000",
    ]

    @field_validator("database_url", mode="before")
    @classmethod
    def validate_database_url(cls, v: Any) -> Any:
        """Ensure database URL uses an async driver."""
        if isinstance(v, str):
            if v.startswith("postgresql://"):
                return v.replace("postgresql://", "postgresql+asyncpg://", 1)
            if v.startswith("sqlite:///"):
                return v.replace("sqlite:///", "sqlite+aiosqlite:///", 1)
        return v

    @property
    def paypal_api_base(self) -> str:
        """PayPal REST API base URL for the configured environment."""
        if self.paypal_environment == "live":
            return "https://api-m.paypal.com"
        return "https://api-m.sandbox.paypal.com"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
