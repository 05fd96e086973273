# backend/jayple/core/config.py
from decimal import Decimal
import logging
import os
from pathlib import Path

from dotenv import load_dotenv
from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


def is_running_tests() -> bool:
    """
    Detect if code is running under pytest.

    PYTEST_CURRENT_TEST is set automatically by pytest during test runs, and is
    not expected to be present in production environments.
    """
    return os.getenv("PYTEST_CURRENT_TEST") is not None


# Load .env file only if not in CI
if not os.getenv("CI"):
    env_path = Path(__file__).parent.parent.parent / ".env"  # Goes up to backend/.env
    logger.debug("[CONFIG] Looking for .env at: %s (exists=%s)", env_path, env_path.exists())
    load_dotenv(env_path)


class Settings(BaseSettings):
    """Runtime configuration for the dispatch engine."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore", case_sensitive=False)

    environment: str = Field(default="development")
    is_testing: bool = Field(default=False)

    database_url: str = Field(default="sqlite:///./jayple.db")
    redis_url: str = Field(default="redis://localhost:6379/0")

    secret_key: SecretStr = Field(default=SecretStr("change-me-in-production"))
    algorithm: str = Field(default="HS256")

    # Dispatch tuning
    assignment_timeout_seconds: int = Field(default=30, ge=1)
    assignment_task_deadline_seconds: int = Field(default=300, ge=1)
    max_assignment_attempts: int = Field(default=3, ge=1)

    # Ledger / settlement policy
    commission_rate: Decimal = Field(default=Decimal("0.10"))
    outstanding_limit: Decimal = Field(
        default=Decimal("10000"),
        description="Payable balance below -outstanding_limit blocks the provider",
    )
    settlement_payout_threshold: Decimal = Field(default=Decimal("500"))
    currency: str = Field(default="INR")

    # Optimistic transaction retries
    transaction_max_attempts: int = Field(default=5, ge=1)

    @field_validator("commission_rate")
    @classmethod
    def _validate_commission_rate(cls, value: Decimal) -> Decimal:
        if value < 0 or value > 1:
            raise ValueError("commission_rate must be between 0 and 1")
        return value

    @field_validator("outstanding_limit", "settlement_payout_threshold")
    @classmethod
    def _validate_non_negative(cls, value: Decimal) -> Decimal:
        if value < 0:
            raise ValueError("must be non-negative")
        return value

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")


settings = Settings()

if is_running_tests():
    settings.is_testing = True
