# backend/trialdesk/core/config.py
import logging
import os
from pathlib import Path
from typing import Dict, List, Literal, Optional

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .constants import (
    CLIENT_TIMEZONE_ALIASES,
    DEFAULT_ENABLED_CURRENCIES,
    REFERENCE_TIMEZONE,
    SLOT_MINUTES,
    UNIQUE_ID_PREFIX,
)


def is_running_tests() -> bool:
    """
    Detect if code is running under pytest.

    PYTEST_CURRENT_TEST is set automatically by pytest during test runs, and is
    not expected to be present in production environments.
    """
    return os.getenv("PYTEST_CURRENT_TEST") is not None


logger = logging.getLogger(__name__)

# Load .env file only if not in CI
if not os.getenv("CI"):
    env_path = Path(__file__).parent.parent.parent / ".env"  # Goes up to backend/.env
    logger.debug("[CONFIG] Looking for .env at: %s (exists=%s)", env_path, env_path.exists())
    load_dotenv(env_path)


class Settings(BaseSettings):
    environment: Literal["development", "test", "staging", "production"] = Field(
        default="development",
        description="Deployment environment name",
    )

    database_url: str = Field(
        default="sqlite+pysqlite:///./trialdesk.db",
        description="SQLAlchemy database URL (PostgreSQL in production, SQLite locally)",
    )
    database_echo: bool = False

    # Timezones
    reference_timezone: str = Field(
        default=REFERENCE_TIMEZONE,
        description="Operational timezone used for teacher display and the same-day lock",
    )
    client_timezone_aliases: Dict[str, str] = Field(
        default_factory=lambda: dict(CLIENT_TIMEZONE_ALIASES),
        description="Short client timezone names accepted by search (alias -> IANA)",
    )

    # Slot grid
    slot_minutes: int = Field(default=SLOT_MINUTES, ge=5, le=120)

    # Payments
    enabled_currencies: List[str] = Field(
        default_factory=lambda: list(DEFAULT_ENABLED_CURRENCIES),
        description="Currency codes a family may lock",
    )

    # Record identifiers (AYB_2025_000123 / AYB_2025_FAM_000045)
    unique_id_prefix: str = UNIQUE_ID_PREFIX

    # Redis advisory lock around slot reservation
    redis_url: str = Field(default="redis://localhost:6379/0")
    slot_lock_enabled: bool = Field(
        default=True,
        description="Wrap slot reservation in a Redis mutex (database CAS remains authoritative)",
    )
    slot_lock_ttl_seconds: int = Field(default=30, ge=1)
    slot_lock_namespace: str = "trialdesk"

    create_schema_on_startup: bool = Field(
        default=False,
        description="Create missing tables when the API starts (local development)",
    )

    # Set by the test harness
    is_testing: bool = False

    model_config = SettingsConfigDict(
        env_file=".env" if not os.getenv("CI") else None,
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("enabled_currencies")
    @classmethod
    def normalize_currencies(cls, value: List[str]) -> List[str]:
        return [code.strip().upper() for code in value if code and code.strip()]

    def resolve_client_alias(self, zone_id: Optional[str]) -> Optional[str]:
        """Map a client alias (e.g. 'uae') to its IANA zone, else return the input."""
        if zone_id is None:
            return None
        return self.client_timezone_aliases.get(zone_id.strip().lower(), zone_id.strip())


settings = Settings()
