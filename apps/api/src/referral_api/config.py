"""Referral API configuration.

Settings are loaded from environment variables (.env.local, then .env).
Every value has a development default so the service runs out of the box
against an in-memory SQLite database with mock authentication.
"""

import os
from dataclasses import dataclass
from uuid import UUID

from dotenv import load_dotenv

_project_root = os.path.dirname(
    os.path.dirname(os.path.dirname(os.path.dirname(os.path.dirname(__file__))))
)
load_dotenv(os.path.join(_project_root, ".env.local"))
load_dotenv()  # Also try default .env

DEFAULT_MOCK_USER_ID = "12345678-1234-1234-1234-123456789012"
USER_ID_HEADER = "X-User-Id"


class ConfigurationError(Exception):
    """Raised when a configuration value is invalid."""

    pass


def _env_bool(key: str, default: bool) -> bool:
    """Read a boolean flag from the environment."""
    value = os.getenv(key)
    if value is None or value.strip() == "":
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_uuid(key: str, default: str) -> UUID:
    """Read a UUID from the environment or raise a clear error."""
    value = os.getenv(key, default)
    try:
        return UUID(value)
    except ValueError as e:
        raise ConfigurationError(
            f"Invalid value for {key}: {value!r} is not a UUID"
        ) from e


def _env_positive_int(key: str, default: int) -> int:
    """Read a positive integer from the environment or raise a clear error."""
    value = os.getenv(key)
    if value is None or value.strip() == "":
        return default
    try:
        parsed = int(value)
    except ValueError as e:
        raise ConfigurationError(f"Invalid value for {key}: {value!r}") from e
    if parsed < 1:
        raise ConfigurationError(f"{key} must be at least 1, got {parsed}")
    return parsed


@dataclass
class Settings:
    """Runtime settings for the referral service."""

    database_url: str = "sqlite+aiosqlite:///:memory:"
    link_base_url: str = "https://cartoncaps.app/refer"
    user_id_header: str = USER_ID_HEADER
    default_user_id: UUID = UUID(DEFAULT_MOCK_USER_ID)
    allow_default_user: bool = True
    auto_provision_users: bool = True
    seed_mock_data: bool = True
    code_max_attempts: int = 10
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        """Load settings from environment variables."""
        return cls(
            database_url=os.getenv("DATABASE_URL", cls.database_url),
            link_base_url=os.getenv(
                "REFERRAL_LINK_BASE_URL", cls.link_base_url
            ).rstrip("/"),
            user_id_header=os.getenv("REFERRAL_USER_ID_HEADER", USER_ID_HEADER),
            default_user_id=_env_uuid("REFERRAL_DEFAULT_USER_ID", DEFAULT_MOCK_USER_ID),
            allow_default_user=_env_bool("REFERRAL_ALLOW_DEFAULT_USER", True),
            auto_provision_users=_env_bool("REFERRAL_AUTO_PROVISION_USERS", True),
            seed_mock_data=_env_bool("REFERRAL_SEED_MOCK_DATA", True),
            code_max_attempts=_env_positive_int("REFERRAL_CODE_MAX_ATTEMPTS", 10),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )


settings = Settings.from_env()
