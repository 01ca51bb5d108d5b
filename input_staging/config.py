"""Application configuration management."""

from pathlib import Path
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from input_staging.services.chunking.models import (
    DEFAULT_MAX_CHARS,
    DEFAULT_MAX_UNITS,
    DEFAULT_WARNING_THRESHOLD,
    LimitConfig,
)


class Settings(BaseSettings):
    """Staging settings loaded from environment variables (``STAGING_*``)."""

    # Downstream consumer limits
    max_units: int = Field(
        default=DEFAULT_MAX_UNITS,
        description="Hard ceiling in estimated tokens"
    )
    max_chars: int = Field(
        default=DEFAULT_MAX_CHARS,
        description="Character ceiling used alongside the token estimate"
    )
    warning_threshold: int = Field(
        default=DEFAULT_WARNING_THRESHOLD,
        description="Tokens above which input is flagged but not blocked"
    )

    # Timeouts (in seconds)
    stage_timeout_seconds: Optional[float] = Field(
        default=None,
        description="Maximum time for one stage's processing call; None disables"
    )
    task_timeout_seconds: Optional[float] = Field(
        default=None,
        description="Maximum time for one queued task; None disables"
    )

    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_prefix="STAGING_",
        env_file=str(Path(__file__).resolve().parent.parent / ".env"),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    def limit_config(self) -> LimitConfig:
        """Build a validated LimitConfig from these settings.

        Raises:
            ConfigurationError: If the configured limits are inconsistent
        """
        return LimitConfig(
            max_units=self.max_units,
            max_chars=self.max_chars,
            warning_threshold=self.warning_threshold,
        )


def get_settings() -> Settings:
    """Get application settings instance.

    Returns:
        Settings: Application settings loaded from environment
    """
    return Settings()
