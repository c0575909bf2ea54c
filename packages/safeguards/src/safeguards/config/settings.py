"""Configuration settings for safeguards."""

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class FlatSettings(BaseSettings):
    """Flat settings read from environment variables or a .env file.

    Only the registry factory and the health report read these values;
    breakers and limiters take their thresholds as constructor arguments.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Circuit breakers (reset timeouts in seconds)
    cb_supabase_failure_threshold: int = Field(
        default=3, ge=1, validation_alias="CB_SUPABASE_FAILURE_THRESHOLD"
    )
    cb_supabase_reset_timeout: float = Field(
        default=30.0, ge=0, validation_alias="CB_SUPABASE_RESET_TIMEOUT"
    )
    cb_claude_failure_threshold: int = Field(
        default=2, ge=1, validation_alias="CB_CLAUDE_FAILURE_THRESHOLD"
    )
    cb_claude_reset_timeout: float = Field(
        default=60.0, ge=0, validation_alias="CB_CLAUDE_RESET_TIMEOUT"
    )
    cb_twilio_failure_threshold: int = Field(
        default=3, ge=1, validation_alias="CB_TWILIO_FAILURE_THRESHOLD"
    )
    cb_twilio_reset_timeout: float = Field(
        default=45.0, ge=0, validation_alias="CB_TWILIO_RESET_TIMEOUT"
    )
    cb_knowledge_base_failure_threshold: int = Field(
        default=5, ge=1, validation_alias="CB_KNOWLEDGE_BASE_FAILURE_THRESHOLD"
    )
    cb_knowledge_base_reset_timeout: float = Field(
        default=30.0, ge=0, validation_alias="CB_KNOWLEDGE_BASE_RESET_TIMEOUT"
    )

    # Rate limiters (requests per window)
    rl_webhook_max_requests: int = Field(
        default=10, ge=1, validation_alias="RL_WEBHOOK_MAX_REQUESTS"
    )
    rl_api_max_requests: int = Field(default=100, ge=1, validation_alias="RL_API_MAX_REQUESTS")
    rl_claude_max_requests: int = Field(
        default=20, ge=1, validation_alias="RL_CLAUDE_MAX_REQUESTS"
    )
    rl_knowledge_base_max_requests: int = Field(
        default=50, ge=1, validation_alias="RL_KNOWLEDGE_BASE_MAX_REQUESTS"
    )
    rl_window_seconds: float = Field(default=60.0, gt=0, validation_alias="RL_WINDOW_SECONDS")

    # Health report
    health_active_keys_warning: int = Field(
        default=50, ge=0, validation_alias="HEALTH_ACTIVE_KEYS_WARNING"
    )

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO", validation_alias="LOG_LEVEL"
    )
    log_format: Literal["json", "console"] = Field(
        default="console", validation_alias="LOG_FORMAT"
    )


@lru_cache
def get_settings() -> FlatSettings:
    """Get cached settings instance."""
    return FlatSettings()
