"""Typed settings configuration - single source of truth."""

from functools import lru_cache

from pydantic import SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # LLM collaborator
    openai_api_key: SecretStr | None = None
    openai_model: str = "gpt-4o-mini"

    # HTTP collaborator service (takes precedence over the LLM client when set)
    collaborator_base_url: str | None = None

    # Collaborator timeouts (milliseconds)
    collaborator_timeout_ms: int = 20000

    # Circuit breaker
    circuit_breaker_failures: int = 5
    circuit_breaker_window_sec: int = 60
    circuit_breaker_half_open_sec: int = 30

    # Arrival / departure buffers (minutes)
    arrival_dwell_min: int = 60
    checkin_buffer_min: int = 180
    checkout_buffer_min: int = 90
    clamp_grace_min: int = 30

    # Gap fill
    last_activity_duration_min: int = 60
    gap_fill_min_minutes: int = 60
    gap_fill_default_start: str = "09:00"

    # Priority thresholds (0-100)
    priority_core: int = 80
    priority_notable: int = 60
    default_priority: int = 10
    gap_fill_default_priority: int = 20

    # Rebalance slack tolerated before contingency absorbs the residual
    rebalance_tolerance: int = 1000

    # Trip defaults
    default_currency: str = "KRW"
    default_people: int = 1


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
