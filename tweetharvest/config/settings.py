"""
Application Settings.

Centralized configuration using Pydantic Settings with environment variable loading.
Every credential is optional at load time so dry runs need no Supabase
access; each command checks the values it needs with Settings.require().
"""

from functools import lru_cache
from typing import Literal

from pydantic import AliasChoices, Field, SecretStr, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from tweetharvest.core.exceptions import ConfigurationError


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # -------------------------------------------------------------------------
    # Supabase
    # -------------------------------------------------------------------------
    supabase_url: str | None = Field(default=None, description="Supabase project URL")
    supabase_key: SecretStr | None = Field(
        default=None,
        validation_alias=AliasChoices("supabase_anon_key", "supabase_key"),
        description="Supabase anon or service key",
    )

    # -------------------------------------------------------------------------
    # Timeline API
    # -------------------------------------------------------------------------
    auth_token: SecretStr | None = Field(
        default=None, description="Upstream timeline auth token"
    )
    timeline_api_url: str = Field(
        default="http://localhost:3000",
        description="Base URL of the timeline API gateway",
    )
    timeline_timeout_seconds: float = Field(default=30.0)

    # -------------------------------------------------------------------------
    # AI classification service (OpenAI-compatible)
    # -------------------------------------------------------------------------
    ai_service_url: str | None = Field(default=None, description="AI service base URL")
    ai_service_token: SecretStr | None = Field(default=None, description="AI service token")
    ai_service_model: str = Field(default="gpt-3.5-turbo")
    ai_service_timeout: int = Field(default=120, description="AI call timeout in seconds")

    # -------------------------------------------------------------------------
    # ai_draw sink
    # -------------------------------------------------------------------------
    ai_draw_sink_url: str = Field(
        default="https://py-service.flyooo.uk/social/save_from_twitter_fetch",
        description="Endpoint that receives ai_draw records before persistence",
    )

    # -------------------------------------------------------------------------
    # Ingestion
    # -------------------------------------------------------------------------
    debug: bool = Field(default=False, description="Dump raw pages to debug/")
    debug_dir: str = Field(default="debug")
    user_limit: int = Field(default=100, ge=1, description="Max subjects per run")
    page_delay_seconds: float = Field(default=2.0, ge=0.0)
    subject_delay_seconds: float = Field(default=2.0, ge=0.0)
    refresh_delay_seconds: float = Field(default=1.0, ge=0.0)
    incremental_max_pages: int = Field(default=1, ge=1)
    history_max_pages: int = Field(default=2, ge=1)
    max_tweet_age_days: int = Field(default=30, ge=0)

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )

    def require(self, *names: str) -> None:
        """Raise ConfigurationError for the first unset setting in ``names``."""
        for name in names:
            value = getattr(self, name, None)
            if isinstance(value, SecretStr):
                value = value.get_secret_value()
            if not value:
                raise ConfigurationError(
                    f"Missing required configuration: {name.upper()}",
                    config_key=name,
                )


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    Call get_settings.cache_clear() to reload settings if needed.

    Raises:
        ConfigurationError: If required values are missing or invalid.
    """
    try:
        return Settings()
    except ValidationError as e:
        missing = [".".join(str(p) for p in err["loc"]) for err in e.errors()]
        raise ConfigurationError(
            f"Invalid configuration: {', '.join(missing)}",
            config_key=missing[0] if missing else None,
        ) from e
