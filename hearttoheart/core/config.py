"""Application configuration management using Pydantic Settings."""

from functools import lru_cache
from typing import Literal

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    All settings can be overridden via environment variables.
    An empty OPENAI_API_KEY leaves the generation backend unconfigured;
    every generation call then answers with its localized fallback.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = Field(default="hearttoheart-backend", description="Application name")
    app_env: str = Field(default="development", description="Environment (development/staging/production)")
    debug: bool = Field(default=False, description="Enable debug mode")

    # Server
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=8080, description="Server port")

    # CORS
    cors_origins: str = Field(
        default="http://localhost:3000,http://localhost:5173",
        description="Comma-separated list of allowed CORS origins",
    )

    # OpenAI
    openai_api_key: str = Field(default="", description="OpenAI API key (empty disables generation)")
    openai_model: str = Field(default="gpt-4o-mini", description="OpenAI text model")
    tts_model: str = Field(default="gpt-4o-mini-tts", description="OpenAI speech model")
    tts_sample_rate: int = Field(default=24000, description="Sample rate of PCM speech output in Hz")
    generation_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        description="Upper bound for a single generation call, after which the fallback is used",
    )

    # Content
    default_language: Literal["zh", "en"] = Field(default="zh", description="Language of a fresh flow")

    # Flow registry
    flow_ttl_seconds: int = Field(default=3600, description="Idle lifetime of an assessment flow in seconds")
    flow_max_count: int = Field(default=1000, description="Maximum number of live assessment flows")
    flow_cleanup_interval_seconds: int = Field(default=300, description="Flow cleanup loop period in seconds")

    @model_validator(mode="after")
    def strip_api_key(self) -> "Settings":
        """Normalize whitespace-only API keys to empty."""
        self.openai_api_key = self.openai_api_key.strip()
        return self

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS origins string into a list."""
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def generation_enabled(self) -> bool:
        """Check whether an OpenAI key is configured."""
        return bool(self.openai_api_key)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings singleton.

    Returns:
        Settings: Application settings instance.

    Note:
        Settings are cached using lru_cache for performance.
        Call get_settings.cache_clear() to reload settings.
    """
    return Settings()
