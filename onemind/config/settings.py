"""
Configuration Management for OneMind

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
The router, the media adapters and the capture flows read their knobs from
these classes, so every tunable constant (retry budget, trust threshold,
back-off) is visible in one place and overridable per environment.
"""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class GeminiSettings(BaseSettings):
    """Gemini inference service configuration."""

    model_config = SettingsConfigDict(
        env_prefix="GEMINI_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    api_key: str = Field(
        ...,
        description="Gemini API key"
    )
    model_name: str = Field(
        default="gemini-2.5-flash",
        description="Gemini model to use"
    )

    # Media adapters
    transcription_temperature: float = Field(
        default=0.1,
        ge=0.0,
        le=1.0,
        description="Temperature for audio transcription"
    )
    transcription_max_tokens: int = Field(
        default=500,
        ge=50,
        le=8192,
        description="Maximum tokens in a transcript"
    )
    vision_temperature: float = Field(
        default=0.2,
        ge=0.0,
        le=1.0,
        description="Temperature for image description"
    )
    vision_max_tokens: int = Field(
        default=1000,
        ge=100,
        le=8192,
        description="Maximum tokens for a single-image description"
    )
    vision_batch_max_tokens: int = Field(
        default=1500,
        ge=100,
        le=8192,
        description="Maximum tokens for a multi-image description"
    )
    media_max_retries: int = Field(
        default=2,
        ge=0,
        le=5,
        description="Retries for transcription and vision calls"
    )


class RouterSettings(BaseSettings):
    """
    Classifier/Router configuration.

    Defaults mirror the production behaviour. The back-off sleep itself
    is injected into the router, not configured here.
    """

    model_config = SettingsConfigDict(
        env_prefix="ROUTER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    max_retries: int = Field(
        default=2,
        ge=0,
        le=10,
        description="Retry budget for single classification (N+1 attempts)"
    )
    batch_max_retries: int = Field(
        default=1,
        ge=0,
        le=10,
        description="Retry budget for batch classification"
    )
    backoff_seconds: float = Field(
        default=1.0,
        ge=0.0,
        description="Back-off unit; attempt k waits k * backoff_seconds"
    )

    trust_threshold: float = Field(
        default=0.4,
        ge=0.0,
        le=1.0,
        description="Below this confidence the heuristic classifier is consulted"
    )
    default_confidence: float = Field(
        default=0.5,
        ge=0.0,
        le=1.0,
        description="Confidence used when the model omits it"
    )

    # Generation strictness
    initial_temperature: float = Field(default=0.3, ge=0.0, le=2.0)
    retry_temperature: float = Field(default=0.1, ge=0.0, le=2.0)
    batch_initial_temperature: float = Field(default=0.2, ge=0.0, le=2.0)
    max_output_tokens: int = Field(default=1000, ge=100, le=8192)
    batch_max_output_tokens: int = Field(default=1600, ge=100, le=8192)

    fallback_on_transport_failure: bool = Field(
        default=True,
        description="Return the heuristic guess when the model could not be reached"
    )


class AppSettings(BaseSettings):
    """
    Capture flow settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    low_confidence_hint_threshold: float = Field(
        default=0.7,
        ge=0.0,
        le=1.0,
        description="Below this confidence the source text is appended to the summary"
    )
    source_hint_length: int = Field(
        default=30,
        ge=5,
        le=200,
        description="How many characters of the source text the hint shows"
    )


class Settings(BaseSettings):
    """
    Root settings container.

    Aggregates all sub-settings for easy access.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Loaded lazily to allow partial configuration

    @property
    def gemini(self) -> GeminiSettings:
        return GeminiSettings()

    @property
    def router(self) -> RouterSettings:
        return RouterSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool | str]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid} plus "<name>_error"
    entries for the ones that failed. Useful for startup checks.
    """
    results: dict[str, bool | str] = {}
    settings = get_settings()

    for name in ("gemini", "router", "app"):
        try:
            getattr(settings, name)
            results[name] = True
        except ValueError as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
