"""Configuration management for the AI Dungeon Master.

Centralized configuration using pydantic-settings, supporting environment
variables, .env files, and runtime overrides. API keys are held as SecretStr.

Example:
    >>> from ai_dm.core.config import get_settings
    >>> settings = get_settings()
    >>> settings.game.max_tool_iterations
    10

Environment Variables:
    AI_DM_OPENAI_API_KEY: OpenAI (or compatible) API key
    AI_DM_BASE_URL: Optional base URL for an OpenAI-compatible endpoint
    AI_DM_MODEL: Chat model identifier
    AI_DM_GAME_MAX_TOOL_ITERATIONS: Model calls allowed per exchange
    AI_DM_LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

from ai_dm.core.exceptions import ConfigurationError


class AIProviderSettings(BaseSettings):
    """Configuration for the generative model provider.

    Attributes:
        openai_api_key: API key for the OpenAI-compatible endpoint.
        base_url: Optional endpoint override (OpenRouter, local servers).
        model: Chat model identifier.
        temperature: Sampling temperature for narration.
        max_tokens: Optional completion token cap.
        max_retries: Attempts made when the provider rate-limits us.
        timeout_seconds: Per-request timeout enforced by the client.
    """

    model_config = SettingsConfigDict(
        env_prefix="AI_DM_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    openai_api_key: SecretStr | None = Field(
        default=None,
        description="OpenAI API key",
    )
    base_url: str | None = Field(
        default=None,
        description="OpenAI-compatible endpoint override",
    )
    model: str = Field(
        default="gpt-4o-mini",
        description="Default chat model",
    )
    temperature: float = Field(
        default=0.8,
        ge=0.0,
        le=2.0,
        description="Sampling temperature",
    )
    max_tokens: int | None = Field(
        default=None,
        gt=0,
        description="Maximum completion tokens",
    )
    max_retries: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Maximum API attempts on rate limiting",
    )
    timeout_seconds: float = Field(
        default=60.0,
        gt=0,
        le=300,
        description="API request timeout",
    )


class GameSettings(BaseSettings):
    """Configuration for the game loop.

    Attributes:
        max_tool_iterations: Model calls allowed within one exchange.
        starting_location_id: Location the REPL starts in, if not the world default.
    """

    model_config = SettingsConfigDict(
        env_prefix="AI_DM_GAME_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    max_tool_iterations: int = Field(
        default=10,
        ge=1,
        le=50,
        description="Iteration budget for the tool-calling loop",
    )
    starting_location_id: str | None = Field(
        default=None,
        description="Starting location override",
    )


class Settings(BaseSettings):
    """Main application settings aggregating all configuration domains.

    Attributes:
        app_name: Application name.
        app_version: Application version string.
        debug: Enable debug mode.
        log_level: Application logging level.
        log_json: Render logs as JSON lines instead of console output.
        ai: Model provider settings.
        game: Game loop settings.
    """

    model_config = SettingsConfigDict(
        env_prefix="AI_DM_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        env_nested_delimiter="__",
    )

    app_name: str = Field(
        default="AI Dungeon Master",
        description="Application name",
    )
    app_version: str = Field(
        default="0.1.0",
        description="Application version",
    )
    debug: bool = Field(
        default=False,
        description="Enable debug mode",
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )
    log_json: bool = Field(
        default=False,
        description="Log JSON lines",
    )

    ai: AIProviderSettings = Field(default_factory=AIProviderSettings)
    game: GameSettings = Field(default_factory=GameSettings)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get the application settings singleton.

    Returns:
        The application Settings instance.

    Raises:
        ConfigurationError: If configuration is missing or invalid.
    """
    try:
        return Settings()
    except Exception as exc:
        raise ConfigurationError(
            f"Failed to load application settings: {exc}",
            details={"original_error": str(exc)},
        ) from exc


def clear_settings_cache() -> None:
    """Clear the settings cache, forcing a reload on next access."""
    get_settings.cache_clear()


__all__ = [
    "AIProviderSettings",
    "GameSettings",
    "Settings",
    "get_settings",
    "clear_settings_cache",
]
