"""Core module providing configuration, logging, and base exceptions.

Exports:
    Exceptions:
        AIDMError: Base exception for all application errors.
        ToolError family: Recoverable tool dispatch failures.
        ModelCallError family: Failures of the generative model.

    Configuration:
        Settings: Main application settings class.
        get_settings: Get the settings singleton.
        clear_settings_cache: Force settings reload.

    Logging:
        configure_logging: Set up application logging.
        get_logger: Get a configured logger instance.
        bind_context: Add context to log entries.
        unbind_context: Remove context from log entries.
"""

from __future__ import annotations

from ai_dm.core.config import (
    AIProviderSettings,
    GameSettings,
    Settings,
    clear_settings_cache,
    get_settings,
)
from ai_dm.core.exceptions import (
    AIDMError,
    CombatError,
    ConfigurationError,
    DiceRollError,
    DuplicateToolError,
    GameEngineError,
    MalformedArgumentsError,
    ModelCallError,
    ModelConnectionError,
    ModelRateLimitError,
    ModelResponseError,
    ToolError,
    ToolHandlerError,
    UnknownToolError,
    ValidationError,
    WorldStateError,
)
from ai_dm.core.logging import (
    bind_context,
    configure_logging,
    get_logger,
    unbind_context,
)


__all__ = [
    # Base exception
    "AIDMError",
    # Configuration exceptions
    "ConfigurationError",
    "ValidationError",
    # Game engine exceptions
    "GameEngineError",
    "WorldStateError",
    "CombatError",
    "DiceRollError",
    # Tool exceptions
    "ToolError",
    "UnknownToolError",
    "MalformedArgumentsError",
    "ToolHandlerError",
    "DuplicateToolError",
    # Model exceptions
    "ModelCallError",
    "ModelConnectionError",
    "ModelResponseError",
    "ModelRateLimitError",
    # Configuration
    "Settings",
    "AIProviderSettings",
    "GameSettings",
    "get_settings",
    "clear_settings_cache",
    # Logging
    "configure_logging",
    "get_logger",
    "bind_context",
    "unbind_context",
]
