"""Custom exception hierarchy for the AI Dungeon Master.

All exceptions inherit from AIDMError, enabling unified error handling at
the application boundary while preserving domain-specific context.

Two families matter to the game loop:

- Tool errors (UnknownToolError, MalformedArgumentsError, ToolHandlerError)
  are recoverable. The tool registry turns them into tool results that are
  fed back to the model; they never escape an exchange.
- Model errors (ModelCallError and subclasses) are fatal for the current
  exchange and propagate to the caller of ``process_input``.

Example:
    >>> from ai_dm.core.exceptions import ModelConnectionError
    >>> raise ModelConnectionError("Connection refused", provider="openai")
"""

from __future__ import annotations

from typing import Any


class AIDMError(Exception):
    """Base exception for all AI Dungeon Master errors.

    Attributes:
        message: Human-readable error description.
        details: Optional dictionary containing additional error context.
    """

    def __init__(self, message: str, *, details: dict[str, Any] | None = None) -> None:
        """Initialize the base exception.

        Args:
            message: Human-readable error description.
            details: Optional dictionary containing additional error context.
        """
        self.message = message
        self.details = details or {}
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format the exception message with optional details.

        Returns:
            Formatted error message including any provided details.
        """
        if self.details:
            detail_str = ", ".join(f"{k}={v!r}" for k, v in self.details.items())
            return f"{self.message} [{detail_str}]"
        return self.message

    def __repr__(self) -> str:
        """Return a detailed string representation of the exception."""
        return f"{self.__class__.__name__}(message={self.message!r}, details={self.details!r})"


# =============================================================================
# Configuration & Validation Exceptions
# =============================================================================


class ConfigurationError(AIDMError):
    """Raised when application configuration is invalid."""

    def __init__(
        self,
        message: str,
        *,
        config_key: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize configuration error with config key context.

        Args:
            message: Human-readable error description.
            config_key: The configuration key that caused the error.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if config_key:
            combined_details["config_key"] = config_key
        super().__init__(message, details=combined_details)


class ValidationError(AIDMError):
    """Raised when data validation fails."""

    def __init__(
        self,
        message: str,
        *,
        field_name: str | None = None,
        invalid_value: Any | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize validation error with field context.

        Args:
            message: Human-readable error description.
            field_name: Name of the field that failed validation.
            invalid_value: The value that failed validation.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if field_name:
            combined_details["field_name"] = field_name
        if invalid_value is not None:
            combined_details["invalid_value"] = invalid_value
        super().__init__(message, details=combined_details)


# =============================================================================
# Game Engine Domain Exceptions
# =============================================================================


class GameEngineError(AIDMError):
    """Base exception for game state and rules errors."""


class WorldStateError(GameEngineError):
    """Raised when the world state cannot satisfy a request.

    Typically a reference to a location or entity id that does not exist.
    """

    def __init__(
        self,
        message: str,
        *,
        reference: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        combined_details = details or {}
        if reference:
            combined_details["reference"] = reference
        super().__init__(message, details=combined_details)


class CombatError(GameEngineError):
    """Raised when a combat operation is not possible in the current state."""

    def __init__(
        self,
        message: str,
        *,
        combatant_id: str | None = None,
        round_number: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize combat error with combat context.

        Args:
            message: Human-readable error description.
            combatant_id: Identifier of the combatant involved.
            round_number: Current combat round when error occurred.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if combatant_id:
            combined_details["combatant_id"] = combatant_id
        if round_number is not None:
            combined_details["round_number"] = round_number
        super().__init__(message, details=combined_details)


class DiceRollError(GameEngineError):
    """Raised when dice notation cannot be parsed or rolled."""

    def __init__(
        self,
        message: str,
        *,
        expression: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize dice roll error with expression context.

        Args:
            message: Human-readable error description.
            expression: The dice expression that caused the error.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if expression:
            combined_details["expression"] = expression
        super().__init__(message, details=combined_details)


# =============================================================================
# Tool Domain Exceptions
# =============================================================================


class ToolError(AIDMError):
    """Base exception for tool registration and dispatch errors."""

    def __init__(
        self,
        message: str,
        *,
        tool_name: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        combined_details = details or {}
        if tool_name:
            combined_details["tool_name"] = tool_name
        self.tool_name = tool_name
        super().__init__(message, details=combined_details)


class UnknownToolError(ToolError):
    """Raised when a tool name is not present in the registry."""


class MalformedArgumentsError(ToolError):
    """Raised when tool arguments cannot be parsed or fail schema validation."""


class ToolHandlerError(ToolError):
    """Raised when a tool handler fails.

    Handlers may raise this directly to report a game-level refusal
    (e.g. "no combat is active"); any other exception is wrapped.
    """


class DuplicateToolError(ToolError):
    """Raised by a strict registry when a tool name is registered twice."""


# =============================================================================
# Model (LLM) Domain Exceptions
# =============================================================================


class ModelCallError(AIDMError):
    """Base exception for failures of the generative model itself.

    These are never caught by the game loop: they abort the current
    exchange and propagate to the caller.
    """

    def __init__(
        self,
        message: str,
        *,
        model: str | None = None,
        provider: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize model call error with model context.

        Args:
            message: Human-readable error description.
            model: Name of the model involved.
            provider: Name of the provider (e.g., 'openai').
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if model:
            combined_details["model"] = model
        if provider:
            combined_details["provider"] = provider
        super().__init__(message, details=combined_details)


class ModelConnectionError(ModelCallError):
    """Raised when the model provider cannot be reached or rejects credentials."""


class ModelResponseError(ModelCallError):
    """Raised when the provider answers with an error status or an unusable payload."""


class ModelRateLimitError(ModelCallError):
    """Raised when provider rate limits are still exceeded after retrying."""

    def __init__(
        self,
        message: str,
        *,
        retry_after_seconds: float | None = None,
        model: str | None = None,
        provider: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        combined_details = details or {}
        if retry_after_seconds is not None:
            combined_details["retry_after_seconds"] = retry_after_seconds
        super().__init__(message, model=model, provider=provider, details=combined_details)


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
]
