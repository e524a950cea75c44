"""Tool descriptors and the name-keyed tool registry.

Tools are defined by Python and called by the model. The model provides
arguments, Python executes. Every execution resolves to a ToolResult,
whether the tool exists, the arguments validate, or the handler succeeds;
the game loop feeds that result back to the model either way.

Schema validation (``ToolDescriptor.validate``) is kept separate from
dispatch (``ToolRegistry.execute``).
"""

from __future__ import annotations

import inspect
import json
from dataclasses import dataclass
from enum import StrEnum
from typing import Any, Awaitable, Callable

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from ai_dm.core.exceptions import (
    AIDMError,
    DuplicateToolError,
    MalformedArgumentsError,
    ToolHandlerError,
    UnknownToolError,
)
from ai_dm.core.logging import get_logger
from ai_dm.models.messages import ToolSpec


logger = get_logger(__name__)

ToolHandler = Callable[[Any], Any | Awaitable[Any]]


# =============================================================================
# Results
# =============================================================================


class ToolErrorKind(StrEnum):
    """Why a tool execution did not produce output."""

    UNKNOWN_TOOL = "unknown_tool"
    MALFORMED_ARGUMENTS = "malformed_arguments"
    HANDLER_FAILURE = "handler_failure"


class ToolResult(BaseModel):
    """Outcome of one tool execution."""

    tool_name: str
    success: bool
    output: Any = None
    error_kind: ToolErrorKind | None = None
    error: str = ""

    @classmethod
    def ok(cls, tool_name: str, output: Any) -> ToolResult:
        return cls(tool_name=tool_name, success=True, output=output)

    @classmethod
    def failed(cls, tool_name: str, kind: ToolErrorKind, error: str) -> ToolResult:
        return cls(tool_name=tool_name, success=False, error_kind=kind, error=error)

    def to_message_content(self) -> str:
        """Text placed in the tool-result message sent back to the model."""
        if not self.success:
            return f"Error ({self.error_kind}): {self.error}"
        return serialize_output(self.output)


def serialize_output(output: Any) -> str:
    """Serialize a handler's output for the model.

    Strings pass through untouched; models and other values become
    indented JSON.
    """
    if isinstance(output, str):
        return output
    if isinstance(output, BaseModel):
        return output.model_dump_json(indent=2)
    return json.dumps(output, indent=2, default=str)


# =============================================================================
# Descriptors
# =============================================================================


class NoArguments(BaseModel):
    """Input model for tools that take no arguments."""

    model_config = ConfigDict(extra="ignore")


@dataclass
class ToolDescriptor:
    """A tool that the DM can invoke.

    Attributes:
        name: Unique tool name shown to the model.
        description: What the tool does and when to use it.
        input_model: Pydantic model describing (and validating) the input.
        handler: Called with a validated ``input_model`` instance; may be
            sync or async.
    """

    name: str
    description: str
    input_model: type[BaseModel]
    handler: ToolHandler

    @property
    def parameters(self) -> dict[str, Any]:
        """JSON schema of the input."""
        schema = self.input_model.model_json_schema()
        schema.pop("title", None)
        schema.setdefault("properties", {})
        return schema

    def to_spec(self) -> ToolSpec:
        return ToolSpec(
            name=self.name,
            description=self.description,
            parameters=self.parameters,
        )

    def to_openai_schema(self) -> dict[str, Any]:
        """Convert to OpenAI function schema."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameters,
            },
        }

    def validate(self, raw_input: dict[str, Any]) -> BaseModel:
        """Validate raw arguments against the input model.

        Raises:
            MalformedArgumentsError: If validation fails.
        """
        try:
            return self.input_model.model_validate(raw_input)
        except PydanticValidationError as exc:
            problems = "; ".join(
                f"{'.'.join(str(p) for p in err['loc']) or 'input'}: {err['msg']}"
                for err in exc.errors()
            )
            raise MalformedArgumentsError(
                f"Invalid arguments for {self.name}: {problems}",
                tool_name=self.name,
            ) from exc


# =============================================================================
# Registry
# =============================================================================


class ToolRegistry:
    """Name-addressed dispatch of deterministic game capabilities.

    Registering a name twice replaces the earlier entry (last registration
    wins) and keeps its position in ``list()``. Pass ``strict=True`` to
    reject duplicates with DuplicateToolError instead.
    """

    def __init__(self, *, strict: bool = False) -> None:
        self._tools: dict[str, ToolDescriptor] = {}
        self.strict = strict

    def register(self, descriptor: ToolDescriptor) -> ToolRegistry:
        """Store a descriptor under its name.

        Returns:
            The registry, for chaining.

        Raises:
            DuplicateToolError: In strict mode, if the name is taken.
        """
        if descriptor.name in self._tools:
            if self.strict:
                raise DuplicateToolError(
                    f"Tool {descriptor.name} is already registered",
                    tool_name=descriptor.name,
                )
            logger.warning("Replacing registered tool", tool=descriptor.name)
        self._tools[descriptor.name] = descriptor
        return self

    def register_all(self, descriptors: list[ToolDescriptor]) -> ToolRegistry:
        for descriptor in descriptors:
            self.register(descriptor)
        return self

    def get(self, name: str) -> ToolDescriptor | None:
        return self._tools.get(name)

    def has(self, name: str) -> bool:
        return name in self._tools

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)

    def list(self) -> list[ToolDescriptor]:
        """All descriptors in registration order."""
        return list(self._tools.values())

    def names(self) -> list[str]:
        return list(self._tools)

    def specs(self) -> list[ToolSpec]:
        """Descriptors as presented to the model."""
        return [descriptor.to_spec() for descriptor in self._tools.values()]

    def to_openai_schema(self) -> list[dict[str, Any]]:
        return [descriptor.to_openai_schema() for descriptor in self._tools.values()]

    async def execute(self, name: str, raw_input: dict[str, Any] | None = None) -> ToolResult:
        """Look up, validate and run a tool.

        Never raises for tool-level problems: an unknown name, invalid
        arguments or a failing handler all come back as a failed ToolResult.
        """
        descriptor = self._tools.get(name)
        if descriptor is None:
            error = UnknownToolError(f"Unknown tool: {name}", tool_name=name)
            logger.warning("Unknown tool requested", tool=name)
            return ToolResult.failed(name, ToolErrorKind.UNKNOWN_TOOL, error.message)

        try:
            arguments = descriptor.validate(raw_input or {})
        except MalformedArgumentsError as exc:
            logger.warning("Tool arguments rejected", tool=name, error=exc.message)
            return ToolResult.failed(name, ToolErrorKind.MALFORMED_ARGUMENTS, exc.message)

        try:
            output = descriptor.handler(arguments)
            if inspect.isawaitable(output):
                output = await output
        except ToolHandlerError as exc:
            logger.info("Tool refused", tool=name, reason=exc.message)
            return ToolResult.failed(name, ToolErrorKind.HANDLER_FAILURE, exc.message)
        except AIDMError as exc:
            logger.info("Tool failed", tool=name, error=exc.message)
            return ToolResult.failed(name, ToolErrorKind.HANDLER_FAILURE, exc.message)
        except Exception as exc:
            logger.exception("Tool handler raised", tool=name)
            return ToolResult.failed(name, ToolErrorKind.HANDLER_FAILURE, str(exc) or type(exc).__name__)

        logger.debug("Tool executed", tool=name)
        return ToolResult.ok(name, output)


__all__ = [
    "ToolErrorKind",
    "ToolResult",
    "serialize_output",
    "NoArguments",
    "ToolDescriptor",
    "ToolHandler",
    "ToolRegistry",
]
