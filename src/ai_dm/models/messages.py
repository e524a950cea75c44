"""Provider-neutral chat message types.

These are the messages the context builder produces and the game loop
extends. The model client converts them to and from the provider's wire
format.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field


class MessageRole(StrEnum):
    """Chat roles understood by the model."""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"


class ToolCallRequest(BaseModel):
    """A tool invocation requested by the model.

    ``arguments`` is the raw, unparsed payload exactly as the model sent it.
    """

    id: str
    name: str
    arguments: str = ""


class ChatMessage(BaseModel):
    """One message in a model request."""

    role: MessageRole
    content: str = ""
    tool_call_id: str | None = None
    tool_calls: list[ToolCallRequest] = Field(default_factory=list)

    @classmethod
    def system(cls, content: str) -> ChatMessage:
        return cls(role=MessageRole.SYSTEM, content=content)

    @classmethod
    def user(cls, content: str) -> ChatMessage:
        return cls(role=MessageRole.USER, content=content)

    @classmethod
    def assistant(
        cls,
        content: str,
        tool_calls: list[ToolCallRequest] | None = None,
    ) -> ChatMessage:
        return cls(role=MessageRole.ASSISTANT, content=content, tool_calls=tool_calls or [])

    @classmethod
    def tool(cls, content: str, tool_call_id: str) -> ChatMessage:
        return cls(role=MessageRole.TOOL, content=content, tool_call_id=tool_call_id)


class ToolSpec(BaseModel):
    """What the model is told about one available tool."""

    name: str
    description: str
    parameters: dict[str, Any] = Field(default_factory=dict)


class CompletionRequest(BaseModel):
    """Request to the generative model."""

    messages: list[ChatMessage]
    tools: list[ToolSpec] = Field(default_factory=list)
    model: str | None = None
    temperature: float | None = None
    max_tokens: int | None = None


class CompletionResponse(BaseModel):
    """Response from the generative model.

    Either plain text with no tool calls, or optional partial text plus one
    or more tool calls.
    """

    content: str | None = None
    tool_calls: list[ToolCallRequest] = Field(default_factory=list)
    finish_reason: str = "stop"

    @property
    def wants_tools(self) -> bool:
        return bool(self.tool_calls)


class StreamChunk(BaseModel):
    """One fragment of a streamed completion.

    ``tool_calls`` is only filled on the final chunk of a response that
    finished by requesting tools.
    """

    content: str | None = None
    is_complete: bool = False
    tool_calls: list[ToolCallRequest] = Field(default_factory=list)


__all__ = [
    "MessageRole",
    "ToolCallRequest",
    "ChatMessage",
    "ToolSpec",
    "CompletionRequest",
    "CompletionResponse",
    "StreamChunk",
]
