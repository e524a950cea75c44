"""Generative model clients.

The game loop talks to the model only through the ``LLMClient`` protocol.
``OpenAIChatClient`` implements it on top of ``openai.AsyncOpenAI`` and works
with any OpenAI-compatible endpoint (set ``base_url`` for OpenRouter or a
local server).

Every failure of the model call itself is raised as a ModelCallError
subclass. The game loop never catches these.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from typing import Any, Protocol

from openai import (
    APIConnectionError,
    APIStatusError,
    AsyncOpenAI,
    AuthenticationError,
    OpenAIError,
    RateLimitError,
)
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from ai_dm.core.config import get_settings
from ai_dm.core.exceptions import (
    ConfigurationError,
    ModelCallError,
    ModelConnectionError,
    ModelRateLimitError,
    ModelResponseError,
)
from ai_dm.core.logging import get_logger
from ai_dm.models.messages import (
    ChatMessage,
    CompletionRequest,
    CompletionResponse,
    MessageRole,
    StreamChunk,
    ToolCallRequest,
    ToolSpec,
)


logger = get_logger(__name__)

PROVIDER = "openai"


class LLMClient(Protocol):
    """What the game loop needs from a generative model."""

    async def complete(self, request: CompletionRequest) -> CompletionResponse:
        """Run one completion; the response is text or tool requests."""
        ...

    def stream(self, request: CompletionRequest) -> AsyncIterator[StreamChunk]:
        """Stream one completion as text fragments, ending with ``is_complete``."""
        ...


# =============================================================================
# Wire format conversion
# =============================================================================


def to_openai_messages(messages: list[ChatMessage]) -> list[dict[str, Any]]:
    """Convert internal messages to chat completions message params."""
    converted: list[dict[str, Any]] = []
    for message in messages:
        if message.role == MessageRole.TOOL:
            converted.append(
                {
                    "role": "tool",
                    "content": message.content,
                    "tool_call_id": message.tool_call_id or "",
                }
            )
        elif message.role == MessageRole.ASSISTANT and message.tool_calls:
            converted.append(
                {
                    "role": "assistant",
                    "content": message.content or None,
                    "tool_calls": [
                        {
                            "id": call.id,
                            "type": "function",
                            "function": {"name": call.name, "arguments": call.arguments},
                        }
                        for call in message.tool_calls
                    ],
                }
            )
        else:
            converted.append({"role": str(message.role), "content": message.content})
    return converted


def to_openai_tools(tools: list[ToolSpec]) -> list[dict[str, Any]]:
    """Convert tool specs to OpenAI function schemas."""
    return [
        {
            "type": "function",
            "function": {
                "name": tool.name,
                "description": tool.description,
                "parameters": tool.parameters,
            },
        }
        for tool in tools
    ]


def from_openai_tool_calls(tool_calls: Any) -> list[ToolCallRequest]:
    """Map SDK tool call objects onto ToolCallRequest."""
    if not tool_calls:
        return []
    return [
        ToolCallRequest(
            id=call.id,
            name=call.function.name,
            arguments=call.function.arguments or "",
        )
        for call in tool_calls
    ]


class _ToolCallAccumulator:
    """Reassemble tool calls from streamed deltas, keyed by index."""

    def __init__(self) -> None:
        self._calls: dict[int, dict[str, str]] = {}

    def add(self, deltas: Any) -> None:
        for delta in deltas or []:
            entry = self._calls.setdefault(delta.index, {"id": "", "name": "", "arguments": ""})
            if delta.id:
                entry["id"] = delta.id
            function = delta.function
            if function is not None:
                if function.name:
                    entry["name"] = function.name
                if function.arguments:
                    entry["arguments"] += function.arguments

    def build(self) -> list[ToolCallRequest]:
        return [ToolCallRequest(**self._calls[index]) for index in sorted(self._calls)]


# =============================================================================
# OpenAI client
# =============================================================================


class OpenAIChatClient:
    """LLMClient backed by the OpenAI chat completions API.

    Rate-limit errors are retried with exponential backoff; everything else
    is mapped onto a ModelCallError straight away.

    Attributes:
        model: Default model identifier.
        temperature: Default sampling temperature.
        max_tokens: Default completion token cap.
        max_retries: Attempts made when rate limited.
        retry_wait: tenacity wait strategy between rate-limit retries.
    """

    def __init__(
        self,
        *,
        api_key: str | None = None,
        base_url: str | None = None,
        model: str = "gpt-4o-mini",
        temperature: float = 0.8,
        max_tokens: int | None = None,
        max_retries: int = 3,
        timeout_seconds: float = 60.0,
        client: Any = None,
    ) -> None:
        """Initialize the client.

        Args:
            api_key: Provider API key.
            base_url: Optional OpenAI-compatible endpoint.
            model: Default model identifier.
            temperature: Default sampling temperature.
            max_tokens: Default completion token cap.
            max_retries: Attempts made when rate limited.
            timeout_seconds: Per-request timeout.
            client: Pre-built AsyncOpenAI-compatible client (mainly for tests).
        """
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.max_retries = max_retries
        self.retry_wait = wait_exponential(multiplier=1, min=1, max=10)
        # SDK retries are disabled; rate limits are retried here.
        self._client = client or AsyncOpenAI(
            api_key=api_key,
            base_url=base_url,
            timeout=timeout_seconds,
            max_retries=0,
        )

        logger.info("OpenAIChatClient initialized", model=model, base_url=base_url)

    def _build_kwargs(self, request: CompletionRequest, *, stream: bool) -> dict[str, Any]:
        kwargs: dict[str, Any] = {
            "model": request.model or self.model,
            "messages": to_openai_messages(request.messages),
            "temperature": request.temperature if request.temperature is not None else self.temperature,
        }
        if request.tools:
            kwargs["tools"] = to_openai_tools(request.tools)
            kwargs["tool_choice"] = "auto"
        max_tokens = request.max_tokens or self.max_tokens
        if max_tokens is not None:
            kwargs["max_tokens"] = max_tokens
        if stream:
            kwargs["stream"] = True
        return kwargs

    async def _create(self, kwargs: dict[str, Any]) -> Any:
        """Call the API, retrying rate limits and mapping SDK errors."""
        model = kwargs["model"]
        try:
            async for attempt in AsyncRetrying(
                retry=retry_if_exception_type(RateLimitError),
                stop=stop_after_attempt(self.max_retries),
                wait=self.retry_wait,
                before_sleep=self._log_retry,
                reraise=True,
            ):
                with attempt:
                    return await self._client.chat.completions.create(**kwargs)
        except OpenAIError as exc:
            raise self._map_error(exc, model) from exc
        raise ModelCallError("Model call made no attempt", model=model, provider=PROVIDER)

    @staticmethod
    def _log_retry(retry_state: Any) -> None:
        logger.warning("Rate limited, retrying", attempt=retry_state.attempt_number)

    def _map_error(self, exc: OpenAIError, model: str) -> ModelCallError:
        if isinstance(exc, RateLimitError):
            retry_after = None
            header = exc.response.headers.get("retry-after") if exc.response is not None else None
            if header:
                try:
                    retry_after = float(header)
                except ValueError:
                    retry_after = None
            return ModelRateLimitError(
                f"Rate limit exceeded after {self.max_retries} attempts",
                retry_after_seconds=retry_after,
                model=model,
                provider=PROVIDER,
            )
        if isinstance(exc, AuthenticationError):
            return ModelConnectionError(
                f"Provider rejected credentials: {exc}",
                model=model,
                provider=PROVIDER,
                details={"status_code": exc.status_code},
            )
        if isinstance(exc, APIConnectionError):
            return ModelConnectionError(
                f"Failed to connect to AI provider: {exc}",
                model=model,
                provider=PROVIDER,
            )
        if isinstance(exc, APIStatusError):
            return ModelResponseError(
                f"AI API error: {exc}",
                model=model,
                provider=PROVIDER,
                details={"status_code": exc.status_code},
            )
        return ModelCallError(f"AI call failed: {exc}", model=model, provider=PROVIDER)

    async def complete(self, request: CompletionRequest) -> CompletionResponse:
        """Run one non-streaming completion."""
        kwargs = self._build_kwargs(request, stream=False)
        logger.debug(
            "Requesting completion",
            model=kwargs["model"],
            messages=len(kwargs["messages"]),
            tools=len(request.tools),
        )
        response = await self._create(kwargs)

        if not response.choices:
            raise ModelResponseError(
                "No completion choice returned",
                model=kwargs["model"],
                provider=PROVIDER,
            )
        choice = response.choices[0]
        return CompletionResponse(
            content=choice.message.content,
            tool_calls=from_openai_tool_calls(choice.message.tool_calls),
            finish_reason=choice.finish_reason or "stop",
        )

    async def stream(self, request: CompletionRequest) -> AsyncIterator[StreamChunk]:
        """Stream one completion.

        Content fragments are yielded as they arrive; the chunk carrying the
        finish reason has ``is_complete`` set, plus any accumulated tool calls.
        """
        kwargs = self._build_kwargs(request, stream=True)
        response = await self._create(kwargs)
        accumulator = _ToolCallAccumulator()

        try:
            async for chunk in response:
                if not chunk.choices:
                    continue
                choice = chunk.choices[0]
                delta = choice.delta
                if delta is not None:
                    accumulator.add(delta.tool_calls)
                finish_reason = choice.finish_reason
                yield StreamChunk(
                    content=delta.content if delta is not None else None,
                    is_complete=finish_reason is not None,
                    tool_calls=accumulator.build() if finish_reason == "tool_calls" else [],
                )
        except OpenAIError as exc:
            raise self._map_error(exc, kwargs["model"]) from exc


def create_client_from_settings() -> OpenAIChatClient:
    """Build an OpenAIChatClient from application settings.

    Raises:
        ConfigurationError: If no API key is configured.
    """
    ai = get_settings().ai
    if ai.openai_api_key is None:
        raise ConfigurationError(
            "No API key configured; set AI_DM_OPENAI_API_KEY",
            config_key="openai_api_key",
        )
    return OpenAIChatClient(
        api_key=ai.openai_api_key.get_secret_value(),
        base_url=ai.base_url,
        model=ai.model,
        temperature=ai.temperature,
        max_tokens=ai.max_tokens,
        max_retries=ai.max_retries,
        timeout_seconds=ai.timeout_seconds,
    )


__all__ = [
    "LLMClient",
    "OpenAIChatClient",
    "create_client_from_settings",
    "to_openai_messages",
    "to_openai_tools",
    "from_openai_tool_calls",
]
