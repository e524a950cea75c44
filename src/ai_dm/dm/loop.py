"""The bounded tool-calling loop.

One ``run`` call drives the model until it answers in plain text or the
iteration budget runs out::

    BUILDING_CONTEXT -> AWAITING_MODEL -> DONE
                             |
                             v
                      DISPATCHING_TOOLS -> AWAITING_MODEL ... -> DONE | ABORTED

Tool-level failures (unknown tool, malformed arguments, failing handler)
are returned to the model as tool results and never end the loop. Budget
exhaustion ends it with a fixed fallback reply. Only ModelCallError
escapes, straight from the model client.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from ai_dm.core.exceptions import MalformedArgumentsError
from ai_dm.core.logging import get_logger
from ai_dm.dm.context import CombatView
from ai_dm.dm.events import EventDispatcher
from ai_dm.dm.llm import LLMClient
from ai_dm.dm.prompts import EMPTY_REPLY, FALLBACK_REPLY
from ai_dm.dm.tools import END_COMBAT, START_COMBAT, ToolErrorKind, ToolRegistry, ToolResult
from ai_dm.models.messages import ChatMessage, CompletionRequest, ToolCallRequest


logger = get_logger(__name__)


class LoopState(StrEnum):
    """States of the tool-calling loop."""

    BUILDING_CONTEXT = "building_context"
    AWAITING_MODEL = "awaiting_model"
    DISPATCHING_TOOLS = "dispatching_tools"
    DONE = "done"
    ABORTED = "aborted"


@dataclass
class LoopResult:
    """Outcome of one loop run.

    Attributes:
        text: The reply to record as the DM turn.
        state: DONE, or ABORTED when the iteration budget ran out.
        model_calls: Number of model calls made.
        tool_results: Every tool result, in dispatch order.
        messages: The working message list as it stood at the end.
    """

    text: str
    state: LoopState
    model_calls: int = 0
    tool_results: list[ToolResult] = field(default_factory=list)
    messages: list[ChatMessage] = field(default_factory=list)

    @property
    def aborted(self) -> bool:
        return self.state == LoopState.ABORTED


def parse_arguments(raw: str | None) -> dict[str, Any]:
    """Parse a tool call's raw JSON payload.

    An empty payload means no arguments.

    Raises:
        MalformedArgumentsError: If the payload is not a JSON object.
    """
    if raw is None or not raw.strip():
        return {}
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise MalformedArgumentsError(f"Arguments are not valid JSON: {exc.msg}") from exc
    if not isinstance(parsed, dict):
        raise MalformedArgumentsError(
            f"Arguments must be a JSON object, got {type(parsed).__name__}"
        )
    return parsed


class ToolCallingLoop:
    """Mediates between the model and the tool registry for one exchange.

    Tool calls from one response are dispatched one after another, in the
    order requested. Not safe to run concurrently for the same session.
    """

    def __init__(
        self,
        client: LLMClient,
        registry: ToolRegistry,
        *,
        max_iterations: int,
        events: EventDispatcher | None = None,
        combat: CombatView | None = None,
        temperature: float | None = None,
        model: str | None = None,
    ) -> None:
        """Initialize the loop.

        Args:
            client: The generative model.
            registry: Tools the model may call.
            max_iterations: Iteration budget; model calls per run never exceed it.
            events: Event dispatcher for tool and combat notifications.
            combat: Combat view read after the reserved combat tools run.
            temperature: Sampling temperature override.
            model: Model override.
        """
        if max_iterations < 1:
            raise ValueError("max_iterations must be at least 1")
        self.client = client
        self.registry = registry
        self.max_iterations = max_iterations
        self.events = events or EventDispatcher()
        self.combat = combat
        self.temperature = temperature
        self.model = model
        self.state = LoopState.BUILDING_CONTEXT

    async def run(self, messages: list[ChatMessage]) -> LoopResult:
        """Drive the model to a final reply.

        Args:
            messages: Context from the context builder. Not modified; the
                loop extends its own copy.

        Returns:
            LoopResult with the reply text.

        Raises:
            ModelCallError: If the model call itself fails.
        """
        self.state = LoopState.BUILDING_CONTEXT
        working = list(messages)
        tools = self.registry.specs()
        tool_results: list[ToolResult] = []
        model_calls = 0

        while True:
            self.state = LoopState.AWAITING_MODEL
            response = await self.client.complete(
                CompletionRequest(
                    messages=working,
                    tools=tools,
                    model=self.model,
                    temperature=self.temperature,
                )
            )
            model_calls += 1

            if not response.wants_tools:
                self.state = LoopState.DONE
                logger.debug("Model replied", model_calls=model_calls, tools=len(tool_results))
                return LoopResult(
                    text=response.content or EMPTY_REPLY,
                    state=self.state,
                    model_calls=model_calls,
                    tool_results=tool_results,
                    messages=working,
                )

            self.state = LoopState.DISPATCHING_TOOLS
            working.append(ChatMessage.assistant(response.content or "", response.tool_calls))
            for call in response.tool_calls:
                result = await self._dispatch(call)
                tool_results.append(result)
                working.append(ChatMessage.tool(result.to_message_content(), call.id))

            if model_calls >= self.max_iterations:
                self.state = LoopState.ABORTED
                logger.warning(
                    "Tool iteration budget exhausted",
                    max_iterations=self.max_iterations,
                    tools=len(tool_results),
                )
                return LoopResult(
                    text=FALLBACK_REPLY,
                    state=self.state,
                    model_calls=model_calls,
                    tool_results=tool_results,
                    messages=working,
                )

    async def _dispatch(self, call: ToolCallRequest) -> ToolResult:
        """Run one requested tool call and notify the event sink."""
        try:
            arguments = parse_arguments(call.arguments)
        except MalformedArgumentsError as exc:
            logger.warning("Unparseable tool arguments", tool=call.name, error=exc.message)
            arguments = {}
            result = ToolResult.failed(call.name, ToolErrorKind.MALFORMED_ARGUMENTS, exc.message)
        else:
            logger.info("Executing tool", tool=call.name, args=arguments)
            result = await self.registry.execute(call.name, arguments)

        self.events.tool_called(call.name, arguments, result.to_message_content())

        if result.success and call.name == START_COMBAT and self.combat is not None:
            state = self.combat.current_state()
            if state is not None:
                self.events.combat_started(state)
        elif result.success and call.name == END_COMBAT:
            self.events.combat_ended()

        return result


__all__ = ["LoopState", "LoopResult", "parse_arguments", "ToolCallingLoop"]
