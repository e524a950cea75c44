"""Pytest configuration and shared fixtures.

This module provides common fixtures for the AI Dungeon Master test suite:
a scripted model client standing in for the real provider, a recording
event observer, and the bundled sample world and persona.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from typing import TYPE_CHECKING, Any

import pytest

from ai_dm.dm.events import SessionEvents
from ai_dm.models.messages import (
    CompletionRequest,
    CompletionResponse,
    StreamChunk,
    ToolCallRequest,
)


if TYPE_CHECKING:
    from collections.abc import Generator

    from ai_dm.dm.orchestrator import DMOrchestrator
    from ai_dm.models.persona import DMPersona
    from ai_dm.models.world import WorldState


# =============================================================================
# Test doubles
# =============================================================================


def tool_call(name: str, arguments: str = "{}", call_id: str | None = None) -> ToolCallRequest:
    """Build a tool call request the way a model would send it."""
    return ToolCallRequest(id=call_id or f"call_{name}", name=name, arguments=arguments)


class ScriptedLLMClient:
    """Model client that replays a fixed script of responses.

    Each ``complete`` call pops the next response; if ``repeat_last`` is set
    the final response is returned forever. Requests are recorded (as deep
    copies) for later inspection.
    """

    def __init__(
        self,
        responses: list[CompletionResponse | Exception] | None = None,
        *,
        stream_chunks: list[StreamChunk | Exception] | None = None,
        repeat_last: bool = False,
    ) -> None:
        self.responses = list(responses or [])
        self.stream_chunks = list(stream_chunks or [])
        self.repeat_last = repeat_last
        self.requests: list[CompletionRequest] = []
        self.stream_requests: list[CompletionRequest] = []

    @property
    def call_count(self) -> int:
        return len(self.requests)

    async def complete(self, request: CompletionRequest) -> CompletionResponse:
        self.requests.append(request.model_copy(deep=True))
        if not self.responses:
            raise AssertionError("ScriptedLLMClient ran out of responses")
        if self.repeat_last and len(self.responses) == 1:
            response = self.responses[0]
        else:
            response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    async def stream(self, request: CompletionRequest) -> AsyncIterator[StreamChunk]:
        self.stream_requests.append(request.model_copy(deep=True))
        for chunk in self.stream_chunks:
            if isinstance(chunk, Exception):
                raise chunk
            yield chunk


class RecordingEvents(SessionEvents):
    """Observer that records every event as a (name, payload) tuple."""

    def __init__(self) -> None:
        self.events: list[tuple[str, Any]] = []

    def names(self) -> list[str]:
        return [name for name, _ in self.events]

    def turn_started(self, owner: str) -> None:
        self.events.append(("turn_started", owner))

    def turn_ended(self, turn: Any) -> None:
        self.events.append(("turn_ended", turn))

    def tool_called(self, name: str, arguments: dict[str, Any], result: str) -> None:
        self.events.append(("tool_called", (name, arguments, result)))

    def stream_chunk(self, chunk: str) -> None:
        self.events.append(("stream_chunk", chunk))

    def combat_started(self, state: Any) -> None:
        self.events.append(("combat_started", state))

    def combat_ended(self) -> None:
        self.events.append(("combat_ended", None))

    def error(self, error: Exception) -> None:
        self.events.append(("error", error))


# =============================================================================
# Configuration Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def reset_settings_cache() -> Generator[None, None, None]:
    """Reset the settings cache before and after each test."""
    from ai_dm.core.config import clear_settings_cache

    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest.fixture
def mock_env_vars(monkeypatch: pytest.MonkeyPatch) -> dict[str, str]:
    """Set up mock environment variables for testing.

    Returns:
        Dictionary of environment variables that were set.
    """
    env_vars = {
        "AI_DM_OPENAI_API_KEY": "test-openai-key",
        "AI_DM_MODEL": "gpt-test",
        "AI_DM_DEBUG": "true",
        "AI_DM_LOG_LEVEL": "DEBUG",
        "AI_DM_GAME_MAX_TOOL_ITERATIONS": "4",
    }
    for key, value in env_vars.items():
        monkeypatch.setenv(key, value)
    return env_vars


# =============================================================================
# World Fixtures
# =============================================================================


@pytest.fixture
def sample_world() -> WorldState:
    """Fresh copy of the bundled Rusty Flagon world."""
    from ai_dm.samples import create_sample_world

    return create_sample_world()


@pytest.fixture
def sample_persona() -> DMPersona:
    """The default DM persona."""
    from ai_dm.samples import DEFAULT_PERSONA

    return DEFAULT_PERSONA


@pytest.fixture
def recording_events() -> RecordingEvents:
    return RecordingEvents()


@pytest.fixture
def make_orchestrator(
    sample_world: WorldState,
    sample_persona: DMPersona,
    recording_events: RecordingEvents,
) -> Any:
    """Factory building a DMOrchestrator around a scripted client.

    Usage:
        dm = make_orchestrator([CompletionResponse(content="Hi")], max_tool_iterations=3)
    """
    from ai_dm.dm.orchestrator import DMOrchestrator
    from ai_dm.models.session import PlayerCharacter
    from ai_dm.samples import SAMPLE_STARTING_LOCATION

    def _make(
        client_or_responses: ScriptedLLMClient | list[CompletionResponse | Exception],
        **kwargs: Any,
    ) -> DMOrchestrator:
        client = (
            client_or_responses
            if isinstance(client_or_responses, ScriptedLLMClient)
            else ScriptedLLMClient(client_or_responses)
        )
        kwargs.setdefault("events", recording_events)
        kwargs.setdefault("max_tool_iterations", 5)
        kwargs.setdefault(
            "player_characters",
            [PlayerCharacter(id="pc_aria", name="Aria", race="Elf", character_class="Ranger")],
        )
        return DMOrchestrator(
            client,
            sample_world,
            sample_persona,
            starting_location_id=SAMPLE_STARTING_LOCATION,
            **kwargs,
        )

    return _make
