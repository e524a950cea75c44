"""Integration tests for complete DM exchanges.

These drive a DMOrchestrator over the bundled sample world with a scripted
model, checking history growth, tool rounds, failures, streaming and
snapshots end to end.
"""

from __future__ import annotations

import json

import pytest
import structlog

from ai_dm.core.exceptions import ConfigurationError, ModelConnectionError
from ai_dm.dm.orchestrator import DMOrchestrator
from ai_dm.dm.prompts import FALLBACK_REPLY, SESSION_START_PROMPT
from ai_dm.models.messages import CompletionResponse, MessageRole, StreamChunk
from ai_dm.models.session import DMTurn, PlayerTurn, SystemTurn

from conftest import RecordingEvents, ScriptedLLMClient, tool_call


def _roles(dm: DMOrchestrator) -> list[str]:
    return [turn.role for turn in dm.session.conversation_history]


class BrokenEvents(RecordingEvents):
    """Observer whose turn hooks always raise."""

    def turn_started(self, owner: str) -> None:
        raise RuntimeError("display went away")

    def turn_ended(self, turn) -> None:
        raise RuntimeError("display went away")


class ContextCapturingEvents(RecordingEvents):
    """Records the session id bound in the logging context at turn start."""

    def __init__(self) -> None:
        super().__init__()
        self.bound_session_ids: list[str | None] = []

    def turn_started(self, owner: str) -> None:
        super().turn_started(owner)
        self.bound_session_ids.append(structlog.contextvars.get_contextvars().get("session_id"))


class TestExchange:
    """Tests for ordinary non-streaming exchanges."""

    async def test_history_grows_by_two(self, make_orchestrator) -> None:
        dm = make_orchestrator(
            [CompletionResponse(content="Brenna nods."), CompletionResponse(content="The fire crackles.")]
        )

        assert await dm.process_input("I greet Brenna.") == "Brenna nods."
        assert _roles(dm) == ["player", "dm"]

        await dm.process_input("I sit by the fire.")
        assert _roles(dm) == ["player", "dm", "player", "dm"]
        assert dm.session.conversation_history[2].content == "I sit by the fire."

    async def test_dice_roll_round(self, make_orchestrator) -> None:
        """Test a single dice roll followed by narration."""
        client = ScriptedLLMClient(
            [
                CompletionResponse(tool_calls=[tool_call("roll_dice", '{"notation": "1d20+5"}', "call_1")]),
                CompletionResponse(content="You hit!"),
            ]
        )
        dm = make_orchestrator(client)

        reply = await dm.process_input("I swing my sword at the rat.")

        assert reply == "You hit!"
        assert client.call_count == 2
        tool_messages = [m for m in client.requests[1].messages if m.role == MessageRole.TOOL]
        assert len(tool_messages) == 1
        assert tool_messages[0].tool_call_id == "call_1"
        assert 6 <= json.loads(tool_messages[0].content)["total"] <= 25
        assert len(dm.session.conversation_history) == 2
        assert dm.last_result is not None
        assert dm.last_result.model_calls == 2

    async def test_request_carries_context_and_tools(self, make_orchestrator) -> None:
        client = ScriptedLLMClient([CompletionResponse(content="ok")])
        dm = make_orchestrator(client)

        await dm.process_input("Hello?")

        request = client.requests[0]
        assert request.messages[0].content == dm.persona.system_prompt
        assert request.messages[1].content.startswith("CURRENT SCENE CONTEXT:")
        assert "Present NPCs: Brenna Cask, Tomas the Grey" in request.messages[1].content
        assert request.messages[-1].content == "Hello?"
        assert {tool.name for tool in request.tools} >= {"roll_dice", "lookup_npc", "start_combat"}

    async def test_budget_of_one_falls_back(self, make_orchestrator) -> None:
        client = ScriptedLLMClient(
            [CompletionResponse(tool_calls=[tool_call("roll_dice", '{"notation": "1d6"}')])],
            repeat_last=True,
        )
        dm = make_orchestrator(client, max_tool_iterations=1)

        reply = await dm.process_input("I search the room.")

        assert reply == FALLBACK_REPLY
        assert client.call_count == 1
        assert dm.session.conversation_history[-1].content == FALLBACK_REPLY
        assert dm.last_result.aborted

    async def test_unknown_tool_does_not_end_exchange(self, make_orchestrator) -> None:
        client = ScriptedLLMClient(
            [
                CompletionResponse(tool_calls=[tool_call("cast_wish", '{"wish": "gold"}')]),
                CompletionResponse(content="Nothing happens."),
            ]
        )
        dm = make_orchestrator(client)

        assert await dm.process_input("I wish for gold.") == "Nothing happens."
        assert client.requests[1].messages[-1].content.startswith("Error (unknown_tool)")

    async def test_model_failure_keeps_player_turn(
        self,
        make_orchestrator,
        recording_events: RecordingEvents,
    ) -> None:
        error = ModelConnectionError("provider unreachable", provider="openai")
        dm = make_orchestrator([error, CompletionResponse(content="Back again.")])

        with pytest.raises(ModelConnectionError):
            await dm.process_input("Hello?")

        assert _roles(dm) == ["player"]
        assert ("error", error) in recording_events.events
        assert "turn_ended" not in recording_events.names()[2:]

        # Same input can be retried.
        assert await dm.process_input("Hello?") == "Back again."
        assert _roles(dm) == ["player", "player", "dm"]

    async def test_event_order(self, make_orchestrator, recording_events: RecordingEvents) -> None:
        dm = make_orchestrator(
            [
                CompletionResponse(tool_calls=[tool_call("lookup_npc", '{"identifier": "Brenna"}')]),
                CompletionResponse(content="Brenna smiles."),
            ]
        )

        await dm.process_input("Who runs this place?")

        assert recording_events.names() == [
            "turn_started",
            "turn_ended",
            "turn_started",
            "tool_called",
            "turn_ended",
        ]
        assert recording_events.events[0] == ("turn_started", "player")
        assert isinstance(recording_events.events[1][1], PlayerTurn)
        assert recording_events.events[2] == ("turn_started", "dm")
        assert recording_events.events[3][1][0] == "lookup_npc"
        assert isinstance(recording_events.events[4][1], DMTurn)

    async def test_broken_observer_does_not_abort_exchange(self, make_orchestrator) -> None:
        events = BrokenEvents()
        dm = make_orchestrator([CompletionResponse(content="Brenna nods.")], events=events)

        assert await dm.process_input("I greet Brenna.") == "Brenna nods."
        assert _roles(dm) == ["player", "dm"]

    async def test_session_id_bound_during_exchange(self, make_orchestrator) -> None:
        events = ContextCapturingEvents()
        dm = make_orchestrator([CompletionResponse(content="Brenna nods.")], events=events)

        await dm.process_input("I greet Brenna.")

        assert events.bound_session_ids == [dm.session.id, dm.session.id]
        assert "session_id" not in structlog.contextvars.get_contextvars()


class TestInitialDescription:
    async def test_session_start_turn_kept(self, make_orchestrator) -> None:
        client = ScriptedLLMClient([CompletionResponse(content="Smoke hangs under the rafters.")])
        dm = make_orchestrator(client)

        reply = await dm.get_initial_description()

        assert reply == "Smoke hangs under the rafters."
        history = dm.session.conversation_history
        assert isinstance(history[0], SystemTurn)
        assert history[0].content == SESSION_START_PROMPT
        assert isinstance(history[1], DMTurn)
        assert client.requests[0].messages[-1].content == SESSION_START_PROMPT


class TestCombatSync:
    """Tests for combat state flowing back onto the session."""

    async def test_start_and_end_combat(self, make_orchestrator, recording_events: RecordingEvents) -> None:
        start = json.dumps(
            {
                "participants": [
                    {"entity_id": "pc_aria", "is_player": True},
                    {"entity_id": "cellar_rat"},
                ]
            }
        )
        dm = make_orchestrator(
            [
                CompletionResponse(tool_calls=[tool_call("start_combat", start)]),
                CompletionResponse(content="Roll for initiative!"),
                CompletionResponse(content="The rat bares its teeth."),
                CompletionResponse(tool_calls=[tool_call("end_combat", '{"reason": "flee"}')]),
                CompletionResponse(content="The rat scurries away."),
            ]
        )

        await dm.process_input("I attack the rat!")

        assert dm.is_in_combat()
        assert dm.session.combat is not None
        assert {p.name for p in dm.session.combat.participants} == {"Aria", "Giant Rat"}
        assert "combat_started" in recording_events.names()

        await dm.process_input("I wait.")
        second_request = dm.build_messages()
        assert any(m.content.startswith("COMBAT IS ACTIVE!") for m in second_request)

        await dm.process_input("I shout at it.")
        assert not dm.is_in_combat()
        assert dm.session.combat is None
        assert recording_events.names().count("combat_ended") == 1

    async def test_unknown_combatant_is_tool_failure(self, make_orchestrator) -> None:
        client = ScriptedLLMClient(
            [
                CompletionResponse(
                    tool_calls=[tool_call("start_combat", '{"participants": [{"entity_id": "dragon"}]}')]
                ),
                CompletionResponse(content="There is no dragon."),
            ]
        )
        dm = make_orchestrator(client)

        await dm.process_input("I attack the dragon!")

        assert not dm.is_in_combat()
        assert client.requests[1].messages[-1].content.startswith("Error (handler_failure)")


class TestStreaming:
    """Tests for streamed exchanges."""

    async def test_stream_records_concatenation(
        self,
        make_orchestrator,
        recording_events: RecordingEvents,
    ) -> None:
        client = ScriptedLLMClient(
            stream_chunks=[
                StreamChunk(content="The cellar "),
                StreamChunk(content="door is "),
                StreamChunk(content="locked."),
                StreamChunk(is_complete=True),
            ]
        )
        dm = make_orchestrator(client)

        fragments = [fragment async for fragment in dm.stream_input("I try the cellar door.")]

        assert "".join(fragments) == "The cellar door is locked."
        assert dm.session.conversation_history[-1].content == "The cellar door is locked."
        assert _roles(dm) == ["player", "dm"]
        assert client.stream_requests[0].tools == []
        assert recording_events.names().count("stream_chunk") == 3
        assert recording_events.names()[-1] == "turn_ended"

    async def test_session_id_bound_while_stream_is_set_up(self, make_orchestrator) -> None:
        events = ContextCapturingEvents()
        client = ScriptedLLMClient(stream_chunks=[StreamChunk(content="Quiet."), StreamChunk(is_complete=True)])
        dm = make_orchestrator(client, events=events)

        stream = dm.stream_input("I listen.")

        assert events.bound_session_ids == [dm.session.id, dm.session.id]
        assert "session_id" not in structlog.contextvars.get_contextvars()
        assert "".join([fragment async for fragment in stream]) == "Quiet."

    async def test_closed_stream_records_no_dm_turn(self, make_orchestrator) -> None:
        client = ScriptedLLMClient(
            stream_chunks=[StreamChunk(content="a"), StreamChunk(content="b"), StreamChunk(is_complete=True)]
        )
        dm = make_orchestrator(client)

        async with dm.stream_input("Tell me a story.") as stream:
            async for _ in stream:
                break

        assert _roles(dm) == ["player"]

    async def test_stream_failure(self, make_orchestrator, recording_events: RecordingEvents) -> None:
        error = ModelConnectionError("dropped", provider="openai")
        client = ScriptedLLMClient(stream_chunks=[StreamChunk(content="Once"), error])
        dm = make_orchestrator(client)

        with pytest.raises(ModelConnectionError):
            await dm.stream_input("Go on.").read_all()

        assert _roles(dm) == ["player"]
        assert ("error", error) in recording_events.events


class TestSnapshots:
    """Tests for snapshot and restore."""

    async def test_restore_discards_later_turns(self, make_orchestrator) -> None:
        dm = make_orchestrator(
            [
                CompletionResponse(content="One."),
                CompletionResponse(content="Two."),
                CompletionResponse(content="Three."),
            ]
        )
        await dm.process_input("first")
        snapshot = dm.create_snapshot("after first")
        assert len(snapshot.turn_log) == 2

        await dm.process_input("second")
        assert len(dm.session.conversation_history) == 4

        dm.restore_from_snapshot(snapshot)

        assert [t.content for t in dm.session.conversation_history] == ["first", "One."]
        assert dm.session.id == snapshot.session_id
        assert dm.last_result is None

        await dm.process_input("again")
        assert [t.content for t in dm.session.conversation_history] == ["first", "One.", "again", "Three."]
        assert len(snapshot.turn_log) == 2

    async def test_snapshot_is_isolated_from_world_changes(self, make_orchestrator) -> None:
        dm = make_orchestrator([])
        snapshot = dm.create_snapshot()

        dm.world_state.flags["cellar_unlocked"] = True

        assert "cellar_unlocked" not in snapshot.world_state.flags
        dm.restore_from_snapshot(snapshot)
        assert "cellar_unlocked" not in dm.world_state.flags

    async def test_tools_see_restored_world(self, make_orchestrator) -> None:
        client = ScriptedLLMClient(
            [
                CompletionResponse(tool_calls=[tool_call("lookup_npc", '{"identifier": "brenna"}')]),
                CompletionResponse(content="ok"),
            ]
        )
        dm = make_orchestrator(client)
        snapshot = dm.create_snapshot()
        snapshot.world_state.entities["brenna"].description = "Restored description"

        dm.restore_from_snapshot(snapshot)
        await dm.process_input("Tell me about Brenna.")

        assert "Restored description" in client.requests[1].messages[-1].content


class TestConstruction:
    def test_missing_starting_location(self, sample_world, sample_persona) -> None:
        with pytest.raises(ConfigurationError) as exc_info:
            DMOrchestrator(ScriptedLLMClient(), sample_world, sample_persona, starting_location_id="moon")

        assert exc_info.value.details["config_key"] == "starting_location_id"

    def test_initial_scene(self, make_orchestrator) -> None:
        dm = make_orchestrator([])

        scene = dm.session.current_scene
        assert scene.location_id == "flagon_common_room"
        assert scene.present_npcs == ["brenna", "tomas"]
        assert dm.session.conversation_history == []

    def test_budget_from_settings(self, mock_env_vars, sample_world, sample_persona) -> None:
        dm = DMOrchestrator(
            ScriptedLLMClient([CompletionResponse(content="x")]),
            sample_world,
            sample_persona,
            starting_location_id="flagon_common_room",
        )

        assert dm._max_tool_iterations == 4
