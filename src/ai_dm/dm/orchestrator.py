"""The DM Orchestrator - one game session's turn manager.

ARCHITECTURE:
1. Player input -> recorded as a PlayerTurn
2. Context assembly (persona, scene, combat, history)
3. Tool-calling loop -> model reasoning, Python executes the tools
4. Final narration -> recorded as a DMTurn

The orchestrator exclusively owns its session, tool registry and combat
manager. Calls to ``process_input`` / ``stream_input`` for one session must
not overlap.
"""

from __future__ import annotations

from ai_dm.core.config import get_settings
from ai_dm.core.exceptions import ConfigurationError, ModelCallError
from ai_dm.core.logging import bind_context, get_logger, unbind_context
from ai_dm.dm.context import build_messages
from ai_dm.dm.events import EventDispatcher, SessionEvents
from ai_dm.dm.llm import LLMClient
from ai_dm.dm.loop import LoopResult, ToolCallingLoop
from ai_dm.dm.prompts import SESSION_START_PROMPT
from ai_dm.dm.streaming import TurnStream
from ai_dm.dm.tools import (
    CombatToolContext,
    ToolDescriptor,
    ToolRegistry,
    WorldToolContext,
    create_combat_tools,
    create_world_tools,
)
from ai_dm.engine.combat import CombatManager
from ai_dm.models.messages import ChatMessage, CompletionRequest
from ai_dm.models.persona import DMPersona
from ai_dm.models.session import (
    DMTurn,
    GameSession,
    GameSnapshot,
    PlayerCharacter,
    PlayerTurn,
    Scene,
    SceneType,
    SystemTurn,
)
from ai_dm.models.world import CreatureEntity, CreatureStats, ItemEntity, NPCEntity, WorldState


logger = get_logger(__name__)


class DMOrchestrator:
    """Runs exchanges between the players and the AI Dungeon Master.

    A successful exchange appends exactly two turns to the history: the
    player's input and the DM's reply. A failing model call leaves the
    player's turn in place so the same input can be retried.

    Example:
        >>> dm = DMOrchestrator(client, world, persona, starting_location_id="tavern")
        >>> reply = await dm.process_input("I look around the room")
    """

    def __init__(
        self,
        llm_client: LLMClient,
        world_state: WorldState,
        persona: DMPersona,
        starting_location_id: str,
        *,
        events: SessionEvents | None = None,
        max_tool_iterations: int | None = None,
        temperature: float | None = None,
        player_characters: list[PlayerCharacter] | None = None,
        extra_tools: list[ToolDescriptor] | None = None,
    ) -> None:
        """Create the session and its toolkit.

        Args:
            llm_client: The generative model.
            world_state: World the session takes place in.
            persona: DM persona supplying the system prompt.
            starting_location_id: Location the first scene is set in.
            events: Observer for turn, tool and combat events.
            max_tool_iterations: Iteration budget; defaults to settings.
            temperature: Sampling temperature override.
            player_characters: Characters taking part.
            extra_tools: Additional tools, registered after the built-ins.

        Raises:
            ConfigurationError: If the starting location does not exist.
        """
        location = world_state.get_location(starting_location_id)
        if location is None:
            raise ConfigurationError(
                f"Starting location {starting_location_id} not found in world {world_state.id}",
                config_key="starting_location_id",
            )

        self._client = llm_client
        self._world_state = world_state
        self._persona = persona
        self._events = EventDispatcher(events)
        self._temperature = temperature
        self._max_tool_iterations = (
            max_tool_iterations
            if max_tool_iterations is not None
            else get_settings().game.max_tool_iterations
        )
        self._combat = CombatManager()
        self._last_result: LoopResult | None = None

        npc_ids = [
            entity_id
            for entity_id in location.present_entities
            if isinstance(world_state.get_entity(entity_id), NPCEntity)
        ]
        self._session = GameSession(
            world_state_id=world_state.id,
            persona_id=persona.id,
            current_scene=Scene(
                location_id=location.id,
                present_npcs=npc_ids,
                mood=location.ambiance.model_copy(),
                scene_type=SceneType.EXPLORATION,
            ),
            player_characters=list(player_characters or []),
        )

        self._registry = ToolRegistry()
        self._registry.register_all(create_world_tools(self._world_tool_context))
        self._registry.register_all(create_combat_tools(self._combat_tool_context))
        if extra_tools:
            self._registry.register_all(extra_tools)

        logger.info(
            "DMOrchestrator initialized",
            session_id=self._session.id,
            world=world_state.id,
            persona=persona.id,
            location=location.id,
            tools=len(self._registry),
            max_tool_iterations=self._max_tool_iterations,
        )

    # -------------------------------------------------------------------------
    # Accessors
    # -------------------------------------------------------------------------

    @property
    def session(self) -> GameSession:
        return self._session

    @property
    def world_state(self) -> WorldState:
        return self._world_state

    @property
    def persona(self) -> DMPersona:
        return self._persona

    @property
    def combat_manager(self) -> CombatManager:
        return self._combat

    @property
    def registry(self) -> ToolRegistry:
        return self._registry

    @property
    def last_result(self) -> LoopResult | None:
        """Loop outcome of the most recent non-streaming exchange."""
        return self._last_result

    def is_in_combat(self) -> bool:
        return self._combat.is_active()

    # -------------------------------------------------------------------------
    # Tool contexts
    # -------------------------------------------------------------------------

    def _world_tool_context(self) -> WorldToolContext:
        return WorldToolContext(
            world_state=self._world_state,
            current_location_id=self._session.current_scene.location_id,
        )

    def _combat_tool_context(self) -> CombatToolContext:
        return CombatToolContext(
            combat_manager=self._combat,
            resolve_combatant=self.resolve_combatant,
        )

    def resolve_combatant(self, entity_id: str) -> tuple[str, CreatureStats] | None:
        """Name and stats for a world entity or player character.

        Characters without recorded stats fight with default statistics.
        Items cannot fight.
        """
        entity = self._world_state.get_entity(entity_id)
        if isinstance(entity, CreatureEntity):
            return entity.name, entity.stats
        if isinstance(entity, NPCEntity):
            return entity.name, entity.stats or CreatureStats()
        if isinstance(entity, ItemEntity):
            return None

        for character in self._session.player_characters:
            if character.id == entity_id:
                return character.name, CreatureStats()

        npc = self._world_state.find_npc(entity_id)
        if npc is not None:
            return npc.name, npc.stats or CreatureStats()
        return None

    # -------------------------------------------------------------------------
    # Exchanges
    # -------------------------------------------------------------------------

    def build_messages(self) -> list[ChatMessage]:
        """Context for the next model call."""
        return build_messages(
            self._session,
            self._world_state,
            self._persona,
            combat=self._combat,
            tool_names=self._registry.names(),
        )

    def _record(self, turn: SystemTurn | PlayerTurn | DMTurn) -> None:
        self._session.record(turn)
        logger.debug("Turn recorded", role=turn.role, history=len(self._session.conversation_history))

    def _sync_after_exchange(self) -> None:
        self._session.touch()
        self._session.combat = self._combat.current_state()

    def _begin_player_turn(self, text: str) -> PlayerTurn:
        self._events.turn_started("player")
        player_turn = PlayerTurn(content=text)
        self._record(player_turn)
        self._events.turn_ended(player_turn)
        return player_turn

    async def _respond(self) -> str:
        """Run the loop over the current history and record the DM turn."""
        self._events.turn_started("dm")
        loop = ToolCallingLoop(
            self._client,
            self._registry,
            max_iterations=self._max_tool_iterations,
            events=self._events,
            combat=self._combat,
            temperature=self._temperature,
        )
        try:
            result = await loop.run(self.build_messages())
        except ModelCallError as exc:
            logger.error("Model call failed", error=exc.message, error_type=type(exc).__name__)
            self._events.error(exc)
            raise

        self._last_result = result
        dm_turn = DMTurn(content=result.text)
        self._record(dm_turn)
        self._events.turn_ended(dm_turn)
        self._sync_after_exchange()

        logger.info(
            "Exchange complete",
            model_calls=result.model_calls,
            tools=len(result.tool_results),
            aborted=result.aborted,
        )
        return result.text

    async def process_input(self, text: str) -> str:
        """Process player input and return the DM's reply.

        Args:
            text: What the player says or does.

        Returns:
            The DM's narration (or the fallback reply if the model never
            stopped calling tools).

        Raises:
            ModelCallError: If the model call fails. The player turn stays
                recorded.
        """
        bind_context(session_id=self._session.id)
        try:
            logger.info("Processing player input", input_preview=text[:100])
            self._begin_player_turn(text)
            return await self._respond()
        finally:
            unbind_context("session_id")

    async def get_initial_description(self) -> str:
        """Narrate the opening scene.

        The synthetic session-start turn stays in the history.
        """
        bind_context(session_id=self._session.id)
        try:
            self._record(SystemTurn(content=SESSION_START_PROMPT))
            return await self._respond()
        finally:
            unbind_context("session_id")

    def stream_input(self, text: str) -> TurnStream:
        """Record player input and stream the DM's reply.

        A single streaming model call is made, without tools. The DM turn
        is recorded only if the stream runs to completion.

        Returns:
            A TurnStream of text fragments. Close it (or use ``async with``)
            if you stop reading early.
        """
        bind_context(session_id=self._session.id)
        try:
            logger.info("Streaming player input", input_preview=text[:100])
            self._begin_player_turn(text)
            self._events.turn_started("dm")
            request = CompletionRequest(
                messages=self.build_messages(),
                temperature=self._temperature,
            )
        finally:
            unbind_context("session_id")

        def complete(full_text: str) -> None:
            dm_turn = DMTurn(content=full_text)
            self._record(dm_turn)
            self._events.turn_ended(dm_turn)
            self._sync_after_exchange()
            logger.info("Streamed exchange complete", session_id=self._session.id, length=len(full_text))

        def fail(error: Exception) -> None:
            if isinstance(error, ModelCallError):
                self._events.error(error)

        return TurnStream(
            self._client.stream(request),
            on_fragment=self._events.stream_chunk,
            on_complete=complete,
            on_error=fail,
        )

    # -------------------------------------------------------------------------
    # Snapshots
    # -------------------------------------------------------------------------

    def create_snapshot(self, label: str | None = None) -> GameSnapshot:
        """Capture world state, session state and turn log.

        Everything is deep-copied; later play does not change the snapshot.
        """
        snapshot = GameSnapshot(
            session_id=self._session.id,
            label=label,
            world_state=self._world_state.model_copy(deep=True),
            session_state=self._session.to_state(),
            turn_log=[turn.model_copy(deep=True) for turn in self._session.conversation_history],
        )
        logger.info(
            "Snapshot created",
            snapshot_id=snapshot.id,
            label=label,
            turns=len(snapshot.turn_log),
        )
        return snapshot

    def restore_from_snapshot(self, snapshot: GameSnapshot) -> None:
        """Replace world state and session wholesale.

        The history becomes exactly the snapshot's turn log; turns recorded
        after the snapshot are discarded. Tool side effects are not replayed,
        and any encounter in progress is dropped from the combat manager.
        """
        self._world_state = snapshot.world_state.model_copy(deep=True)
        self._session = GameSession.model_validate(
            {
                **snapshot.session_state.model_dump(),
                "conversation_history": [turn.model_dump() for turn in snapshot.turn_log],
            }
        )
        self._combat = CombatManager()
        self._last_result = None

        logger.info(
            "Session restored from snapshot",
            snapshot_id=snapshot.id,
            session_id=self._session.id,
            turns=len(self._session.conversation_history),
        )


__all__ = ["DMOrchestrator"]
