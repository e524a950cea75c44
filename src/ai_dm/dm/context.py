"""Context assembly for model requests.

``build_messages`` is a pure function: it reads the session, world state,
persona and combat view, never mutates them, and returns the same message
list for the same inputs. The order is always

1. the persona's system prompt, verbatim;
2. a scene context message;
3. a combat context message, only while an encounter is active;
4. the conversation history, replayed in order.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol

from ai_dm.dm.prompts import COMBAT_CONTEXT_TEMPLATE, SCENE_CONTEXT_HEADER, TOOL_DIRECTIVE
from ai_dm.models.combat import CombatParticipant, CombatState
from ai_dm.models.messages import ChatMessage, MessageRole
from ai_dm.models.persona import DMPersona
from ai_dm.models.session import GameSession
from ai_dm.models.world import WorldState


class CombatView(Protocol):
    """Read-only view of the combat collaborator."""

    def current_state(self) -> CombatState | None: ...

    def current_participant(self) -> CombatParticipant | None: ...

    def summary(self) -> str: ...


_ROLE_MAP: dict[str, MessageRole] = {
    "system": MessageRole.SYSTEM,
    "player": MessageRole.USER,
    "dm": MessageRole.ASSISTANT,
}


def build_scene_context(
    session: GameSession,
    world_state: WorldState,
    tool_names: Sequence[str],
) -> str:
    """Describe the current scene and the tools available.

    A location id that does not resolve is rendered as "Unknown".
    """
    scene = session.current_scene
    location = world_state.get_location(scene.location_id)

    parts = [
        SCENE_CONTEXT_HEADER,
        f"Location: {location.name if location is not None else 'Unknown'}",
    ]

    npcs = world_state.entity_names(scene.present_npcs)
    if npcs:
        parts.append(f"Present NPCs: {', '.join(npcs)}")

    parts.append(f"Ambiance: {scene.mood.describe()}")

    if scene.active_objectives:
        parts.append(f"Objectives: {'; '.join(scene.active_objectives)}")

    parts.extend(
        [
            "",
            f"AVAILABLE TOOLS: {', '.join(tool_names) if tool_names else 'none'}",
            TOOL_DIRECTIVE,
        ]
    )
    return "\n".join(parts)


def build_combat_context(combat: CombatView | None) -> str | None:
    """Describe the active encounter, or None outside combat."""
    if combat is None:
        return None
    state = combat.current_state()
    if state is None or not state.is_active:
        return None
    current = combat.current_participant()
    return COMBAT_CONTEXT_TEMPLATE.format(
        summary=combat.summary(),
        current=current.name if current is not None else "Unknown",
    )


def build_messages(
    session: GameSession,
    world_state: WorldState,
    persona: DMPersona,
    combat: CombatView | None = None,
    tool_names: Sequence[str] = (),
) -> list[ChatMessage]:
    """Assemble the ordered message list for one model call."""
    messages = [
        ChatMessage.system(persona.system_prompt),
        ChatMessage.system(build_scene_context(session, world_state, tool_names)),
    ]

    combat_context = build_combat_context(combat)
    if combat_context is not None:
        messages.append(ChatMessage.system(combat_context))

    for turn in session.conversation_history:
        messages.append(ChatMessage(role=_ROLE_MAP[turn.role], content=turn.content))

    return messages


__all__ = [
    "CombatView",
    "build_scene_context",
    "build_combat_context",
    "build_messages",
]
