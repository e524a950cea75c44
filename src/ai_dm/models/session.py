"""Session, scene and turn models.

A session is the mutable conversational and scene state of one ongoing
game. Its ``conversation_history`` is append-only during play and is only
ever replaced wholesale by a snapshot restore.

Turns are tagged variants: a turn is exactly one of SystemTurn, PlayerTurn
or DMTurn, discriminated on ``role``. Tool messages exist only inside a
single loop invocation and are never turns.
"""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from typing import Annotated, Literal
from uuid import uuid4

from pydantic import BaseModel, Field

from ai_dm.models.combat import CombatState
from ai_dm.models.world import AmbianceProfile, WorldState


def _new_turn_id() -> str:
    return f"turn_{uuid4().hex[:12]}"


# =============================================================================
# Scene
# =============================================================================


class SceneType(StrEnum):
    """What kind of scene is being narrated."""

    EXPLORATION = "exploration"
    SOCIAL = "social"
    COMBAT = "combat"
    PUZZLE = "puzzle"
    REST = "rest"


class Scene(BaseModel):
    """The current location and social context of a session.

    Mutated by the application layer between exchanges; read-only to the
    game loop.
    """

    location_id: str
    present_npcs: list[str] = Field(default_factory=list)
    mood: AmbianceProfile = Field(default_factory=AmbianceProfile)
    active_objectives: list[str] = Field(default_factory=list)
    scene_type: SceneType = SceneType.EXPLORATION


# =============================================================================
# Turns
# =============================================================================


class SystemTurn(BaseModel):
    """A narrator instruction recorded in history (e.g. session start)."""

    role: Literal["system"] = "system"
    id: str = Field(default_factory=_new_turn_id)
    timestamp: datetime = Field(default_factory=datetime.now)
    content: str


class PlayerTurn(BaseModel):
    """Something the player said or did."""

    role: Literal["player"] = "player"
    id: str = Field(default_factory=_new_turn_id)
    timestamp: datetime = Field(default_factory=datetime.now)
    content: str


class DMTurn(BaseModel):
    """The Dungeon Master's narration."""

    role: Literal["dm"] = "dm"
    id: str = Field(default_factory=_new_turn_id)
    timestamp: datetime = Field(default_factory=datetime.now)
    content: str


Turn = Annotated[SystemTurn | PlayerTurn | DMTurn, Field(discriminator="role")]


# =============================================================================
# Session
# =============================================================================


class PlayerCharacter(BaseModel):
    """Minimal player character record carried by the session."""

    id: str
    name: str
    race: str = ""
    character_class: str = ""
    level: Annotated[int, Field(ge=1, le=20)] = 1


class SessionState(BaseModel):
    """Everything about a session except its conversation history.

    This is the part of a session that a snapshot captures as
    ``session_state``; the history travels separately as the turn log.
    """

    id: str = Field(default_factory=lambda: f"session_{uuid4().hex[:12]}")
    world_state_id: str
    persona_id: str
    current_scene: Scene
    player_characters: list[PlayerCharacter] = Field(default_factory=list)
    combat: CombatState | None = None
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)


class GameSession(SessionState):
    """A live session with its append-only conversation history."""

    conversation_history: list[Turn] = Field(default_factory=list)

    def record(self, turn: SystemTurn | PlayerTurn | DMTurn) -> None:
        """Append a turn to the history."""
        self.conversation_history.append(turn)

    def touch(self) -> None:
        """Mark the session as updated now."""
        self.updated_at = datetime.now()

    def to_state(self) -> SessionState:
        """Copy of the session without its history."""
        return SessionState.model_validate(
            self.model_dump(exclude={"conversation_history"})
        )


class GameSnapshot(BaseModel):
    """A captured {world state, session state, turn log} triple."""

    id: str = Field(default_factory=lambda: f"snapshot_{uuid4().hex[:12]}")
    session_id: str
    created_at: datetime = Field(default_factory=datetime.now)
    label: str | None = None
    world_state: WorldState
    session_state: SessionState
    turn_log: list[Turn] = Field(default_factory=list)


__all__ = [
    "SceneType",
    "Scene",
    "SystemTurn",
    "PlayerTurn",
    "DMTurn",
    "Turn",
    "PlayerCharacter",
    "SessionState",
    "GameSession",
    "GameSnapshot",
]
