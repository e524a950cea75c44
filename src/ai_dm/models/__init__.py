"""Pydantic schemas for world, session, persona, combat and chat messages."""

from __future__ import annotations

from ai_dm.models.combat import AttackResult, CombatParticipant, CombatState, SavingThrowResult
from ai_dm.models.messages import (
    ChatMessage,
    CompletionRequest,
    CompletionResponse,
    MessageRole,
    StreamChunk,
    ToolCallRequest,
    ToolSpec,
)
from ai_dm.models.persona import DMPersona, VoiceProfile
from ai_dm.models.session import (
    DMTurn,
    GameSession,
    GameSnapshot,
    PlayerCharacter,
    PlayerTurn,
    Scene,
    SceneType,
    SessionState,
    SystemTurn,
    Turn,
)
from ai_dm.models.world import (
    AbilityScores,
    AmbianceProfile,
    CreatureEntity,
    CreatureStats,
    Entity,
    HitPoints,
    ItemEntity,
    Lighting,
    Location,
    LocationConnection,
    LoreEntry,
    Mood,
    Noise,
    NPCEntity,
    PersonalityProfile,
    WorldState,
)


__all__ = [
    # World
    "Lighting",
    "Noise",
    "Mood",
    "AmbianceProfile",
    "LocationConnection",
    "Location",
    "AbilityScores",
    "HitPoints",
    "CreatureStats",
    "PersonalityProfile",
    "NPCEntity",
    "CreatureEntity",
    "ItemEntity",
    "Entity",
    "LoreEntry",
    "WorldState",
    # Persona
    "VoiceProfile",
    "DMPersona",
    # Combat
    "CombatParticipant",
    "CombatState",
    "AttackResult",
    "SavingThrowResult",
    # Session
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
    # Messages
    "MessageRole",
    "ToolCallRequest",
    "ChatMessage",
    "ToolSpec",
    "CompletionRequest",
    "CompletionResponse",
    "StreamChunk",
]
