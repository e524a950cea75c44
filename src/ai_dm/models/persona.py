"""DM persona model.

A persona is the immutable voice/behavior configuration of the Dungeon
Master. The orchestrator only ever reads its system prompt.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class VoiceProfile(BaseModel):
    """How the DM talks."""

    model_config = ConfigDict(frozen=True)

    verbosity: Literal["terse", "moderate", "verbose"] = "moderate"
    formality: Literal["casual", "moderate", "formal"] = "moderate"
    humor_frequency: float = Field(default=0.3, ge=0.0, le=1.0)


class DMPersona(BaseModel):
    """Immutable Dungeon Master persona.

    Attributes:
        id: Unique persona id.
        name: Display name.
        system_prompt: Prompt placed first in every model request.
        voice: Style hints (informational, already baked into the prompt).
        catchphrases: Optional signature lines.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    system_prompt: str
    voice: VoiceProfile = Field(default_factory=VoiceProfile)
    catchphrases: tuple[str, ...] = ()


__all__ = ["VoiceProfile", "DMPersona"]
