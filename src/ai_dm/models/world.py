"""World state models.

The world state is the keyed store of locations and entities that the DM
tools query and mutate. It is owned by the orchestrator and replaced
wholesale when a snapshot is restored.

Models:
    AmbianceProfile: Lighting, noise and mood of a location.
    Location: A place in the world with its connections and occupants.
    NPCEntity / CreatureEntity / ItemEntity: Things that live in the world.
    LoreEntry: A piece of world lore.
    WorldState: The aggregate root.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field


# =============================================================================
# Locations
# =============================================================================


class Lighting(StrEnum):
    """How well lit a location is."""

    BRIGHT = "bright"
    DIM = "dim"
    DARK = "dark"


class Noise(StrEnum):
    """Background noise level of a location."""

    QUIET = "quiet"
    MODERATE = "moderate"
    LOUD = "loud"


class Mood(StrEnum):
    """Emotional tone of a location."""

    PEACEFUL = "peaceful"
    TENSE = "tense"
    EERIE = "eerie"
    CHAOTIC = "chaotic"
    NEUTRAL = "neutral"


class AmbianceProfile(BaseModel):
    """Ambiance of a location, also used as the mood of a scene."""

    model_config = ConfigDict(extra="forbid")

    lighting: Lighting = Field(default=Lighting.BRIGHT)
    noise: Noise = Field(default=Noise.MODERATE)
    mood: Mood = Field(default=Mood.NEUTRAL)

    def describe(self) -> str:
        """Short human-readable description used in prompts."""
        return f"{self.mood.value}, {self.lighting.value} lighting"


class LocationConnection(BaseModel):
    """A one-way exit from a location."""

    target_id: str = Field(description="Location the exit leads to")
    direction: str = Field(description="Direction or label of the exit")
    description: str = Field(default="")
    is_hidden: bool = Field(default=False)


class Location(BaseModel):
    """A place in the world.

    Attributes:
        id: Unique location id.
        name: Display name.
        description: Canonical description text.
        connections: Exits to other locations.
        present_entities: Ids of entities currently here.
        ambiance: Lighting, noise and mood.
    """

    id: str
    name: str
    description: str = Field(default="")
    connections: list[LocationConnection] = Field(default_factory=list)
    present_entities: list[str] = Field(default_factory=list)
    ambiance: AmbianceProfile = Field(default_factory=AmbianceProfile)


# =============================================================================
# Entities
# =============================================================================


class AbilityScores(BaseModel):
    """The six ability scores."""

    strength: Annotated[int, Field(ge=1, le=30)] = 10
    dexterity: Annotated[int, Field(ge=1, le=30)] = 10
    constitution: Annotated[int, Field(ge=1, le=30)] = 10
    intelligence: Annotated[int, Field(ge=1, le=30)] = 10
    wisdom: Annotated[int, Field(ge=1, le=30)] = 10
    charisma: Annotated[int, Field(ge=1, le=30)] = 10

    @staticmethod
    def modifier(score: int) -> int:
        """Ability modifier for a score."""
        return (score - 10) // 2


class HitPoints(BaseModel):
    """Current and maximum hit points."""

    current: int
    max: Annotated[int, Field(ge=1)]


class CreatureStats(BaseModel):
    """Combat statistics for anything that can fight."""

    armor_class: Annotated[int, Field(ge=0)] = 10
    hit_points: HitPoints = Field(default_factory=lambda: HitPoints(current=10, max=10))
    ability_scores: AbilityScores = Field(default_factory=AbilityScores)
    speed: int = 30
    proficiency_bonus: Annotated[int, Field(ge=0)] = 2


class PersonalityProfile(BaseModel):
    """Roleplay hooks for an NPC."""

    traits: list[str] = Field(default_factory=list)
    ideals: list[str] = Field(default_factory=list)
    bonds: list[str] = Field(default_factory=list)
    flaws: list[str] = Field(default_factory=list)
    speaking_style: str = Field(default="")


class NPCEntity(BaseModel):
    """A non-player character."""

    type: Literal["npc"] = "npc"
    id: str
    name: str
    description: str = Field(default="")
    personality: PersonalityProfile = Field(default_factory=PersonalityProfile)
    knowledge: list[str] = Field(default_factory=list)
    motivation: str = Field(default="")
    attitude: Literal["friendly", "neutral", "hostile", "fearful"] = "neutral"
    stats: CreatureStats | None = None


class CreatureEntity(BaseModel):
    """A monster or animal."""

    type: Literal["creature"] = "creature"
    id: str
    name: str
    description: str = Field(default="")
    stats: CreatureStats = Field(default_factory=CreatureStats)


class ItemEntity(BaseModel):
    """An object lying around in the world."""

    type: Literal["item"] = "item"
    id: str
    name: str
    description: str = Field(default="")
    value_gp: float = 0.0


Entity = Annotated[NPCEntity | CreatureEntity | ItemEntity, Field(discriminator="type")]


class LoreEntry(BaseModel):
    """A piece of world lore."""

    id: str
    category: str
    content: str
    is_public_knowledge: bool = True
    related_entities: list[str] = Field(default_factory=list)


# =============================================================================
# World State
# =============================================================================


class WorldState(BaseModel):
    """Keyed store of locations and entities.

    Read by the context builder; mutated only by tool handlers.

    Example:
        >>> world = WorldState(id="w1", name="Test")
        >>> world.get_location("nowhere") is None
        True
    """

    id: str
    name: str
    description: str = Field(default="")
    locations: dict[str, Location] = Field(default_factory=dict)
    entities: dict[str, Entity] = Field(default_factory=dict)
    flags: dict[str, bool] = Field(default_factory=dict)
    lore: list[LoreEntry] = Field(default_factory=list)

    def get_location(self, location_id: str) -> Location | None:
        """Get a location by id."""
        return self.locations.get(location_id)

    def get_entity(self, entity_id: str) -> NPCEntity | CreatureEntity | ItemEntity | None:
        """Get an entity by id."""
        return self.entities.get(entity_id)

    def find_location(self, identifier: str) -> Location | None:
        """Find a location by id, falling back to a case-insensitive name match."""
        by_id = self.locations.get(identifier)
        if by_id is not None:
            return by_id
        needle = identifier.lower()
        for location in self.locations.values():
            if needle in location.name.lower():
                return location
        return None

    def find_npc(self, identifier: str) -> NPCEntity | None:
        """Find an NPC by id, falling back to a case-insensitive name match."""
        by_id = self.entities.get(identifier)
        if isinstance(by_id, NPCEntity):
            return by_id
        needle = identifier.lower()
        for entity in self.entities.values():
            if isinstance(entity, NPCEntity) and needle in entity.name.lower():
                return entity
        return None

    def entity_names(self, entity_ids: list[str]) -> list[str]:
        """Names of the given entities, skipping ids that do not resolve."""
        names: list[str] = []
        for entity_id in entity_ids:
            entity = self.entities.get(entity_id)
            if entity is not None:
                names.append(entity.name)
        return names


__all__ = [
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
]
