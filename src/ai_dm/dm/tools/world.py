"""Exploration tools: dice and read-only world queries.

The handlers are built as closures over a context getter so they always
see the orchestrator's current world state, including after a snapshot
restore swaps it out.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable

from pydantic import BaseModel, Field

from ai_dm.core.logging import get_logger
from ai_dm.dm.tools.base import ToolDescriptor
from ai_dm.engine.dice import roll_dice
from ai_dm.models.world import Location, NPCEntity, WorldState


logger = get_logger(__name__)


@dataclass
class WorldToolContext:
    """What exploration tools can see."""

    world_state: WorldState
    current_location_id: str


# =============================================================================
# Inputs
# =============================================================================


class RollDiceInput(BaseModel):
    notation: str = Field(description='Dice notation, e.g. "1d20+5", "2d6", "1d20 advantage"')
    purpose: str = Field(default="", description='What the roll is for, e.g. "attack roll"')


class LookupNPCInput(BaseModel):
    identifier: str = Field(description="NPC name or entity id")


class QueryLocationInput(BaseModel):
    identifier: str | None = Field(
        default=None,
        description="Location name or id. Omit for the current location.",
    )


class ListEntitiesInput(BaseModel):
    location: str | None = Field(
        default=None,
        description="Location name or id. Omit for the current location.",
    )


class LookupLoreInput(BaseModel):
    topic: str = Field(description="Keyword or category to search the lore for")


# =============================================================================
# Factory
# =============================================================================


def _location_view(location: Location, world: WorldState) -> dict[str, Any]:
    return {
        "id": location.id,
        "name": location.name,
        "description": location.description,
        "ambiance": location.ambiance.model_dump(mode="json"),
        "exits": [
            {"direction": c.direction, "to": c.target_id, "description": c.description}
            for c in location.connections
            if not c.is_hidden
        ],
        "present": world.entity_names(location.present_entities),
    }


def create_world_tools(get_context: Callable[[], WorldToolContext]) -> list[ToolDescriptor]:
    """Create the exploration toolkit.

    Args:
        get_context: Returns the live world state and current location.

    Returns:
        Descriptors for roll_dice, lookup_npc, query_location,
        list_entities and lookup_lore.
    """

    def handle_roll_dice(args: RollDiceInput) -> dict[str, Any]:
        result = roll_dice(args.notation)
        logger.info("Dice rolled", notation=args.notation, total=result.total)
        return {**result.to_dict(), "purpose": args.purpose}

    def handle_lookup_npc(args: LookupNPCInput) -> NPCEntity | str:
        npc = get_context().world_state.find_npc(args.identifier)
        if npc is None:
            return f'NPC "{args.identifier}" not found in current world.'
        return npc

    def handle_query_location(args: QueryLocationInput) -> dict[str, Any] | str:
        context = get_context()
        world = context.world_state
        if not args.identifier:
            location = world.get_location(context.current_location_id)
            if location is None:
                return "Current location not found."
        else:
            location = world.find_location(args.identifier)
            if location is None:
                return f'Location "{args.identifier}" not found in current world.'
        return _location_view(location, world)

    def handle_list_entities(args: ListEntitiesInput) -> list[dict[str, str]] | str:
        context = get_context()
        world = context.world_state
        identifier = args.location or context.current_location_id
        location = world.find_location(identifier)
        if location is None:
            return f'Location "{identifier}" not found in current world.'
        entities = []
        for entity_id in location.present_entities:
            entity = world.get_entity(entity_id)
            if entity is not None:
                entities.append({"id": entity.id, "name": entity.name, "type": entity.type})
        return entities

    def handle_lookup_lore(args: LookupLoreInput) -> list[dict[str, str]] | str:
        needle = args.topic.lower()
        matches = [
            {"category": entry.category, "content": entry.content}
            for entry in get_context().world_state.lore
            if entry.is_public_knowledge
            and (needle in entry.category.lower() or needle in entry.content.lower())
        ]
        if not matches:
            return f'No lore found about "{args.topic}".'
        return matches

    return [
        ToolDescriptor(
            name="roll_dice",
            description=(
                'Roll dice using standard notation (e.g. "1d20", "2d6+3", "4d6kh3"). '
                "Use this for any uncertain outcome: attacks, saving throws, ability "
                "checks, damage. Always state the purpose."
            ),
            input_model=RollDiceInput,
            handler=handle_roll_dice,
        ),
        ToolDescriptor(
            name="lookup_npc",
            description=(
                "Look up an NPC by name or id. Returns personality, knowledge, "
                "motivation and stats. Use before roleplaying an NPC."
            ),
            input_model=LookupNPCInput,
            handler=handle_lookup_npc,
        ),
        ToolDescriptor(
            name="query_location",
            description=(
                "Get a location's canonical description, exits, occupants and "
                "ambiance. Omit the identifier for the current location."
            ),
            input_model=QueryLocationInput,
            handler=handle_query_location,
        ),
        ToolDescriptor(
            name="list_entities",
            description="List the NPCs, creatures and items present at a location.",
            input_model=ListEntitiesInput,
            handler=handle_list_entities,
        ),
        ToolDescriptor(
            name="lookup_lore",
            description="Search the world's public lore by keyword or category.",
            input_model=LookupLoreInput,
            handler=handle_lookup_lore,
        ),
    ]


__all__ = [
    "WorldToolContext",
    "RollDiceInput",
    "LookupNPCInput",
    "QueryLocationInput",
    "ListEntitiesInput",
    "LookupLoreInput",
    "create_world_tools",
]
