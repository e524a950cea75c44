"""Combat tools.

``start_combat`` and ``end_combat`` are reserved names: after running them
the game loop also tells the event sink that an encounter began or ended.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Literal

from pydantic import BaseModel, Field

from ai_dm.core.exceptions import ToolHandlerError
from ai_dm.dm.tools.base import NoArguments, ToolDescriptor
from ai_dm.engine.combat import CombatantEntry, CombatManager
from ai_dm.models.combat import AttackResult, SavingThrowResult
from ai_dm.models.world import CreatureStats


START_COMBAT = "start_combat"
END_COMBAT = "end_combat"


@dataclass
class CombatToolContext:
    """What combat tools can see.

    Attributes:
        combat_manager: The encounter tracker.
        resolve_combatant: Maps an entity id to (display name, stats), or
            None if the id is unknown.
    """

    combat_manager: CombatManager
    resolve_combatant: Callable[[str], tuple[str, CreatureStats] | None]


# =============================================================================
# Inputs
# =============================================================================


class ParticipantInput(BaseModel):
    entity_id: str = Field(description="Entity or player character id")
    name: str | None = Field(default=None, description="Display name override")
    is_player: bool = Field(default=False, description="Whether this is a player character")


class StartCombatInput(BaseModel):
    participants: list[ParticipantInput] = Field(
        min_length=1,
        description="Every combatant, players and enemies alike",
    )


class EndCombatInput(BaseModel):
    reason: str = Field(default="", description="victory, defeat, flee, surrender...")


class HitPointChangeInput(BaseModel):
    entity_id: str = Field(description="Combatant id or name")
    amount: int = Field(ge=0, description="Hit points")


class ConditionInput(BaseModel):
    entity_id: str = Field(description="Combatant id or name")
    condition: str = Field(description='Condition name, e.g. "prone", "poisoned"')


class AttackRollInput(BaseModel):
    attacker_id: str = Field(description="Attacking combatant id or name")
    target_id: str = Field(description="Target combatant id or name")
    attack_bonus: int = Field(description="Total attack bonus added to the d20")
    damage_notation: str = Field(description='Damage dice on a hit, e.g. "1d8+3"')
    damage_type: str = Field(default="", description='e.g. "slashing", "fire"')
    advantage: bool = Field(default=False, description="Advantage from circumstance")
    disadvantage: bool = Field(default=False, description="Disadvantage from circumstance")
    target_ac: int | None = Field(default=None, ge=0, description="Override the target's armor class")


class SavingThrowInput(BaseModel):
    entity_id: str = Field(description="Combatant id or name")
    ability: Literal["strength", "dexterity", "constitution", "intelligence", "wisdom", "charisma"]
    dc: int = Field(ge=1, description="Difficulty class")
    advantage: bool = False
    disadvantage: bool = False
    proficient: bool = Field(default=False, description="Add the proficiency bonus")


# =============================================================================
# Factory
# =============================================================================


def create_combat_tools(get_context: Callable[[], CombatToolContext]) -> list[ToolDescriptor]:
    """Create the combat toolkit."""

    def handle_start_combat(args: StartCombatInput) -> str:
        context = get_context()
        entries: list[CombatantEntry] = []
        for participant in args.participants:
            resolved = context.resolve_combatant(participant.entity_id)
            if resolved is None:
                raise ToolHandlerError(
                    f"Entity {participant.entity_id} not found",
                    tool_name=START_COMBAT,
                )
            name, stats = resolved
            entries.append(
                CombatantEntry(
                    entity_id=participant.entity_id,
                    name=participant.name or name,
                    is_player=participant.is_player,
                    stats=stats,
                )
            )

        state = context.combat_manager.start_combat(entries)
        lines = ["COMBAT BEGINS!", "", "Initiative order:"]
        for index, p in enumerate(state.participants):
            marker = " <- FIRST" if index == 0 else ""
            player = " (Player)" if p.is_player else ""
            lines.append(f"  {p.initiative}: {p.name}{player}{marker}")
        lines.append("")
        lines.append(f"It is {state.participants[0].name}'s turn.")
        return "\n".join(lines)

    def handle_end_combat(args: EndCombatInput) -> str:
        manager = get_context().combat_manager
        if not manager.is_active():
            raise ToolHandlerError("No combat is active", tool_name=END_COMBAT)
        manager.end_combat()
        return f"Combat has ended{': ' + args.reason if args.reason else ''}."

    def handle_next_turn(args: NoArguments) -> str:
        manager = get_context().combat_manager
        state = manager.current_state()
        if state is None:
            raise ToolHandlerError("No combat is active", tool_name="next_turn")
        current = manager.next_turn()
        if current is None:
            return "Nobody is able to act."
        new_state = manager.current_state()
        round_number = new_state.round if new_state is not None else state.round
        return f"Round {round_number}: it is {current.name}'s turn."

    def handle_apply_damage(args: HitPointChangeInput) -> str:
        return get_context().combat_manager.apply_damage(args.entity_id, args.amount)

    def handle_apply_healing(args: HitPointChangeInput) -> str:
        return get_context().combat_manager.apply_healing(args.entity_id, args.amount)

    def handle_apply_condition(args: ConditionInput) -> str:
        return get_context().combat_manager.apply_condition(args.entity_id, args.condition)

    def handle_remove_condition(args: ConditionInput) -> str:
        return get_context().combat_manager.remove_condition(args.entity_id, args.condition)

    def handle_attack_roll(args: AttackRollInput) -> AttackResult:
        return get_context().combat_manager.make_attack(
            args.attacker_id,
            args.target_id,
            args.attack_bonus,
            args.damage_notation,
            args.damage_type,
            advantage=args.advantage,
            disadvantage=args.disadvantage,
            target_ac=args.target_ac,
        )

    def handle_saving_throw(args: SavingThrowInput) -> SavingThrowResult:
        return get_context().combat_manager.make_saving_throw(
            args.entity_id,
            args.ability,
            args.dc,
            advantage=args.advantage,
            disadvantage=args.disadvantage,
            proficient=args.proficient,
        )

    def handle_combat_status(args: NoArguments) -> str:
        return get_context().combat_manager.summary()

    return [
        ToolDescriptor(
            name=START_COMBAT,
            description=(
                "Start a combat encounter. Rolls initiative for all participants and "
                "establishes turn order. Provide every combatant, players and enemies."
            ),
            input_model=StartCombatInput,
            handler=handle_start_combat,
        ),
        ToolDescriptor(
            name=END_COMBAT,
            description="End the current encounter (victory, defeat, flight, negotiation).",
            input_model=EndCombatInput,
            handler=handle_end_combat,
        ),
        ToolDescriptor(
            name="next_turn",
            description="Advance to the next combatant's turn.",
            input_model=NoArguments,
            handler=handle_next_turn,
        ),
        ToolDescriptor(
            name="apply_damage",
            description="Reduce a combatant's hit points. At 0 HP they fall unconscious.",
            input_model=HitPointChangeInput,
            handler=handle_apply_damage,
        ),
        ToolDescriptor(
            name="apply_healing",
            description="Restore a combatant's hit points, up to their maximum.",
            input_model=HitPointChangeInput,
            handler=handle_apply_healing,
        ),
        ToolDescriptor(
            name="apply_condition",
            description="Apply a condition such as prone, poisoned or frightened.",
            input_model=ConditionInput,
            handler=handle_apply_condition,
        ),
        ToolDescriptor(
            name="remove_condition",
            description="Remove a condition from a combatant.",
            input_model=ConditionInput,
            handler=handle_remove_condition,
        ),
        ToolDescriptor(
            name="attack_roll",
            description=(
                "Roll an attack against a combatant's armor class and roll damage on a hit. "
                "Conditions grant advantage or disadvantage automatically. "
                "Damage is not applied; call apply_damage with the result."
            ),
            input_model=AttackRollInput,
            handler=handle_attack_roll,
        ),
        ToolDescriptor(
            name="saving_throw",
            description=(
                "Roll a combatant's saving throw against a DC. Paralyzed, stunned or "
                "unconscious combatants fail STR and DEX saves automatically."
            ),
            input_model=SavingThrowInput,
            handler=handle_saving_throw,
        ),
        ToolDescriptor(
            name="combat_status",
            description="Current initiative order, hit points and conditions.",
            input_model=NoArguments,
            handler=handle_combat_status,
        ),
    ]


__all__ = [
    "START_COMBAT",
    "END_COMBAT",
    "CombatToolContext",
    "ParticipantInput",
    "StartCombatInput",
    "EndCombatInput",
    "HitPointChangeInput",
    "ConditionInput",
    "AttackRollInput",
    "SavingThrowInput",
    "create_combat_tools",
]
