"""Combat state models.

These are the read-only views that the combat manager exposes and that
the orchestrator copies onto the session record after each exchange.
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class CombatParticipant(BaseModel):
    """A combatant in initiative order.

    Attributes:
        entity_id: Combatant id. The world entity (or player character) id;
            repeats of one entity in the same encounter get a ``#2``,
            ``#3``... suffix so each keeps its own hit points.
        name: Display name.
        initiative: Total initiative roll.
        is_player: Whether the combatant is a player character.
        conditions: Active conditions (e.g. "prone", "unconscious").
    """

    entity_id: str
    name: str
    initiative: int
    is_player: bool = False
    conditions: list[str] = Field(default_factory=list)


class CombatState(BaseModel):
    """An encounter in progress."""

    is_active: bool = True
    round: int = Field(default=1, ge=1)
    participants: list[CombatParticipant] = Field(default_factory=list)
    current_turn_index: int = Field(default=0, ge=0)


class AttackResult(BaseModel):
    """Outcome of one attack roll.

    ``damage_rolls`` and ``total_damage`` are only set on a hit. Damage is
    reported, not applied.
    """

    attacker: str
    target: str
    natural_roll: int
    attack_total: int
    target_ac: int
    hits: bool
    is_critical: bool = False
    is_critical_miss: bool = False
    has_advantage: bool = False
    has_disadvantage: bool = False
    damage_notation: str | None = None
    damage_rolls: list[int] = Field(default_factory=list)
    total_damage: int | None = None
    damage_type: str | None = None
    narrative: str = ""


class SavingThrowResult(BaseModel):
    """Outcome of one saving throw."""

    entity: str
    ability: str
    dc: int
    natural_roll: int
    modifier: int
    total: int
    success: bool
    auto_failed: bool = False
    has_advantage: bool = False
    has_disadvantage: bool = False
    narrative: str = ""


__all__ = ["CombatParticipant", "CombatState", "AttackResult", "SavingThrowResult"]
