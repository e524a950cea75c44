"""Combat encounter tracking.

The CombatManager owns initiative order, rounds, hit points and
conditions for the encounter in progress, and rolls its attacks and
saving throws. The game loop only reads it through ``current_state()``,
``current_participant()`` and ``summary()``; the combat tools are the
only writers.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from ai_dm.core.exceptions import CombatError
from ai_dm.core.logging import get_logger
from ai_dm.engine.dice import DiceResult, roll_dice, roll_initiative
from ai_dm.models.combat import AttackResult, CombatParticipant, CombatState, SavingThrowResult
from ai_dm.models.world import AbilityScores, CreatureStats


logger = get_logger(__name__)

_OUT_OF_ACTION = frozenset({"unconscious", "dead"})
# Attacks against a target in one of these conditions have advantage
_EXPOSED = frozenset({"blinded", "paralyzed", "stunned", "unconscious", "restrained"})
# Attackers in one of these conditions roll with disadvantage
_HAMPERED = frozenset({"blinded", "frightened", "poisoned", "prone", "restrained"})
# STR and DEX saves fail outright in these conditions
_HELPLESS = frozenset({"paralyzed", "stunned", "unconscious"})

ABILITIES = ("strength", "dexterity", "constitution", "intelligence", "wisdom", "charisma")

_DICE_TERM_RE = re.compile(r"(\d*)d(\d+)", re.IGNORECASE)


@dataclass
class CombatantEntry:
    """Someone joining an encounter.

    Attributes:
        entity_id: World entity or player character id.
        name: Display name.
        is_player: Whether this is a player character.
        stats: Combat statistics; hit points are tracked on a copy.
        initiative: Fixed initiative, rolled when omitted.
    """

    entity_id: str
    name: str
    is_player: bool
    stats: CreatureStats
    initiative: int | None = None


class CombatManager:
    """Track the encounter in progress.

    Example:
        >>> manager = CombatManager()
        >>> manager.current_state() is None
        True
    """

    def __init__(self) -> None:
        self._state: CombatState | None = None
        self._stats: dict[str, CreatureStats] = {}

    # -------------------------------------------------------------------------
    # Read-only views
    # -------------------------------------------------------------------------

    def current_state(self) -> CombatState | None:
        """Copy of the active encounter, or None outside combat."""
        if self._state is None:
            return None
        return self._state.model_copy(deep=True)

    def is_active(self) -> bool:
        return self._state is not None and self._state.is_active

    def current_participant(self) -> CombatParticipant | None:
        """The combatant whose turn it is."""
        if self._state is None or not self._state.participants:
            return None
        return self._state.participants[self._state.current_turn_index].model_copy(deep=True)

    def summary(self) -> str:
        """Human-readable initiative order with HP and conditions."""
        if self._state is None:
            return "No combat is currently active."

        lines = [f"=== COMBAT - Round {self._state.round} ===", ""]
        for index, participant in enumerate(self._state.participants):
            stats = self._stats.get(participant.entity_id)
            hp = (
                f"{stats.hit_points.current}/{stats.hit_points.max} HP"
                if stats is not None
                else "HP unknown"
            )
            marker = " <- CURRENT" if index == self._state.current_turn_index else ""
            conditions = f" [{', '.join(participant.conditions)}]" if participant.conditions else ""
            kind = "PC" if participant.is_player else "NPC"
            lines.append(
                f"{participant.initiative:>3}: {participant.name} ({kind}, {hp}){conditions}{marker}"
            )
        return "\n".join(lines)

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def start_combat(self, combatants: list[CombatantEntry]) -> CombatState:
        """Roll initiative and open a new encounter.

        Raises:
            CombatError: If combat is already running or nobody is fighting.
        """
        if self._state is not None:
            raise CombatError(
                "Combat is already active; end it before starting another",
                round_number=self._state.round,
            )
        if not combatants:
            raise CombatError("Cannot start combat without participants")

        participants: list[CombatParticipant] = []
        self._stats = {}
        seen: dict[str, int] = {}
        for entry in combatants:
            seen[entry.entity_id] = seen.get(entry.entity_id, 0) + 1
            count = seen[entry.entity_id]
            combatant_id = entry.entity_id if count == 1 else f"{entry.entity_id}#{count}"
            dex = entry.stats.ability_scores.dexterity
            initiative = (
                entry.initiative
                if entry.initiative is not None
                else roll_initiative(AbilityScores.modifier(dex))
            )
            self._stats[combatant_id] = entry.stats.model_copy(deep=True)
            participants.append(
                CombatParticipant(
                    entity_id=combatant_id,
                    name=entry.name,
                    initiative=initiative,
                    is_player=entry.is_player,
                )
            )

        # Highest initiative first, DEX breaks ties
        participants.sort(
            key=lambda p: (p.initiative, self._stats[p.entity_id].ability_scores.dexterity),
            reverse=True,
        )

        self._state = CombatState(is_active=True, round=1, participants=participants)
        logger.info(
            "Combat started",
            participants=[p.name for p in participants],
        )
        return self._state.model_copy(deep=True)

    def end_combat(self) -> None:
        """Close the encounter and forget its bookkeeping."""
        if self._state is not None:
            logger.info("Combat ended", round=self._state.round)
        self._state = None
        self._stats = {}

    def next_turn(self) -> CombatParticipant | None:
        """Advance to the next combatant able to act.

        Unconscious and dead combatants are skipped. Returns None when
        nobody can act.
        """
        state = self._require_state()
        count = len(state.participants)
        for _ in range(count):
            state.current_turn_index += 1
            if state.current_turn_index >= count:
                state.current_turn_index = 0
                state.round += 1
            current = state.participants[state.current_turn_index]
            if not _OUT_OF_ACTION.intersection(current.conditions):
                logger.debug("Next turn", combatant=current.name, round=state.round)
                return current
        return None

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    def apply_damage(self, entity_id: str, amount: int) -> str:
        """Reduce HP; dropping to 0 knocks the combatant unconscious."""
        participant, stats = self._lookup(entity_id)
        if amount < 0:
            raise CombatError("Damage must not be negative", combatant_id=entity_id)
        hp = stats.hit_points
        hp.current = max(0, hp.current - amount)
        if hp.current == 0 and "unconscious" not in participant.conditions:
            participant.conditions.append("unconscious")
        return f"{participant.name} takes {amount} damage ({hp.current}/{hp.max} HP)."

    def apply_healing(self, entity_id: str, amount: int) -> str:
        """Restore HP up to the maximum; any healing wakes an unconscious combatant."""
        participant, stats = self._lookup(entity_id)
        if amount < 0:
            raise CombatError("Healing must not be negative", combatant_id=entity_id)
        hp = stats.hit_points
        hp.current = min(hp.max, hp.current + amount)
        if hp.current > 0 and "unconscious" in participant.conditions:
            participant.conditions.remove("unconscious")
        return f"{participant.name} heals {amount} HP ({hp.current}/{hp.max} HP)."

    def apply_condition(self, entity_id: str, condition: str) -> str:
        participant, _ = self._lookup(entity_id)
        condition = condition.lower()
        if condition in participant.conditions:
            return f"{participant.name} is already {condition}."
        participant.conditions.append(condition)
        return f"{participant.name} is now {condition}."

    def remove_condition(self, entity_id: str, condition: str) -> str:
        participant, _ = self._lookup(entity_id)
        condition = condition.lower()
        if condition not in participant.conditions:
            return f"{participant.name} is not {condition}."
        participant.conditions.remove(condition)
        return f"{participant.name} is no longer {condition}."

    # -------------------------------------------------------------------------
    # Rolls
    # -------------------------------------------------------------------------

    def make_attack(
        self,
        attacker_id: str,
        target_id: str,
        attack_bonus: int,
        damage_notation: str,
        damage_type: str = "",
        *,
        advantage: bool = False,
        disadvantage: bool = False,
        target_ac: int | None = None,
    ) -> AttackResult:
        """Roll an attack and, on a hit, its damage.

        Conditions add advantage (target blinded, paralyzed, stunned,
        unconscious or restrained) and disadvantage (attacker blinded,
        frightened, poisoned, prone or restrained). A natural 20 always hits
        and doubles the damage dice; a natural 1 always misses. The damage
        is reported only; apply it with ``apply_damage``.

        Raises:
            CombatError: If either combatant is not in this combat.
            DiceRollError: If the damage notation is invalid.
        """
        attacker, _ = self._lookup(attacker_id)
        target, target_stats = self._lookup(target_id)

        has_advantage = advantage or bool(_EXPOSED.intersection(target.conditions))
        has_disadvantage = disadvantage or bool(_HAMPERED.intersection(attacker.conditions))
        natural = self._roll_d20(has_advantage, has_disadvantage)
        attack_total = natural + attack_bonus
        armor_class = target_ac if target_ac is not None else target_stats.armor_class

        is_critical = natural == 20
        is_critical_miss = natural == 1
        hits = not is_critical_miss and (is_critical or attack_total >= armor_class)

        result = AttackResult(
            attacker=attacker.name,
            target=target.name,
            natural_roll=natural,
            attack_total=attack_total,
            target_ac=armor_class,
            hits=hits,
            is_critical=is_critical,
            is_critical_miss=is_critical_miss,
            has_advantage=has_advantage,
            has_disadvantage=has_disadvantage,
        )
        if hits:
            notation = _double_dice(damage_notation) if is_critical else damage_notation
            damage = roll_dice(notation)
            result.damage_notation = notation
            result.damage_rolls = list(damage.rolls)
            result.total_damage = max(0, damage.total)
            result.damage_type = damage_type or None

        result.narrative = _attack_narrative(result)
        logger.info(
            "Attack rolled",
            attacker=attacker.name,
            target=target.name,
            total=attack_total,
            hits=hits,
            critical=is_critical,
        )
        return result

    def make_saving_throw(
        self,
        entity_id: str,
        ability: str,
        dc: int,
        *,
        advantage: bool = False,
        disadvantage: bool = False,
        proficient: bool = False,
    ) -> SavingThrowResult:
        """Roll a saving throw against a DC.

        Paralyzed, stunned or unconscious combatants fail STR and DEX saves
        automatically; poisoned ones roll with disadvantage.

        Raises:
            CombatError: If the combatant is not in this combat or the
                ability is unknown.
        """
        participant, stats = self._lookup(entity_id)
        ability = ability.lower()
        if ability not in ABILITIES:
            raise CombatError(f"Unknown ability: {ability}", combatant_id=entity_id)

        modifier = AbilityScores.modifier(getattr(stats.ability_scores, ability))
        if proficient:
            modifier += stats.proficiency_bonus

        if ability in ("strength", "dexterity") and _HELPLESS.intersection(participant.conditions):
            return SavingThrowResult(
                entity=participant.name,
                ability=ability,
                dc=dc,
                natural_roll=1,
                modifier=modifier,
                total=1 + modifier,
                success=False,
                auto_failed=True,
                narrative=(
                    f"{participant.name} automatically fails the {ability} saving throw "
                    "due to their condition."
                ),
            )

        has_disadvantage = disadvantage or "poisoned" in participant.conditions
        natural = self._roll_d20(advantage, has_disadvantage)
        total = natural + modifier
        success = total >= dc

        logger.info("Saving throw rolled", entity=participant.name, ability=ability, total=total, dc=dc)
        return SavingThrowResult(
            entity=participant.name,
            ability=ability,
            dc=dc,
            natural_roll=natural,
            modifier=modifier,
            total=total,
            success=success,
            has_advantage=advantage,
            has_disadvantage=has_disadvantage,
            narrative=(
                f"{participant.name} rolls a {total} on their {ability} saving throw "
                f"(DC {dc}): {'SUCCESS' if success else 'FAILURE'}!"
            ),
        )

    @staticmethod
    def _roll_d20(advantage: bool, disadvantage: bool) -> int:
        """Natural d20 face; advantage and disadvantage cancel out."""
        if advantage and not disadvantage:
            roll = roll_dice("1d20 advantage")
        elif disadvantage and not advantage:
            roll = roll_dice("1d20 disadvantage")
        else:
            roll = roll_dice("1d20")
        return _natural(roll)

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _require_state(self) -> CombatState:
        if self._state is None:
            raise CombatError("No combat is currently active")
        return self._state

    def _lookup(self, entity_id: str) -> tuple[CombatParticipant, CreatureStats]:
        state = self._require_state()
        for participant in state.participants:
            if participant.entity_id == entity_id or participant.name.lower() == entity_id.lower():
                return participant, self._stats[participant.entity_id]
        raise CombatError(
            f"{entity_id} is not part of this combat",
            combatant_id=entity_id,
            round_number=state.round,
        )


def _natural(roll: DiceResult) -> int:
    return roll.natural_roll if roll.natural_roll is not None else roll.total


def _double_dice(notation: str) -> str:
    """Double every dice term for a critical hit: "1d8+3" -> "2d8+3"."""
    return _DICE_TERM_RE.sub(
        lambda m: f"{int(m.group(1) or 1) * 2}d{m.group(2)}",
        notation,
    )


def _attack_narrative(result: AttackResult) -> str:
    if result.is_critical_miss:
        return f"{result.attacker} swings wildly at {result.target} but critically misses! (Natural 1)"
    damage = f"{result.total_damage} {result.damage_type + ' ' if result.damage_type else ''}damage"
    if result.is_critical:
        return f"CRITICAL HIT! {result.attacker} strikes {result.target} for {damage}!"
    if result.hits:
        return (
            f"{result.attacker} hits {result.target} "
            f"({result.attack_total} vs AC {result.target_ac}) for {damage}!"
        )
    return (
        f"{result.attacker}'s attack misses {result.target} "
        f"({result.attack_total} vs AC {result.target_ac})."
    )


__all__ = ["ABILITIES", "CombatantEntry", "CombatManager"]
