"""Deterministic game mechanics: dice and combat tracking."""

from __future__ import annotations

from ai_dm.engine.combat import CombatantEntry, CombatManager
from ai_dm.engine.dice import DiceResult, roll_dice, roll_initiative


__all__ = [
    "CombatantEntry",
    "CombatManager",
    "DiceResult",
    "roll_dice",
    "roll_initiative",
]
