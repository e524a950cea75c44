"""Dice rolling backed by the d20 library.

This is the only way dice are rolled. The model asks for a roll through
the ``roll_dice`` tool and narrates whatever Python produced.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any

import d20

from ai_dm.core.exceptions import DiceRollError


_ADVANTAGE_RE = re.compile(r"\s*(with\s+)?(advantage|disadvantage)\s*$", re.IGNORECASE)
_SINGLE_D20_RE = re.compile(r"^\s*1?d20(?!\d)", re.IGNORECASE)


@dataclass
class DiceResult:
    """Result of a dice roll.

    Attributes:
        notation: The notation as requested (including any advantage text).
        expression: The expression actually handed to d20.
        total: Final total.
        details: d20's breakdown string, e.g. ``1d20 (14) + 5 = `19```.
        rolls: Face values of every die rolled, dropped dice included.
        natural_roll: Kept d20 face for single-d20 rolls.
    """

    notation: str
    expression: str
    total: int
    details: str
    rolls: list[int] = field(default_factory=list)
    natural_roll: int | None = None

    @property
    def is_critical(self) -> bool:
        return self.natural_roll == 20

    @property
    def is_fumble(self) -> bool:
        return self.natural_roll == 1

    def to_dict(self) -> dict[str, Any]:
        return {
            "notation": self.notation,
            "total": self.total,
            "rolls": list(self.rolls),
            "details": self.details,
            "natural_roll": self.natural_roll,
        }


def _normalize(notation: str) -> str:
    """Translate trailing "advantage"/"disadvantage" into keep-highest/lowest."""
    match = _ADVANTAGE_RE.search(notation)
    if not match:
        return notation.strip()
    base = notation[: match.start()].strip()
    if not _SINGLE_D20_RE.match(base):
        return base
    keep = "kh1" if match.group(2).lower() == "advantage" else "kl1"
    rest = _SINGLE_D20_RE.sub("", base, count=1)
    return f"2d20{keep}{rest}"


def _collect_rolls(node: Any, out: list[int]) -> None:
    # Dice keep their Die nodes in values, not children
    if isinstance(node, d20.Dice):
        for die in node.values:
            out.extend(int(v.number) for v in die.values)
        return
    for child in getattr(node, "children", []):
        _collect_rolls(child, out)


def _find_natural_d20(node: Any) -> int | None:
    if isinstance(node, d20.Dice) and node.size == 20:
        for die in node.values:
            if getattr(die, "kept", True):
                return int(die.number)
    for child in getattr(node, "children", []):
        found = _find_natural_d20(child)
        if found is not None:
            return found
    return None


def roll_dice(notation: str) -> DiceResult:
    """Roll dice from standard notation.

    Supports everything d20 does ("1d20+5", "4d6kh3", "2d6+1d4+3") plus a
    trailing "advantage"/"disadvantage" on single d20 rolls.

    Args:
        notation: Dice notation.

    Returns:
        DiceResult with a true random outcome.

    Raises:
        DiceRollError: If the notation cannot be parsed.
    """
    if not notation or not notation.strip():
        raise DiceRollError("Empty dice notation", expression=notation)

    expression = _normalize(notation)
    try:
        result = d20.roll(expression)
    except d20.RollError as exc:
        raise DiceRollError(
            f"Invalid dice notation: {notation}",
            expression=notation,
            details={"reason": str(exc)},
        ) from exc

    rolls: list[int] = []
    _collect_rolls(result.expr, rolls)
    natural = _find_natural_d20(result.expr) if "d20" in expression.lower() else None

    return DiceResult(
        notation=notation.strip(),
        expression=expression,
        total=result.total,
        details=str(result),
        rolls=rolls,
        natural_roll=natural,
    )


def roll_initiative(dexterity_modifier: int) -> int:
    """Roll 1d20 plus a DEX modifier."""
    return roll_dice(f"1d20{dexterity_modifier:+d}").total


__all__ = ["DiceResult", "roll_dice", "roll_initiative"]
