"""Tests for dice rolling mechanics."""

from __future__ import annotations

import pytest

from ai_dm.core.exceptions import DiceRollError
from ai_dm.engine.dice import DiceResult, roll_dice, roll_initiative


class TestRollDice:
    """Tests for roll_dice."""

    def test_simple_d20_roll(self) -> None:
        """Test simple d20 roll."""
        result = roll_dice("1d20")

        assert isinstance(result, DiceResult)
        assert 1 <= result.total <= 20
        assert len(result.rolls) == 1
        assert result.natural_roll == result.total

    def test_roll_with_modifier(self) -> None:
        """Test roll with positive modifier."""
        result = roll_dice("1d20+5")

        assert 6 <= result.total <= 25
        assert result.natural_roll is not None
        assert result.total == result.natural_roll + 5

    def test_multiple_dice(self) -> None:
        """Test rolling multiple dice."""
        result = roll_dice("3d6")

        assert 3 <= result.total <= 18
        assert len(result.rolls) == 3
        assert result.natural_roll is None

    def test_complex_expression(self) -> None:
        """Test complex dice expression."""
        result = roll_dice("2d6+1d4+3")

        assert 6 <= result.total <= 19

    def test_advantage_rolls_two_d20(self) -> None:
        """Test that advantage keeps the highest of two d20."""
        result = roll_dice("1d20+2 advantage")

        assert result.expression == "2d20kh1+2"
        assert len(result.rolls) == 2
        assert result.natural_roll == max(result.rolls)
        assert result.total == max(result.rolls) + 2

    def test_disadvantage_rolls_two_d20(self) -> None:
        """Test that disadvantage keeps the lowest of two d20."""
        result = roll_dice("d20 with disadvantage")

        assert result.expression == "2d20kl1"
        assert result.natural_roll == min(result.rolls)

    def test_rolls_report_each_face(self) -> None:
        """Test that every die face is reported and sums to the total."""
        result = roll_dice("3d6+2")

        assert len(result.rolls) == 3
        assert all(1 <= face <= 6 for face in result.rolls)
        assert sum(result.rolls) + 2 == result.total
        assert result.to_dict()["rolls"] == result.rolls

    def test_advantage_only_rewrites_d20(self) -> None:
        """Test that a d200 is not mistaken for a d20."""
        result = roll_dice("1d200 advantage")

        assert result.expression == "1d200"
        assert len(result.rolls) == 1
        assert result.natural_roll is None

    def test_notation_is_preserved(self) -> None:
        result = roll_dice("  1d8+2 ")
        assert result.notation == "1d8+2"

    def test_critical_and_fumble_flags(self) -> None:
        """Test critical and fumble detection on the natural roll."""
        crit = DiceResult(notation="1d20", expression="1d20", total=20, details="", natural_roll=20)
        fumble = DiceResult(notation="1d20", expression="1d20", total=1, details="", natural_roll=1)

        assert crit.is_critical and not crit.is_fumble
        assert fumble.is_fumble and not fumble.is_critical

    def test_to_dict(self) -> None:
        data = roll_dice("1d4").to_dict()
        assert set(data) == {"notation", "total", "rolls", "details", "natural_roll"}

    @pytest.mark.parametrize("notation", ["", "   ", "banana", "1d"])
    def test_invalid_notation(self, notation: str) -> None:
        """Test that invalid notation raises DiceRollError."""
        with pytest.raises(DiceRollError):
            roll_dice(notation)


class TestRollInitiative:
    def test_range(self) -> None:
        for _ in range(20):
            assert 3 <= roll_initiative(2) <= 22

    def test_negative_modifier(self) -> None:
        for _ in range(20):
            assert -1 <= roll_initiative(-2) <= 18
