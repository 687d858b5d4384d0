"""
Dice parser module for the simulator.

Parses damage and healing expressions of the form ``NdS+M`` (for example
``1d8``, ``2d4+2`` or a flat ``3``) and rolls them against a RandomStream, so
that every roll is reproducible.
"""

import re
from typing import Any

from catchery import log_warning
from pydantic import BaseModel, Field

from dungeon_sim.core.rng import RandomStream

DICE_PATTERN = re.compile(r"^(\d*)D(\d+)(?:([+-])(\d+))?$")
FLAT_PATTERN = re.compile(r"^([+-]?\d+)$")

# Reasonable limits.
MAX_DICE = 100
MAX_SIDES = 1000


class RollBreakdown(BaseModel):
    """Class to hold roll breakdown information."""

    value: int = Field(
        description="Total roll result",
    )
    description: str = Field(
        description="Description of the roll",
    )
    rolls: list[int] = Field(
        description="List of individual dice rolls",
        default_factory=list,
    )


class DiceExpression(BaseModel):
    """A parsed ``NdS+M`` expression."""

    count: int = Field(
        default=0,
        description="Number of dice to roll (0 for a flat value).",
    )
    sides: int = Field(
        default=0,
        description="Number of sides of each die.",
    )
    modifier: int = Field(
        default=0,
        description="Flat modifier added to the dice total.",
    )

    def model_post_init(self, _: Any) -> None:
        """Validates fields after model initialization."""
        if self.count < 0 or self.count > MAX_DICE:
            raise ValueError(f"Invalid dice count: {self.count} (limit: {MAX_DICE})")
        if self.count > 0 and (self.sides <= 0 or self.sides > MAX_SIDES):
            raise ValueError(f"Invalid dice sides: {self.sides} (limit: {MAX_SIDES})")

    @classmethod
    def parse(cls, expression: str) -> "DiceExpression":
        """
        Parses a dice expression.

        Args:
            expression (str): Dice expression like "1d20+5", "2d6" or "3".

        Returns:
            DiceExpression: The parsed expression.

        Raises:
            ValueError: If the expression is invalid.

        """
        if not expression or not isinstance(expression, str):
            raise ValueError(f"Invalid dice expression: {expression!r}")
        # Remove whitespace and convert to uppercase.
        expr = "".join(expression.split()).upper()

        flat = FLAT_PATTERN.match(expr)
        if flat:
            return cls(count=0, sides=0, modifier=int(flat.group(1)))

        match = DICE_PATTERN.match(expr)
        if not match:
            log_warning(
                f"Invalid dice string format: '{expression}'",
                {"expression": expression},
            )
            raise ValueError(f"Invalid dice expression: {expression!r}")

        count_str, sides_str, sign, modifier_str = match.groups()
        modifier = int(modifier_str) if modifier_str else 0
        if sign == "-":
            modifier = -modifier
        return cls(
            count=int(count_str) if count_str else 1,
            sides=int(sides_str),
            modifier=modifier,
        )

    @property
    def min_value(self) -> int:
        return self.count + self.modifier

    @property
    def max_value(self) -> int:
        return self.count * self.sides + self.modifier

    def roll(self, stream: RandomStream) -> RollBreakdown:
        """
        Rolls the expression using the given stream.

        Args:
            stream (RandomStream): The stream to draw from.

        Returns:
            RollBreakdown: Total, description and individual dice.

        """
        rolls = [stream.range(1, self.sides) for _ in range(self.count)]
        total = sum(rolls) + self.modifier
        if not rolls:
            return RollBreakdown(value=total, description=str(total), rolls=[])
        if self.count == 1:
            detail = f"d{self.sides}({rolls[0]})"
        else:
            detail = f"{self.count}d{self.sides}({'+'.join(map(str, rolls))})"
        if self.modifier != 0:
            detail += f"{self.modifier:+d}"
        return RollBreakdown(value=total, description=detail, rolls=rolls)

    def __str__(self) -> str:
        if self.count == 0:
            return str(self.modifier)
        text = f"{self.count}d{self.sides}"
        if self.modifier != 0:
            text += f"{self.modifier:+d}"
        return text


def roll_d20(stream: RandomStream) -> int:
    """Rolls a single d20."""
    return stream.range(1, 20)
