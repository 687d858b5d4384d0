"""
Weapon module for the simulator.

Weapons and spells share one descriptor: a name, a category telling which
score drives the roll, a damage (or healing) dice expression, flat modifiers
and an optional mana cost.
"""

from typing import Any

from pydantic import BaseModel, Field

from dungeon_sim.core.constants import Role, WeaponCategory
from dungeon_sim.core.dice_parser import DiceExpression


class Weapon(BaseModel):
    """
    Represents a weapon or spell that can be used by combatants.

    The damage expression of a HEAL weapon is the amount healed.
    """

    name: str = Field(
        description="The name of the weapon or spell.",
    )
    category: WeaponCategory = Field(
        description="Which score drives the roll, or MAGIC/HEAL for spells.",
    )
    damage_dice: str = Field(
        description="The damage (or healing) roll expression (e.g., '1d8').",
    )
    damage_modifier: int = Field(
        default=0,
        description="Additional flat damage from enchantments or quality.",
    )
    attack_modifier: int = Field(
        default=0,
        description="Additional attack roll bonus from enchantments or quality.",
    )
    mana_cost: int = Field(
        default=0,
        description="Mana the user must spend to use it.",
    )

    def model_post_init(self, _: Any) -> None:
        """Validates fields after model initialization."""
        if not self.name:
            raise ValueError("name must be a non-empty string")
        if self.mana_cost < 0:
            raise ValueError("mana_cost must be non-negative")
        # Raises on malformed expressions.
        DiceExpression.parse(self.damage_dice)

    @property
    def dice(self) -> DiceExpression:
        """The parsed damage expression."""
        return DiceExpression.parse(self.damage_dice)

    @property
    def colored_name(self) -> str:
        """Returns the colored name of the weapon for display purposes."""
        if self.category is WeaponCategory.HEAL:
            return f"[bold green]{self.name}[/]"
        if self.category is WeaponCategory.MAGIC:
            return f"[bold magenta]{self.name}[/]"
        return f"[bold blue]{self.name}[/]"

    def __str__(self) -> str:
        text = f"{self.name} ({self.dice}"
        if self.damage_modifier:
            text += f"{self.damage_modifier:+d}"
        text += ")"
        return text


# =============================================================================
# Default weapons and spells
# =============================================================================

# Fallbacks used when no weapon is equipped or the lookup fails.
DEFAULT_WEAPONS: dict[Role, Weapon] = {
    Role.WARRIOR: Weapon(
        name="Sword",
        category=WeaponCategory.MELEE_STRENGTH,
        damage_dice="1d8",
    ),
    Role.ROGUE: Weapon(
        name="Dagger",
        category=WeaponCategory.MELEE_DEXTERITY,
        damage_dice="1d4",
    ),
    Role.CLERIC: Weapon(
        name="Mace",
        category=WeaponCategory.MELEE_STRENGTH,
        damage_dice="1d6",
    ),
    Role.MAGE: Weapon(
        name="Staff",
        category=WeaponCategory.MELEE_STRENGTH,
        damage_dice="1d4",
    ),
    Role.MONSTER: Weapon(
        name="Claw",
        category=WeaponCategory.MELEE_STRENGTH,
        damage_dice="1d6",
    ),
}

# Basic attack monsters use during an ambush round.
MONSTER_CLAW = DEFAULT_WEAPONS[Role.MONSTER]

CLERIC_HEAL = Weapon(
    name="Heal",
    category=WeaponCategory.HEAL,
    damage_dice="2d4+2",
    mana_cost=5,
)

MAGIC_MISSILE = Weapon(
    name="Magic Missile",
    category=WeaponCategory.MAGIC,
    damage_dice="1d4+1",
    mana_cost=3,
)


def default_weapon_for(role: Role) -> Weapon:
    """
    Returns the fallback weapon for a role.

    Args:
        role (Role): The combatant role.

    Returns:
        Weapon: The default weapon for that role.

    """
    return DEFAULT_WEAPONS[role]
