"""
Configuration of a combat.

Collects the tunable numbers of the action policy and the orchestrator in one
validated model, so none of them are hard-coded in the turn loop.
"""

from typing import Any

from pydantic import BaseModel, Field

from dungeon_sim.core.constants import (
    DEFAULT_HEAL_RATIO,
    DEFAULT_MAX_TURNS,
    DEFAULT_SPECIAL_RATIO,
    ActionKind,
    TieBreak,
    WeaponCategory,
)
from dungeon_sim.items.weapon import CLERIC_HEAL, MAGIC_MISSILE, MONSTER_CLAW, Weapon


class ScriptedAction(BaseModel):
    """A pre-decided action for one combatant on one main-loop turn."""

    turn_number: int = Field(
        description="Main-loop turn number (1-based) the action applies to.",
    )
    actor_id: str = Field(
        description="Id of the combatant that performs the action.",
    )
    kind: ActionKind = Field(
        description="What the combatant does.",
    )
    target_id: str = Field(
        description="Id of the combatant the action is aimed at.",
    )

    def model_post_init(self, _: Any) -> None:
        if self.turn_number < 1:
            raise ValueError(f"turn_number must be at least 1, got {self.turn_number}")


class CombatConfig(BaseModel):
    """Tunable parameters of a combat."""

    heal_ratio: float = Field(
        default=DEFAULT_HEAL_RATIO,
        description="Probability that a healer heals when an ally is wounded.",
    )
    special_ratio: float = Field(
        default=DEFAULT_SPECIAL_RATIO,
        description="Probability that a caster uses its special attack when it can afford it.",
    )
    max_turns: int = Field(
        default=DEFAULT_MAX_TURNS,
        description="Main-loop turns after which a stalemate defeat is forced.",
    )
    tie_break: TieBreak = Field(
        default=TieBreak.ROSTER,
        description="How initiative ties are broken.",
    )
    scripted_actions: list[ScriptedAction] = Field(
        default_factory=list,
        description="Actions that override the role heuristic.",
    )
    heal_spell: Weapon = Field(
        default=CLERIC_HEAL,
        description="The spell healers cast.",
    )
    special_spell: Weapon = Field(
        default=MAGIC_MISSILE,
        description="The special attack casters cast.",
    )
    monster_weapon: Weapon = Field(
        default=MONSTER_CLAW,
        description=(
            "The weapon every monster attacks with, in the ambush round and in the"
            " main loop alike. Monsters do not use the role weapons of the party,"
            " set this to the warrior's sword to give them one."
        ),
    )

    def model_post_init(self, _: Any) -> None:
        """Validates fields after model initialization."""
        if not 0.0 <= self.heal_ratio <= 1.0:
            raise ValueError(f"heal_ratio must be in [0, 1], got {self.heal_ratio}")
        if not 0.0 <= self.special_ratio <= 1.0:
            raise ValueError(f"special_ratio must be in [0, 1], got {self.special_ratio}")
        if self.max_turns < 1:
            raise ValueError(f"max_turns must be at least 1, got {self.max_turns}")
        if self.heal_spell.category is not WeaponCategory.HEAL:
            raise ValueError(f"heal_spell '{self.heal_spell.name}' is not a healing spell")
        if self.special_spell.category is not WeaponCategory.MAGIC:
            raise ValueError(f"special_spell '{self.special_spell.name}' is not a magic attack")
        if not self.monster_weapon.category.rolls_to_hit:
            raise ValueError(f"monster_weapon '{self.monster_weapon.name}' must roll to hit")

    def scripted_action_for(self, turn_number: int, actor_id: str) -> ScriptedAction | None:
        """
        Finds the scripted action for an actor on a main-loop turn.

        Args:
            turn_number (int): The main-loop turn number (1-based).
            actor_id (str): The id of the acting combatant.

        Returns:
            ScriptedAction | None: The scripted action, if one exists.

        """
        for scripted in self.scripted_actions:
            if scripted.turn_number == turn_number and scripted.actor_id == actor_id:
                return scripted
        return None

    def spell_for(self, kind: ActionKind) -> Weapon | None:
        """Returns the spell used by an action kind, None for plain attacks."""
        if kind is ActionKind.HEAL:
            return self.heal_spell
        if kind is ActionKind.SPECIAL_ATTACK:
            return self.special_spell
        return None
