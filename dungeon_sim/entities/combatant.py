"""
Combatant module for the simulator.

A Combatant is the combat-time view of either a party member or a monster.
Combatants are never mutated once a combat starts: every change of hit points
or mana produces a new instance, so a session snapshot stays valid after the
next turn has been resolved.
"""

from typing import Any

from pydantic import BaseModel, Field

from dungeon_sim.core.constants import Role, Side
from dungeon_sim.core.utils import get_stat_modifier, make_bar
from dungeon_sim.entities.records import AdventurerRecord, MonsterInstance


class Combatant(BaseModel):
    """A participant of a combat."""

    id: str = Field(
        description="Unique identifier inside the combat.",
    )
    name: str = Field(
        description="Display name.",
    )
    side: Side = Field(
        description="The side the combatant fights on.",
    )
    role: Role = Field(
        description="Class of a party member, or MONSTER.",
    )
    hp: int = Field(
        description="Current hit points.",
    )
    max_hp: int = Field(
        description="Maximum hit points.",
    )
    mana: int = Field(
        default=0,
        description="Current mana.",
    )
    max_mana: int = Field(
        default=0,
        description="Maximum mana.",
    )
    ac: int = Field(
        description="Armor class.",
    )
    strength: int = Field(
        default=10,
        description="Strength score.",
    )
    dexterity: int = Field(
        default=10,
        description="Dexterity score.",
    )
    proficiency_bonus: int = Field(
        default=0,
        description="Proficiency bonus added to attack rolls.",
    )
    xp: int = Field(
        default=0,
        description="Experience awarded when this combatant is defeated.",
    )
    record_id: str | None = Field(
        default=None,
        description="Identifier of the external record this combatant comes from.",
    )

    def model_post_init(self, _: Any) -> None:
        """Validates fields after model initialization."""
        if not self.id:
            raise ValueError("id must be a non-empty string")
        if self.max_hp <= 0:
            raise ValueError(f"{self.id}: max_hp must be positive, got {self.max_hp}")
        if not 0 <= self.hp <= self.max_hp:
            raise ValueError(f"{self.id}: hp {self.hp} outside [0, {self.max_hp}]")
        if self.max_mana < 0:
            raise ValueError(f"{self.id}: max_mana must be non-negative")
        if not 0 <= self.mana <= self.max_mana:
            raise ValueError(f"{self.id}: mana {self.mana} outside [0, {self.max_mana}]")
        if self.side is Side.PARTY and not self.role.is_party_role:
            raise ValueError(f"{self.id}: party members need a party role")
        if self.side is Side.MONSTER and self.role is not Role.MONSTER:
            raise ValueError(f"{self.id}: monsters must have the MONSTER role")

    # ============================================================================
    # ABILITY SCORE MODIFIERS
    # ============================================================================

    @property
    def STR(self) -> int:
        """
        Returns the D&D strength modifier.

        Returns:
            int: The strength modifier value.

        """
        return get_stat_modifier(self.strength)

    @property
    def DEX(self) -> int:
        """
        Returns the D&D dexterity modifier.

        Returns:
            int: The dexterity modifier value.

        """
        return get_stat_modifier(self.dexterity)

    # ============================================================================
    # STATE
    # ============================================================================

    def is_alive(self) -> bool:
        return self.hp > 0

    def is_wounded(self) -> bool:
        return 0 < self.hp < self.max_hp

    def with_hp(self, hp: int) -> "Combatant":
        """
        Returns a copy with hit points clamped to [0, max_hp].

        Args:
            hp (int): The requested hit points.

        Returns:
            Combatant: The updated copy.

        """
        return self.model_copy(update={"hp": max(0, min(self.max_hp, hp))})

    def with_mana(self, mana: int) -> "Combatant":
        """
        Returns a copy with mana clamped to [0, max_mana].

        Args:
            mana (int): The requested mana.

        Returns:
            Combatant: The updated copy.

        """
        return self.model_copy(update={"mana": max(0, min(self.max_mana, mana))})

    # ============================================================================
    # DISPLAY
    # ============================================================================

    @property
    def colored_name(self) -> str:
        return self.side.colorize(self.name)

    def get_status_line(self, show_bars: bool = True, show_ac: bool = True) -> str:
        """
        Builds a one-line status summary.

        Args:
            show_bars (bool): Whether to draw hp/mana bars.
            show_ac (bool): Whether to include the armor class.

        Returns:
            str: The status line, with rich markup.

        """
        status = f"{self.side.emoji} {self.colored_name:<30} "
        status += f"HP [bold]{self.hp:>3}[/]/{self.max_hp:<3} "
        if show_bars:
            status += make_bar(self.hp, self.max_hp, color="green") + " "
        if self.max_mana > 0:
            status += f"MP [bold]{self.mana:>3}[/]/{self.max_mana:<3} "
            if show_bars:
                status += make_bar(self.mana, self.max_mana, color="blue") + " "
        if show_ac:
            status += f"AC {self.ac}"
        if not self.is_alive():
            status += " [dim](defeated)[/]"
        return status

    def __str__(self) -> str:
        return f"{self.name} ({self.hp}/{self.max_hp} HP)"


def combatant_from_adventurer(
    adventurer: AdventurerRecord,
    combatant_id: str | None = None,
) -> Combatant:
    """
    Builds a party combatant from an adventurer record.

    Args:
        adventurer (AdventurerRecord):
            The record supplied by the character-record service.
        combatant_id (str | None):
            Optional explicit id; defaults to ``party-<token_id>``.

    Returns:
        Combatant:
            The party combatant.

    """
    stats = adventurer.stats
    return Combatant(
        id=combatant_id or f"party-{adventurer.token_id}",
        name=adventurer.name or f"Hero {adventurer.token_id}",
        side=Side.PARTY,
        role=adventurer.role,
        hp=stats.health,
        max_hp=stats.max_health,
        mana=stats.mana,
        max_mana=stats.max_mana,
        ac=stats.armor_class,
        strength=stats.strength,
        dexterity=stats.dexterity,
        proficiency_bonus=stats.proficiency_bonus,
        record_id=adventurer.token_id,
    )


def combatant_from_monster(
    monster: MonsterInstance,
    combatant_id: str | None = None,
) -> Combatant:
    """
    Builds a monster combatant from a monster instance.

    Args:
        monster (MonsterInstance):
            The instance supplied by the room content generator.
        combatant_id (str | None):
            Optional explicit id; defaults to the instance id.

    Returns:
        Combatant:
            The monster combatant.

    """
    block = monster.stat_block
    return Combatant(
        id=combatant_id or monster.id,
        name=block.name,
        side=Side.MONSTER,
        role=Role.MONSTER,
        hp=monster.current_hp,
        max_hp=monster.max_hp,
        ac=block.ac,
        strength=block.strength,
        dexterity=block.dexterity,
        xp=block.xp,
        record_id=monster.id,
    )
