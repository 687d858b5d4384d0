"""
Constants and enumerations for the simulator.

Defines the closed set of sides, roles, weapon categories, action kinds and
combat states used throughout the combat core, together with the colors and
emojis used when narrating a fight on the console.
"""

from enum import Enum

# Safety ceiling on main-loop turns before a stalemate is forced.
DEFAULT_MAX_TURNS = 1000

# Default probability that a healer heals when an ally is wounded.
DEFAULT_HEAL_RATIO = 0.3

# Default probability that a caster uses its special attack when affordable.
DEFAULT_SPECIAL_RATIO = 0.7

# A natural roll of this value on the d20 is a critical hit.
CRITICAL_ROLL = 20


class NiceEnum(Enum):
    """An enumeration that provides a nicer string representation."""

    def __str__(self) -> str:
        return self.name

    @property
    def display_name(self) -> str:
        return self.name.lower().capitalize()


class Side(NiceEnum):
    """The side a combatant fights on."""

    PARTY = "party"
    MONSTER = "monster"

    @property
    def emoji(self) -> str:
        """Returns the emoji associated with this side."""
        return {
            Side.PARTY: "👤",
            Side.MONSTER: "👹",
        }.get(self, "❔")

    @property
    def color(self) -> str:
        """Returns the color string associated with this side."""
        return {
            Side.PARTY: "bold blue",
            Side.MONSTER: "bold red",
        }.get(self, "dim white")

    def colorize(self, message: str) -> str:
        """Applies side color formatting to a message."""
        return f"[{self.color}]{message}[/]"


class Role(NiceEnum):
    """Closed set of combat roles; party members pick one of the four classes."""

    WARRIOR = "warrior"
    ROGUE = "rogue"
    CLERIC = "cleric"
    MAGE = "mage"
    MONSTER = "monster"

    @property
    def is_party_role(self) -> bool:
        return self is not Role.MONSTER


class WeaponCategory(NiceEnum):
    """Determines which score drives a weapon and whether it rolls to hit."""

    MELEE_STRENGTH = "melee-strength"
    MELEE_DEXTERITY = "melee-dexterity"
    RANGED = "ranged"
    MAGIC = "magic"
    HEAL = "heal"

    @property
    def rolls_to_hit(self) -> bool:
        return self in (
            WeaponCategory.MELEE_STRENGTH,
            WeaponCategory.MELEE_DEXTERITY,
            WeaponCategory.RANGED,
        )


class ActionKind(NiceEnum):
    """What a combatant does with its turn."""

    ATTACK = "attack"
    HEAL = "heal"
    SPECIAL_ATTACK = "special-attack"

    @property
    def emoji(self) -> str:
        """Returns the emoji associated with this action kind."""
        return {
            ActionKind.ATTACK: "⚔️",
            ActionKind.HEAL: "💚",
            ActionKind.SPECIAL_ATTACK: "🔮",
        }.get(self, "❔")

    @property
    def color(self) -> str:
        """Returns the color string associated with this action kind."""
        return {
            ActionKind.ATTACK: "bold red",
            ActionKind.HEAL: "bold green",
            ActionKind.SPECIAL_ATTACK: "bold magenta",
        }.get(self, "dim white")

    def colorize(self, message: str) -> str:
        """Applies action kind color formatting to a message."""
        return f"[{self.color}]{message}[/]"


class CombatStatus(NiceEnum):
    """States of the combat state machine."""

    PENDING = "pending"
    ACTIVE = "active"
    VICTORY = "victory"
    DEFEAT = "defeat"

    @property
    def is_terminal(self) -> bool:
        return self in (CombatStatus.VICTORY, CombatStatus.DEFEAT)

    @property
    def color(self) -> str:
        """Returns the color string associated with this status."""
        return {
            CombatStatus.PENDING: "dim white",
            CombatStatus.ACTIVE: "bold yellow",
            CombatStatus.VICTORY: "bold green",
            CombatStatus.DEFEAT: "bold red",
        }.get(self, "dim white")

    def colorize(self, message: str) -> str:
        """Applies status color formatting to a message."""
        return f"[{self.color}]{message}[/]"


class TurnPhase(NiceEnum):
    """Which part of the encounter produced a turn record."""

    AMBUSH = "ambush"
    SURPRISE = "surprise"
    MAIN = "main"


class TieBreak(NiceEnum):
    """How initiative ties on dexterity are broken."""

    # Stable on roster order (party first, then monsters).
    ROSTER = "roster"
    # Deterministic shuffle of each tied group, keyed by the session seed.
    SEEDED = "seeded"
