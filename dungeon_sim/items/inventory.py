"""
Weapon lookup for the simulator.

The inventory service is an external, fallible collaborator. It is reached
through the WeaponProvider protocol, whose single query may suspend. The
combat loop awaits resolve_weapon() before any random draw of a turn, and
any failure falls back to the role's default weapon.
"""

import re
from collections.abc import Awaitable, Callable, Mapping
from typing import Protocol

from catchery import log_debug
from pydantic import BaseModel, Field

from dungeon_sim.core.constants import Side, WeaponCategory
from dungeon_sim.core.error_handling import IncidentKind, IncidentLog
from dungeon_sim.entities.combatant import Combatant
from dungeon_sim.items.weapon import Weapon, default_weapon_for

_DAMAGE_PATTERN = re.compile(r"(\d+d\d+)(?:\s*\+\s*(\d+))?", re.IGNORECASE)
_BONUS_PATTERN = re.compile(r"\+(\d+)")

_DEXTERITY_ITEMS = {"dagger", "rapier", "shortsword"}
_RANGED_ITEMS = {"bow", "shortbow", "longbow", "crossbow", "sling"}


class InventoryItem(BaseModel):
    """An item as stored by the inventory service."""

    name: str = Field(description="Item name.")
    item_type: str = Field(description="Item type, e.g. 'Longsword' or 'Dagger'.")
    category: str = Field(default="weapon", description="Item category.")
    damage: str | None = Field(default=None, description="Damage text, e.g. '1d8 + 1'.")
    attack_bonus: str | None = Field(default=None, description="Attack bonus text, e.g. '+1'.")


class EquippedItems(BaseModel):
    """What a hero currently has equipped."""

    main_hand: InventoryItem | None = Field(default=None, description="Primary weapon.")
    armor: InventoryItem | None = Field(default=None, description="Worn armor.")


def weapon_from_inventory_item(item: InventoryItem) -> Weapon:
    """
    Converts an inventory item into a combat weapon.

    Args:
        item (InventoryItem):
            The equipped item.

    Returns:
        Weapon:
            The matching weapon descriptor.

    """
    item_type = item.item_type.lower()
    if item_type in _DEXTERITY_ITEMS:
        category = WeaponCategory.MELEE_DEXTERITY
    elif item_type in _RANGED_ITEMS:
        category = WeaponCategory.RANGED
    else:
        category = WeaponCategory.MELEE_STRENGTH

    damage_dice, damage_modifier = "1d6", 0
    if item.damage:
        match = _DAMAGE_PATTERN.search(item.damage)
        if match:
            damage_dice = match.group(1)
            damage_modifier = int(match.group(2)) if match.group(2) else 0

    attack_modifier = 0
    if item.attack_bonus:
        match = _BONUS_PATTERN.search(item.attack_bonus)
        if match:
            attack_modifier = int(match.group(1))

    return Weapon(
        name=item.name,
        category=category,
        damage_dice=damage_dice,
        damage_modifier=damage_modifier,
        attack_modifier=attack_modifier,
    )


def can_attack_with(weapon: Weapon) -> bool:
    """Checks whether a weapon can be used for an attack (healing spells cannot)."""
    return weapon.category.rolls_to_hit or weapon.category is WeaponCategory.MAGIC


class WeaponProvider(Protocol):
    """The single query the combat core needs from the inventory service."""

    async def get_equipped_weapon(self, combatant: Combatant) -> Weapon | None:
        """Returns the equipped weapon, None if nothing usable is equipped."""
        ...


class StaticWeaponProvider:
    """Serves weapons from a fixed mapping keyed by combatant id or record id."""

    def __init__(self, weapons: Mapping[str, Weapon] | None = None) -> None:
        self.weapons: dict[str, Weapon] = dict(weapons or {})
        self.calls: int = 0

    async def get_equipped_weapon(self, combatant: Combatant) -> Weapon | None:
        self.calls += 1
        weapon = self.weapons.get(combatant.id)
        if weapon is None and combatant.record_id is not None:
            weapon = self.weapons.get(combatant.record_id)
        return weapon


class InventoryWeaponProvider:
    """Adapts an async equipped-items lookup keyed by record id."""

    def __init__(self, lookup: Callable[[str], Awaitable[EquippedItems]]) -> None:
        """
        Initializes the provider.

        Args:
            lookup (Callable[[str], Awaitable[EquippedItems]]):
                Coroutine function returning the equipped items of a record.

        """
        self.lookup = lookup

    async def get_equipped_weapon(self, combatant: Combatant) -> Weapon | None:
        if combatant.record_id is None:
            return None
        equipped = await self.lookup(combatant.record_id)
        item = equipped.main_hand
        if item is None or item.category != "weapon":
            return None
        return weapon_from_inventory_item(item)


async def resolve_weapon(
    provider: WeaponProvider | None,
    combatant: Combatant,
    incidents: IncidentLog | None = None,
    turn_number: int | None = None,
    fallback: Weapon | None = None,
) -> Weapon:
    """
    Resolves the weapon a combatant attacks with.

    Only party members are looked up; monsters always use the fallback.
    Any failure of the provider, or a returned weapon that cannot attack, is
    recorded as an integration incident and replaced by the fallback.

    Args:
        provider (WeaponProvider | None):
            The inventory collaborator, or None to always use defaults.
        combatant (Combatant):
            The combatant whose weapon is needed.
        incidents (IncidentLog | None):
            Where to record lookup failures.
        turn_number (int | None):
            The main-loop turn number, for the incident record.
        fallback (Weapon | None):
            Weapon used when no lookup is possible; defaults to the role default.

    Returns:
        Weapon:
            The equipped weapon or the fallback.

    """
    fallback = fallback or default_weapon_for(combatant.role)
    if provider is None or combatant.side is not Side.PARTY:
        return fallback
    incidents = incidents if incidents is not None else IncidentLog()
    try:
        weapon = await provider.get_equipped_weapon(combatant)
    except Exception as e:
        message = f"Failed to get equipped weapon for {combatant.name}, using {fallback.name}"
        context = {"combatant": combatant.id, "fallback": fallback.name}
        incidents.record(
            IncidentKind.INTEGRATION,
            message,
            context,
            exception=e,
            turn_number=turn_number,
        )
        return fallback
    if weapon is None:
        log_debug(
            f"{combatant.name} has no weapon equipped, using {fallback.name}",
            {"combatant": combatant.id},
        )
        return fallback
    if not can_attack_with(weapon):
        message = f"{combatant.name} cannot attack with {weapon.name}, using {fallback.name}"
        context = {
            "combatant": combatant.id,
            "weapon": weapon.name,
            "category": weapon.category.value,
            "fallback": fallback.name,
        }
        incidents.record(
            IncidentKind.INTEGRATION,
            message,
            context,
            turn_number=turn_number,
        )
        return fallback
    return weapon
