"""
Attack and heal resolution.

Pure functions: given the combatants involved, a weapon or spell and a random
stream, they compute what happens without touching any combatant. The caller
applies the outcome with apply_damage() / apply_healing() and pays the mana.
"""

from dungeon_sim.combat.session import AttackResult, HealResult
from dungeon_sim.core.constants import CRITICAL_ROLL, WeaponCategory
from dungeon_sim.core.dice_parser import roll_d20
from dungeon_sim.core.rng import RandomStream
from dungeon_sim.entities.combatant import Combatant
from dungeon_sim.items.weapon import Weapon


def get_weapon_stat_modifier(attacker: Combatant, weapon: Weapon) -> int:
    """
    Returns the ability modifier a weapon uses.

    Args:
        attacker (Combatant): The combatant using the weapon.
        weapon (Weapon): The weapon.

    Returns:
        int: STR for melee-strength, DEX for melee-dexterity and ranged, 0 otherwise.

    """
    if weapon.category is WeaponCategory.MELEE_STRENGTH:
        return attacker.STR
    if weapon.category in (WeaponCategory.MELEE_DEXTERITY, WeaponCategory.RANGED):
        return attacker.DEX
    return 0


def can_afford(actor: Combatant, weapon: Weapon) -> bool:
    """Checks whether the actor has the mana the weapon or spell costs."""
    return actor.mana >= weapon.mana_cost


def resolve_attack(
    attacker: Combatant,
    target: Combatant,
    weapon: Weapon,
    stream: RandomStream,
) -> AttackResult:
    """
    Resolves a weapon attack.

    The attack roll is d20 + ability modifier + proficiency + weapon attack
    modifier. A natural 20 is a critical hit and always lands; otherwise the
    total must exceed the target's armor class. Damage is the weapon dice plus
    the ability and weapon damage modifiers, never below zero; a critical hit
    adds a second roll of the weapon dice. Magic weapons are delegated to
    resolve_special_attack().

    Args:
        attacker (Combatant):
            The attacking combatant.
        target (Combatant):
            The targeted combatant.
        weapon (Weapon):
            The weapon used.
        stream (RandomStream):
            The stream of the current turn.

    Returns:
        AttackResult:
            The outcome, with the target hit points before and after.

    Raises:
        ValueError:
            If the target is dead or the weapon is a healing spell.

    """
    if weapon.category is WeaponCategory.MAGIC:
        return resolve_special_attack(attacker, target, weapon, stream)
    if weapon.category is WeaponCategory.HEAL:
        raise ValueError(f"{weapon.name} is a healing spell, not a weapon")
    if not target.is_alive():
        raise ValueError(f"{target.name} is already defeated")

    roll = roll_d20(stream)
    critical = roll == CRITICAL_ROLL
    stat_modifier = get_weapon_stat_modifier(attacker, weapon)
    total = roll + stat_modifier + attacker.proficiency_bonus + weapon.attack_modifier
    hit = critical or total > target.ac

    damage = 0
    damage_rolls: list[int] = []
    if hit:
        dice = weapon.dice
        damage_roll = dice.roll(stream)
        damage = damage_roll.value + stat_modifier + weapon.damage_modifier
        damage_rolls = list(damage_roll.rolls)
        if critical:
            extra = dice.roll(stream)
            damage += extra.value
            damage_rolls.extend(extra.rolls)
        damage = max(0, damage)

    return AttackResult(
        hit=hit,
        roll=roll,
        total=total,
        target_ac=target.ac,
        damage=damage,
        damage_rolls=damage_rolls,
        critical=critical,
        target_hp_before=target.hp,
        target_hp_after=max(0, target.hp - damage),
        target_max_hp=target.max_hp,
        stat_modifier=stat_modifier,
        proficiency=attacker.proficiency_bonus,
        weapon_modifier=weapon.attack_modifier,
    )


def resolve_special_attack(
    caster: Combatant,
    target: Combatant,
    spell: Weapon,
    stream: RandomStream,
) -> AttackResult:
    """
    Resolves a magic attack: it always hits, never crits and rolls no d20.

    Args:
        caster (Combatant):
            The casting combatant.
        target (Combatant):
            The targeted combatant.
        spell (Weapon):
            The spell cast.
        stream (RandomStream):
            The stream of the current turn.

    Returns:
        AttackResult:
            The outcome; mana_spent carries the spell cost for the caller to pay.

    """
    if not target.is_alive():
        raise ValueError(f"{target.name} is already defeated")
    damage_roll = spell.dice.roll(stream)
    damage = max(0, damage_roll.value)
    return AttackResult(
        hit=True,
        auto_hit=True,
        target_ac=target.ac,
        damage=damage,
        damage_rolls=list(damage_roll.rolls),
        target_hp_before=target.hp,
        target_hp_after=max(0, target.hp - damage),
        target_max_hp=target.max_hp,
        mana_spent=spell.mana_cost,
    )


def resolve_heal(
    caster: Combatant,
    target: Combatant,
    spell: Weapon,
    stream: RandomStream,
) -> HealResult:
    """
    Resolves a heal, capped at the target's maximum hit points.

    Args:
        caster (Combatant):
            The healer.
        target (Combatant):
            The healed combatant.
        spell (Weapon):
            The healing spell.
        stream (RandomStream):
            The stream of the current turn.

    Returns:
        HealResult:
            The outcome; caster_mana_after assumes the cost is paid.

    Raises:
        ValueError:
            If the target is dead.

    """
    if not target.is_alive():
        raise ValueError(f"Cannot heal {target.name}: target is defeated")
    heal_roll = spell.dice.roll(stream)
    amount = max(0, heal_roll.value)
    return HealResult(
        amount=amount,
        heal_rolls=list(heal_roll.rolls),
        target_hp_before=target.hp,
        target_hp_after=min(target.max_hp, target.hp + amount),
        target_max_hp=target.max_hp,
        mana_cost=spell.mana_cost,
        caster_mana_after=max(0, caster.mana - spell.mana_cost),
    )


def apply_damage(combatant: Combatant, amount: int) -> Combatant:
    """Returns a copy of the combatant with damage taken, floored at 0 hp."""
    return combatant.with_hp(combatant.hp - max(0, amount))


def apply_healing(combatant: Combatant, amount: int) -> Combatant:
    """Returns a copy of the combatant healed, capped at max hp."""
    return combatant.with_hp(combatant.hp + max(0, amount))
