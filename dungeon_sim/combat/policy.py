"""
Action policy for the simulator.

Decides what the combatant whose turn it is does. A scripted action for the
(turn, actor) pair wins when its target is still alive; otherwise the role's
heuristic from ROLE_POLICIES is applied. Every random draw comes from the
turn's stream, so the choice is reproducible.
"""

from collections.abc import Callable

from dungeon_sim.combat.config import CombatConfig
from dungeon_sim.combat.session import CombatAction, CombatSession
from dungeon_sim.core.constants import ActionKind, Role
from dungeon_sim.core.rng import RandomStream
from dungeon_sim.entities.combatant import Combatant
from dungeon_sim.items.weapon import Weapon

RolePolicy = Callable[
    [Combatant, CombatSession, Weapon, RandomStream, CombatConfig, bool],
    CombatAction | None,
]


def choose_attack_target(
    actor: Combatant,
    session: CombatSession,
    stream: RandomStream,
) -> Combatant | None:
    """
    Picks a random living enemy of the actor.

    Args:
        actor (Combatant): The acting combatant.
        session (CombatSession): The current snapshot.
        stream (RandomStream): The stream of the current turn.

    Returns:
        Combatant | None: The chosen enemy, None if no enemy is alive.

    """
    enemies = session.get_alive_opponents(actor)
    if not enemies:
        return None
    return stream.choice(enemies)


def choose_heal_target(actor: Combatant, session: CombatSession) -> Combatant | None:
    """
    Picks the most wounded living ally, the healer excluded.

    Ties on hit points are broken by roster order.

    Args:
        actor (Combatant): The healer.
        session (CombatSession): The current snapshot.

    Returns:
        Combatant | None: The ally to heal, None if nobody is wounded.

    """
    wounded = [ally for ally in session.get_alive_allies(actor) if ally.hp < ally.max_hp]
    if not wounded:
        return None
    return min(wounded, key=lambda ally: ally.hp)


def _attack(
    actor: Combatant,
    session: CombatSession,
    weapon: Weapon,
    stream: RandomStream,
) -> CombatAction | None:
    target = choose_attack_target(actor, session, stream)
    if target is None:
        return None
    return CombatAction(
        actor_id=actor.id,
        kind=ActionKind.ATTACK,
        target_id=target.id,
        weapon=weapon,
    )


def healer_policy(
    actor: Combatant,
    session: CombatSession,
    weapon: Weapon,
    stream: RandomStream,
    config: CombatConfig,
    allow_heal: bool,
) -> CombatAction | None:
    """Heals the most wounded ally with probability heal_ratio, else attacks."""
    if allow_heal:
        target = choose_heal_target(actor, session)
        # Draw only when there is someone to heal.
        if target is not None:
            spell = config.heal_spell
            if stream.next() < config.heal_ratio and actor.mana >= spell.mana_cost:
                return CombatAction(
                    actor_id=actor.id,
                    kind=ActionKind.HEAL,
                    target_id=target.id,
                    weapon=spell,
                )
    return _attack(actor, session, weapon, stream)


def caster_policy(
    actor: Combatant,
    session: CombatSession,
    weapon: Weapon,
    stream: RandomStream,
    config: CombatConfig,
    allow_heal: bool,
) -> CombatAction | None:
    """Casts the special attack with probability special_ratio when affordable."""
    spell = config.special_spell
    if actor.mana >= spell.mana_cost and stream.next() < config.special_ratio:
        target = choose_attack_target(actor, session, stream)
        if target is None:
            return None
        return CombatAction(
            actor_id=actor.id,
            kind=ActionKind.SPECIAL_ATTACK,
            target_id=target.id,
            weapon=spell,
        )
    return _attack(actor, session, weapon, stream)


def attacker_policy(
    actor: Combatant,
    session: CombatSession,
    weapon: Weapon,
    stream: RandomStream,
    config: CombatConfig,
    allow_heal: bool,
) -> CombatAction | None:
    """Attacks a random living enemy."""
    return _attack(actor, session, weapon, stream)


ROLE_POLICIES: dict[Role, RolePolicy] = {
    Role.WARRIOR: attacker_policy,
    Role.ROGUE: attacker_policy,
    Role.CLERIC: healer_policy,
    Role.MAGE: caster_policy,
    Role.MONSTER: attacker_policy,
}


def choose_action(
    actor: Combatant,
    session: CombatSession,
    weapon: Weapon,
    stream: RandomStream,
    config: CombatConfig | None = None,
    turn_number: int | None = None,
    allow_heal: bool = True,
) -> CombatAction | None:
    """
    Chooses the action of the combatant whose turn it is.

    Args:
        actor (Combatant):
            The acting combatant.
        session (CombatSession):
            The current snapshot.
        weapon (Weapon):
            The weapon resolved for this turn.
        stream (RandomStream):
            The stream of the current turn.
        config (CombatConfig | None):
            Ratios, spells and scripted actions.
        turn_number (int | None):
            The main-loop turn number; None during bonus rounds, where
            scripted actions are ignored.
        allow_heal (bool):
            False turns healers into attackers (surprise round).

    Returns:
        CombatAction | None:
            The action, None when the actor has no living enemy.

    """
    config = config or CombatConfig()
    if not session.get_alive_opponents(actor):
        return None

    if turn_number is not None:
        scripted = config.scripted_action_for(turn_number, actor.id)
        if scripted is not None:
            target = session.get_combatant(scripted.target_id)
            if target is not None and target.is_alive():
                return CombatAction(
                    actor_id=actor.id,
                    kind=scripted.kind,
                    target_id=target.id,
                    weapon=config.spell_for(scripted.kind) or weapon,
                )

    policy = ROLE_POLICIES[actor.role]
    return policy(actor, session, weapon, stream, config, allow_heal)
