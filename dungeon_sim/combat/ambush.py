"""
Bonus rounds played before the main loop.

An ambush lets every living monster strike the party once; a surprise lets
every living party member act once, without healing. A session flags at most
one of them, and each runs at most once thanks to its completed flag.
"""

from dungeon_sim.combat.config import CombatConfig
from dungeon_sim.combat.execution import perform_action
from dungeon_sim.combat.policy import choose_action, choose_attack_target
from dungeon_sim.combat.session import CombatAction, CombatSession
from dungeon_sim.core.constants import ActionKind, Side, TurnPhase
from dungeon_sim.core.error_handling import IncidentLog
from dungeon_sim.items.inventory import WeaponProvider, resolve_weapon
from dungeon_sim.items.weapon import MONSTER_CLAW, Weapon


def run_ambush_round(
    session: CombatSession,
    incidents: IncidentLog | None = None,
    weapon: Weapon = MONSTER_CLAW,
) -> CombatSession:
    """
    Plays the ambush round: each living monster, in roster order, attacks a
    random living party member with its natural weapon.

    Args:
        session (CombatSession):
            The snapshot before the round.
        incidents (IncidentLog | None):
            Where skipped actions are recorded.
        weapon (Weapon):
            The basic attack every monster uses.

    Returns:
        CombatSession:
            The snapshot after the round, marked completed. Unchanged when the
            session is not an ambush or the round already ran.

    """
    if not session.is_ambush or session.ambush_completed:
        return session
    incidents = incidents if incidents is not None else IncidentLog()

    for index, monster in enumerate(session.get_alive(Side.MONSTER)):
        if not session.get_alive(Side.PARTY):
            break
        stream = session.stream(TurnPhase.AMBUSH.value, index)
        target = choose_attack_target(monster, session, stream)
        if target is None:
            break
        action = CombatAction(
            actor_id=monster.id,
            kind=ActionKind.ATTACK,
            target_id=target.id,
            weapon=weapon,
        )
        session = perform_action(session, action, stream, TurnPhase.AMBUSH, incidents)

    return session.model_copy(update={"ambush_completed": True})


async def run_surprise_round(
    session: CombatSession,
    config: CombatConfig | None = None,
    weapon_provider: WeaponProvider | None = None,
    incidents: IncidentLog | None = None,
) -> CombatSession:
    """
    Plays the surprise round: each living party member, in roster order, acts
    once through the action policy with healing disallowed.

    Args:
        session (CombatSession):
            The snapshot before the round.
        config (CombatConfig | None):
            Ratios and spells used by the action policy.
        weapon_provider (WeaponProvider | None):
            The inventory collaborator.
        incidents (IncidentLog | None):
            Where lookup failures and skipped actions are recorded.

    Returns:
        CombatSession:
            The snapshot after the round, marked completed. Unchanged when the
            session is not a surprise or the round already ran.

    """
    if not session.is_surprise or session.surprise_completed:
        return session
    config = config or CombatConfig()
    incidents = incidents if incidents is not None else IncidentLog()

    for index, member in enumerate(session.get_alive(Side.PARTY)):
        if not session.get_alive(Side.MONSTER):
            break
        # The lookup completes before the stream of the action is derived.
        weapon = await resolve_weapon(weapon_provider, member, incidents)
        stream = session.stream(TurnPhase.SURPRISE.value, index)
        action = choose_action(member, session, weapon, stream, config, allow_heal=False)
        if action is None:
            break
        session = perform_action(session, action, stream, TurnPhase.SURPRISE, incidents)

    return session.model_copy(update={"surprise_completed": True})
