"""
Applies a chosen action to a session snapshot.

Shared by the main loop and the bonus rounds: validates the action, pays its
mana, resolves it and returns the next snapshot with the turn recorded.
"""

from dungeon_sim.combat.resolution import (
    apply_damage,
    apply_healing,
    can_afford,
    resolve_attack,
    resolve_heal,
    resolve_special_attack,
)
from dungeon_sim.combat.session import (
    CombatAction,
    CombatSession,
    SkipResult,
    TurnRecord,
)
from dungeon_sim.core.constants import ActionKind, TurnPhase
from dungeon_sim.core.error_handling import IncidentKind, IncidentLog
from dungeon_sim.core.rng import RandomStream

INSUFFICIENT_RESOURCE = "insufficient_resource"


def perform_action(
    session: CombatSession,
    action: CombatAction,
    stream: RandomStream,
    phase: TurnPhase,
    incidents: IncidentLog,
    turn_number: int | None = None,
) -> CombatSession:
    """
    Performs an action and returns the resulting snapshot.

    A missing or dead actor or target skips the turn without a log entry. An
    action the actor cannot pay for is logged as a skipped turn and changes
    nothing else.

    Args:
        session (CombatSession):
            The snapshot before the action; it is left untouched.
        action (CombatAction):
            The action to perform.
        stream (RandomStream):
            The stream of the current turn.
        phase (TurnPhase):
            The phase the action belongs to.
        incidents (IncidentLog):
            Where skipped turns are recorded.
        turn_number (int | None):
            The main-loop turn number, for incident records.

    Returns:
        CombatSession:
            The snapshot after the action.

    """
    actor = session.get_combatant(action.actor_id)
    target = session.get_combatant(action.target_id)
    if actor is None or not actor.is_alive() or target is None or not target.is_alive():
        incidents.record(
            IncidentKind.VALIDATION,
            "Skipping turn: actor or target missing or defeated",
            {"actor": action.actor_id, "target": action.target_id, "phase": phase.value},
            turn_number=turn_number,
        )
        return session

    weapon = action.weapon
    record_fields = {
        "turn_number": session.next_turn_number,
        "phase": phase,
        "actor_id": actor.id,
        "actor_name": actor.name,
        "target_id": target.id,
        "target_name": target.name,
        "action": action,
    }

    if not can_afford(actor, weapon):
        incidents.record(
            IncidentKind.RESOURCE,
            f"{actor.name} cannot afford {weapon.name}, turn skipped",
            {"actor": actor.id, "required": weapon.mana_cost, "available": actor.mana},
            turn_number=turn_number,
        )
        skip = SkipResult(
            reason=INSUFFICIENT_RESOURCE,
            mana_required=weapon.mana_cost,
            mana_available=actor.mana,
        )
        return session.with_turn(TurnRecord(**record_fields, result=skip))

    if action.kind is ActionKind.HEAL:
        result = resolve_heal(actor, target, weapon, stream)
        updated = session.with_combatants(apply_healing(target, result.amount))
    else:
        if action.kind is ActionKind.SPECIAL_ATTACK:
            result = resolve_special_attack(actor, target, weapon, stream)
        else:
            result = resolve_attack(actor, target, weapon, stream)
        if weapon.mana_cost and not result.mana_spent:
            result = result.model_copy(update={"mana_spent": weapon.mana_cost})
        updated = session.with_combatants(apply_damage(target, result.damage))

    # The target may be the actor itself, so pay on the updated version.
    payer = updated.get_combatant(actor.id)
    if weapon.mana_cost:
        payer = payer.with_mana(payer.mana - weapon.mana_cost)
    return updated.with_turn(TurnRecord(**record_fields, result=result), payer)
