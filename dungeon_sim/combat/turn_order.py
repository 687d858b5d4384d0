"""
Turn order service.

Initiative is computed once, when the session is created, and never changes.
Every turn the orchestrator filters it down to the living combatants (the
alive view) and uses a cursor into that view to pick the actor.
"""

from collections.abc import Iterable
from itertools import groupby

from dungeon_sim.core.constants import Side, TieBreak
from dungeon_sim.core.rng import RandomStream
from dungeon_sim.entities.combatant import Combatant


def determine_turn_order(
    combatants: list[Combatant],
    tie_break: TieBreak = TieBreak.ROSTER,
    stream: RandomStream | None = None,
) -> list[str]:
    """
    Computes the initiative ordering, by descending dexterity score.

    Args:
        combatants (list[Combatant]):
            Every participant, in roster order.
        tie_break (TieBreak):
            ROSTER keeps roster order among equals, party members first.
            SEEDED shuffles each group of equals with the given stream.
        stream (RandomStream | None):
            The initiative stream, required for SEEDED.

    Returns:
        list[str]:
            The ids of the combatants, first to act first.

    """
    ranked = sorted(
        enumerate(combatants),
        key=lambda pair: (
            -pair[1].dexterity,
            0 if pair[1].side is Side.PARTY else 1,
            pair[0],
        ),
    )
    ordered = [combatant for _, combatant in ranked]
    if tie_break is TieBreak.ROSTER:
        return [c.id for c in ordered]

    if stream is None:
        raise ValueError("A seeded tie-break needs a random stream")
    result: list[str] = []
    for _, group in groupby(ordered, key=lambda c: c.dexterity):
        tied = [c.id for c in group]
        result.extend(stream.shuffle(tied) if len(tied) > 1 else tied)
    return result


def alive_view(turn_order: list[str], combatants: Iterable[Combatant]) -> list[str]:
    """
    Filters the ordering down to the living combatants, keeping their order.

    Args:
        turn_order (list[str]): The initiative ordering.
        combatants (Iterable[Combatant]): The current combatant states.

    Returns:
        list[str]: The ids of the living combatants.

    """
    alive = {c.id for c in combatants if c.is_alive()}
    return [combatant_id for combatant_id in turn_order if combatant_id in alive]


def current_entity(alive: list[str], cursor: int) -> str:
    """
    Returns the id the cursor points at, wrapping around the alive view.

    Args:
        alive (list[str]): The alive view.
        cursor (int): The turn cursor.

    Returns:
        str: The id of the combatant whose turn it is.

    Raises:
        ValueError: If nobody is alive; combat must already be over then.

    """
    if not alive:
        raise ValueError("No living combatant left to act")
    return alive[cursor % len(alive)]


def next_cursor(
    turn_order: list[str],
    combatants: Iterable[Combatant],
    actor_id: str,
) -> int:
    """
    Computes the cursor after the given actor has acted.

    The cursor points at the first living combatant following the actor in
    the fixed ordering, as an index into the new alive view. A death earlier
    in the ordering therefore never makes anyone lose a turn.

    Args:
        turn_order (list[str]): The initiative ordering.
        combatants (Iterable[Combatant]): The combatant states after the turn.
        actor_id (str): The id of the combatant that just acted.

    Returns:
        int: The new cursor, 0 if nobody is alive.

    """
    combatants = list(combatants)
    alive = alive_view(turn_order, combatants)
    if not alive:
        return 0
    living = set(alive)
    start = turn_order.index(actor_id)
    for step in range(1, len(turn_order) + 1):
        candidate = turn_order[(start + step) % len(turn_order)]
        if candidate in living:
            return alive.index(candidate)
    return 0
