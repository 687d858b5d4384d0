"""
Shared fixtures for the simulator tests.
"""

import pytest

from dungeon_sim.core.constants import Role, Side
from dungeon_sim.core.rng import RandomStream
from dungeon_sim.entities.combatant import Combatant


@pytest.fixture
def make_combatant():
    """Factory building combatants with sensible defaults."""

    def _make(
        combatant_id: str,
        side: Side = Side.PARTY,
        role: Role | None = None,
        hp: int = 10,
        max_hp: int | None = None,
        **kwargs,
    ) -> Combatant:
        if role is None:
            role = Role.WARRIOR if side is Side.PARTY else Role.MONSTER
        kwargs.setdefault("ac", 12)
        kwargs.setdefault("name", combatant_id.capitalize())
        return Combatant(
            id=combatant_id,
            side=side,
            role=role,
            hp=hp,
            max_hp=max_hp if max_hp is not None else max(hp, 1),
            **kwargs,
        )

    return _make


@pytest.fixture
def warrior(make_combatant):
    return make_combatant(
        "warrior",
        role=Role.WARRIOR,
        hp=12,
        ac=15,
        strength=14,
        dexterity=12,
        proficiency_bonus=2,
    )


@pytest.fixture
def goblin(make_combatant):
    return make_combatant(
        "goblin",
        side=Side.MONSTER,
        hp=7,
        ac=13,
        strength=8,
        dexterity=14,
        xp=50,
    )


@pytest.fixture
def stream():
    return RandomStream.derive("test-seed", "room-1", "turn", 0)
