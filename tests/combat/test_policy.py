"""
Tests for the action policy.
"""

import pytest

from dungeon_sim.combat.config import CombatConfig, ScriptedAction
from dungeon_sim.combat.policy import ROLE_POLICIES, choose_action
from dungeon_sim.combat.session import create_session
from dungeon_sim.core.constants import ActionKind, Role, Side
from dungeon_sim.core.rng import RandomStream
from dungeon_sim.items.weapon import CLERIC_HEAL, DEFAULT_WEAPONS, MAGIC_MISSILE


@pytest.fixture
def cleric(make_combatant):
    return make_combatant("cleric", role=Role.CLERIC, hp=10, mana=10, max_mana=10)


@pytest.fixture
def mage(make_combatant):
    return make_combatant("mage", role=Role.MAGE, hp=8, mana=10, max_mana=10)


def stream_for(turn: int = 0) -> RandomStream:
    return RandomStream.derive("policy", "room-1", "turn", turn)


def test_every_role_has_a_policy():
    assert set(ROLE_POLICIES) == set(Role)


def test_attacker_targets_a_living_enemy(warrior, make_combatant):
    dead = make_combatant("dead", side=Side.MONSTER, hp=0, max_hp=5)
    alive = make_combatant("alive", side=Side.MONSTER)
    session = create_session([warrior], [dead, alive], "room-1", seed="s")
    for turn in range(10):
        action = choose_action(warrior, session, DEFAULT_WEAPONS[Role.WARRIOR], stream_for(turn))
        assert action.kind is ActionKind.ATTACK
        assert action.target_id == "alive"
        assert action.weapon == DEFAULT_WEAPONS[Role.WARRIOR]


def test_monster_targets_party(goblin, warrior):
    session = create_session([warrior], [goblin], "room-1", seed="s")
    action = choose_action(goblin, session, DEFAULT_WEAPONS[Role.MONSTER], stream_for())
    assert action.target_id == "warrior"


def test_no_action_without_living_enemy(warrior, goblin):
    session = create_session([warrior], [goblin.with_hp(0)], "room-1", seed="s")
    assert choose_action(warrior, session, DEFAULT_WEAPONS[Role.WARRIOR], stream_for()) is None


def test_healer_heals_most_wounded_ally(cleric, make_combatant, goblin):
    tank = make_combatant("tank", hp=4, max_hp=12)
    scout = make_combatant("scout", role=Role.ROGUE, hp=3, max_hp=10)
    twin = make_combatant("twin", role=Role.ROGUE, hp=3, max_hp=10)
    session = create_session([cleric, tank, scout, twin], [goblin], "room-1", seed="s")
    config = CombatConfig(heal_ratio=1.0)
    action = choose_action(cleric, session, DEFAULT_WEAPONS[Role.CLERIC], stream_for(), config)
    assert action.kind is ActionKind.HEAL
    # Lowest hp wins, roster order breaks the tie.
    assert action.target_id == "scout"
    assert action.weapon == CLERIC_HEAL


def test_healer_attacks_when_draw_fails(cleric, make_combatant, goblin):
    tank = make_combatant("tank", hp=4, max_hp=12)
    session = create_session([cleric, tank], [goblin], "room-1", seed="s")
    config = CombatConfig(heal_ratio=0.0)
    action = choose_action(cleric, session, DEFAULT_WEAPONS[Role.CLERIC], stream_for(), config)
    assert action.kind is ActionKind.ATTACK
    assert action.target_id == "goblin"


def test_healer_without_mana_attacks(cleric, make_combatant, goblin):
    tank = make_combatant("tank", hp=4, max_hp=12)
    session = create_session([cleric.with_mana(4), tank], [goblin], "room-1", seed="s")
    config = CombatConfig(heal_ratio=1.0)
    action = choose_action(
        session.get_combatant("cleric"),
        session,
        DEFAULT_WEAPONS[Role.CLERIC],
        stream_for(),
        config,
    )
    assert action.kind is ActionKind.ATTACK


def test_healer_does_not_heal_itself(cleric, warrior, goblin):
    session = create_session([cleric.with_hp(2), warrior], [goblin], "room-1", seed="s")
    stream = stream_for()
    action = choose_action(
        session.get_combatant("cleric"),
        session,
        DEFAULT_WEAPONS[Role.CLERIC],
        stream,
        CombatConfig(heal_ratio=1.0),
    )
    assert action.kind is ActionKind.ATTACK
    # Nobody else is wounded, so only the target choice was drawn.
    assert stream.draws == 1


def test_healing_disallowed_turns_healer_into_attacker(cleric, make_combatant, goblin):
    tank = make_combatant("tank", hp=4, max_hp=12)
    session = create_session([cleric, tank], [goblin], "room-1", seed="s")
    action = choose_action(
        cleric,
        session,
        DEFAULT_WEAPONS[Role.CLERIC],
        stream_for(),
        CombatConfig(heal_ratio=1.0),
        allow_heal=False,
    )
    assert action.kind is ActionKind.ATTACK


def test_caster_uses_special_attack(mage, goblin):
    session = create_session([mage], [goblin], "room-1", seed="s")
    config = CombatConfig(special_ratio=1.0)
    action = choose_action(mage, session, DEFAULT_WEAPONS[Role.MAGE], stream_for(), config)
    assert action.kind is ActionKind.SPECIAL_ATTACK
    assert action.weapon == MAGIC_MISSILE
    assert action.target_id == "goblin"


def test_caster_without_mana_attacks_without_drawing(mage, goblin):
    session = create_session([mage.with_mana(2)], [goblin], "room-1", seed="s")
    stream = stream_for()
    action = choose_action(
        session.get_combatant("mage"),
        session,
        DEFAULT_WEAPONS[Role.MAGE],
        stream,
        CombatConfig(special_ratio=1.0),
    )
    assert action.kind is ActionKind.ATTACK
    assert action.weapon == DEFAULT_WEAPONS[Role.MAGE]
    assert stream.draws == 1


def test_caster_attacks_when_draw_fails(mage, goblin):
    session = create_session([mage], [goblin], "room-1", seed="s")
    config = CombatConfig(special_ratio=0.0)
    action = choose_action(mage, session, DEFAULT_WEAPONS[Role.MAGE], stream_for(), config)
    assert action.kind is ActionKind.ATTACK


def test_scripted_action_is_used_verbatim(mage, goblin, make_combatant):
    orc = make_combatant("orc", side=Side.MONSTER, hp=15)
    session = create_session([mage], [goblin, orc], "room-1", seed="s")
    config = CombatConfig(
        special_ratio=0.0,
        scripted_actions=[
            ScriptedAction(
                turn_number=2,
                actor_id="mage",
                kind=ActionKind.SPECIAL_ATTACK,
                target_id="orc",
            )
        ],
    )
    action = choose_action(mage, session, DEFAULT_WEAPONS[Role.MAGE], stream_for(), config, turn_number=2)
    assert action.kind is ActionKind.SPECIAL_ATTACK
    assert action.target_id == "orc"
    assert action.weapon == MAGIC_MISSILE

    # Other turns and bonus rounds fall back to the heuristic.
    other = choose_action(mage, session, DEFAULT_WEAPONS[Role.MAGE], stream_for(), config, turn_number=3)
    assert other.kind is ActionKind.ATTACK
    bonus = choose_action(mage, session, DEFAULT_WEAPONS[Role.MAGE], stream_for(), config)
    assert bonus.kind is ActionKind.ATTACK


def test_scripted_action_with_dead_target_falls_back(warrior, goblin, make_combatant):
    orc = make_combatant("orc", side=Side.MONSTER, hp=0, max_hp=15)
    session = create_session([warrior], [goblin, orc], "room-1", seed="s")
    config = CombatConfig(
        scripted_actions=[
            ScriptedAction(turn_number=1, actor_id="warrior", kind=ActionKind.ATTACK, target_id="orc")
        ],
    )
    action = choose_action(
        warrior, session, DEFAULT_WEAPONS[Role.WARRIOR], stream_for(), config, turn_number=1
    )
    assert action.target_id == "goblin"


def test_choice_is_reproducible(warrior, make_combatant):
    monsters = [make_combatant(f"m{i}", side=Side.MONSTER) for i in range(5)]
    session = create_session([warrior], monsters, "room-1", seed="s")
    weapon = DEFAULT_WEAPONS[Role.WARRIOR]
    targets = [choose_action(warrior, session, weapon, stream_for(t)).target_id for t in range(10)]
    again = [choose_action(warrior, session, weapon, stream_for(t)).target_id for t in range(10)]
    assert targets == again
