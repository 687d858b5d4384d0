"""
Tests for the combat orchestrator and its state machine.
"""

from datetime import datetime, timedelta, timezone

import pytest

from dungeon_sim.combat import combat_manager
from dungeon_sim.combat.combat_manager import (
    CombatManager,
    check_combat_status,
    quick_combat,
    run_combat,
)
from dungeon_sim.combat.config import CombatConfig, ScriptedAction
from dungeon_sim.combat.session import AttackResult, HealResult, SkipResult, create_session
from dungeon_sim.core.constants import (
    ActionKind,
    CombatStatus,
    Role,
    Side,
    TurnPhase,
    WeaponCategory,
)
from dungeon_sim.core.error_handling import IncidentKind
from dungeon_sim.entities.combatant import combatant_from_adventurer, combatant_from_monster
from dungeon_sim.entities.records import (
    AdventurerRecord,
    AdventurerStats,
    MonsterInstance,
    MonsterStatBlock,
)
from dungeon_sim.items.inventory import StaticWeaponProvider
from dungeon_sim.items.weapon import DEFAULT_WEAPONS, Weapon

FEATHER = Weapon(name="Feather", category=WeaponCategory.MELEE_STRENGTH, damage_dice="0")


class FailingProvider:
    async def get_equipped_weapon(self, combatant):
        raise TimeoutError("inventory service timed out")


@pytest.fixture
def party_records():
    return [
        AdventurerRecord(
            token_id="1",
            name="Brienne",
            role=Role.WARRIOR,
            stats=AdventurerStats(
                health=14, max_health=14, armor_class=16, strength=16, dexterity=12, proficiency_bonus=2
            ),
        ),
        AdventurerRecord(
            token_id="2",
            name="Tomas",
            role=Role.CLERIC,
            stats=AdventurerStats(
                health=11, max_health=11, mana=15, max_mana=15, armor_class=14, strength=12, proficiency_bonus=2
            ),
        ),
        AdventurerRecord(
            token_id="3",
            name="Ysolde",
            role=Role.MAGE,
            stats=AdventurerStats(
                health=8, max_health=8, mana=12, max_mana=12, armor_class=12, strength=8, dexterity=14
            ),
        ),
        AdventurerRecord(
            token_id="4",
            name="Wren",
            role=Role.ROGUE,
            stats=AdventurerStats(
                health=10, max_health=10, armor_class=14, dexterity=17, proficiency_bonus=2
            ),
        ),
    ]


@pytest.fixture
def monster_instances():
    goblin = MonsterStatBlock(name="Goblin", hp=7, ac=13, xp=50, strength=8, dexterity=14)
    hobgoblin = MonsterStatBlock(name="Hobgoblin", hp=11, ac=15, xp=100, strength=13, dexterity=12)
    return [
        MonsterInstance.from_stat_block("goblin-1", goblin),
        MonsterInstance.from_stat_block("goblin-2", goblin),
        MonsterInstance.from_stat_block("hobgoblin-1", hobgoblin),
    ]


def dump_turns(result):
    return [record.model_dump() for record in result.turns]


def test_check_combat_status(warrior, goblin):
    session = create_session([warrior], [goblin], "room-1", seed="s")
    assert check_combat_status(session) is CombatStatus.ACTIVE
    assert check_combat_status(session.with_combatants(goblin.with_hp(0))) is CombatStatus.VICTORY
    assert check_combat_status(session.with_combatants(warrior.with_hp(0))) is CombatStatus.DEFEAT


@pytest.mark.asyncio
async def test_same_seed_gives_identical_combat(warrior, goblin):
    """Warrior vs goblin with seed 's1', twice: identical damage turn by turn."""
    results = []
    for _ in range(2):
        session = create_session([warrior], [goblin], "room-1", seed="s1", combat_id="c-1")
        results.append(await run_combat(session))
    first, second = results
    assert dump_turns(first) == dump_turns(second)
    assert first.final_combatants == second.final_combatants
    assert first.status is second.status
    assert first.status.is_terminal
    damage = [r.result.damage for r in first.turns if isinstance(r.result, AttackResult)]
    assert damage == [r.result.damage for r in second.turns if isinstance(r.result, AttackResult)]


@pytest.mark.asyncio
async def test_different_seeds_can_differ(warrior, goblin):
    logs = set()
    for seed in ("a", "b", "c", "d", "e"):
        session = create_session([warrior], [goblin], "room-1", seed=seed, combat_id="c-1")
        result = await run_combat(session)
        logs.add(str(dump_turns(result)))
    assert len(logs) > 1


@pytest.mark.asyncio
async def test_ambush_attacks_land_before_main_loop(make_combatant):
    hero = make_combatant("hero", hp=10, ac=10)
    monsters = [
        make_combatant("m1", side=Side.MONSTER, strength=1),
        make_combatant("m2", side=Side.MONSTER, strength=1),
    ]
    session = create_session([hero], monsters, "room-1", is_ambush=True, seed="ambush")
    result = await run_combat(session)

    first, second = result.turns[:2]
    assert (first.actor_id, second.actor_id) == ("m1", "m2")
    assert first.phase is TurnPhase.AMBUSH and second.phase is TurnPhase.AMBUSH
    assert all(r.phase is TurnPhase.MAIN for r in result.turns[2:])
    assert first.result.target_hp_before == 10
    assert second.result.target_hp_before == first.result.target_hp_after
    expected_hp = max(0, 10 - first.result.damage - second.result.damage)
    assert second.result.target_hp_after == expected_hp

    # The main loop starts from the state left by both attacks.
    manager = CombatManager(session)
    await manager.run_bonus_rounds()
    assert manager.session.get_combatant("hero").hp == expected_hp
    assert manager.session.turn_count == 0


@pytest.mark.asyncio
async def test_mage_without_mana_skips_scripted_special(make_combatant, goblin):
    mage = make_combatant("mage", role=Role.MAGE, hp=8, mana=0, max_mana=10, dexterity=18)
    session = create_session([mage], [goblin], "room-1", seed="s3")
    config = CombatConfig(
        max_turns=1,
        scripted_actions=[
            ScriptedAction(
                turn_number=1,
                actor_id="mage",
                kind=ActionKind.SPECIAL_ATTACK,
                target_id="goblin",
            )
        ],
    )
    result = await run_combat(session, config)

    [record] = result.turns
    assert record.actor_id == "mage"
    assert record.action.kind is ActionKind.SPECIAL_ATTACK
    assert isinstance(record.result, SkipResult)
    assert record.result.reason == "insufficient_resource"
    final = {c.id: c for c in result.final_combatants}
    assert final["mage"].mana == 0
    assert final["goblin"].hp == goblin.max_hp
    assert result.incidents[0].kind is IncidentKind.RESOURCE


@pytest.mark.asyncio
async def test_zero_damage_combat_hits_the_ceiling(make_combatant):
    hero = make_combatant("hero", hp=10, strength=10)
    brute = make_combatant("brute", side=Side.MONSTER, hp=10, strength=10)
    session = create_session([hero], [brute], "room-1", seed="s4")
    config = CombatConfig(monster_weapon=FEATHER)
    provider = StaticWeaponProvider({"hero": FEATHER})

    result = await run_combat(session, config, provider)

    assert result.status is CombatStatus.DEFEAT
    assert result.stalemate
    assert result.main_turns == 1000
    assert result.total_turns == 1000
    assert result.party_alive == 1
    assert result.monsters_alive == 1
    assert result.xp_awarded == 0
    assert [i.kind for i in result.incidents] == [IncidentKind.TERMINATION]


@pytest.mark.asyncio
async def test_lower_ceiling_is_respected(make_combatant):
    hero = make_combatant("hero", hp=10)
    brute = make_combatant("brute", side=Side.MONSTER, hp=10)
    session = create_session([hero], [brute], "room-1", seed="ceiling")
    config = CombatConfig(max_turns=25, monster_weapon=FEATHER)
    result = await run_combat(session, config, StaticWeaponProvider({"hero": FEATHER}))
    assert result.main_turns == 25
    assert result.stalemate


@pytest.mark.asyncio
@pytest.mark.parametrize("seed", ["alpha", "beta", "gamma", "delta", "epsilon"])
async def test_full_party_invariants(party_records, monster_instances, seed):
    result = await quick_combat(party_records, monster_instances, seed=seed, is_ambush=(seed == "beta"))

    assert result.status in (CombatStatus.VICTORY, CombatStatus.DEFEAT)
    assert result.total_turns == len(result.turns)
    assert [r.turn_number for r in result.turns] == list(range(1, len(result.turns) + 1))
    for record in result.turns:
        outcome = record.result
        if isinstance(outcome, (AttackResult, HealResult)):
            assert 0 <= outcome.target_hp_after <= outcome.target_max_hp
        if isinstance(outcome, HealResult):
            assert 0 <= outcome.caster_mana_after
    for combatant in result.final_combatants:
        assert 0 <= combatant.hp <= combatant.max_hp
        assert 0 <= combatant.mana <= combatant.max_mana

    if not result.stalemate:
        # Exactly one side has been wiped out.
        assert (result.party_alive == 0) != (result.monsters_alive == 0)
    if result.status is CombatStatus.VICTORY:
        assert result.monsters_alive == 0
        assert result.xp_awarded == 200
    else:
        assert result.xp_awarded == 0


@pytest.mark.asyncio
async def test_full_party_is_reproducible(party_records, monster_instances):
    first = await quick_combat(party_records, monster_instances, seed="repeat", is_surprise=True)
    second = await quick_combat(party_records, monster_instances, seed="repeat", is_surprise=True)
    assert dump_turns(first) == dump_turns(second)
    assert first.final_combatants == second.final_combatants


@pytest.mark.asyncio
async def test_lookup_failures_do_not_change_the_outcome(party_records, monster_instances):
    quiet = await quick_combat(party_records, monster_instances, seed="lookup")
    noisy = await quick_combat(
        party_records,
        monster_instances,
        seed="lookup",
        weapon_provider=FailingProvider(),
    )
    assert dump_turns(quiet) == dump_turns(noisy)
    assert noisy.incidents
    assert all(i.kind is IncidentKind.INTEGRATION for i in noisy.incidents)


@pytest.mark.asyncio
async def test_unexpected_error_forces_defeat(warrior, goblin, monkeypatch):
    def explode(*args, **kwargs):
        raise RuntimeError("boom")

    monkeypatch.setattr(combat_manager, "perform_action", explode)
    session = create_session([warrior], [goblin], "room-1", seed="boom")
    result = await run_combat(session)

    assert result.status is CombatStatus.DEFEAT
    assert not result.stalemate
    assert result.turns == []
    [incident] = result.incidents
    assert incident.kind is IncidentKind.INTERNAL
    assert "RuntimeError" in incident.context["error"]
    # The snapshot of the failed turn is kept untouched.
    assert result.final_combatants == session.combatants


@pytest.mark.asyncio
async def test_dead_party_is_an_immediate_defeat(warrior, goblin):
    session = create_session([warrior.with_hp(0)], [goblin], "room-1", seed="s")
    result = await run_combat(session)
    assert result.status is CombatStatus.DEFEAT
    assert result.turns == []
    assert not result.stalemate


@pytest.mark.asyncio
async def test_terminal_session_is_not_replayed(warrior, goblin):
    session = create_session([warrior], [goblin], "room-1", seed="s")
    finished = session.model_copy(update={"status": CombatStatus.VICTORY})
    result = await run_combat(finished)
    assert result.status is CombatStatus.VICTORY
    assert result.turns == []


@pytest.mark.asyncio
async def test_status_never_reverts(warrior, goblin):
    session = create_session([warrior], [goblin], "room-1", seed="status")
    manager = CombatManager(session)
    result = await manager.run_combat()
    assert manager.is_combat_over()
    assert manager.status is result.status
    assert manager.session.status.is_terminal


@pytest.mark.asyncio
async def test_duration_comes_from_the_clock(warrior, goblin):
    start = datetime(2024, 1, 1, tzinfo=timezone.utc)
    times = iter([start, start + timedelta(seconds=75, milliseconds=500)])
    session = create_session([warrior], [goblin], "room-1", seed="clock")
    manager = CombatManager(session, clock=lambda: next(times))
    result = await manager.run_combat()
    assert result.duration_ms == 75500
    assert manager.session.started_at == start


@pytest.mark.asyncio
async def test_victory_awards_experience(make_combatant):
    hero = make_combatant("hero", hp=50, strength=18, dexterity=20)
    rats = [make_combatant(f"rat-{i}", side=Side.MONSTER, hp=1, ac=-100, xp=10) for i in range(3)]
    session = create_session([hero], rats, "room-1", seed="rats")
    result = await run_combat(session)
    assert result.status is CombatStatus.VICTORY
    assert result.xp_awarded == 30
    assert result.monsters_alive == 0
    assert result.party_alive == 1


@pytest.mark.asyncio
async def test_unusable_equipped_weapon_falls_back_to_default(make_combatant):
    hero = make_combatant("hero", hp=30, strength=18, dexterity=20, proficiency_bonus=4)
    rat = make_combatant("rat", side=Side.MONSTER, hp=1, ac=1, xp=10)
    bandage = Weapon(name="Bandage", category=WeaponCategory.HEAL, damage_dice="1d4")
    session = create_session([hero], [rat], "room-1", seed="bandage")

    result = await run_combat(session, weapon_provider=StaticWeaponProvider({"hero": bandage}))

    assert result.status is CombatStatus.VICTORY
    [record] = result.turns
    assert record.action.weapon == DEFAULT_WEAPONS[Role.WARRIOR]
    assert [i.kind for i in result.incidents] == [IncidentKind.INTEGRATION]


def assert_within_bounds(session):
    for combatant in session.combatants:
        assert 0 <= combatant.hp <= combatant.max_hp
        assert 0 <= combatant.mana <= combatant.max_mana


async def step_until_over(manager, max_turns=1000):
    """Plays the combat turn by turn, checking every snapshot in between."""
    manager.session = manager.session.model_copy(update={"status": CombatStatus.ACTIVE})
    await manager.run_bonus_rounds()
    assert_within_bounds(manager.session)
    while not manager.is_combat_over() and manager.session.turn_count < max_turns:
        before = manager.session
        await manager.execute_turn()
        after = manager.session
        assert_within_bounds(after)
        for record in after.turns[len(before.turns):]:
            if isinstance(record.result, SkipResult):
                actor_before = before.get_combatant(record.actor_id)
                assert after.get_combatant(record.actor_id).mana == actor_before.mana
    return manager.session


@pytest.mark.asyncio
@pytest.mark.parametrize("seed", ["one", "two", "three", "four", "five", "six"])
async def test_bounds_hold_after_every_turn(party_records, monster_instances, seed):
    session = create_session(
        [combatant_from_adventurer(record) for record in party_records],
        [combatant_from_monster(monster) for monster in monster_instances],
        "room-1",
        is_ambush=seed in ("two", "five"),
        is_surprise=seed == "three",
        seed=seed,
    )
    final = await step_until_over(CombatManager(session))
    assert final.status.is_terminal


@pytest.mark.asyncio
async def test_skipped_turns_leave_mana_untouched(make_combatant):
    # Only the first scripted special is affordable, the others are skipped.
    mage = make_combatant("mage", role=Role.MAGE, mana=4, max_mana=10, dexterity=18)
    ogre = make_combatant("ogre", side=Side.MONSTER, hp=200)
    session = create_session([mage], [ogre], "room-1", seed="skips")
    config = CombatConfig(
        max_turns=6,
        monster_weapon=FEATHER,
        scripted_actions=[
            ScriptedAction(
                turn_number=turn,
                actor_id="mage",
                kind=ActionKind.SPECIAL_ATTACK,
                target_id="ogre",
            )
            for turn in (1, 3, 5)
        ],
    )

    final = await step_until_over(CombatManager(session, config), max_turns=6)

    mage_turns = [r for r in final.turns if r.actor_id == "mage"]
    assert [type(r.result) for r in mage_turns] == [AttackResult, SkipResult, SkipResult]
    assert mage_turns[0].result.mana_spent == 3
    assert final.get_combatant("mage").mana == 1
