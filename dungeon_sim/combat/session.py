"""
Session, turn and result data of a combat.

A CombatSession is a snapshot: every turn produces a new one through
model_copy(update=...), and the previous snapshot is never touched. Lists held
by a snapshot are always replaced, never appended to in place.
"""

import uuid
from datetime import datetime
from typing import Annotated, Any, Literal

from pydantic import BaseModel, Field

from dungeon_sim.combat.config import CombatConfig
from dungeon_sim.combat.turn_order import determine_turn_order
from dungeon_sim.core.constants import ActionKind, CombatStatus, Side, TurnPhase
from dungeon_sim.core.error_handling import CombatIncident
from dungeon_sim.core.rng import RandomStream, new_session_seed
from dungeon_sim.entities.combatant import Combatant
from dungeon_sim.entities.records import AdventurerRecord
from dungeon_sim.items.weapon import Weapon


# =============================================================================
# Actions and results
# =============================================================================


class CombatAction(BaseModel):
    """What a combatant does on its turn. Built fresh every turn."""

    actor_id: str = Field(description="Id of the acting combatant.")
    kind: ActionKind = Field(description="The kind of action.")
    target_id: str = Field(description="Id of the targeted combatant.")
    weapon: Weapon = Field(description="The weapon or spell used.")


class AttackResult(BaseModel):
    """Outcome of an attack or a special attack."""

    result_type: Literal["attack"] = "attack"
    hit: bool = Field(description="Whether the attack landed.")
    roll: int | None = Field(default=None, description="Natural d20 roll, None for auto-hits.")
    total: int | None = Field(default=None, description="Attack total, None for auto-hits.")
    target_ac: int = Field(description="Armor class of the target.")
    damage: int = Field(default=0, description="Damage dealt.")
    damage_rolls: list[int] = Field(default_factory=list, description="Individual damage dice.")
    critical: bool = Field(default=False, description="Whether the roll was a natural 20.")
    auto_hit: bool = Field(default=False, description="Whether the attack skipped the d20.")
    target_hp_before: int = Field(description="Target hit points before the attack.")
    target_hp_after: int = Field(description="Target hit points after the attack.")
    target_max_hp: int = Field(description="Target maximum hit points.")
    stat_modifier: int = Field(default=0, description="Ability modifier applied.")
    proficiency: int = Field(default=0, description="Proficiency bonus applied.")
    weapon_modifier: int = Field(default=0, description="Weapon attack modifier applied.")
    mana_spent: int = Field(default=0, description="Mana spent by the attacker.")


class HealResult(BaseModel):
    """Outcome of a heal."""

    result_type: Literal["heal"] = "heal"
    amount: int = Field(description="Rolled healing amount.")
    heal_rolls: list[int] = Field(default_factory=list, description="Individual healing dice.")
    target_hp_before: int = Field(description="Target hit points before the heal.")
    target_hp_after: int = Field(description="Target hit points after the heal.")
    target_max_hp: int = Field(description="Target maximum hit points.")
    mana_cost: int = Field(default=0, description="Mana spent by the caster.")
    caster_mana_after: int = Field(default=0, description="Caster mana after the heal.")


class SkipResult(BaseModel):
    """A turn that was converted into a no-op."""

    result_type: Literal["skip"] = "skip"
    reason: str = Field(description="Why the turn was skipped.")
    mana_required: int = Field(default=0, description="Mana the action needed.")
    mana_available: int = Field(default=0, description="Mana the actor had.")


TurnResult = Annotated[
    AttackResult | HealResult | SkipResult,
    Field(discriminator="result_type"),
]


class TurnRecord(BaseModel):
    """One entry of the combat log."""

    turn_number: int = Field(description="1-based position in the log.")
    phase: TurnPhase = Field(description="Which part of the encounter produced it.")
    actor_id: str = Field(description="Id of the acting combatant.")
    actor_name: str = Field(description="Name of the acting combatant.")
    target_id: str = Field(description="Id of the targeted combatant.")
    target_name: str = Field(description="Name of the targeted combatant.")
    action: CombatAction = Field(description="The action that was taken.")
    result: TurnResult = Field(description="What happened.")


# =============================================================================
# Session
# =============================================================================


class CombatSession(BaseModel):
    """Snapshot of an ongoing combat."""

    combat_id: str = Field(description="Unique identifier of the combat.")
    room_id: str = Field(description="Room the combat takes place in.")
    combatants: list[Combatant] = Field(description="Every participant, in roster order.")
    turn_order: list[str] = Field(description="Initiative ordering, as ids.")
    current_turn: int = Field(default=0, description="Cursor into the alive view.")
    turn_count: int = Field(default=0, description="Main-loop iterations performed.")
    turns: list[TurnRecord] = Field(default_factory=list, description="The combat log.")
    is_ambush: bool = Field(default=False, description="Monsters get a bonus round.")
    ambush_completed: bool = Field(default=False, description="The ambush round already ran.")
    is_surprise: bool = Field(default=False, description="The party gets a bonus round.")
    surprise_completed: bool = Field(default=False, description="The surprise round already ran.")
    status: CombatStatus = Field(default=CombatStatus.PENDING, description="State machine state.")
    seed: str = Field(description="Seed all randomness is derived from.")
    started_at: datetime | None = Field(default=None, description="When the combat started.")
    ended_at: datetime | None = Field(default=None, description="When the combat ended.")

    def model_post_init(self, _: Any) -> None:
        if self.is_ambush and self.is_surprise:
            raise ValueError("A combat cannot be both an ambush and a surprise")

    # ============================================================================
    # LOOKUPS
    # ============================================================================

    def get_combatant(self, combatant_id: str) -> Combatant | None:
        for combatant in self.combatants:
            if combatant.id == combatant_id:
                return combatant
        return None

    def get_alive(self, side: Side | None = None) -> list[Combatant]:
        """
        Returns the living combatants, in roster order.

        Args:
            side (Side | None): Restrict to one side, or None for both.

        Returns:
            list[Combatant]: The living combatants.

        """
        return [
            c
            for c in self.combatants
            if c.is_alive() and (side is None or c.side is side)
        ]

    def get_alive_opponents(self, actor: Combatant) -> list[Combatant]:
        return [c for c in self.get_alive() if c.side is not actor.side]

    def get_alive_allies(self, actor: Combatant) -> list[Combatant]:
        """Returns the living combatants on the actor's side, the actor excluded."""
        return [
            c for c in self.get_alive() if c.side is actor.side and c.id != actor.id
        ]

    def stream(self, phase: str, number: int) -> RandomStream:
        """
        Derives the random stream of one step of the combat.

        Args:
            phase (str): The phase label, e.g. "turn" or "ambush".
            number (int): Turn count or bonus-round index.

        Returns:
            RandomStream: The derived stream.

        """
        return RandomStream.derive(self.seed, self.room_id, phase, number)

    @property
    def next_turn_number(self) -> int:
        return len(self.turns) + 1

    # ============================================================================
    # COPY-ON-WRITE UPDATES
    # ============================================================================

    def with_combatants(self, *updated: Combatant, **changes: Any) -> "CombatSession":
        """
        Returns a new snapshot with some combatants replaced.

        Args:
            *updated (Combatant): New versions of existing combatants.
            **changes (Any): Other fields to change on the new snapshot.

        Returns:
            CombatSession: The new snapshot.

        """
        replacements = {c.id: c for c in updated}
        unknown = set(replacements) - {c.id for c in self.combatants}
        if unknown:
            raise KeyError(f"Unknown combatants: {sorted(unknown)}")
        combatants = [replacements.get(c.id, c) for c in self.combatants]
        return self.model_copy(update={"combatants": combatants, **changes})

    def with_turn(self, record: TurnRecord, *updated: Combatant, **changes: Any) -> "CombatSession":
        """Returns a new snapshot with a record appended to the log."""
        return self.with_combatants(*updated, turns=[*self.turns, record], **changes)


def create_session(
    party: list[Combatant],
    monsters: list[Combatant],
    room_id: str,
    is_ambush: bool = False,
    is_surprise: bool = False,
    seed: str | None = None,
    config: CombatConfig | None = None,
    combat_id: str | None = None,
) -> CombatSession:
    """
    Creates the session of a new encounter.

    Args:
        party (list[Combatant]):
            The party members, in roster order.
        monsters (list[Combatant]):
            The monsters, in roster order.
        room_id (str):
            The room the encounter takes place in.
        is_ambush (bool):
            Whether the monsters get a bonus round.
        is_surprise (bool):
            Whether the party gets a bonus round.
        seed (str | None):
            Seed of all randomness; a fresh one is generated when missing.
        config (CombatConfig | None):
            Combat configuration, used for the initiative tie-break.
        combat_id (str | None):
            Explicit combat id; a uuid is generated when missing.

    Returns:
        CombatSession:
            The session, in the PENDING state.

    Raises:
        ValueError:
            If both bonus rounds are requested, a side is empty or ids repeat.

    """
    if is_ambush and is_surprise:
        raise ValueError("A combat cannot be both an ambush and a surprise")
    if not party:
        raise ValueError("A combat needs at least one party member")
    if not monsters:
        raise ValueError("A combat needs at least one monster")
    if any(c.side is not Side.PARTY for c in party):
        raise ValueError("Every party member must be on the party side")
    if any(c.side is not Side.MONSTER for c in monsters):
        raise ValueError("Every monster must be on the monster side")
    combatants = [*party, *monsters]
    ids = [c.id for c in combatants]
    if len(set(ids)) != len(ids):
        raise ValueError(f"Combatant ids must be unique, got {ids}")

    config = config or CombatConfig()
    seed = seed if seed is not None else new_session_seed()
    turn_order = determine_turn_order(
        combatants,
        config.tie_break,
        RandomStream.derive(seed, room_id, "initiative"),
    )
    return CombatSession(
        combat_id=combat_id or str(uuid.uuid4()),
        room_id=room_id,
        combatants=combatants,
        turn_order=turn_order,
        is_ambush=is_ambush,
        is_surprise=is_surprise,
        seed=seed,
    )


# =============================================================================
# Result
# =============================================================================


class CombatResult(BaseModel):
    """Summary of a finished combat."""

    combat_id: str = Field(description="Identifier of the combat.")
    room_id: str = Field(description="Room the combat took place in.")
    seed: str = Field(description="Seed the combat was played with.")
    status: CombatStatus = Field(description="Terminal status.")
    turns: list[TurnRecord] = Field(description="The full combat log.")
    total_turns: int = Field(description="Number of records in the log.")
    main_turns: int = Field(description="Main-loop iterations performed.")
    party_alive: int = Field(description="Surviving party members.")
    party_total: int = Field(description="Party members at the start.")
    monsters_alive: int = Field(description="Surviving monsters.")
    monsters_total: int = Field(description="Monsters at the start.")
    xp_awarded: int = Field(description="Experience earned, only on victory.")
    duration_ms: int = Field(description="Wall-clock duration of the combat.")
    final_combatants: list[Combatant] = Field(description="Final state of every combatant.")
    stalemate: bool = Field(default=False, description="Whether the turn ceiling forced the end.")
    incidents: list[CombatIncident] = Field(
        default_factory=list,
        description="Problems recovered from during the combat.",
    )

    @property
    def party_states(self) -> list[Combatant]:
        """Final state of the party members, to be written back to their records."""
        return [c for c in self.final_combatants if c.side is Side.PARTY]

    @property
    def is_victory(self) -> bool:
        return self.status is CombatStatus.VICTORY


def apply_combat_result(
    records: list[AdventurerRecord],
    result: CombatResult,
) -> list[AdventurerRecord]:
    """
    Writes final hit points and mana back onto copies of adventurer records.

    Records without a matching party combatant are returned unchanged.

    Args:
        records (list[AdventurerRecord]): The records the party was built from.
        result (CombatResult): The finished combat.

    Returns:
        list[AdventurerRecord]: Updated copies, in the same order.

    """
    states = {c.record_id: c for c in result.party_states if c.record_id is not None}
    updated: list[AdventurerRecord] = []
    for record in records:
        state = states.get(record.token_id)
        if state is None:
            updated.append(record)
            continue
        stats = record.stats.model_copy(update={"health": state.hp, "mana": state.mana})
        updated.append(record.model_copy(update={"stats": stats}))
    return updated
