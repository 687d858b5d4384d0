"""
Combat orchestrator.

Owns the state machine of a combat: PENDING -> ACTIVE -> VICTORY | DEFEAT.
It plays the bonus round, then the main turn loop, checks the status after
every turn and assembles the final CombatResult. Nothing raises out of
run_combat(): failures become incidents and, at worst, a forced defeat.
"""

from collections.abc import Callable
from datetime import datetime, timezone

from dungeon_sim.combat.ambush import run_ambush_round, run_surprise_round
from dungeon_sim.combat.config import CombatConfig
from dungeon_sim.combat.execution import perform_action
from dungeon_sim.combat.policy import choose_action
from dungeon_sim.combat.report import describe_turn
from dungeon_sim.combat.session import CombatResult, CombatSession, create_session
from dungeon_sim.combat.turn_order import alive_view, current_entity, next_cursor
from dungeon_sim.core.constants import CombatStatus, Side, TurnPhase
from dungeon_sim.core.error_handling import IncidentKind, IncidentLog
from dungeon_sim.core.logging import get_logger
from dungeon_sim.core.utils import cprint, crule
from dungeon_sim.entities.combatant import combatant_from_adventurer, combatant_from_monster
from dungeon_sim.entities.records import AdventurerRecord, MonsterInstance
from dungeon_sim.items.inventory import WeaponProvider, resolve_weapon

logger = get_logger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def check_combat_status(session: CombatSession) -> CombatStatus:
    """
    Evaluates the status of a session from the living combatants.

    Args:
        session (CombatSession): The snapshot to evaluate.

    Returns:
        CombatStatus: DEFEAT if no party member is alive, VICTORY if no
        monster is alive, ACTIVE otherwise.

    """
    if not session.get_alive(Side.PARTY):
        return CombatStatus.DEFEAT
    if not session.get_alive(Side.MONSTER):
        return CombatStatus.VICTORY
    return CombatStatus.ACTIVE


class CombatManager:
    """Runs one combat session to completion.

    The manager owns the session for the duration of run_combat(). Every turn
    replaces self.session with a new snapshot; snapshots are never mutated.
    """

    def __init__(
        self,
        session: CombatSession,
        config: CombatConfig | None = None,
        weapon_provider: WeaponProvider | None = None,
        verbose: bool = False,
        clock: Callable[[], datetime] = _utc_now,
    ):
        """Initialize the CombatManager.

        Args:
            session (CombatSession): The session to run.
            config (CombatConfig | None): Combat configuration.
            weapon_provider (WeaponProvider | None): The inventory collaborator.
            verbose (bool): Whether to narrate every turn on the console.
            clock (Callable[[], datetime]): Source of the start/end timestamps.

        """
        self.session: CombatSession = session
        self.config: CombatConfig = config or CombatConfig()
        self.weapon_provider: WeaponProvider | None = weapon_provider
        self.verbose: bool = verbose
        self.clock: Callable[[], datetime] = clock
        self.incidents: IncidentLog = IncidentLog()
        self.stalemate: bool = False

    @property
    def status(self) -> CombatStatus:
        return self.session.status

    def is_combat_over(self) -> bool:
        return self.session.status.is_terminal

    def _narrate(self, session: CombatSession, previous_turns: int) -> None:
        if self.verbose:
            for record in session.turns[previous_turns:]:
                cprint(describe_turn(record))

    def _refresh_status(self) -> None:
        if self.session.status is CombatStatus.ACTIVE:
            status = check_combat_status(self.session)
            if status is not CombatStatus.ACTIVE:
                self.session = self.session.model_copy(update={"status": status})

    def _force_defeat(
        self,
        kind: IncidentKind,
        message: str,
        exception: Exception | None = None,
    ) -> None:
        self.incidents.record(
            kind,
            message,
            {"combat_id": self.session.combat_id, "turn_count": self.session.turn_count},
            exception=exception,
            turn_number=self.session.turn_count + 1 if kind is IncidentKind.INTERNAL else None,
        )
        self.session = self.session.model_copy(update={"status": CombatStatus.DEFEAT})

    async def run_bonus_rounds(self) -> None:
        """Plays the ambush or surprise round, if flagged and not yet played."""
        before = len(self.session.turns)
        if self.session.is_ambush and not self.session.ambush_completed:
            if self.verbose:
                crule("👹 Ambush!", style="bold red")
            self.session = run_ambush_round(
                self.session,
                self.incidents,
                self.config.monster_weapon,
            )
            self._narrate(self.session, before)
            self._refresh_status()

        before = len(self.session.turns)
        if (
            self.session.status is CombatStatus.ACTIVE
            and self.session.is_surprise
            and not self.session.surprise_completed
        ):
            if self.verbose:
                crule("👤 Surprise round!", style="bold blue")
            self.session = await run_surprise_round(
                self.session,
                self.config,
                self.weapon_provider,
                self.incidents,
            )
            self._narrate(self.session, before)
            self._refresh_status()

    async def execute_turn(self) -> None:
        """Plays one main-loop turn and replaces the session snapshot."""
        session = self.session
        turn_number = session.turn_count + 1

        alive = alive_view(session.turn_order, session.combatants)
        actor_id = current_entity(alive, session.current_turn)
        actor = session.get_combatant(actor_id)
        assert actor is not None, f"Unknown combatant '{actor_id}' in turn order"

        # The lookup completes before the stream of the turn is derived.
        fallback = self.config.monster_weapon if actor.side is Side.MONSTER else None
        weapon = await resolve_weapon(
            self.weapon_provider,
            actor,
            self.incidents,
            turn_number,
            fallback,
        )
        stream = session.stream("turn", session.turn_count)

        action = choose_action(actor, session, weapon, stream, self.config, turn_number)
        if action is None:
            logger.debug("%s has no living enemy, ending combat", actor.name)
            self.session = session.model_copy(
                update={
                    "turn_count": turn_number,
                    "status": check_combat_status(session),
                }
            )
            return

        updated = perform_action(
            session,
            action,
            stream,
            TurnPhase.MAIN,
            self.incidents,
            turn_number,
        )
        self._narrate(updated, len(session.turns))
        self.session = updated.model_copy(
            update={
                "current_turn": next_cursor(updated.turn_order, updated.combatants, actor_id),
                "turn_count": turn_number,
                "status": check_combat_status(updated),
            }
        )

    async def run_combat(self) -> CombatResult:
        """
        Runs the combat to a terminal state.

        Returns:
            CombatResult: The result; this method never raises.

        """
        if self.session.status.is_terminal:
            return self.final_report()

        self.session = self.session.model_copy(
            update={
                "status": CombatStatus.ACTIVE,
                "started_at": self.session.started_at or self.clock(),
            }
        )
        logger.debug(
            "Combat %s started in room %s with seed %s",
            self.session.combat_id,
            self.session.room_id,
            self.session.seed,
        )

        try:
            await self.run_bonus_rounds()
            self._refresh_status()
        except Exception as e:
            self._force_defeat(IncidentKind.INTERNAL, "Unexpected error during the bonus round", e)

        while (
            self.session.status is CombatStatus.ACTIVE
            and self.session.turn_count < self.config.max_turns
        ):
            snapshot = self.session
            try:
                await self.execute_turn()
            except Exception as e:
                # Keep the untouched snapshot of the failed turn.
                self.session = snapshot
                self._force_defeat(IncidentKind.INTERNAL, "Unexpected error during a turn", e)

        if self.session.status is CombatStatus.ACTIVE:
            self.stalemate = True
            self._force_defeat(
                IncidentKind.TERMINATION,
                f"Turn ceiling of {self.config.max_turns} reached, forcing defeat",
            )

        self.session = self.session.model_copy(update={"ended_at": self.clock()})
        logger.debug(
            "Combat %s ended with %s after %d turns",
            self.session.combat_id,
            self.session.status,
            self.session.turn_count,
        )
        return self.final_report()

    def final_report(self) -> CombatResult:
        """
        Assembles the result of the combat from the current snapshot.

        Returns:
            CombatResult: The summary of the combat.

        """
        session = self.session
        party = [c for c in session.combatants if c.side is Side.PARTY]
        monsters = [c for c in session.combatants if c.side is Side.MONSTER]

        xp_awarded = 0
        if session.status is CombatStatus.VICTORY:
            xp_awarded = sum(m.xp for m in monsters if not m.is_alive())

        duration_ms = 0
        if session.started_at is not None and session.ended_at is not None:
            duration_ms = int((session.ended_at - session.started_at).total_seconds() * 1000)

        return CombatResult(
            combat_id=session.combat_id,
            room_id=session.room_id,
            seed=session.seed,
            status=session.status,
            turns=list(session.turns),
            total_turns=len(session.turns),
            main_turns=session.turn_count,
            party_alive=sum(1 for c in party if c.is_alive()),
            party_total=len(party),
            monsters_alive=sum(1 for c in monsters if c.is_alive()),
            monsters_total=len(monsters),
            xp_awarded=xp_awarded,
            duration_ms=max(0, duration_ms),
            final_combatants=list(session.combatants),
            stalemate=self.stalemate,
            incidents=list(self.incidents.incidents),
        )


async def run_combat(
    session: CombatSession,
    config: CombatConfig | None = None,
    weapon_provider: WeaponProvider | None = None,
    verbose: bool = False,
) -> CombatResult:
    """
    Runs a combat session to completion.

    Args:
        session (CombatSession):
            The session, as built by create_session().
        config (CombatConfig | None):
            Combat configuration.
        weapon_provider (WeaponProvider | None):
            The inventory collaborator; role defaults are used when missing.
        verbose (bool):
            Whether to narrate every turn on the console.

    Returns:
        CombatResult:
            The result; this function never raises.

    """
    manager = CombatManager(session, config, weapon_provider, verbose)
    return await manager.run_combat()


async def quick_combat(
    party: list[AdventurerRecord],
    monsters: list[MonsterInstance],
    room_id: str = "room-1",
    is_ambush: bool = False,
    is_surprise: bool = False,
    seed: str | None = None,
    config: CombatConfig | None = None,
    weapon_provider: WeaponProvider | None = None,
    verbose: bool = False,
) -> CombatResult:
    """
    Builds a session from external records and runs it.

    Args:
        party (list[AdventurerRecord]):
            The party, as stored by the character-record service.
        monsters (list[MonsterInstance]):
            The monsters placed in the room.
        room_id (str):
            The room the encounter takes place in.
        is_ambush (bool):
            Whether the monsters get a bonus round.
        is_surprise (bool):
            Whether the party gets a bonus round.
        seed (str | None):
            Seed of all randomness.
        config (CombatConfig | None):
            Combat configuration.
        weapon_provider (WeaponProvider | None):
            The inventory collaborator.
        verbose (bool):
            Whether to narrate every turn on the console.

    Returns:
        CombatResult:
            The result of the encounter.

    Raises:
        ValueError:
            If the session cannot be built (see create_session()).

    """
    config = config or CombatConfig()
    session = create_session(
        [combatant_from_adventurer(record) for record in party],
        [combatant_from_monster(monster) for monster in monsters],
        room_id,
        is_ambush=is_ambush,
        is_surprise=is_surprise,
        seed=seed,
        config=config,
    )
    return await run_combat(session, config, weapon_provider, verbose)
