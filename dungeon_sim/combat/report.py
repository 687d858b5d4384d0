"""
Human readable reports of a finished combat.
"""

from pydantic import BaseModel, Field
from rich.table import Table

from dungeon_sim.combat.session import (
    AttackResult,
    CombatResult,
    HealResult,
    SkipResult,
    TurnRecord,
)
from dungeon_sim.core.constants import CombatStatus, Side
from dungeon_sim.core.utils import cprint, crule


class SideStatus(BaseModel):
    """Head count of one side."""

    total: int = Field(description="Combatants at the start.")
    alive: int = Field(description="Combatants still standing.")
    defeated: int = Field(description="Combatants defeated.")


class TurnDetail(BaseModel):
    """One line of the turn-by-turn report."""

    turn_number: int
    phase: str
    entity_name: str
    action_type: str
    target_name: str
    result: str


class CombatReport(BaseModel):
    """Formatted summary of a combat result."""

    status: CombatStatus = Field(description="Terminal status.")
    summary: str = Field(description="One-line summary.")
    duration: str = Field(description="Duration, as 'Xm Ys' or 'Ys'.")
    turns: int = Field(description="Number of records in the log.")
    party_status: SideStatus = Field(description="Party head count.")
    monster_status: SideStatus = Field(description="Monster head count.")
    xp_awarded: int = Field(description="Experience earned.")
    stalemate: bool = Field(default=False, description="Whether the turn ceiling was hit.")
    turn_details: list[TurnDetail] = Field(default_factory=list, description="Per-turn lines.")


def format_duration(duration_ms: int) -> str:
    """
    Formats a duration in milliseconds as 'Xm Ys', or 'Ys' under a minute.

    Args:
        duration_ms (int): The duration in milliseconds.

    Returns:
        str: The formatted duration.

    """
    seconds = max(0, duration_ms) // 1000
    minutes = seconds // 60
    if minutes > 0:
        return f"{minutes}m {seconds % 60}s"
    return f"{seconds}s"


def describe_result(record: TurnRecord) -> str:
    """Returns the plain text outcome of a turn, e.g. 'Hit for 5 damage'."""
    result = record.result
    if isinstance(result, AttackResult):
        if not result.hit:
            return "Missed"
        text = f"Hit for {result.damage} damage"
        if result.critical:
            text += " (CRITICAL!)"
        return text
    if isinstance(result, HealResult):
        return f"Healed {result.amount} HP"
    return "Skipped"


def create_combat_report(result: CombatResult) -> CombatReport:
    """
    Builds the report of a combat result.

    Args:
        result (CombatResult): The finished combat.

    Returns:
        CombatReport: The formatted report.

    """
    summary = f"Combat {result.status.value.upper()}"
    summary += f" - {result.total_turns} turns"
    summary += f" - Party: {result.party_alive}/{result.party_total} alive"
    summary += f" - Monsters: {result.monsters_alive}/{result.monsters_total} remaining"
    if result.status is CombatStatus.VICTORY and result.xp_awarded:
        summary += f" - {result.xp_awarded} XP awarded"
    if result.stalemate:
        summary += " - stalemate"

    return CombatReport(
        status=result.status,
        summary=summary,
        duration=format_duration(result.duration_ms),
        turns=result.total_turns,
        party_status=SideStatus(
            total=result.party_total,
            alive=result.party_alive,
            defeated=result.party_total - result.party_alive,
        ),
        monster_status=SideStatus(
            total=result.monsters_total,
            alive=result.monsters_alive,
            defeated=result.monsters_total - result.monsters_alive,
        ),
        xp_awarded=result.xp_awarded,
        stalemate=result.stalemate,
        turn_details=[
            TurnDetail(
                turn_number=record.turn_number,
                phase=record.phase.value,
                entity_name=record.actor_name,
                action_type=record.action.kind.value,
                target_name=record.target_name,
                result=describe_result(record),
            )
            for record in result.turns
        ],
    )


def describe_turn(record: TurnRecord) -> str:
    """
    Builds a one-line, rich-formatted description of a turn.

    Args:
        record (TurnRecord): The turn to describe.

    Returns:
        str: The description, with rich markup.

    """
    kind = record.action.kind
    result = record.result
    line = f"    {kind.emoji} [dim]#{record.turn_number:<3}[/] "
    line += f"[bold]{record.actor_name}[/] {kind.colorize(kind.value)} "
    line += f"[bold]{record.target_name}[/] with {record.action.weapon.colored_name}: "

    if isinstance(result, SkipResult):
        line += (
            f"[yellow]skipped[/] ({result.reason}, "
            f"needs {result.mana_required} mana, has {result.mana_available})"
        )
    elif isinstance(result, HealResult):
        line += (
            f"[bold green]+{result.amount}[/] HP "
            f"({result.target_hp_before} → {result.target_hp_after}/{result.target_max_hp})"
        )
    elif not result.hit:
        line += f"[dim]missed[/] ({result.total} vs AC {result.target_ac})"
    else:
        if result.auto_hit:
            line += f"[bold red]{result.damage}[/] damage"
        else:
            line += f"[bold red]{result.damage}[/] damage ({result.total} vs AC {result.target_ac})"
        if result.critical:
            line += " [bold yellow]CRITICAL![/]"
        line += f" ({result.target_hp_before} → {result.target_hp_after}/{result.target_max_hp})"
        if result.target_hp_after == 0:
            line += " [bold red]💀[/]"
    return line


def print_combat_report(result: CombatResult, show_turns: bool = True) -> None:
    """
    Prints the turn log and the final report on the console.

    Args:
        result (CombatResult): The finished combat.
        show_turns (bool): Whether to print every turn.

    """
    report = create_combat_report(result)

    if show_turns:
        crule("Combat Log", style="cyan")
        for record in result.turns:
            cprint(describe_turn(record))

    crule("Final Report", style="bold blue")
    cprint(report.status.colorize(report.summary))
    cprint(f"Duration: {report.duration}  Seed: [dim]{result.seed}[/]")

    table = Table(title="Survivors", pad_edge=False)
    table.add_column("Side", style="bold")
    table.add_column("Name")
    table.add_column("HP", justify="right")
    table.add_column("MP", justify="right")
    table.add_column("State")
    for combatant in result.final_combatants:
        table.add_row(
            combatant.side.colorize(combatant.side.display_name),
            combatant.name,
            f"{combatant.hp}/{combatant.max_hp}",
            f"{combatant.mana}/{combatant.max_mana}" if combatant.max_mana else "-",
            "alive" if combatant.is_alive() else "[dim]defeated[/]",
        )
    cprint(table)

    if result.incidents:
        cprint(f"[yellow]{len(result.incidents)} incident(s) recovered during combat[/]")
        for incident in result.incidents:
            cprint(f"    [dim]{incident.kind.display_name}:[/] {incident.message}")

    if report.status is CombatStatus.VICTORY:
        party = [c for c in result.final_combatants if c.side is Side.PARTY]
        cprint(f"[bold green]{len(party)} hero(es) earn {report.xp_awarded} XP.[/]")
