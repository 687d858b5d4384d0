"""
Main entry point for the Dungeon Combat Simulator.

Loads an encounter from a scenario file, runs it to completion and prints the
turn log together with the final report. The same scenario run with the same
seed always produces the same log.

Usage:
    dungeon-sim data/goblin_ambush.json --seed s1 --verbose
"""

import argparse
import asyncio
import logging
import sys

from dungeon_sim.combat.combat_manager import run_combat
from dungeon_sim.combat.config import CombatConfig
from dungeon_sim.combat.report import print_combat_report
from dungeon_sim.core.content import load_scenario
from dungeon_sim.core.logging import setup_logging
from dungeon_sim.core.utils import cprint, crule


def build_parser() -> argparse.ArgumentParser:
    """Builds the command line parser."""
    parser = argparse.ArgumentParser(
        prog="dungeon-sim",
        description="Run a deterministic party-vs-monster combat from a scenario file.",
    )
    parser.add_argument("scenario", help="Path of the JSON scenario file.")
    parser.add_argument("--seed", default=None, help="Seed overriding the scenario seed.")
    bonus = parser.add_mutually_exclusive_group()
    bonus.add_argument(
        "--ambush",
        action="store_true",
        default=None,
        help="Monsters strike first.",
    )
    bonus.add_argument(
        "--surprise",
        action="store_true",
        default=None,
        help="The party strikes first.",
    )
    parser.add_argument(
        "--max-turns",
        type=int,
        default=None,
        help="Turn ceiling before a stalemate defeat is forced.",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Narrate every turn and log debug messages.",
    )
    return parser


async def run_scenario(args: argparse.Namespace) -> int:
    """
    Loads and runs the scenario described by the parsed arguments.

    Args:
        args (argparse.Namespace): The parsed command line.

    Returns:
        int: The process exit code, 0 on victory and 1 on defeat.

    """
    scenario = load_scenario(args.scenario)
    config = scenario.config
    if args.max_turns is not None:
        config = CombatConfig.model_validate({**config.model_dump(), "max_turns": args.max_turns})

    # Only one flag can be set on the command line, it replaces both.
    is_ambush = is_surprise = None
    if args.ambush or args.surprise:
        is_ambush, is_surprise = bool(args.ambush), bool(args.surprise)

    session = scenario.build_session(
        seed=args.seed,
        is_ambush=is_ambush,
        is_surprise=is_surprise,
        config=config,
    )

    crule(f"⚔️  {scenario.name}", style="bold green")
    cprint(f"Room [bold]{session.room_id}[/], seed [dim]{session.seed}[/]")
    for combatant in session.combatants:
        cprint(f"    {combatant.get_status_line()}")

    result = await run_combat(
        session,
        config,
        scenario.weapon_provider(),
        verbose=args.verbose,
    )
    print_combat_report(result, show_turns=not args.verbose)
    return 0 if result.is_victory else 1


def main(argv: list[str] | None = None) -> int:
    """Command line entry point."""
    args = build_parser().parse_args(argv)
    setup_logging(logging.DEBUG if args.verbose else logging.WARNING)
    try:
        return asyncio.run(run_scenario(args))
    except ValueError as e:
        cprint(f"[bold red]Error:[/] {e}")
        return 2


if __name__ == "__main__":
    sys.exit(main())
