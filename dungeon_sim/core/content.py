"""
Scenario loading for the simulator.

A scenario file is a JSON object describing one encounter: the party records,
the monster stat blocks and instances, the room, the bonus-round flags, an
optional seed, the combat configuration and an optional table of equipped
weapons.
"""

import json
from collections.abc import Callable
from pathlib import Path
from typing import Any

from catchery import log_warning
from pydantic import BaseModel, Field

from dungeon_sim.combat.config import CombatConfig
from dungeon_sim.combat.session import CombatSession, create_session
from dungeon_sim.core.utils import cprint
from dungeon_sim.entities.combatant import combatant_from_adventurer, combatant_from_monster
from dungeon_sim.entities.records import AdventurerRecord, MonsterInstance, MonsterStatBlock
from dungeon_sim.items.inventory import StaticWeaponProvider
from dungeon_sim.items.weapon import Weapon


class Scenario(BaseModel):
    """One encounter, as read from a scenario file."""

    name: str = Field(default="Unnamed scenario", description="Display name.")
    room_id: str = Field(description="Room the encounter takes place in.")
    seed: str | None = Field(default=None, description="Optional fixed seed.")
    is_ambush: bool = Field(default=False, description="Monsters get a bonus round.")
    is_surprise: bool = Field(default=False, description="The party gets a bonus round.")
    party: list[AdventurerRecord] = Field(description="The party records.")
    monsters: list[MonsterInstance] = Field(description="The monsters in the room.")
    config: CombatConfig = Field(default_factory=CombatConfig, description="Combat configuration.")
    weapons: dict[str, Weapon] = Field(
        default_factory=dict,
        description="Equipped weapons, keyed by token id or combatant id.",
    )

    def build_session(
        self,
        seed: str | None = None,
        is_ambush: bool | None = None,
        is_surprise: bool | None = None,
        config: CombatConfig | None = None,
    ) -> CombatSession:
        """
        Builds the combat session of the scenario.

        Args:
            seed (str | None): Overrides the scenario seed.
            is_ambush (bool | None): Overrides the ambush flag.
            is_surprise (bool | None): Overrides the surprise flag.
            config (CombatConfig | None): Overrides the scenario configuration.

        Returns:
            CombatSession: The session, in the PENDING state.

        """
        return create_session(
            [combatant_from_adventurer(record) for record in self.party],
            [combatant_from_monster(monster) for monster in self.monsters],
            self.room_id,
            is_ambush=self.is_ambush if is_ambush is None else is_ambush,
            is_surprise=self.is_surprise if is_surprise is None else is_surprise,
            seed=seed if seed is not None else self.seed,
            config=config or self.config,
        )

    def weapon_provider(self) -> StaticWeaponProvider:
        """Returns a provider serving the scenario's weapon table."""
        return StaticWeaponProvider(self.weapons)


def _load_scenario_data(data: dict[str, Any]) -> Scenario:
    """
    Builds a scenario from its raw JSON data.

    Monster instances may either embed their stat block, or reference one by
    name from the "stat_blocks" list, in which case they start unharmed.

    Args:
        data (dict[str, Any]): The decoded JSON object.

    Returns:
        Scenario: The validated scenario.

    """
    stat_blocks = {
        block.name: block
        for block in (MonsterStatBlock(**entry) for entry in data.get("stat_blocks", []))
    }
    monsters: list[MonsterInstance] = []
    for entry in data.get("monsters", []):
        block = entry.get("stat_block")
        if isinstance(block, str):
            if block not in stat_blocks:
                log_warning(
                    f"Monster '{entry.get('id')}' references unknown stat block '{block}'",
                    {"monster": entry.get("id"), "stat_block": block},
                )
                raise ValueError(f"Unknown stat block: {block}")
            instance = MonsterInstance.from_stat_block(entry["id"], stat_blocks[block])
            if "current_hp" in entry:
                instance = instance.model_copy(update={"current_hp": entry["current_hp"]})
            monsters.append(instance)
        else:
            monsters.append(MonsterInstance(**entry))

    fields = {k: v for k, v in data.items() if k not in ("stat_blocks", "monsters")}
    return Scenario(**fields, monsters=monsters)


def _load_json_file(
    filepath: Path,
    loader_func: Callable[[dict[str, Any]], Any],
    description: str,
) -> Any:
    """Helper to load and validate JSON files"""
    try:
        cprint(
            f"  Loading {description} using {loader_func.__name__}...",
            style="bold green",
        )
        # Validate file path
        if not filepath.exists():
            raise FileNotFoundError(f"File not found: {filepath}")
        if not filepath.is_file():
            raise ValueError(f"Not a file: {filepath}")
        # Load and validate JSON
        with open(filepath, encoding="utf-8") as f:
            data = json.load(f)
        if not data:
            raise ValueError(f"Empty data in {filepath}")
        if not isinstance(data, dict):
            raise ValueError(f"Expected object in {filepath}, got {type(data).__name__}")
        return loader_func(data)
    except (json.JSONDecodeError, FileNotFoundError, KeyError, ValueError) as e:
        raise ValueError(f"File {filepath} raised an error: {e}") from e


def load_scenario(path: Path | str) -> Scenario:
    """
    Loads a scenario file.

    Args:
        path (Path | str): Path of the JSON scenario.

    Returns:
        Scenario: The loaded scenario.

    Raises:
        ValueError: If the file is missing, malformed or invalid.

    """
    return _load_json_file(Path(path), _load_scenario_data, "scenario")
