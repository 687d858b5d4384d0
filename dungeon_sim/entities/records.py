"""
Records supplied by external collaborators.

The character-record service supplies AdventurerRecords (hit points and mana
carry over between rooms), the room content generator supplies
MonsterInstances built from MonsterStatBlocks. The combat core only reads
them, and writes final hit points and mana back onto copies.
"""

from pydantic import BaseModel, Field

from dungeon_sim.core.constants import Role


class AdventurerStats(BaseModel):
    """The numeric profile of a party member."""

    health: int = Field(description="Current hit points.")
    max_health: int = Field(description="Maximum hit points.")
    mana: int = Field(default=0, description="Current mana.")
    max_mana: int = Field(default=0, description="Maximum mana.")
    armor_class: int = Field(description="Armor class.")
    strength: int = Field(default=10, description="Strength score.")
    dexterity: int = Field(default=10, description="Dexterity score.")
    proficiency_bonus: int = Field(default=0, description="Proficiency bonus.")


class AdventurerRecord(BaseModel):
    """A party member as stored by the character-record service."""

    token_id: str = Field(description="Identifier of the hero.")
    name: str | None = Field(default=None, description="Display name.")
    role: Role = Field(description="Class of the hero.")
    stats: AdventurerStats = Field(description="Current numeric profile.")

    def model_post_init(self, _) -> None:
        if not self.role.is_party_role:
            raise ValueError(f"Adventurer '{self.token_id}' cannot have role {self.role}")


class MonsterStatBlock(BaseModel):
    """Simplified monster stat block, as found in the monster registry."""

    name: str = Field(description="Monster name.")
    hp: int = Field(description="Base hit points.")
    ac: int = Field(description="Armor class.")
    xp: int = Field(default=0, description="Experience awarded when defeated.")
    strength: int = Field(default=10, description="Strength score.")
    dexterity: int = Field(default=10, description="Dexterity score.")


class MonsterInstance(BaseModel):
    """A specific monster placed in a room."""

    id: str = Field(description="Identifier of this monster instance.")
    stat_block: MonsterStatBlock = Field(description="The base stat block.")
    current_hp: int = Field(description="Current hit points.")
    max_hp: int = Field(description="Maximum hit points.")

    @classmethod
    def from_stat_block(cls, instance_id: str, stat_block: MonsterStatBlock) -> "MonsterInstance":
        """Creates a fresh, unharmed instance of a stat block."""
        return cls(
            id=instance_id,
            stat_block=stat_block,
            current_hp=stat_block.hp,
            max_hp=stat_block.hp,
        )
