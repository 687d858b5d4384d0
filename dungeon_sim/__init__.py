"""
Dungeon Combat Simulator.

A deterministic, turn-based party-vs-monster combat engine for a dungeon
crawler: seeded randomness, initiative, per-role action policies, attack and
heal resolution, ambush and surprise rounds, and a bounded combat loop.
"""
