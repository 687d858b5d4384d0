"""
Items module for the Dungeon Combat Simulator.

Weapons, spells and the lookup of equipped weapons.
"""
