"""
Entities of the Dungeon Combat Simulator: combatants and the external records
they are built from.
"""
