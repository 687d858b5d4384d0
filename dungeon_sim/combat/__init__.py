"""
Combat system module for the Dungeon Combat Simulator.

This module handles all combat mechanics including turn order, action
selection, attack and heal resolution, bonus rounds, the combat state machine
and reporting.
"""
