"""
Core module for the Dungeon Combat Simulator.

This module contains the building blocks shared by the whole simulator:
constants, seeded random streams, dice expressions, logging, error handling
and scenario loading.
"""
