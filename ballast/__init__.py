"""
Ballast - solar panel layout engine for flat-roof ballast systems.

Setbacks, panel grids, user-placed arrays and their reconciliation into the
grid the structural calculation service expects.
"""

__version__ = "0.1.0"
