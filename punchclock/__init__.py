"""Punchclock — scheduled attendance check-in / check-out dispatcher.

Kept import-free: ``attendance-server.py`` may fill in ``.env`` before
``punchclock.config`` reads the environment.
"""

__version__ = "0.1.0"
