"""Local-first search draft and history with optional encrypted sync."""

__version__ = "0.1.0"
