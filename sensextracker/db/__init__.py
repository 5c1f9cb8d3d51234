"""Persistence for tracked positions."""

from sensextracker.db.store import PositionStore

__all__ = ["PositionStore"]
