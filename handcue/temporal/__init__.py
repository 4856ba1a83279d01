"""Temporal module — history buffer, debounce, swipe detection and cooldown."""

from handcue.temporal.history import HistoryBuffer, HistoryEntry
from handcue.temporal.stabilizer import TemporalStabilizer

__all__ = ["HistoryBuffer", "HistoryEntry", "TemporalStabilizer"]
