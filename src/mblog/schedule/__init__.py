"""Slot schedule computation."""

from .calculator import PlannedSlot, compute_schedule, own_slots
from .snapshot import ScheduleSnapshot, SnapshotKind, SnapshotSlot, snapshot

__all__ = [
    "PlannedSlot",
    "ScheduleSnapshot",
    "SnapshotKind",
    "SnapshotSlot",
    "compute_schedule",
    "own_slots",
    "snapshot",
]
