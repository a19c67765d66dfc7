"""
Point-in-time schedule snapshots.

A snapshot is the identity's schedule for the current or the next epoch,
computed from live chain data alone. Persisted status is never consulted,
so a snapshot can be taken while a watcher owns the database, or without
any database at all.
"""

from __future__ import annotations

from enum import StrEnum

from mblog.authority import AuthoritySet, ChainView
from mblog.types import AuraPublicKey, StrictBaseModel

from .calculator import compute_schedule


class SnapshotKind(StrEnum):
    """Which epoch a snapshot describes."""

    CURRENT = "current"
    NEXT = "next"


class SnapshotSlot(StrictBaseModel):
    """One planned slot in a snapshot."""

    slot: int
    planned_time: str


class ScheduleSnapshot(StrictBaseModel):
    """Schedule of one epoch, ready for JSON output."""

    epoch: int
    """Epoch index."""

    start_slot: int
    """First slot of the epoch."""

    end_slot: int
    """Last slot of the epoch."""

    slots: tuple[SnapshotSlot, ...]
    """Owned slots in ascending order."""

    def to_json(self) -> str:
        """Serialize with a fixed field order and layout."""
        return self.model_dump_json(indent=2)


def snapshot(view: ChainView, identity: AuraPublicKey, which: SnapshotKind) -> ScheduleSnapshot:
    """
    Take a schedule snapshot.

    The next epoch's authority set is not on chain yet. The current set is
    used as its prediction; a rotation at the boundary invalidates it.

    Args:
        view: Live chain view.
        identity: The validator's Aura key.
        which: Current or next epoch.
    """
    authority_set = view.authority_set
    if which is SnapshotKind.NEXT:
        authority_set = AuthoritySet.for_epoch(
            authority_set.epoch + 1, authority_set.slot_count, authority_set.authorities
        )

    planned = compute_schedule(authority_set, identity, view.clock)
    return ScheduleSnapshot(
        epoch=authority_set.epoch,
        start_slot=authority_set.start_slot,
        end_slot=authority_set.end_slot,
        slots=tuple(
            SnapshotSlot(slot=entry.slot, planned_time=entry.planned_time_utc) for entry in planned
        ),
    )
