"""
Abstract database interface for schedule storage.

Defines the Protocol that the coordinator, watcher and API depend on.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from mblog.authority import AuthoritySet
    from mblog.schedule import PlannedSlot
    from mblog.types import BlockStatus

    from .records import BlockRecord, EpochWrite, StoredEpoch


class Database(Protocol):
    """
    Protocol for schedule storage.

    Storage Organization
    --------------------
    - Epoch summaries: one immutable row per epoch
    - Block records: one row per owned slot, advancing through the status lattice
    """

    # -------------------------------------------------------------------------
    # Epoch Operations
    # -------------------------------------------------------------------------

    def upsert_epoch_info(self, authority_set: AuthoritySet) -> EpochWrite:
        """
        Record an epoch summary unless one exists.

        An existing row that differs is kept and reported as a conflict.
        """
        ...

    def ensure_schedule_rows(self, epoch: int, planned: Sequence[PlannedSlot]) -> int:
        """
        Insert missing schedule rows. Existing rows are untouched.

        Returns:
            Number of rows inserted.
        """
        ...

    def record_epoch(
        self, authority_set: AuthoritySet, planned: Sequence[PlannedSlot]
    ) -> EpochWrite:
        """Write the epoch summary and its schedule rows as one atomic unit."""
        ...

    # -------------------------------------------------------------------------
    # Block Operations
    # -------------------------------------------------------------------------

    def advance_status(
        self,
        slot: int,
        status: BlockStatus,
        block_number: int | None = None,
        block_hash: str | None = None,
        produced_time_utc: str | None = None,
    ) -> bool:
        """
        Move a slot record forward in the status lattice.

        Returns:
            True if the row was updated. Regressions and unknown slots are
            ignored and return False.
        """
        ...

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def read_latest_epoch(self) -> int | None:
        """Highest recorded epoch, or None for an empty database."""
        ...

    def read_epoch(self, epoch: int) -> StoredEpoch | None:
        """An epoch summary with its block records, or None if not recorded."""
        ...

    def read_blocks(self, epoch: int | None = None, limit: int | None = None) -> list[BlockRecord]:
        """Block records in descending slot order, optionally filtered and limited."""
        ...

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def close(self) -> None:
        """Close database connection and release resources."""
        ...
