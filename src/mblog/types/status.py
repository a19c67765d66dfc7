"""Block record status lattice."""

from __future__ import annotations

from enum import StrEnum


class BlockStatus(StrEnum):
    """
    Lifecycle of an owned slot.

    The states form a strictly ordered lattice::

        SCHEDULED --> MINTED --> FINALIZED

    Values are the exact strings stored in the ``blocks.status`` column.

    A record never moves backwards. Finality is the chain's irreversible
    judgment, so a FINALIZED record ignores any later observation. A MINTED
    record may be corrected in place by a reorg (same slot, new block), which
    is the only self-transition allowed.
    """

    SCHEDULED = "schedule"
    """Slot assigned to us; no block observed yet. Stays here forever on a miss."""

    MINTED = "mint"
    """A best-head block was observed at this slot."""

    FINALIZED = "finality"
    """The block at this slot is finalized."""

    @property
    def rank(self) -> int:
        """Position in the lattice (higher dominates)."""
        return _RANK[self]

    def accepts(self, target: BlockStatus) -> bool:
        """
        Check whether a stored record in this status accepts an update to target.

        Args:
            target: The proposed new status.

        Returns:
            True if the update advances the record or corrects a MINTED record.
        """
        return self in _ACCEPTS_FROM.get(target, frozenset())

    def is_regression(self, target: BlockStatus) -> bool:
        """Check whether moving to target would lower the status."""
        return target.rank < self.rank


_RANK: dict[BlockStatus, int] = {
    BlockStatus.SCHEDULED: 0,
    BlockStatus.MINTED: 1,
    BlockStatus.FINALIZED: 2,
}
"""Lattice order."""

_ACCEPTS_FROM: dict[BlockStatus, frozenset[BlockStatus]] = {
    BlockStatus.MINTED: frozenset({BlockStatus.SCHEDULED, BlockStatus.MINTED}),
    BlockStatus.FINALIZED: frozenset({BlockStatus.SCHEDULED, BlockStatus.MINTED}),
}
"""Stored statuses from which each target status may be written."""


def statuses_accepting(target: BlockStatus) -> tuple[str, ...]:
    """
    Stored status values that accept an update to target, sorted for SQL use.

    Returns an empty tuple for SCHEDULED: nothing may be demoted to it.
    """
    return tuple(sorted(status.value for status in _ACCEPTS_FROM.get(target, frozenset())))
