"""The watcher's state value."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field, replace
from typing import Self

from mblog.authority import AuthoritySet
from mblog.storage import BlockRecord
from mblog.types import BlockStatus


@dataclass(frozen=True, slots=True)
class WatchState:
    """
    Everything the watcher knows about the epoch it follows.

    Immutable. Each event produces a new value and each epoch boundary
    replaces it wholesale.
    """

    authority_set: AuthoritySet
    """Authority set and slot range of the watched epoch."""

    records: Mapping[int, BlockRecord] = field(default_factory=dict)
    """Owned slot to its record."""

    best_number: int | None = None
    """Highest best-head block number seen."""

    finalized_number: int | None = None
    """Highest finalized block number seen."""

    orphaned_slots: frozenset[int] = frozenset()
    """Minted slots whose block lost a reorg. Never finalized with their own data."""

    @classmethod
    def from_records(
        cls,
        authority_set: AuthoritySet,
        records: Iterable[BlockRecord],
        best_number: int | None = None,
    ) -> Self:
        """Build a state from block records of the epoch."""
        return cls(
            authority_set=authority_set,
            records={record.slot: record for record in sorted(records, key=lambda r: r.slot)},
            best_number=best_number,
        )

    @property
    def epoch(self) -> int:
        """Watched epoch."""
        return self.authority_set.epoch

    def owns(self, slot: int) -> bool:
        """Whether slot has a record in this epoch."""
        return slot in self.records

    def minted_records(self) -> list[BlockRecord]:
        """Records minted but not yet finalized, in slot order."""
        return [r for r in self.records.values() if r.status is BlockStatus.MINTED]

    def has_scheduled_through(self, slot: int) -> bool:
        """Whether an owned slot at or before slot is still only scheduled."""
        return any(
            record.status is BlockStatus.SCHEDULED and record_slot <= slot
            for record_slot, record in self.records.items()
        )

    def count(self, status: BlockStatus) -> int:
        """Number of records in a status."""
        return sum(1 for record in self.records.values() if record.status is status)

    def with_heights_from(self, previous: WatchState) -> WatchState:
        """Carry the highest observed heights over from a replaced state."""
        return replace(
            self,
            best_number=highest(self.best_number, previous.best_number),
            finalized_number=highest(self.finalized_number, previous.finalized_number),
        )


def highest(a: int | None, b: int | None) -> int | None:
    """The larger of two optional heights."""
    if a is None:
        return b
    if b is None:
        return a
    return max(a, b)
