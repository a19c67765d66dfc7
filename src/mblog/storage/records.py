"""Persisted row types."""

from __future__ import annotations

from enum import StrEnum
from typing import Self

from mblog.authority import AuthoritySet
from mblog.types import BlockStatus, StrictBaseModel


class EpochInfo(StrictBaseModel):
    """One ``epoch_info`` row: the immutable summary of an epoch's authority set."""

    epoch: int
    start_slot: int
    end_slot: int
    authority_set_hash: str
    authority_set_len: int
    created_at_utc: str

    @classmethod
    def from_authority_set(cls, authority_set: AuthoritySet, created_at_utc: str) -> Self:
        """Summarize an authority set for storage."""
        return cls(
            epoch=authority_set.epoch,
            start_slot=authority_set.start_slot,
            end_slot=authority_set.end_slot,
            authority_set_hash=authority_set.authority_set_hash,
            authority_set_len=authority_set.authority_set_len,
            created_at_utc=created_at_utc,
        )

    def matches(self, authority_set: AuthoritySet) -> bool:
        """
        Check whether the row describes the same authority set.

        The creation time is bookkeeping and does not take part.
        """
        return (
            self.epoch == authority_set.epoch
            and self.start_slot == authority_set.start_slot
            and self.end_slot == authority_set.end_slot
            and self.authority_set_hash == authority_set.authority_set_hash
            and self.authority_set_len == authority_set.authority_set_len
        )

    def describe(self) -> str:
        """Short form used in conflict messages."""
        return (
            f"hash={self.authority_set_hash} len={self.authority_set_len} "
            f"slots=[{self.start_slot},{self.end_slot}]"
        )


class BlockRecord(StrictBaseModel):
    """One ``blocks`` row: the lifecycle of a single owned slot."""

    slot: int
    """Aura slot (primary key)."""

    epoch: int
    """Epoch the slot belongs to."""

    planned_time_utc: str
    """Planned production time, RFC 3339 UTC."""

    block_number: int | None = None
    """Height of the observed block."""

    block_hash: str | None = None
    """Hash of the observed block."""

    produced_time_utc: str | None = None
    """On-chain timestamp of the observed block, RFC 3339 UTC."""

    status: BlockStatus = BlockStatus.SCHEDULED
    """Position in the status lattice."""


class StoredEpoch(StrictBaseModel):
    """An epoch as persisted: its summary row and its block rows in slot order."""

    info: EpochInfo
    blocks: tuple[BlockRecord, ...]


class EpochWrite(StrEnum):
    """Outcome of writing an epoch summary."""

    INSERTED = "inserted"
    """No row existed; the new row was written."""

    UNCHANGED = "unchanged"
    """An identical row existed; nothing was written."""

    CONFLICT = "conflict"
    """A different row existed; it was kept and the new values were dropped."""
