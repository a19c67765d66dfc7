"""
Watch state transitions.

``apply_event`` is a total function from (state, event) to the next state
plus the status writes that persist it. It performs no I/O, so every rule
below is testable without a node or a database.


BEST HEADS
----------
A best head at an owned slot mints that slot::

    SCHEDULED --(best head)--> MINTED

A competing best head at an already minted slot overwrites the block data
(the latest observation wins). The record stays MINTED: only finality
decides which fork survives. A finalized record ignores best heads.


FINALIZED HEADS
---------------
A finalized head carries the canonical blocks finalized since the previous
one. Three rules apply, in order:

1. A canonical block at an owned slot finalizes that record with the
   canonical block's data, replacing whatever fork block was minted.
2. A MINTED record at or below the finalized height whose height was not
   scanned is finalized with its own data.
3. A MINTED record whose height was scanned but holds a different block
   lost a reorg. It stays MINTED and is reported as orphaned.

SCHEDULED records are never touched by finality. An owned slot that never
saw a block stays SCHEDULED: a missed turn, not an error.
"""

from __future__ import annotations

from dataclasses import dataclass, replace

from mblog.storage import BlockRecord
from mblog.types import BlockStatus

from .events import BestHeadSeen, ChainBlock, FinalizedHeadSeen, WatchEvent
from .state import WatchState, highest


@dataclass(frozen=True, slots=True)
class StatusWrite:
    """A status update to persist."""

    slot: int
    status: BlockStatus
    block_number: int | None = None
    block_hash: str | None = None
    produced_time_utc: str | None = None


@dataclass(frozen=True, slots=True)
class Transition:
    """Result of applying one event."""

    state: WatchState
    """The next state."""

    writes: tuple[StatusWrite, ...] = ()
    """Status updates to persist, in order."""

    orphaned: tuple[BlockRecord, ...] = ()
    """Minted records whose block lost to a different canonical block."""


def crosses_boundary(state: WatchState, event: WatchEvent) -> bool:
    """Whether the event shows the chain past the watched epoch's last slot."""
    block = event.observed_block
    if block is None or block.slot is None:
        return False
    return block.slot > state.authority_set.end_slot


def apply_event(state: WatchState, event: WatchEvent) -> Transition:
    """Apply one chain event to the watch state."""
    if isinstance(event, BestHeadSeen):
        return apply_best_head(state, event)
    return apply_finalized_head(state, event)


def apply_best_head(state: WatchState, event: BestHeadSeen) -> Transition:
    """Track the best height and mint owned slots."""
    block = event.block
    state = replace(state, best_number=highest(state.best_number, block.number))

    if block.slot is None or block.slot not in state.records:
        return Transition(state)

    record = state.records[block.slot]
    if record.status is BlockStatus.FINALIZED:
        return Transition(state)
    if record.status is BlockStatus.MINTED and record.block_hash == block.hash:
        return Transition(state)

    minted = _with_block(record, block, BlockStatus.MINTED)
    return Transition(
        state=replace(
            state,
            records={**state.records, block.slot: minted},
            orphaned_slots=state.orphaned_slots - {block.slot},
        ),
        writes=(_write_for(minted),),
    )


def apply_finalized_head(state: WatchState, event: FinalizedHeadSeen) -> Transition:
    """Finalize owned records covered by the new finalized head."""
    records = dict(state.records)
    writes: list[StatusWrite] = []
    orphaned: list[BlockRecord] = []
    start_slot = state.authority_set.start_slot

    # Rule 1: canonical blocks at owned slots.
    for block in event.blocks:
        if block.slot is None:
            continue
        record = records.get(block.slot)
        if record is None:
            # Slots of the previous epoch are no longer in memory. The
            # database holds their rows and applies its own status guard.
            if block.slot < start_slot:
                writes.append(
                    StatusWrite(
                        slot=block.slot,
                        status=BlockStatus.FINALIZED,
                        block_number=block.number,
                        block_hash=block.hash,
                        produced_time_utc=block.produced_time_utc,
                    )
                )
            continue
        if record.status is BlockStatus.FINALIZED:
            continue
        finalized = _with_block(record, block, BlockStatus.FINALIZED)
        records[block.slot] = finalized
        writes.append(_write_for(finalized))

    # Rules 2 and 3: minted records at or below the finalized height.
    for slot, record in sorted(records.items()):
        if record.status is not BlockStatus.MINTED or record.block_number is None:
            continue
        if record.block_number > event.number or slot in state.orphaned_slots:
            continue

        canonical = event.canonical_at(record.block_number)
        if canonical is None:
            finalized = record.model_copy(update={"status": BlockStatus.FINALIZED})
            records[slot] = finalized
            writes.append(_write_for(finalized))
        elif canonical.hash != record.block_hash:
            orphaned.append(record)

    return Transition(
        state=replace(
            state,
            records=records,
            finalized_number=highest(state.finalized_number, event.number),
            orphaned_slots=state.orphaned_slots | {record.slot for record in orphaned},
        ),
        writes=tuple(writes),
        orphaned=tuple(orphaned),
    )


def _with_block(record: BlockRecord, block: ChainBlock, status: BlockStatus) -> BlockRecord:
    return record.model_copy(
        update={
            "block_number": block.number,
            "block_hash": block.hash,
            "produced_time_utc": block.produced_time_utc or record.produced_time_utc,
            "status": status,
        }
    )


def _write_for(record: BlockRecord) -> StatusWrite:
    return StatusWrite(
        slot=record.slot,
        status=record.status,
        block_number=record.block_number,
        block_hash=record.block_hash,
        produced_time_utc=record.produced_time_utc,
    )
