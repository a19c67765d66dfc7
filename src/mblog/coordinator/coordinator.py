"""
Boundary/resume coordinator.

Glues the authority resolver, the schedule calculator and the database
together. It runs once at startup and again at every epoch boundary the
watcher detects. Both paths end the same way: the epoch's schedule is on
disk (unless storage is disabled) and a fresh WatchState is built from it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from mblog.authority import ChainView, resolve_authority_set
from mblog.schedule import PlannedSlot, compute_schedule
from mblog.storage import BlockRecord, EpochWrite
from mblog.types import AuraPublicKey, InconsistentChainState
from mblog.watcher.state import WatchState

if TYPE_CHECKING:
    from mblog.rpc import NodeApi
    from mblog.storage import Database

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class EpochCoordinator:
    """Establishes the watch state for the live (or a requested) epoch."""

    node: NodeApi
    """Connected node client."""

    identity: AuraPublicKey
    """The confirmed validator key."""

    epoch_size: int
    """Slots per epoch."""

    database: Database | None = None
    """Schedule storage. None runs without persistence."""

    epoch_override: int | None = None
    """Fixed epoch for one-shot inspection instead of the live one."""

    _view: ChainView | None = field(default=None, init=False, repr=False)

    @property
    def view(self) -> ChainView | None:
        """Chain view behind the most recent state."""
        return self._view

    async def bootstrap_or_resume(self) -> WatchState:
        """
        Establish the watch state for the current epoch.

        Persisted rows are reused when the database's latest epoch is the
        live epoch and its summary matches the live authority set. Otherwise
        the schedule is computed and persisted first.

        Raises:
            NodeUnreachable: The node cannot be queried.
            InconsistentChainState: The node's data cannot yield a schedule.
        """
        view = await resolve_authority_set(self.node, self.epoch_size, epoch=self.epoch_override)
        return self._establish(view)

    async def advance_epoch(
        self,
        observed_slot: int,
        at: str | None = None,
        previous_epoch: int | None = None,
    ) -> WatchState:
        """
        Roll over to the epoch containing observed_slot.

        Args:
            observed_slot: The slot that crossed the previous epoch's end.
            at: Hash of the block carrying that slot. Chain data is read there.
            previous_epoch: The epoch being left.

        Raises:
            InconsistentChainState: The node's epoch disagrees with the
                observed slot, or did not advance.
        """
        view = await resolve_authority_set(self.node, self.epoch_size, at=at)

        expected = observed_slot // self.epoch_size
        if view.epoch != expected:
            raise InconsistentChainState(
                f"slot {observed_slot} implies epoch {expected}, node reports epoch {view.epoch}"
            )
        if previous_epoch is not None:
            if view.epoch <= previous_epoch:
                raise InconsistentChainState(
                    f"epoch did not advance past {previous_epoch} at slot {observed_slot}"
                )
            if view.epoch > previous_epoch + 1:
                logger.warning(
                    "Epoch jumped from %d to %d; epochs in between are not recorded",
                    previous_epoch,
                    view.epoch,
                )

        return self._establish(view)

    def _establish(self, view: ChainView) -> WatchState:
        self._view = view
        authority_set = view.authority_set

        if authority_set.index_of(self.identity) is None:
            logger.warning(
                "Identity %s is not among the %d authorities of epoch %d; nothing scheduled",
                self.identity,
                authority_set.authority_set_len,
                authority_set.epoch,
            )

        planned = compute_schedule(authority_set, self.identity, view.clock)
        in_memory = WatchState.from_records(
            authority_set,
            _scheduled_records(authority_set.epoch, planned),
            best_number=view.head_number,
        )
        if self.database is None:
            return in_memory

        live = view.head_slot // self.epoch_size == authority_set.epoch
        if self.database.read_latest_epoch() == authority_set.epoch or not live:
            stored = self.database.read_epoch(authority_set.epoch)
            if stored is not None and stored.info.matches(authority_set):
                logger.info(
                    "Resuming epoch %d from %d persisted records",
                    authority_set.epoch,
                    len(stored.blocks),
                )
                return WatchState.from_records(
                    authority_set, stored.blocks, best_number=view.head_number
                )

        # Another epoch's authority set is only a prediction from the live list.
        if not live:
            logger.info(
                "Epoch %d is not the live epoch; schedule not recorded", authority_set.epoch
            )
            return in_memory

        outcome = self.database.record_epoch(authority_set, planned)
        if outcome is EpochWrite.CONFLICT:
            logger.warning(
                "Epoch %d was recorded with a different authority set; "
                "tracking the live schedule in memory only",
                authority_set.epoch,
            )
            return in_memory

        # Build from what is on disk, so a restart sees the same state.
        stored = self.database.read_epoch(authority_set.epoch)
        blocks = stored.blocks if stored is not None else ()
        return WatchState.from_records(authority_set, blocks, best_number=view.head_number)


def _scheduled_records(epoch: int, planned: tuple[PlannedSlot, ...]) -> list[BlockRecord]:
    return [
        BlockRecord(slot=entry.slot, epoch=epoch, planned_time_utc=entry.planned_time_utc)
        for entry in planned
    ]
