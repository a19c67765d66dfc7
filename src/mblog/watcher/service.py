"""
Chain watcher service.

Follows the node's best and finalized heads and keeps the identity's slot
records current.


TASK LAYOUT
-----------
One watch session runs four tasks in a TaskGroup::

    best-head producer  ----+
                            +--> queue --> consumer (state + database)
    finalized producer  ----+

    shutdown monitor

Producers only read from the node and enqueue events. The consumer is the
single writer: it owns the WatchState and makes every database call, so the
status lattice is enforced in one place and an epoch rollover can never
interleave with a status update against the old schedule.

A lost connection ends the session. The watcher backs off, reconnects and
starts a new session from the state it already has.
"""

from __future__ import annotations

import asyncio
import logging
import signal
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from mblog import metrics
from mblog.chain import format_utc
from mblog.types import (
    BlockStatus,
    InconsistentChainState,
    MblogError,
    NodeUnreachable,
    RpcError,
)

from .config import WatcherConfig
from .events import BestHeadSeen, ChainBlock, FinalizedHeadSeen, WatchEvent
from .state import WatchState
from .states import WatcherPhase
from .transitions import Transition, apply_event, crosses_boundary

if TYPE_CHECKING:
    from mblog.coordinator import EpochCoordinator
    from mblog.rpc import Header, NodeApi
    from mblog.storage import Database

logger = logging.getLogger(__name__)


class _ShutdownRequested(Exception):
    """Raised inside the TaskGroup to tear the session down on shutdown."""


@dataclass(slots=True)
class ChainWatcher:
    """
    Watch-mode driver.

    Bootstraps through the coordinator, then processes head events until
    stopped or until reconnection fails too many times in a row.
    """

    node: NodeApi
    """Node client. Reconnected in place after a connection loss."""

    coordinator: EpochCoordinator
    """Establishes the state at startup and at each epoch boundary."""

    database: Database | None = None
    """Schedule storage. None runs without persistence."""

    config: WatcherConfig = field(default_factory=WatcherConfig)
    """Backoff and scan settings."""

    _phase: WatcherPhase = field(default=WatcherPhase.IDLE, init=False)
    _state: WatchState | None = field(default=None, init=False, repr=False)
    _shutdown: asyncio.Event = field(default_factory=asyncio.Event, init=False, repr=False)
    _session_events: int = field(default=0, init=False, repr=False)

    @property
    def phase(self) -> WatcherPhase:
        """Current phase of the state machine."""
        return self._phase

    @property
    def state(self) -> WatchState | None:
        """Current watch state. None before bootstrap."""
        return self._state

    def stop(self) -> None:
        """
        Request graceful shutdown.

        The running session is torn down and run() returns.
        """
        self._shutdown.set()

    async def run(self, *, install_signal_handlers: bool = True) -> None:
        """
        Watch the chain until shutdown.

        Args:
            install_signal_handlers: Whether to handle SIGINT/SIGTERM.
                Disable for testing or non-main threads.

        Raises:
            NodeUnreachable: Reconnection failed too many times in a row.
            InconsistentChainState: Re-resolution after an inconsistency failed.
            MblogError: Any other fatal error.
        """
        if install_signal_handlers:
            self._install_signal_handlers()

        try:
            self._adopt(await self.coordinator.bootstrap_or_resume())
            self._set_phase(WatcherPhase.ACTIVE)

            failures = 0
            resyncs = 0
            while not self._shutdown.is_set():
                self._session_events = 0
                lost, inconsistent = await self._run_session()
                if self._shutdown.is_set():
                    break

                # A session that applied events was a success.
                if self._session_events > 0:
                    failures = 0
                    resyncs = 0

                if inconsistent is not None:
                    resyncs += 1
                    if resyncs > 1:
                        raise inconsistent
                    logger.warning("Inconsistent chain state, re-resolving: %s", inconsistent)
                    failures = await self._resync(failures)
                    continue

                logger.warning("Lost node connection: %s", lost)
                failures = await self._reconnect(failures)
        finally:
            self._set_phase(WatcherPhase.STOPPED)

    async def _run_session(self) -> tuple[MblogError | None, InconsistentChainState | None]:
        """
        Run the producers and the consumer until something ends the session.

        Returns:
            The connection error or the inconsistency that ended the session.
            Both are None on shutdown.
        """
        queue: asyncio.Queue[WatchEvent] = asyncio.Queue(maxsize=self.config.queue_size)

        lost: MblogError | None = None
        inconsistent: InconsistentChainState | None = None
        fatal: MblogError | None = None

        try:
            async with asyncio.TaskGroup() as tg:
                tg.create_task(self._produce_best_heads(queue))
                tg.create_task(self._produce_finalized_heads(queue))
                tg.create_task(self._consume(queue))
                tg.create_task(self._wait_shutdown())
        except* _ShutdownRequested:
            pass
        except* InconsistentChainState as group:
            inconsistent = group.exceptions[0]  # type: ignore[assignment]
        except* (NodeUnreachable, RpcError) as group:
            lost = group.exceptions[0]  # type: ignore[assignment]
        except* MblogError as group:
            fatal = group.exceptions[0]  # type: ignore[assignment]

        if fatal is not None:
            raise fatal
        return lost, inconsistent

    async def _resync(self, failures: int) -> int:
        """
        Re-resolve the live epoch, reconnecting while the node is unreachable.

        Returns:
            The consecutive reconnect failure count.
        """
        while not self._shutdown.is_set():
            previous = self._state
            assert previous is not None
            try:
                resumed = await self.coordinator.bootstrap_or_resume()
            except (NodeUnreachable, RpcError) as exc:
                logger.warning("Lost node connection while re-resolving: %s", exc)
                failures = await self._reconnect(failures)
                continue

            self._adopt(resumed.with_heights_from(previous))
            self._set_phase(WatcherPhase.ACTIVE)
            return failures

        return failures

    async def _reconnect(self, failures: int) -> int:
        """
        Reconnect with exponential backoff.

        Returns:
            The consecutive failure count, including this round.

        Raises:
            NodeUnreachable: After max_reconnect_attempts consecutive failures.
        """
        self._set_phase(WatcherPhase.RECONNECTING)

        while not self._shutdown.is_set():
            failures += 1
            if failures > self.config.max_reconnect_attempts:
                raise NodeUnreachable(
                    f"giving up after {self.config.max_reconnect_attempts} consecutive "
                    "reconnect failures"
                )

            delay = self.config.backoff_delay(failures)
            logger.info("Reconnecting in %.2fs (attempt %d)", delay, failures)
            try:
                await asyncio.wait_for(self._shutdown.wait(), timeout=delay)
                return failures
            except TimeoutError:
                pass

            metrics.reconnects.inc()
            try:
                await self.node.connect()
            except NodeUnreachable as exc:
                logger.warning("Reconnect attempt %d failed: %s", failures, exc)
                continue

            self._set_phase(WatcherPhase.ACTIVE)
            return failures

        return failures

    # -------------------------------------------------------------------------
    # Producers
    # -------------------------------------------------------------------------

    async def _produce_best_heads(self, queue: asyncio.Queue[WatchEvent]) -> None:
        """Turn best-head notifications into events."""
        async for header in self.node.subscribe_best_heads():
            block = await self._observe(header, header.hash_hex())
            await queue.put(BestHeadSeen(block))

    async def _produce_finalized_heads(self, queue: asyncio.Queue[WatchEvent]) -> None:
        """
        Turn finalized-head notifications into events.

        Finalized notifications may skip heights. Every height since the
        previous notification is fetched from the canonical chain, so a
        record is always finalized against the block that actually won.
        """
        last = await self._finalized_scan_start()

        async for header in self.node.subscribe_finalized_heads():
            if header.number <= last:
                continue

            head_hash = header.hash_hex()
            first = max(last + 1, header.number - self.config.max_finalized_scan + 1)
            blocks: list[ChainBlock] = []
            for number in range(first, header.number):
                block_hash = await self.node.get_block_hash(number)
                if block_hash is None:
                    continue
                canonical = await self.node.get_header(block_hash)
                if canonical is None:
                    continue
                blocks.append(await self._observe(canonical, block_hash))
            blocks.append(await self._observe(header, head_hash))

            last = header.number
            await queue.put(
                FinalizedHeadSeen(number=header.number, hash=head_hash, blocks=tuple(blocks))
            )

    async def _finalized_scan_start(self) -> int:
        """
        Height after which finalized blocks still need scanning.

        Minted records are rescanned so they finalize against the canonical
        chain. Before the first finalized head of a run is seen, owned slots
        that are already past may hold blocks produced while nothing was
        watching, so the scan then reaches back to the epoch's first block.
        """
        state = self._state
        assert state is not None
        minted = [r.block_number for r in state.minted_records() if r.block_number is not None]
        if state.finalized_number is not None:
            return min(minted) - 1 if minted else state.finalized_number

        header = await self.node.get_header(await self.node.get_finalized_head())
        if header is None:
            return 0
        start = min([header.number, *(number - 1 for number in minted)])

        slot = header.aura_slot()
        if slot is not None and state.has_scheduled_through(slot):
            start = min(start, await self._epoch_floor(state, header.number))
        return start

    async def _epoch_floor(self, state: WatchState, finalized_number: int) -> int:
        """Highest finalized height below the watched epoch, within the scan bound."""
        floor = max(finalized_number - self.config.max_finalized_scan, 0)
        for number in range(finalized_number - 1, floor, -1):
            block_hash = await self.node.get_block_hash(number)
            header = await self.node.get_header(block_hash) if block_hash is not None else None
            if header is None:
                continue
            slot = header.aura_slot()
            if slot is not None and slot < state.authority_set.start_slot:
                return number
        return floor

    async def _observe(self, header: Header, block_hash: str) -> ChainBlock:
        """Describe a header, fetching its timestamp only if it may be recorded."""
        slot = header.aura_slot()
        produced: str | None = None
        if slot is not None and self._may_record(slot):
            timestamp = await self.node.get_timestamp(block_hash)
            produced = format_utc(timestamp) if timestamp is not None else None
        return ChainBlock(
            number=header.number, hash=block_hash, slot=slot, produced_time_utc=produced
        )

    def _may_record(self, slot: int) -> bool:
        """Whether a block at slot can end up in a status write."""
        state = self._state
        if state is None:
            return False
        return (
            state.owns(slot)
            or slot > state.authority_set.end_slot
            or (self.database is not None and slot < state.authority_set.start_slot)
        )

    # -------------------------------------------------------------------------
    # Consumer
    # -------------------------------------------------------------------------

    async def _consume(self, queue: asyncio.Queue[WatchEvent]) -> None:
        """Apply events one at a time. The only writer of state and storage."""
        while True:
            event = await queue.get()
            await self._handle(event)
            self._session_events += 1

    async def _handle(self, event: WatchEvent) -> None:
        state = self._state
        assert state is not None

        if crosses_boundary(state, event):
            state = await self._cross_boundary(state, event)

        self._commit(apply_event(state, event))

    async def _cross_boundary(self, state: WatchState, event: WatchEvent) -> WatchState:
        """Establish the next epoch before the triggering event is applied."""
        block = event.observed_block
        assert block is not None and block.slot is not None

        self._set_phase(WatcherPhase.AWAITING_BOUNDARY)
        logger.info(
            "Slot %d is past epoch %d (end slot %d); resolving next epoch",
            block.slot,
            state.epoch,
            state.authority_set.end_slot,
        )

        started = time.monotonic()
        next_state = await self.coordinator.advance_epoch(
            block.slot, at=block.hash, previous_epoch=state.epoch
        )
        metrics.epoch_boundary_seconds.observe(time.monotonic() - started)

        self._adopt(next_state.with_heights_from(state))
        self._set_phase(WatcherPhase.ACTIVE)
        assert self._state is not None
        return self._state

    def _commit(self, transition: Transition) -> None:
        """Persist a transition's writes, then adopt its state."""
        for write in transition.writes:
            if self.database is not None:
                applied = self.database.advance_status(
                    write.slot,
                    write.status,
                    block_number=write.block_number,
                    block_hash=write.block_hash,
                    produced_time_utc=write.produced_time_utc,
                )
                if not applied:
                    metrics.ignored_updates.inc()
                    continue

            if write.status is BlockStatus.MINTED:
                metrics.blocks_minted.inc()
                logger.info(
                    "Minted slot %d: block #%s %s", write.slot, write.block_number, write.block_hash
                )
            elif write.status is BlockStatus.FINALIZED:
                metrics.blocks_finalized.inc()
                logger.info(
                    "Finalized slot %d: block #%s %s",
                    write.slot,
                    write.block_number,
                    write.block_hash,
                )

        for record in transition.orphaned:
            metrics.blocks_orphaned.inc()
            logger.warning(
                "Slot %d: minted block #%s %s is not canonical; it was orphaned",
                record.slot,
                record.block_number,
                record.block_hash,
            )

        self._adopt(transition.state)

    def _adopt(self, state: WatchState) -> None:
        """Replace the watch state and refresh gauges."""
        self._state = state
        metrics.current_epoch.set(state.epoch)
        metrics.own_slots.set(len(state.records))
        if state.best_number is not None:
            metrics.best_block.set(state.best_number)
        if state.finalized_number is not None:
            metrics.finalized_block.set(state.finalized_number)

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def _set_phase(self, target: WatcherPhase) -> None:
        if target is self._phase:
            return
        if not self._phase.can_transition_to(target):
            raise RuntimeError(f"invalid watcher transition {self._phase.name} -> {target.name}")
        logger.debug("Watcher phase %s -> %s", self._phase.name, target.name)
        self._phase = target

    def _install_signal_handlers(self) -> None:
        """
        Install signal handlers for graceful shutdown.

        Handles SIGINT (Ctrl+C) and SIGTERM (process termination).
        """
        loop = asyncio.get_running_loop()
        try:
            for sig in (signal.SIGINT, signal.SIGTERM):
                loop.add_signal_handler(sig, self._shutdown.set)
        except (ValueError, RuntimeError, NotImplementedError):
            # Cannot add handlers outside the main thread or on some platforms.
            pass

    async def _wait_shutdown(self) -> None:
        """Wait for the shutdown signal, then tear the session down."""
        await self._shutdown.wait()
        logger.info("Shutdown requested")
        raise _ShutdownRequested
