"""
Slot Clock
==========

Slot-to-time conversion for Aura chains.

Aura assigns a block to slot ``timestamp // slot_duration``. Slot ``s``
therefore begins at ``origin + s * slot_duration`` where ``origin`` is the
chain's slot origin (zero on standard Aura chains). Both values come from the
node. The conversion is exact integer arithmetic in milliseconds.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from time import time as wall_time
from typing import Callable


@dataclass(frozen=True, slots=True)
class SlotClock:
    """
    Converts slots to planned production times.

    All time values are Unix timestamps in milliseconds.
    """

    slot_duration_ms: int
    """Fixed duration of one slot, read from the node."""

    origin_ms: int = 0
    """Unix time at which slot 0 would begin."""

    time_fn: Callable[[], float] = wall_time
    """Time source function (injectable for testing)."""

    def __post_init__(self) -> None:
        if self.slot_duration_ms <= 0:
            raise ValueError(f"slot duration must be positive, got {self.slot_duration_ms}")

    @classmethod
    def from_observation(
        cls,
        slot_duration_ms: int,
        slot: int,
        timestamp_ms: int,
        time_fn: Callable[[], float] = wall_time,
    ) -> SlotClock:
        """
        Anchor a clock on one block the node reported.

        The block's timestamp lies somewhere inside its slot. The origin is
        the whole-slot offset between the chain's slot count and Unix time,
        so any block of the same chain yields the same origin.

        Args:
            slot_duration_ms: Slot duration reported by the node.
            slot: Aura slot of the observed block.
            timestamp_ms: ``Timestamp.Now`` of the observed block.
            time_fn: Wall-clock source.
        """
        offset = timestamp_ms - slot * slot_duration_ms
        origin = (offset // slot_duration_ms) * slot_duration_ms
        return cls(slot_duration_ms=slot_duration_ms, origin_ms=origin, time_fn=time_fn)

    def slot_start_ms(self, slot: int) -> int:
        """Unix time (ms) at which the slot begins."""
        return self.origin_ms + slot * self.slot_duration_ms

    def current_slot(self) -> int:
        """Slot containing the current wall-clock time (0 before the origin)."""
        now_ms = int(self.time_fn() * 1000)
        if now_ms < self.origin_ms:
            return 0
        return (now_ms - self.origin_ms) // self.slot_duration_ms

    def now_ms(self) -> int:
        """Current wall-clock time in milliseconds."""
        return int(self.time_fn() * 1000)


def format_utc(timestamp_ms: int) -> str:
    """
    Render a millisecond timestamp as RFC 3339 in UTC.

    Whole seconds omit the fraction; otherwise milliseconds are shown.
    Examples: ``2024-01-01T00:00:06+00:00``, ``2024-01-01T00:00:06.500+00:00``.
    """
    seconds, millis = divmod(timestamp_ms, 1000)
    dt = datetime.fromtimestamp(seconds, tz=UTC) + timedelta(milliseconds=millis)
    if millis == 0:
        return dt.isoformat(timespec="seconds")
    return dt.isoformat(timespec="milliseconds")


def utc_now() -> str:
    """Current time as RFC 3339 UTC with second precision."""
    return datetime.now(tz=UTC).isoformat(timespec="seconds")
