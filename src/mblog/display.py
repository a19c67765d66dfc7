"""
Terminal rendering for one-shot output.

Times are stored in UTC. Output shows them in the operator's chosen zone
with the UTC value alongside.
"""

from __future__ import annotations

import re
import sys
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta, timezone, tzinfo
from enum import StrEnum
from typing import TextIO
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from mblog.authority import AuthoritySet
from mblog.schedule import PlannedSlot
from mblog.storage import BlockRecord
from mblog.types import AuraPublicKey, BlockStatus

_FIXED_OFFSET = re.compile(r"^([+-])(\d{2}):(\d{2})$")


class ColorMode(StrEnum):
    """When to colorize output."""

    AUTO = "auto"
    ALWAYS = "always"
    NEVER = "never"

    def enabled_for(self, stream: TextIO) -> bool:
        """Resolve the mode against a concrete output stream."""
        if self is ColorMode.AUTO:
            return stream.isatty()
        return self is ColorMode.ALWAYS


@dataclass(frozen=True, slots=True)
class Colors:
    """ANSI styling for schedule output. A disabled instance returns text unchanged."""

    enabled: bool

    @classmethod
    def for_mode(cls, mode: ColorMode, stream: TextIO | None = None) -> Colors:
        return cls(enabled=mode.enabled_for(stream or sys.stdout))

    def wrap(self, text: object, code: str) -> str:
        if not self.enabled:
            return str(text)
        return f"\x1b[{code}m{text}\x1b[0m"

    def epoch(self, text: object) -> str:
        return self.wrap(text, "36")

    def range(self, text: object) -> str:
        return self.wrap(text, "33")

    def author(self, text: object) -> str:
        return self.wrap(text, "35")

    def slot(self, text: object) -> str:
        return self.wrap(text, "34")

    def time(self, text: object) -> str:
        return self.wrap(text, "32")

    def dim(self, text: object) -> str:
        return self.wrap(text, "90")

    def warn(self, text: object) -> str:
        return self.wrap(text, "31")


def parse_output_tz(text: str) -> tzinfo:
    """
    Parse an output timezone.

    Accepts ``UTC``, ``local``, a fixed offset such as ``+09:00`` or
    ``-05:30``, or an IANA name such as ``Asia/Dubai``.

    Raises:
        ValueError: If the zone is not recognized.
    """
    value = text.strip()
    if value.lower() == "utc":
        return UTC
    if value.lower() == "local":
        local = datetime.now().astimezone().tzinfo
        assert local is not None
        return local

    match = _FIXED_OFFSET.match(value)
    if match is not None:
        sign, hours, minutes = match.group(1), int(match.group(2)), int(match.group(3))
        if hours > 23 or minutes > 59:
            raise ValueError(f"invalid offset {value!r}")
        offset = timedelta(hours=hours, minutes=minutes)
        return timezone(-offset if sign == "-" else offset)

    try:
        return ZoneInfo(value)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ValueError(
            f"unknown timezone {value!r}: use UTC, local, +HH:MM/-HH:MM or an IANA name"
        ) from exc


def format_in_tz(timestamp_utc: str, tz: tzinfo) -> str:
    """Convert an RFC 3339 UTC timestamp to the output zone."""
    moment = datetime.fromisoformat(timestamp_utc).astimezone(tz)
    return moment.isoformat(timespec="seconds")


def render_epoch_header(authority_set: AuthoritySet, colors: Colors) -> str:
    """One-line epoch summary."""
    return (
        f"epoch={colors.epoch(authority_set.epoch)} / "
        f"start_slot={colors.range(authority_set.start_slot)} / "
        f"end_slot={colors.range(authority_set.end_slot)}"
    )


def render_author(identity: AuraPublicKey, colors: Colors) -> str:
    return f"author={colors.author(identity)}"


def render_schedule(planned: Iterable[PlannedSlot], tz: tzinfo, colors: Colors) -> list[str]:
    """One line per planned slot, local time first, UTC dimmed."""
    lines = []
    for entry in planned:
        utc_time = entry.planned_time_utc
        lines.append(
            f"slot {colors.slot(entry.slot)}: {colors.time(format_in_tz(utc_time, tz))} "
            f"(UTC {colors.dim(utc_time)})"
        )
    return lines


def is_missed(record: BlockRecord, now: datetime) -> bool:
    """A slot whose time has passed without any block observed."""
    return (
        record.status is BlockStatus.SCHEDULED
        and datetime.fromisoformat(record.planned_time_utc) < now
    )


def render_history(
    records: Iterable[BlockRecord],
    tz: tzinfo,
    colors: Colors,
    now: datetime | None = None,
) -> list[str]:
    """
    One line per persisted slot record.

    Scheduled slots whose planned time has passed are shown as missed.
    """
    now = now or datetime.now(tz=UTC)
    lines = []
    for record in records:
        if is_missed(record, now):
            status = colors.warn("missed")
        else:
            status = record.status.value

        line = (
            f"slot {colors.slot(record.slot)} epoch {colors.epoch(record.epoch)}: "
            f"{status:>8} planned {colors.time(format_in_tz(record.planned_time_utc, tz))}"
        )
        if record.block_number is not None:
            line += f" block #{record.block_number} {colors.dim(record.block_hash)}"
        if record.produced_time_utc is not None:
            line += f" produced {format_in_tz(record.produced_time_utc, tz)}"
        lines.append(line)
    return lines
