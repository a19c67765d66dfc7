"""Tests for terminal rendering."""

from __future__ import annotations

import io
from datetime import UTC, datetime, timedelta, timezone

import pytest

from mblog.chain import SlotClock
from mblog.display import (
    ColorMode,
    Colors,
    format_in_tz,
    is_missed,
    parse_output_tz,
    render_epoch_header,
    render_history,
    render_schedule,
)
from mblog.schedule import compute_schedule
from mblog.types import BlockStatus
from tests.mblog.helpers import SLOT_DURATION_MS, make_authority_set, make_key, make_record

PLAIN = Colors(enabled=False)


class TestParseOutputTz:
    """Tests for output timezone parsing."""

    def test_utc(self) -> None:
        """UTC is accepted in any case."""
        assert parse_output_tz("utc") is UTC

    @pytest.mark.parametrize(
        ("text", "offset"),
        [("+09:00", timedelta(hours=9)), ("-05:30", -timedelta(hours=5, minutes=30))],
    )
    def test_fixed_offsets(self, text: str, offset: timedelta) -> None:
        """Fixed offsets become fixed timezones."""
        assert parse_output_tz(text) == timezone(offset)

    def test_iana_name(self) -> None:
        """IANA zone names resolve."""
        tz = parse_output_tz("Asia/Dubai")
        assert datetime(2024, 1, 1, tzinfo=tz).utcoffset() == timedelta(hours=4)

    @pytest.mark.parametrize("text", ["Mars/Olympus", "+25:00", "09:00"])
    def test_rejects_unknown(self, text: str) -> None:
        """Unknown zones and malformed offsets are errors."""
        with pytest.raises(ValueError):
            parse_output_tz(text)


class TestColors:
    """Tests for color handling."""

    def test_disabled_returns_plain_text(self) -> None:
        """Disabled colors leave text unchanged."""
        assert PLAIN.slot(100) == "100"

    def test_enabled_wraps_in_ansi(self) -> None:
        """Enabled colors wrap text in escape codes."""
        assert Colors(enabled=True).slot(100) == "\x1b[34m100\x1b[0m"

    def test_auto_follows_tty(self) -> None:
        """AUTO disables colors for non-terminal streams."""
        assert not ColorMode.AUTO.enabled_for(io.StringIO())
        assert ColorMode.ALWAYS.enabled_for(io.StringIO())
        assert not ColorMode.NEVER.enabled_for(io.StringIO())


class TestRendering:
    """Tests for schedule and history lines."""

    def test_epoch_header(self) -> None:
        """The header names the epoch and its slot range."""
        assert render_epoch_header(make_authority_set(), PLAIN) == (
            "epoch=10 / start_slot=100 / end_slot=109"
        )

    def test_schedule_lines(self) -> None:
        """Each slot shows local time and the UTC value."""
        planned = compute_schedule(
            make_authority_set(), make_key(1), SlotClock(slot_duration_ms=SLOT_DURATION_MS)
        )
        lines = render_schedule(planned, timezone(timedelta(hours=4)), PLAIN)

        assert lines[0] == "slot 100: 1970-01-01T04:10:00+04:00 (UTC 1970-01-01T00:10:00+00:00)"
        assert len(lines) == 4

    def test_format_in_tz(self) -> None:
        """UTC timestamps convert to the output zone."""
        assert format_in_tz("2024-01-01T00:00:06+00:00", UTC) == "2024-01-01T00:00:06+00:00"

    def test_missed_slot(self) -> None:
        """Past scheduled slots are missed, future ones and minted ones are not."""
        now = datetime(1970, 1, 1, 0, 10, 30, tzinfo=UTC)

        assert is_missed(make_record(100), now)
        assert not is_missed(make_record(109), now)
        assert not is_missed(make_record(103, status=BlockStatus.MINTED), now)

    def test_history_lines(self) -> None:
        """History shows status, block data and missed slots."""
        now = datetime(1970, 1, 1, 0, 10, 20, tzinfo=UTC)
        records = [
            make_record(106),
            make_record(103, status=BlockStatus.FINALIZED, block_number=7, block_hash="0xaa"),
            make_record(100),
        ]

        lines = render_history(records, UTC, PLAIN, now=now)

        assert "schedule" in lines[0]
        assert "finality" in lines[1] and "block #7 0xaa" in lines[1]
        assert "missed" in lines[2]
