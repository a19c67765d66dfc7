"""Tests for the command-line interface."""

from __future__ import annotations

import logging
from datetime import UTC
from pathlib import Path

import pytest

from mblog.__main__ import ColoredFormatter, build_parser, main, print_log
from mblog.chain import SlotClock
from mblog.display import ColorMode, Colors
from mblog.schedule import compute_schedule
from mblog.storage import SQLiteDatabase
from mblog.types import BlockStatus
from tests.mblog.helpers import SLOT_DURATION_MS, make_authority_set, make_key


class TestParser:
    """Tests for argument parsing."""

    def test_defaults(self) -> None:
        """Defaults match a local node and the standard session length."""
        args = build_parser().parse_args(["--keystore-path", "/tmp/ks"])

        assert args.ws == "ws://127.0.0.1:9944"
        assert args.epoch_size == 1200
        assert args.db == Path("aura_schedule.sqlite")
        assert args.color is ColorMode.AUTO
        assert not (args.watch or args.current or args.next or args.log)

    def test_modes_are_exclusive(self) -> None:
        """Only one mode may be selected."""
        with pytest.raises(SystemExit):
            build_parser().parse_args(["--watch", "--log"])

    def test_color_choices(self) -> None:
        """Color mode values are validated."""
        assert build_parser().parse_args(["--color", "never"]).color is ColorMode.NEVER
        with pytest.raises(SystemExit):
            build_parser().parse_args(["--color", "sometimes"])


class TestMainValidation:
    """Tests for argument combinations rejected before any I/O."""

    @pytest.mark.parametrize(
        "argv",
        [
            ["mblog"],
            ["mblog", "--keystore-path", "ks", "--watch", "--epoch", "3"],
            ["mblog", "--keystore-path", "ks", "--epoch-size", "0"],
            ["mblog", "--keystore-path", "ks", "--tz", "Nowhere/Else"],
        ],
    )
    def test_rejected(self, argv: list[str], monkeypatch: pytest.MonkeyPatch) -> None:
        """Invalid combinations exit with a usage error."""
        monkeypatch.setattr("sys.argv", argv)

        with pytest.raises(SystemExit) as exc_info:
            main()

        assert exc_info.value.code == 2


class TestPrintLog:
    """Tests for the read-only history mode."""

    def test_prints_newest_first(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        """History is printed from the database without a node."""
        path = tmp_path / "schedule.sqlite"
        aset = make_authority_set()
        with SQLiteDatabase(path) as db:
            db.record_epoch(
                aset,
                compute_schedule(aset, make_key(1), SlotClock(slot_duration_ms=SLOT_DURATION_MS)),
            )
            db.advance_status(109, BlockStatus.MINTED, 9, "0xaa")

        print_log(path, 2, UTC, Colors(enabled=False))

        lines = capsys.readouterr().out.splitlines()
        assert len(lines) == 2
        assert lines[0].startswith("slot 109") and "mint" in lines[0]
        assert lines[1].startswith("slot 106")

    def test_empty_database(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        """An empty history says so."""
        path = tmp_path / "schedule.sqlite"
        SQLiteDatabase(path).close()

        print_log(path, 10, UTC, Colors(enabled=False))

        assert capsys.readouterr().out.strip() == "no recorded slots"


class TestColoredFormatter:
    """Tests for the log formatter."""

    def test_includes_level_and_message(self) -> None:
        """Formatted lines carry the level, logger name and message."""
        record = logging.LogRecord(
            "mblog.test", logging.WARNING, __file__, 1, "hello %s", ("x",), None
        )
        line = ColoredFormatter().format(record)

        assert "WARNING" in line
        assert "mblog.test" in line
        assert line.endswith("hello x")
