"""Tests for the watcher phase machine."""

from __future__ import annotations

import pytest

from mblog.watcher import WatcherConfig, WatcherPhase


class TestWatcherPhase:
    """Tests for phase transitions."""

    @pytest.mark.parametrize(
        ("source", "target"),
        [
            (WatcherPhase.IDLE, WatcherPhase.ACTIVE),
            (WatcherPhase.ACTIVE, WatcherPhase.AWAITING_BOUNDARY),
            (WatcherPhase.AWAITING_BOUNDARY, WatcherPhase.ACTIVE),
            (WatcherPhase.ACTIVE, WatcherPhase.RECONNECTING),
            (WatcherPhase.AWAITING_BOUNDARY, WatcherPhase.RECONNECTING),
            (WatcherPhase.RECONNECTING, WatcherPhase.ACTIVE),
        ],
    )
    def test_valid_transitions(self, source: WatcherPhase, target: WatcherPhase) -> None:
        """Documented transitions are allowed."""
        assert source.can_transition_to(target)

    @pytest.mark.parametrize(
        ("source", "target"),
        [
            (WatcherPhase.IDLE, WatcherPhase.AWAITING_BOUNDARY),
            (WatcherPhase.IDLE, WatcherPhase.RECONNECTING),
            (WatcherPhase.RECONNECTING, WatcherPhase.AWAITING_BOUNDARY),
            (WatcherPhase.ACTIVE, WatcherPhase.IDLE),
        ],
    )
    def test_invalid_transitions(self, source: WatcherPhase, target: WatcherPhase) -> None:
        """Undocumented transitions are refused."""
        assert not source.can_transition_to(target)

    def test_every_phase_can_stop(self) -> None:
        """Shutdown is reachable from any live phase."""
        for phase in WatcherPhase:
            if phase is not WatcherPhase.STOPPED:
                assert phase.can_transition_to(WatcherPhase.STOPPED)

    def test_stopped_is_terminal(self) -> None:
        """Nothing leaves STOPPED."""
        assert not any(WatcherPhase.STOPPED.can_transition_to(phase) for phase in WatcherPhase)

    def test_is_running(self) -> None:
        """Only phases after bootstrap and before stop are running."""
        assert not WatcherPhase.IDLE.is_running
        assert WatcherPhase.RECONNECTING.is_running
        assert not WatcherPhase.STOPPED.is_running


class TestBackoff:
    """Tests for reconnect backoff delays."""

    def test_doubles_until_cap(self) -> None:
        """1, 2, 4, 8, 16, 30, 30 seconds with production settings."""
        config = WatcherConfig(backoff_initial=1.0, backoff_max=30.0)
        assert [config.backoff_delay(n) for n in range(1, 8)] == [1, 2, 4, 8, 16, 30, 30]
