"""Tests for the block status lattice."""

from __future__ import annotations

import pytest

from mblog.types import BlockStatus
from mblog.types.status import statuses_accepting


class TestBlockStatus:
    """Tests for lattice order and accepted updates."""

    def test_stored_values(self) -> None:
        """Status values are the strings persisted in the database."""
        assert [s.value for s in BlockStatus] == ["schedule", "mint", "finality"]

    def test_rank_order(self) -> None:
        """SCHEDULED < MINTED < FINALIZED."""
        assert BlockStatus.SCHEDULED.rank < BlockStatus.MINTED.rank < BlockStatus.FINALIZED.rank

    @pytest.mark.parametrize(
        ("current", "target", "accepted"),
        [
            (BlockStatus.SCHEDULED, BlockStatus.MINTED, True),
            (BlockStatus.SCHEDULED, BlockStatus.FINALIZED, True),
            (BlockStatus.MINTED, BlockStatus.MINTED, True),
            (BlockStatus.MINTED, BlockStatus.FINALIZED, True),
            (BlockStatus.FINALIZED, BlockStatus.FINALIZED, False),
            (BlockStatus.FINALIZED, BlockStatus.MINTED, False),
            (BlockStatus.MINTED, BlockStatus.SCHEDULED, False),
            (BlockStatus.SCHEDULED, BlockStatus.SCHEDULED, False),
        ],
    )
    def test_accepts(self, current: BlockStatus, target: BlockStatus, accepted: bool) -> None:
        """Only forward moves and the MINTED self-transition are accepted."""
        assert current.accepts(target) is accepted

    def test_is_regression(self) -> None:
        """Lower targets are regressions."""
        assert BlockStatus.FINALIZED.is_regression(BlockStatus.MINTED)
        assert not BlockStatus.MINTED.is_regression(BlockStatus.MINTED)

    def test_statuses_accepting_for_sql(self) -> None:
        """SQL guards list the stored values that accept each target."""
        assert statuses_accepting(BlockStatus.MINTED) == ("mint", "schedule")
        assert statuses_accepting(BlockStatus.FINALIZED) == ("mint", "schedule")
        assert statuses_accepting(BlockStatus.SCHEDULED) == ()
