"""Tests for keystore discovery and identity confirmation."""

from __future__ import annotations

import asyncio
from pathlib import Path

import pytest

from mblog.identity import list_candidate_keys, parse_key_file_name, resolve_identity
from mblog.types import AmbiguousKeys, NoKeyFound
from tests.mblog.helpers import FakeNode, make_key

AURA_PREFIX = "61757261"


def _key_file(directory: Path, index: int, prefix: str = AURA_PREFIX) -> Path:
    path = directory / (prefix + make_key(index).hex())
    path.write_text('"secret phrase"')
    return path


class TestParseKeyFileName:
    """Tests for keystore file name parsing."""

    def test_aura_file(self) -> None:
        """An Aura key file name yields its public key."""
        assert parse_key_file_name(AURA_PREFIX + make_key(3).hex()) == make_key(3)

    def test_prefix_and_case_tolerated(self) -> None:
        """0x prefixes and upper-case hex are accepted."""
        name = "0x" + (AURA_PREFIX + make_key(3).hex()).upper()
        assert parse_key_file_name(name) == make_key(3)

    @pytest.mark.parametrize(
        "name",
        [
            "6772616e" + "01" * 32,  # gran
            AURA_PREFIX + "01" * 31,
            AURA_PREFIX + "zz" * 32,
            "README",
        ],
    )
    def test_non_aura_names(self, name: str) -> None:
        """Other key types, bad lengths and non-hex names are skipped."""
        assert parse_key_file_name(name) is None


class TestListCandidateKeys:
    """Tests for keystore directory scanning."""

    def test_lists_sorted_unique_aura_keys(self, tmp_path: Path) -> None:
        """Only Aura key files are returned, sorted."""
        _key_file(tmp_path, 2)
        _key_file(tmp_path, 0)
        _key_file(tmp_path, 1, prefix="6772616e")
        (tmp_path / "subdir").mkdir()

        assert list_candidate_keys(tmp_path) == [make_key(0), make_key(2)]

    def test_unreadable_directory(self, tmp_path: Path) -> None:
        """A missing keystore is reported as NoKeyFound."""
        with pytest.raises(NoKeyFound):
            list_candidate_keys(tmp_path / "missing")


class TestResolveIdentity:
    """Tests for confirming the identity with the node."""

    def test_single_confirmed_key(self, tmp_path: Path) -> None:
        """The one key the node holds is the identity."""
        _key_file(tmp_path, 0)
        _key_file(tmp_path, 1)
        node = FakeNode(held_keys={make_key(1)})

        identity = asyncio.run(resolve_identity(tmp_path, node))

        assert identity == make_key(1)
        assert sorted(node.has_key_calls) == [make_key(0), make_key(1)]

    def test_empty_keystore(self, tmp_path: Path) -> None:
        """No candidate file means no identity."""
        with pytest.raises(NoKeyFound) as exc_info:
            asyncio.run(resolve_identity(tmp_path, FakeNode()))

        assert exc_info.value.candidates == ()

    def test_no_key_held(self, tmp_path: Path) -> None:
        """Candidates the node does not hold are listed in the error."""
        _key_file(tmp_path, 0)

        with pytest.raises(NoKeyFound) as exc_info:
            asyncio.run(resolve_identity(tmp_path, FakeNode()))

        assert exc_info.value.candidates == (str(make_key(0)),)

    def test_ambiguous_keys(self, tmp_path: Path) -> None:
        """Two held keys are never silently disambiguated."""
        _key_file(tmp_path, 0)
        _key_file(tmp_path, 1)
        node = FakeNode(held_keys={make_key(0), make_key(1)})

        with pytest.raises(AmbiguousKeys) as exc_info:
            asyncio.run(resolve_identity(tmp_path, node))

        assert set(exc_info.value.confirmed) == {str(make_key(0)), str(make_key(1))}
