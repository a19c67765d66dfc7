"""Tests for the SCALE helpers."""

from __future__ import annotations

import pytest
from hypothesis import given
from hypothesis import strategies as st

from mblog.rpc.client import AURA_AUTHORITIES_KEY, TIMESTAMP_NOW_KEY
from mblog.rpc.scale import (
    Header,
    aura_slot_from_digest,
    decode_authorities,
    decode_compact,
    decode_u64,
    encode_compact,
    hex_to_bytes,
    twox128,
)
from mblog.types import ScaleDecodeError
from tests.mblog.helpers import aura_digest, make_header, make_key


class TestCompact:
    """Tests for SCALE compact integers."""

    @pytest.mark.parametrize(
        ("value", "encoded"),
        [
            (0, "00"),
            (1, "04"),
            (63, "fc"),
            (64, "0101"),
            (16383, "fdff"),
            (16384, "02000100"),
            (1 << 30, "0300000040"),
        ],
    )
    def test_known_encodings(self, value: int, encoded: str) -> None:
        """Each mode boundary encodes to the documented bytes."""
        assert encode_compact(value).hex() == encoded
        assert decode_compact(bytes.fromhex(encoded)) == (value, len(encoded) // 2)

    @given(st.integers(min_value=0, max_value=2**128))
    def test_decode_inverts_encode(self, value: int) -> None:
        """Decoding returns the value and consumes every byte."""
        encoded = encode_compact(value)
        assert decode_compact(encoded) == (value, len(encoded))

    def test_decode_at_offset(self) -> None:
        """An offset skips leading bytes."""
        assert decode_compact(b"\xff\x04", offset=1) == (1, 1)

    def test_negative_rejected(self) -> None:
        """Negative values cannot be encoded."""
        with pytest.raises(ValueError):
            encode_compact(-1)

    @pytest.mark.parametrize("data", [b"", b"\x01", b"\x02\x00", b"\x03\x00\x00"])
    def test_truncated_input(self, data: bytes) -> None:
        """Truncated input raises a decode error."""
        with pytest.raises(ScaleDecodeError):
            decode_compact(data)


class TestFixedValues:
    """Tests for u64, hex and key list decoding."""

    def test_decode_u64(self) -> None:
        """u64 is little-endian."""
        assert decode_u64(bytes.fromhex("7017000000000000")) == 6000

    def test_decode_u64_wrong_length(self) -> None:
        """Anything but eight bytes is rejected."""
        with pytest.raises(ScaleDecodeError):
            decode_u64(b"\x00" * 4)

    def test_hex_to_bytes_accepts_prefix(self) -> None:
        """The 0x prefix is optional."""
        assert hex_to_bytes("0x0102") == hex_to_bytes("0102") == b"\x01\x02"

    def test_hex_to_bytes_rejects_garbage(self) -> None:
        """Invalid hex is a decode error."""
        with pytest.raises(ScaleDecodeError):
            hex_to_bytes("0xzz")

    def test_decode_authorities_keeps_order(self) -> None:
        """Keys come back in storage order."""
        keys = [make_key(2), make_key(0), make_key(1)]
        data = encode_compact(3) + b"".join(keys)

        assert decode_authorities(data) == keys

    def test_decode_empty_authorities(self) -> None:
        """An empty vector decodes to an empty list."""
        assert decode_authorities(b"\x00") == []

    def test_decode_authorities_length_mismatch(self) -> None:
        """A length prefix that disagrees with the payload is rejected."""
        data = encode_compact(2) + bytes(make_key(0))
        with pytest.raises(ScaleDecodeError):
            decode_authorities(data)


class TestStorageKeys:
    """Tests for twox128 storage keys."""

    def test_twox128_system(self) -> None:
        """twox128("System") matches the well-known prefix."""
        assert twox128("System").hex() == "26aa394eea5630e07c48ae0c9558cef7"

    def test_timestamp_now_key(self) -> None:
        """Timestamp.Now has its well-known storage key."""
        assert TIMESTAMP_NOW_KEY == (
            "0xf0c365c3cf59d671eb72da0e7a4113c49f1f0515f462cdcf84e0f1d6045dfcbb"
        )

    def test_aura_authorities_key(self) -> None:
        """Aura.Authorities has its well-known storage key."""
        assert AURA_AUTHORITIES_KEY == (
            "0x57f8dc2f5ab09467896f47300f0424385e0621c4869aa60c02be9adcc98a0d1d"
        )


class TestHeader:
    """Tests for header parsing, hashing and slot extraction."""

    def test_slot_from_aura_digest(self) -> None:
        """The Aura pre-runtime item yields the slot."""
        assert aura_slot_from_digest(aura_digest(283_000_123)) == 283_000_123

    def test_other_engine_ignored(self) -> None:
        """Pre-runtime items of other engines carry no Aura slot."""
        item = bytes([6]) + b"BABE" + encode_compact(8) + (5).to_bytes(8, "little")
        assert aura_slot_from_digest(item) is None

    def test_other_digest_kind_ignored(self) -> None:
        """Seal and consensus items carry no Aura slot."""
        item = bytes([5]) + b"aura" + encode_compact(8) + (5).to_bytes(8, "little")
        assert aura_slot_from_digest(item) is None

    def test_header_without_digest_has_no_slot(self) -> None:
        """Genesis-like headers have no slot."""
        assert make_header(0, None).aura_slot() is None

    def test_from_rpc(self) -> None:
        """The JSON-RPC representation round-trips to the same hash."""
        header = make_header(0x1234, 101, parent=b"\x11" * 32)
        raw = {
            "parentHash": "0x" + header.parent_hash.hex(),
            "number": hex(header.number),
            "stateRoot": "0x" + header.state_root.hex(),
            "extrinsicsRoot": "0x" + header.extrinsics_root.hex(),
            "digest": {"logs": ["0x" + log.hex() for log in header.digest_logs]},
        }

        parsed = Header.from_rpc(raw)

        assert parsed == header
        assert parsed.aura_slot() == 101
        assert parsed.hash_hex() == header.hash_hex()

    def test_from_rpc_malformed(self) -> None:
        """Missing fields raise a decode error."""
        with pytest.raises(ScaleDecodeError):
            Header.from_rpc({"number": "0x1"})

    def test_hash_depends_on_content(self) -> None:
        """Forks at the same height hash differently."""
        assert make_header(5, 105).hash_hex() != make_header(5, 105, fork=1).hash_hex()
        assert len(make_header(5, 105).hash()) == 32

    def test_encode_layout(self) -> None:
        """Encoding is parent, compact number, roots, compact digest count, items."""
        header = make_header(1, 7)
        encoded = header.encode()

        assert encoded[:32] == header.parent_hash
        assert encoded[32:33] == encode_compact(1)
        assert encoded[97:98] == encode_compact(1)
        assert encoded[98:] == aura_digest(7)
