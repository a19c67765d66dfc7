"""
SCALE codec helpers for the handful of Substrate values mblog reads.

WHAT IS SCALE?
--------------
SCALE (Simple Concatenated Aggregate Little-Endian) is Substrate's wire and
storage encoding. Fixed-width integers are little-endian. Collections and
variable-length integers use a "compact" prefix.


COMPACT INTEGERS
----------------
The two low bits of the first byte select the mode::

    0b00  single byte     value < 2^6     [vvvvvv00]
    0b01  two bytes       value < 2^14    [vvvvvv01][vvvvvvvv]
    0b10  four bytes      value < 2^30    [vvvvvv10][...3 more bytes]
    0b11  big integer     value >= 2^30   [nnnnnn11][n+4 bytes LE]

In big-integer mode the upper six bits hold (byte count - 4).


WHAT WE DECODE
--------------
- ``Aura.Authorities``: ``Vec<[u8; 32]>`` (compact length + keys)
- ``Timestamp.Now`` and ``AuraApi_slot_duration``: ``u64``
- Header digest items: the Aura ``PreRuntime`` item carries the slot
- Headers themselves, re-encoded to compute the block hash


References:
    SCALE codec: https://docs.substrate.io/reference/scale-codec/
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass
from typing import Any, Self

import xxhash

from mblog.chain.config import AURA_ENGINE_ID
from mblog.types import AuraPublicKey, ScaleDecodeError

DIGEST_PRE_RUNTIME = 6
"""Enum index of ``DigestItem::PreRuntime``."""

_SINGLE_BYTE_LIMIT = 1 << 6
_TWO_BYTE_LIMIT = 1 << 14
_FOUR_BYTE_LIMIT = 1 << 30


def encode_compact(value: int) -> bytes:
    """
    Encode a non-negative integer in SCALE compact form.

    Raises:
        ValueError: If value is negative or needs more than 67 bytes.
    """
    if value < 0:
        raise ValueError("Compact integers must be non-negative")

    if value < _SINGLE_BYTE_LIMIT:
        return bytes([value << 2])
    if value < _TWO_BYTE_LIMIT:
        return ((value << 2) | 0b01).to_bytes(2, "little")
    if value < _FOUR_BYTE_LIMIT:
        return ((value << 2) | 0b10).to_bytes(4, "little")

    length = (value.bit_length() + 7) // 8
    if length > 67:
        raise ValueError("Compact integer too large")
    return bytes([((length - 4) << 2) | 0b11]) + value.to_bytes(length, "little")


def decode_compact(data: bytes, offset: int = 0) -> tuple[int, int]:
    """
    Decode a SCALE compact integer.

    Args:
        data: Input bytes.
        offset: Starting position in data.

    Returns:
        Tuple of (decoded_value, bytes_consumed).

    Raises:
        ScaleDecodeError: If the input is truncated.
    """
    if offset >= len(data):
        raise ScaleDecodeError("Compact", "truncated input")

    mode = data[offset] & 0b11
    if mode == 0b00:
        return data[offset] >> 2, 1

    if mode == 0b01:
        width = 2
    elif mode == 0b10:
        width = 4
    else:
        width = (data[offset] >> 2) + 4
        if offset + 1 + width > len(data):
            raise ScaleDecodeError("Compact", f"needed {width} bytes after prefix")
        raw = data[offset + 1 : offset + 1 + width]
        return int.from_bytes(raw, "little"), width + 1

    if offset + width > len(data):
        raise ScaleDecodeError("Compact", f"needed {width} bytes")
    raw = data[offset : offset + width]
    return int.from_bytes(raw, "little") >> 2, width


def decode_u64(data: bytes) -> int:
    """Decode a little-endian ``u64``."""
    if len(data) != 8:
        raise ScaleDecodeError("u64", f"expected 8 bytes, got {len(data)}")
    return int.from_bytes(data, "little")


def decode_authorities(data: bytes) -> list[AuraPublicKey]:
    """
    Decode ``Aura.Authorities`` (``Vec<sr25519::Public>``).

    Order is preserved: it defines the round-robin slot assignment.
    """
    count, pos = decode_compact(data)
    expected = pos + count * AuraPublicKey.LENGTH
    if expected != len(data):
        raise ScaleDecodeError(
            "Vec<AuraId>", f"{count} keys need {expected} bytes, got {len(data)}"
        )
    return [
        AuraPublicKey(data[start : start + AuraPublicKey.LENGTH])
        for start in range(pos, expected, AuraPublicKey.LENGTH)
    ]


def twox128(name: str) -> bytes:
    """Substrate ``twox_128``: xxh64 with seeds 0 and 1, little-endian, concatenated."""
    raw = name.encode()
    return b"".join(
        xxhash.xxh64(raw, seed=seed).intdigest().to_bytes(8, "little") for seed in (0, 1)
    )


def storage_key(pallet: str, item: str) -> str:
    """Hex storage key of a plain storage value."""
    return "0x" + (twox128(pallet) + twox128(item)).hex()


def blake2_256(data: bytes) -> bytes:
    """32-byte BLAKE2b digest, the default Substrate hasher."""
    return hashlib.blake2b(data, digest_size=32).digest()


def hex_to_bytes(value: str) -> bytes:
    """Decode 0x-prefixed hex as returned by the node."""
    text = value[2:] if value.startswith("0x") else value
    try:
        return bytes.fromhex(text)
    except ValueError as exc:
        raise ScaleDecodeError("hex", str(exc)) from exc


def aura_slot_from_digest(log: bytes) -> int | None:
    """
    Extract the Aura slot from one encoded digest item.

    Layout of the item we look for::

        [0x06][b"aura"][compact len][slot: u64 LE][...]

    Returns:
        The slot, or None if the item is not an Aura pre-runtime item.
    """
    if len(log) < 1 + len(AURA_ENGINE_ID) or log[0] != DIGEST_PRE_RUNTIME:
        return None
    if log[1 : 1 + len(AURA_ENGINE_ID)] != AURA_ENGINE_ID:
        return None

    pos = 1 + len(AURA_ENGINE_ID)
    length, consumed = decode_compact(log, pos)
    payload = log[pos + consumed : pos + consumed + length]
    if len(payload) < 8:
        return None
    return int.from_bytes(payload[:8], "little")


@dataclass(frozen=True, slots=True)
class Header:
    """
    A Substrate block header as delivered by ``chain_getHeader`` and subscriptions.

    Digest logs are kept as their raw SCALE encodings so the header can be
    re-encoded byte-for-byte to compute its hash.
    """

    parent_hash: bytes
    """Hash of the parent block."""

    number: int
    """Block height."""

    state_root: bytes
    """Storage root after this block."""

    extrinsics_root: bytes
    """Merkle root of the block's extrinsics."""

    digest_logs: tuple[bytes, ...]
    """Encoded digest items, in order."""

    @classmethod
    def from_rpc(cls, raw: dict[str, Any]) -> Self:
        """
        Build a header from its JSON-RPC representation.

        Raises:
            ScaleDecodeError: If a field is missing or malformed.
        """
        try:
            return cls(
                parent_hash=hex_to_bytes(raw["parentHash"]),
                number=int(raw["number"], 16),
                state_root=hex_to_bytes(raw["stateRoot"]),
                extrinsics_root=hex_to_bytes(raw["extrinsicsRoot"]),
                digest_logs=tuple(hex_to_bytes(log) for log in raw["digest"]["logs"]),
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise ScaleDecodeError("Header", f"malformed RPC header: {exc}") from exc

    def encode(self) -> bytes:
        """SCALE-encode the header (compact block number, Vec of digest items)."""
        return b"".join(
            [
                self.parent_hash,
                encode_compact(self.number),
                self.state_root,
                self.extrinsics_root,
                encode_compact(len(self.digest_logs)),
                *self.digest_logs,
            ]
        )

    def hash(self) -> bytes:
        """Block hash: BLAKE2b-256 of the encoded header."""
        return blake2_256(self.encode())

    def hash_hex(self) -> str:
        """Block hash as 0x-prefixed hex."""
        return "0x" + self.hash().hex()

    def aura_slot(self) -> int | None:
        """
        Slot claimed by the block author, from the Aura pre-runtime digest.

        Returns None for blocks without one (e.g. genesis).
        """
        for log in self.digest_logs:
            slot = aura_slot_from_digest(log)
            if slot is not None:
                return slot
        return None
