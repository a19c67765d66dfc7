"""Builders for test values."""

from __future__ import annotations

from mblog.authority import AuthoritySet
from mblog.chain import format_utc
from mblog.chain.config import AURA_ENGINE_ID
from mblog.rpc.scale import DIGEST_PRE_RUNTIME, Header, encode_compact
from mblog.storage import BlockRecord
from mblog.types import AuraPublicKey, BlockStatus
from mblog.watcher import ChainBlock

SLOT_DURATION_MS = 6000
"""Slot duration used across tests."""


def make_key(index: int) -> AuraPublicKey:
    """Deterministic distinct key for an index."""
    return AuraPublicKey(bytes([index + 1]) * AuraPublicKey.LENGTH)


def make_authority_set(
    epoch: int = 10, epoch_size: int = 10, authority_count: int = 3
) -> AuthoritySet:
    """Authority set of make_key(0..n-1) for one epoch."""
    return AuthoritySet.for_epoch(
        epoch, epoch_size, [make_key(i) for i in range(authority_count)]
    )


def aura_digest(slot: int) -> bytes:
    """Encoded ``PreRuntime(b"aura", slot)`` digest item."""
    payload = slot.to_bytes(8, "little")
    return bytes([DIGEST_PRE_RUNTIME]) + AURA_ENGINE_ID + encode_compact(len(payload)) + payload


def make_header(
    number: int, slot: int | None, fork: int = 0, parent: bytes | None = None
) -> Header:
    """
    Header at a height with an Aura slot digest.

    Different fork values give different hashes at the same height.
    """
    return Header(
        parent_hash=parent if parent is not None else bytes(32),
        number=number,
        state_root=number.to_bytes(4, "little") + bytes([fork]) * 28,
        extrinsics_root=bytes(32),
        digest_logs=(aura_digest(slot),) if slot is not None else (),
    )


def make_block(number: int, slot: int | None, block_hash: str | None = None) -> ChainBlock:
    """Chain block with a readable hash and produced time."""
    return ChainBlock(
        number=number,
        hash=block_hash or f"0x{number:064x}",
        slot=slot,
        produced_time_utc="2024-01-01T00:00:00+00:00" if slot is not None else None,
    )


def make_record(
    slot: int,
    epoch: int = 10,
    status: BlockStatus = BlockStatus.SCHEDULED,
    block_number: int | None = None,
    block_hash: str | None = None,
) -> BlockRecord:
    """Block record with a planned time derived from the slot."""
    return BlockRecord(
        slot=slot,
        epoch=epoch,
        planned_time_utc=format_utc(slot * SLOT_DURATION_MS),
        block_number=block_number,
        block_hash=block_hash,
        status=status,
    )
