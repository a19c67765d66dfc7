"""
Table definitions for the schedule database.

The schema is shared with other tools reading the same file. Column names,
types and status strings must not change.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class EpochInfoNamespace:
    """
    Namespace for epoch summaries.

    One row per epoch, written once. The authority set itself is not stored,
    only its content hash and length.
    """

    TABLE_NAME: str = "epoch_info"
    """Table name for epoch summaries."""

    CREATE_TABLE: str = """
        CREATE TABLE IF NOT EXISTS epoch_info (
            epoch INTEGER PRIMARY KEY,
            start_slot INTEGER NOT NULL,
            end_slot INTEGER NOT NULL,
            authority_set_hash TEXT NOT NULL,
            authority_set_len INTEGER NOT NULL,
            created_at_utc TEXT NOT NULL
        )
    """
    """SQL to create the epoch_info table."""


@dataclass(frozen=True, slots=True)
class BlocksNamespace:
    """
    Namespace for owned-slot records.

    Keyed by slot. Rows are created as ``schedule`` and only ever advance.
    """

    TABLE_NAME: str = "blocks"
    """Table name for slot records."""

    CREATE_TABLE: str = """
        CREATE TABLE IF NOT EXISTS blocks (
            slot INTEGER PRIMARY KEY,
            epoch INTEGER NOT NULL,
            planned_time_utc TEXT NOT NULL,
            block_number INTEGER,
            block_hash TEXT,
            produced_time_utc TEXT,
            status TEXT NOT NULL
        )
    """
    """SQL to create the blocks table."""

    CREATE_INDEX: str = """
        CREATE INDEX IF NOT EXISTS idx_blocks_epoch ON blocks(epoch)
    """
    """SQL to create the epoch index."""


EPOCH_INFO = EpochInfoNamespace()
BLOCKS = BlocksNamespace()
