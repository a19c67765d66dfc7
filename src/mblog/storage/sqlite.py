"""
SQLite database implementation for schedule storage.

This module persists the identity's slot history:

- One ``epoch_info`` row per epoch, written once and never changed
- One ``blocks`` row per owned slot, advancing through the status lattice

Transactions are explicit. The connection runs in autocommit mode and every
write is wrapped in ``BEGIN IMMEDIATE ... COMMIT``, so a multi-row epoch
write is either fully visible or not at all.
"""

from __future__ import annotations

import logging
import sqlite3
from collections.abc import Callable, Iterator, Sequence
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING, Any

from mblog.chain import utc_now
from mblog.types import BlockStatus, PersistenceConflict, StatusRegression, StorageError
from mblog.types.status import statuses_accepting

from .namespaces import BLOCKS, EPOCH_INFO
from .records import BlockRecord, EpochInfo, EpochWrite, StoredEpoch

if TYPE_CHECKING:
    from mblog.authority import AuthoritySet
    from mblog.schedule import PlannedSlot

logger = logging.getLogger(__name__)


class SQLiteDatabase:
    """
    SQLite implementation of the Database protocol.

    One instance is the single writer for its file. Read-only instances may
    be opened alongside it; SQLite's file locking keeps them consistent.
    """

    def __init__(
        self,
        path: Path | str,
        *,
        readonly: bool = False,
        now_fn: Callable[[], str] = utc_now,
    ) -> None:
        """
        Open the database.

        Args:
            path: Path to the SQLite file. Use ":memory:" for an in-memory database.
            readonly: Open without write access. The file must already exist.
            now_fn: Source of ``created_at_utc`` values (injectable for testing).

        Raises:
            StorageError: If the file cannot be opened.
        """
        self._path = Path(path) if isinstance(path, str) else path
        self._readonly = readonly
        self._now_fn = now_fn

        # Autocommit mode: transactions are opened explicitly in _transaction.
        try:
            if readonly:
                self._conn = sqlite3.connect(
                    self._path.resolve().as_uri() + "?mode=ro",
                    uri=True,
                    isolation_level=None,
                )
            else:
                self._conn = sqlite3.connect(str(self._path), isolation_level=None)
        except sqlite3.Error as exc:
            raise StorageError(f"cannot open database '{self._path}': {exc}") from exc

        # Row factory enables dict-like access: row["column_name"].
        self._conn.row_factory = sqlite3.Row

        if not readonly:
            self._init_schema()

    @classmethod
    def open_readonly(cls, path: Path | str) -> SQLiteDatabase:
        """Open an existing database for queries only. Never creates the file."""
        return cls(path, readonly=True)

    @property
    def readonly(self) -> bool:
        """Whether writes are refused."""
        return self._readonly

    def _init_schema(self) -> None:
        """Create tables if they don't exist."""
        with self._transaction() as cursor:
            cursor.execute(EPOCH_INFO.CREATE_TABLE)
            cursor.execute(BLOCKS.CREATE_TABLE)
            cursor.execute(BLOCKS.CREATE_INDEX)

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Cursor]:
        """
        Run the enclosed statements as one atomic unit.

        IMMEDIATE takes the write lock up front, so a concurrent writer fails
        here rather than halfway through.
        """
        if self._readonly:
            raise StorageError(f"database '{self._path}' is open read-only")

        cursor = self._conn.cursor()
        try:
            cursor.execute("BEGIN IMMEDIATE")
        except sqlite3.Error as exc:
            raise StorageError(f"cannot start transaction: {exc}") from exc

        try:
            yield cursor
        except sqlite3.Error as exc:
            cursor.execute("ROLLBACK")
            raise StorageError(f"transaction rolled back: {exc}") from exc
        except BaseException:
            cursor.execute("ROLLBACK")
            raise
        else:
            cursor.execute("COMMIT")

    def _query(self, sql: str, params: tuple[Any, ...] = ()) -> list[sqlite3.Row]:
        """Run a read query."""
        try:
            return self._conn.execute(sql, params).fetchall()
        except sqlite3.Error as exc:
            raise StorageError(f"query failed on '{self._path}': {exc}") from exc

    # -------------------------------------------------------------------------
    # Epoch Operations
    # -------------------------------------------------------------------------

    def upsert_epoch_info(self, authority_set: AuthoritySet) -> EpochWrite:
        """Record an epoch summary unless one exists."""
        with self._transaction() as cursor:
            return self._write_epoch_info(cursor, authority_set)

    def ensure_schedule_rows(self, epoch: int, planned: Sequence[PlannedSlot]) -> int:
        """Insert missing schedule rows. Existing rows are untouched."""
        with self._transaction() as cursor:
            return self._insert_schedule(cursor, epoch, planned)

    def record_epoch(
        self, authority_set: AuthoritySet, planned: Sequence[PlannedSlot]
    ) -> EpochWrite:
        """
        Write the epoch summary and its schedule rows as one atomic unit.

        On conflict the stored summary stays authoritative and no schedule
        rows are written: they would belong to an authority set that the
        stored history contradicts.
        """
        with self._transaction() as cursor:
            outcome = self._write_epoch_info(cursor, authority_set)
            if outcome is EpochWrite.CONFLICT:
                return outcome
            inserted = self._insert_schedule(cursor, authority_set.epoch, planned)

        logger.info(
            "Recorded epoch %d: summary %s, %d of %d schedule rows inserted",
            authority_set.epoch,
            outcome,
            inserted,
            len(planned),
        )
        return outcome

    def _write_epoch_info(self, cursor: sqlite3.Cursor, authority_set: AuthoritySet) -> EpochWrite:
        cursor.execute(
            f"SELECT * FROM {EPOCH_INFO.TABLE_NAME} WHERE epoch = ?",
            (authority_set.epoch,),
        )
        row = cursor.fetchone()

        if row is None:
            info = EpochInfo.from_authority_set(authority_set, self._now_fn())
            cursor.execute(
                f"""
                INSERT INTO {EPOCH_INFO.TABLE_NAME}
                    (epoch, start_slot, end_slot, authority_set_hash,
                     authority_set_len, created_at_utc)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    info.epoch,
                    info.start_slot,
                    info.end_slot,
                    info.authority_set_hash,
                    info.authority_set_len,
                    info.created_at_utc,
                ),
            )
            return EpochWrite.INSERTED

        stored = _epoch_info_from_row(row)
        if stored.matches(authority_set):
            return EpochWrite.UNCHANGED

        # An epoch's authority set is history. The first record wins.
        observed = EpochInfo.from_authority_set(authority_set, stored.created_at_utc)
        conflict = PersistenceConflict(authority_set.epoch, stored.describe(), observed.describe())
        logger.warning("Persistence conflict: %s", conflict.message)
        return EpochWrite.CONFLICT

    def _insert_schedule(
        self, cursor: sqlite3.Cursor, epoch: int, planned: Sequence[PlannedSlot]
    ) -> int:
        cursor.executemany(
            f"""
            INSERT INTO {BLOCKS.TABLE_NAME} (slot, epoch, planned_time_utc, status)
            VALUES (?, ?, ?, ?)
            ON CONFLICT(slot) DO NOTHING
            """,
            [
                (entry.slot, epoch, entry.planned_time_utc, BlockStatus.SCHEDULED.value)
                for entry in planned
            ],
        )
        return max(cursor.rowcount, 0)

    # -------------------------------------------------------------------------
    # Block Operations
    # -------------------------------------------------------------------------

    def advance_status(
        self,
        slot: int,
        status: BlockStatus,
        block_number: int | None = None,
        block_hash: str | None = None,
        produced_time_utc: str | None = None,
    ) -> bool:
        """
        Move a slot record forward in the status lattice.

        The status guard lives in the UPDATE itself, so the check and the
        write cannot be separated by another writer. Missing block fields
        keep their stored values.
        """
        accepting = statuses_accepting(status)
        if not accepting:
            logger.debug("slot %d: status %r is never written as an update", slot, status.value)
            return False

        placeholders = ", ".join("?" for _ in accepting)
        with self._transaction() as cursor:
            cursor.execute(
                f"""
                UPDATE {BLOCKS.TABLE_NAME}
                SET block_number = COALESCE(?, block_number),
                    block_hash = COALESCE(?, block_hash),
                    produced_time_utc = COALESCE(?, produced_time_utc),
                    status = ?
                WHERE slot = ? AND status IN ({placeholders})
                """,
                (block_number, block_hash, produced_time_utc, status.value, slot, *accepting),
            )
            if cursor.rowcount > 0:
                return True

            cursor.execute(f"SELECT status FROM {BLOCKS.TABLE_NAME} WHERE slot = ?", (slot,))
            row = cursor.fetchone()

        if row is not None:
            regression = StatusRegression(slot, row["status"], status.value)
            logger.debug("%s", regression.message)
        return False

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def read_latest_epoch(self) -> int | None:
        """Highest recorded epoch, or None for an empty database."""
        rows = self._query(f"SELECT MAX(epoch) AS epoch FROM {EPOCH_INFO.TABLE_NAME}")
        return rows[0]["epoch"]

    def read_epoch(self, epoch: int) -> StoredEpoch | None:
        """An epoch summary with its block records, or None if not recorded."""
        info_rows = self._query(
            f"SELECT * FROM {EPOCH_INFO.TABLE_NAME} WHERE epoch = ?",
            (epoch,),
        )
        if not info_rows:
            return None

        block_rows = self._query(
            f"SELECT * FROM {BLOCKS.TABLE_NAME} WHERE epoch = ? ORDER BY slot",
            (epoch,),
        )
        return StoredEpoch(
            info=_epoch_info_from_row(info_rows[0]),
            blocks=tuple(_block_from_row(row) for row in block_rows),
        )

    def read_blocks(self, epoch: int | None = None, limit: int | None = None) -> list[BlockRecord]:
        """Block records, newest slot first."""
        sql = f"SELECT * FROM {BLOCKS.TABLE_NAME}"
        params: tuple[Any, ...] = ()
        if epoch is not None:
            sql += " WHERE epoch = ?"
            params = (epoch,)
        sql += " ORDER BY slot DESC"
        if limit is not None:
            sql += " LIMIT ?"
            params = (*params, limit)
        return [_block_from_row(row) for row in self._query(sql, params)]

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def close(self) -> None:
        """Close database connection."""
        self._conn.close()

    def __enter__(self) -> SQLiteDatabase:
        """Context manager entry."""
        return self

    def __exit__(self, *args: object) -> None:
        """Context manager exit."""
        self.close()


def _epoch_info_from_row(row: sqlite3.Row) -> EpochInfo:
    return EpochInfo(
        epoch=row["epoch"],
        start_slot=row["start_slot"],
        end_slot=row["end_slot"],
        authority_set_hash=row["authority_set_hash"],
        authority_set_len=row["authority_set_len"],
        created_at_utc=row["created_at_utc"],
    )


def _block_from_row(row: sqlite3.Row) -> BlockRecord:
    return BlockRecord(
        slot=row["slot"],
        epoch=row["epoch"],
        planned_time_utc=row["planned_time_utc"],
        block_number=row["block_number"],
        block_hash=row["block_hash"],
        produced_time_utc=row["produced_time_utc"],
        status=BlockStatus(row["status"]),
    )
