"""SQLite-backed content store for published Posts and Projects.

The store owns every record. Each row maps (kind, key) to the serialized
record plus the source file path that owns the key, which the validator
needs to tell a re-ingested file apart from a second file claiming the
same slug or project name.

Callers never get a reference into the store: get() and list() decode a
fresh record from the stored JSON every time.

Concurrency:
    - Every write runs in its own SQLite transaction and is serialized by a
      process-wide write lock, so a reader never sees a torn row.
    - key_lock(kind, key) hands out the lock for the key's stripe in a fixed
      pool. Writers hold it across the ownership check and the upsert so two
      files racing for the same key are linearized. Distinct keys may share
      a stripe; each writer only ever holds one.
    - Reads take no lock and see either the old or the new row.
"""

from __future__ import annotations

import hashlib
import json
import logging
import os
import sqlite3
import threading
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Iterator, Optional, Sequence, Tuple, Union

from content.errors import ContentStoreError, StoreClosedError
from content.models import Post, Project, RecordKind, RECORD_TYPES

logger = logging.getLogger(__name__)

Record = Union[Post, Project]


def _record_kind(kind: Union[RecordKind, str]) -> RecordKind:
    kind = RecordKind(kind)
    if kind not in RECORD_TYPES:
        raise ValueError(f"No records are stored for kind {kind.value!r}")
    return kind


def _decode(kind: RecordKind, payload: str) -> Record:
    return RECORD_TYPES[kind].from_dict(json.loads(payload))


class RecordListing:
    """Snapshot of all records of one kind, decoded lazily.

    Rows are read once, when the listing is created. Iterating decodes one
    record at a time and can be repeated any number of times; later
    upserts are never reflected.
    """

    def __init__(self, kind: RecordKind, payloads: Sequence[str]):
        self.kind = kind
        self._payloads = tuple(payloads)

    def __iter__(self) -> Iterator[Record]:
        for payload in self._payloads:
            yield _decode(self.kind, payload)

    def __len__(self) -> int:
        return len(self._payloads)


class ContentStore:
    """Durable slug->Post and name->Project mapping with atomic upsert."""

    DB_FILENAME = "content.db"

    # Size of the key lock pool
    KEY_LOCK_STRIPES = 64

    def __init__(self, storage_path: str):
        self.storage_path = storage_path
        os.makedirs(self.storage_path, mode=0o755, exist_ok=True)
        self.db_path = os.path.join(self.storage_path, self.DB_FILENAME)
        self._write_lock = threading.Lock()
        self._key_locks = tuple(threading.Lock() for _ in range(self.KEY_LOCK_STRIPES))
        self._closed = False
        self._ensure_schema()
        logger.info(f"ContentStore opened at {self.db_path}")

    def __enter__(self) -> "ContentStore":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        """Close the store. Further operations raise StoreClosedError."""
        if not self._closed:
            self._closed = True
            logger.info(f"ContentStore closed: {self.db_path}")

    @contextmanager
    def _connection(self) -> Iterator[sqlite3.Connection]:
        if self._closed:
            raise StoreClosedError(f"Content store {self.db_path} is closed")
        conn = sqlite3.connect(self.db_path, timeout=30)
        conn.row_factory = sqlite3.Row
        try:
            with conn:
                yield conn
        finally:
            conn.close()

    def _ensure_schema(self) -> None:
        try:
            with self._connection() as conn:
                conn.execute("PRAGMA journal_mode=WAL")
                conn.execute(
                    """
                    CREATE TABLE IF NOT EXISTS content_records (
                        kind TEXT NOT NULL,
                        key TEXT NOT NULL,
                        source_path TEXT NOT NULL,
                        payload TEXT NOT NULL,
                        content_hash TEXT NOT NULL,
                        updated_at TEXT NOT NULL,
                        PRIMARY KEY (kind, key)
                    )
                    """
                )
                conn.execute(
                    "CREATE INDEX IF NOT EXISTS idx_content_source_path "
                    "ON content_records(source_path)"
                )
        except sqlite3.Error as e:
            logger.error(f"Failed to initialize content database {self.db_path}: {e}")
            raise ContentStoreError(f"Cannot initialize content store: {e}") from e

    def _lock_for(self, kind: Union[RecordKind, str], key: str) -> threading.Lock:
        lock_id = (_record_kind(kind).value, key)
        return self._key_locks[hash(lock_id) % len(self._key_locks)]

    @contextmanager
    def key_lock(self, kind: Union[RecordKind, str], key: str) -> Iterator[None]:
        """Hold the write lock for a single key.

        Used around check-then-upsert sequences so no other writer touching
        the same key can interleave.
        """
        with self._lock_for(kind, key):
            yield

    def upsert(self, kind: Union[RecordKind, str], key: str, record: Record, source_path: str) -> bool:
        """Insert or replace the record stored under key.

        Returns:
            True if the stored row changed, False if identical content was
            already stored for the same source path
        """
        kind = _record_kind(kind)
        if not isinstance(record, RECORD_TYPES[kind]):
            raise TypeError(f"Expected {RECORD_TYPES[kind].__name__}, got {type(record).__name__}")

        payload = json.dumps(record.to_dict(), sort_keys=True)
        content_hash = hashlib.sha256(payload.encode("utf-8")).hexdigest()
        updated_at = datetime.now(timezone.utc).isoformat()

        try:
            with self._write_lock, self._connection() as conn:
                cursor = conn.execute(
                    """
                    INSERT INTO content_records (kind, key, source_path, payload, content_hash, updated_at)
                    VALUES (?, ?, ?, ?, ?, ?)
                    ON CONFLICT(kind, key) DO UPDATE SET
                        source_path = excluded.source_path,
                        payload = excluded.payload,
                        content_hash = excluded.content_hash,
                        updated_at = excluded.updated_at
                    WHERE content_records.content_hash != excluded.content_hash
                       OR content_records.source_path != excluded.source_path
                    """,
                    (kind.value, key, source_path, payload, content_hash, updated_at),
                )
                changed = cursor.rowcount > 0
        except sqlite3.Error as e:
            logger.error(f"Failed to store {kind.value} '{key}' from {source_path}: {e}")
            raise ContentStoreError(f"Failed to store {kind.value} '{key}': {e}") from e

        if changed:
            logger.info(f"Stored {kind.value} '{key}' from {source_path}")
        else:
            logger.debug(f"{kind.value} '{key}' unchanged, nothing written")
        return changed

    def _fetch_one(self, query: str, params: Tuple[Any, ...]) -> Optional[sqlite3.Row]:
        try:
            with self._connection() as conn:
                return conn.execute(query, params).fetchone()
        except sqlite3.Error as e:
            logger.error(f"Content store read failed: {e}")
            raise ContentStoreError(f"Content store read failed: {e}") from e

    def get(self, kind: Union[RecordKind, str], key: str) -> Optional[Record]:
        """Return a copy of the record stored under key, or None."""
        kind = _record_kind(kind)
        row = self._fetch_one(
            "SELECT payload FROM content_records WHERE kind = ? AND key = ?",
            (kind.value, key),
        )
        if row is None:
            return None
        return _decode(kind, row["payload"])

    def owner_of(self, kind: Union[RecordKind, str], key: str) -> Optional[str]:
        """Return the source path that owns key, or None if key is unused."""
        kind = _record_kind(kind)
        row = self._fetch_one(
            "SELECT source_path FROM content_records WHERE kind = ? AND key = ?",
            (kind.value, key),
        )
        return row["source_path"] if row else None

    def list(self, kind: Union[RecordKind, str]) -> RecordListing:
        """Snapshot every record of a kind, ordered by key."""
        kind = _record_kind(kind)
        try:
            with self._connection() as conn:
                rows = conn.execute(
                    "SELECT payload FROM content_records WHERE kind = ? ORDER BY key",
                    (kind.value,),
                ).fetchall()
        except sqlite3.Error as e:
            logger.error(f"Failed to list {kind.value} records: {e}")
            raise ContentStoreError(f"Failed to list {kind.value} records: {e}") from e
        return RecordListing(kind, [row["payload"] for row in rows])
