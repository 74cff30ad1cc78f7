"""Key-value storage: SQLite-backed string-keyed document store.

Every entity lives in one table. The entity type is encoded in the key
prefix (device:, check:, plan:, settings:), so a prefix scan is the only
index available to callers.
"""

from __future__ import annotations

import json
import logging
import re
import sqlite3
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from pathlib import Path
from typing import Any

from checkplan.config import settings
from checkplan.errors import StorageError

logger = logging.getLogger(__name__)

_TABLE_NAME_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class KVStore:
    """SQLite-backed key-value store with upsert semantics and prefix scan."""

    def __init__(
        self,
        db_path: Path | str | None = None,
        table: str | None = None,
        timeout: float | None = None,
    ) -> None:
        self._db_path = Path(db_path or settings.db_path)
        self._table = table or settings.kv_table_name
        if not _TABLE_NAME_RE.match(self._table):
            raise ValueError(f"Invalid table name: {self._table!r}")
        self._timeout = timeout if timeout is not None else settings.kv_timeout_seconds
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    @contextmanager
    def _conn(self, operation: str, key: str | None = None) -> Iterator[sqlite3.Connection]:
        """Open a connection for one call; commit on success, raise StorageError on failure."""
        conn: sqlite3.Connection | None = None
        try:
            conn = sqlite3.connect(str(self._db_path), timeout=self._timeout)
            conn.execute("PRAGMA journal_mode=WAL")
            with conn:
                yield conn
        except sqlite3.Error as e:
            raise StorageError(operation, key, e) from e
        finally:
            if conn is not None:
                conn.close()

    def _init_db(self) -> None:
        with self._conn("init") as conn:
            conn.execute(f"""
                CREATE TABLE IF NOT EXISTS "{self._table}" (
                    key   TEXT NOT NULL PRIMARY KEY,
                    value TEXT NOT NULL
                )
            """)

    # ── Single key ────────────────────────────────────────────────────────

    def get(self, key: str) -> Any | None:
        """Return the value stored at ``key`` or None when absent."""
        with self._conn("get", key) as conn:
            row = conn.execute(
                f'SELECT value FROM "{self._table}" WHERE key = ?', (key,)
            ).fetchone()
        return json.loads(row[0]) if row else None

    def set(self, key: str, value: Any) -> None:
        """Create or replace the whole value at ``key``."""
        payload = json.dumps(value)
        with self._conn("set", key) as conn:
            conn.execute(
                f'INSERT INTO "{self._table}" (key, value) VALUES (?, ?) '
                "ON CONFLICT(key) DO UPDATE SET value = excluded.value",
                (key, payload),
            )

    def delete(self, key: str) -> None:
        """Delete ``key``; deleting a missing key is not an error."""
        with self._conn("delete", key) as conn:
            conn.execute(f'DELETE FROM "{self._table}" WHERE key = ?', (key,))

    # ── Batches ───────────────────────────────────────────────────────────

    def mget(self, keys: Sequence[str]) -> list[Any]:
        """Return values for ``keys`` in input order; missing keys are omitted."""
        if not keys:
            return []
        placeholders = ", ".join("?" for _ in keys)
        with self._conn("mget") as conn:
            rows = conn.execute(
                f'SELECT key, value FROM "{self._table}" WHERE key IN ({placeholders})',
                tuple(keys),
            ).fetchall()
        found = {k: v for k, v in rows}
        return [json.loads(found[k]) for k in keys if k in found]

    def mset(self, keys: Sequence[str], values: Sequence[Any]) -> None:
        """Upsert many keys in one call.

        Not a transaction callers may rely on across unrelated keys.
        """
        if len(keys) != len(values):
            raise ValueError(f"mset got {len(keys)} keys but {len(values)} values")
        if not keys:
            return
        rows = [(k, json.dumps(v)) for k, v in zip(keys, values)]
        with self._conn("mset") as conn:
            conn.executemany(
                f'INSERT INTO "{self._table}" (key, value) VALUES (?, ?) '
                "ON CONFLICT(key) DO UPDATE SET value = excluded.value",
                rows,
            )

    def mdel(self, keys: Sequence[str]) -> None:
        """Delete many keys; missing keys are ignored."""
        if not keys:
            return
        with self._conn("mdel") as conn:
            conn.executemany(
                f'DELETE FROM "{self._table}" WHERE key = ?', [(k,) for k in keys]
            )

    # ── Prefix scan ───────────────────────────────────────────────────────

    def scan_by_prefix(self, prefix: str) -> list[tuple[str, Any]]:
        """Return (key, value) pairs whose key starts with ``prefix``.

        Matching is a plain leading-substring comparison, so ``%`` and ``_``
        in the prefix carry no wildcard meaning.
        """
        with self._conn("scan_by_prefix", prefix) as conn:
            rows = conn.execute(
                f'SELECT key, value FROM "{self._table}" '
                "WHERE substr(key, 1, ?) = ? ORDER BY key",
                (len(prefix), prefix),
            ).fetchall()
        return [(k, json.loads(v)) for k, v in rows]

    def count(self, prefix: str = "") -> int:
        """Number of keys under ``prefix``."""
        with self._conn("count", prefix) as conn:
            row = conn.execute(
                f'SELECT COUNT(*) FROM "{self._table}" WHERE substr(key, 1, ?) = ?',
                (len(prefix), prefix),
            ).fetchone()
        return int(row[0])
