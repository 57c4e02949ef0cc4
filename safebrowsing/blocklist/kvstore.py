from __future__ import annotations

import sqlite3
from pathlib import Path
from typing import Optional, Protocol

from blocklist.schema import TABLE


class KeyValueStore(Protocol):
    """Read-only byte-keyed map backing a blocklist."""

    def contains(self, key: bytes) -> bool:
        ...

    def get(self, key: bytes) -> Optional[bytes]:
        ...

    def close(self) -> None:
        ...


class SqliteKeyValueStore:
    """Read-only view of a store file written by :func:`blocklist.schema.build_store`.

    Opening fails with :class:`sqlite3.Error` if the file is not a blocklist
    store, so a corrupt file is caught when opened rather than on first lookup.
    """

    def __init__(self, db_path: str):
        self.db_path = db_path
        uri = Path(db_path).resolve().as_uri() + "?mode=ro"
        self._conn: Optional[sqlite3.Connection] = sqlite3.connect(
            uri, uri=True, timeout=2, check_same_thread=False
        )
        try:
            self._conn.execute(f"SELECT 1 FROM {TABLE} LIMIT 1").fetchone()
        except sqlite3.Error:
            self._conn.close()
            self._conn = None
            raise

    def _require(self) -> sqlite3.Connection:
        if self._conn is None:
            raise sqlite3.ProgrammingError(f"store {self.db_path!r} is closed")
        return self._conn

    def contains(self, key: bytes) -> bool:
        row = self._require().execute(f"SELECT 1 FROM {TABLE} WHERE k=?", (key,)).fetchone()
        return row is not None

    def get(self, key: bytes) -> Optional[bytes]:
        row = self._require().execute(f"SELECT v FROM {TABLE} WHERE k=?", (key,)).fetchone()
        if row is None or row[0] is None:
            return None
        return bytes(row[0])

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None


def open_sqlite_store(db_path: str) -> KeyValueStore:
    return SqliteKeyValueStore(db_path)
