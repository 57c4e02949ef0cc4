from __future__ import annotations

import logging
import os
import sqlite3
from typing import Callable, Optional

from blocklist.errors import StoreUnavailable
from blocklist.kvstore import KeyValueStore, open_sqlite_store
from blocklist.schema import ReservedKey


logger = logging.getLogger(__name__)


StoreFactory = Callable[[str], KeyValueStore]


class BlocklistStore:
    """Reopens the store file whenever it has been replaced since the last open.

    Updaters replace the file with a rename, so a newer mtime means a new
    file; the open handle keeps reading the old one until we reopen.
    """

    def __init__(self, db_path: str, *, store_factory: StoreFactory = open_sqlite_store):
        self.db_path = db_path
        self._store_factory = store_factory
        self._db: Optional[KeyValueStore] = None
        self._db_mtime: Optional[float] = None

    @property
    def is_open(self) -> bool:
        return self._db is not None

    def ensure_fresh(self) -> None:
        try:
            st = os.stat(self.db_path)
        except OSError as exc:
            raise StoreUnavailable(self.db_path, f"stat failed: {exc.strerror or exc}") from exc

        if self._db is not None and self._db_mtime is not None and st.st_mtime <= self._db_mtime:
            return

        self.close()
        try:
            db = self._store_factory(self.db_path)
        except (OSError, sqlite3.Error) as exc:
            raise StoreUnavailable(self.db_path, f"open failed: {exc}") from exc
        self._db = db
        self._db_mtime = st.st_mtime
        logger.info("Opened blocklist store %s (mtime %s)", self.db_path, int(st.st_mtime))

    def lookup(self, key: bytes) -> bool:
        if self._db is None:
            return False
        try:
            return self._db.contains(key)
        except sqlite3.Error as exc:
            raise StoreUnavailable(self.db_path, f"lookup failed: {exc}") from exc

    def read_metadata(self, key: ReservedKey) -> Optional[bytes]:
        if self._db is None:
            return None
        try:
            return self._db.get(key.value)
        except sqlite3.Error as exc:
            raise StoreUnavailable(self.db_path, f"metadata read failed: {exc}") from exc

    def close(self) -> None:
        if self._db is not None:
            self._db.close()
        self._db = None
        self._db_mtime = None
