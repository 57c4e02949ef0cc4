"""On-disk layout of a blocklist store.

The store is a SQLite file holding one byte-keyed table. Content rows are
keyed by the 16-byte MD5 digest of a canonical candidate string
(``host + path [+ "?" + query]``, no scheme). Metadata rows are keyed by the
sentinel strings in :class:`ReservedKey`, which can never collide with a
16-byte digest because they are 9 bytes long.

Both the reader in this package and whatever updater fills the file rely on
this module, so it is the single place the layout is described.
"""

from __future__ import annotations

import hashlib
import os
import sqlite3
import tempfile
from enum import Enum
from pathlib import Path
from typing import Dict, Iterable, Mapping, Optional, Union

from blocklist.uri_canon import encode_text


TABLE = "blocklist"
PRESENT = b"1"


class ReservedKey(Enum):
    MAJOR_VERSION = b"__MAJOR__"
    MINOR_VERSION = b"__MINOR__"
    TIMESTAMP = b"__TIME__"
    LAST_ATTEMPT = b"__LAST__"
    CLIENT_KEY = b"__CKEY__"
    WRAPPED_KEY = b"__WKEY__"
    ERRORS = b"__ERRS__"


SPECIAL_KEYS = tuple(k.value for k in ReservedKey)


def content_hash(canonical: str) -> bytes:
    """Store key for one canonical candidate string."""
    return hashlib.md5(encode_text(canonical)).digest()


def init_db(conn: sqlite3.Connection) -> None:
    conn.execute(
        f"""
        CREATE TABLE IF NOT EXISTS {TABLE} (
            k BLOB PRIMARY KEY,
            v BLOB NOT NULL
        );
        """
    )


def _meta_bytes(value: Union[bytes, str, int]) -> bytes:
    if isinstance(value, bytes):
        return value
    return str(value).encode("ascii")


def build_store(
    db_path: Union[str, Path],
    canonical_uris: Iterable[str],
    *,
    metadata: Optional[Mapping[ReservedKey, Union[bytes, str, int]]] = None,
) -> int:
    """Write a fresh store at ``db_path`` and return the number of entries.

    The file is built beside ``db_path`` and renamed over it, so a reader
    holding the old file never sees a partial one.
    """
    path = Path(db_path)
    path.parent.mkdir(parents=True, exist_ok=True)

    keys: Dict[bytes, bytes] = {}
    for uri in canonical_uris:
        if uri:
            keys[content_hash(uri)] = PRESENT

    fd, tmp_name = tempfile.mkstemp(prefix=path.name + ".", suffix=".tmp", dir=str(path.parent))
    os.close(fd)
    try:
        conn = sqlite3.connect(tmp_name)
        try:
            with conn:
                init_db(conn)
                conn.executemany(
                    f"INSERT OR REPLACE INTO {TABLE}(k,v) VALUES(?,?)",
                    list(keys.items()),
                )
                for key, value in (metadata or {}).items():
                    conn.execute(
                        f"INSERT INTO {TABLE}(k,v) VALUES(?,?) ON CONFLICT(k) DO UPDATE SET v=excluded.v",
                        (key.value, _meta_bytes(value)),
                    )
        finally:
            conn.close()
        os.replace(tmp_name, path)
    except BaseException:
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise
    return len(keys)
