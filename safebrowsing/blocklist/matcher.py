"""Suffix/prefix matching of URIs against a local SafeBrowsing-style blocklist.

Usage::

    with Blocklist("goog-malware-hash", "/var/lib/safebrowsing/malware.db") as bl:
        matched = bl.suffix_prefix_match("http://a.b.example.com/1/2.html?x=y")
        if matched is not None:
            print("Matched", matched)

Every failure (missing or stale store, unparseable URI) is reported as no
match; problems with the store are logged, throttled per store file.
"""

from __future__ import annotations

import logging
import time
from typing import Iterator, Optional, Tuple

from blocklist.blocklist_store import BlocklistStore, StoreFactory
from blocklist.candidates import iter_candidates
from blocklist.errors import MalformedUri, StaleData, StoreUnavailable, clean_text
from blocklist.kvstore import open_sqlite_store
from blocklist.logutil import log_throttled
from blocklist.schema import ReservedKey, content_hash
from blocklist.settings import load_settings
from blocklist.uri_canon import canonicalize_http_uri, parse_http_uri


logger = logging.getLogger(__name__)


# Data older than this is not trusted.
MAX_AGE_SECONDS = 1800


def _now() -> int:
    return int(time.time())


def _decode_int(raw: Optional[bytes]) -> Optional[int]:
    if raw is None:
        return None
    try:
        return int(raw.decode("ascii").strip())
    except (UnicodeDecodeError, ValueError):
        return None


class Blocklist:
    def __init__(
        self,
        blocklist: str,
        dbfile: str,
        apikey: Optional[str] = None,
        *,
        store_factory: StoreFactory = open_sqlite_store,
        log_interval_seconds: float = 60,
    ):
        self._blocklist = blocklist
        self.dbfile = dbfile
        # Only the updater talks to the service; kept so callers can hand
        # one object to both.
        self.apikey = apikey
        self.log_interval_seconds = log_interval_seconds
        self._store = BlocklistStore(dbfile, store_factory=store_factory)

    def __enter__(self) -> "Blocklist":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @property
    def blocklist(self) -> str:
        return self._blocklist

    def _warn(self, kind: str, exc: Exception) -> None:
        log_throttled(
            logger,
            f"{kind}:{self.dbfile}",
            "Blocklist %s: %s",
            self._blocklist,
            exc,
            interval_seconds=self.log_interval_seconds,
        )

    def _meta(self, key: ReservedKey) -> Optional[bytes]:
        try:
            self._store.ensure_fresh()
            return self._store.read_metadata(key)
        except StoreUnavailable as exc:
            self._warn("unavailable", exc)
            return None

    def timestamp(self) -> Optional[int]:
        """Time of the last successful update, seconds since the epoch."""
        return _decode_int(self._meta(ReservedKey.TIMESTAMP))

    def last_attempt(self) -> Optional[int]:
        return _decode_int(self._meta(ReservedKey.LAST_ATTEMPT))

    def error_count(self) -> Optional[int]:
        return _decode_int(self._meta(ReservedKey.ERRORS))

    def version(self) -> Tuple[Optional[int], Optional[int]]:
        return (
            _decode_int(self._meta(ReservedKey.MAJOR_VERSION)),
            _decode_int(self._meta(ReservedKey.MINOR_VERSION)),
        )

    def clientkey(self) -> Optional[bytes]:
        return self._meta(ReservedKey.CLIENT_KEY)

    def wrappedkey(self) -> Optional[bytes]:
        return self._meta(ReservedKey.WRAPPED_KEY)

    def check_uri(self, uristr: str) -> bool:
        """Return True if the already canonical ``uristr`` is in the blocklist.

        Reads whatever store is currently open; :meth:`suffix_prefix_match`
        takes care of (re)opening it.
        """
        logger.debug("Checking URI: '%s'", clean_text(uristr))
        return self._store.lookup(content_hash(uristr))

    def iter_candidates(self, uristr: str) -> Iterator[str]:
        """Strings :meth:`suffix_prefix_match` would probe for ``uristr``, in order."""
        canon = canonicalize_http_uri(uristr)
        if canon is None:
            return iter(())
        return iter_candidates(canon)

    def _check_fresh(self) -> None:
        ts = _decode_int(self._store.read_metadata(ReservedKey.TIMESTAMP))
        if ts is None:
            raise StaleData(self.dbfile, None, None)
        age = _now() - ts
        if age >= MAX_AGE_SECONDS:
            raise StaleData(self.dbfile, ts, age)

    def suffix_prefix_match(self, uristr: str) -> Optional[str]:
        """Return the canonical host/path string of ``uristr`` found in the blocklist.

        Host suffixes and path prefixes are tried in the order given by
        :func:`blocklist.candidates.iter_candidates`; the first hit wins.
        Returns None if nothing matched or the check could not be made.
        """
        try:
            self._store.ensure_fresh()
            self._check_fresh()
            canon = parse_http_uri(uristr)
            for candidate in iter_candidates(canon):
                if self.check_uri(candidate):
                    return candidate
        except StoreUnavailable as exc:
            self._warn("unavailable", exc)
        except StaleData as exc:
            self._warn("stale", exc)
        except MalformedUri as exc:
            logger.debug("Not matching '%s': %s", clean_text(uristr), exc)
        return None

    def close(self) -> None:
        self._store.close()


_blocklist: Optional[Blocklist] = None


def get_blocklist() -> Blocklist:
    global _blocklist
    if _blocklist is None:
        s = load_settings()
        _blocklist = Blocklist(
            s.blocklist,
            s.db_path,
            s.apikey,
            log_interval_seconds=s.log_interval_seconds,
        )
    return _blocklist


def reset_blocklist() -> None:
    global _blocklist
    if _blocklist is not None:
        _blocklist.close()
    _blocklist = None
