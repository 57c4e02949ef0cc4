from __future__ import annotations

import re


class BlocklistError(Exception):
    """Base class for failures that degrade a lookup to "no match"."""


class StoreUnavailable(BlocklistError):
    """The backing store file could not be stat'ed or opened."""

    def __init__(self, path: str, reason: str):
        super().__init__(f"blocklist store {path!r} unavailable: {reason}")
        self.path = path
        self.reason = reason


class StaleData(BlocklistError):
    """The store's freshness timestamp is missing or too old."""

    def __init__(self, path: str, timestamp, age_seconds):
        if timestamp is None:
            msg = f"blocklist store {path!r} has no freshness timestamp"
        else:
            msg = f"blocklist store {path!r} is stale: timestamp {timestamp} is {age_seconds}s old"
        super().__init__(msg)
        self.path = path
        self.timestamp = timestamp
        self.age_seconds = age_seconds


class MalformedUri(BlocklistError):
    """The input cannot be canonicalized into an http(s) URI."""


class UnsupportedScheme(MalformedUri):
    def __init__(self, scheme: str):
        super().__init__(f"unsupported scheme {scheme!r}")
        self.scheme = scheme


def clean_text(text: str, *, max_len: int = 200) -> str:
    s = (text or "").replace("\r", " ").replace("\n", " ").strip()
    # Remove other control chars.
    s = "".join(ch if (ch >= " " and ch != "\x7f") else " " for ch in s)
    s = re.sub(r"\s+", " ", s).strip()
    if max_len and len(s) > max_len:
        s = s[: max_len - 3].rstrip() + "..."
    return s
