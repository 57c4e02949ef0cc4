from __future__ import annotations

import os
import sys
import time

import pytest


_APP_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if _APP_DIR not in sys.path:
    sys.path.insert(0, _APP_DIR)

from blocklist import logutil  # noqa: E402
from blocklist.schema import ReservedKey, build_store  # noqa: E402


@pytest.fixture(autouse=True)
def _reset_log_throttle():
    logutil.reset_throttle()
    yield
    logutil.reset_throttle()


@pytest.fixture
def make_store(tmp_path):
    """Build a store file; ``timestamp`` defaults to now, pass None to omit it."""

    default_path = tmp_path / "goog-malware-hash.db"

    def _make(entries, *, timestamp="now", path=None, **extra_meta):
        meta = {}
        if timestamp == "now":
            meta[ReservedKey.TIMESTAMP] = int(time.time())
        elif timestamp is not None:
            meta[ReservedKey.TIMESTAMP] = timestamp
        for name, value in extra_meta.items():
            meta[ReservedKey[name.upper()]] = value
        target = path or default_path
        build_store(target, entries, metadata=meta)
        return str(target)

    return _make
