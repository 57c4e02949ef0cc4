from __future__ import annotations

import logging
import threading
import time
from typing import Dict


_lock = threading.Lock()
_last_log: Dict[str, float] = {}


def should_log(key: str, *, interval_seconds: float) -> bool:
    now = time.monotonic()
    with _lock:
        last = _last_log.get(key)
        if last is not None and (now - last) < float(interval_seconds):
            return False
        _last_log[key] = now
        return True


def reset_throttle() -> None:
    with _lock:
        _last_log.clear()


def log_throttled(
    logger: logging.Logger,
    key: str,
    message: str,
    *args,
    interval_seconds: float,
    level: int = logging.WARNING,
) -> bool:
    """Log at most once per interval per key.

    Lookups run once per URI, so a missing or stale store would otherwise
    repeat the same warning for every request. Returns True if emitted.
    """
    if not should_log(key, interval_seconds=interval_seconds):
        return False
    logger.log(level, message, *args)
    return True
