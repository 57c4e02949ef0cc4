from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional


DEFAULT_LIST = "goog-malware-hash"
DEFAULT_DB_DIR = "/var/lib/safebrowsing"


def _env_str(name: str, default: str) -> str:
    v = (os.environ.get(name) or "").strip()
    return v or default


def _env_int(name: str, default: int) -> int:
    v = (os.environ.get(name) or "").strip()
    if not v:
        return int(default)
    try:
        return int(v)
    except ValueError:
        return int(default)


@dataclass(frozen=True)
class BlocklistSettings:
    blocklist: str
    db_path: str
    apikey: Optional[str]
    log_interval_seconds: int


def load_settings() -> BlocklistSettings:
    name = _env_str("SAFEBROWSING_LIST", DEFAULT_LIST)
    return BlocklistSettings(
        blocklist=name,
        db_path=_env_str("SAFEBROWSING_DB", os.path.join(DEFAULT_DB_DIR, f"{name}.db")),
        apikey=(os.environ.get("SAFEBROWSING_APIKEY") or "").strip() or None,
        log_interval_seconds=max(0, _env_int("SAFEBROWSING_LOG_INTERVAL_SECONDS", 60)),
    )
