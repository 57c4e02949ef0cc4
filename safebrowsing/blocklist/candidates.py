from __future__ import annotations

from typing import Iterator, List

from blocklist.uri_canon import CanonicalUri


MAX_HOST_SUFFIXES = 5
MAX_PATH_PREFIXES = 5


def host_suffixes(canon: CanonicalUri) -> List[str]:
    """Host strings to try, longest first.

    An IP host is tried as-is. Otherwise leading labels are dropped one at
    a time, never reaching the bare top-level label; a two-letter last label
    is taken as a country TLD and costs one more suffix.
    """
    if canon.ip is not None:
        return [canon.ip]
    labels = list(canon.labels)
    max_hosts = min(MAX_HOST_SUFFIXES, len(labels) - 1)
    if labels and len(labels[-1]) == 2:
        max_hosts -= 1
    return [".".join(labels[i:]) for i in range(max(0, max_hosts))]


def path_prefixes(canon: CanonicalUri) -> List[str]:
    """Full path first, then with trailing segments removed one at a time."""
    path = canon.path
    max_paths = min(MAX_PATH_PREFIXES, len(path))
    return ["".join(path[: len(path) - j]) for j in range(max_paths)]


def iter_candidates(canon: CanonicalUri) -> Iterator[str]:
    """Yield the strings to probe for ``canon`` in priority order.

    For each host suffix the full path with its query comes first (when
    there is a query), then the path prefixes without query. Calling this
    again on the same ``canon`` yields the same sequence.
    """
    full_path = canon.path_string
    prefixes = path_prefixes(canon)
    for host in host_suffixes(canon):
        if canon.query is not None:
            yield f"{host}{full_path}?{canon.query}"
        for p in prefixes:
            yield host + p
