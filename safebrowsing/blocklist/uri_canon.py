from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Tuple
from urllib.parse import quote, unquote, urlsplit

from blocklist.errors import MalformedUri, UnsupportedScheme
from blocklist.ip_canon import canonicalize_ip


_SCHEMES = ("http", "https")

# Characters a URI may carry unescaped (RFC 2396 reserved + unreserved, plus "%").
_URIC_SAFE = ";/?:@&=+$,[]-_.!~*'()%"


@dataclass(frozen=True)
class CanonicalUri:
    """Decomposed canonical form of an http(s) URI.

    Exactly one of ``ip`` and ``labels`` is set. ``path`` holds the resolved
    segments with their trailing ``/`` already attached, so joining them
    gives the canonical path.
    """

    scheme: str
    ip: Optional[str]
    labels: Tuple[str, ...]
    path: Tuple[str, ...]
    query: Optional[str] = None

    @property
    def host(self) -> str:
        if self.ip is not None:
            return self.ip
        return ".".join(self.labels)

    @property
    def path_string(self) -> str:
        return "".join(self.path)

    @property
    def url(self) -> str:
        s = f"{self.scheme}://{self.host}{self.path_string}"
        if self.query is not None:
            s += "?" + self.query
        return s

    def __str__(self) -> str:
        return self.url


def encode_text(text: str) -> bytes:
    # Percent-decoding yields one character per byte; anything wider came
    # from the caller and is sent as UTF-8.
    try:
        return text.encode("latin-1")
    except UnicodeEncodeError:
        return text.encode("utf-8")


def escape(text: str, *, safe: str = "") -> str:
    """Percent-escape everything except ``A-Za-z0-9-._~`` (and ``safe``)."""
    return quote(encode_text(text), safe=safe)


def unescape_fully(text: str) -> str:
    """Percent-decode repeatedly until the string stops changing."""
    while True:
        unesc = unquote(text, encoding="latin-1")
        if unesc == text:
            return text
        text = unesc


def _resolve_path(raw_path: str) -> List[str]:
    segments = raw_path.split("/")
    last = len(segments) - 1
    path: List[str] = []
    for i, seg in enumerate(segments):
        # Segment parameters (";...") are not part of the matched path.
        seg = escape(seg.split(";", 1)[0])
        if seg == "..":
            if len(path) > 1:
                path.pop()
        elif seg == ".":
            continue
        elif i > 0 and seg == "":
            continue
        else:
            if i == 0 or i < last:
                seg += "/"
            path.append(seg)
    return path


def _build(scheme: str, hostname: str, raw_path: str, query: Optional[str]) -> CanonicalUri:
    host = escape(hostname.lower())
    ip = canonicalize_ip(host)
    labels: Tuple[str, ...] = ()
    if ip is None:
        labels = tuple(p for p in host.split(".") if p)
        if not labels:
            raise MalformedUri(f"empty host {host!r}")

    path = _resolve_path(raw_path) if raw_path else []
    if query is not None:
        query = escape(query, safe=_URIC_SAFE)

    return CanonicalUri(
        scheme=scheme,
        ip=ip,
        labels=labels,
        path=tuple(path),
        query=query,
    )


def parse_http_uri(uristr: str) -> CanonicalUri:
    """Canonicalize ``uristr`` or raise :class:`MalformedUri`."""
    text = unescape_fully((uristr or "").strip(" \t\r\n\f\v"))
    try:
        parts = urlsplit(text)
        hostname = parts.hostname
    except ValueError as exc:
        raise MalformedUri(str(exc)) from exc

    scheme = (parts.scheme or "").lower()
    if scheme not in _SCHEMES:
        raise UnsupportedScheme(scheme)
    if not hostname:
        raise MalformedUri("missing host")

    # A "?" with nothing after it still counts as having a query for the
    # empty-path rule, but no query candidate is probed.
    has_query = "?" in text.split("#", 1)[0]
    raw_path = parts.path
    if not raw_path and not has_query:
        raw_path = "/"

    try:
        return _build(scheme, hostname, raw_path, parts.query or None)
    except UnicodeEncodeError as exc:
        raise MalformedUri(f"unencodable character: {exc.reason}") from exc


def canonicalize_http_uri(uristr: str) -> Optional[CanonicalUri]:
    try:
        return parse_http_uri(uristr)
    except MalformedUri:
        return None
