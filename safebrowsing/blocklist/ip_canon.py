from __future__ import annotations

import re
from typing import List, Optional


_DOTS_RE = re.compile(r"\.+")
_HEX_RE = re.compile(r"^0x([0-9a-f]+)$", re.IGNORECASE)
_OCT_RE = re.compile(r"^0([0-7]+)$")
_DEC_RE = re.compile(r"^([0-9]+)$")

_MAX_PARTS = 4


def _part_value(part: str) -> Optional[int]:
    """Numeric value of one dotted component, or None if it is not a number.

    Only the trailing digits are kept (9 hex, 12 octal, 11 decimal) so a
    huge component cannot produce an unbounded integer.
    """
    m = _HEX_RE.match(part)
    if m:
        return int(m.group(1)[-9:], 16)
    m = _OCT_RE.match(part)
    if m:
        return int(("0" + m.group(1))[-12:], 8)
    m = _DEC_RE.match(part)
    if m:
        return int(m.group(1)[-11:], 10)
    return None


def canonicalize_ip(host: str) -> Optional[str]:
    """Normalize a host written as an IPv4 address to dotted-decimal form.

    Accepts the loose forms browsers accept: 1 to 4 components, each in
    decimal, octal (leading ``0``) or hex (leading ``0x``). A last component
    larger than a byte fills the remaining bytes, e.g. ``167838211`` is
    ``10.1.2.3`` and ``276.2.3`` is ``20.2.3.0``.

    Returns None when ``host`` is not an IP address.
    """
    parts = _DOTS_RE.split(host or "")
    if len(parts) > _MAX_PARTS:
        return None

    values: List[int] = []
    for part in parts:
        n = _part_value(part)
        if n is None:
            return None
        values.append(n)

    out: List[str] = []
    last = len(values) - 1
    for i, n in enumerate(values):
        if n <= 255:
            out.append(str(n))
        elif i != last:
            out.append(str(n & 0xFF))
        else:
            started = False
            if n > 0xFFFFFFFF:
                n &= 0xFFFFFFFF
                started = True
            emitted = 0
            shift = 24
            while len(out) < _MAX_PARTS and shift >= 0:
                b = (n >> shift) & 0xFF
                if started or b != 0:
                    started = True
                    out.append(str(b))
                    emitted += 1
                shift -= 8
            if shift < 0 and emitted == 0:
                return None

    while len(out) < _MAX_PARTS:
        out.append("0")
    return ".".join(out)
