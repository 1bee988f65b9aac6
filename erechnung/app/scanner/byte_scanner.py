"""
Raw byte-pattern scanning over an immutable PDF buffer.

Everything in this module is pure: no state, no I/O, a single forward pass
per call. Absence is always reported as None.
"""

from __future__ import annotations

from typing import Iterable, Optional, Tuple

from erechnung.app.schemas.extraction import ObjectRegion, RegionKind


def find_pattern(
    haystack: bytes,
    needle: bytes,
    start: int = 0,
) -> Optional[int]:
    """Return the offset of the first occurrence of needle at or after start."""
    if not needle:
        return None
    pos = haystack.find(needle, max(start, 0))
    return pos if pos >= 0 else None


def rfind_pattern(
    haystack: bytes,
    needle: bytes,
    end: int,
    window: int,
) -> Optional[int]:
    """
    Return the offset of the last occurrence of needle that starts within
    ``[end - window, end)``.

    The match itself may extend past ``end``.
    """
    if not needle or window <= 0:
        return None
    lower = max(end - window, 0)
    pos = haystack.rfind(needle, lower, end + len(needle) - 1)
    return pos if pos >= 0 else None


def find_any(
    haystack: bytes,
    needles: Iterable[bytes],
    start: int = 0,
) -> Optional[Tuple[int, bytes]]:
    """
    Return ``(offset, needle)`` for the earliest occurrence of any needle.

    Ties on offset go to the needle listed first.
    """
    best: Optional[Tuple[int, bytes]] = None
    for needle in needles:
        pos = find_pattern(haystack, needle, start)
        if pos is None:
            continue
        if best is None or pos < best[0]:
            best = (pos, needle)
    return best


def scan_balanced(
    haystack: bytes,
    start: int,
    open_token: bytes,
    close_token: bytes,
    kind: RegionKind = RegionKind.DICTIONARY,
) -> Optional[ObjectRegion]:
    """
    Scan forward from start and return the first balanced region.

    Depth is tracked across nested open/close tokens. Close tokens seen
    before the first open token are ignored. Returns None when the buffer
    ends before depth returns to zero.
    """
    depth = 0
    region_start = -1
    pos = max(start, 0)
    size = len(haystack)

    while pos < size:
        next_open = haystack.find(open_token, pos)
        next_close = haystack.find(close_token, pos)

        if next_open < 0 and (next_close < 0 or depth == 0):
            return None

        if next_open >= 0 and (next_close < 0 or next_open < next_close):
            if depth == 0:
                region_start = next_open
            depth += 1
            pos = next_open + len(open_token)
            continue

        pos = next_close + len(close_token)
        if depth == 0:
            continue
        depth -= 1
        if depth == 0:
            return ObjectRegion(start=region_start, end=pos, kind=kind)

    return None
