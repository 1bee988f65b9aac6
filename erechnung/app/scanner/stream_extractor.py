"""
Location and decoding of ``stream ... endstream`` payloads.

Two lookup strategies are supported when an entry cannot be resolved
through its object reference:

    (a) Filename window: every stream whose keyword lies within a bounded
        window around the filename token of an embedded-file entry. Used
        when no direct object reference has been resolved.

    (b) Subtype anchor: the nearest stream following a
        ``/Subtype /text#2Fxml`` (or ``text/xml``) marker.

Both strategies take an ``accept`` predicate; the first decoded payload it
accepts wins. Candidates are visited in document order.

Decoding:
    Payloads whose stream dictionary names /FlateDecode are inflated before
    they are returned. Inflate failures and unsupported filters are logged
    and yield None, so the caller can move on to the next candidate.
"""

from __future__ import annotations

import logging
import zlib
from typing import Callable, Iterator, Optional

from erechnung.app.schemas.extraction import ObjectRegion, RegionKind
from erechnung.app.scanner.byte_scanner import find_any, find_pattern, rfind_pattern

logger = logging.getLogger(__name__)


ContentPredicate = Callable[[bytes], bool]

STREAM_KEYWORD = b"stream"
ENDSTREAM_KEYWORD = b"endstream"

DEFAULT_FILENAME_WINDOW = 2000

# Stream dictionaries are looked up at most this far before the keyword.
STREAM_DICT_WINDOW = 1024

FLATE_FILTERS = (b"/FlateDecode", b"/Fl ", b"/Fl/", b"/Fl]", b"/Fl>")
UNSUPPORTED_FILTERS = (
    b"/ASCIIHexDecode",
    b"/ASCII85Decode",
    b"/LZWDecode",
    b"/RunLengthDecode",
    b"/DCTDecode",
    b"/JBIG2Decode",
    b"/JPXDecode",
    b"/Crypt",
)

XML_SUBTYPE_MARKERS = (
    b"/Subtype /text#2Fxml",
    b"/Subtype/text#2Fxml",
    b"/Subtype /text#2fxml",
    b"/Subtype/text#2fxml",
    b"text/xml",
)


# ---------------------------------------------------------------------------
# Region location
# ---------------------------------------------------------------------------

def _find_stream_keyword(doc: bytes, start: int) -> Optional[int]:
    """Return the offset of the next ``stream`` keyword that is not ``endstream``."""
    pos = find_pattern(doc, STREAM_KEYWORD, start)
    while pos is not None:
        if pos < 3 or doc[pos - 3:pos] != b"end":
            return pos
        pos = find_pattern(doc, STREAM_KEYWORD, pos + len(STREAM_KEYWORD))
    return None


def _payload_start(doc: bytes, keyword_pos: int) -> int:
    pos = keyword_pos + len(STREAM_KEYWORD)
    if doc[pos:pos + 2] == b"\r\n":
        return pos + 2
    if doc[pos:pos + 1] in (b"\n", b"\r"):
        return pos + 1
    return pos


def locate_stream(doc: bytes, keyword_pos: int) -> Optional[ObjectRegion]:
    """
    Return the raw payload region for the stream whose keyword is at
    keyword_pos, or None when no ``endstream`` follows or the payload is
    empty.
    """
    start = _payload_start(doc, keyword_pos)
    end = find_pattern(doc, ENDSTREAM_KEYWORD, start)
    if end is None or end <= start:
        return None
    return ObjectRegion(start=start, end=end, kind=RegionKind.STREAM)


def iter_stream_keywords(doc: bytes, start: int, stop: int) -> Iterator[int]:
    """Yield offsets of ``stream`` keywords in ``[start, stop)``, in order."""
    pos = _find_stream_keyword(doc, max(start, 0))
    while pos is not None and pos < stop:
        yield pos
        pos = _find_stream_keyword(doc, pos + len(STREAM_KEYWORD))


def iter_streams(doc: bytes, start: int, stop: int) -> Iterator[ObjectRegion]:
    """Yield payload regions of streams whose keyword lies in ``[start, stop)``."""
    for keyword_pos in iter_stream_keywords(doc, start, stop):
        region = locate_stream(doc, keyword_pos)
        if region is not None:
            yield region


# ---------------------------------------------------------------------------
# Decoding
# ---------------------------------------------------------------------------

def _stream_dictionary(doc: bytes, keyword_pos: int) -> bytes:
    obj_pos = rfind_pattern(doc, b"obj", keyword_pos, STREAM_DICT_WINDOW)
    lower = obj_pos if obj_pos is not None else max(keyword_pos - STREAM_DICT_WINDOW, 0)
    return doc[lower:keyword_pos]


def _inflate(payload: bytes) -> Optional[bytes]:
    try:
        decompressor = zlib.decompressobj()
        data = decompressor.decompress(payload)
        return data + decompressor.flush()
    except zlib.error as exc:
        logger.warning("Failed to inflate Flate-encoded stream: %s", exc)
        return None


def decode_stream(doc: bytes, keyword_pos: int) -> Optional[bytes]:
    """
    Return the decoded, whitespace-trimmed payload of the stream whose
    keyword is at keyword_pos.
    """
    region = locate_stream(doc, keyword_pos)
    if region is None:
        return None

    header = _stream_dictionary(doc, keyword_pos)

    if find_any(header, FLATE_FILTERS) is not None:
        data = _inflate(region.slice(doc))
        if data is None:
            return None
    elif find_any(header, UNSUPPORTED_FILTERS) is not None:
        logger.debug("Skipping stream at %d with unsupported filter", keyword_pos)
        return None
    else:
        data = region.slice(doc)

    data = data.strip()
    return data or None


def extract_stream(doc: bytes, from_hint: int) -> Optional[bytes]:
    """Decode the nearest stream following the byte offset from_hint."""
    keyword_pos = _find_stream_keyword(doc, max(from_hint, 0))
    if keyword_pos is None:
        return None
    return decode_stream(doc, keyword_pos)


# ---------------------------------------------------------------------------
# Lookup strategies
# ---------------------------------------------------------------------------

def extract_near_filename(
    doc: bytes,
    hint: int,
    accept: ContentPredicate,
    window: int = DEFAULT_FILENAME_WINDOW,
) -> Optional[bytes]:
    """Strategy (a): first accepted stream within ``hint ± window``."""
    lower = max(hint - window, 0)
    upper = min(hint + window, len(doc))

    for keyword_pos in iter_stream_keywords(doc, lower, upper):
        data = decode_stream(doc, keyword_pos)
        if data is not None and accept(data):
            return data

    logger.debug("No accepted stream within %d bytes of offset %d", window, hint)
    return None


def extract_by_subtype(doc: bytes, accept: ContentPredicate) -> Optional[bytes]:
    """Strategy (b): first accepted stream following an XML subtype marker."""
    pos = 0
    while True:
        hit = find_any(doc, XML_SUBTYPE_MARKERS, pos)
        if hit is None:
            return None

        marker_pos, marker = hit
        data = extract_stream(doc, marker_pos)
        if data is not None and accept(data):
            return data
        pos = marker_pos + len(marker)
