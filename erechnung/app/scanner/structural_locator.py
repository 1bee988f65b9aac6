"""
Structural location of the document catalog and the embedded-file name tree.

This module works directly on the byte layout of the document. Cross-reference
tables are never read: an indirect reference is resolved by searching for the
first matching ``N G obj`` header.

Known limitations:
    - The FIRST occurrence of each structural marker wins. Documents with
      several catalogs or name trees (incremental revisions) are not
      disambiguated.
    - The catalog's enclosing object is found by a bounded backward scan for
      the nearest ``obj`` token. Nothing else identifies the object.
    - Names are read from literal strings only. Hex strings are skipped, and
      a name containing nested parentheses is dropped.

Literal strings are decoded with the PDF escape table, octal codes and line
continuations included. Only strings sitting directly in the names array
are keys; strings inside inline filespec dictionaries are not.
"""

from __future__ import annotations

import logging
import re
from typing import List, Optional, Tuple

from erechnung.app.schemas.extraction import (
    EmbeddedFileEntry,
    ObjectRegion,
    RegionKind,
)
from erechnung.app.scanner.byte_scanner import (
    find_any,
    find_pattern,
    rfind_pattern,
    scan_balanced,
)

logger = logging.getLogger(__name__)


CATALOG_MARKERS = (b"/Type /Catalog", b"/Type/Catalog")
EMBEDDED_FILES_MARKER = b"/EmbeddedFiles"
NAMES_MARKER = b"/Names"

DEFAULT_CATALOG_WINDOW = 4096

NAME_REFERENCE = re.compile(rb"\((?:[^()\\]|\\.)*\)\s*(\d+)\s+(\d+)\s+R\b", re.DOTALL)
NAME_INLINE_DICT = re.compile(rb"\((?:[^()\\]|\\.)*\)\s*<<", re.DOTALL)
EF_ENTRY = re.compile(rb"/EF\s*<<")
EF_FILE_REFERENCE = re.compile(rb"/(?:UF|F)\s+(\d+)\s+(\d+)\s+R\b")

OCTAL_ESCAPE = re.compile(rb"[0-7]{1,3}")
LITERAL_ESCAPES = {
    ord("n"): b"\n",
    ord("r"): b"\r",
    ord("t"): b"\t",
    ord("b"): b"\b",
    ord("f"): b"\f",
    ord("("): b"(",
    ord(")"): b")",
    ord("\\"): b"\\",
}


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------

def find_catalog(
    doc: bytes,
    window: int = DEFAULT_CATALOG_WINDOW,
) -> Optional[ObjectRegion]:
    """
    Locate the dictionary of the document catalog.

    Finds the first ``/Type /Catalog`` marker, walks back at most ``window``
    bytes to the nearest ``obj`` keyword and balanced-scans the dictionary
    from there.
    """
    hit = find_any(doc, CATALOG_MARKERS)
    if hit is None:
        logger.debug("No /Type /Catalog marker in document")
        return None

    catalog_pos, _ = hit
    obj_pos = rfind_pattern(doc, b"obj", catalog_pos, window)
    if obj_pos is None:
        logger.debug(
            "No obj token within %d bytes before catalog marker at %d",
            window,
            catalog_pos,
        )
        return None

    region = scan_balanced(doc, obj_pos, b"<<", b">>", RegionKind.DICTIONARY)
    if region is None:
        logger.debug("Catalog dictionary at %d is unbalanced", obj_pos)
    return region


# ---------------------------------------------------------------------------
# Embedded files name tree
# ---------------------------------------------------------------------------

def find_names_array(doc: bytes) -> Optional[ObjectRegion]:
    """
    Locate the ``/Names [...]`` array of the embedded-files name tree.

    Fails fast when the document has no ``/EmbeddedFiles`` entry.
    """
    marker_pos = find_pattern(doc, EMBEDDED_FILES_MARKER)
    if marker_pos is None:
        return None

    names_pos = find_pattern(doc, NAMES_MARKER, marker_pos)
    if names_pos is None:
        logger.debug("/EmbeddedFiles present but no /Names entry follows")
        return None

    return scan_balanced(
        doc,
        names_pos + len(NAMES_MARKER),
        b"[",
        b"]",
        RegionKind.ARRAY,
    )


def _read_literal(doc: bytes, start: int, end: int) -> Tuple[Optional[bytes], bool, int]:
    """
    Decode the literal string whose ``(`` is at start.

    Returns ``(value, nested, next_pos)``. value is None when the string is
    not terminated before end; nested is True when balanced parentheses
    occur inside the string.
    """
    out = bytearray()
    depth = 1
    nested = False
    pos = start + 1

    while pos < end:
        ch = doc[pos]

        if ch == 0x5C:  # backslash
            pos += 1
            if pos >= end:
                break
            escaped = doc[pos]
            if escaped in LITERAL_ESCAPES:
                out += LITERAL_ESCAPES[escaped]
                pos += 1
            elif 0x30 <= escaped <= 0x37:
                digits = OCTAL_ESCAPE.match(doc, pos, min(pos + 3, end))
                out.append(int(digits.group(), 8) & 0xFF)
                pos = digits.end()
            elif escaped == 0x0D:  # line continuation, CR or CRLF
                pos += 1
                if pos < end and doc[pos] == 0x0A:
                    pos += 1
            elif escaped == 0x0A:
                pos += 1
            else:
                # Unknown escapes keep the character and drop the backslash.
                out.append(escaped)
                pos += 1
            continue

        if ch == 0x28:  # (
            depth += 1
            nested = True
        elif ch == 0x29:  # )
            depth -= 1
            if depth == 0:
                return bytes(out), nested, pos + 1

        out.append(ch)
        pos += 1

    return None, nested, end


def _parse_literal_names(doc: bytes, region: ObjectRegion) -> List[EmbeddedFileEntry]:
    """
    Collect the name-tree keys of a ``/Names`` array.

    Only literal strings sitting directly in the array are keys. Strings
    inside inline filespec dictionaries (/F, /UF, /Desc) or nested arrays
    are values and are skipped.
    """
    entries: List[EmbeddedFileEntry] = []

    dict_depth = 0
    array_depth = 0
    pos = region.start

    while pos < region.end:
        ch = doc[pos]

        if ch == 0x28:  # (
            value, nested, next_pos = _read_literal(doc, pos, region.end)
            if value is None:
                logger.debug("Unterminated literal string at %d", pos)
                break

            if dict_depth == 0 and array_depth == 1:
                name = value.decode("utf-8", errors="replace")
                if nested:
                    logger.debug("Skipping nested literal name at %d", pos)
                elif name:
                    entries.append(EmbeddedFileEntry(name=name, location_hint=pos))

            pos = next_pos
            continue

        if doc.startswith(b"<<", pos):
            dict_depth += 1
            pos += 2
            continue

        if doc.startswith(b">>", pos):
            dict_depth = max(dict_depth - 1, 0)
            pos += 2
            continue

        if ch == 0x5B:  # [
            array_depth += 1
        elif ch == 0x5D:  # ]
            array_depth -= 1

        pos += 1

    return entries


def list_embedded_files(doc: bytes) -> List[EmbeddedFileEntry]:
    """Return the embedded-file entries of the name tree, in document order."""
    region = find_names_array(doc)
    if region is None:
        return []
    return _parse_literal_names(doc, region)


def list_embedded_file_names(doc: bytes) -> List[str]:
    """Return the embedded-file names of the name tree, in document order."""
    return [entry.name for entry in list_embedded_files(doc)]


# ---------------------------------------------------------------------------
# File specification -> embedded file stream
# ---------------------------------------------------------------------------

def find_object(doc: bytes, number: int, generation: int) -> Optional[int]:
    """Return the offset just past the first ``<number> <generation> obj`` header."""
    header = re.compile(rb"(?<![0-9])%d\s+%d\s+obj\b" % (number, generation))
    match = header.search(doc)
    return match.end() if match else None


def find_filespec(doc: bytes, entry: EmbeddedFileEntry) -> Optional[ObjectRegion]:
    """
    Return the file specification dictionary paired with entry's name token.

    The value following the name is either an indirect reference, resolved
    by searching for the object header, or an inline dictionary.
    """
    if entry.location_hint is None:
        return None

    reference = NAME_REFERENCE.match(doc, entry.location_hint)
    if reference is not None:
        start = find_object(doc, int(reference.group(1)), int(reference.group(2)))
        if start is None:
            logger.debug(
                "Filespec object %s %s R for '%s' not found",
                reference.group(1).decode(),
                reference.group(2).decode(),
                entry.name,
            )
            return None
    else:
        inline = NAME_INLINE_DICT.match(doc, entry.location_hint)
        if inline is None:
            return None
        start = inline.end() - 2

    return scan_balanced(doc, start, b"<<", b">>", RegionKind.DICTIONARY)


def find_embedded_stream(doc: bytes, entry: EmbeddedFileEntry) -> Optional[int]:
    """
    Resolve entry to the ``stream`` keyword of its embedded file.

    Follows name token -> filespec -> ``/EF`` -> ``/UF`` or ``/F`` reference
    -> embedded file object. Returns None when any link is missing.
    """
    filespec = find_filespec(doc, entry)
    if filespec is None:
        return None

    ef = EF_ENTRY.search(doc, filespec.start, filespec.end)
    if ef is None:
        return None

    ef_region = scan_balanced(doc, ef.end() - 2, b"<<", b">>", RegionKind.DICTIONARY)
    if ef_region is None:
        return None

    file_ref = EF_FILE_REFERENCE.search(doc, ef_region.start, ef_region.end)
    if file_ref is None:
        return None

    obj_start = find_object(doc, int(file_ref.group(1)), int(file_ref.group(2)))
    if obj_start is None:
        return None

    stream_dict = scan_balanced(doc, obj_start, b"<<", b">>", RegionKind.DICTIONARY)
    if stream_dict is None:
        return None

    keyword = find_pattern(doc, b"stream", stream_dict.end)
    obj_end = find_pattern(doc, b"endobj", obj_start)
    if keyword is None or (obj_end is not None and keyword > obj_end):
        return None
    return keyword
