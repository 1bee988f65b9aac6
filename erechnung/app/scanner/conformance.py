"""
PDF/A-3 identification checks.

Default mode is a whole-buffer substring search. A marker found anywhere in
the document, even outside the XMP packet, counts as conformant. Existing
clients depend on this permissiveness and it is the default.

Strict mode scopes the search to the XMP packet and requires
``pdfaid:part`` to equal 3. If the packet is not readable as plain bytes
(for example a Flate-encoded metadata stream), the XMP is read through
pikepdf instead. Strict mode is opt-in (STRICT_XMP_CONFORMANCE).

Error handling policy:
    Only pikepdf.PdfError is caught, and only in the strict-mode fallback.
    A document pikepdf cannot parse is treated as carrying no XMP.
"""

from __future__ import annotations

import logging
import re
from io import BytesIO
from typing import Optional

import pikepdf

from erechnung.app.errors import InvalidInput, NotConformant
from erechnung.app.schemas.extraction import ConformanceLevel
from erechnung.app.scanner.byte_scanner import find_pattern

logger = logging.getLogger(__name__)


PDF_SIGNATURE = b"%PDF-"

# Order matters only for which marker is reported.
PDFA3_MARKERS = (
    b"PDF/A-3",
    b"pdfaid:part>3",
    b"pdfa:part>3",
    b'pdfaid:part="3"',
    b"pdfaid:part='3'",
    b"pdfaid:conformance",
)

STRICT_PART_PATTERN = re.compile(rb"""pdfaid:part(?:>\s*|\s*=\s*["'])3\b""")
CONFORMANCE_PATTERN = re.compile(
    rb"""pdfaid:conformance(?:>\s*|\s*=\s*["'])([A-Za-z])\b"""
)

XMP_OPEN = b"<x:xmpmeta"
XMP_CLOSE = b"</x:xmpmeta>"


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _conformance_letter(text: bytes) -> Optional[str]:
    match = CONFORMANCE_PATTERN.search(text)
    if match is None:
        return None
    return match.group(1).decode("ascii").upper()


def _xmp_packet(doc: bytes) -> Optional[bytes]:
    start = find_pattern(doc, XMP_OPEN)
    if start is None:
        return None
    end = find_pattern(doc, XMP_CLOSE, start)
    if end is None:
        return None
    return doc[start:end + len(XMP_CLOSE)]


def _validate_strict_with_pikepdf(doc: bytes) -> Optional[ConformanceLevel]:
    try:
        with pikepdf.open(BytesIO(doc)) as pdf:
            xmp = pdf.open_metadata()
            part = xmp.get("pdfaid:part")
            conformance = xmp.get("pdfaid:conformance")
    except pikepdf.PdfError as exc:
        logger.warning("pikepdf failed to read XMP metadata: %s", exc)
        return None

    if part is None or str(part).strip() != "3":
        return None

    return ConformanceLevel(
        part=3,
        conformance=str(conformance).upper() if conformance else None,
        marker="xmp:pdfaid:part",
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def has_pdf_signature(doc: bytes) -> bool:
    return len(doc) >= len(PDF_SIGNATURE) and doc[:5] == PDF_SIGNATURE


def validate(doc: bytes, strict: bool = False) -> ConformanceLevel:
    """
    Verify that doc is a PDF declaring PDF/A-3 conformance.

    Raises:
        InvalidInput: the buffer does not start with the PDF signature.
        NotConformant: no recognised PDF/A-3 marker was found.
    """
    if not has_pdf_signature(doc):
        raise InvalidInput()

    if strict:
        level = _validate_strict(doc)
        if level is None:
            raise NotConformant()
        return level

    for marker in PDFA3_MARKERS:
        if find_pattern(doc, marker) is not None:
            return ConformanceLevel(
                part=3,
                conformance=_conformance_letter(doc),
                marker=marker.decode("ascii"),
            )

    raise NotConformant()


def _validate_strict(doc: bytes) -> Optional[ConformanceLevel]:
    packet = _xmp_packet(doc)
    if packet is None:
        logger.debug("No plain-text XMP packet; reading metadata via pikepdf")
        return _validate_strict_with_pikepdf(doc)

    if STRICT_PART_PATTERN.search(packet) is None:
        return None

    return ConformanceLevel(
        part=3,
        conformance=_conformance_letter(packet),
        marker="xmp:pdfaid:part",
    )
