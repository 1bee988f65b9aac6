"""
Classification and ranking of decoded stream content.

A payload is considered invoice XML when, after trimming, it starts with an
XML declaration or a known invoice root element prefix. This is a cheap
shape check, not schema validation.
"""

from __future__ import annotations

from typing import Callable, Dict, List, Sequence, TypeVar

T = TypeVar("T")

UTF8_BOM = b"\xef\xbb\xbf"

INVOICE_XML_PREFIXES = (
    b"<?xml",
    b"<rsm:",
    b"<ubl:",
    b"<Invoice",
    b"<rdf:RDF",
)

# Canonical attachment name per e-invoicing scheme.
CANONICAL_FILENAMES: Dict[str, str] = {
    "factur-x": "factur-x.xml",
    "zugferd": "zugferd-invoice.xml",
    "xrechnung": "xrechnung.xml",
}


def looks_like_invoice_xml(data: bytes) -> bool:
    trimmed = data.strip()
    if trimmed.startswith(UTF8_BOM):
        trimmed = trimmed[len(UTF8_BOM):].lstrip()
    return trimmed.startswith(INVOICE_XML_PREFIXES)


def canonical_filename(scheme: str) -> str:
    """Return the canonical attachment name for scheme (e.g. "factur-x")."""
    try:
        return CANONICAL_FILENAMES[scheme.lower()]
    except KeyError:
        raise ValueError(
            f"Unknown invoice scheme '{scheme}'. "
            f"Allowed values: {sorted(CANONICAL_FILENAMES)}"
        ) from None


def is_xml_filename(name: str) -> bool:
    return name.lower().endswith(".xml")


def is_canonical_name(name: str, canonical: str) -> bool:
    return name.lower() == canonical.lower()


def rank_candidates(
    candidates: Sequence[T],
    canonical: str,
    name_of: Callable[[T], str] = str,
) -> List[T]:
    """
    Order candidates for extraction.

    The candidate carrying the canonical name (case-insensitive) comes first;
    everything else keeps its document order.
    """
    return sorted(
        candidates,
        key=lambda item: 0 if is_canonical_name(name_of(item), canonical) else 1,
    )
