"""
Extraction data model.

Defines the transient structures produced while scanning a PDF/A-3
container for an embedded invoice, and the terminal ExtractedInvoice
handed to callers.

These models are:
- immutable (frozen)
- request-scoped; nothing here is persisted or cached
- free of any reference to the input buffer
"""

from __future__ import annotations

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class RegionKind(str, Enum):
    """Syntactic kind of a located byte region."""

    DICTIONARY = "dictionary"
    ARRAY = "array"
    STREAM = "stream"


# ---------------------------------------------------------------------------
# Scanner results
# ---------------------------------------------------------------------------


class ObjectRegion(BaseModel):
    """
    A half-open byte range ``[start, end)`` inside a RawDocument.

    A region is only ever constructed once the scanner has verified it lies
    inside the buffer. Scanners report "not found" as ``None``; they never
    build a region that would fail validation.
    """

    start: int = Field(..., ge=0)
    end: int
    kind: RegionKind

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def end_after_start(self) -> "ObjectRegion":
        if self.end <= self.start:
            raise ValueError(
                f"ObjectRegion end ({self.end}) must be greater than "
                f"start ({self.start})"
            )
        return self

    def __len__(self) -> int:
        return self.end - self.start

    def slice(self, doc: bytes) -> bytes:
        """Return a copy of the region's bytes."""
        return bytes(doc[self.start:self.end])


class EmbeddedFileEntry(BaseModel):
    """
    One name discovered in the ``/EmbeddedFiles`` name tree.

    location_hint:
        Byte offset of the name token in the document, or None when the
        entry was resolved through an object model rather than by scanning.
    """

    name: str = Field(..., min_length=1)
    location_hint: Optional[int] = Field(None, ge=0)

    model_config = ConfigDict(frozen=True)


class ConformanceLevel(BaseModel):
    """Outcome of a successful PDF/A-3 identification check."""

    part: int = 3
    conformance: Optional[str] = Field(
        None,
        description="Conformance letter from pdfaid:conformance, if declared",
    )
    marker: str = Field(
        ...,
        description="Textual marker that established conformance",
    )

    model_config = ConfigDict(frozen=True)


# ---------------------------------------------------------------------------
# Terminal output
# ---------------------------------------------------------------------------


class ExtractedInvoice(BaseModel):
    """
    The invoice XML recovered from a PDF/A-3 container.

    Ownership transfers to the caller. xml_content is a fresh bytes object,
    not a view into the uploaded document.
    """

    filename: str = Field(..., min_length=1)
    xml_content: bytes
    is_canonical_name: bool
    embedded_files: List[str] = Field(
        default_factory=list,
        description="All embedded file names, in document order",
    )

    model_config = ConfigDict(frozen=True)
