"""
Structural backend contract.

A backend answers the three structural questions the extraction pipeline
asks of a document:

    - is there a document catalog?
    - which files are embedded, in document order?
    - what are the decoded bytes of a given embedded file?

Backends are interchangeable. The pipeline never branches on which one it
was given.
"""

from __future__ import annotations

from typing import Callable, List, Optional, Protocol

from erechnung.app.schemas.extraction import EmbeddedFileEntry


ContentPredicate = Callable[[bytes], bool]


class ExtractionBackend(Protocol):
    name: str

    def has_catalog(self, doc: bytes) -> bool:
        ...

    def list_embedded_files(self, doc: bytes) -> List[EmbeddedFileEntry]:
        ...

    def extract_entry(
        self,
        doc: bytes,
        entry: EmbeddedFileEntry,
        accept: ContentPredicate,
    ) -> Optional[bytes]:
        """Return the decoded payload for entry if accept() confirms it."""
        ...
