"""
Extraction error taxonomy.

    ExtractError (base)
    ├── InvalidInput       - not a PDF container
    ├── NotConformant      - PDF without PDF/A-3 identification
    ├── NoCatalog          - no recoverable document catalog
    ├── NoEmbeddedXml      - no embedded file named *.xml
    └── ExtractionFailed   - an XML attachment exists but is unreadable

Every error is terminal for the document that raised it. The byte layout of
a document is fixed, so nothing here is retried.
"""

from __future__ import annotations

from typing import List, Optional, Sequence


class ExtractError(Exception):
    """Base class for all extraction failures."""

    file_status = "Extraction error"

    def __init__(self, names: Optional[Sequence[str]] = None):
        self.names: List[str] = list(names or [])
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        if self.names:
            return f"{self.file_status} (embedded files: {', '.join(self.names)})"
        return self.file_status

    @property
    def embedded_files(self) -> Optional[str]:
        """Comma-joined names for the HTTP envelope, None when empty."""
        if not self.names:
            return None
        return ", ".join(self.names)


class InvalidInput(ExtractError):
    file_status = "Not a valid PDF file"


class NotConformant(ExtractError):
    file_status = "PDF is not in PDF/A-3 format"


class NoCatalog(ExtractError):
    file_status = "PDF catalog not found"


class NoEmbeddedXml(ExtractError):
    file_status = "No embedded XML-file"


class ExtractionFailed(ExtractError):
    file_status = "XML file found but could not extract content"
