"""
Extraction pipeline.

Coordinates conformance validation, structural location, stream extraction
and content classification into a single call:

    extract(raw_bytes) -> ExtractedInvoice   (raises ExtractError)

Stages run linearly and none is re-entered:

    1. PDF/A-3 conformance          -> InvalidInput / NotConformant
    2. catalog sanity gate          -> NoCatalog
    3. embedded-file name listing   -> NoEmbeddedXml([])
    4. *.xml name selection         -> NoEmbeddedXml(all_names)
    5. stream extraction + shape    -> ExtractionFailed(all_names)
       check, canonical name first
    6. ExtractedInvoice

The pipeline holds only frozen configuration and a stateless backend. One
instance may serve concurrent calls. The input buffer is not referenced
after a call returns.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Union

from erechnung.app.backends import (
    ByteScanBackend,
    ExtractionBackend,
    ObjectModelBackend,
)
from erechnung.app.config import ExtractorConfig
from erechnung.app.errors import (
    ExtractionFailed,
    NoCatalog,
    NoEmbeddedXml,
)
from erechnung.app.schemas.extraction import EmbeddedFileEntry, ExtractedInvoice
from erechnung.app.scanner.conformance import validate
from erechnung.app.scanner.content_classifier import (
    canonical_filename,
    is_canonical_name,
    is_xml_filename,
    looks_like_invoice_xml,
    rank_candidates,
)

logger = logging.getLogger(__name__)


RawDocument = Union[bytes, bytearray, memoryview]


def build_backend(config: ExtractorConfig) -> ExtractionBackend:
    """Construct the structural backend selected by configuration."""
    if config.STRUCTURAL_BACKEND == "object_model":
        return ObjectModelBackend()
    return ByteScanBackend(
        catalog_window=config.CATALOG_SEARCH_WINDOW,
        filename_window=config.FILENAME_SEARCH_WINDOW,
    )


class ExtractionPipeline:
    """
    Extracts the embedded invoice XML from a PDF/A-3 document.

    Fully deterministic. No retries: a document's byte layout is fixed, so
    repeating a stage cannot change its outcome.
    """

    def __init__(
        self,
        config: Optional[ExtractorConfig] = None,
        backend: Optional[ExtractionBackend] = None,
    ):
        self._config = config or ExtractorConfig()
        self._backend = backend or build_backend(self._config)
        self._canonical = canonical_filename(self._config.INVOICE_SCHEME)

    @property
    def backend(self) -> ExtractionBackend:
        return self._backend

    @property
    def canonical_filename(self) -> str:
        return self._canonical

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def extract(self, raw: RawDocument) -> ExtractedInvoice:
        doc = bytes(raw)

        # --------------------------------------------------------------
        # 1. Conformance (raises InvalidInput / NotConformant)
        # --------------------------------------------------------------
        level = validate(doc, strict=self._config.STRICT_XMP_CONFORMANCE)
        logger.debug("PDF/A-3 marker '%s' matched", level.marker)

        # --------------------------------------------------------------
        # 2. Catalog sanity gate
        # --------------------------------------------------------------
        if not self._backend.has_catalog(doc):
            logger.info("Rejected document: no catalog (%s)", self._backend.name)
            raise NoCatalog()

        # --------------------------------------------------------------
        # 3. Embedded file names
        # --------------------------------------------------------------
        entries = self._backend.list_embedded_files(doc)
        all_names = [entry.name for entry in entries]
        if not entries:
            logger.info("Rejected document: no embedded files")
            raise NoEmbeddedXml([])

        # --------------------------------------------------------------
        # 4. XML attachment selection
        # --------------------------------------------------------------
        xml_entries = [entry for entry in entries if is_xml_filename(entry.name)]
        if not xml_entries:
            logger.info(
                "Rejected document: no XML attachment among %s", all_names
            )
            raise NoEmbeddedXml(all_names)

        # --------------------------------------------------------------
        # 5. Stream extraction and classification
        # --------------------------------------------------------------
        for entry in self._ranked(xml_entries):
            content = self._backend.extract_entry(doc, entry, looks_like_invoice_xml)
            if content is None:
                logger.debug("No invoice XML recovered for '%s'", entry.name)
                continue

            # ----------------------------------------------------------
            # 6. Result
            # ----------------------------------------------------------
            canonical = is_canonical_name(entry.name, self._canonical)
            logger.info(
                "Extracted '%s' (%d bytes, canonical=%s)",
                entry.name,
                len(content),
                canonical,
            )
            return ExtractedInvoice(
                filename=entry.name,
                xml_content=bytes(content),
                is_canonical_name=canonical,
                embedded_files=all_names,
            )

        logger.info("Extraction failed for XML attachments of %s", all_names)
        raise ExtractionFailed(all_names)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _ranked(self, entries: List[EmbeddedFileEntry]) -> List[EmbeddedFileEntry]:
        return rank_candidates(entries, self._canonical, name_of=lambda e: e.name)


def extract(
    raw: RawDocument,
    config: Optional[ExtractorConfig] = None,
) -> ExtractedInvoice:
    """Extract the embedded invoice XML from raw using a fresh pipeline."""
    return ExtractionPipeline(config).extract(raw)
