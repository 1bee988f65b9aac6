"""
Canonical structural backend: raw byte scanning.

No object model is built. The catalog, name tree and streams are recovered
from their byte layout by the scanner modules.

Stream lookup order for an entry:

    1. Direct reference: name token -> filespec -> /EF -> embedded file.
       When this resolves, its stream is authoritative for the entry and
       no other strategy is consulted.
    2. Filename window around the entry's name token.
    3. XML subtype anchor.
"""

from __future__ import annotations

import logging
from typing import List, Optional

from erechnung.app.backends.base import ContentPredicate
from erechnung.app.schemas.extraction import EmbeddedFileEntry
from erechnung.app.scanner.stream_extractor import (
    DEFAULT_FILENAME_WINDOW,
    decode_stream,
    extract_by_subtype,
    extract_near_filename,
)
from erechnung.app.scanner.structural_locator import (
    DEFAULT_CATALOG_WINDOW,
    find_catalog,
    find_embedded_stream,
    list_embedded_files,
)

logger = logging.getLogger(__name__)


class ByteScanBackend:
    name = "byte_scan"

    def __init__(
        self,
        catalog_window: int = DEFAULT_CATALOG_WINDOW,
        filename_window: int = DEFAULT_FILENAME_WINDOW,
    ):
        self._catalog_window = catalog_window
        self._filename_window = filename_window

    def has_catalog(self, doc: bytes) -> bool:
        return find_catalog(doc, self._catalog_window) is not None

    def list_embedded_files(self, doc: bytes) -> List[EmbeddedFileEntry]:
        return list_embedded_files(doc)

    def extract_entry(
        self,
        doc: bytes,
        entry: EmbeddedFileEntry,
        accept: ContentPredicate,
    ) -> Optional[bytes]:
        keyword_pos = find_embedded_stream(doc, entry)
        if keyword_pos is not None:
            data = decode_stream(doc, keyword_pos)
            if data is not None and accept(data):
                return data
            logger.debug("Referenced stream for '%s' rejected", entry.name)
            return None

        if entry.location_hint is not None:
            data = extract_near_filename(
                doc,
                entry.location_hint,
                accept,
                window=self._filename_window,
            )
            if data is not None:
                return data

        logger.debug("Falling back to subtype anchor for '%s'", entry.name)
        return extract_by_subtype(doc, accept)
