"""
Alternative structural backend: pikepdf object model.

Resolves the catalog, the ``/Names -> /EmbeddedFiles`` name tree and the
file specification streams through pikepdf (qpdf) instead of byte scanning.
Cross-reference tables, object streams and every standard filter are
handled by qpdf.

Entries produced here carry no byte offset (location_hint is None). The
file specification is resolved by name directly.

Error handling policy:
    Outer blocks catch pikepdf.PdfError only. A document pikepdf cannot
    open is reported as "not found" by each operation. Any other exception
    is a logic error and propagates.
"""

from __future__ import annotations

import logging
from io import BytesIO
from typing import Iterator, List, Optional, Tuple

import pikepdf

from erechnung.app.backends.base import ContentPredicate
from erechnung.app.schemas.extraction import EmbeddedFileEntry

logger = logging.getLogger(__name__)


# Guards against cyclic /Kids references in malformed name trees.
MAX_NAME_TREE_DEPTH = 32


# ------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------

def _resolve(obj):
    """Resolve a pikepdf indirect object to its concrete object."""
    if (
        obj is not None
        and getattr(obj, "is_indirect", False)
        and hasattr(obj, "get_object")
    ):
        return obj.get_object()
    return obj


def _walk_name_tree(
    node, depth: int = 0
) -> Iterator[Tuple[str, pikepdf.Dictionary]]:
    """Yield ``(name, filespec)`` pairs of a name tree node in order."""
    if depth > MAX_NAME_TREE_DEPTH or not isinstance(node, pikepdf.Dictionary):
        return

    names_array = _resolve(node.get("/Names"))
    if isinstance(names_array, pikepdf.Array):
        for i in range(0, len(names_array) - 1, 2):
            key = _resolve(names_array[i])
            filespec = _resolve(names_array[i + 1])
            if not isinstance(key, pikepdf.String):
                continue
            if not isinstance(filespec, pikepdf.Dictionary):
                continue
            yield str(key), filespec

    kids = _resolve(node.get("/Kids"))
    if isinstance(kids, pikepdf.Array):
        for kid in kids:
            yield from _walk_name_tree(_resolve(kid), depth + 1)


def _embedded_files_tree(pdf: pikepdf.Pdf):
    names = _resolve(pdf.Root.get("/Names"))
    if not isinstance(names, pikepdf.Dictionary):
        return None
    return _resolve(names.get("/EmbeddedFiles"))


def _filespec_bytes(filespec: pikepdf.Dictionary) -> Optional[bytes]:
    ef = _resolve(filespec.get("/EF"))
    if not isinstance(ef, pikepdf.Dictionary):
        return None

    embedded = _resolve(ef.get("/UF")) or _resolve(ef.get("/F"))
    if not isinstance(embedded, pikepdf.Stream):
        return None

    return embedded.read_bytes()


# ------------------------------------------------------------------
# Backend
# ------------------------------------------------------------------

class ObjectModelBackend:
    name = "object_model"

    def has_catalog(self, doc: bytes) -> bool:
        try:
            with pikepdf.open(BytesIO(doc)) as pdf:
                root = pdf.Root
                return (
                    isinstance(root, pikepdf.Dictionary)
                    and root.get("/Type") == pikepdf.Name.Catalog
                )
        except pikepdf.PdfError as exc:
            logger.warning("pikepdf failed to open document catalog: %s", exc)
            return False

    def list_embedded_files(self, doc: bytes) -> List[EmbeddedFileEntry]:
        try:
            with pikepdf.open(BytesIO(doc)) as pdf:
                tree = _embedded_files_tree(pdf)
                return [
                    EmbeddedFileEntry(name=name)
                    for name, _ in _walk_name_tree(tree)
                    if name
                ]
        except pikepdf.PdfError as exc:
            logger.warning("pikepdf failed to read embedded files: %s", exc)
            return []

    def extract_entry(
        self,
        doc: bytes,
        entry: EmbeddedFileEntry,
        accept: ContentPredicate,
    ) -> Optional[bytes]:
        try:
            with pikepdf.open(BytesIO(doc)) as pdf:
                tree = _embedded_files_tree(pdf)
                for name, filespec in _walk_name_tree(tree):
                    if name != entry.name:
                        continue
                    data = _filespec_bytes(filespec)
                    if data is None:
                        continue
                    data = data.strip()
                    if data and accept(data):
                        return data
        except pikepdf.PdfError as exc:
            logger.warning(
                "pikepdf failed to read embedded file '%s': %s",
                entry.name,
                exc,
            )
        return None
