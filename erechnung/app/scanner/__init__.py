from .byte_scanner import find_any, find_pattern, rfind_pattern, scan_balanced
from .conformance import validate
from .content_classifier import (
    canonical_filename,
    is_canonical_name,
    looks_like_invoice_xml,
    rank_candidates,
)
from .stream_extractor import (
    decode_stream,
    extract_by_subtype,
    extract_near_filename,
    extract_stream,
)
from .structural_locator import (
    find_catalog,
    find_embedded_stream,
    find_filespec,
    find_names_array,
    list_embedded_file_names,
    list_embedded_files,
)

__all__ = [
    "find_any",
    "find_pattern",
    "rfind_pattern",
    "scan_balanced",
    "validate",
    "canonical_filename",
    "is_canonical_name",
    "looks_like_invoice_xml",
    "rank_candidates",
    "decode_stream",
    "extract_by_subtype",
    "extract_near_filename",
    "extract_stream",
    "find_catalog",
    "find_embedded_stream",
    "find_filespec",
    "find_names_array",
    "list_embedded_file_names",
    "list_embedded_files",
]
