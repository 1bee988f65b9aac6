from .base import ExtractionBackend
from .byte_scan import ByteScanBackend
from .object_model import ObjectModelBackend

__all__ = [
    "ExtractionBackend",
    "ByteScanBackend",
    "ObjectModelBackend",
]
