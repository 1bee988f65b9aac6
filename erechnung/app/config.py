"""
Runtime configuration for the eRechnung extractor service.

This module centralizes environment-driven configuration: resource limits,
the active e-invoicing scheme, the structural backend and the scanner's
search windows.

Configuration is read once at startup and is immutable afterwards.
"""

from __future__ import annotations

import logging
import os

from pydantic import BaseModel, Field, field_validator

from erechnung.app.scanner.content_classifier import CANONICAL_FILENAMES


class ExtractorConfig(BaseModel):
    """
    Runtime configuration for the extractor.

    Configuration is environment-driven and read-only at runtime.
    """

    # ------------------------------------------------------------------
    # Safety and resource limits
    # ------------------------------------------------------------------

    MAX_PDF_SIZE_MB: int = Field(
        25,
        gt=0,
        description="Maximum allowed upload size in megabytes",
    )

    # ------------------------------------------------------------------
    # Extraction behaviour
    # ------------------------------------------------------------------

    INVOICE_SCHEME: str = Field(
        "factur-x",
        description=(
            "Active e-invoicing scheme. Determines the canonical attachment "
            "name that outranks other XML attachments."
        ),
    )

    STRUCTURAL_BACKEND: str = Field(
        "byte_scan",
        description="Structural backend: 'byte_scan' or 'object_model'",
    )

    STRICT_XMP_CONFORMANCE: bool = Field(
        False,
        description=(
            "Scope the PDF/A-3 check to the XMP packet instead of the whole "
            "buffer. Stricter than the historic behaviour."
        ),
    )

    CATALOG_SEARCH_WINDOW: int = Field(
        4096,
        gt=0,
        description="Bytes scanned backward from /Type /Catalog for 'obj'",
    )

    FILENAME_SEARCH_WINDOW: int = Field(
        2000,
        gt=0,
        description="Bytes scanned on each side of an attachment name token",
    )

    # ------------------------------------------------------------------
    # Logging
    # ------------------------------------------------------------------

    LOG_LEVEL: str = Field(
        "INFO",
        description="Root log level",
    )

    # ------------------------------------------------------------------
    # Validators (Pydantic v2)
    # ------------------------------------------------------------------

    @field_validator("INVOICE_SCHEME")
    @classmethod
    def validate_scheme(cls, v: str) -> str:
        v = v.lower()
        if v not in CANONICAL_FILENAMES:
            raise ValueError(
                f"Unsupported INVOICE_SCHEME '{v}'. "
                f"Allowed values: {sorted(CANONICAL_FILENAMES)}"
            )
        return v

    @field_validator("STRUCTURAL_BACKEND")
    @classmethod
    def validate_backend(cls, v: str) -> str:
        allowed = {"byte_scan", "object_model"}
        if v not in allowed:
            raise ValueError(
                f"Unsupported STRUCTURAL_BACKEND '{v}'. "
                f"Allowed values: {sorted(allowed)}"
            )
        return v

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        v = v.upper()
        if not isinstance(logging.getLevelName(v), int):
            raise ValueError(f"Unknown LOG_LEVEL '{v}'")
        return v

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def from_env(cls) -> "ExtractorConfig":
        """
        Load configuration from environment variables.

        All values are parsed once at startup and must remain immutable.
        """

        def env_bool(name: str, default: bool) -> bool:
            raw = os.getenv(name)
            if raw is None:
                return default
            return raw.lower() in {"1", "true", "yes", "on"}

        return cls(
            MAX_PDF_SIZE_MB=int(
                os.getenv("ERECHNUNG_MAX_PDF_SIZE_MB", "25")
            ),
            INVOICE_SCHEME=os.getenv(
                "ERECHNUNG_INVOICE_SCHEME", "factur-x"
            ),
            STRUCTURAL_BACKEND=os.getenv(
                "ERECHNUNG_STRUCTURAL_BACKEND", "byte_scan"
            ),
            STRICT_XMP_CONFORMANCE=env_bool(
                "ERECHNUNG_STRICT_XMP_CONFORMANCE", False
            ),
            CATALOG_SEARCH_WINDOW=int(
                os.getenv("ERECHNUNG_CATALOG_SEARCH_WINDOW", "4096")
            ),
            FILENAME_SEARCH_WINDOW=int(
                os.getenv("ERECHNUNG_FILENAME_SEARCH_WINDOW", "2000")
            ),
            LOG_LEVEL=os.getenv(
                "ERECHNUNG_LOG_LEVEL", "INFO"
            ),
        )

    model_config = {
        "frozen": True,
    }
