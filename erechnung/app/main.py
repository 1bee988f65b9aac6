"""
FastAPI entrypoint for the eRechnung PDF/A-3 XML extractor.

This module defines the public HTTP interface. It accepts one uploaded
PDF/A-3 document per request, runs the extraction pipeline, and returns
either a JSON envelope or the raw XML as a download.

The application is stateless: the upload is read fully into memory, handed
to the pipeline, and dropped when the response is sent.
"""

from __future__ import annotations

import logging
import sys
from typing import Optional
from urllib.parse import quote

from fastapi import FastAPI, File, UploadFile
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool
from starlette.responses import Response

from erechnung.app.config import ExtractorConfig
from erechnung.app.coordinator.pipeline import ExtractionPipeline
from erechnung.app.errors import ExtractError
from erechnung.app.schemas.extraction import ExtractedInvoice
from erechnung.app.schemas.responses import (
    STATUS_NO_FILE,
    STATUS_READ_FAILED,
    ErrorResponse,
    SuccessResponse,
)

logger = logging.getLogger(__name__)


SERVICE_NAME = "eRechnung PDF/A-3 XML Extractor"


# ---------------------------------------------------------------------------
# Application setup
# ---------------------------------------------------------------------------

app = FastAPI(
    title="eRechnung Extractor",
    description="Extracts embedded invoice XML from PDF/A-3 documents",
    version="0.1.0",
)


# ---------------------------------------------------------------------------
# Startup / Shutdown
# ---------------------------------------------------------------------------

@app.on_event("startup")
def startup_event() -> None:
    """
    Application startup hook.

    Configuration is loaded once and treated as immutable for the lifetime
    of the process.
    """
    config = ExtractorConfig.from_env()

    logging.basicConfig(
        level=config.LOG_LEVEL,
        stream=sys.stderr,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    logger.info(
        "config: scheme=%s backend=%s strict_xmp=%s",
        config.INVOICE_SCHEME,
        config.STRUCTURAL_BACKEND,
        config.STRICT_XMP_CONFORMANCE,
    )

    app.state.config = config
    app.state.pipeline = ExtractionPipeline(config)


# ---------------------------------------------------------------------------
# Request helpers
# ---------------------------------------------------------------------------

class UploadRejected(Exception):
    """An upload refused before extraction starts."""

    def __init__(self, status_code: int, file_status: str):
        self.status_code = status_code
        self.file_status = file_status
        super().__init__(file_status)


def _error(status_code: int, body: ErrorResponse) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=body.to_wire())


def _content_disposition(filename: str) -> str:
    fallback = filename.encode("ascii", errors="replace").decode("ascii")
    fallback = fallback.replace('"', "_").replace("\\", "_")
    if fallback == filename:
        return f'attachment; filename="{fallback}"'
    return (
        f'attachment; filename="{fallback}"; '
        f"filename*=UTF-8''{quote(filename)}"
    )


async def _read_upload(file: Optional[UploadFile]) -> bytes:
    if file is None:
        raise UploadRejected(400, STATUS_NO_FILE)

    try:
        pdf_bytes = await file.read()
    except Exception as exc:
        logger.warning("Failed to read upload: %s", exc)
        raise UploadRejected(400, STATUS_READ_FAILED) from exc

    if not pdf_bytes:
        raise UploadRejected(400, STATUS_NO_FILE)

    # ------------------------------------------------------------------
    # Hard resource safety limits
    # ------------------------------------------------------------------
    config: ExtractorConfig = app.state.config
    max_size_bytes = config.MAX_PDF_SIZE_MB * 1024 * 1024

    if len(pdf_bytes) > max_size_bytes:
        raise UploadRejected(
            413,
            f"PDF exceeds maximum allowed size of {config.MAX_PDF_SIZE_MB} MB",
        )

    return pdf_bytes


async def _run_extraction(pdf_bytes: bytes) -> ExtractedInvoice:
    pipeline: ExtractionPipeline = app.state.pipeline
    return await run_in_threadpool(pipeline.extract, pdf_bytes)


async def _extract_upload(file: Optional[UploadFile], route: str):
    """Return the ExtractedInvoice, or the JSON error response to send."""
    try:
        pdf_bytes = await _read_upload(file)
        return await _run_extraction(pdf_bytes)
    except UploadRejected as exc:
        logger.info("%s: upload rejected (%s)", route, exc.file_status)
        return _error(exc.status_code, ErrorResponse(file_status=exc.file_status))
    except ExtractError as exc:
        logger.info("%s: %s", route, exc)
        return _error(400, ErrorResponse.from_error(exc))


# ---------------------------------------------------------------------------
# API Routes
# ---------------------------------------------------------------------------

@app.post(
    "/extract_xml",
    summary="Extract embedded invoice XML (JSON envelope)",
)
async def extract_xml(
    file: Optional[UploadFile] = File(None, description="PDF/A-3 invoice"),
):
    invoice = await _extract_upload(file, "extract_xml")
    if isinstance(invoice, JSONResponse):
        return invoice

    pipeline: ExtractionPipeline = app.state.pipeline
    body = SuccessResponse.from_invoice(invoice, pipeline.canonical_filename)
    return JSONResponse(content=body.to_wire())


@app.post(
    "/extract_xml_file",
    summary="Extract embedded invoice XML (file download)",
)
async def extract_xml_file(
    file: Optional[UploadFile] = File(None, description="PDF/A-3 invoice"),
):
    invoice = await _extract_upload(file, "extract_xml_file")
    if isinstance(invoice, JSONResponse):
        return invoice

    return Response(
        content=invoice.xml_content,
        media_type="application/xml",
        headers={"Content-Disposition": _content_disposition(invoice.filename)},
    )


# ---------------------------------------------------------------------------
# Health Check
# ---------------------------------------------------------------------------

@app.get(
    "/health",
    summary="Service health check",
)
def health_check() -> JSONResponse:
    """Simple health check endpoint."""
    return JSONResponse(
        content={
            "status": "healthy",
            "service": SERVICE_NAME,
        }
    )
