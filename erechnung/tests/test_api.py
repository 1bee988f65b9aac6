"""
HTTP interface tests.

Coverage matrix:

  POST /extract_xml        success, non-canonical, each error envelope
  POST /extract_xml_file   XML download, Content-Disposition, errors
  Upload guard             missing / empty file, size limit
  GET  /health             static payload
"""

import pytest
from fastapi.testclient import TestClient

from erechnung.app.main import app
from erechnung.tests.fixtures.pdf_factory import (
    FACTURX_XML,
    attached_pdf,
    facturx_pdf,
    no_attachments_pdf,
    scenario_a_pdf,
    scenario_b_pdf,
    scenario_c_bytes,
)


@pytest.fixture
def client(monkeypatch):
    monkeypatch.setenv("ERECHNUNG_MAX_PDF_SIZE_MB", "1")
    with TestClient(app) as client:
        yield client


def _upload(pdf_bytes: bytes, filename: str = "invoice.pdf"):
    return {"file": (filename, pdf_bytes, "application/pdf")}


# ---------------------------------------------------------------------------
# /extract_xml
# ---------------------------------------------------------------------------

def test_extract_xml_success(client):
    response = client.post("/extract_xml", files=_upload(facturx_pdf()))

    assert response.status_code == 200
    assert response.json() == {
        "file status": "Success",
        "embedded files": "factur-x.xml",
        "xml_content": FACTURX_XML.decode("utf-8"),
        "xml_filename": "factur-x.xml",
    }


def test_extract_xml_non_canonical_name(client):
    doc = attached_pdf([(b"invoice.pdf", b"%PDF-1.4"), (b"rechnung.xml", FACTURX_XML)])

    body = client.post("/extract_xml", files=_upload(doc)).json()

    assert body["file status"] == "XML is not Factur-x.xml"
    assert body["embedded files"] == "invoice.pdf, rechnung.xml"
    assert body["xml_filename"] == "rechnung.xml"


def test_extract_xml_scenario_a(client):
    body = client.post("/extract_xml", files=_upload(scenario_a_pdf())).json()

    assert body["file status"] == "Success"
    assert body["xml_content"].startswith('<?xml version="1.0"?>')


def test_extract_xml_invalid_input(client):
    response = client.post("/extract_xml", files=_upload(scenario_c_bytes()))

    assert response.status_code == 400
    assert response.json() == {"file status": "Not a valid PDF file"}


def test_extract_xml_no_embedded_files(client):
    response = client.post("/extract_xml", files=_upload(no_attachments_pdf()))

    assert response.status_code == 400
    assert response.json() == {"file status": "No embedded XML-file"}


def test_extract_xml_extraction_failed_lists_names(client):
    response = client.post("/extract_xml", files=_upload(scenario_b_pdf()))

    assert response.status_code == 400
    assert response.json() == {
        "file status": "XML file found but could not extract content",
        "embedded files": "factur-x.xml",
    }


# ---------------------------------------------------------------------------
# /extract_xml_file
# ---------------------------------------------------------------------------

def test_extract_xml_file_download(client):
    response = client.post("/extract_xml_file", files=_upload(facturx_pdf()))

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("application/xml")
    assert (
        response.headers["content-disposition"]
        == 'attachment; filename="factur-x.xml"'
    )
    assert response.content == FACTURX_XML


def test_extract_xml_file_non_ascii_name(client):
    doc = attached_pdf([("rechnung-ä.xml".encode("utf-8"), FACTURX_XML)])

    response = client.post("/extract_xml_file", files=_upload(doc))

    assert response.status_code == 200
    disposition = response.headers["content-disposition"]
    assert "filename*=UTF-8''rechnung-%C3%A4.xml" in disposition


def test_extract_xml_file_error_is_json(client):
    response = client.post("/extract_xml_file", files=_upload(scenario_b_pdf()))

    assert response.status_code == 400
    assert response.json()["file status"] == (
        "XML file found but could not extract content"
    )


# ---------------------------------------------------------------------------
# Upload guard
# ---------------------------------------------------------------------------

@pytest.mark.parametrize("path", ["/extract_xml", "/extract_xml_file"])
def test_missing_upload(client, path):
    response = client.post(path)

    assert response.status_code == 400
    assert response.json() == {"file status": "No file uploaded"}


def test_empty_upload(client):
    response = client.post("/extract_xml", files=_upload(b""))

    assert response.status_code == 400
    assert response.json() == {"file status": "No file uploaded"}


@pytest.mark.parametrize("path", ["/extract_xml", "/extract_xml_file"])
def test_oversized_upload_uses_status_envelope(client, path):
    oversized = b"%PDF-1.7\n" + b"0" * (1024 * 1024 + 1)

    response = client.post(path, files=_upload(oversized))

    assert response.status_code == 413
    assert response.json() == {
        "file status": "PDF exceeds maximum allowed size of 1 MB",
    }


# ---------------------------------------------------------------------------
# /health
# ---------------------------------------------------------------------------

def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {
        "status": "healthy",
        "service": "eRechnung PDF/A-3 XML Extractor",
    }
