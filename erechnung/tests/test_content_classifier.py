"""
Tests for invoice XML shape checks and candidate ranking.
"""

import pytest

from erechnung.app.scanner.content_classifier import (
    canonical_filename,
    is_canonical_name,
    is_xml_filename,
    looks_like_invoice_xml,
    rank_candidates,
)
from erechnung.app.schemas.extraction import EmbeddedFileEntry


# ---------------------------------------------------------------------------
# Shape check
# ---------------------------------------------------------------------------

@pytest.mark.parametrize(
    "data",
    [
        b'<?xml version="1.0"?><rsm:CrossIndustryInvoice/>',
        b"<rsm:CrossIndustryInvoice/>",
        b"<ubl:Invoice/>",
        b"<Invoice xmlns='urn:oasis:names:specification:ubl'/>",
        b"<rdf:RDF/>",
        b"\n\t  <?xml version='1.0'?><a/>\r\n",
        b"\xef\xbb\xbf<?xml version='1.0'?><a/>",
    ],
)
def test_accepts_invoice_shaped_content(data):
    assert looks_like_invoice_xml(data)


@pytest.mark.parametrize(
    "data",
    [
        b"",
        b"Hello World",
        b"%PDF-1.7",
        b'<?xpacket begin="" id="W5M0MpCehiHzreSzNTczkc9d"?>',
        b"<html><body/></html>",
    ],
)
def test_rejects_other_content(data):
    assert not looks_like_invoice_xml(data)


# ---------------------------------------------------------------------------
# Names
# ---------------------------------------------------------------------------

def test_canonical_filename_per_scheme():
    assert canonical_filename("factur-x") == "factur-x.xml"
    assert canonical_filename("ZUGFeRD") == "zugferd-invoice.xml"
    assert canonical_filename("xrechnung") == "xrechnung.xml"


def test_canonical_filename_unknown_scheme():
    with pytest.raises(ValueError):
        canonical_filename("peppol")


def test_xml_filename_is_case_insensitive():
    assert is_xml_filename("factur-x.xml")
    assert is_xml_filename("INVOICE.XML")
    assert not is_xml_filename("invoice.xml.pdf")
    assert not is_xml_filename("xml")


def test_canonical_name_is_case_insensitive():
    assert is_canonical_name("Factur-X.XML", "factur-x.xml")
    assert not is_canonical_name("factur-x.xml.bak", "factur-x.xml")


# ---------------------------------------------------------------------------
# Ranking
# ---------------------------------------------------------------------------

def test_rank_moves_canonical_name_first():
    ranked = rank_candidates(
        ["b.xml", "a.xml", "FACTUR-X.xml", "c.xml"],
        "factur-x.xml",
    )

    assert ranked == ["FACTUR-X.xml", "b.xml", "a.xml", "c.xml"]


def test_rank_without_canonical_keeps_document_order():
    names = ["z.xml", "a.xml", "m.xml"]
    assert rank_candidates(names, "factur-x.xml") == names


def test_rank_entries_by_name():
    entries = [
        EmbeddedFileEntry(name="attachment.xml", location_hint=10),
        EmbeddedFileEntry(name="factur-x.xml", location_hint=40),
    ]

    ranked = rank_candidates(entries, "factur-x.xml", name_of=lambda e: e.name)

    assert [e.location_hint for e in ranked] == [40, 10]
