"""
Tests for stream location, decoding and the two lookup strategies.

Coverage matrix:

  locate_stream          LF / CRLF / CR after keyword, endstream guard
  decode_stream          raw, Flate, corrupt Flate, unsupported filter
  extract_stream         nearest stream after an offset
  iter_streams           document order inside a window
  extract_near_filename  window bounds, predicate selection
  extract_by_subtype     XML subtype anchor, skips rejected candidates
"""

from erechnung.app.scanner.content_classifier import looks_like_invoice_xml
from erechnung.app.scanner.stream_extractor import (
    decode_stream,
    extract_by_subtype,
    extract_near_filename,
    extract_stream,
    iter_streams,
    locate_stream,
)
from erechnung.app.scanner.structural_locator import list_embedded_files
from erechnung.tests.fixtures.pdf_factory import (
    FACTURX_XML,
    SCENARIO_XML,
    corrupt_flate_pdf,
    facturx_pdf,
    names_only_pdf,
    stream_object,
)


def _accept_all(data: bytes) -> bool:
    return True


# ---------------------------------------------------------------------------
# Region location
# ---------------------------------------------------------------------------

def test_locate_stream_skips_single_eol():
    for eol in (b"\n", b"\r\n", b"\r"):
        doc = b"1 0 obj " + stream_object(b"payload", eol=eol)
        keyword = doc.index(b"stream")

        region = locate_stream(doc, keyword)

        assert doc[region.start:].startswith(b"payload")


def test_locate_stream_without_endstream():
    doc = b"<< >>\nstream\nno terminator"
    assert locate_stream(doc, doc.index(b"stream")) is None


def test_extract_stream_trims_whitespace():
    doc = b"<< >>\nstream\n\n   <?xml version=\"1.0\"?><a/>  \n\nendstream"

    assert extract_stream(doc, 0) == b'<?xml version="1.0"?><a/>'


def test_extract_stream_empty_payload():
    doc = b"<< >>\nstream\n   \nendstream"
    assert extract_stream(doc, 0) is None


def test_extract_stream_does_not_start_at_endstream():
    doc = b"endstream\n<< >>\nstream\nsecond\nendstream"

    assert extract_stream(doc, 0) == b"second"


def test_extract_stream_nothing_after_hint():
    doc = b"<< >>\nstream\ndata\nendstream\n"
    assert extract_stream(doc, len(doc) - 1) is None


def test_extract_stream_crlf_document():
    doc = facturx_pdf(eol=b"\r\n")
    entry = list_embedded_files(doc)[0]

    data = extract_near_filename(doc, entry.location_hint, looks_like_invoice_xml)

    assert data == FACTURX_XML


def test_iter_streams_in_document_order():
    doc = (
        stream_object(b"first")
        + b"\n"
        + stream_object(b"second")
        + b"\n"
        + stream_object(b"third")
    )

    payloads = [region.slice(doc).strip() for region in iter_streams(doc, 0, len(doc))]

    assert payloads == [b"first", b"second", b"third"]


def test_iter_streams_respects_stop():
    doc = stream_object(b"first") + b"\n" + stream_object(b"second")
    stop = doc.index(b"second") - 10

    payloads = [region.slice(doc).strip() for region in iter_streams(doc, 0, stop)]

    assert payloads == [b"first"]


# ---------------------------------------------------------------------------
# Decoding
# ---------------------------------------------------------------------------

def test_decode_flate_stream():
    doc = facturx_pdf(compress=True)
    keyword = doc.rindex(b"/FlateDecode")
    keyword = doc.index(b"stream", keyword)

    assert decode_stream(doc, keyword) == FACTURX_XML


def test_decode_corrupt_flate_is_none():
    doc = corrupt_flate_pdf()
    keyword = doc.index(b"stream", doc.index(b"/FlateDecode"))

    assert decode_stream(doc, keyword) is None


def test_decode_unsupported_filter_is_none():
    doc = b"1 0 obj\n" + stream_object(
        b"3C3F786D6C3E>",
        b"/Filter /ASCIIHexDecode",
    )

    assert decode_stream(doc, doc.index(b"stream")) is None


# ---------------------------------------------------------------------------
# Strategy (a): filename window
# ---------------------------------------------------------------------------

def test_near_filename_finds_stream_within_window():
    doc = names_only_pdf(SCENARIO_XML)
    entry = list_embedded_files(doc)[0]

    data = extract_near_filename(doc, entry.location_hint, looks_like_invoice_xml)

    assert data == SCENARIO_XML


def test_near_filename_skips_rejected_streams():
    doc = names_only_pdf(SCENARIO_XML)
    entry = list_embedded_files(doc)[0]

    # The XMP packet comes first in document order.
    first = extract_near_filename(doc, entry.location_hint, _accept_all)
    assert first.startswith(b"<?xpacket")

    assert (
        extract_near_filename(doc, entry.location_hint, looks_like_invoice_xml)
        == SCENARIO_XML
    )


def test_near_filename_outside_window():
    doc = names_only_pdf(SCENARIO_XML, padding=3000)
    entry = list_embedded_files(doc)[0]

    assert extract_near_filename(doc, entry.location_hint, looks_like_invoice_xml) is None
    assert (
        extract_near_filename(
            doc, entry.location_hint, looks_like_invoice_xml, window=8000
        )
        == SCENARIO_XML
    )


# ---------------------------------------------------------------------------
# Strategy (b): subtype anchor
# ---------------------------------------------------------------------------

def test_by_subtype_finds_far_stream():
    doc = names_only_pdf(SCENARIO_XML, padding=3000)

    assert extract_by_subtype(doc, looks_like_invoice_xml) == SCENARIO_XML


def test_by_subtype_without_marker():
    doc = names_only_pdf(SCENARIO_XML, padding=3000, subtype=False)

    assert extract_by_subtype(doc, looks_like_invoice_xml) is None


def test_by_subtype_continues_past_rejected_candidate():
    doc = (
        b"1 0 obj\n"
        + stream_object(b"Hello World", b"/Subtype /text#2Fxml")
        + b"\nendobj\n2 0 obj\n"
        + stream_object(SCENARIO_XML, b"/Subtype/text#2fxml")
        + b"\nendobj\n"
    )

    assert extract_by_subtype(doc, looks_like_invoice_xml) == SCENARIO_XML


def test_by_subtype_text_xml_marker():
    doc = b"1 0 obj\n" + stream_object(SCENARIO_XML, b"/Subtype (text/xml)")

    assert extract_by_subtype(doc, looks_like_invoice_xml) == SCENARIO_XML
