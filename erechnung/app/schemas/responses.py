"""
HTTP response envelopes.

Field names on the wire ("file status", "embedded files", ...) are fixed by
existing clients and are produced through aliases.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from erechnung.app.errors import ExtractError
from erechnung.app.schemas.extraction import ExtractedInvoice


STATUS_SUCCESS = "Success"
STATUS_NOT_CANONICAL = "XML is not Factur-x.xml"
STATUS_NO_FILE = "No file uploaded"
STATUS_READ_FAILED = "Failed to read uploaded PDF"


class ErrorResponse(BaseModel):
    file_status: str = Field(..., alias="file status")
    embedded_files: Optional[str] = Field(None, alias="embedded files")

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    @classmethod
    def from_error(cls, error: ExtractError) -> "ErrorResponse":
        return cls(
            file_status=error.file_status,
            embedded_files=error.embedded_files,
        )

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


class SuccessResponse(BaseModel):
    file_status: str = Field(..., alias="file status")
    embedded_files: str = Field(..., alias="embedded files")
    xml_content: str
    xml_filename: str

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    @classmethod
    def from_invoice(
        cls,
        invoice: ExtractedInvoice,
        canonical: str = "factur-x.xml",
    ) -> "SuccessResponse":
        if invoice.is_canonical_name:
            status = STATUS_SUCCESS
        elif canonical == "factur-x.xml":
            status = STATUS_NOT_CANONICAL
        else:
            status = f"XML is not {canonical}"

        return cls(
            file_status=status,
            embedded_files=", ".join(invoice.embedded_files),
            xml_content=invoice.xml_content.decode("utf-8", errors="replace"),
            xml_filename=invoice.filename,
        )

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True)
