"""Tests for PDF brief extraction."""

import base64
import io
from types import SimpleNamespace
from unittest.mock import MagicMock

import anthropic
import httpx
import pytest
from pypdf import PdfWriter

from wp_image_renamer.pdf import (
    PdfExtractionError,
    check_pdf_upload,
    extract_pdf_text,
    extract_pdf_text_with_llm,
    read_pdf,
)


def text_pdf(text):
    """Build a one-page PDF whose text layer holds `text`."""
    stream = b"BT /F1 12 Tf 10 50 Td (" + text.encode("ascii") + b") Tj ET"
    objects = [
        b"<< /Type /Catalog /Pages 2 0 R >>",
        b"<< /Type /Pages /Kids [3 0 R] /Count 1 >>",
        b"<< /Type /Page /Parent 2 0 R /MediaBox [0 0 400 100] "
        b"/Resources << /Font << /F1 4 0 R >> >> /Contents 5 0 R >>",
        b"<< /Type /Font /Subtype /Type1 /BaseFont /Helvetica >>",
        b"<< /Length %d >>\nstream\n" % len(stream) + stream + b"\nendstream",
    ]
    out = io.BytesIO()
    out.write(b"%PDF-1.4\n")
    offsets = []
    for number, body in enumerate(objects, start=1):
        offsets.append(out.tell())
        out.write(b"%d 0 obj\n" % number + body + b"\nendobj\n")
    xref = out.tell()
    out.write(b"xref\n0 %d\n" % (len(objects) + 1))
    out.write(b"0000000000 65535 f \n")
    for offset in offsets:
        out.write(b"%010d 00000 n \n" % offset)
    out.write(
        b"trailer\n<< /Size %d /Root 1 0 R >>\nstartxref\n%d\n%%%%EOF\n"
        % (len(objects) + 1, xref)
    )
    return out.getvalue()


def blank_pdf(pages=1):
    """Build a PDF without any text layer, like a scanned brief."""
    writer = PdfWriter()
    for _ in range(pages):
        writer.add_blank_page(width=200, height=200)
    buffer = io.BytesIO()
    writer.write(buffer)
    return buffer.getvalue()


def fake_llm(text):
    llm = MagicMock()
    llm.messages.create.return_value = SimpleNamespace(
        content=[SimpleNamespace(type="text", text=text)]
    )
    return llm


class TestCheckPdfUpload:
    """Tests for check_pdf_upload."""

    @pytest.mark.parametrize(
        ("filename", "data"), [(None, b"x"), ("brief.pdf", b""), ("", None)]
    )
    def test_no_file(self, filename, data):
        with pytest.raises(PdfExtractionError) as exc_info:
            check_pdf_upload(filename, data)
        assert exc_info.value.code == "no_file"

    def test_not_pdf(self):
        with pytest.raises(PdfExtractionError) as exc_info:
            check_pdf_upload("brief.docx", b"data")
        assert exc_info.value.code == "not_pdf"

    def test_extension_case_insensitive(self):
        assert check_pdf_upload("BRIEF.PDF", b"data") == b"data"


class TestExtractPdfText:
    """Tests for extract_pdf_text."""

    def test_text_layer(self):
        result = extract_pdf_text("brief.pdf", text_pdf("Nom entreprise : Acme"))
        assert result.pages == 1
        assert "Acme" in result.text

    def test_blank_pages(self):
        result = extract_pdf_text("scan.pdf", blank_pdf(pages=2))
        assert result.pages == 2
        assert result.text.strip() == ""

    def test_unreadable(self):
        with pytest.raises(PdfExtractionError) as exc_info:
            extract_pdf_text("brief.pdf", b"this is not a pdf")
        assert exc_info.value.code == "read_error"

    def test_to_dict(self):
        result = extract_pdf_text("scan.pdf", blank_pdf())
        assert result.to_dict() == {"text": "", "pages": 1}


class TestLlmFallback:
    """Tests for the LLM transcription of scanned briefs."""

    def test_document_block(self):
        data = blank_pdf()
        llm = fake_llm("Nom entreprise : Acme")

        result = extract_pdf_text_with_llm(llm, data, "test-model", pages=1)

        assert result.text == "Nom entreprise : Acme"
        kwargs = llm.messages.create.call_args.kwargs
        assert kwargs["model"] == "test-model"
        document = kwargs["messages"][0]["content"][0]
        assert document["type"] == "document"
        assert document["source"]["data"] == base64.b64encode(data).decode()

    def test_api_error(self):
        llm = MagicMock()
        llm.messages.create.side_effect = anthropic.APIConnectionError(
            request=httpx.Request("POST", "https://api.anthropic.com/v1/messages")
        )
        with pytest.raises(PdfExtractionError) as exc_info:
            extract_pdf_text_with_llm(llm, blank_pdf(), "test-model")
        assert exc_info.value.code == "llm_error"

    def test_read_pdf_uses_llm_without_text_layer(self):
        llm = fake_llm("Ton à adopter : Sobre")
        result = read_pdf("scan.pdf", blank_pdf(), llm=llm, model="test-model")
        assert result.text == "Ton à adopter : Sobre"
        assert result.pages == 1

    def test_read_pdf_prefers_text_layer(self):
        llm = fake_llm("unused")
        result = read_pdf("brief.pdf", text_pdf("Acme"), llm=llm, model="test-model")
        assert "Acme" in result.text
        llm.messages.create.assert_not_called()

    def test_read_pdf_without_llm(self):
        assert read_pdf("scan.pdf", blank_pdf()).text.strip() == ""
