"""Text extraction from PDF briefs.

Text is read with pypdf. Scanned briefs carry no text layer; for those,
the PDF can be handed to the LLM as a document block instead.
"""

from __future__ import annotations

import base64
import io
import logging
from dataclasses import asdict, dataclass

import anthropic
from pypdf import PdfReader
from pypdf.errors import PyPdfError

logger = logging.getLogger(__name__)

PDF_EXTRACTION_PROMPT = (
    "Extrais le texte intégral de ce cahier des charges, sans le résumer ni le "
    "commenter. Conserve les libellés (\"Nom entreprise :\", \"Villes choisies :\", "
    "etc.) et l'indentation de l'arborescence."
)
PDF_EXTRACTION_MAX_TOKENS = 4096


class PdfExtractionError(Exception):
    """Raised when a PDF cannot be read."""

    def __init__(self, message: str, code: str = "read_error") -> None:
        """Initialize PdfExtractionError.

        Args:
            message: Error description.
            code: One of "no_file", "not_pdf", "read_error", "llm_error".
        """
        super().__init__(message)
        self.code = code


@dataclass
class PdfText:
    """Text extracted from a PDF."""

    text: str
    pages: int

    def to_dict(self) -> dict[str, object]:
        """Convert to dictionary for JSON serialization."""
        return asdict(self)


def check_pdf_upload(filename: str | None, data: bytes | None) -> bytes:
    """Validate an uploaded file before extraction.

    Raises:
        PdfExtractionError: "no_file" when nothing was sent, "not_pdf" when
            the name does not end in .pdf.
    """
    if not filename or not data:
        raise PdfExtractionError("No file provided", code="no_file")
    if not filename.lower().endswith(".pdf"):
        raise PdfExtractionError("The file must be a PDF", code="not_pdf")
    return data


def extract_pdf_text(filename: str | None, data: bytes | None) -> PdfText:
    """Extract the text layer of a PDF.

    Args:
        filename: Name of the uploaded file.
        data: PDF bytes.

    Returns:
        PdfText with the concatenated page text and the page count.

    Raises:
        PdfExtractionError: If the upload is invalid or the PDF unreadable.
    """
    data = check_pdf_upload(filename, data)
    try:
        reader = PdfReader(io.BytesIO(data))
        texts = [page.extract_text() or "" for page in reader.pages]
    except (PyPdfError, ValueError, OSError) as e:
        raise PdfExtractionError(f"Error reading the PDF: {e}") from e

    logger.info("Extracted %d page(s) from %s", len(texts), filename)
    return PdfText(text="\n".join(texts), pages=len(texts))


def extract_pdf_text_with_llm(
    llm: anthropic.Anthropic,
    data: bytes,
    model: str,
    pages: int = 0,
) -> PdfText:
    """Transcribe a PDF through the LLM's document input.

    Raises:
        PdfExtractionError: With code "llm_error" if the request fails.
    """
    try:
        message = llm.messages.create(
            model=model,
            max_tokens=PDF_EXTRACTION_MAX_TOKENS,
            messages=[
                {
                    "role": "user",
                    "content": [
                        {
                            "type": "document",
                            "source": {
                                "type": "base64",
                                "media_type": "application/pdf",
                                "data": base64.b64encode(data).decode("ascii"),
                            },
                        },
                        {"type": "text", "text": PDF_EXTRACTION_PROMPT},
                    ],
                }
            ],
        )
    except anthropic.APIError as e:
        raise PdfExtractionError(f"LLM request failed: {e}", code="llm_error") from e

    text = "\n".join(block.text for block in message.content if block.type == "text")
    return PdfText(text=text, pages=pages)


def read_pdf(
    filename: str | None,
    data: bytes | None,
    llm: anthropic.Anthropic | None = None,
    model: str | None = None,
) -> PdfText:
    """Extract text from a PDF, asking the LLM when there is no text layer."""
    result = extract_pdf_text(filename, data)
    if result.text.strip() or llm is None or model is None or data is None:
        return result
    logger.info("No text layer in %s, transcribing with the LLM", filename)
    return extract_pdf_text_with_llm(llm, data, model, pages=result.pages)


__all__ = [
    "PdfExtractionError",
    "PdfText",
    "check_pdf_upload",
    "extract_pdf_text",
    "extract_pdf_text_with_llm",
    "read_pdf",
]
