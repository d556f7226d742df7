"""PDF brief endpoint.

- POST /api/pdf - Extract the text of an uploaded PDF
"""

from __future__ import annotations

from typing import Any

import anthropic
from fastapi import APIRouter, Depends, File, UploadFile

from web.deps import get_optional_llm_client, get_settings_dep
from web.errors import raise_http_error
from wp_image_renamer.config import Settings
from wp_image_renamer.pdf import PdfExtractionError, read_pdf

router = APIRouter()


@router.post("")
def extract_pdf_endpoint(
    file: UploadFile | None = File(None),
    llm: anthropic.Anthropic | None = Depends(get_optional_llm_client),
    settings: Settings = Depends(get_settings_dep),
) -> dict[str, Any]:
    """Extract text from a PDF, transcribing scanned documents with the LLM."""
    filename = file.filename if file is not None else None
    data = file.file.read() if file is not None else None
    try:
        result = read_pdf(filename, data, llm=llm, model=settings.llm_model)
    except PdfExtractionError as e:
        raise_http_error(e)
    return {"success": True, **result.to_dict()}
