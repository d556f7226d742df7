"""LLM endpoints.

- POST /api/ai/rename - Suggest an SEO filename and alt text for one image
"""

from __future__ import annotations

import base64
import binascii
from typing import Any

import anthropic
import httpx
from fastapi import APIRouter, Depends, HTTPException
from fastapi import status as http_status
from pydantic import BaseModel, Field, ValidationError

from web.deps import get_http_client, get_llm_client, get_settings_dep
from web.errors import raise_http_error
from wp_image_renamer.config import Settings
from wp_image_renamer.naming.prompt import RenameContext
from wp_image_renamer.naming.service import NamingError, generate_seo_name

router = APIRouter()


def _context_error(error: ValidationError) -> dict[str, str]:
    """Map a RenameContext validation error to an error detail."""
    errors = error.errors()
    # The target page check is the only model-level error
    if all(not err["loc"] for err in errors):
        return {
            "code": "missing_target_page",
            "message": "A target page is required to generate an SEO name",
        }
    message = "; ".join(
        f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}"
        for err in errors
        if err["loc"]
    )
    return {"code": "invalid_context", "message": message}


class RenameRequest(BaseModel):
    """Request body for a name suggestion."""

    context: dict[str, Any]
    existing_names: list[str] = Field(default_factory=list)
    image_base64: str | None = None
    mime_type: str | None = None
    image_url: str | None = None


@router.post("/rename")
def rename_endpoint(
    request: RenameRequest,
    llm: anthropic.Anthropic = Depends(get_llm_client),
    http: httpx.Client = Depends(get_http_client),
    settings: Settings = Depends(get_settings_dep),
) -> dict[str, Any]:
    """Suggest a unique SEO filename and an alt text.

    The image is taken from `image_base64`, else downloaded from
    `image_url`; without either, the name comes from text context only.
    """
    try:
        context = RenameContext.model_validate(request.context)
    except ValidationError as e:
        raise HTTPException(
            status_code=http_status.HTTP_400_BAD_REQUEST,
            detail=_context_error(e),
        ) from None

    image_data = None
    if request.image_base64:
        try:
            image_data = base64.b64decode(request.image_base64, validate=True)
        except (binascii.Error, ValueError):
            raise HTTPException(
                status_code=http_status.HTTP_400_BAD_REQUEST,
                detail={
                    "code": "invalid_image",
                    "message": "image_base64 is not valid base64",
                },
            ) from None

    try:
        suggestion = generate_seo_name(
            llm,
            context,
            existing_names=request.existing_names,
            image_data=image_data,
            mime_type=request.mime_type,
            image_url=request.image_url,
            http=http,
            model=settings.llm_model,
            max_tokens=settings.llm_max_tokens,
        )
    except NamingError as e:
        raise_http_error(e)

    return {
        "success": True,
        "suggested_name": suggestion.name,
        "alt_text": suggestion.alt_text,
        "used_vision": suggestion.used_vision,
    }
