"""Translation of core exceptions into HTTP errors.

Core modules raise exceptions carrying a stable `code`; routes turn them
into HTTPException with detail={"code": ..., "message": ...}.
"""

from __future__ import annotations

from typing import NoReturn

from fastapi import HTTPException
from fastapi import status as http_status

from wp_image_renamer.images.service import ImageNotFoundError, ImageRejectedError
from wp_image_renamer.naming.service import NamingError
from wp_image_renamer.pdf import PdfExtractionError
from wp_image_renamer.sites.service import SiteNotFoundError
from wp_image_renamer.wordpress.errors import ElementorError, WordPressError

_STATUS_BY_TYPE: list[tuple[type[Exception], int]] = [
    (SiteNotFoundError, http_status.HTTP_404_NOT_FOUND),
    (ImageNotFoundError, http_status.HTTP_404_NOT_FOUND),
    (ImageRejectedError, http_status.HTTP_400_BAD_REQUEST),
    (PdfExtractionError, http_status.HTTP_400_BAD_REQUEST),
    (NamingError, http_status.HTTP_502_BAD_GATEWAY),
]


def error_status(exc: Exception) -> int:
    """Pick the HTTP status for a core exception."""
    if isinstance(exc, (WordPressError, ElementorError)) and exc.status_code:
        return exc.status_code
    if isinstance(exc, WordPressError):
        return http_status.HTTP_502_BAD_GATEWAY
    if isinstance(exc, PdfExtractionError) and exc.code in ("read_error", "llm_error"):
        return http_status.HTTP_500_INTERNAL_SERVER_ERROR
    if isinstance(exc, NamingError) and exc.code == "no_target_page":
        return http_status.HTTP_400_BAD_REQUEST
    for exc_type, status_code in _STATUS_BY_TYPE:
        if isinstance(exc, exc_type):
            return status_code
    return http_status.HTTP_500_INTERNAL_SERVER_ERROR


def raise_http_error(exc: Exception) -> NoReturn:
    """Raise the HTTPException matching a core exception."""
    raise HTTPException(
        status_code=error_status(exc),
        detail={"code": getattr(exc, "code", "error"), "message": str(exc)},
    ) from None


__all__ = ["error_status", "raise_http_error"]
