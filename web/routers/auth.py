"""Password gate endpoints.

- GET /api/auth - Gate status
- POST /api/auth - Log in with the shared password
- DELETE /api/auth - Log out
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Request, Response
from fastapi import status as http_status
from pydantic import BaseModel

from web.deps import get_settings_dep
from wp_image_renamer.config import Settings
from wp_image_renamer.security import (
    AUTH_COOKIE_NAME,
    auth_status,
    auth_token,
    check_password,
)

logger = logging.getLogger(__name__)

router = APIRouter()


class LoginRequest(BaseModel):
    """Request body for login."""

    password: str | None = None


def set_auth_cookie(response: Response, settings: Settings) -> None:
    """Attach the gate cookie to a response."""
    if not settings.app_password:
        return
    response.set_cookie(
        AUTH_COOKIE_NAME,
        auth_token(settings.app_password),
        max_age=settings.auth_cookie_max_age,
        path="/",
        httponly=True,
        samesite="strict",
        secure=settings.secure_cookies,
    )


@router.get("")
def auth_status_endpoint(
    request: Request,
    settings: Settings = Depends(get_settings_dep),
) -> dict[str, bool]:
    """Report whether a password is required and whether it was given."""
    return auth_status(request.cookies.get(AUTH_COOKIE_NAME), settings.app_password)


@router.post("")
def login_endpoint(
    body: LoginRequest,
    response: Response,
    settings: Settings = Depends(get_settings_dep),
) -> dict[str, Any]:
    """Check the shared password and set the auth cookie."""
    if not settings.app_password:
        return {"success": True}
    if not check_password(body.password, settings.app_password):
        logger.warning("Rejected login attempt")
        raise HTTPException(
            status_code=http_status.HTTP_401_UNAUTHORIZED,
            detail={"code": "incorrect_password", "message": "Incorrect password"},
        )
    set_auth_cookie(response, settings)
    return {"success": True}


@router.delete("")
def logout_endpoint(response: Response) -> dict[str, Any]:
    """Clear the auth cookie."""
    response.delete_cookie(AUTH_COOKIE_NAME, path="/")
    return {"success": True}
