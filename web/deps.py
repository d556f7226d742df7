"""Shared dependencies for FastAPI routes.

Provides database sessions, settings, outbound clients and the password
gate to route handlers via FastAPI dependency injection.

Transaction boundaries are managed here:
- Session is created at request start
- On success (no exception): session is committed automatically
- On exception: session is rolled back automatically
- Session is closed after request completes

This approach ensures consistent transaction boundaries across all endpoints
and removes the need for manual db.commit() calls in route handlers.
"""

from __future__ import annotations

from collections.abc import Generator
from typing import Any, NoReturn

import anthropic
import httpx
from fastapi import Depends, HTTPException, Request
from fastapi import status as http_status
from sqlalchemy.orm import Session, sessionmaker

from wp_image_renamer.config import Settings, get_settings
from wp_image_renamer.security import AUTH_COOKIE_NAME, is_authenticated
from wp_image_renamer.sites.service import CredentialCache


def get_session_factory(request: Request) -> sessionmaker[Session]:
    """Get session factory from app state.

    Args:
        request: FastAPI request object.

    Returns:
        SQLAlchemy session factory.
    """
    factory: Any = request.app.state.session_factory
    return factory  # type: ignore[no-any-return]


def get_db(
    session_factory: sessionmaker[Session] = Depends(get_session_factory),
) -> Generator[Session, None, None]:
    """Provide a database session for a request.

    Creates a session at the start of the request. Transaction boundaries
    are managed automatically:
    - Commits on successful completion (no exception)
    - Rolls back on any exception
    - Closes the session after request completes

    Yields:
        Database session.
    """
    session = session_factory()
    try:
        yield session
        # Commit on success - only reached if no exception was raised
        session.commit()
    except Exception:
        # Rollback on any exception
        session.rollback()
        raise
    finally:
        session.close()


def get_settings_dep() -> Settings:
    """Get application settings.

    Returns:
        Settings instance.
    """
    return get_settings()


def get_credential_cache(request: Request) -> CredentialCache:
    """Get the application password cache from app state.

    The cache is created on first use when the app was built without
    running its lifespan (tests).
    """
    cache = getattr(request.app.state, "credential_cache", None)
    if cache is None:
        cache = CredentialCache()
        request.app.state.credential_cache = cache
    return cache  # type: ignore[no-any-return]


def get_http_client(
    settings: Settings = Depends(get_settings_dep),
) -> Generator[httpx.Client, None, None]:
    """Provide an HTTPX client for WordPress and image requests.

    Yields:
        HTTPX client, closed after the request.
    """
    with httpx.Client(timeout=settings.request_timeout, follow_redirects=True) as client:
        yield client


def get_optional_llm_client(
    settings: Settings = Depends(get_settings_dep),
) -> anthropic.Anthropic | None:
    """Get an Anthropic client, or None when no API key is configured."""
    if not settings.anthropic_api_key:
        return None
    return anthropic.Anthropic(
        api_key=settings.anthropic_api_key, timeout=settings.request_timeout * 2
    )


def get_llm_client(
    llm: anthropic.Anthropic | None = Depends(get_optional_llm_client),
) -> anthropic.Anthropic:
    """Get an Anthropic client.

    Raises:
        HTTPException: 503 when no API key is configured.
    """
    if llm is None:
        raise HTTPException(
            status_code=http_status.HTTP_503_SERVICE_UNAVAILABLE,
            detail={
                "code": "llm_not_configured",
                "message": "ANTHROPIC_API_KEY is not configured",
            },
        )
    return llm


def _gate_passed(request: Request, settings: Settings) -> bool:
    return is_authenticated(request.cookies.get(AUTH_COOKIE_NAME), settings.app_password)


def require_auth(
    request: Request,
    settings: Settings = Depends(get_settings_dep),
) -> None:
    """Reject API requests that have not passed the password gate.

    Raises:
        HTTPException: 401 when a password is configured and the auth
            cookie is missing or wrong.
    """
    if not _gate_passed(request, settings):
        raise HTTPException(
            status_code=http_status.HTTP_401_UNAUTHORIZED,
            detail={"code": "auth_required", "message": "Authentication required"},
        )


def _redirect_to_login() -> NoReturn:
    raise HTTPException(
        status_code=http_status.HTTP_303_SEE_OTHER,
        headers={"Location": "/ui/login"},
    )


def require_gui_auth(
    request: Request,
    settings: Settings = Depends(get_settings_dep),
) -> None:
    """Redirect GUI requests that have not passed the gate to the login page."""
    if not _gate_passed(request, settings):
        _redirect_to_login()


__all__ = [
    "get_credential_cache",
    "get_db",
    "get_http_client",
    "get_llm_client",
    "get_optional_llm_client",
    "get_session_factory",
    "get_settings_dep",
    "require_auth",
    "require_gui_auth",
]
