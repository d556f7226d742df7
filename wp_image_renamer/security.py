"""Shared-password gate.

When an application password is configured, the UI and API require a
cookie proving that the password was entered. The cookie holds an HMAC
of the password, so changing the password invalidates existing cookies.
"""

from __future__ import annotations

import hashlib
import hmac

AUTH_COOKIE_NAME = "app_auth"

_TOKEN_MESSAGE = b"wp-image-renamer:authenticated"


def auth_token(app_password: str) -> str:
    """Return the cookie value proving knowledge of the password."""
    return hmac.new(app_password.encode(), _TOKEN_MESSAGE, hashlib.sha256).hexdigest()


def check_password(candidate: str | None, app_password: str) -> bool:
    """Compare a submitted password with the configured one."""
    if candidate is None:
        return False
    return hmac.compare_digest(candidate.encode(), app_password.encode())


def is_authenticated(cookie_value: str | None, app_password: str | None) -> bool:
    """Whether a request carrying this cookie may pass the gate.

    Without a configured password every request passes.
    """
    if not app_password:
        return True
    if not cookie_value:
        return False
    return hmac.compare_digest(cookie_value, auth_token(app_password))


def auth_status(cookie_value: str | None, app_password: str | None) -> dict[str, bool]:
    """Gate status as reported to the UI."""
    return {
        "authenticated": is_authenticated(cookie_value, app_password),
        "required": bool(app_password),
    }


__all__ = [
    "AUTH_COOKIE_NAME",
    "auth_status",
    "auth_token",
    "check_password",
    "is_authenticated",
]
