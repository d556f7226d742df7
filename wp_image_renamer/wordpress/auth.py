"""WordPress URL and authentication helpers.

WordPress accepts two interchangeable mechanisms here: application
passwords sent as HTTP Basic credentials, and JWT tokens (from the
JWT Auth plugin) sent as Bearer tokens.
"""

from __future__ import annotations

import base64
from dataclasses import dataclass

from wp_image_renamer.wordpress.errors import WordPressError


def normalize_url(url: str) -> str:
    """Normalize a WordPress site URL.

    Adds https:// when no scheme is given and strips trailing slashes.

    Args:
        url: URL as typed by the user.

    Returns:
        Normalized base URL.
    """
    normalized = url.strip()
    if not normalized.lower().startswith(("http://", "https://")):
        normalized = "https://" + normalized
    return normalized.rstrip("/")


def basic_auth_header(username: str, password: str) -> str:
    """Build a Basic authorization header value."""
    credentials = base64.b64encode(f"{username}:{password}".encode()).decode("ascii")
    return f"Basic {credentials}"


def bearer_auth_header(token: str) -> str:
    """Build a Bearer (JWT) authorization header value."""
    return f"Bearer {token}"


@dataclass
class Credentials:
    """Credentials for a WordPress site.

    Attributes:
        site_url: Base URL of the site.
        token: JWT token, preferred when present.
        username: WordPress username for application passwords.
        app_password: Application password.
    """

    site_url: str
    token: str | None = None
    username: str | None = None
    app_password: str | None = None

    def __post_init__(self) -> None:
        self.site_url = normalize_url(self.site_url)

    @property
    def has_auth(self) -> bool:
        """Whether the credentials can build an authorization header."""
        return bool(self.token or (self.username and self.app_password))

    def auth_header(self) -> str:
        """Return the authorization header value.

        Raises:
            WordPressError: If neither a token nor a username/password pair
                is available.
        """
        if self.token:
            return bearer_auth_header(self.token)
        if self.username and self.app_password:
            return basic_auth_header(self.username, self.app_password)
        raise WordPressError(
            "Authentication required (JWT token or username + application password)",
            code="auth_required",
            status_code=401,
        )


__all__ = [
    "Credentials",
    "basic_auth_header",
    "bearer_auth_header",
    "normalize_url",
]
