"""WordPress REST API client.

This module handles:
- Authenticated requests against /wp-json/wp/v2 endpoints
- JWT token acquisition through the JWT Auth plugin
- Connection checks for application passwords and JWT
- Site name discovery
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import httpx

from wp_image_renamer.types import AuthMethod
from wp_image_renamer.wordpress.auth import (
    Credentials,
    basic_auth_header,
    bearer_auth_header,
    normalize_url,
)
from wp_image_renamer.wordpress.errors import WordPressError

logger = logging.getLogger(__name__)

REST_PREFIX = "/wp-json/wp/v2"
JWT_TOKEN_PATH = "/wp-json/jwt-auth/v1/token"


def error_message(response: httpx.Response, default: str | None = None) -> str:
    """Extract a readable error message from a WordPress response.

    WordPress errors are JSON objects with a "message" key; anything else
    falls back to the raw body, then to the given default.

    Args:
        response: Failed HTTP response.
        default: Message used when the body carries nothing useful.

    Returns:
        Error message.
    """
    fallback = default or f"Error {response.status_code}: {response.reason_phrase}"
    try:
        payload = response.json()
    except ValueError:
        return response.text.strip() or fallback
    if isinstance(payload, dict) and payload.get("message"):
        return str(payload["message"])
    return fallback


class WordPressClient:
    """Authenticated client for a single WordPress site.

    Args:
        http: HTTPX client used for all requests.
        credentials: Site URL and authentication material.
    """

    def __init__(self, http: httpx.Client, credentials: Credentials) -> None:
        self.http = http
        self.credentials = credentials
        self.base_url = credentials.site_url

    def api_url(self, path: str) -> str:
        """Return the absolute URL of a wp/v2 REST path."""
        return f"{self.base_url}{REST_PREFIX}/{path.lstrip('/')}"

    def request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json: Any = None,
        content: bytes | None = None,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        """Send an authenticated request to a wp/v2 endpoint.

        Raises:
            WordPressError: On transport failure or non-2xx status.
        """
        request_headers = {"Authorization": self.credentials.auth_header()}
        if headers:
            request_headers.update(headers)
        url = self.api_url(path)
        logger.debug("%s %s", method, url)

        try:
            response = self.http.request(
                method,
                url,
                params=params,
                json=json,
                content=content,
                headers=request_headers,
            )
        except httpx.TimeoutException as e:
            raise WordPressError(f"Timeout calling {url}", code="timeout") from e
        except httpx.HTTPError as e:
            raise WordPressError(
                f"Connection error calling {url}: {e}", code="connection_error"
            ) from e

        if not response.is_success:
            raise WordPressError(
                error_message(response),
                code="http_error",
                status_code=response.status_code,
            )
        return response

    def get(self, path: str, params: dict[str, Any] | None = None) -> httpx.Response:
        """GET a wp/v2 endpoint."""
        return self.request("GET", path, params=params)

    def post_json(self, path: str, body: dict[str, Any]) -> Any:
        """POST a JSON body to a wp/v2 endpoint and decode the reply."""
        response = self.request("POST", path, json=body)
        return response.json()


@dataclass
class ConnectResult:
    """Outcome of a successful connection test."""

    site_name: str
    url: str
    user_id: int
    token: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        result: dict[str, Any] = {
            "site": {"name": self.site_name, "url": self.url, "user_id": self.user_id}
        }
        if self.token is not None:
            result["token"] = self.token
        return result


def get_jwt_token(http: httpx.Client, url: str, username: str, password: str) -> str:
    """Obtain a JWT token from the JWT Auth plugin.

    Args:
        http: HTTPX client.
        url: Site URL.
        username: WordPress username.
        password: WordPress password.

    Returns:
        JWT token.

    Raises:
        WordPressError: If the plugin is missing or the credentials are refused.
    """
    base_url = normalize_url(url)
    try:
        response = http.post(
            f"{base_url}{JWT_TOKEN_PATH}",
            json={"username": username, "password": password},
        )
    except httpx.HTTPError as e:
        raise WordPressError(
            f"JWT connection error: {e}", code="connection_error", status_code=401
        ) from e

    if response.status_code == 403:
        raise WordPressError(
            error_message(response, "Invalid credentials"),
            code="invalid_credentials",
            status_code=401,
        )
    if response.status_code == 404:
        raise WordPressError(
            "The JWT Auth plugin is not installed or not active on this site.",
            code="jwt_plugin_missing",
            status_code=401,
        )
    if not response.is_success:
        raise WordPressError(error_message(response), code="http_error", status_code=401)

    token = response.json().get("token")
    if not token:
        raise WordPressError(
            "JWT response did not contain a token", code="jwt_error", status_code=401
        )
    return str(token)


def get_site_name(http: httpx.Client, url: str, auth_header: str) -> str:
    """Return the site name from the REST index, falling back to the URL."""
    try:
        response = http.get(f"{url}/wp-json", headers={"Authorization": auth_header})
        if response.is_success:
            return str(response.json().get("name") or url)
    except (httpx.HTTPError, ValueError) as e:
        logger.debug("Could not read site name for %s: %s", url, e)
    return url


def _fetch_current_user(http: httpx.Client, url: str, auth_header: str) -> httpx.Response:
    try:
        return http.get(
            f"{url}{REST_PREFIX}/users/me",
            headers={"Authorization": auth_header},
        )
    except httpx.HTTPError as e:
        raise WordPressError(
            f"Connection error: {e}", code="connection_error", status_code=401
        ) from e


def verify_connection_with_app_password(
    http: httpx.Client, url: str, username: str, password: str
) -> ConnectResult:
    """Verify a connection authenticated with an application password."""
    base_url = normalize_url(url)
    auth_header = basic_auth_header(username, password)
    response = _fetch_current_user(http, base_url, auth_header)

    if response.status_code == 401:
        raise WordPressError(
            "Invalid credentials", code="invalid_credentials", status_code=401
        )
    if response.status_code == 403:
        raise WordPressError(
            "Access denied. Check your permissions.",
            code="access_denied",
            status_code=401,
        )
    if response.status_code == 404:
        raise WordPressError(
            "The WordPress REST API is not reachable.",
            code="rest_unavailable",
            status_code=401,
        )
    if not response.is_success:
        raise WordPressError(
            f"Error {response.status_code}: {response.reason_phrase}",
            code="http_error",
            status_code=401,
        )

    user = response.json()
    return ConnectResult(
        site_name=get_site_name(http, base_url, auth_header),
        url=base_url,
        user_id=int(user["id"]),
    )


def verify_connection_with_jwt(
    http: httpx.Client, url: str, username: str, password: str
) -> ConnectResult:
    """Verify a connection authenticated with a JWT token."""
    base_url = normalize_url(url)
    token = get_jwt_token(http, base_url, username, password)
    auth_header = bearer_auth_header(token)
    response = _fetch_current_user(http, base_url, auth_header)

    if not response.is_success:
        raise WordPressError("Invalid JWT token", code="invalid_token", status_code=401)

    user = response.json()
    return ConnectResult(
        site_name=get_site_name(http, base_url, auth_header),
        url=base_url,
        user_id=int(user["id"]),
        token=token,
    )


def verify_connection(
    http: httpx.Client,
    url: str,
    username: str,
    password: str,
    auth_method: AuthMethod = AuthMethod.JWT,
) -> ConnectResult:
    """Verify a connection with the requested authentication method.

    Raises:
        WordPressError: With status_code 401 when the connection fails.
    """
    logger.info("Verifying %s connection to %s", auth_method.value, url)
    if auth_method == AuthMethod.JWT:
        return verify_connection_with_jwt(http, url, username, password)
    return verify_connection_with_app_password(http, url, username, password)


__all__ = [
    "ConnectResult",
    "REST_PREFIX",
    "WordPressClient",
    "error_message",
    "get_jwt_token",
    "get_site_name",
    "verify_connection",
    "verify_connection_with_app_password",
    "verify_connection_with_jwt",
]
