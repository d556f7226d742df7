"""Site store and connection workflow.

This module provides the high-level API for the site list: upsert by
URL, lookup, update and removal, plus the in-process cache holding
application passwords for the lifetime of the server.
"""

from __future__ import annotations

import logging
import threading
import uuid
from collections.abc import Sequence
from datetime import datetime, timezone
from pathlib import Path

import httpx
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from wp_image_renamer.sites.models import Site
from wp_image_renamer.types import AuthMethod, SiteStatus
from wp_image_renamer.wordpress.auth import Credentials, normalize_url
from wp_image_renamer.wordpress.client import ConnectResult, verify_connection
from wp_image_renamer.wordpress.errors import WordPressError

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = ("name", "username", "auth_method", "jwt_token", "status")


class SiteNotFoundError(Exception):
    """Raised when a site is not found."""

    def __init__(self, site_id: str) -> None:
        self.site_id = site_id
        self.code = "site_not_found"
        super().__init__(f"Site not found: {site_id}")


class CredentialCache:
    """Application passwords kept in memory, keyed by site id.

    Passwords are lost when the process stops; the user reconnects.
    """

    def __init__(self) -> None:
        self._passwords: dict[str, str] = {}
        self._lock = threading.Lock()

    def set(self, site_id: str, password: str) -> None:
        with self._lock:
            self._passwords[site_id] = password

    def get(self, site_id: str) -> str | None:
        with self._lock:
            return self._passwords.get(site_id)

    def discard(self, site_id: str) -> None:
        with self._lock:
            self._passwords.pop(site_id, None)

    def __contains__(self, site_id: object) -> bool:
        with self._lock:
            return site_id in self._passwords


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def find_site_by_url(session: Session, url: str) -> Site | None:
    """Find a site by URL, ignoring case."""
    stmt = select(Site).where(func.lower(Site.url) == normalize_url(url).lower())
    return session.execute(stmt).scalar_one_or_none()


def add_site(
    session: Session,
    url: str,
    name: str,
    username: str,
    auth_method: AuthMethod | str = AuthMethod.JWT,
    jwt_token: str | None = None,
    status: SiteStatus | str = SiteStatus.CONNECTED,
) -> Site:
    """Add a site, or update the existing site with the same URL.

    Args:
        session: Database session.
        url: Site URL (normalized before storage).
        name: Site name.
        username: WordPress username.
        auth_method: Authentication method.
        jwt_token: JWT token to persist, if any.
        status: Connection status.

    Returns:
        The created or updated Site.
    """
    auth_value = AuthMethod(auth_method).value
    status_value = SiteStatus(status).value
    normalized = normalize_url(url)

    site = find_site_by_url(session, normalized)
    if site is not None:
        site.url = normalized
        site.name = name
        site.username = username
        site.auth_method = auth_value
        site.jwt_token = jwt_token
        site.status = status_value
        site.last_connected = _utcnow()
        logger.info("Updated site %s (%s)", site.id, normalized)
    else:
        site = Site(
            id=str(uuid.uuid4()),
            url=normalized,
            name=name,
            username=username,
            auth_method=auth_value,
            jwt_token=jwt_token,
            status=status_value,
        )
        session.add(site)
        logger.info("Added site %s (%s)", site.id, normalized)
    session.flush()
    return site


def get_site(session: Session, site_id: str) -> Site:
    """Get a site by id.

    Raises:
        SiteNotFoundError: If the site does not exist.
    """
    site = session.get(Site, site_id)
    if site is None:
        raise SiteNotFoundError(site_id)
    return site


def list_sites(session: Session) -> Sequence[Site]:
    """List sites, most recently added first."""
    stmt = select(Site).order_by(Site.created_at.desc())
    return session.execute(stmt).scalars().all()


def update_site(session: Session, site_id: str, **updates: object) -> Site:
    """Update stored fields of a site.

    Only name, username, auth_method, jwt_token and status can change.

    Raises:
        SiteNotFoundError: If the site does not exist.
        ValueError: If an unknown field is given.
    """
    site = get_site(session, site_id)
    for key, value in updates.items():
        if key not in UPDATABLE_FIELDS:
            raise ValueError(f"Cannot update site field: {key}")
        if key == "auth_method" and value is not None:
            value = AuthMethod(value).value
        if key == "status" and value is not None:
            value = SiteStatus(value).value
        setattr(site, key, value)
    session.flush()
    return site


def remove_site(
    session: Session, site_id: str, cache: CredentialCache | None = None
) -> None:
    """Delete a site with its cahier, staged images and their files.

    Raises:
        SiteNotFoundError: If the site does not exist.
    """
    site = get_site(session, site_id)
    stored_paths = [Path(image.stored_path) for image in site.images]
    session.delete(site)
    session.flush()
    for path in stored_paths:
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            logger.warning("Could not delete %s: %s", path, e)
    if cache is not None:
        cache.discard(site_id)
    logger.info("Removed site %s", site_id)


def credentials_for(site: Site, cache: CredentialCache | None = None) -> Credentials:
    """Build request credentials for a stored site.

    The persisted JWT token is preferred; otherwise the cached
    application password is used. The result may carry no auth at all,
    in which case requests fail with "auth_required".
    """
    password = cache.get(site.id) if cache is not None else None
    return Credentials(
        site_url=site.url,
        token=site.jwt_token,
        username=site.username,
        app_password=password,
    )


def validate_site_url(url: str) -> str:
    """Normalize a URL and check that it can be parsed.

    Raises:
        WordPressError: With code "invalid_url" (status 400).
    """
    normalized = normalize_url(url)
    try:
        parsed = httpx.URL(normalized)
    except httpx.InvalidURL:
        parsed = None
    if parsed is None or not parsed.host:
        raise WordPressError("Invalid URL", code="invalid_url", status_code=400)
    return normalized


def connect_site(
    session: Session,
    http: httpx.Client,
    url: str,
    username: str,
    password: str,
    auth_method: AuthMethod | str = AuthMethod.JWT,
    cache: CredentialCache | None = None,
) -> tuple[Site, ConnectResult]:
    """Verify credentials against WordPress and store the site.

    Args:
        session: Database session.
        http: HTTPX client.
        url: Site URL.
        username: WordPress username.
        password: WordPress password (JWT) or application password.
        auth_method: Authentication method.
        cache: Where to keep the application password.

    Returns:
        (stored site, connection result).

    Raises:
        WordPressError: "missing_fields" or "invalid_url" (400), or any
            connection failure (401).
    """
    if not url or not username or not password:
        raise WordPressError(
            "All fields are required", code="missing_fields", status_code=400
        )
    method = AuthMethod(auth_method)
    normalized = validate_site_url(url)

    result = verify_connection(http, normalized, username, password, method)
    site = add_site(
        session,
        url=normalized,
        name=result.site_name,
        username=username,
        auth_method=method,
        jwt_token=result.token,
        status=SiteStatus.CONNECTED,
    )
    if cache is not None:
        if method == AuthMethod.APPLICATION_PASSWORD:
            cache.set(site.id, password)
        else:
            cache.discard(site.id)
    return site, result


__all__ = [
    "CredentialCache",
    "SiteNotFoundError",
    "add_site",
    "connect_site",
    "credentials_for",
    "find_site_by_url",
    "get_site",
    "list_sites",
    "remove_site",
    "update_site",
    "validate_site_url",
]
