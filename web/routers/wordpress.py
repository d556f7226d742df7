"""WordPress proxy endpoints.

- POST /api/wordpress/connect - Verify credentials
- GET /api/wordpress/pages - List target pages
- GET /api/wordpress/media - List media library images
- POST /api/wordpress/media - Update title/alt text of an attachment
- POST /api/wordpress/upload - Upload an image under its SEO name
- GET /api/wordpress/elementor - Inspect the Elementor layout of a page
- POST /api/wordpress/elementor - Replace the image of an Elementor widget

Every endpoint addresses a site either by `site_id` (a stored site,
credentials from the store) or by `site_url` plus a JWT `token` or a
`username`/`app_password` pair.
"""

from __future__ import annotations

from dataclasses import asdict
from typing import Any

import httpx
from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile
from fastapi import status as http_status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from web.deps import get_credential_cache, get_db, get_http_client, get_settings_dep
from web.errors import raise_http_error
from wp_image_renamer.config import Settings
from wp_image_renamer.sites.service import (
    CredentialCache,
    SiteNotFoundError,
    credentials_for,
    get_site,
    validate_site_url,
)
from wp_image_renamer.types import AuthMethod
from wp_image_renamer.wordpress.auth import Credentials
from wp_image_renamer.wordpress.client import WordPressClient, verify_connection
from wp_image_renamer.wordpress.elementor import inspect_page, replace_image
from wp_image_renamer.wordpress.errors import ElementorError, WordPressError
from wp_image_renamer.wordpress.media import list_media, update_media, upload_media
from wp_image_renamer.wordpress.pages import list_pages

router = APIRouter()


class SiteTarget(BaseModel):
    """Site addressing and credentials shared by WordPress requests."""

    site_id: str | None = None
    site_url: str | None = None
    token: str | None = None
    username: str | None = None
    app_password: str | None = None


class ConnectRequest(BaseModel):
    """Request body for a connection check."""

    url: str = ""
    username: str = ""
    password: str = ""
    auth_method: AuthMethod = AuthMethod.JWT


class MediaUpdateRequest(SiteTarget):
    """Request body for a media update."""

    media_id: int
    title: str | None = None
    alt_text: str | None = None


class ElementorReplaceRequest(SiteTarget):
    """Request body for an Elementor image replacement."""

    page_id: int
    widget_id: str = Field(min_length=1)
    new_image_url: str = Field(min_length=1)
    new_image_id: int | None = None


def site_target_query(
    site_id: str | None = Query(None, description="Stored site ID"),
    site_url: str | None = Query(None, description="Site URL"),
    token: str | None = Query(None, description="JWT token"),
    username: str | None = Query(None, description="WordPress username"),
    app_password: str | None = Query(None, description="Application password"),
) -> SiteTarget:
    """Read site addressing from query parameters."""
    return SiteTarget(
        site_id=site_id,
        site_url=site_url,
        token=token,
        username=username,
        app_password=app_password,
    )


def build_client(
    target: SiteTarget,
    http: httpx.Client,
    db: Session,
    cache: CredentialCache,
) -> WordPressClient:
    """Build a WordPress client for the addressed site.

    Raises:
        HTTPException: 404 for an unknown site, 400 when no site is given,
            401 when no credentials are available.
    """
    if target.site_id:
        try:
            site = get_site(db, target.site_id)
        except SiteNotFoundError as e:
            raise_http_error(e)
        credentials = credentials_for(site, cache)
    elif target.site_url:
        credentials = Credentials(
            site_url=target.site_url,
            token=target.token,
            username=target.username,
            app_password=target.app_password,
        )
    else:
        raise HTTPException(
            status_code=http_status.HTTP_400_BAD_REQUEST,
            detail={
                "code": "missing_site",
                "message": "site_id or site_url is required",
            },
        )

    if not credentials.has_auth:
        raise HTTPException(
            status_code=http_status.HTTP_401_UNAUTHORIZED,
            detail={
                "code": "auth_required",
                "message": "Authentication required (JWT token or username + "
                "application password)",
            },
        )
    return WordPressClient(http, credentials)


@router.post("/connect")
def connect_endpoint(
    request: ConnectRequest,
    http: httpx.Client = Depends(get_http_client),
) -> dict[str, Any]:
    """Verify WordPress credentials without storing the site.

    Returns:
        Site name, URL and user id, plus the JWT token for JWT auth.
    """
    if not request.url or not request.username or not request.password:
        raise HTTPException(
            status_code=http_status.HTTP_400_BAD_REQUEST,
            detail={"code": "missing_fields", "message": "All fields are required"},
        )
    try:
        url = validate_site_url(request.url)
        result = verify_connection(
            http, url, request.username, request.password, request.auth_method
        )
    except WordPressError as e:
        raise_http_error(e)
    return {"success": True, **result.to_dict()}


@router.get("/pages")
def pages_endpoint(
    target: SiteTarget = Depends(site_target_query),
    http: httpx.Client = Depends(get_http_client),
    db: Session = Depends(get_db),
    cache: CredentialCache = Depends(get_credential_cache),
) -> dict[str, Any]:
    """List the pages of a site, without long-tail city pages."""
    client = build_client(target, http, db, cache)
    try:
        listing = list_pages(client)
    except WordPressError as e:
        raise_http_error(e)
    return {"success": True, **listing.to_dict()}


@router.get("/media")
def list_media_endpoint(
    target: SiteTarget = Depends(site_target_query),
    page: int = Query(1, ge=1, description="Page number"),
    per_page: int = Query(20, ge=1, le=100, description="Items per page"),
    http: httpx.Client = Depends(get_http_client),
    db: Session = Depends(get_db),
    cache: CredentialCache = Depends(get_credential_cache),
) -> dict[str, Any]:
    """List image attachments of the media library."""
    client = build_client(target, http, db, cache)
    try:
        media_page = list_media(client, page=page, per_page=per_page)
    except WordPressError as e:
        raise_http_error(e)
    return {"success": True, **media_page.to_dict()}


@router.post("/media")
def update_media_endpoint(
    request: MediaUpdateRequest,
    http: httpx.Client = Depends(get_http_client),
    db: Session = Depends(get_db),
    cache: CredentialCache = Depends(get_credential_cache),
) -> dict[str, Any]:
    """Update the title and/or alt text of an attachment."""
    client = build_client(request, http, db, cache)
    try:
        media = update_media(
            client, request.media_id, title=request.title, alt_text=request.alt_text
        )
    except WordPressError as e:
        raise_http_error(e)
    return {"success": True, "media": media}


@router.post("/upload")
def upload_endpoint(
    file: UploadFile = File(...),
    seo_name: str = Form(...),
    alt_text: str | None = Form(None),
    site_id: str | None = Form(None),
    site_url: str | None = Form(None),
    token: str | None = Form(None),
    username: str | None = Form(None),
    app_password: str | None = Form(None),
    http: httpx.Client = Depends(get_http_client),
    db: Session = Depends(get_db),
    cache: CredentialCache = Depends(get_credential_cache),
    settings: Settings = Depends(get_settings_dep),
) -> dict[str, Any]:
    """Upload an image to the media library under its SEO name."""
    target = SiteTarget(
        site_id=site_id,
        site_url=site_url,
        token=token,
        username=username,
        app_password=app_password,
    )
    client = build_client(target, http, db, cache)
    data = file.file.read()
    try:
        media = upload_media(
            client,
            data,
            file.filename or "image.jpg",
            seo_name,
            alt_text=alt_text,
            max_bytes=settings.max_upload_bytes,
        )
    except WordPressError as e:
        raise_http_error(e)
    return {"success": True, "media": asdict(media)}


@router.get("/elementor")
def inspect_elementor_endpoint(
    page_id: int = Query(..., description="WordPress page ID"),
    target: SiteTarget = Depends(site_target_query),
    http: httpx.Client = Depends(get_http_client),
    db: Session = Depends(get_db),
    cache: CredentialCache = Depends(get_credential_cache),
) -> dict[str, Any]:
    """Describe the image widgets of a page's Elementor layout."""
    client = build_client(target, http, db, cache)
    try:
        inspection = inspect_page(client, page_id)
    except WordPressError as e:
        raise_http_error(e)
    return {"success": True, **asdict(inspection)}


@router.post("/elementor")
def replace_elementor_endpoint(
    request: ElementorReplaceRequest,
    http: httpx.Client = Depends(get_http_client),
    db: Session = Depends(get_db),
    cache: CredentialCache = Depends(get_credential_cache),
) -> dict[str, Any]:
    """Replace the image of an Elementor widget and verify the change."""
    client = build_client(request, http, db, cache)
    try:
        result = replace_image(
            client,
            request.page_id,
            request.widget_id,
            request.new_image_url,
            request.new_image_id,
        )
    except (WordPressError, ElementorError) as e:
        raise_http_error(e)
    return {
        "success": True,
        "message": "Image replaced",
        "endpoint": result.endpoint,
        "old_image": result.old_image,
        "new_image": {"url": request.new_image_url, "id": request.new_image_id},
    }
