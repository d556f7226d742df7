"""Stored site endpoints.

- GET /api/sites - List sites
- POST /api/sites - Connect and store a site
- GET /api/sites/{id} - Get a site
- PATCH /api/sites/{id} - Update a site
- DELETE /api/sites/{id} - Delete a site with its cahier and images
- GET /api/sites/{id}/pages - List the site's target pages
- GET/PUT/DELETE /api/sites/{id}/cahier - Stored cahier des charges
- POST /api/sites/{id}/cahier/parse - Parse brief text (optionally store it)
- POST /api/sites/{id}/media/suggest - Suggest titles/alt texts for media items
- POST /api/sites/{id}/media/apply - Write titles/alt texts to WordPress
"""

from __future__ import annotations

from typing import Any

import anthropic
import httpx
from fastapi import APIRouter, Depends, HTTPException
from fastapi import status as http_status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from web.deps import (
    get_credential_cache,
    get_db,
    get_http_client,
    get_llm_client,
    get_settings_dep,
)
from web.errors import raise_http_error
from web.routers.wordpress import ConnectRequest, SiteTarget, build_client
from wp_image_renamer.batch import (
    MediaSuggestion,
    apply_media_updates,
    suggest_media_metadata,
)
from wp_image_renamer.cahier.parser import cahier_to_text, parse_cahier
from wp_image_renamer.cahier.schema import CahierDesCharges
from wp_image_renamer.cahier.service import (
    get_cahier,
    get_cahier_fields,
    record_to_schema,
    remove_cahier,
    set_cahier,
)
from wp_image_renamer.config import Settings
from wp_image_renamer.sites.models import Site
from wp_image_renamer.sites.service import (
    CredentialCache,
    SiteNotFoundError,
    connect_site,
    get_site,
    list_sites,
    remove_site,
    update_site,
)
from wp_image_renamer.types import SiteStatus
from wp_image_renamer.wordpress.errors import WordPressError
from wp_image_renamer.wordpress.media import MediaItem
from wp_image_renamer.wordpress.pages import list_pages

router = APIRouter()


class SiteUpdateRequest(BaseModel):
    """Request body for a site update."""

    name: str | None = None
    status: SiteStatus | None = None


class CahierRequest(BaseModel):
    """Request body for storing a cahier.

    When `parsed` is omitted, it is parsed from `raw_text`.
    """

    raw_text: str = ""
    parsed: CahierDesCharges | None = None


class ParseRequest(BaseModel):
    """Request body for parsing brief text."""

    text: str
    save: bool = False


class MediaSuggestRequest(BaseModel):
    """Request body for media suggestions."""

    items: list[dict[str, Any]] = Field(default_factory=list)


class MediaApplyRequest(BaseModel):
    """Request body for applying media updates, keyed by media id."""

    updates: dict[int, MediaSuggestion]


def load_site(site_id: str, db: Session) -> Site:
    """Get a site or raise a 404 HTTPException."""
    try:
        return get_site(db, site_id)
    except SiteNotFoundError as e:
        raise_http_error(e)


@router.get("")
def list_sites_endpoint(db: Session = Depends(get_db)) -> list[dict[str, Any]]:
    """List stored sites, most recently added first."""
    return [site.to_dict() for site in list_sites(db)]


@router.post("", status_code=http_status.HTTP_201_CREATED)
def connect_site_endpoint(
    request: ConnectRequest,
    db: Session = Depends(get_db),
    http: httpx.Client = Depends(get_http_client),
    cache: CredentialCache = Depends(get_credential_cache),
) -> dict[str, Any]:
    """Verify credentials, then store (or refresh) the site.

    Application passwords are kept in memory only.
    """
    try:
        site, _ = connect_site(
            db,
            http,
            request.url,
            request.username,
            request.password,
            request.auth_method,
            cache=cache,
        )
    except WordPressError as e:
        raise_http_error(e)
    return site.to_dict()


@router.get("/{site_id}")
def get_site_endpoint(site_id: str, db: Session = Depends(get_db)) -> dict[str, Any]:
    """Get a stored site."""
    site = load_site(site_id, db)
    data = site.to_dict()
    data["has_cahier"] = get_cahier(db, site_id) is not None
    return data


@router.patch("/{site_id}")
def update_site_endpoint(
    site_id: str,
    request: SiteUpdateRequest,
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    """Update the name or status of a site."""
    updates = request.model_dump(exclude_none=True)
    try:
        site = update_site(db, site_id, **updates)
    except SiteNotFoundError as e:
        raise_http_error(e)
    return site.to_dict()


@router.delete("/{site_id}", status_code=http_status.HTTP_204_NO_CONTENT)
def delete_site_endpoint(
    site_id: str,
    db: Session = Depends(get_db),
    cache: CredentialCache = Depends(get_credential_cache),
) -> None:
    """Delete a site with its cahier and staged images."""
    try:
        remove_site(db, site_id, cache=cache)
    except SiteNotFoundError as e:
        raise_http_error(e)


@router.get("/{site_id}/pages")
def site_pages_endpoint(
    site_id: str,
    db: Session = Depends(get_db),
    http: httpx.Client = Depends(get_http_client),
    cache: CredentialCache = Depends(get_credential_cache),
) -> dict[str, Any]:
    """List the target pages of a stored site."""
    load_site(site_id, db)
    client = build_client(SiteTarget(site_id=site_id), http, db, cache)
    try:
        listing = list_pages(client)
    except WordPressError as e:
        raise_http_error(e)
    return {"success": True, **listing.to_dict()}


# Cahier des charges


@router.get("/{site_id}/cahier")
def get_cahier_endpoint(site_id: str, db: Session = Depends(get_db)) -> dict[str, Any]:
    """Get the stored cahier of a site."""
    load_site(site_id, db)
    record = get_cahier(db, site_id)
    if record is None:
        raise HTTPException(
            status_code=http_status.HTTP_404_NOT_FOUND,
            detail={
                "code": "cahier_not_found",
                "message": f"No cahier des charges for site: {site_id}",
            },
        )
    data = record_to_schema(record).model_dump(mode="json")
    data["text"] = cahier_to_text(CahierDesCharges.model_validate(record.parsed or {}))
    return data


@router.put("/{site_id}/cahier")
def put_cahier_endpoint(
    site_id: str,
    request: CahierRequest,
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    """Store the cahier of a site."""
    load_site(site_id, db)
    parsed = request.parsed
    if parsed is None:
        parsed = parse_cahier(request.raw_text)
    record = set_cahier(db, site_id, parsed, request.raw_text)
    return record_to_schema(record).model_dump(mode="json")


@router.delete("/{site_id}/cahier", status_code=http_status.HTTP_204_NO_CONTENT)
def delete_cahier_endpoint(site_id: str, db: Session = Depends(get_db)) -> None:
    """Delete the stored cahier of a site."""
    load_site(site_id, db)
    remove_cahier(db, site_id)


@router.post("/{site_id}/cahier/parse")
def parse_cahier_endpoint(
    site_id: str,
    request: ParseRequest,
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    """Parse brief text, storing the result when `save` is set."""
    load_site(site_id, db)
    parsed = parse_cahier(request.text)
    if request.save:
        set_cahier(db, site_id, parsed, request.text)
    return {
        "parsed": parsed.model_dump(mode="json", exclude_none=True),
        "has_data": parsed.has_data(),
        "saved": request.save,
    }


# Media library optimisation


@router.post("/{site_id}/media/suggest")
def suggest_media_endpoint(
    site_id: str,
    request: MediaSuggestRequest,
    db: Session = Depends(get_db),
    llm: anthropic.Anthropic = Depends(get_llm_client),
    http: httpx.Client = Depends(get_http_client),
    settings: Settings = Depends(get_settings_dep),
) -> dict[str, Any]:
    """Suggest titles and alt texts for media library items, one by one."""
    load_site(site_id, db)
    items = [
        MediaItem(
            id=int(item["id"]),
            title=item.get("title") or "",
            alt_text=item.get("alt_text") or "",
            url=item.get("url") or "",
            thumbnail=item.get("thumbnail") or "",
        )
        for item in request.items
        if "id" in item
    ]
    suggestions, result = suggest_media_metadata(
        llm, items, get_cahier_fields(db, site_id), http=http, settings=settings
    )
    return {
        "suggestions": {str(k): v.to_dict() for k, v in suggestions.items()},
        **result.to_dict(),
    }


@router.post("/{site_id}/media/apply")
def apply_media_endpoint(
    site_id: str,
    request: MediaApplyRequest,
    db: Session = Depends(get_db),
    http: httpx.Client = Depends(get_http_client),
    cache: CredentialCache = Depends(get_credential_cache),
) -> dict[str, Any]:
    """Write titles and alt texts to media library items, one by one."""
    load_site(site_id, db)
    client = build_client(SiteTarget(site_id=site_id), http, db, cache)
    result = apply_media_updates(client, request.updates)
    return result.to_dict()
