"""Staged image and batch endpoints.

- GET /api/sites/{id}/images - List staged images
- POST /api/sites/{id}/images - Add images (multipart)
- DELETE /api/sites/{id}/images - Remove every staged image
- PATCH /api/sites/{id}/images/{image_id} - Edit an image
- DELETE /api/sites/{id}/images/{image_id} - Remove an image
- GET /api/sites/{id}/images/{image_id}/file - Stored image bytes
- POST /api/sites/{id}/images/{image_id}/toggle - Toggle selection
- POST /api/sites/{id}/images/selection - Select all / clear selection
- POST /api/sites/{id}/images/assign - Assign a page to the selection
- POST /api/sites/{id}/images/{image_id}/regenerate - Rename one image
- POST /api/sites/{id}/batch/names - Name every pending image
- POST /api/sites/{id}/batch/upload - Upload every named image
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

import anthropic
import httpx
from fastapi import APIRouter, Depends, File, UploadFile
from fastapi import status as http_status
from fastapi.responses import FileResponse
from pydantic import BaseModel
from sqlalchemy.orm import Session

from web.deps import (
    get_credential_cache,
    get_db,
    get_http_client,
    get_llm_client,
    get_settings_dep,
)
from web.errors import raise_http_error
from web.routers.sites import load_site
from web.routers.wordpress import SiteTarget, build_client
from wp_image_renamer.batch import generate_names, regenerate_name, upload_images
from wp_image_renamer.config import Settings
from wp_image_renamer.images.service import (
    ImageNotFoundError,
    ImageRejectedError,
    IncomingFile,
    add_images,
    assign_page_to_selected,
    clear_images,
    clear_selection,
    get_image,
    list_images,
    remove_image,
    select_all,
    set_target_page,
    toggle_selection,
    update_image,
)
from wp_image_renamer.naming.service import NamingError
from wp_image_renamer.sites.service import CredentialCache
from wp_image_renamer.types import TargetPage

router = APIRouter()


class PageRef(BaseModel):
    """WordPress page reference."""

    id: int
    title: str = ""
    slug: str = ""

    def as_target(self) -> TargetPage:
        return {"id": self.id, "title": self.title, "slug": self.slug}


class ImageUpdateRequest(BaseModel):
    """Request body for an image edit.

    Only fields present in the body are changed; `target_page: null`
    clears the assignment.
    """

    custom_instructions: str | None = None
    generated_name: str | None = None
    generated_alt_text: str | None = None
    target_page: PageRef | None = None


class SelectionRequest(BaseModel):
    """Request body for bulk selection."""

    action: Literal["all", "none"]


class AssignRequest(BaseModel):
    """Request body for assigning a page to the selection."""

    page: PageRef


@router.get("/{site_id}/images")
def list_images_endpoint(
    site_id: str, db: Session = Depends(get_db)
) -> list[dict[str, Any]]:
    """List the staged images of a site."""
    load_site(site_id, db)
    return [image.to_dict() for image in list_images(db, site_id)]


@router.post("/{site_id}/images", status_code=http_status.HTTP_201_CREATED)
def add_images_endpoint(
    site_id: str,
    files: list[UploadFile] = File(...),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings_dep),
) -> list[dict[str, Any]]:
    """Add images (JPEG, PNG, WebP, GIF up to the intake limit)."""
    load_site(site_id, db)
    incoming = [
        IncomingFile(
            filename=upload.filename or "image",
            data=upload.file.read(),
            content_type=upload.content_type,
        )
        for upload in files
    ]
    try:
        images = add_images(
            db,
            site_id,
            incoming,
            upload_dir=settings.upload_dir,
            max_bytes=settings.max_intake_bytes,
        )
    except ImageRejectedError as e:
        raise_http_error(e)
    return [image.to_dict() for image in images]


@router.delete("/{site_id}/images")
def clear_images_endpoint(site_id: str, db: Session = Depends(get_db)) -> dict[str, int]:
    """Remove every staged image of a site."""
    load_site(site_id, db)
    return {"deleted": clear_images(db, site_id)}


@router.post("/{site_id}/images/selection")
def selection_endpoint(
    site_id: str,
    request: SelectionRequest,
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    """Select every image, or clear the selection."""
    load_site(site_id, db)
    if request.action == "all":
        select_all(db, site_id)
    else:
        clear_selection(db, site_id)
    return {"selected": [img.id for img in list_images(db, site_id) if img.selected]}


@router.post("/{site_id}/images/assign")
def assign_endpoint(
    site_id: str,
    request: AssignRequest,
    db: Session = Depends(get_db),
) -> dict[str, int]:
    """Assign a page to every selected image and clear the selection."""
    load_site(site_id, db)
    return {"updated": assign_page_to_selected(db, site_id, request.page.as_target())}


@router.patch("/{site_id}/images/{image_id}")
def update_image_endpoint(
    site_id: str,
    image_id: str,
    request: ImageUpdateRequest,
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    """Edit instructions, name, alt text or target page of an image."""
    load_site(site_id, db)
    fields = request.model_fields_set
    updates = {
        key: getattr(request, key)
        for key in ("custom_instructions", "generated_name", "generated_alt_text")
        if key in fields
    }
    try:
        image = update_image(db, site_id, image_id, **updates)
        if "target_page" in fields:
            page = request.target_page.as_target() if request.target_page else None
            image = set_target_page(db, site_id, image_id, page)
    except ImageNotFoundError as e:
        raise_http_error(e)
    return image.to_dict()


@router.delete(
    "/{site_id}/images/{image_id}", status_code=http_status.HTTP_204_NO_CONTENT
)
def delete_image_endpoint(
    site_id: str, image_id: str, db: Session = Depends(get_db)
) -> None:
    """Remove a staged image."""
    load_site(site_id, db)
    try:
        remove_image(db, site_id, image_id)
    except ImageNotFoundError as e:
        raise_http_error(e)


@router.get("/{site_id}/images/{image_id}/file")
def image_file_endpoint(
    site_id: str, image_id: str, db: Session = Depends(get_db)
) -> FileResponse:
    """Serve the stored bytes of an image (previews)."""
    try:
        image = get_image(db, site_id, image_id)
    except ImageNotFoundError as e:
        raise_http_error(e)
    path = Path(image.stored_path)
    if not path.is_file():
        raise_http_error(ImageNotFoundError(image_id))
    return FileResponse(path, media_type=image.mime_type)


@router.post("/{site_id}/images/{image_id}/toggle")
def toggle_endpoint(
    site_id: str, image_id: str, db: Session = Depends(get_db)
) -> dict[str, bool]:
    """Toggle the selection of an image."""
    try:
        selected = toggle_selection(db, site_id, image_id)
    except ImageNotFoundError as e:
        raise_http_error(e)
    return {"selected": selected}


@router.post("/{site_id}/images/{image_id}/regenerate")
def regenerate_endpoint(
    site_id: str,
    image_id: str,
    db: Session = Depends(get_db),
    llm: anthropic.Anthropic = Depends(get_llm_client),
    settings: Settings = Depends(get_settings_dep),
) -> dict[str, Any]:
    """Generate a new name and alt text for one image."""
    site = load_site(site_id, db)
    try:
        regenerate_name(db, site, image_id, llm, settings=settings)
        image = get_image(db, site_id, image_id)
    except (ImageNotFoundError, NamingError) as e:
        raise_http_error(e)
    return image.to_dict()


@router.post("/{site_id}/batch/names")
def batch_names_endpoint(
    site_id: str,
    db: Session = Depends(get_db),
    llm: anthropic.Anthropic = Depends(get_llm_client),
    settings: Settings = Depends(get_settings_dep),
) -> dict[str, Any]:
    """Name every image that has a target page and no name yet."""
    site = load_site(site_id, db)
    result = generate_names(db, site, llm, settings=settings)
    return result.to_dict()


@router.post("/{site_id}/batch/upload")
def batch_upload_endpoint(
    site_id: str,
    db: Session = Depends(get_db),
    http: httpx.Client = Depends(get_http_client),
    cache: CredentialCache = Depends(get_credential_cache),
    settings: Settings = Depends(get_settings_dep),
) -> dict[str, Any]:
    """Upload every named image that is not uploaded yet."""
    site = load_site(site_id, db)
    client = build_client(SiteTarget(site_id=site_id), http, db, cache)
    result = upload_images(db, site, client, settings=settings)
    return result.to_dict()
