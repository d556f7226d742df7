"""Sequential batch workflows.

Every batch walks its items one at a time: naming staged images, pushing
them to WordPress, and optimising titles and alt texts of images already
in the media library. A failing item is recorded in the BatchResult and
the batch moves on.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from pathlib import PurePosixPath
from typing import Any
from urllib.parse import urlparse

import anthropic
import httpx
from pydantic import ValidationError
from sqlalchemy.orm import Session

from wp_image_renamer.cahier.schema import CahierDesCharges
from wp_image_renamer.cahier.service import get_cahier_fields
from wp_image_renamer.config import Settings, get_settings
from wp_image_renamer.images.models import UploadedImage
from wp_image_renamer.images.processing import ImageProcessingError, prepare_for_vision
from wp_image_renamer.images.service import get_image, list_images, read_image_bytes
from wp_image_renamer.naming.prompt import RenameContext
from wp_image_renamer.naming.service import (
    NameSuggestion,
    NamingError,
    fetch_image,
    generate_seo_name,
)
from wp_image_renamer.sites.models import Site
from wp_image_renamer.types import BatchResult, ImageStatus
from wp_image_renamer.wordpress.client import WordPressClient
from wp_image_renamer.wordpress.errors import WordPressError
from wp_image_renamer.wordpress.media import MediaItem, update_media, upload_media

logger = logging.getLogger(__name__)

MEDIA_FALLBACK_TITLE = "Image WordPress"


@dataclass
class MediaSuggestion:
    """Proposed title and alt text for a media library item."""

    title: str
    alt_text: str

    def to_dict(self) -> dict[str, str]:
        return {"title": self.title, "alt_text": self.alt_text}


def build_image_context(
    image: UploadedImage, cahier: CahierDesCharges, index: int | None = None
) -> RenameContext:
    """Build the naming context of a staged image."""
    return RenameContext(
        page_title=image.target_page_title or "",
        page_slug=image.target_page_slug or "",
        company_name=cahier.company_name or "",
        business_sector=cahier.business_sector or "",
        cities=cahier.chosen_cities or [],
        main_service=cahier.main_service or "",
        custom_instructions=image.custom_instructions,
        original_filename=image.original_name,
        image_index=index,
    )


def vision_input(
    data: bytes | None, settings: Settings
) -> tuple[bytes | None, str | None]:
    """Prepare image bytes for the vision API, or (None, None) for text-only."""
    if not data:
        return None, None
    try:
        return prepare_for_vision(
            data,
            max_dimension=settings.vision_max_dimension,
            max_bytes=settings.vision_max_bytes,
        )
    except ImageProcessingError as e:
        logger.warning("Image cannot be used for vision, using text only: %s", e)
        return None, None


def _stored_vision_input(
    image: UploadedImage, settings: Settings
) -> tuple[bytes | None, str | None]:
    try:
        data = read_image_bytes(image)
    except OSError as e:
        logger.warning("Cannot read stored file of %s: %s", image.original_name, e)
        return None, None
    return vision_input(data, settings)


def _name_image(
    llm: anthropic.Anthropic,
    image: UploadedImage,
    cahier: CahierDesCharges,
    existing_names: list[str],
    settings: Settings,
    index: int | None = None,
) -> NameSuggestion:
    context = build_image_context(image, cahier, index)
    image_data, mime_type = _stored_vision_input(image, settings)
    return generate_seo_name(
        llm,
        context,
        existing_names=existing_names,
        image_data=image_data,
        mime_type=mime_type,
        model=settings.llm_model,
        max_tokens=settings.llm_max_tokens,
    )


def generate_names(
    session: Session,
    site: Site,
    llm: anthropic.Anthropic,
    settings: Settings | None = None,
) -> BatchResult:
    """Name every staged image that has a target page and no name yet.

    Names already given to other images of the site are reserved, and
    each new name is reserved in turn, so the batch never produces
    duplicates.

    Args:
        session: Database session.
        site: Site whose images are named.
        llm: Anthropic client.
        settings: Model and vision limits; uses default if not provided.

    Returns:
        BatchResult with "<original name>: <message>" errors.
    """
    if settings is None:
        settings = get_settings()

    images = list_images(session, site.id)
    pending = [
        img
        for img in images
        if img.target_page_id is not None and not img.generated_name
    ]
    existing_names = [img.generated_name for img in images if img.generated_name]
    cahier = get_cahier_fields(session, site.id)
    result = BatchResult(total=len(pending))

    for index, image in enumerate(pending):
        image.status = ImageStatus.PROCESSING.value
        session.flush()
        try:
            suggestion = _name_image(llm, image, cahier, existing_names, settings, index)
        except (NamingError, ValidationError) as e:
            logger.error("Name generation failed for %s: %s", image.original_name, e)
            image.status = ImageStatus.ERROR.value
            result.record_error(image.original_name, str(e))
        else:
            existing_names.append(suggestion.name)
            image.generated_name = suggestion.name
            image.generated_alt_text = suggestion.alt_text
            image.status = ImageStatus.READY.value
            result.succeeded += 1
        session.flush()

    logger.info(
        "Named %d/%d image(s) for site %s", result.succeeded, result.total, site.id
    )
    return result


def regenerate_name(
    session: Session,
    site: Site,
    image_id: str,
    llm: anthropic.Anthropic,
    settings: Settings | None = None,
) -> NameSuggestion:
    """Generate a new name for one image.

    The image's current name is dropped first, so it does not block
    itself from being chosen again.

    Raises:
        ImageNotFoundError: If the image does not exist.
        NamingError: If the image has no target page or generation fails.
    """
    if settings is None:
        settings = get_settings()

    image = get_image(session, site.id, image_id)
    if image.target_page_id is None:
        raise NamingError(
            "A target page is required to generate an SEO name", code="no_target_page"
        )

    existing_names = [
        img.generated_name
        for img in list_images(session, site.id)
        if img.generated_name and img.id != image.id
    ]
    image.generated_name = None
    image.status = ImageStatus.PROCESSING.value
    session.flush()

    try:
        suggestion = _name_image(
            llm, image, get_cahier_fields(session, site.id), existing_names, settings
        )
    except NamingError:
        image.status = ImageStatus.ERROR.value
        session.flush()
        raise

    image.generated_name = suggestion.name
    image.generated_alt_text = suggestion.alt_text
    image.status = ImageStatus.READY.value
    session.flush()
    return suggestion


def upload_images(
    session: Session,
    site: Site,
    client: WordPressClient,
    settings: Settings | None = None,
) -> BatchResult:
    """Upload every named image that is not uploaded yet.

    Returns:
        BatchResult with "<original name>: <message>" errors.
    """
    if settings is None:
        settings = get_settings()

    ready = [
        img
        for img in list_images(session, site.id)
        if img.target_page_id is not None
        and img.generated_name
        and img.status != ImageStatus.UPLOADED.value
    ]
    result = BatchResult(total=len(ready))

    for image in ready:
        image.status = ImageStatus.PROCESSING.value
        session.flush()
        try:
            data = read_image_bytes(image)
            media = upload_media(
                client,
                data,
                image.original_name,
                image.generated_name or "",
                alt_text=image.generated_alt_text,
                max_bytes=settings.max_upload_bytes,
            )
        except (WordPressError, OSError) as e:
            logger.error("Upload failed for %s: %s", image.original_name, e)
            image.status = ImageStatus.ERROR.value
            result.record_error(image.original_name, str(e))
        else:
            image.status = ImageStatus.UPLOADED.value
            image.wordpress_media_id = media.id
            image.wordpress_url = media.url
            result.succeeded += 1
        session.flush()

    logger.info(
        "Uploaded %d/%d image(s) to %s", result.succeeded, result.total, site.url
    )
    return result


def _media_filename(url: str) -> str:
    return PurePosixPath(urlparse(url).path).name


def suggest_media_metadata(
    llm: anthropic.Anthropic,
    items: Iterable[MediaItem],
    cahier: CahierDesCharges,
    http: httpx.Client | None = None,
    settings: Settings | None = None,
) -> tuple[dict[int, MediaSuggestion], BatchResult]:
    """Propose titles and alt texts for media library images.

    Each image is downloaded for vision analysis when possible and named
    from text context otherwise. The item title stands in for the target
    page. Names are not deduplicated across items.

    Returns:
        (suggestions keyed by media id, BatchResult with
        "<title or id>: <message>" errors).
    """
    if settings is None:
        settings = get_settings()

    items = list(items)
    suggestions: dict[int, MediaSuggestion] = {}
    result = BatchResult(total=len(items))

    for item in items:
        image_data: bytes | None = None
        mime_type: str | None = None
        if http is not None and item.url:
            fetched = fetch_image(http, item.url)
            if fetched is not None:
                image_data, mime_type = vision_input(fetched[0], settings)

        try:
            context = RenameContext(
                page_title=item.title or MEDIA_FALLBACK_TITLE,
                page_slug="",
                company_name=cahier.company_name or "",
                business_sector=cahier.business_sector or "",
                cities=cahier.chosen_cities or [],
                main_service=cahier.main_service or "",
                original_filename=_media_filename(item.url),
            )
            suggestion = generate_seo_name(
                llm,
                context,
                image_data=image_data,
                mime_type=mime_type,
                model=settings.llm_model,
                max_tokens=settings.llm_max_tokens,
            )
        except (NamingError, ValidationError) as e:
            logger.error("Suggestion failed for media %s: %s", item.id, e)
            result.record_error(item.title or str(item.id), str(e))
            continue

        suggestions[item.id] = MediaSuggestion(
            title=suggestion.name, alt_text=suggestion.alt_text
        )
        result.succeeded += 1

    return suggestions, result


def apply_media_updates(
    client: WordPressClient, updates: Mapping[int, MediaSuggestion | Mapping[str, Any]]
) -> BatchResult:
    """Write titles and alt texts to media library items, one by one.

    Returns:
        BatchResult with "ID <id>: <message>" errors.
    """
    result = BatchResult(total=len(updates))
    for media_id, update in updates.items():
        if isinstance(update, MediaSuggestion):
            title, alt_text = update.title, update.alt_text
        else:
            title, alt_text = update.get("title"), update.get("alt_text")
        try:
            update_media(client, int(media_id), title=title, alt_text=alt_text)
        except WordPressError as e:
            logger.error("Update failed for media %s: %s", media_id, e)
            result.record_error(f"ID {media_id}", str(e))
            continue
        result.succeeded += 1
    return result


__all__ = [
    "MEDIA_FALLBACK_TITLE",
    "MediaSuggestion",
    "apply_media_updates",
    "build_image_context",
    "generate_names",
    "regenerate_name",
    "suggest_media_metadata",
    "upload_images",
    "vision_input",
]
