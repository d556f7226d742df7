"""WordPress media library operations.

- Listing image attachments with pagination
- Updating attachment title and alt text
- Uploading renamed images, then setting their alt text
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from pathlib import PurePath
from typing import Any
from urllib.parse import quote

from wp_image_renamer.wordpress.client import WordPressClient
from wp_image_renamer.wordpress.errors import WordPressError

logger = logging.getLogger(__name__)

MEDIA_FIELDS = "id,title,alt_text,source_url,media_details,date"

DEFAULT_EXTENSION = "jpg"
DEFAULT_MIME_TYPE = "image/jpeg"
MIME_TYPES = {
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
    "gif": "image/gif",
    "webp": "image/webp",
}

DEFAULT_MAX_UPLOAD_BYTES = int(4.5 * 1024 * 1024)


@dataclass
class MediaItem:
    """Image attachment from the media library."""

    id: int
    title: str
    alt_text: str
    url: str
    thumbnail: str
    width: int | None = None
    height: int | None = None
    date: str | None = None


@dataclass
class MediaPage:
    """One page of the media library."""

    items: list[MediaItem] = field(default_factory=list)
    page: int = 1
    per_page: int = 20
    total_pages: int = 1
    total: int = 0

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "media": [asdict(item) for item in self.items],
            "pagination": {
                "page": self.page,
                "per_page": self.per_page,
                "total_pages": self.total_pages,
                "total": self.total,
            },
        }


@dataclass
class UploadedMedia:
    """Attachment created by an upload."""

    id: int
    url: str
    title: str
    filename: str
    alt_text: str = ""


def get_extension(filename: str) -> str:
    """Return the lowercase extension of a filename, defaulting to jpg."""
    suffix = PurePath(filename).suffix.lstrip(".").lower()
    return suffix or DEFAULT_EXTENSION


def get_mime_type(extension: str) -> str:
    """Map an image extension to its MIME type, defaulting to JPEG."""
    return MIME_TYPES.get(extension.lower(), DEFAULT_MIME_TYPE)


def format_media_item(raw: dict[str, Any]) -> MediaItem:
    """Reshape a raw REST attachment into a MediaItem.

    The thumbnail is the "thumbnail" size, then "medium", then the
    original source URL.
    """
    details = raw.get("media_details") or {}
    sizes = details.get("sizes") or {}
    source_url = raw.get("source_url", "")
    thumbnail = (
        (sizes.get("thumbnail") or {}).get("source_url")
        or (sizes.get("medium") or {}).get("source_url")
        or source_url
    )
    title = raw.get("title")
    if isinstance(title, dict):
        title = title.get("rendered", "")
    return MediaItem(
        id=int(raw["id"]),
        title=title or "",
        alt_text=raw.get("alt_text") or "",
        url=source_url,
        thumbnail=thumbnail,
        width=details.get("width"),
        height=details.get("height"),
        date=raw.get("date"),
    )


def list_media(client: WordPressClient, page: int = 1, per_page: int = 20) -> MediaPage:
    """List image attachments of the media library.

    Raises:
        WordPressError: If the request fails.
    """
    response = client.get(
        "media",
        params={
            "per_page": per_page,
            "page": page,
            "media_type": "image",
            "_fields": MEDIA_FIELDS,
        },
    )
    items = [format_media_item(raw) for raw in response.json()]
    return MediaPage(
        items=items,
        page=page,
        per_page=per_page,
        total_pages=int(response.headers.get("X-WP-TotalPages", "1") or 1),
        total=int(response.headers.get("X-WP-Total", "0") or 0),
    )


def update_media(
    client: WordPressClient,
    media_id: int,
    title: str | None = None,
    alt_text: str | None = None,
) -> dict[str, Any]:
    """Update the title and/or alt text of an attachment.

    Only the fields that are provided are sent.

    Returns:
        Dict with id, title and alt_text as stored by WordPress.
    """
    body: dict[str, str] = {}
    if title is not None:
        body["title"] = title
    if alt_text is not None:
        body["alt_text"] = alt_text

    updated = client.post_json(f"media/{media_id}", body)
    logger.info("Updated media %s", media_id)
    return {
        "id": updated.get("id", media_id),
        "title": (updated.get("title") or {}).get("rendered", ""),
        "alt_text": updated.get("alt_text") or "",
    }


def upload_media(
    client: WordPressClient,
    data: bytes,
    original_filename: str,
    seo_name: str,
    alt_text: str | None = None,
    max_bytes: int = DEFAULT_MAX_UPLOAD_BYTES,
) -> UploadedMedia:
    """Upload an image under its SEO name and set its alt text.

    The final filename keeps the original extension. The alt text update
    runs as a second request whose failure is logged and does not fail
    the upload.

    Raises:
        WordPressError: If the file is too large, the upload is refused or
            the reply carries no media id.
    """
    if len(data) > max_bytes:
        raise WordPressError(
            f"File too large ({len(data) / 1024 / 1024:.1f}MB). "
            f"Limit: {max_bytes / 1024 / 1024:.1f}MB",
            code="file_too_large",
            status_code=400,
        )

    extension = get_extension(original_filename)
    filename = f"{seo_name}.{extension}"
    response = client.request(
        "POST",
        "media",
        content=data,
        headers={
            "Content-Disposition": f'attachment; filename="{quote(filename)}"',
            "Content-Type": get_mime_type(extension),
        },
    )
    media = response.json()
    media_id = media.get("id") if isinstance(media, dict) else None
    if not media_id:
        raise WordPressError(
            "Upload failed: WordPress returned no media id",
            code="upload_error",
            status_code=502,
        )
    logger.info("Uploaded %s as media %s", filename, media_id)

    if alt_text:
        try:
            client.post_json(f"media/{media_id}", {"alt_text": alt_text})
        except WordPressError as e:
            logger.error("Could not set alt text on media %s: %s", media_id, e)

    return UploadedMedia(
        id=int(media_id),
        url=media.get("source_url", ""),
        title=(media.get("title") or {}).get("rendered") or seo_name,
        filename=filename,
        alt_text=alt_text or "",
    )


__all__ = [
    "MediaItem",
    "MediaPage",
    "UploadedMedia",
    "format_media_item",
    "get_extension",
    "get_mime_type",
    "list_media",
    "update_media",
    "upload_media",
]
