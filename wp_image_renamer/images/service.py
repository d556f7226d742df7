"""Upload store for staged images.

This module provides the high-level API for images waiting to be named
and uploaded: intake with validation, per-image edits, target page
assignment and multi-selection. Image bytes are stored on disk under
`<upload_dir>/<site_id>/`.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from pathlib import Path

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from wp_image_renamer.images.models import UploadedImage
from wp_image_renamer.images.processing import diagnose_signature, read_dimensions
from wp_image_renamer.types import ImageStatus, TargetPage
from wp_image_renamer.wordpress.media import get_extension

logger = logging.getLogger(__name__)

ACCEPTED_TYPES: dict[str, tuple[str, ...]] = {
    "image/jpeg": ("jpg", "jpeg"),
    "image/png": ("png",),
    "image/webp": ("webp",),
    "image/gif": ("gif",),
}

DEFAULT_MAX_INTAKE_BYTES = 10 * 1024 * 1024

UPDATABLE_FIELDS = (
    "status",
    "load_error",
    "custom_instructions",
    "generated_name",
    "generated_alt_text",
    "wordpress_media_id",
    "wordpress_url",
)


class ImageNotFoundError(Exception):
    """Raised when a staged image is not found."""

    def __init__(self, image_id: str) -> None:
        self.image_id = image_id
        self.code = "image_not_found"
        super().__init__(f"Image not found: {image_id}")


class ImageRejectedError(Exception):
    """Raised when a file is refused at intake."""

    def __init__(self, filename: str, reason: str, code: str = "image_rejected") -> None:
        self.filename = filename
        self.code = code
        super().__init__(f"{filename}: {reason}")


@dataclass
class IncomingFile:
    """File submitted for intake."""

    filename: str
    data: bytes
    content_type: str | None = None


def resolve_mime_type(filename: str, content_type: str | None) -> str | None:
    """Return the accepted MIME type of a file, or None if not accepted.

    The declared content type wins when it is accepted; otherwise the
    extension decides.
    """
    if content_type:
        declared = content_type.split(";")[0].strip().lower()
        if declared in ACCEPTED_TYPES:
            return declared
    extension = Path(filename).suffix.lstrip(".").lower()
    for mime_type, extensions in ACCEPTED_TYPES.items():
        if extension in extensions:
            return mime_type
    return None


def validate_incoming(
    incoming: IncomingFile, max_bytes: int = DEFAULT_MAX_INTAKE_BYTES
) -> str:
    """Check type and size of a submitted file.

    Returns:
        The resolved MIME type.

    Raises:
        ImageRejectedError: If the type is not accepted or the file is too
            large or empty.
    """
    mime_type = resolve_mime_type(incoming.filename, incoming.content_type)
    if mime_type is None:
        raise ImageRejectedError(
            incoming.filename,
            "Unsupported file type (accepted: JPG, PNG, WebP, GIF)",
            code="unsupported_type",
        )
    if not incoming.data:
        raise ImageRejectedError(incoming.filename, "Empty file", code="empty_file")
    if len(incoming.data) > max_bytes:
        raise ImageRejectedError(
            incoming.filename,
            f"File too large ({len(incoming.data) / 1024 / 1024:.1f}MB). "
            f"Limit: {max_bytes / 1024 / 1024:.0f}MB",
            code="file_too_large",
        )
    return mime_type


def _next_position(session: Session, site_id: str) -> int:
    stmt = select(func.max(UploadedImage.position)).where(
        UploadedImage.site_id == site_id
    )
    current = session.execute(stmt).scalar_one_or_none()
    return 0 if current is None else current + 1


def add_images(
    session: Session,
    site_id: str,
    files: Iterable[IncomingFile],
    upload_dir: Path,
    max_bytes: int = DEFAULT_MAX_INTAKE_BYTES,
) -> list[UploadedImage]:
    """Validate, store and register submitted images.

    Every file is validated before anything is written, so a rejected
    file leaves the store unchanged. Files that pass validation but fail
    to decode are kept with (0, 0) dimensions and a `load_error`.

    Args:
        session: Database session.
        site_id: Owning site.
        files: Submitted files.
        upload_dir: Root directory for stored bytes.
        max_bytes: Largest accepted file.

    Returns:
        The created images, in submission order.

    Raises:
        ImageRejectedError: If any file is refused.
    """
    files = list(files)
    mime_types = [validate_incoming(incoming, max_bytes) for incoming in files]

    site_dir = Path(upload_dir) / site_id
    site_dir.mkdir(parents=True, exist_ok=True)
    position = _next_position(session, site_id)

    created = []
    for incoming, mime_type in zip(files, mime_types):
        image_id = str(uuid.uuid4())
        stored_path = site_dir / f"{image_id}.{get_extension(incoming.filename)}"
        stored_path.write_bytes(incoming.data)

        dimensions = read_dimensions(incoming.data)
        load_error = None
        if dimensions is None:
            load_error = diagnose_signature(incoming.data)
            logger.warning("Image %s failed to decode: %s", incoming.filename, load_error)
            dimensions = (0, 0)

        image = UploadedImage(
            id=image_id,
            site_id=site_id,
            position=position,
            original_name=incoming.filename,
            size=len(incoming.data),
            width=dimensions[0],
            height=dimensions[1],
            mime_type=mime_type,
            stored_path=str(stored_path),
            status=ImageStatus.PENDING.value,
            load_error=load_error,
            selected=False,
        )
        session.add(image)
        created.append(image)
        position += 1

    session.flush()
    logger.info("Added %d image(s) to site %s", len(created), site_id)
    return created


def list_images(session: Session, site_id: str) -> Sequence[UploadedImage]:
    """List the staged images of a site in intake order."""
    stmt = (
        select(UploadedImage)
        .where(UploadedImage.site_id == site_id)
        .order_by(UploadedImage.position)
    )
    return session.execute(stmt).scalars().all()


def get_image(session: Session, site_id: str, image_id: str) -> UploadedImage:
    """Get a staged image of a site.

    Raises:
        ImageNotFoundError: If the image does not exist for this site.
    """
    image = session.get(UploadedImage, image_id)
    if image is None or image.site_id != site_id:
        raise ImageNotFoundError(image_id)
    return image


def read_image_bytes(image: UploadedImage) -> bytes:
    """Read the stored bytes of an image.

    Raises:
        OSError: If the stored file is missing.
    """
    return Path(image.stored_path).read_bytes()


def _delete_file(image: UploadedImage) -> None:
    try:
        Path(image.stored_path).unlink(missing_ok=True)
    except OSError as e:
        logger.warning("Could not delete %s: %s", image.stored_path, e)


def remove_image(session: Session, site_id: str, image_id: str) -> None:
    """Delete a staged image and its stored file.

    Raises:
        ImageNotFoundError: If the image does not exist for this site.
    """
    image = get_image(session, site_id, image_id)
    session.delete(image)
    session.flush()
    _delete_file(image)


def update_image(
    session: Session, site_id: str, image_id: str, **updates: object
) -> UploadedImage:
    """Update editable fields of a staged image.

    Raises:
        ImageNotFoundError: If the image does not exist for this site.
        ValueError: If an unknown field is given.
    """
    image = get_image(session, site_id, image_id)
    for key, value in updates.items():
        if key not in UPDATABLE_FIELDS:
            raise ValueError(f"Cannot update image field: {key}")
        if key == "status" and value is not None:
            value = ImageStatus(value).value
        setattr(image, key, value)
    session.flush()
    return image


def _apply_page(image: UploadedImage, page: TargetPage | None) -> None:
    if page is None:
        image.target_page_id = None
        image.target_page_title = None
        image.target_page_slug = None
    else:
        image.target_page_id = int(page["id"])
        image.target_page_title = page.get("title", "")
        image.target_page_slug = page.get("slug", "")


def set_target_page(
    session: Session, site_id: str, image_id: str, page: TargetPage | None
) -> UploadedImage:
    """Assign (or clear, with None) the target page of an image."""
    image = get_image(session, site_id, image_id)
    _apply_page(image, page)
    session.flush()
    return image


def set_generated_name(
    session: Session, site_id: str, image_id: str, name: str
) -> UploadedImage:
    """Set the generated SEO name of an image."""
    return update_image(session, site_id, image_id, generated_name=name)


def clear_images(session: Session, site_id: str) -> int:
    """Delete every staged image of a site.

    Returns:
        Number of images deleted.
    """
    images = list(list_images(session, site_id))
    for image in images:
        session.delete(image)
    session.flush()
    for image in images:
        _delete_file(image)
    return len(images)


def toggle_selection(session: Session, site_id: str, image_id: str) -> bool:
    """Flip the selection state of an image.

    Returns:
        The new selection state.
    """
    image = get_image(session, site_id, image_id)
    image.selected = not image.selected
    session.flush()
    return image.selected


def select_all(session: Session, site_id: str) -> int:
    """Select every image of a site. Returns the number selected."""
    result = session.execute(
        update(UploadedImage)
        .where(UploadedImage.site_id == site_id)
        .values(selected=True)
        .execution_options(synchronize_session="fetch")
    )
    return result.rowcount


def clear_selection(session: Session, site_id: str) -> None:
    """Deselect every image of a site."""
    session.execute(
        update(UploadedImage)
        .where(UploadedImage.site_id == site_id)
        .values(selected=False)
        .execution_options(synchronize_session="fetch")
    )


def selected_images(session: Session, site_id: str) -> Sequence[UploadedImage]:
    """List the selected images of a site."""
    stmt = (
        select(UploadedImage)
        .where(UploadedImage.site_id == site_id, UploadedImage.selected.is_(True))
        .order_by(UploadedImage.position)
    )
    return session.execute(stmt).scalars().all()


def assign_page_to_selected(session: Session, site_id: str, page: TargetPage) -> int:
    """Assign a page to every selected image, then clear the selection.

    Returns:
        Number of images updated.
    """
    images = selected_images(session, site_id)
    for image in images:
        _apply_page(image, page)
        image.selected = False
    session.flush()
    return len(images)


__all__ = [
    "ACCEPTED_TYPES",
    "ImageNotFoundError",
    "ImageRejectedError",
    "IncomingFile",
    "add_images",
    "assign_page_to_selected",
    "clear_images",
    "clear_selection",
    "get_image",
    "list_images",
    "read_image_bytes",
    "remove_image",
    "resolve_mime_type",
    "select_all",
    "selected_images",
    "set_generated_name",
    "set_target_page",
    "toggle_selection",
    "update_image",
    "validate_incoming",
]
