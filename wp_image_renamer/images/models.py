"""Staged image ORM model.

This module defines the UploadedImage model: an image dropped into the
tool for a site, waiting to be named and pushed to WordPress. File bytes
live on disk under the upload directory; the row keeps the metadata.
"""

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from wp_image_renamer.db import Base
from wp_image_renamer.types import TargetPage

if TYPE_CHECKING:
    from wp_image_renamer.sites.models import Site


class UploadedImage(Base):
    """ORM model for a staged image.

    Attributes:
        id: UUID string primary key.
        site_id: Owning site.
        position: Insertion order within the site.
        original_name: Filename as uploaded.
        size: Size in bytes.
        width: Decoded width (0 when the image failed to decode).
        height: Decoded height (0 when the image failed to decode).
        mime_type: MIME type of the stored file.
        stored_path: Path of the stored bytes.
        status: pending, processing, ready, uploaded or error.
        load_error: Diagnosis when the image failed to decode.
        target_page_id: WordPress page the image belongs to.
        target_page_title: Title of that page.
        target_page_slug: Slug of that page.
        custom_instructions: Per-image naming instructions.
        generated_name: SEO filename (without extension).
        generated_alt_text: SEO alt text.
        wordpress_media_id: Attachment id once uploaded.
        wordpress_url: Attachment URL once uploaded.
        selected: Whether the image is part of the current selection.
        created_at: Timestamp of intake.
    """

    __tablename__ = "uploaded_images"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    site_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("sites.id", ondelete="CASCADE"), nullable=False
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # File
    original_name: Mapped[str] = mapped_column(String(500), nullable=False)
    size: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    width: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    height: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    mime_type: Mapped[str] = mapped_column(String(100), nullable=False)
    stored_path: Mapped[str] = mapped_column(String(1000), nullable=False)

    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending")
    load_error: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Target page
    target_page_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    target_page_title: Mapped[str | None] = mapped_column(String(500), nullable=True)
    target_page_slug: Mapped[str | None] = mapped_column(String(500), nullable=True)

    # Naming
    custom_instructions: Mapped[str | None] = mapped_column(Text, nullable=True)
    generated_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    generated_alt_text: Mapped[str | None] = mapped_column(Text, nullable=True)

    # WordPress result
    wordpress_media_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    wordpress_url: Mapped[str | None] = mapped_column(String(1000), nullable=True)

    selected: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, server_default=func.now()
    )

    site: Mapped["Site"] = relationship("Site", back_populates="images")

    __table_args__ = (Index("ix_uploaded_images_site_position", "site_id", "position"),)

    @property
    def target_page(self) -> TargetPage | None:
        """Target page as a dict, or None when unassigned."""
        if self.target_page_id is None:
            return None
        return {
            "id": self.target_page_id,
            "title": self.target_page_title or "",
            "slug": self.target_page_slug or "",
        }

    def to_dict(self) -> dict[str, object]:
        """Convert to dictionary for JSON serialization."""
        return {
            "id": self.id,
            "site_id": self.site_id,
            "original_name": self.original_name,
            "size": self.size,
            "dimensions": {"width": self.width, "height": self.height},
            "mime_type": self.mime_type,
            "status": self.status,
            "load_error": self.load_error,
            "target_page": self.target_page,
            "custom_instructions": self.custom_instructions,
            "generated_name": self.generated_name,
            "generated_alt_text": self.generated_alt_text,
            "wordpress_media_id": self.wordpress_media_id,
            "wordpress_url": self.wordpress_url,
            "selected": self.selected,
        }

    def __repr__(self) -> str:
        """Return string representation of UploadedImage."""
        return (
            f"<UploadedImage(id='{self.id}', name='{self.original_name}', "
            f"status='{self.status}')>"
        )


__all__ = ["UploadedImage"]
