"""Site ORM model.

This module defines the Site model for the list of WordPress sites the
user has connected to. Application passwords are never stored here.
"""

from datetime import datetime, timezone
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from wp_image_renamer.db import Base

if TYPE_CHECKING:
    from wp_image_renamer.cahier.models import CahierRecord
    from wp_image_renamer.images.models import UploadedImage


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Site(Base):
    """ORM model for a connected WordPress site.

    Attributes:
        id: UUID string primary key.
        url: Normalized base URL (unique, compared case-insensitively).
        name: Site name reported by WordPress.
        username: WordPress username.
        auth_method: "jwt" or "application_password".
        jwt_token: JWT token when authenticated through the JWT plugin.
        status: Connection status ("connected", "disconnected", "error").
        created_at: When the site was first added; sites list newest first.
        last_connected: Timestamp of the last successful connection.
    """

    __tablename__ = "sites"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    url: Mapped[str] = mapped_column(String(500), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    username: Mapped[str] = mapped_column(String(255), nullable=False)
    auth_method: Mapped[str] = mapped_column(String(50), nullable=False, default="jwt")
    jwt_token: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="connected")
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=_utcnow
    )
    last_connected: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=_utcnow
    )

    # Relationships
    cahier: Mapped["CahierRecord | None"] = relationship(
        "CahierRecord", cascade="all, delete-orphan", uselist=False
    )
    images: Mapped[list["UploadedImage"]] = relationship(
        "UploadedImage",
        back_populates="site",
        cascade="all, delete-orphan",
        order_by="UploadedImage.position",
    )

    def to_dict(self) -> dict[str, object]:
        """Convert to dictionary for JSON serialization (token excluded)."""
        return {
            "id": self.id,
            "url": self.url,
            "name": self.name,
            "username": self.username,
            "auth_method": self.auth_method,
            "has_token": bool(self.jwt_token),
            "status": self.status,
            "last_connected": (
                self.last_connected.isoformat() if self.last_connected else None
            ),
        }

    def __repr__(self) -> str:
        """Return string representation of Site."""
        return f"<Site(id='{self.id}', url='{self.url}', status='{self.status}')>"


__all__ = ["Site"]
