"""Cahier des charges ORM model.

One record per site: the parsed fields as JSON plus the raw text the
user typed, pasted or imported from a PDF.
"""

from datetime import datetime

from sqlalchemy import JSON, DateTime, ForeignKey, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from wp_image_renamer.db import Base


class CahierRecord(Base):
    """ORM model for a site's cahier des charges.

    Attributes:
        site_id: Owning site (primary key, one cahier per site).
        parsed: JSON object of CahierDesCharges fields.
        raw_text: Original brief text.
        updated_at: Timestamp of last update.
    """

    __tablename__ = "cahiers"

    site_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("sites.id", ondelete="CASCADE"), primary_key=True
    )
    parsed: Mapped[dict[str, object]] = mapped_column(JSON, nullable=False, default=dict)
    raw_text: Mapped[str] = mapped_column(Text, nullable=False, default="")
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, server_default=func.now(), onupdate=func.now()
    )

    def __repr__(self) -> str:
        """Return string representation of CahierRecord."""
        return f"<CahierRecord(site_id='{self.site_id}')>"


__all__ = ["CahierRecord"]
