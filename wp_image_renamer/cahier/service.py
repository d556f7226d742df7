"""Cahier des charges store."""

from sqlalchemy.orm import Session

from wp_image_renamer.cahier.models import CahierRecord
from wp_image_renamer.cahier.schema import CahierDesCharges, CahierRecordSchema


def record_to_schema(record: CahierRecord) -> CahierRecordSchema:
    """Convert a CahierRecord ORM model to its schema."""
    return CahierRecordSchema(
        site_id=record.site_id,
        parsed=CahierDesCharges.model_validate(record.parsed or {}),
        raw_text=record.raw_text,
        updated_at=record.updated_at.isoformat() if record.updated_at else None,
    )


def get_cahier(session: Session, site_id: str) -> CahierRecord | None:
    """Get the cahier of a site, or None if none was saved."""
    return session.get(CahierRecord, site_id)


def get_cahier_fields(session: Session, site_id: str) -> CahierDesCharges:
    """Get the parsed cahier of a site, empty when none was saved."""
    record = get_cahier(session, site_id)
    if record is None:
        return CahierDesCharges()
    return CahierDesCharges.model_validate(record.parsed or {})


def set_cahier(
    session: Session, site_id: str, parsed: CahierDesCharges, raw_text: str
) -> CahierRecord:
    """Create or replace the cahier of a site.

    Args:
        session: Database session.
        site_id: Owning site.
        parsed: Structured fields.
        raw_text: Original brief text.

    Returns:
        The stored CahierRecord.
    """
    record = session.get(CahierRecord, site_id)
    data = parsed.model_dump(exclude_none=True)
    if record is None:
        record = CahierRecord(site_id=site_id, parsed=data, raw_text=raw_text)
        session.add(record)
    else:
        record.parsed = data
        record.raw_text = raw_text
    session.flush()
    return record


def remove_cahier(session: Session, site_id: str) -> bool:
    """Delete the cahier of a site.

    Returns:
        True if a cahier was deleted.
    """
    record = session.get(CahierRecord, site_id)
    if record is None:
        return False
    session.delete(record)
    session.flush()
    return True


__all__ = [
    "get_cahier",
    "get_cahier_fields",
    "record_to_schema",
    "remove_cahier",
    "set_cahier",
]
