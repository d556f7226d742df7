"""Pydantic models for the cahier des charges (client brief).

Every field is optional: a brief is parsed from free text and only the
fields that were found are set.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class TreeItem(BaseModel):
    """Node of the planned site tree ("arborescence").

    Attributes:
        title: Section title.
        info: Optional note given in parentheses after the title.
        children: Sub-sections.
    """

    model_config = ConfigDict(extra="forbid")

    title: str
    info: str | None = None
    children: list[TreeItem] = Field(default_factory=list)


class CahierDesCharges(BaseModel):
    """Structured fields extracted from a brief.

    Attributes:
        company_name: Company name.
        business_sector: Business sector.
        phone: Contact phone number.
        email: Contact/redirect email.
        address: Postal address.
        site_goal: Goal of the site.
        site_audience: Target audience.
        activity_zones: Areas served.
        chosen_cities: Cities targeted for local SEO.
        tone: Tone of voice.
        main_service: Main service offered.
        site_tree: Planned site tree.
        brand_guidelines: Graphic charter notes.
    """

    model_config = ConfigDict(extra="ignore")

    company_name: str | None = None
    business_sector: str | None = None
    phone: str | None = None
    email: str | None = None
    address: str | None = None
    site_goal: str | None = None
    site_audience: str | None = None
    activity_zones: str | None = None
    chosen_cities: list[str] | None = None
    tone: str | None = None
    main_service: str | None = None
    site_tree: list[TreeItem] | None = None
    brand_guidelines: str | None = None

    def has_data(self) -> bool:
        """Whether at least one field carries a value."""
        return any(bool(value) for value in self.model_dump().values())


class CahierRecordSchema(BaseModel):
    """Stored cahier for a site: parsed fields plus the raw text."""

    site_id: str
    parsed: CahierDesCharges
    raw_text: str
    updated_at: str | None = None


__all__ = ["CahierDesCharges", "CahierRecordSchema", "TreeItem"]
