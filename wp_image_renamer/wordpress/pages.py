"""WordPress page listing.

Pages are fetched across all REST pagination pages and then filtered:
local-SEO sites commonly have one page per city (slug ending with a
5-digit postal code) with "long tail" children underneath. Those
children are never image targets and are dropped from the listing.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any

from wp_image_renamer.types import TargetPage
from wp_image_renamer.wordpress.client import WordPressClient
from wp_image_renamer.wordpress.errors import WordPressError

logger = logging.getLogger(__name__)

PAGES_PER_REQUEST = 100
PAGE_FIELDS = "id,title,slug,status,parent,link,template"

POSTAL_CODE_SUFFIX = re.compile(r"\d{5}$")


@dataclass
class PageListing:
    """Filtered page listing with counts before and after filtering."""

    pages: list[TargetPage] = field(default_factory=list)
    total_before_filter: int = 0

    @property
    def total(self) -> int:
        """Number of pages kept after filtering."""
        return len(self.pages)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "pages": list(self.pages),
            "total": self.total,
            "total_before_filter": self.total_before_filter,
        }


def fetch_all_pages(client: WordPressClient) -> list[dict[str, Any]]:
    """Fetch every page of the site, following X-WP-TotalPages.

    Raises:
        WordPressError: On any failed request (401 is reported as invalid
            authentication).
    """
    all_pages: list[dict[str, Any]] = []
    page = 1
    total_pages = 1

    while page <= total_pages:
        try:
            response = client.get(
                "pages",
                params={
                    "per_page": PAGES_PER_REQUEST,
                    "page": page,
                    "_fields": PAGE_FIELDS,
                },
            )
        except WordPressError as e:
            if e.status_code == 401:
                raise WordPressError(
                    "Invalid authentication", code="invalid_auth", status_code=401
                ) from e
            raise

        all_pages.extend(response.json())
        total_pages = int(response.headers.get("X-WP-TotalPages", "1") or 1)
        page += 1

    logger.info("Fetched %d pages from %s", len(all_pages), client.base_url)
    return all_pages


def filter_long_tail_pages(pages: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Drop pages whose parent slug ends with a postal code.

    City pages themselves are kept; root pages and pages whose parent is
    not in the listing are always kept.
    """
    slug_by_id = {p["id"]: p.get("slug", "") for p in pages}
    kept = []
    for p in pages:
        parent = p.get("parent") or 0
        if parent == 0:
            kept.append(p)
            continue
        parent_slug = slug_by_id.get(parent)
        if parent_slug is None or not POSTAL_CODE_SUFFIX.search(parent_slug):
            kept.append(p)
    return kept


def format_page(raw: dict[str, Any]) -> TargetPage:
    """Reshape a raw REST page into a TargetPage."""
    title = raw.get("title")
    if isinstance(title, dict):
        title = title.get("rendered", "")
    return TargetPage(
        id=int(raw["id"]),
        title=title or "",
        slug=raw.get("slug", ""),
        status=raw.get("status", ""),
        parent=int(raw.get("parent") or 0),
        link=raw.get("link", ""),
        template=raw.get("template") or "",
    )


def list_pages(client: WordPressClient) -> PageListing:
    """Return the filtered, reshaped page listing of a site."""
    raw_pages = fetch_all_pages(client)
    filtered = filter_long_tail_pages(raw_pages)
    return PageListing(
        pages=[format_page(p) for p in filtered],
        total_before_filter=len(raw_pages),
    )


__all__ = [
    "PageListing",
    "fetch_all_pages",
    "filter_long_tail_pages",
    "format_page",
    "list_pages",
]
