"""Site store module.

This module handles:
- Persisted list of connected WordPress sites
- In-memory application password cache
- The connect workflow (verify, then store)
"""

from wp_image_renamer.sites.models import Site
from wp_image_renamer.sites.service import (
    CredentialCache,
    SiteNotFoundError,
    add_site,
    connect_site,
    credentials_for,
    find_site_by_url,
    get_site,
    list_sites,
    remove_site,
    update_site,
    validate_site_url,
)

__all__ = [
    "CredentialCache",
    "Site",
    "SiteNotFoundError",
    "add_site",
    "connect_site",
    "credentials_for",
    "find_site_by_url",
    "get_site",
    "list_sites",
    "remove_site",
    "update_site",
    "validate_site_url",
]
