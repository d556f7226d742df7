"""Filename slug rules."""

import re
import unicodedata
from collections.abc import Iterable

MAX_SLUG_LENGTH = 60

_NON_SLUG_CHARS = re.compile(r"[^a-z0-9-]")
_REPEATED_HYPHENS = re.compile(r"-+")


def sanitize_slug(name: str) -> str:
    """Turn free text into a lowercase, accent-free, hyphenated slug.

    Truncation to 60 characters happens last, so a slug may end with a
    hyphen when the cut falls on one.
    """
    decomposed = unicodedata.normalize("NFD", name.lower())
    without_accents = "".join(c for c in decomposed if not unicodedata.combining(c))
    slug = _NON_SLUG_CHARS.sub("-", without_accents)
    slug = _REPEATED_HYPHENS.sub("-", slug).strip("-")
    return slug[:MAX_SLUG_LENGTH]


def ensure_unique_name(base_name: str, existing_names: Iterable[str]) -> str:
    """Suffix `base_name` with -1, -2, ... until it is not taken."""
    taken = set(existing_names)
    if base_name not in taken:
        return base_name

    counter = 1
    while f"{base_name}-{counter}" in taken:
        counter += 1
    return f"{base_name}-{counter}"


__all__ = ["MAX_SLUG_LENGTH", "ensure_unique_name", "sanitize_slug"]
