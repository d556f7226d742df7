"""SEO naming module.

This module handles:
- Slug sanitization and uniqueness
- The naming prompt and its business context
- Name/alt text generation through the LLM
"""

from wp_image_renamer.naming.prompt import (
    MAX_ALT_TEXT_LENGTH,
    RenameContext,
    build_prompt,
)
from wp_image_renamer.naming.service import (
    NameSuggestion,
    NamingError,
    fetch_image,
    generate_seo_name,
    normalize_media_type,
    parse_reply,
)
from wp_image_renamer.naming.slug import (
    MAX_SLUG_LENGTH,
    ensure_unique_name,
    sanitize_slug,
)

__all__ = [
    "MAX_ALT_TEXT_LENGTH",
    "MAX_SLUG_LENGTH",
    "NameSuggestion",
    "NamingError",
    "RenameContext",
    "build_prompt",
    "ensure_unique_name",
    "fetch_image",
    "generate_seo_name",
    "normalize_media_type",
    "parse_reply",
    "sanitize_slug",
]
