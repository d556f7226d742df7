"""SEO name and alt text generation through the Anthropic messages API."""

from __future__ import annotations

import base64
import json
import logging
import re
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

import anthropic
import httpx

from wp_image_renamer.naming.prompt import MAX_ALT_TEXT_LENGTH, RenameContext, build_prompt
from wp_image_renamer.naming.slug import ensure_unique_name, sanitize_slug

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "claude-3-5-haiku-20241022"
DEFAULT_MAX_TOKENS = 200

VISION_MEDIA_TYPES = ("image/jpeg", "image/png", "image/gif", "image/webp")

_FENCE_START = re.compile(r"^```(?:json)?\s*", re.IGNORECASE)
_FENCE_END = re.compile(r"\s*```$")


class NamingError(Exception):
    """Raised when the LLM cannot produce a name."""

    def __init__(self, message: str, code: str = "naming_error") -> None:
        """Initialize NamingError.

        Args:
            message: Error description.
            code: Error code for structured error handling.
        """
        super().__init__(message)
        self.code = code


@dataclass
class NameSuggestion:
    """Sanitized, unique filename and alt text for one image."""

    name: str
    alt_text: str
    used_vision: bool = False

    def to_dict(self) -> dict[str, str]:
        return {"suggested_name": self.name, "alt_text": self.alt_text}


def normalize_media_type(mime_type: str | None) -> str:
    """Return a media type accepted by the vision API, defaulting to JPEG."""
    if mime_type:
        mime_type = mime_type.split(";")[0].strip().lower()
        if mime_type in VISION_MEDIA_TYPES:
            return mime_type
    return "image/jpeg"


def parse_reply(text: str) -> tuple[str, str]:
    """Extract (filename, alt text) from the model's reply.

    Markdown code fences are stripped before decoding. When the reply is
    not JSON, its first line is taken as the filename and alt text is
    left empty.
    """
    cleaned = _FENCE_END.sub("", _FENCE_START.sub("", text.strip()))
    try:
        parsed = json.loads(cleaned)
    except ValueError:
        first_line = text.strip().split("\n")[0]
        return first_line or "image", ""
    if not isinstance(parsed, dict):
        return str(parsed), ""
    return str(parsed.get("filename") or ""), str(parsed.get("altText") or "")


def fetch_image(http: httpx.Client, url: str) -> tuple[bytes, str] | None:
    """Download an image for vision analysis.

    Returns:
        (bytes, content type), or None when the image cannot be fetched.
    """
    try:
        response = http.get(url)
    except httpx.HTTPError as e:
        logger.warning("Error fetching image %s: %s", url, e)
        return None
    if not response.is_success:
        logger.warning("Failed to fetch image %s: %d", url, response.status_code)
        return None
    return response.content, response.headers.get("content-type", "image/jpeg")


def build_message_content(
    prompt: str, image_data: bytes | None, mime_type: str | None
) -> list[dict[str, Any]]:
    """Build the user message: optional image block first, then the prompt."""
    content: list[dict[str, Any]] = []
    if image_data:
        content.append(
            {
                "type": "image",
                "source": {
                    "type": "base64",
                    "media_type": normalize_media_type(mime_type),
                    "data": base64.b64encode(image_data).decode("ascii"),
                },
            }
        )
    content.append({"type": "text", "text": prompt})
    return content


def generate_seo_name(
    llm: anthropic.Anthropic,
    context: RenameContext,
    existing_names: Iterable[str] = (),
    image_data: bytes | None = None,
    mime_type: str | None = None,
    image_url: str | None = None,
    http: httpx.Client | None = None,
    model: str = DEFAULT_MODEL,
    max_tokens: int = DEFAULT_MAX_TOKENS,
) -> NameSuggestion:
    """Ask the LLM for an SEO filename and alt text.

    When no image bytes are given but `image_url` is, the image is fetched
    first; if that fails the name is generated from text context only.

    Raises:
        NamingError: If the API call fails or the reply is not text.
    """
    if image_data is None and image_url and http is not None:
        fetched = fetch_image(http, image_url)
        if fetched is not None:
            image_data, mime_type = fetched

    has_image = bool(image_data)
    content = build_message_content(build_prompt(context, has_image), image_data, mime_type)

    try:
        message = llm.messages.create(
            model=model,
            max_tokens=max_tokens,
            messages=[{"role": "user", "content": content}],
        )
    except anthropic.APIError as e:
        raise NamingError(f"LLM request failed: {e}", code="llm_error") from e

    if not message.content or message.content[0].type != "text":
        raise NamingError("Unexpected response type", code="unexpected_response")

    filename, alt_text = parse_reply(message.content[0].text)
    slug = sanitize_slug(filename)
    if not slug:
        raise NamingError("The model returned no usable filename", code="empty_name")
    name = ensure_unique_name(slug, existing_names)
    logger.info(
        "Generated name %s for page %s (vision: %s)", name, context.page_slug, has_image
    )
    return NameSuggestion(
        name=name, alt_text=alt_text[:MAX_ALT_TEXT_LENGTH], used_vision=has_image
    )


__all__ = [
    "DEFAULT_MAX_TOKENS",
    "DEFAULT_MODEL",
    "NameSuggestion",
    "NamingError",
    "build_message_content",
    "fetch_image",
    "generate_seo_name",
    "normalize_media_type",
    "parse_reply",
]
