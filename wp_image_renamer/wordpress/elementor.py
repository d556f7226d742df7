"""Elementor layout inspection and image replacement.

Elementor stores a page layout as a JSON string in the `_elementor_data`
post meta: a list of elements, each with an `id`, an optional
`widgetType`, `settings`, and nested `elements`. The tree functions
here walk that structure depth-first.

WordPress only exposes the meta to REST when it is registered with
`show_in_rest` (see the companion plugin). When it is not, WordPress
accepts the update and silently drops it, which is why every
replacement is verified by reading the layout back.
"""

from __future__ import annotations

import json
import logging
import time
from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Any

from wp_image_renamer.wordpress.client import WordPressClient
from wp_image_renamer.wordpress.errors import ElementorError, WordPressError

logger = logging.getLogger(__name__)

IMAGE_WIDGET_TYPES = frozenset({"image", "image-box"})

# Post types that may carry an Elementor layout, in lookup order
ELEMENTOR_ENDPOINTS = ("pages", "posts", "elementor_library")

META_NOT_EXPOSED_MESSAGE = """WordPress ignored the update. The _elementor_data field is probably not exposed through the REST API.

Solutions:
1. Add this code to functions.php:
   register_post_meta('page', '_elementor_data', ['show_in_rest' => true, 'single' => true, 'type' => 'string']);
   register_post_meta('page', '_elementor_css', ['show_in_rest' => true, 'single' => true, 'type' => 'string']);

2. Or install the Image Renamer Helper companion plugin"""


@dataclass
class ImageWidget:
    """Image widget found in a layout."""

    id: str
    type: str
    current_url: str | None = None
    settings: dict[str, Any] = field(default_factory=dict)


@dataclass
class ElementorInspection:
    """Summary of the Elementor layout of a page."""

    page_id: int
    title: str | None
    has_elementor: bool
    image_widgets: list[ImageWidget] = field(default_factory=list)
    widget_count: int = 0


@dataclass
class ElementorDocument:
    """Post found with Elementor data, and the endpoint it came from."""

    endpoint: str
    post: dict[str, Any]

    @property
    def meta(self) -> dict[str, Any]:
        return self.post.get("meta") or {}


@dataclass
class ReplaceResult:
    """Outcome of a verified image replacement."""

    endpoint: str
    old_image: dict[str, Any] | None = None


# Tree functions


def iter_elements(elements: list[Any]) -> Iterator[dict[str, Any]]:
    """Yield every element of a layout, depth-first."""
    for element in elements:
        if not isinstance(element, dict):
            continue
        yield element
        children = element.get("elements")
        if isinstance(children, list):
            yield from iter_elements(children)


def _widget_image_url(settings: dict[str, Any]) -> str | None:
    image = settings.get("image")
    if isinstance(image, dict) and image.get("url"):
        return str(image["url"])
    background = settings.get("background_image")
    if isinstance(background, dict) and background.get("url"):
        return str(background["url"])
    return None


def find_image_widgets(elements: list[Any]) -> list[ImageWidget]:
    """Return all image and image-box widgets of a layout."""
    widgets = []
    for element in iter_elements(elements):
        widget_type = element.get("widgetType")
        if widget_type not in IMAGE_WIDGET_TYPES:
            continue
        settings = element.get("settings")
        if not isinstance(settings, dict):
            settings = {}
        widgets.append(
            ImageWidget(
                id=str(element.get("id")),
                type=widget_type,
                current_url=_widget_image_url(settings),
                settings=settings,
            )
        )
    return widgets


def count_widgets(elements: list[Any]) -> int:
    """Count the elements that are widgets."""
    return sum(1 for element in iter_elements(elements) if element.get("widgetType"))


def replace_widget_image(
    elements: list[Any],
    widget_id: str,
    new_url: str,
    new_image_id: int | str | None = None,
) -> dict[str, Any] | None:
    """Point the first image widget with `widget_id` at a new image.

    The widget is mutated in place. Existing keys of `settings.image`
    (size, alt, ...) are preserved; the attachment id is only replaced
    when `new_image_id` is given.

    Returns:
        The previous `settings.image` value ({} when it had none), or None
        when no matching image widget exists.
    """
    for element in iter_elements(elements):
        if element.get("id") != widget_id:
            continue
        if element.get("widgetType") not in IMAGE_WIDGET_TYPES:
            continue

        settings = element.get("settings")
        if not isinstance(settings, dict):
            settings = {}
        existing = settings.get("image")
        if not isinstance(existing, dict):
            existing = {}

        updated = dict(existing)
        if new_image_id:
            updated["id"] = int(new_image_id)
        updated["url"] = new_url
        settings["image"] = updated
        element["settings"] = settings
        logger.debug("Updated widget %s image: %s -> %s", widget_id, existing, updated)
        return existing
    return None


def widget_image_url(elements: list[Any], widget_id: str) -> str | None:
    """Return the image URL of the first image widget with `widget_id`."""
    for element in iter_elements(elements):
        if element.get("id") != widget_id:
            continue
        if element.get("widgetType") not in IMAGE_WIDGET_TYPES:
            continue
        settings = element.get("settings")
        image = settings.get("image") if isinstance(settings, dict) else None
        if isinstance(image, dict) and image.get("url"):
            return str(image["url"])
        return None
    return None


def decode_elementor_data(raw: Any) -> list[Any]:
    """Decode the `_elementor_data` meta value.

    Raises:
        ValueError: If the value is not a JSON list.
    """
    data = json.loads(raw) if isinstance(raw, str) else raw
    if not isinstance(data, list):
        raise ValueError("Elementor data is not a list")
    return data


# Service operations


def inspect_page(client: WordPressClient, page_id: int) -> ElementorInspection:
    """Describe the image widgets of a page layout.

    Raises:
        WordPressError: If the page cannot be read.
    """
    page = client.get(f"pages/{page_id}", params={"_fields": "id,title,meta"}).json()
    title = (page.get("title") or {}).get("rendered")

    elements: list[Any] | None = None
    try:
        full_page = client.get(f"pages/{page_id}", params={"context": "edit"}).json()
    except WordPressError as e:
        logger.warning("Could not read page %s in edit context: %s", page_id, e)
        full_page = {}

    raw = (full_page.get("meta") or {}).get("_elementor_data")
    if raw:
        try:
            elements = decode_elementor_data(raw)
        except ValueError as e:
            logger.error("Error parsing Elementor data of page %s: %s", page_id, e)

    return ElementorInspection(
        page_id=int(page.get("id", page_id)),
        title=title,
        has_elementor=elements is not None,
        image_widgets=find_image_widgets(elements) if elements else [],
        widget_count=count_widgets(elements) if elements else 0,
    )


def fetch_elementor_document(
    client: WordPressClient, post_id: int
) -> ElementorDocument | None:
    """Find the post carrying Elementor data among pages, posts and templates."""
    for endpoint in ELEMENTOR_ENDPOINTS:
        try:
            post = client.get(f"{endpoint}/{post_id}", params={"context": "edit"}).json()
        except WordPressError as e:
            logger.debug("No Elementor document at %s/%s: %s", endpoint, post_id, e)
            continue
        if (post.get("meta") or {}).get("_elementor_data"):
            return ElementorDocument(endpoint=endpoint, post=post)
    return None


def clear_elementor_cache(
    client: WordPressClient,
    endpoint: str,
    post_id: int,
    page_settings: str | None = None,
) -> None:
    """Reset Elementor cache meta so the page CSS is regenerated.

    Failures are logged only.
    """
    cache_break_meta = {
        "meta": {
            "_elementor_css": "",
            "_elementor_page_settings": page_settings or "",
            "_elementor_edit_mode": "builder",
            "_elementor_version": "3.0.0",
            "_elementor_cache_bust": str(int(time.time() * 1000)),
        }
    }
    try:
        client.post_json(f"{endpoint}/{post_id}", cache_break_meta)
        logger.info("Elementor cache cleared for %s %s", endpoint, post_id)
    except WordPressError as e:
        logger.error("Failed to clear Elementor cache for %s %s: %s", endpoint, post_id, e)


def replace_image(
    client: WordPressClient,
    post_id: int,
    widget_id: str,
    new_url: str,
    new_image_id: int | str | None = None,
) -> ReplaceResult:
    """Swap the image of a widget and verify WordPress kept the change.

    Raises:
        ElementorError: If there is no layout, the layout is invalid, the
            widget is missing, or WordPress silently ignored the update.
        WordPressError: If saving the layout is refused.
    """
    document = fetch_elementor_document(client, post_id)
    if document is None:
        raise ElementorError(
            "No Elementor data found (pages/posts/templates)",
            code="no_elementor_data",
        )

    try:
        elements = decode_elementor_data(document.meta["_elementor_data"])
    except ValueError:
        raise ElementorError(
            "Invalid Elementor data", code="invalid_elementor_data"
        ) from None

    old_image = replace_widget_image(elements, widget_id, new_url, new_image_id)
    if old_image is None:
        raise ElementorError(
            f"Widget {widget_id} not found", code="widget_not_found", status_code=404
        )

    logger.info("Saving Elementor data to %s %s", document.endpoint, post_id)
    client.post_json(
        f"{document.endpoint}/{post_id}",
        {
            "meta": {
                "_elementor_data": json.dumps(elements),
                "_elementor_edit_mode": "builder",
            }
        },
    )

    clear_elementor_cache(
        client,
        document.endpoint,
        post_id,
        document.meta.get("_elementor_page_settings"),
    )

    verified = fetch_elementor_document(client, post_id)
    actual_url = None
    if verified is not None:
        try:
            actual_url = widget_image_url(
                decode_elementor_data(verified.meta["_elementor_data"]), widget_id
            )
        except ValueError as e:
            logger.error("Could not parse Elementor data while verifying: %s", e)

    logger.info(
        "Verify widget %s: expected %s, found %s", widget_id, new_url, actual_url
    )
    if actual_url != new_url:
        raise ElementorError(
            META_NOT_EXPOSED_MESSAGE, code="meta_not_exposed", status_code=412
        )

    return ReplaceResult(endpoint=document.endpoint, old_image=old_image)


__all__ = [
    "ELEMENTOR_ENDPOINTS",
    "ElementorDocument",
    "ElementorInspection",
    "IMAGE_WIDGET_TYPES",
    "ImageWidget",
    "ReplaceResult",
    "clear_elementor_cache",
    "count_widgets",
    "decode_elementor_data",
    "fetch_elementor_document",
    "find_image_widgets",
    "inspect_page",
    "iter_elements",
    "replace_image",
    "replace_widget_image",
    "widget_image_url",
]
