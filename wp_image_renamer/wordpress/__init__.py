"""WordPress REST API module.

This module handles:
- URL normalization and Basic/Bearer authentication
- Connection checks (application password and JWT)
- Page listing with long-tail filtering
- Media library listing, update and upload
- Elementor layout inspection and image replacement
"""

from wp_image_renamer.wordpress.auth import (
    Credentials,
    basic_auth_header,
    bearer_auth_header,
    normalize_url,
)
from wp_image_renamer.wordpress.client import (
    ConnectResult,
    WordPressClient,
    get_jwt_token,
    verify_connection,
)
from wp_image_renamer.wordpress.elementor import (
    ElementorInspection,
    ImageWidget,
    ReplaceResult,
    count_widgets,
    find_image_widgets,
    inspect_page,
    replace_image,
    replace_widget_image,
)
from wp_image_renamer.wordpress.errors import ElementorError, WordPressError
from wp_image_renamer.wordpress.media import (
    MediaItem,
    MediaPage,
    UploadedMedia,
    list_media,
    update_media,
    upload_media,
)
from wp_image_renamer.wordpress.pages import (
    PageListing,
    filter_long_tail_pages,
    list_pages,
)

__all__ = [
    # Auth
    "Credentials",
    "basic_auth_header",
    "bearer_auth_header",
    "normalize_url",
    # Client
    "ConnectResult",
    "WordPressClient",
    "get_jwt_token",
    "verify_connection",
    # Errors
    "ElementorError",
    "WordPressError",
    # Pages
    "PageListing",
    "filter_long_tail_pages",
    "list_pages",
    # Media
    "MediaItem",
    "MediaPage",
    "UploadedMedia",
    "list_media",
    "update_media",
    "upload_media",
    # Elementor
    "ElementorInspection",
    "ImageWidget",
    "ReplaceResult",
    "count_widgets",
    "find_image_widgets",
    "inspect_page",
    "replace_image",
    "replace_widget_image",
]
