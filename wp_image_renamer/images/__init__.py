"""Staged images module.

This module handles:
- Image intake (type/size validation, dimensions, decode diagnosis)
- Per-image edits, target pages and multi-selection
- Preparing images for the vision API
"""

from wp_image_renamer.images.models import UploadedImage
from wp_image_renamer.images.processing import (
    ImageProcessingError,
    diagnose_signature,
    prepare_for_vision,
    read_dimensions,
)
from wp_image_renamer.images.service import (
    ACCEPTED_TYPES,
    ImageNotFoundError,
    ImageRejectedError,
    IncomingFile,
    add_images,
    assign_page_to_selected,
    clear_images,
    clear_selection,
    get_image,
    list_images,
    read_image_bytes,
    remove_image,
    select_all,
    selected_images,
    set_generated_name,
    set_target_page,
    toggle_selection,
    update_image,
)

__all__ = [
    "ACCEPTED_TYPES",
    "ImageNotFoundError",
    "ImageProcessingError",
    "ImageRejectedError",
    "IncomingFile",
    "UploadedImage",
    "add_images",
    "assign_page_to_selected",
    "clear_images",
    "clear_selection",
    "diagnose_signature",
    "get_image",
    "list_images",
    "prepare_for_vision",
    "read_dimensions",
    "read_image_bytes",
    "remove_image",
    "select_all",
    "selected_images",
    "set_generated_name",
    "set_target_page",
    "toggle_selection",
    "update_image",
]
