"""Image inspection and vision preparation with Pillow."""

from __future__ import annotations

import io
import logging

from PIL import Image

logger = logging.getLogger(__name__)

DEFAULT_VISION_MAX_DIMENSION = 1568
DEFAULT_VISION_MAX_BYTES = 4 * 1024 * 1024

# JPEG quality ladder: 85, 75, ... down to 15
START_QUALITY = 85
QUALITY_STEP = 10
MIN_QUALITY = 10

_DECODE_ERRORS = (OSError, ValueError, Image.DecompressionBombError)


class ImageProcessingError(Exception):
    """Raised when an image cannot be decoded or re-encoded."""

    def __init__(self, message: str, code: str = "unreadable_image") -> None:
        super().__init__(message)
        self.code = code


def read_dimensions(data: bytes) -> tuple[int, int] | None:
    """Decode an image and return its (width, height).

    Returns:
        Dimensions, or None if the data does not decode as an image.
    """
    try:
        with Image.open(io.BytesIO(data)) as img:
            img.load()
            return img.width, img.height
    except _DECODE_ERRORS as e:
        logger.debug("Image failed to decode: %s", e)
        return None


def diagnose_signature(data: bytes) -> str:
    """Explain why an image failed to decode from its leading bytes.

    A known JPEG, PNG or GIF signature means the data is corrupt; anything
    else is reported with its first four bytes.
    """
    header = data[:4]
    if len(header) >= 3 and header[0] == 0xFF and header[1] == 0xD8 and header[2] == 0xFF:
        kind = "JPEG"
    elif header == b"\x89PNG":
        kind = "PNG"
    elif header[:3] == b"GIF":
        kind = "GIF"
    else:
        signature = ",".join(str(b) for b in header)
        return f"Invalid format (signature: {signature}). The file is not a real image."
    return f"Corrupted image (valid {kind} signature but corrupted data)"


def _flatten(img: Image.Image) -> Image.Image:
    """Return an RGB copy of the image, transparency composited on white."""
    if img.mode in ("RGBA", "LA") or (img.mode == "P" and "transparency" in img.info):
        rgba = img.convert("RGBA")
        background = Image.new("RGB", rgba.size, (255, 255, 255))
        background.paste(rgba, mask=rgba.getchannel("A"))
        return background
    if img.mode != "RGB":
        return img.convert("RGB")
    return img


def prepare_for_vision(
    data: bytes,
    max_dimension: int = DEFAULT_VISION_MAX_DIMENSION,
    max_bytes: int = DEFAULT_VISION_MAX_BYTES,
) -> tuple[bytes, str]:
    """Resize and re-encode an image for the vision API.

    The longest edge is brought down to `max_dimension` and the image is
    encoded as JPEG, lowering quality while the result exceeds
    `max_bytes`. The last attempt is returned even if still too large.

    Returns:
        (JPEG bytes, "image/jpeg").

    Raises:
        ImageProcessingError: If the image cannot be decoded.
    """
    try:
        with Image.open(io.BytesIO(data)) as source:
            source.load()
            img = _flatten(source)
    except _DECODE_ERRORS as e:
        raise ImageProcessingError(f"Cannot decode image: {e}") from e

    width, height = img.size
    if width > max_dimension or height > max_dimension:
        if width > height:
            size = (max_dimension, round(height * max_dimension / width))
        else:
            size = (round(width * max_dimension / height), max_dimension)
        img = img.resize(size, Image.Resampling.LANCZOS)

    quality = START_QUALITY
    while True:
        buffer = io.BytesIO()
        img.save(buffer, format="JPEG", quality=quality)
        encoded = buffer.getvalue()
        quality -= QUALITY_STEP
        if len(encoded) <= max_bytes or quality <= MIN_QUALITY:
            break

    logger.debug(
        "Prepared %dx%d image for vision (%d bytes)", img.width, img.height, len(encoded)
    )
    return encoded, "image/jpeg"


__all__ = [
    "ImageProcessingError",
    "diagnose_signature",
    "prepare_for_vision",
    "read_dimensions",
]
