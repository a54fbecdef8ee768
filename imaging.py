# imaging.py
import base64
import binascii
import io
from dataclasses import dataclass

from PIL import Image, UnidentifiedImageError

from errors import InvalidImageError

# Pillow format name -> media type accepted by the vision API
SUPPORTED_FORMATS = {
    "JPEG": "image/jpeg",
    "PNG": "image/png",
    "GIF": "image/gif",
    "WEBP": "image/webp",
}


@dataclass(frozen=True)
class DecodedImage:
    data: str  # base64 without any data-URL prefix
    media_type: str


def strip_data_url(value: str) -> str:
    # "data:image/jpeg;base64,...." -> "...."
    if value.startswith("data:") and "," in value:
        return value.split(",", 1)[1]
    return value


def decode_image(value: str) -> DecodedImage:
    """
    Validate a base64 image coming from the client and work out its media type.

    Raises InvalidImageError for empty, non-base64 or non-image payloads.
    """
    if not value or not value.strip():
        raise InvalidImageError("Image data is required")

    data = "".join(strip_data_url(value.strip()).split())
    try:
        raw = base64.b64decode(data, validate=True)
    except (binascii.Error, ValueError):
        raise InvalidImageError("Image data is not valid base64")

    try:
        with Image.open(io.BytesIO(raw)) as img:
            fmt = img.format
            img.verify()
    except (UnidentifiedImageError, OSError, SyntaxError):
        raise InvalidImageError("Image data could not be decoded")

    media_type = SUPPORTED_FORMATS.get(fmt or "")
    if media_type is None:
        raise InvalidImageError(f"Unsupported image format: {fmt}")
    return DecodedImage(data=data, media_type=media_type)
