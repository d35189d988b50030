"""Image payload helpers: data URLs, base64 and format sniffing.

The generation gateway speaks data URLs in both directions: the reference
image is sent as ``data:image/jpeg;base64,...`` and renders come back the
same way.  Storage, however, wants raw bytes and a content type.  The helpers
here convert between the two and use Pillow to confirm that bytes really are
an image.
"""

from __future__ import annotations

import base64
import binascii
import io
import logging
import re
from dataclasses import dataclass

from PIL import Image, UnidentifiedImageError

logger = logging.getLogger(__name__)

_DATA_URL_RE = re.compile(
    r"^data:(?P<mime>[\w.+-]+/[\w.+-]+)?(?P<params>(?:;[\w.+-]+=[\w.+-]+)*)"
    r"(?P<base64>;base64)?,(?P<payload>.*)$",
    re.DOTALL,
)

# Pillow format name -> MIME type
_FORMAT_MIME = {
    "JPEG": "image/jpeg",
    "PNG": "image/png",
    "WEBP": "image/webp",
    "GIF": "image/gif",
    "BMP": "image/bmp",
    "TIFF": "image/tiff",
}


class ImageDecodeError(ValueError):
    """Raised when a payload is not a decodable image."""


@dataclass(frozen=True)
class ImagePayload:
    """Raw image bytes plus their content type."""

    data: bytes
    content_type: str

    def to_data_url(self) -> str:
        """Encode the payload as a base64 data URL."""
        encoded = base64.b64encode(self.data).decode("ascii")
        return f"data:{self.content_type};base64,{encoded}"


def _b64decode(payload: str) -> bytes:
    # Browsers sometimes drop padding; restore it before strict decoding.
    cleaned = "".join(payload.split())
    cleaned += "=" * (-len(cleaned) % 4)
    try:
        return base64.b64decode(cleaned, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ImageDecodeError(f"Invalid base64 payload: {e}") from e


def decode_data_url(value: str) -> ImagePayload:
    """Decode a base64 data URL into raw bytes.

    Args:
        value: A ``data:<mime>;base64,<payload>`` string.

    Returns:
        The decoded payload.  When the URL names no MIME type,
        ``application/octet-stream`` is used.

    Raises:
        ImageDecodeError: If the string is not a base64 data URL or the
            payload is empty or not valid base64.
    """
    match = _DATA_URL_RE.match(value.strip()) if value else None
    if not match or not match.group("base64"):
        raise ImageDecodeError("Not a base64 data URL")

    data = _b64decode(match.group("payload"))
    if not data:
        raise ImageDecodeError("Data URL payload is empty")

    return ImagePayload(data=data, content_type=match.group("mime") or "application/octet-stream")


def sniff_content_type(data: bytes) -> str:
    """Open *data* with Pillow and return its MIME type.

    Raises:
        ImageDecodeError: If Pillow cannot identify the bytes as an image.
    """
    try:
        with Image.open(io.BytesIO(data)) as image:
            image.verify()
            image_format = image.format
    except (UnidentifiedImageError, OSError, SyntaxError, ValueError) as e:
        raise ImageDecodeError(f"Not a decodable image: {e}") from e

    return _FORMAT_MIME.get(image_format or "", "application/octet-stream")


def decode_reference_image(value: str) -> ImagePayload:
    """Decode a caller-supplied reference image.

    Accepts either a data URL or bare base64.  The bytes are verified with
    Pillow; the content type comes from Pillow's detected format so that a
    mislabelled data URL cannot smuggle a non-image through.

    Raises:
        ImageDecodeError: If the value is empty, not base64, or not an image.
    """
    if not value or not value.strip():
        raise ImageDecodeError("Reference image is empty")

    if value.lstrip().startswith("data:"):
        data = decode_data_url(value).data
    else:
        data = _b64decode(value)
        if not data:
            raise ImageDecodeError("Reference image is empty")

    content_type = sniff_content_type(data)
    logger.debug(f"Decoded reference image: {len(data)} bytes, {content_type}")
    return ImagePayload(data=data, content_type=content_type)


def to_png(payload: ImagePayload) -> ImagePayload:
    """Return *payload* re-encoded as PNG.

    Stored frames are always PNG so a frame's blob path does not depend on
    whichever format the gateway chose for a particular render.

    Raises:
        ImageDecodeError: If Pillow cannot open the bytes.
    """
    if payload.content_type.lower() == "image/png":
        return payload

    try:
        with Image.open(io.BytesIO(payload.data)) as image:
            if image.mode not in ("RGB", "RGBA", "L", "LA", "P"):
                image = image.convert("RGBA")
            buffer = io.BytesIO()
            image.save(buffer, format="PNG")
    except (UnidentifiedImageError, OSError, SyntaxError, ValueError) as e:
        raise ImageDecodeError(f"Not a decodable image: {e}") from e

    logger.debug(f"Re-encoded {payload.content_type} frame as PNG")
    return ImagePayload(data=buffer.getvalue(), content_type="image/png")
