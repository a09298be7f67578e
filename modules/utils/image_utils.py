"""Utility helpers for moving images in and out of the generation service."""

from __future__ import annotations

import base64
import binascii
import io
import logging
from typing import Any, Optional

from PIL import Image, UnidentifiedImageError

from modules.errors import InputError
from modules.services.design_state import ImageData

SUPPORTED_MIME_TYPES = ("image/png", "image/jpeg", "image/webp")

logger = logging.getLogger(__name__)


def read_reference_image(
    data: bytes | str,
    mime_type: Optional[str] = None,
    error_message: str = "Could not read the provided image file.",
) -> ImageData:
    """Decode an uploaded file into inline (bytes, mime) form.

    ``data`` may be raw bytes or a base64 / data-URL string. The MIME type comes
    from the decoded content; a caller-supplied ``mime_type`` that disagrees is
    logged and ignored.
    """
    try:
        raw = decode_inline(data)
        with Image.open(io.BytesIO(raw)) as image:
            detected = Image.MIME.get(image.format or "")
            image.verify()
    except (InputError, UnidentifiedImageError, OSError, SyntaxError, ValueError) as exc:
        raise InputError(error_message) from exc

    if detected not in SUPPORTED_MIME_TYPES:
        raise InputError(error_message)
    if mime_type and mime_type != detected:
        logger.warning("upload labelled %s is actually %s", mime_type, detected)
    return ImageData(data=raw, mime_type=detected)


def decode_inline(data: bytes | str) -> bytes:
    """Accept raw bytes, a base64 string, or a ``data:`` URL."""
    if isinstance(data, (bytes, bytearray)):
        if not data:
            raise InputError("empty image payload")
        return bytes(data)
    text = data.strip()
    if text.startswith("data:") and "," in text:
        text = text.split(",", 1)[1]
    try:
        raw = base64.b64decode(text, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise InputError("image payload is not valid base64") from exc
    if not raw:
        raise InputError("empty image payload")
    return raw


def first_inline_image(response: Any) -> Optional[ImageData]:
    """Return the first inline image part of a generate_content response."""
    for candidate in getattr(response, "candidates", None) or []:
        content = getattr(candidate, "content", None)
        for part in getattr(content, "parts", None) or []:
            inline = getattr(part, "inline_data", None)
            if not inline or not inline.data:
                continue
            data = inline.data
            if isinstance(data, str):
                data = base64.b64decode(data)
            return ImageData(data=data, mime_type=inline.mime_type or "image/png")
    return None
