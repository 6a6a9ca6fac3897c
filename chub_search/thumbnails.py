"""Decoding of card thumbnails into small Pillow images."""

from __future__ import annotations

from io import BytesIO
from typing import Optional, Tuple

from PIL import Image, UnidentifiedImageError

from .logging_utils import get_logger

_log = get_logger("thumbnails")

THUMBNAIL_SIZE: Tuple[int, int] = (96, 96)


def decode_thumbnail(data: Optional[bytes], size: Tuple[int, int] = THUMBNAIL_SIZE) -> Optional[Image.Image]:
    """Decode ``data`` (png, webp, jpeg...) and shrink it to fit ``size``.

    Returns ``None`` for empty or undecodable data. The result is fully loaded,
    so it can be handed from a worker thread to the UI loop.
    """

    if not data:
        return None
    try:
        with Image.open(BytesIO(data)) as source:
            image = source.convert("RGBA")
    except (UnidentifiedImageError, OSError, ValueError):
        _log.debug("Discarding undecodable thumbnail (%d bytes)", len(data))
        return None
    image.thumbnail(size)
    return image


__all__ = ["THUMBNAIL_SIZE", "decode_thumbnail"]
