"""
Helpers for project photo/video attachments.
"""

from __future__ import annotations

import io
import logging
import mimetypes
import os
from typing import Optional

from PIL import Image, UnidentifiedImageError

logger = logging.getLogger(__name__)

MAX_DIMENSION = 1600
MIN_DIMENSION = 320
START_QUALITY = 85
MIN_QUALITY = 40
QUALITY_STEP = 8
DOWNSCALE_FACTOR = 0.85


def media_kind(filename: str, content_type: Optional[str]) -> str:
    """
    Return "image" or "video" for an upload, raising ValueError otherwise.

    The declared content type wins; the file extension is the fallback for
    clients that send application/octet-stream.
    """
    for candidate in (content_type, mimetypes.guess_type(filename or "")[0]):
        if not candidate:
            continue
        if candidate.startswith("image/"):
            return "image"
        if candidate.startswith("video/"):
            return "video"
    raise ValueError(f"Unsupported media type for {filename!r}: {content_type}")


def resolve_content_type(filename: str, content_type: Optional[str]) -> str:
    if content_type and content_type != "application/octet-stream":
        return content_type
    return mimetypes.guess_type(filename or "")[0] or "application/octet-stream"


def storage_path(
    project_id: int, token: str, filename: str, content_type: Optional[str] = None
) -> str:
    ext = os.path.splitext(filename or "")[1].lower()
    if not ext and content_type:
        ext = mimetypes.guess_extension(content_type) or ""
    return f"projects/{project_id}/media/{token}{ext}"


def _encode_jpeg(img: Image.Image, quality: int) -> bytes:
    buffer = io.BytesIO()
    img.save(buffer, format="JPEG", quality=quality, optimize=True)
    return buffer.getvalue()


def _resize(img: Image.Image, width: int, height: int) -> Image.Image:
    return img.resize((max(1, width), max(1, height)), Image.LANCZOS)


def compress_image(
    data: bytes, filename: str, target_bytes: int, content_type: Optional[str] = None
) -> tuple[bytes, str, str]:
    """
    Best-effort shrink of an image to at most target_bytes as JPEG.

    Returns (data, filename, content_type). Images already under the target
    are returned untouched with their resolved content type, as are images
    Pillow cannot decode. The result may still exceed the target once quality
    and size floors are reached.
    """
    if len(data) <= target_bytes:
        return data, filename, resolve_content_type(filename, content_type)

    try:
        with Image.open(io.BytesIO(data)) as opened:
            source = opened.convert("RGB")
    except (UnidentifiedImageError, OSError):
        logger.warning("Could not decode %s for compression; storing original", filename)
        return data, filename, resolve_content_type(filename, content_type)

    width, height = source.size
    scale = min(1.0, MAX_DIMENSION / max(width, height))
    width, height = max(1, round(width * scale)), max(1, round(height * scale))
    current = _resize(source, width, height) if scale < 1.0 else source

    quality = START_QUALITY
    out = _encode_jpeg(current, quality)
    while len(out) > target_bytes and quality > MIN_QUALITY:
        quality = max(MIN_QUALITY, quality - QUALITY_STEP)
        out = _encode_jpeg(current, quality)

    while len(out) > target_bytes and max(width, height) > MIN_DIMENSION:
        width = max(1, round(width * DOWNSCALE_FACTOR))
        height = max(1, round(height * DOWNSCALE_FACTOR))
        current = _resize(source, width, height)
        out = _encode_jpeg(current, quality)

    stem = os.path.splitext(filename or "photo")[0] or "photo"
    logger.info(
        "Compressed %s from %d to %d bytes (%dx%d, q=%d)",
        filename,
        len(data),
        len(out),
        width,
        height,
        quality,
    )
    return out, f"{stem}.jpg", "image/jpeg"
