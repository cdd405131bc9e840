"""Operator-chosen image files as a substitute for a camera capture."""

from __future__ import annotations

import mimetypes
from pathlib import Path

from loguru import logger

from copyscan.capture._utils import decode_image
from copyscan.config import get_settings
from copyscan.errors import ValidationFailure


def _max_bytes(max_bytes: int | None) -> int:
    return max_bytes if max_bytes is not None else get_settings().file_import.max_bytes


def validate_image(data: bytes, filename: str, max_bytes: int | None = None) -> bytes:
    """Check that *data* is an image no larger than the import ceiling.

    Returns the data unchanged so the call can be used inline.

    Raises:
        ValidationFailure: wrong type, too large, empty or undecodable.
    """
    limit = _max_bytes(max_bytes)
    mime, _ = mimetypes.guess_type(filename)
    if mime is None or not mime.startswith("image/"):
        raise ValidationFailure("Please select an image file (JPEG, PNG, etc.)")
    if len(data) > limit:
        raise ValidationFailure(f"Image size should be less than {limit // (1024 * 1024)}MB")
    if decode_image(data) is None:
        raise ValidationFailure("Error reading file. Please try another image.")
    return data


def load_image_file(path: str | Path, max_bytes: int | None = None) -> bytes:
    """Read and validate an image file from disk."""
    path = Path(path)
    limit = _max_bytes(max_bytes)
    try:
        size = path.stat().st_size
    except OSError as exc:
        raise ValidationFailure(f"Cannot read {path.name}: {exc}") from exc
    # Reject oversized files before reading them into memory
    if size > limit:
        raise ValidationFailure(f"Image size should be less than {limit // (1024 * 1024)}MB")
    data = validate_image(path.read_bytes(), path.name, max_bytes=limit)
    logger.debug("Imported {} ({} bytes)", path.name, len(data))
    return data
