"""Shared image helpers for the capture layer."""

from __future__ import annotations

import cv2
import numpy as np

from copyscan.errors import CaptureFailure

DEFAULT_RESOLUTION = (1280, 720)


def encode_jpeg(image: np.ndarray, quality: int) -> bytes:
    """Encode a BGR image as JPEG at *quality* (0-100)."""
    ok, buf = cv2.imencode(".jpg", image, [cv2.IMWRITE_JPEG_QUALITY, int(quality)])
    if not ok:
        raise CaptureFailure("JPEG encoding failed")
    return buf.tobytes()


def render_to_raster(frame: np.ndarray, width: int, height: int) -> np.ndarray:
    """Draw *frame* onto a ``height x width`` BGR raster.

    Zero dimensions fall back to :data:`DEFAULT_RESOLUTION`.
    """
    if width <= 0 or height <= 0:
        width, height = DEFAULT_RESOLUTION
    if frame.ndim == 2:
        frame = cv2.cvtColor(frame, cv2.COLOR_GRAY2BGR)
    raster = np.zeros((height, width, 3), dtype=np.uint8)
    if frame.shape[0] == height and frame.shape[1] == width:
        raster[:] = frame[:, :, :3]
    else:
        raster[:] = cv2.resize(frame[:, :, :3], (width, height))
    return raster


def decode_image(data: bytes) -> np.ndarray | None:
    """Decode an encoded still image, returning ``None`` if it is not one."""
    if not data:
        return None
    arr = np.frombuffer(data, dtype=np.uint8)
    return cv2.imdecode(arr, cv2.IMREAD_COLOR)
