"""Capture layer: camera acquisition, still capture, file import, page buffer.

Imports are lazy to avoid pulling cv2 transitively when only a subset
of the package is needed (e.g. ``PageBuffer`` does not require OpenCV).
"""

from __future__ import annotations

__all__ = ["CameraAcquirer", "FrameCapturer", "PageBuffer", "load_image_file"]


def __getattr__(name: str):
    if name == "CameraAcquirer":
        from copyscan.capture.camera import CameraAcquirer

        return CameraAcquirer
    if name == "FrameCapturer":
        from copyscan.capture.frame_capture import FrameCapturer

        return FrameCapturer
    if name == "PageBuffer":
        from copyscan.capture.page_buffer import PageBuffer

        return PageBuffer
    if name == "load_image_file":
        from copyscan.capture.file_import import load_image_file

        return load_image_file
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
