"""Camera device handles backed by OpenCV ``VideoCapture``."""

from __future__ import annotations

from enum import Enum
from typing import Protocol, runtime_checkable

import cv2
import numpy as np
from loguru import logger

from copyscan.capture._utils import encode_jpeg
from copyscan.config import get_settings
from copyscan.errors import AcquisitionFailure, CaptureFailure


class CameraFacing(str, Enum):
    """Which way a camera points relative to the operator."""

    ENVIRONMENT = "environment"
    USER = "user"


@runtime_checkable
class CameraDevice(Protocol):
    """A live, exclusively owned camera handle.

    Devices may additionally expose ``take_photo(quality) -> bytes`` as a
    still-capture primitive; the frame capturer prefers it when present.
    """

    facing: CameraFacing

    @property
    def is_live(self) -> bool:
        ...

    @property
    def native_resolution(self) -> tuple[int, int]:
        """``(width, height)`` reported by the device, ``(0, 0)`` if unknown."""
        ...

    def read_frame(self) -> np.ndarray | None:
        ...

    def stop(self) -> None:
        """Stop the device. Must be idempotent."""
        ...


class OpenCVCameraDevice:
    """Local camera opened through OpenCV.

    The requested resolution is an ideal, not a requirement: the driver may
    negotiate something else, which ``native_resolution`` then reports.
    """

    def __init__(
        self,
        device_index: int,
        facing: CameraFacing,
        width: int,
        height: int,
    ) -> None:
        self.facing = facing
        self._device_index = device_index
        self._cap: cv2.VideoCapture | None = cv2.VideoCapture(device_index)
        if not self._cap.isOpened():
            self._cap.release()
            self._cap = None
            raise AcquisitionFailure(
                f"Could not open {facing.value} camera (device {device_index})"
            )
        self._cap.set(cv2.CAP_PROP_FRAME_WIDTH, width)
        self._cap.set(cv2.CAP_PROP_FRAME_HEIGHT, height)
        logger.info(
            "Opened {} camera at device {} ({}x{})",
            facing.value, device_index, *self.native_resolution,
        )

    @property
    def is_live(self) -> bool:
        return self._cap is not None and self._cap.isOpened()

    @property
    def native_resolution(self) -> tuple[int, int]:
        if self._cap is None:
            return (0, 0)
        width = int(self._cap.get(cv2.CAP_PROP_FRAME_WIDTH) or 0)
        height = int(self._cap.get(cv2.CAP_PROP_FRAME_HEIGHT) or 0)
        return (width, height)

    def read_frame(self) -> np.ndarray | None:
        if self._cap is None:
            return None
        ok, frame = self._cap.read()
        if not ok or frame is None:
            return None
        return frame

    def take_photo(self, quality: int) -> bytes:
        """Grab the next frame from the stream and encode it as JPEG."""
        frame = self.read_frame()
        if frame is None:
            raise CaptureFailure(f"No frame from {self.facing.value} camera")
        return encode_jpeg(frame, quality)

    def stop(self) -> None:
        if self._cap is not None:
            self._cap.release()
            self._cap = None
            logger.info("Released {} camera (device {})", self.facing.value, self._device_index)

    def __repr__(self) -> str:
        return f"<OpenCVCameraDevice {self.facing.value} index={self._device_index}>"


def open_opencv_device(facing: CameraFacing, width: int, height: int) -> OpenCVCameraDevice:
    """Default device opener: maps *facing* to a configured device index."""
    settings = get_settings().capture
    index = (
        settings.environment_device
        if facing is CameraFacing.ENVIRONMENT
        else settings.user_device
    )
    return OpenCVCameraDevice(index, facing, width, height)
