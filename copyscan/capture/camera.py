"""Camera acquisition with a two-tier facing fallback."""

from __future__ import annotations

import threading
from collections.abc import Callable
from enum import Enum

from loguru import logger

from copyscan.capture.device import CameraDevice, CameraFacing, open_opencv_device
from copyscan.config import get_settings
from copyscan.errors import AcquisitionFailure

DeviceOpener = Callable[[CameraFacing, int, int], CameraDevice]

FALLBACK_ORDER: tuple[CameraFacing, ...] = (CameraFacing.ENVIRONMENT, CameraFacing.USER)

ACQUISITION_ERROR_MESSAGE = (
    "Camera access failed. Please check permissions and ensure camera is available."
)


class CameraState(str, Enum):
    RELEASED = "released"
    READY = "ready"
    FAILED = "failed"


class CameraAcquirer:
    """Owns at most one live camera device.

    ``acquire`` walks :data:`FALLBACK_ORDER` and keeps the first device that
    opens. Any held device is stopped before a new attempt so two handles
    are never live at once.
    """

    def __init__(
        self,
        opener: DeviceOpener | None = None,
        width: int | None = None,
        height: int | None = None,
    ) -> None:
        settings = get_settings().capture
        self._opener = opener or open_opencv_device
        self._width = width or settings.ideal_width
        self._height = height or settings.ideal_height
        self._device: CameraDevice | None = None
        self._state = CameraState.RELEASED
        self._error: str | None = None
        self._lock = threading.Lock()

    @property
    def state(self) -> CameraState:
        return self._state

    @property
    def device(self) -> CameraDevice | None:
        return self._device

    @property
    def error(self) -> str | None:
        """Message of the last failed acquisition, if any."""
        return self._error

    @property
    def is_ready(self) -> bool:
        return self._state is CameraState.READY and self._device is not None

    def acquire(self) -> CameraDevice:
        """Open the first available camera, environment-facing first.

        Raises:
            AcquisitionFailure: when every tier failed.
        """
        with self._lock:
            self._release_locked()
            self._error = None
            reasons: list[str] = []
            for facing in FALLBACK_ORDER:
                try:
                    device = self._opener(facing, self._width, self._height)
                except Exception as exc:
                    logger.warning("{} camera unavailable: {}", facing.value, exc)
                    reasons.append(f"{facing.value}: {exc}")
                    continue
                self._device = device
                self._state = CameraState.READY
                logger.info("Camera ready ({})", facing.value)
                return device

            self._state = CameraState.FAILED
            self._error = ACQUISITION_ERROR_MESSAGE
            logger.error("All camera attempts failed: {}", "; ".join(reasons))
            raise AcquisitionFailure(ACQUISITION_ERROR_MESSAGE)

    def release(self) -> None:
        """Stop the held device, if any. Safe to call repeatedly."""
        with self._lock:
            self._release_locked()

    def retry(self) -> CameraDevice:
        """Release then acquire again."""
        self.release()
        return self.acquire()

    def _release_locked(self) -> None:
        device, self._device = self._device, None
        if device is not None:
            try:
                device.stop()
            except Exception:
                logger.opt(exception=True).warning("Error stopping {} camera", device.facing.value)
        if self._state is CameraState.READY:
            self._state = CameraState.RELEASED
