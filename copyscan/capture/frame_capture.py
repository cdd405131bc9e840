"""Single still capture from a live camera device."""

from __future__ import annotations

import threading
import time

import numpy as np
from loguru import logger

from copyscan.capture._utils import encode_jpeg, render_to_raster
from copyscan.capture.device import CameraDevice
from copyscan.config import get_settings
from copyscan.errors import CaptureFailure, CaptureInProgress


class FrameCapturer:
    """Produces one encoded still per call.

    The device's ``take_photo`` primitive is used when it exists. If it is
    missing or raises, the frame is rendered manually: wait for the device
    to report its size, let the sensor settle, read one frame and encode it.
    A call never retries on its own; the caller decides whether to ask the
    operator again.
    """

    def __init__(
        self,
        jpeg_quality: int | None = None,
        settle_delay: float | None = None,
        metadata_timeout: float | None = None,
        metadata_poll: float | None = None,
    ) -> None:
        settings = get_settings().capture
        self._quality = jpeg_quality if jpeg_quality is not None else settings.jpeg_quality
        self._settle_delay = (
            settle_delay if settle_delay is not None else settings.settle_delay_seconds
        )
        self._metadata_timeout = (
            metadata_timeout if metadata_timeout is not None
            else settings.metadata_timeout_seconds
        )
        self._metadata_poll = (
            metadata_poll if metadata_poll is not None else settings.metadata_poll_seconds
        )
        self._in_flight = threading.Lock()

    @property
    def busy(self) -> bool:
        """True while a capture is in flight."""
        return self._in_flight.locked()

    def capture(self, device: CameraDevice | None) -> bytes:
        """Capture one still image from *device*.

        Raises:
            CaptureInProgress: another capture has not finished yet.
            CaptureFailure: no live device, or both capture paths failed.
        """
        if not self._in_flight.acquire(blocking=False):
            raise CaptureInProgress("A capture is already in progress")
        try:
            if device is None or not device.is_live:
                raise CaptureFailure("Camera not ready")
            return self._capture(device)
        finally:
            self._in_flight.release()

    def _capture(self, device: CameraDevice) -> bytes:
        take_photo = getattr(device, "take_photo", None)
        if take_photo is not None:
            try:
                data = take_photo(self._quality)
                logger.debug("Photo captured via still-capture primitive")
                return data
            except Exception as exc:
                logger.warning("Still capture failed, using render fallback: {}", exc)
        try:
            return self._capture_with_render_fallback(device)
        except CaptureFailure:
            raise
        except Exception as exc:
            raise CaptureFailure(f"Render fallback failed: {exc}") from exc

    def _capture_with_render_fallback(self, device: CameraDevice) -> bytes:
        self._wait_for_metadata(device)
        if self._settle_delay > 0:
            time.sleep(self._settle_delay)

        frame = device.read_frame()
        if frame is None:
            raise CaptureFailure("Failed to capture photo")
        width, height = device.native_resolution
        raster = render_to_raster(np.asarray(frame), width, height)
        data = encode_jpeg(raster, self._quality)
        logger.debug("Photo captured via render fallback ({}x{})", raster.shape[1], raster.shape[0])
        return data

    def _wait_for_metadata(self, device: CameraDevice) -> None:
        """Block until the device reports a frame size, up to the timeout."""
        deadline = time.monotonic() + self._metadata_timeout
        while True:
            width, height = device.native_resolution
            if width > 0 and height > 0:
                return
            if time.monotonic() >= deadline:
                raise CaptureFailure("Video load timeout")
            time.sleep(self._metadata_poll)
