"""The capture session: select -> acquire -> capture loop -> upload -> advance."""

from __future__ import annotations

import dataclasses
import threading
from collections.abc import Callable
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from loguru import logger

from copyscan.base import FrameSource, PendingFrame, ScanUploader, Student, StudentStatus
from copyscan.capture.camera import CameraAcquirer
from copyscan.capture.file_import import load_image_file, validate_image
from copyscan.capture.frame_capture import FrameCapturer
from copyscan.capture.page_buffer import PageBuffer
from copyscan.errors import (
    AcquisitionFailure,
    CaptureFailure,
    InvalidTransition,
    RosterError,
    UploadFailure,
    ValidationFailure,
)
from copyscan.roster.navigator import has_next_eligible, next_eligible
from copyscan.roster.snapshot import RosterSnapshot
from copyscan.session.states import ALLOWED_EVENTS, WORKING_STATES, SessionEvent, SessionState
from copyscan.upload.transaction import NO_PAGES_MESSAGE, UploadTransaction

Listener = Callable[[SessionState, SessionState, "CaptureSession"], None]


class CaptureSession:
    """Workflow engine for scanning one roster page, student by student.

    All transitions go through :meth:`handle` with a :class:`SessionEvent`;
    the named methods (:meth:`capture`, :meth:`keep`, ...) are thin
    wrappers. Events that the current state does not accept raise
    :class:`InvalidTransition`.

    Acquisition, capture, validation and upload failures never escape: they
    leave the session in a usable state and are reported through
    :attr:`last_error`. Advancement after an upload and a manual skip use
    the same :func:`next_eligible` query. When it finds nobody the session
    closes with :attr:`completed` set.

    Capture and upload run without holding the state lock, so a second
    capture while one is in flight is rejected by the capturer and any
    page edit during an upload is rejected by the state table. Closing
    during an upload waits for the upload's outcome.
    """

    def __init__(
        self,
        roster: RosterSnapshot,
        uploader: ScanUploader,
        camera: CameraAcquirer | None = None,
        capturer: FrameCapturer | None = None,
        max_import_bytes: int | None = None,
    ) -> None:
        self._roster = roster
        self._transaction = UploadTransaction(uploader)
        self._camera = camera or CameraAcquirer()
        self._capturer = capturer or FrameCapturer()
        self._max_import_bytes = max_import_bytes

        self._buffer = PageBuffer()
        self._state = SessionState.IDLE
        self._student: Student | None = None
        self._pending: PendingFrame | None = None
        self._last_error: str | None = None
        self._last_uploaded: int | None = None
        self._completed = False

        self._lock = threading.RLock()
        self._upload_idle = threading.Event()
        self._upload_idle.set()
        self._close_requested = False
        self._listeners: list[Listener] = []

        self._handlers: dict[SessionEvent, Callable[..., None]] = {
            SessionEvent.OPEN: self._on_open,
            SessionEvent.CAPTURE: self._on_capture,
            SessionEvent.IMPORT_FILE: self._on_import_file,
            SessionEvent.KEEP: self._on_keep,
            SessionEvent.RETAKE: self._on_retake,
            SessionEvent.REMOVE_PAGE: self._on_remove_page,
            SessionEvent.FINISH: self._on_finish,
            SessionEvent.SKIP: self._on_skip,
            SessionEvent.CLOSE: self._on_close,
            SessionEvent.STATUS_CHANGED: self._on_status_changed,
            SessionEvent.RETRY_CAMERA: self._on_retry_camera,
        }

    # ------------------------------------------------------------------
    # Read-only view
    # ------------------------------------------------------------------

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def active_student(self) -> Student | None:
        return self._student

    @property
    def buffer(self) -> PageBuffer:
        return self._buffer

    @property
    def pending_frame(self) -> PendingFrame | None:
        return self._pending

    @property
    def camera(self) -> CameraAcquirer:
        return self._camera

    @property
    def roster(self) -> RosterSnapshot:
        return self._roster

    @property
    def last_error(self) -> str | None:
        return self._last_error

    @property
    def last_uploaded_count(self) -> int | None:
        return self._last_uploaded

    @property
    def completed(self) -> bool:
        """True when the session closed because no eligible student was left."""
        return self._completed

    @property
    def page_count(self) -> int:
        """Committed pages plus the pending frame."""
        return len(self._buffer) + (1 if self._pending is not None else 0)

    @property
    def camera_ready(self) -> bool:
        return self._camera.is_ready

    @property
    def capturing(self) -> bool:
        return self._capturer.busy

    @property
    def has_next_student(self) -> bool:
        if self._student is None:
            return False
        return has_next_eligible(self._roster.students, self._student.id)

    def allowed_events(self) -> frozenset[SessionEvent]:
        return ALLOWED_EVENTS[self._state]

    def can(self, event: SessionEvent) -> bool:
        return event in ALLOWED_EVENTS[self._state]

    def add_listener(self, listener: Listener) -> None:
        """Register ``listener(old_state, new_state, session)``."""
        self._listeners.append(listener)

    # ------------------------------------------------------------------
    # Transition function
    # ------------------------------------------------------------------

    def handle(self, event: SessionEvent, payload: dict[str, Any] | None = None) -> SessionState:
        """Apply *event* and return the resulting state.

        Raises:
            InvalidTransition: *event* is not accepted in the current state.
        """
        self._handlers[event](**(payload or {}))
        return self._state

    def open(self, student: Student | str) -> SessionState:
        return self.handle(SessionEvent.OPEN, {"student": student})

    def capture(self) -> SessionState:
        return self.handle(SessionEvent.CAPTURE)

    def import_file(self, path: str | Path) -> SessionState:
        return self.handle(SessionEvent.IMPORT_FILE, {"path": path})

    def import_image(self, data: bytes, filename: str) -> SessionState:
        return self.handle(SessionEvent.IMPORT_FILE, {"data": data, "filename": filename})

    def keep(self) -> SessionState:
        return self.handle(SessionEvent.KEEP)

    def retake(self) -> SessionState:
        return self.handle(SessionEvent.RETAKE)

    def remove_page(self, page_id: int) -> SessionState:
        return self.handle(SessionEvent.REMOVE_PAGE, {"page_id": page_id})

    def finish(self) -> SessionState:
        return self.handle(SessionEvent.FINISH)

    def skip(self) -> SessionState:
        return self.handle(SessionEvent.SKIP)

    def close(self) -> SessionState:
        return self.handle(SessionEvent.CLOSE)

    def retry_camera(self) -> SessionState:
        return self.handle(SessionEvent.RETRY_CAMERA)

    def status_changed(self, student_id: str, status: StudentStatus) -> SessionState:
        return self.handle(
            SessionEvent.STATUS_CHANGED, {"student_id": student_id, "status": status}
        )

    def mark_status(self, status: StudentStatus) -> SessionState:
        """Ask the roster provider to change the active student's status.

        Marking the student absent or missing moves on exactly like a skip.
        """
        with self._lock:
            self._require(SessionEvent.STATUS_CHANGED)
            student = self._student
            if student is None:
                return self._state
            try:
                self._roster.provider.set_status(student.id, status)
            except Exception as exc:
                self._last_error = f"Failed to mark student as {status.value.lower()}"
                logger.warning("Status update failed for {}: {}", student.roll_number, exc)
                return self._state
            self._refresh_roster()
            return self.status_changed(student.id, status)

    def set_remark(self, text: str, student_id: str | None = None) -> None:
        """Store a free-text remark for a student (the active one by default)."""
        target = student_id or (self._student.id if self._student else None)
        if target is None:
            return
        try:
            self._roster.provider.set_remark(target, text)
        except Exception as exc:
            self._last_error = "Failed to update remark"
            logger.warning("Remark update failed for {}: {}", target, exc)
            return
        student = self._roster.find(target)
        if student is not None:
            self._roster.replace(dataclasses.replace(student, remark=text))

    # ------------------------------------------------------------------
    # Context manager
    # ------------------------------------------------------------------

    def __enter__(self) -> CaptureSession:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        self.close()
        return False

    # ------------------------------------------------------------------
    # Event handlers
    # ------------------------------------------------------------------

    def _on_open(self, student: Student | str) -> None:
        with self._lock:
            self._require(SessionEvent.OPEN)
            if isinstance(student, str):
                found = self._roster.find(student)
                if found is None:
                    raise KeyError(student)
                student = found
            self._completed = False
            self._last_uploaded = None
            self._select(student)

    def _on_capture(self) -> None:
        with self._lock:
            self._require(SessionEvent.CAPTURE)
            device = self._camera.device
        try:
            data = self._capturer.capture(device)
        except CaptureFailure as exc:
            self._last_error = str(exc)
            logger.warning("Capture failed: {}", exc)
            return
        with self._lock:
            if self._state is not SessionState.CAPTURE_READY:
                logger.debug("Discarding capture that finished in state {}", self._state.value)
                return
            self._hold(PendingFrame(data, datetime.now(UTC), FrameSource.CAMERA))

    def _on_import_file(
        self,
        path: str | Path | None = None,
        data: bytes | None = None,
        filename: str | None = None,
    ) -> None:
        with self._lock:
            self._require(SessionEvent.IMPORT_FILE)
            try:
                if path is not None:
                    image = load_image_file(path, max_bytes=self._max_import_bytes)
                else:
                    image = validate_image(
                        data or b"", filename or "", max_bytes=self._max_import_bytes
                    )
            except ValidationFailure as exc:
                self._last_error = str(exc)
                logger.warning("Rejected imported file: {}", exc)
                return
            self._hold(PendingFrame(image, datetime.now(UTC), FrameSource.FILE))

    def _on_keep(self) -> None:
        with self._lock:
            self._require(SessionEvent.KEEP)
            frame, self._pending = self._pending, None
            page_id = self._buffer.append(frame.image_data, self._student.roll_number)
            logger.debug(
                "Kept page {} for {}", self._buffer.page_number(page_id), self._student.roll_number
            )
            self._set_state(self._ready_state())

    def _on_retake(self) -> None:
        with self._lock:
            self._require(SessionEvent.RETAKE)
            self._pending = None
            self._set_state(self._ready_state())

    def _on_remove_page(self, page_id: int) -> None:
        with self._lock:
            self._require(SessionEvent.REMOVE_PAGE)
            self._buffer.remove(page_id)

    def _on_finish(self) -> None:
        with self._lock:
            self._require(SessionEvent.FINISH)
            if self._buffer.is_empty() and self._pending is None:
                self._last_error = NO_PAGES_MESSAGE
                logger.warning("Finish rejected for {}: nothing captured", self._student.roll_number)
                return
            prior = self._state
            student, pending = self._student, self._pending
            self._last_error = None
            self._upload_idle.clear()
            self._set_state(SessionState.UPLOADING)

        try:
            uploaded = self._transaction.finish(student, self._buffer, pending)
        except (ValidationFailure, UploadFailure) as exc:
            with self._lock:
                self._last_error = str(exc)
                self._set_state(prior)
                self._upload_idle.set()
                # Marked absent or missing while the upload was in flight
                if not self._close_requested and self._student and not self._student.is_eligible:
                    logger.info("{} no longer eligible; moving on", self._student.roll_number)
                    self._skip()
            return
        except BaseException:
            with self._lock:
                self._set_state(prior)
                self._upload_idle.set()
            raise

        with self._lock:
            self._pending = None
            self._last_uploaded = uploaded
            self._mark_scanned(student.id)
            self._upload_idle.set()
            if self._close_requested:
                return
            self._set_state(SessionState.ADVANCING)
            self._refresh_roster()
            self._advance()

    def _on_skip(self) -> None:
        with self._lock:
            self._require(SessionEvent.SKIP)
            self._skip()

    def _on_close(self) -> None:
        with self._lock:
            self._require(SessionEvent.CLOSE)
            uploading = self._state is SessionState.UPLOADING
            if uploading:
                self._close_requested = True
        if uploading:
            logger.info("Close requested during upload; waiting for the outcome")
            self._upload_idle.wait()
        with self._lock:
            self._close_requested = False
            self._teardown()
            if self._state is not SessionState.CLOSED:
                self._completed = False
                logger.info("Capture session closed")
            self._set_state(SessionState.CLOSED)

    def _on_status_changed(self, student_id: str, status: StudentStatus) -> None:
        with self._lock:
            self._require(SessionEvent.STATUS_CHANGED)
            updated = self._roster.apply_status(student_id, status)
            active = self._student
            if active is None or active.id != student_id:
                return
            self._student = updated or dataclasses.replace(active, status=status)
            if status is StudentStatus.PENDING or self._state not in WORKING_STATES:
                return
            logger.info("{} marked {}; moving on", active.roll_number, status.value)
            self._skip()

    def _on_retry_camera(self) -> None:
        with self._lock:
            self._require(SessionEvent.RETRY_CAMERA)
            self._set_state(SessionState.SELECTING)
            self._acquire_camera()

    # ------------------------------------------------------------------
    # Internals (call with the lock held)
    # ------------------------------------------------------------------

    def _require(self, event: SessionEvent) -> None:
        if event not in ALLOWED_EVENTS[self._state]:
            raise InvalidTransition(event.value, self._state.value)

    def _set_state(self, new: SessionState) -> None:
        old, self._state = self._state, new
        if old is new:
            return
        logger.debug("Session {} -> {}", old.value, new.value)
        for listener in list(self._listeners):
            try:
                listener(old, new, self)
            except Exception:
                logger.opt(exception=True).error("Session listener failed on {}", new.value)

    def _ready_state(self) -> SessionState:
        return SessionState.CAPTURE_READY if self._camera.is_ready else SessionState.CAMERA_ERROR

    def _hold(self, frame: PendingFrame) -> None:
        self._pending = frame
        self._last_error = None
        self._set_state(SessionState.FRAME_PENDING)

    def _select(self, student: Student) -> None:
        self._student = student
        self._pending = None
        self._buffer.clear()
        self._last_error = None
        logger.info("Scanning {} - {}", student.roll_number, student.name)
        self._set_state(SessionState.SELECTING)
        self._acquire_camera()

    def _acquire_camera(self) -> None:
        try:
            self._camera.retry()
        except AcquisitionFailure as exc:
            self._last_error = str(exc)
            self._set_state(SessionState.CAMERA_ERROR)
            return
        self._set_state(SessionState.CAPTURE_READY)

    def _skip(self) -> None:
        self._pending = None
        self._buffer.clear()
        self._set_state(SessionState.ADVANCING)
        self._advance()

    def _advance(self) -> None:
        current = self._student
        nxt = next_eligible(self._roster.students, current.id if current else None)
        if nxt is None:
            logger.info("No more eligible students on this roster page")
            self._teardown()
            self._completed = True
            self._set_state(SessionState.CLOSED)
            return
        self._select(nxt)

    def _teardown(self) -> None:
        self._camera.release()
        self._pending = None
        if not self._buffer.frozen:
            self._buffer.clear()
        self._student = None

    def _mark_scanned(self, student_id: str) -> None:
        # The snapshot copy carries any status change made during the upload
        current = self._roster.find(student_id)
        if current is not None:
            self._roster.replace(dataclasses.replace(current, is_scanned=True))
        if self._student is not None and self._student.id == student_id:
            self._student = dataclasses.replace(self._student, is_scanned=True)

    def _refresh_roster(self) -> None:
        try:
            self._roster.refresh()
        except RosterError as exc:
            logger.warning("Roster refresh failed, keeping previous snapshot: {}", exc)
