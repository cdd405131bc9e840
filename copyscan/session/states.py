"""Session states, input events and the table of legal events per state."""

from __future__ import annotations

from enum import Enum


class SessionState(str, Enum):
    IDLE = "idle"
    SELECTING = "selecting"
    CAPTURE_READY = "capture_ready"
    # Degraded capture-ready: no camera, file import still works
    CAMERA_ERROR = "camera_error"
    FRAME_PENDING = "frame_pending"
    UPLOADING = "uploading"
    ADVANCING = "advancing"
    CLOSED = "closed"


class SessionEvent(str, Enum):
    OPEN = "open"
    CAPTURE = "capture"
    IMPORT_FILE = "import_file"
    KEEP = "keep"
    RETAKE = "retake"
    REMOVE_PAGE = "remove_page"
    FINISH = "finish"
    SKIP = "skip"
    CLOSE = "close"
    STATUS_CHANGED = "status_changed"
    RETRY_CAMERA = "retry_camera"


_E = SessionEvent
_S = SessionState

ALLOWED_EVENTS: dict[SessionState, frozenset[SessionEvent]] = {
    _S.IDLE: frozenset({_E.OPEN, _E.CLOSE, _E.STATUS_CHANGED}),
    _S.SELECTING: frozenset({_E.CLOSE}),
    _S.CAPTURE_READY: frozenset({
        _E.CAPTURE, _E.IMPORT_FILE, _E.REMOVE_PAGE, _E.FINISH, _E.SKIP,
        _E.CLOSE, _E.STATUS_CHANGED, _E.RETRY_CAMERA,
    }),
    _S.CAMERA_ERROR: frozenset({
        _E.IMPORT_FILE, _E.REMOVE_PAGE, _E.FINISH, _E.SKIP,
        _E.CLOSE, _E.STATUS_CHANGED, _E.RETRY_CAMERA,
    }),
    _S.FRAME_PENDING: frozenset({
        _E.KEEP, _E.RETAKE, _E.REMOVE_PAGE, _E.FINISH, _E.SKIP,
        _E.CLOSE, _E.STATUS_CHANGED,
    }),
    # Status changes during an upload only update the roster snapshot
    _S.UPLOADING: frozenset({_E.CLOSE, _E.STATUS_CHANGED}),
    _S.ADVANCING: frozenset({_E.CLOSE}),
    _S.CLOSED: frozenset({_E.OPEN, _E.CLOSE, _E.STATUS_CHANGED}),
}

# States in which the operator can work on the active student's pages
WORKING_STATES = frozenset({_S.CAPTURE_READY, _S.CAMERA_ERROR, _S.FRAME_PENDING})

