"""Keyboard shortcuts for the capture screen.

=========  ==========================================================
Key        Action
=========  ==========================================================
Enter      take a photo, or keep the pending one
R          retake (discard the pending photo)
A          keep the pending photo and add another
K / F      finish: upload every page for this student
N          skip to the next eligible student
Escape     close the capture screen
=========  ==========================================================
"""

from __future__ import annotations

from copyscan.session.orchestrator import CaptureSession
from copyscan.session.states import SessionEvent, SessionState


def event_for_key(key: str, session: CaptureSession) -> SessionEvent | None:
    """Translate a key press into the event it triggers right now, if any."""
    state = session.state
    pending = state is SessionState.FRAME_PENDING

    if key == "Enter":
        if pending:
            return SessionEvent.KEEP
        if state is SessionState.CAPTURE_READY and session.camera_ready and not session.capturing:
            return SessionEvent.CAPTURE
        return None
    if key in ("r", "R"):
        return SessionEvent.RETAKE if pending else None
    if key in ("a", "A"):
        return SessionEvent.KEEP if pending else None
    if key in ("k", "K", "f", "F"):
        if session.page_count > 0 and session.can(SessionEvent.FINISH):
            return SessionEvent.FINISH
        return None
    if key in ("n", "N"):
        if session.has_next_student and session.can(SessionEvent.SKIP):
            return SessionEvent.SKIP
        return None
    if key == "Escape":
        return SessionEvent.CLOSE
    return None


def dispatch_key(key: str, session: CaptureSession) -> SessionEvent | None:
    """Resolve *key* and apply it to *session*. Returns the event handled."""
    event = event_for_key(key, session)
    if event is not None:
        session.handle(event)
    return event
