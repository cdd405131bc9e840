"""Session layer: the capture workflow state machine and its key bindings.

Imports are lazy to avoid pulling cv2 transitively when only the state
enums are needed.
"""

from __future__ import annotations

__all__ = ["CaptureSession", "SessionEvent", "SessionState", "dispatch_key"]


def __getattr__(name: str):
    if name == "CaptureSession":
        from copyscan.session.orchestrator import CaptureSession

        return CaptureSession
    if name in ("SessionEvent", "SessionState"):
        from copyscan.session import states

        return getattr(states, name)
    if name == "dispatch_key":
        from copyscan.session.keymap import dispatch_key

        return dispatch_key
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
