"""Exception hierarchy for the capture workflow.

Every failure in this package is recoverable by operator action. The
session orchestrator turns acquisition, capture, validation and upload
failures into state plus ``last_error``; only ``InvalidTransition``
reaches the embedding UI as an exception.
"""

from __future__ import annotations


class CopyScanError(Exception):
    """Base class for all copyscan errors."""


class AcquisitionFailure(CopyScanError):
    """Neither the environment- nor the user-facing camera could be opened."""


class CaptureFailure(CopyScanError):
    """A single still capture attempt failed."""


class CaptureInProgress(CaptureFailure):
    """A capture was requested while another one is still in flight."""


class ValidationFailure(CopyScanError):
    """Input rejected before reaching any collaborator."""


class UploadFailure(CopyScanError):
    """The scan uploader reported failure for a batch."""


class RosterError(CopyScanError):
    """The roster provider could not list or mutate students."""


class PdfError(CopyScanError):
    """PDF generation failed on the backend."""


class BufferLocked(CopyScanError):
    """The page buffer was mutated while an upload snapshot is in flight."""


class InvalidTransition(CopyScanError):
    """An event was dispatched in a state that does not accept it."""

    def __init__(self, event: object, state: object) -> None:
        super().__init__(f"Event {event} not allowed in state {state}")
        self.event = event
        self.state = state
