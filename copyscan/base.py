"""Shared dataclasses and collaborator contracts for the capture workflow."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import NamedTuple, Protocol, runtime_checkable

# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class StudentStatus(str, Enum):
    """Attendance status of a student on the roster (wire values)."""

    PENDING = "Pending"
    ABSENT = "Absent"
    MISSING = "Missing"


class FrameSource(str, Enum):
    """Where a pending frame came from."""

    CAMERA = "camera"
    FILE = "file"


# ---------------------------------------------------------------------------
# Shared dataclasses
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Student:
    """One roster entry. Owned by the roster store; read-only here."""

    id: str
    roll_number: str
    name: str
    status: StudentStatus = StudentStatus.PENDING
    is_scanned: bool = False
    pdf_path: str | None = None
    remark: str = ""

    @property
    def is_eligible(self) -> bool:
        """Whether this student may be selected for capture."""
        return self.status is StudentStatus.PENDING and not self.is_scanned


@dataclass(frozen=True, slots=True)
class CapturedPage:
    """A committed page in the buffer.

    The page number is not stored: it is the page's 1-based position in
    the buffer at the time it is read.
    """

    id: int
    image_data: bytes
    captured_at: datetime
    owner_roll_number: str


class NumberedPage(NamedTuple):
    page_number: int
    page: CapturedPage


@dataclass(frozen=True, slots=True)
class PendingFrame:
    """A captured image awaiting keep / retake / finish."""

    image_data: bytes
    captured_at: datetime
    source: FrameSource = FrameSource.CAMERA


@dataclass(frozen=True, slots=True)
class RosterPage:
    """One page of the roster as returned by a ``RosterProvider``."""

    students: tuple[Student, ...] = field(default_factory=tuple)
    total_count: int = 0
    total_pages: int = 1
    current_page: int = 1


@dataclass(frozen=True, slots=True)
class RosterStats:
    """Dashboard counters for a roster."""

    total: int
    scanned: int
    absent: int
    missing: int

    @property
    def remaining(self) -> int:
        return max(0, self.total - self.scanned - self.absent - self.missing)


# ---------------------------------------------------------------------------
# Collaborator contracts
# ---------------------------------------------------------------------------


@runtime_checkable
class RosterProvider(Protocol):
    """Source of truth for students. Responses are authoritative snapshots."""

    def list_students(self, page: int, page_size: int, sort_key: str) -> RosterPage:
        ...

    def set_status(self, student_id: str, status: StudentStatus) -> None:
        ...

    def set_remark(self, student_id: str, text: str) -> None:
        ...


@runtime_checkable
class ScanUploader(Protocol):
    """Accepts every page of one student as a single atomic batch."""

    def submit_pages(self, student_id: str, images: Sequence[bytes]) -> int:
        """Upload *images* in order and return the accepted count.

        Raises ``UploadFailure`` when the batch is rejected.
        """
        ...


@runtime_checkable
class PdfCollaborator(Protocol):
    """Builds the answer-copy PDF for an already scanned student."""

    def generate(self, student_id: str) -> bytes:
        ...
