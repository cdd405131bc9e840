"""Shared pytest fixtures: roster, fake camera devices, fake collaborators."""

from __future__ import annotations

import dataclasses
from collections.abc import Sequence

import cv2
import numpy as np
import pytest
from copyscan.base import RosterPage, Student, StudentStatus
from copyscan.capture.camera import CameraAcquirer
from copyscan.capture.device import CameraFacing
from copyscan.capture.frame_capture import FrameCapturer
from copyscan.errors import AcquisitionFailure, UploadFailure
from copyscan.roster.snapshot import RosterSnapshot
from copyscan.session.orchestrator import CaptureSession


def make_student(
    student_id: str,
    status: StudentStatus = StudentStatus.PENDING,
    is_scanned: bool = False,
) -> Student:
    return Student(
        id=student_id,
        roll_number=f"R-{student_id}",
        name=f"Student {student_id}",
        status=status,
        is_scanned=is_scanned,
    )


def encode_test_image(width: int = 32, height: int = 24, ext: str = ".jpg") -> bytes:
    image = np.full((height, width, 3), 127, dtype=np.uint8)
    ok, buf = cv2.imencode(ext, image)
    assert ok
    return buf.tobytes()


class FakeDevice:
    """Camera device without a still-capture primitive."""

    def __init__(
        self,
        facing: CameraFacing = CameraFacing.ENVIRONMENT,
        resolution: tuple[int, int] = (64, 48),
        frame: np.ndarray | None = None,
    ) -> None:
        self.facing = facing
        self.resolution = resolution
        self.frame = frame if frame is not None else np.zeros((48, 64, 3), dtype=np.uint8)
        self.stopped = 0
        self.reads = 0

    @property
    def is_live(self) -> bool:
        return self.stopped == 0

    @property
    def native_resolution(self) -> tuple[int, int]:
        return self.resolution

    def read_frame(self):
        self.reads += 1
        return self.frame

    def stop(self) -> None:
        self.stopped += 1


class PhotoDevice(FakeDevice):
    """Camera device exposing ``take_photo``."""

    def __init__(self, *args, photo: bytes = b"still", fail: bool = False, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.photo = photo
        self.fail = fail
        self.photos_taken = 0

    def take_photo(self, quality: int) -> bytes:
        self.photos_taken += 1
        if self.fail:
            raise RuntimeError("track ended")
        return self.photo


class FakeOpener:
    """Device opener recording which facings were tried."""

    def __init__(self, fail: Sequence[CameraFacing] = (), device_cls=PhotoDevice) -> None:
        self.fail = set(fail)
        self.device_cls = device_cls
        self.calls: list[CameraFacing] = []
        self.devices: list[FakeDevice] = []

    def __call__(self, facing: CameraFacing, width: int, height: int):
        self.calls.append(facing)
        if facing in self.fail:
            raise AcquisitionFailure(f"{facing.value} unavailable")
        device = self.device_cls(facing)
        self.devices.append(device)
        return device


class FakeUploader:
    def __init__(self, fail_with: str | None = None) -> None:
        self.fail_with = fail_with
        self.calls: list[tuple[str, list[bytes]]] = []

    def submit_pages(self, student_id: str, images: Sequence[bytes]) -> int:
        self.calls.append((student_id, list(images)))
        if self.fail_with is not None:
            raise UploadFailure(self.fail_with)
        return len(images)


class FakeRosterProvider:
    """In-memory roster; uploads are reflected through ``mark_scanned``."""

    def __init__(self, students: Sequence[Student]) -> None:
        self.students = list(students)
        self.status_calls: list[tuple[str, StudentStatus]] = []
        self.remarks: dict[str, str] = {}

    def list_students(self, page: int, page_size: int, sort_key: str) -> RosterPage:
        start = (page - 1) * page_size
        chunk = tuple(self.students[start:start + page_size])
        total_pages = max(1, -(-len(self.students) // page_size))
        return RosterPage(chunk, len(self.students), total_pages, page)

    def set_status(self, student_id: str, status: StudentStatus) -> None:
        self.status_calls.append((student_id, status))
        self._update(student_id, status=status)

    def set_remark(self, student_id: str, text: str) -> None:
        self.remarks[student_id] = text
        self._update(student_id, remark=text)

    def mark_scanned(self, student_id: str) -> None:
        self._update(student_id, is_scanned=True)

    def _update(self, student_id: str, **changes) -> None:
        self.students = [
            dataclasses.replace(s, **changes) if s.id == student_id else s
            for s in self.students
        ]


class ScanningUploader(FakeUploader):
    """Uploader that marks the student scanned on the roster, like the backend."""

    def __init__(self, provider: FakeRosterProvider, fail_with: str | None = None) -> None:
        super().__init__(fail_with)
        self.provider = provider

    def submit_pages(self, student_id: str, images: Sequence[bytes]) -> int:
        count = super().submit_pages(student_id, images)
        self.provider.mark_scanned(student_id)
        return count


@pytest.fixture()
def jpeg_bytes() -> bytes:
    return encode_test_image()


@pytest.fixture()
def roster_students() -> list[Student]:
    return [
        make_student("A"),
        make_student("B", status=StudentStatus.ABSENT),
        make_student("C"),
        make_student("D", is_scanned=True),
        make_student("E"),
    ]


@pytest.fixture()
def provider(roster_students) -> FakeRosterProvider:
    return FakeRosterProvider(roster_students)


@pytest.fixture()
def roster(provider) -> RosterSnapshot:
    snapshot = RosterSnapshot(provider, page=1, page_size=50, sort_key="rollNumber")
    snapshot.refresh()
    return snapshot


@pytest.fixture()
def opener() -> FakeOpener:
    return FakeOpener()


@pytest.fixture()
def uploader(provider) -> ScanningUploader:
    return ScanningUploader(provider)


@pytest.fixture()
def session(roster, uploader, opener) -> CaptureSession:
    camera = CameraAcquirer(opener=opener, width=1280, height=720)
    capturer = FrameCapturer(jpeg_quality=90, settle_delay=0, metadata_timeout=0.1)
    return CaptureSession(roster, uploader, camera=camera, capturer=capturer)
