"""REST collaborators for the exam-copy backend, built on ``requests``.

One request per call: transport errors and non-2xx answers are turned
into the collaborator's failure type carrying the server's ``message``.
Nothing is retried here.
"""

from __future__ import annotations

import re
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

import requests
from loguru import logger

from copyscan.base import RosterPage, Student, StudentStatus
from copyscan.config import get_settings
from copyscan.errors import CopyScanError, PdfError, RosterError, UploadFailure

_FILENAME_RE = re.compile(r'filename="(.+)"')


def student_from_json(data: dict[str, Any]) -> Student:
    """Build a :class:`Student` from the backend's JSON document."""
    return Student(
        id=str(data["_id"]),
        roll_number=str(data.get("rollNumber", "")),
        name=data.get("name", ""),
        status=StudentStatus(data.get("status", StudentStatus.PENDING.value)),
        is_scanned=bool(data.get("isScanned", False)),
        pdf_path=data.get("pdfPath"),
        remark=data.get("remark") or "",
    )


class ApiClient:
    """Shared ``requests`` session, base URL and deadline."""

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        session: requests.Session | None = None,
    ) -> None:
        settings = get_settings().api
        self._base_url = (base_url or settings.base_url).rstrip("/")
        self._timeout = timeout if timeout is not None else settings.timeout_seconds
        self._session = session or requests.Session()

    @property
    def base_url(self) -> str:
        return self._base_url

    def close(self) -> None:
        self._session.close()

    def _request(
        self,
        method: str,
        path: str,
        error_cls: type[CopyScanError],
        default_message: str,
        **kwargs: Any,
    ) -> requests.Response:
        url = f"{self._base_url}{path}"
        try:
            resp = self._session.request(method, url, timeout=self._timeout, **kwargs)
        except requests.exceptions.Timeout as exc:
            logger.error("{} {} timed out after {}s", method, path, self._timeout)
            raise error_cls("Request timed out") from exc
        except requests.exceptions.RequestException as exc:
            logger.error("{} {} failed: {}", method, path, exc)
            raise error_cls(default_message) from exc
        if not resp.ok:
            message = _error_message(resp) or default_message
            logger.warning("{} {} -> HTTP {}: {}", method, path, resp.status_code, message)
            raise error_cls(message)
        return resp

    @staticmethod
    def _json(resp: requests.Response, error_cls: type[CopyScanError]) -> dict[str, Any]:
        try:
            return resp.json()
        except ValueError as exc:
            raise error_cls(f"Invalid JSON response (HTTP {resp.status_code})") from exc


def _error_message(resp: requests.Response) -> str | None:
    try:
        body = resp.json()
    except ValueError:
        return None
    if isinstance(body, dict):
        return body.get("message")
    return None


class HttpRosterProvider(ApiClient):
    """``RosterProvider`` over ``/students``."""

    def __init__(self, *args: Any, sort_order: str | None = None, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self._sort_order = sort_order or get_settings().roster.sort_order

    def list_students(self, page: int, page_size: int, sort_key: str) -> RosterPage:
        resp = self._request(
            "GET", "/students", RosterError, "Failed to fetch students",
            params={
                "page": page,
                "limit": page_size,
                "sortBy": sort_key,
                "sortOrder": self._sort_order,
            },
        )
        body = self._json(resp, RosterError)
        if not body.get("success", False):
            raise RosterError(body.get("message") or "Failed to fetch students")
        pagination = body.get("pagination") or {}
        students = tuple(student_from_json(s) for s in body.get("students", []))
        return RosterPage(
            students=students,
            total_count=int(pagination.get("totalStudents", len(students))),
            total_pages=int(pagination.get("totalPages", 1)),
            current_page=int(pagination.get("currentPage", page)),
        )

    def set_status(self, student_id: str, status: StudentStatus, remark: str = "") -> None:
        resp = self._request(
            "PATCH", f"/students/{student_id}/status", RosterError,
            "Failed to update student status",
            json={"status": StudentStatus(status).value, "remark": remark},
        )
        self._check_success(resp, "Failed to update student status")
        logger.info("Student {} marked {}", student_id, StudentStatus(status).value)

    def set_remark(self, student_id: str, text: str) -> None:
        resp = self._request(
            "PATCH", f"/students/{student_id}/remark", RosterError,
            "Failed to update remark",
            json={"remark": text},
        )
        self._check_success(resp, "Failed to update remark")

    def _check_success(self, resp: requests.Response, default_message: str) -> None:
        body = self._json(resp, RosterError)
        if not body.get("success", False):
            raise RosterError(body.get("message") or default_message)


class HttpScanUploader(ApiClient):
    """``ScanUploader`` over ``POST /upload/scan/{id}`` (multipart ``images``)."""

    def submit_pages(self, student_id: str, images: Sequence[bytes]) -> int:
        files = [
            ("images", (f"page_{n}.jpg", data, "image/jpeg"))
            for n, data in enumerate(images, start=1)
        ]
        resp = self._request(
            "POST", f"/upload/scan/{student_id}", UploadFailure,
            "Failed to upload scanned images",
            files=files,
        )
        body = self._json(resp, UploadFailure)
        if not body.get("success", False):
            raise UploadFailure(body.get("message") or "Failed to upload scans")
        return int(body.get("uploadedCount", len(images)))


@dataclass(frozen=True, slots=True)
class GeneratedPdf:
    filename: str
    content: bytes


class HttpPdfCollaborator(ApiClient):
    """``PdfCollaborator`` over ``GET /students/{id}/generate-pdf``."""

    def generate(self, student_id: str) -> bytes:
        return self.download(student_id).content

    def download(self, student_id: str) -> GeneratedPdf:
        resp = self._request(
            "GET", f"/students/{student_id}/generate-pdf", PdfError, "PDF generation failed"
        )
        filename = f"Copy_{student_id}.pdf"
        match = _FILENAME_RE.search(resp.headers.get("content-disposition", ""))
        if match:
            filename = match.group(1)
        return GeneratedPdf(filename=filename, content=resp.content)
