"""HTTP implementations of the roster, upload and PDF collaborators."""

from __future__ import annotations

from copyscan.clients.http import (
    GeneratedPdf,
    HttpPdfCollaborator,
    HttpRosterProvider,
    HttpScanUploader,
    student_from_json,
)

__all__ = [
    "GeneratedPdf",
    "HttpPdfCollaborator",
    "HttpRosterProvider",
    "HttpScanUploader",
    "student_from_json",
]
