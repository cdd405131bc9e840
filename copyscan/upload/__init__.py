"""Upload layer: batch submission of a student's pages."""

from __future__ import annotations

from copyscan.upload.transaction import UploadTransaction

__all__ = ["UploadTransaction"]
