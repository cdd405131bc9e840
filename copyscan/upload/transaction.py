"""All-or-nothing upload of one student's pages."""

from __future__ import annotations

from loguru import logger

from copyscan.base import PendingFrame, ScanUploader, Student
from copyscan.capture.page_buffer import PageBuffer
from copyscan.errors import UploadFailure, ValidationFailure

NO_PAGES_MESSAGE = "no pages to upload"


def collect_images(buffer_pages, pending_frame: PendingFrame | None) -> list[bytes]:
    """Buffer images in order, followed by the pending frame if any."""
    images = [page.image_data for page in buffer_pages]
    if pending_frame is not None:
        images.append(pending_frame.image_data)
    return images


class UploadTransaction:
    """Submits a page buffer plus an uncommitted frame as a single batch.

    On success the buffer is cleared; on failure nothing is touched so the
    operator can retry without recapturing. There is no partial or subset
    retry.
    """

    def __init__(self, uploader: ScanUploader) -> None:
        self._uploader = uploader

    def finish(
        self,
        student: Student,
        buffer: PageBuffer,
        pending_frame: PendingFrame | None = None,
    ) -> int:
        """Upload every page for *student* and return the uploaded count.

        Raises:
            ValidationFailure: nothing to upload; the uploader is not called.
            UploadFailure: the uploader rejected the batch.
        """
        if buffer.is_empty() and pending_frame is None:
            raise ValidationFailure(NO_PAGES_MESSAGE)

        pages = buffer.freeze()
        try:
            images = collect_images(pages, pending_frame)
            logger.info("Uploading {} pages for {}", len(images), student.roll_number)
            try:
                uploaded = self._uploader.submit_pages(student.id, images)
            except UploadFailure as exc:
                logger.warning("Upload failed for {}: {}", student.roll_number, exc)
                raise
            except Exception as exc:
                logger.opt(exception=True).warning("Upload error for {}", student.roll_number)
                raise UploadFailure(str(exc) or "Failed to upload scanned images") from exc
        finally:
            buffer.thaw()

        buffer.clear()
        logger.info("Uploaded {} pages for {}", uploaded, student.roll_number)
        return uploaded
