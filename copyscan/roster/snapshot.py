"""The roster page a capture session navigates."""

from __future__ import annotations

import dataclasses

from loguru import logger

from copyscan.base import RosterPage, RosterProvider, RosterStats, Student, StudentStatus
from copyscan.config import get_settings
from copyscan.errors import RosterError
from copyscan.roster.navigator import index_of
from copyscan.roster.stats import summarize


class RosterSnapshot:
    """Last fetched page of the roster.

    Nothing is cached across :meth:`refresh` calls: each refresh replaces
    the snapshot with the provider's answer. Cursor positions must always
    be recomputed against the current snapshot.
    """

    def __init__(
        self,
        provider: RosterProvider,
        page: int = 1,
        page_size: int | None = None,
        sort_key: str | None = None,
    ) -> None:
        settings = get_settings().roster
        self._provider = provider
        self.page = page
        self.page_size = page_size or settings.page_size
        self.sort_key = sort_key or settings.sort_key
        self._current = RosterPage()

    @property
    def provider(self) -> RosterProvider:
        return self._provider

    @property
    def students(self) -> tuple[Student, ...]:
        return self._current.students

    @property
    def total_count(self) -> int:
        return self._current.total_count

    @property
    def total_pages(self) -> int:
        return self._current.total_pages

    def refresh(self) -> RosterPage:
        """Fetch the current page from the provider."""
        try:
            result = self._provider.list_students(self.page, self.page_size, self.sort_key)
        except RosterError:
            raise
        except Exception as exc:
            raise RosterError(f"Failed to fetch students: {exc}") from exc
        self._current = result
        self.page = result.current_page
        logger.debug(
            "Roster page {}/{}: {} students",
            result.current_page, result.total_pages, len(result.students),
        )
        return result

    def load(self, students: list[Student] | tuple[Student, ...]) -> None:
        """Install a snapshot obtained elsewhere (e.g. by the embedding UI)."""
        students = tuple(students)
        self._current = RosterPage(
            students=students,
            total_count=len(students),
            total_pages=1,
            current_page=self.page,
        )

    def find(self, student_id: str) -> Student | None:
        i = index_of(self.students, student_id)
        return None if i is None else self.students[i]

    def replace(self, student: Student) -> None:
        """Swap in an updated copy of a student already on this page."""
        i = index_of(self.students, student.id)
        if i is None:
            return
        students = list(self.students)
        students[i] = student
        self._current = dataclasses.replace(self._current, students=tuple(students))

    def apply_status(self, student_id: str, status: StudentStatus) -> Student | None:
        """Record a status change locally and return the updated student."""
        student = self.find(student_id)
        if student is None:
            return None
        updated = dataclasses.replace(student, status=status)
        self.replace(updated)
        return updated

    def stats(self) -> RosterStats:
        return summarize(self.students, total=self.total_count)
