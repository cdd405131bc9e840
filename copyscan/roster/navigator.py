"""Choosing the next student to scan."""

from __future__ import annotations

from collections.abc import Sequence

from copyscan.base import Student


def index_of(students: Sequence[Student], student_id: str) -> int | None:
    """Position of *student_id* in *students*, or ``None``."""
    for i, student in enumerate(students):
        if student.id == student_id:
            return i
    return None


def next_eligible(students: Sequence[Student], current_id: str | None) -> Student | None:
    """Return the first eligible student after *current_id*.

    The scan only moves forward from the cursor and stops at the end of
    *students*: it never wraps around and never looks at another roster
    page. Absent, missing and already scanned students are skipped.
    Returns ``None`` if *current_id* is not in *students* or nobody after
    it is eligible.
    """
    if current_id is None:
        return None
    cursor = index_of(students, current_id)
    if cursor is None:
        return None
    for student in students[cursor + 1:]:
        if student.is_eligible:
            return student
    return None


def has_next_eligible(students: Sequence[Student], current_id: str | None) -> bool:
    return next_eligible(students, current_id) is not None
