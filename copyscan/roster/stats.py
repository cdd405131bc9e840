"""Roster counters shown above the student table."""

from __future__ import annotations

from collections.abc import Iterable

from copyscan.base import RosterStats, Student, StudentStatus


def summarize(students: Iterable[Student], total: int | None = None) -> RosterStats:
    """Count scanned / absent / missing students.

    *total* overrides the number of students seen, for when *students* is a
    single page of a larger roster.
    """
    seen = scanned = absent = missing = 0
    for student in students:
        seen += 1
        if student.is_scanned:
            scanned += 1
        if student.status is StudentStatus.ABSENT:
            absent += 1
        elif student.status is StudentStatus.MISSING:
            missing += 1
    return RosterStats(
        total=seen if total is None else total,
        scanned=scanned,
        absent=absent,
        missing=missing,
    )
