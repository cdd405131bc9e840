"""Roster layer: next-student navigation, snapshots and counters."""

from __future__ import annotations

from copyscan.roster.navigator import has_next_eligible, next_eligible
from copyscan.roster.snapshot import RosterSnapshot
from copyscan.roster.stats import summarize

__all__ = ["RosterSnapshot", "has_next_eligible", "next_eligible", "summarize"]
