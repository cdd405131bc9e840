"""Ordered buffer of committed pages for the active student."""

from __future__ import annotations

import itertools
import threading
from collections.abc import Iterator
from datetime import UTC, datetime

from copyscan.base import CapturedPage, NumberedPage
from copyscan.errors import BufferLocked


class PageBuffer:
    """Capture-ordered pages with append / remove / clear.

    Every mutation swaps in a new tuple, so a snapshot handed to an upload
    is never changed underneath it. Page numbers are derived from position
    and are therefore always ``1..len`` with no gaps. Page ids come from a
    per-buffer counter and are never reused, even across ``clear``.

    While frozen (an upload is reading a snapshot) every mutation raises
    :class:`BufferLocked`.
    """

    def __init__(self) -> None:
        self._pages: tuple[CapturedPage, ...] = ()
        self._ids = itertools.count(1)
        self._frozen = False
        self._lock = threading.Lock()

    def append(self, image: bytes, owner_roll_number: str) -> int:
        """Add a page at the end and return its id."""
        with self._lock:
            self._check_writable()
            page = CapturedPage(
                id=next(self._ids),
                image_data=image,
                captured_at=datetime.now(UTC),
                owner_roll_number=owner_roll_number,
            )
            self._pages = (*self._pages, page)
            return page.id

    def remove(self, page_id: int) -> None:
        """Delete the page with *page_id*.

        Raises:
            KeyError: no such page.
        """
        with self._lock:
            self._check_writable()
            remaining = tuple(p for p in self._pages if p.id != page_id)
            if len(remaining) == len(self._pages):
                raise KeyError(page_id)
            self._pages = remaining

    def clear(self) -> None:
        """Drop all pages."""
        with self._lock:
            self._check_writable()
            self._pages = ()

    def snapshot(self) -> tuple[CapturedPage, ...]:
        """The current pages in capture order."""
        return self._pages

    def numbered(self) -> list[NumberedPage]:
        """Pages paired with their 1-based page numbers."""
        return [NumberedPage(i, page) for i, page in enumerate(self._pages, start=1)]

    def page_number(self, page_id: int) -> int:
        """1-based position of *page_id* in the buffer."""
        for i, page in enumerate(self._pages, start=1):
            if page.id == page_id:
                return i
        raise KeyError(page_id)

    # ------------------------------------------------------------------
    # Upload guard
    # ------------------------------------------------------------------

    def freeze(self) -> tuple[CapturedPage, ...]:
        """Reject mutations until :meth:`thaw` and return the frozen snapshot."""
        with self._lock:
            self._frozen = True
            return self._pages

    def thaw(self) -> None:
        with self._lock:
            self._frozen = False

    @property
    def frozen(self) -> bool:
        return self._frozen

    def _check_writable(self) -> None:
        if self._frozen:
            raise BufferLocked("Page buffer is locked while an upload is in progress")

    # ------------------------------------------------------------------

    def __len__(self) -> int:
        return len(self._pages)

    def __iter__(self) -> Iterator[CapturedPage]:
        return iter(self._pages)

    def is_empty(self) -> bool:
        return not self._pages
