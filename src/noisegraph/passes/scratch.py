"""Reusable scratch storage for graph flood fills.

Type propagation runs on every interactive edge edit, so its visited set and
work list are kept around and recycled instead of being rebuilt per call.

Rules:
- A walk borrows the buffers for exactly the duration of one call.
- The buffers come back empty, whether the walk committed, aborted or raised.
- Borrowing buffers that are already lent out is an error: walks are not
  reentrant with respect to each other.
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Iterator


class ScratchInUseError(RuntimeError):
    """Raised when scratch buffers are borrowed while already lent out."""

    pass


@dataclass
class ScratchBuffers:
    """Visited set plus pending work list for one flood fill at a time.

    Example:
        >>> scratch = ScratchBuffers()
        >>> with scratch.borrow() as buf:
        ...     buf.pending.append(0)
        >>> scratch.pending
        []
    """

    visited: set[int] = field(default_factory=set)
    pending: list[int] = field(default_factory=list)
    _lent: bool = field(default=False, repr=False)

    @property
    def in_use(self) -> bool:
        return self._lent

    @contextmanager
    def borrow(self) -> Iterator[ScratchBuffers]:
        if self._lent:
            raise ScratchInUseError(
                "scratch buffers are already borrowed; "
                "type propagation walks must not be nested"
            )
        self._lent = True
        try:
            yield self
        finally:
            self.visited.clear()
            self.pending.clear()
            self._lent = False


_local = threading.local()


def thread_scratch() -> ScratchBuffers:
    """Return the calling thread's shared scratch buffers, creating them on first use."""
    scratch = getattr(_local, "scratch", None)
    if scratch is None:
        scratch = _local.scratch = ScratchBuffers()
    return scratch
