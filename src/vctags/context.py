"""Cancellation token with an optional deadline.

A root :class:`Context` lives as long as the refresh loop. Each refresh cycle
derives a child with :meth:`Context.with_timeout`, so one ``cancel()`` on the
root stops both the timer wait and any in-flight cycle at its next network
call boundary.
"""

from __future__ import annotations

import threading
import time
import weakref
from typing import Optional

from .errors import CancelledError, DeadlineExceededError


class Context:
    """Cancellation signal shared by a tree of operations."""

    def __init__(self, *, parent: Optional[Context] = None, deadline: Optional[float] = None) -> None:
        self._event = threading.Event()
        self._lock = threading.Lock()
        self._children: weakref.WeakSet[Context] = weakref.WeakSet()
        if parent is not None:
            if parent.deadline is not None:
                deadline = parent.deadline if deadline is None else min(deadline, parent.deadline)
            parent._adopt(self)
        self.deadline = deadline

    def _adopt(self, child: Context) -> None:
        with self._lock:
            self._children.add(child)
            cancelled = self._event.is_set()
        if cancelled:
            child.cancel()

    def with_cancel(self) -> Context:
        """Derive a child context that can be cancelled on its own."""
        return Context(parent=self)

    def with_timeout(self, seconds: float) -> Context:
        """Derive a child context that expires ``seconds`` from now."""
        return Context(parent=self, deadline=time.monotonic() + seconds)

    def cancel(self) -> None:
        """Cancel this context and every live descendant."""
        with self._lock:
            self._event.set()
            children = list(self._children)
        for child in children:
            child.cancel()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def expired(self) -> bool:
        return self.deadline is not None and time.monotonic() >= self.deadline

    def done(self) -> bool:
        return self.cancelled or self.expired

    def remaining(self) -> Optional[float]:
        """Seconds left before the deadline, or ``None`` without one."""
        if self.deadline is None:
            return None
        return max(0.0, self.deadline - time.monotonic())

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until cancelled or ``timeout`` elapses; True when cancelled."""
        return self._event.wait(timeout)

    def check(self, operation: str) -> None:
        """Raise if no further remote call should be started."""
        if self.cancelled:
            raise CancelledError(f"{operation}: context cancelled")
        if self.expired:
            raise DeadlineExceededError(f"{operation}: refresh timeout exceeded")


__all__ = ["Context"]
