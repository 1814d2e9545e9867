"""Periodically refreshed cache of vSphere tags per managed object."""

from __future__ import annotations

import enum
import logging
import threading
import time
from typing import Optional, Sequence

from .client import VCenter
from .config import Endpoint
from .context import Context
from .errors import CancelledError, VcTagsError
from .refresh import LabelMap, RefreshPipeline
from .sessions import SessionManager
from .utils import ReadWriteLock


class CacheState(enum.Enum):
    IDLE = "idle"
    RUNNING = "running"
    STOPPED = "stopped"


class TagCache:
    """Mapping ``moid -> {category: tag}`` kept fresh by a background loop.

    One thread runs :meth:`run` and owns every remote session; any number of
    threads may call :meth:`get` concurrently. Each refresh replaces the
    whole mapping at once, so readers see either the previous or the new
    snapshot.
    """

    def __init__(self, endpoint: Endpoint, timeout: float, *, client: Optional[VCenter] = None) -> None:
        """Create an idle cache for ``endpoint``.

        Parameters
        ----------
        endpoint
            vCenter to read tags from.
        timeout
            Total budget in seconds for the remote calls of one refresh.
        client
            Optional transport, mostly useful for tests.
        """
        if endpoint is None:
            raise ValueError("vcenter endpoint should not be None")
        self.endpoint = endpoint
        self.timeout = timeout
        self._logger = logging.getLogger(__name__)
        self._client = client or VCenter(endpoint)
        self._sessions = SessionManager(self._client)
        self._pipeline = RefreshPipeline(self._sessions)
        self._labels: LabelMap = {}
        self._lock = ReadWriteLock()
        self._state = CacheState.IDLE
        self._state_lock = threading.Lock()

    @property
    def state(self) -> CacheState:
        return self._state

    @property
    def sessions(self) -> SessionManager:
        return self._sessions

    def set_category_filter(self, names: Optional[Sequence[str]]) -> None:
        """Select the tag categories to read; all of them when empty.

        Must be called before :meth:`run`.
        """
        if self._state is CacheState.RUNNING:
            raise RuntimeError("category filter cannot change while the cache is running")
        self._pipeline.categories = list(names or [])

    def get(self, object_id: str) -> tuple[Optional[dict[str, str]], bool]:
        """Return ``(tags, True)`` for a cached object or ``(None, False)``."""
        with self._lock.read():
            tags = self._labels.get(object_id)
            if tags is None:
                return None, False
            return dict(tags), True

    def snapshot(self) -> LabelMap:
        """Return a copy of the whole current mapping."""
        with self._lock.read():
            return {moid: dict(tags) for moid, tags in self._labels.items()}

    def __len__(self) -> int:
        with self._lock.read():
            return len(self._labels)

    def _replace(self, labels: LabelMap) -> None:
        with self._lock.write():
            self._labels.clear()
            self._labels.update(labels)

    def _clear(self) -> None:
        with self._lock.write():
            self._labels.clear()

    def refresh(self, ctx: Context) -> int:
        """Run one refresh cycle and publish its result.

        The new mapping is built without holding the lock. On any failure the
        current mapping is left untouched and the error propagates.

        Returns
        -------
        int
            Number of objects in the new mapping.
        """
        cycle = ctx.with_timeout(self.timeout)
        try:
            labels = self._pipeline.run(cycle)
            cycle.check("publish tag map")
            self._replace(labels)
        finally:
            cycle.cancel()
        return len(labels)

    def _refresh_logged(self, ctx: Context) -> None:
        try:
            count = self.refresh(ctx)
        except CancelledError as exc:
            self._logger.debug("vSphere tags refresh cancelled: %s", exc)
        except VcTagsError as exc:
            self._logger.error("ERROR gathering vSphere tags: %s", exc)
        except Exception:  # noqa: BLE001 - the loop must outlive a bad cycle
            self._logger.exception("Unexpected failure gathering vSphere tags")
        else:
            self._logger.debug("vSphere tags cache refreshed with %d objects", count)

    def run(self, ctx: Context, interval: float) -> None:
        """Refresh every ``interval`` seconds until ``ctx`` is cancelled.

        An empty cache is filled right away so the first samples after start
        can already be enriched. Failed refreshes keep the previous mapping.
        On exit sessions are logged out and the mapping is cleared.
        """
        if interval <= 0:
            raise ValueError(f"Invalid refresh interval: {interval}")
        with self._state_lock:
            if self._state is CacheState.RUNNING:
                raise RuntimeError("tag cache loop is already running")
            self._state = CacheState.RUNNING

        try:
            if len(self) == 0:
                self._refresh_logged(ctx)

            next_tick = time.monotonic() + interval
            while not ctx.wait(max(0.0, next_tick - time.monotonic())):
                self._refresh_logged(ctx)
                now = time.monotonic()
                next_tick += interval
                if next_tick <= now:
                    # a refresh overran one or more ticks; skip them
                    next_tick += ((now - next_tick) // interval + 1) * interval
        finally:
            self._sessions.close()
            self._clear()
            with self._state_lock:
                self._state = CacheState.STOPPED


__all__ = ["CacheState", "TagCache"]
