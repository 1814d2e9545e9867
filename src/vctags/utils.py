"""Shared helpers for vctags."""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Hashable, Iterable, Iterator, TypeVar

T = TypeVar("T", bound=Hashable)


def unique_in_order(values: Iterable[T]) -> list[T]:
    """Return unique values preserving the original order."""
    seen: set[T] = set()
    output: list[T] = []
    for value in values:
        if value in seen:
            continue
        seen.add(value)
        output.append(value)
    return output


class ReadWriteLock:
    """Lock allowing many concurrent readers or a single writer.

    Waiting writers block new readers, so a refresh cannot be starved by a
    steady stream of lookups.
    """

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    @contextmanager
    def read(self) -> Iterator[None]:
        with self._cond:
            while self._writer or self._writers_waiting:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if not self._readers:
                    self._cond.notify_all()

    @contextmanager
    def write(self) -> Iterator[None]:
        with self._cond:
            self._writers_waiting += 1
            try:
                while self._writer or self._readers:
                    self._cond.wait()
            finally:
                self._writers_waiting -= 1
            self._writer = True
        try:
            yield
        finally:
            with self._cond:
                self._writer = False
                self._cond.notify_all()


__all__ = ["ReadWriteLock", "unique_in_order"]
