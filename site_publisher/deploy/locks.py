"""Readers-writer lock guarding the build artifact directory."""

from __future__ import annotations

import threading
import time
from collections.abc import Iterator
from contextlib import contextmanager


class ArtifactBusy(TimeoutError):
    """Raised when the artifact lock cannot be acquired in time."""


class ArtifactLock:
    """Builds hold the lock exclusively; deploys share it.

    A waiting writer blocks new readers so a queued build is not starved by a
    stream of deploys.
    """

    def __init__(self) -> None:
        self._condition = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    @contextmanager
    def exclusive(self, timeout: float) -> Iterator[None]:
        """Hold the lock for writing (build/clean)."""
        deadline = time.monotonic() + timeout
        with self._condition:
            self._writers_waiting += 1
            try:
                while self._writer or self._readers:
                    remaining = deadline - time.monotonic()
                    if remaining <= 0:
                        raise ArtifactBusy("Build output directory is busy.")
                    self._condition.wait(remaining)
                self._writer = True
            finally:
                self._writers_waiting -= 1
                self._condition.notify_all()
        try:
            yield
        finally:
            with self._condition:
                self._writer = False
                self._condition.notify_all()

    @contextmanager
    def shared(self, timeout: float) -> Iterator[None]:
        """Hold the lock for reading (deploy)."""
        deadline = time.monotonic() + timeout
        with self._condition:
            while self._writer or self._writers_waiting:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    raise ArtifactBusy("Build output directory is busy.")
                self._condition.wait(remaining)
            self._readers += 1
        try:
            yield
        finally:
            with self._condition:
                self._readers -= 1
                if not self._readers:
                    self._condition.notify_all()
