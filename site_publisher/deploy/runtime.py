"""Cancellation and timeout primitives shared by runners and transports."""

from __future__ import annotations

import threading
from dataclasses import dataclass

from site_publisher.config_validation import require_positive_float
from site_publisher.deploy.errors import DeployCancelled


class CancelToken:
    """Thread-safe cancellation flag checked before and during blocking calls."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        """Request cancellation of the operation holding this token."""
        self._event.set()

    @property
    def cancelled(self) -> bool:
        """Return whether cancellation has been requested."""
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        """Raise ``DeployCancelled`` when cancellation has been requested."""
        if self._event.is_set():
            raise DeployCancelled("Operation cancelled.")

    def wait(self, seconds: float) -> bool:
        """Sleep up to ``seconds``; return True early if cancelled."""
        return self._event.wait(seconds)


@dataclass(frozen=True)
class Timeouts:
    """Upper bounds, in seconds, for every blocking call the targets make."""

    probe: float = 15.0
    command: float = 600.0
    connect_test: float = 10.0
    http: float = 30.0
    upload: float = 300.0
    lock_wait: float = 600.0

    def __post_init__(self) -> None:
        for name in ("probe", "command", "connect_test", "http", "upload", "lock_wait"):
            require_positive_float(getattr(self, name), f"{name} timeout")
