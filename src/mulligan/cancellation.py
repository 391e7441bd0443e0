"""Cooperative cancellation for retry loops.

The engine polls the token before every attempt and again after an attempt
that did not succeed. A running operation is never interrupted: cancelling
while it executes only takes effect once it returns or raises.
"""

from __future__ import annotations

import threading


class RetryCancelledError(Exception):
    """Raised (or recorded) when a retry loop observes cancellation."""

    def __init__(self, message: str = "Retry was cancelled.") -> None:
        super().__init__(message)


class CancellationToken:
    def __init__(self) -> None:
        self._event = threading.Event()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        self._event.set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise RetryCancelledError()

    def __repr__(self) -> str:
        return f"CancellationToken(cancelled={self.cancelled})"
