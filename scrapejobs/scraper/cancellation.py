"""Cooperative cancellation token passed from the job layer into the fetcher."""

from __future__ import annotations

import threading

from scrapejobs.errors import FetchCancelledError


class CancellationToken:
    """A one-shot flag that the I/O layer polls at its suspension points.

    Cancelling an already-cancelled (or already-discarded) token is a no-op.
    """

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        """Raise :class:`FetchCancelledError` if :meth:`cancel` has been called."""
        if self._event.is_set():
            raise FetchCancelledError()

    def wait(self, timeout: float | None = None) -> bool:
        """Block until cancelled or *timeout* elapses; return the flag."""
        return self._event.wait(timeout)
