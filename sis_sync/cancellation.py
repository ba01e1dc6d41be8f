"""Cooperative cancellation for long-running fetches and reconciliations."""

from __future__ import annotations

import threading

from sis_sync.errors import OperationCancelled


class CancellationToken:
    """
    Thread-safe flag checked before each request, page and entity pass.

    A token created with a ``parent`` also reports cancelled once the parent
    is, so a fetch can stop its own workers without cancelling the caller.
    """

    def __init__(self, parent: CancellationToken | None = None) -> None:
        self._event = threading.Event()
        self._reason: str | None = None
        self._parent = parent

    def cancel(self, reason: str | None = None) -> None:
        self._reason = reason
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set() or (self._parent is not None and self._parent.cancelled)

    def raise_if_cancelled(self, stage: str | None = None) -> None:
        if self._parent is not None:
            self._parent.raise_if_cancelled(stage)
        if not self._event.is_set():
            return
        message = "Operation cancelled"
        if stage:
            message += f" before {stage}"
        if self._reason:
            message += f": {self._reason}"
        raise OperationCancelled(message)


def check_cancelled(token: CancellationToken | None, stage: str | None = None) -> None:
    """Raise OperationCancelled when ``token`` has been cancelled."""

    if token is not None:
        token.raise_if_cancelled(stage)
