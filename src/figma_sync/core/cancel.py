"""Cooperative cancellation for a sync run."""

import threading

from figma_sync.errors import SyncCancelled


class CancelToken:
    """Flag the host sets to stop a running sync.

    The pipeline checks it between network requests; a request already in
    flight is allowed to finish.
    """

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            msg = "Sync cancelled"
            raise SyncCancelled(msg)
