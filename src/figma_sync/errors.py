"""Exceptions raised by the sync pipeline."""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from figma_sync.models.node import PageData


class SyncError(RuntimeError):
    """Base class for errors that abort a sync run."""


class ConfigurationError(SyncError):
    """Settings or credentials are missing or invalid. Raised before any network call."""


class TransportError(SyncError):
    """A remote fetch failed."""


class BatchFailedError(TransportError):
    """One batch of a batched fetch failed; later batches were not issued."""

    def __init__(self, index: int, total: int, cause: BaseException) -> None:
        self.index = index
        self.total = total
        super().__init__(f"Batch {index + 1}/{total} failed: {cause}")


class StructuralError(SyncError):
    """The document tree is inconsistent and cannot be diffed or resolved."""


class SyncCancelled(SyncError):
    """The host cancelled the run."""


class PageSelectionChanged(SyncError):
    """The configured page list no longer matches the remote document.

    Carries the refreshed page list so the caller can store it and ask the user
    to review the selection.
    """

    def __init__(self, pages: "tuple[PageData, ...]") -> None:
        self.pages = pages
        super().__init__(
            "The pages found in the Figma document have changed - "
            "check your settings file and sync again when ready"
        )
