"""Split work into request-sized batches and run them in order."""

import math
from collections.abc import Callable, Iterator, Sequence
from typing import TypeVar

from loguru import logger

from figma_sync.core.cancel import CancelToken
from figma_sync.errors import BatchFailedError, SyncCancelled

T = TypeVar("T")
R = TypeVar("R")


def partition(items: Sequence[T], batch_limit: int) -> Iterator[Sequence[T]]:
    """Yield consecutive windows of at most batch_limit items; the last one is the remainder."""
    if batch_limit <= 0:
        msg = f"batch_limit must be positive, got {batch_limit!r}"
        raise ValueError(msg)
    for start in range(0, len(items), batch_limit):
        yield items[start : start + batch_limit]


def schedule(
    items: Sequence[T],
    batch_limit: int,
    fetch: Callable[[Sequence[T]], R],
    *,
    progress: Callable[[int, int], None] | None = None,
    cancel: CancelToken | None = None,
) -> list[R]:
    """Run fetch() over items in batches, one batch after another.

    Args:
        items: Work list; may be empty (then nothing is fetched).
        batch_limit: Maximum number of items handed to a single fetch() call.
        fetch: Called once per batch.
        progress: Called with (batch_index, batch_count) before each batch.
        cancel: Checked before each batch.

    Returns:
        fetch() results, in batch order.

    Raises:
        BatchFailedError: A fetch() call raised; later batches are not issued.
        SyncCancelled: The token was cancelled between batches.
    """
    total = math.ceil(len(items) / batch_limit) if batch_limit > 0 else 0
    results: list[R] = []
    for index, batch in enumerate(partition(items, batch_limit)):
        if cancel is not None:
            cancel.raise_if_cancelled()
        if progress is not None:
            progress(index, total)
        logger.debug("Fetching batch {}/{} ({} items)", index + 1, total, len(batch))
        try:
            results.append(fetch(batch))
        except SyncCancelled:
            raise
        except Exception as e:
            raise BatchFailedError(index, total, e) from e
    return results
