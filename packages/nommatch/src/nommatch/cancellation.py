"""Cooperative cancellation for matching passes."""

from __future__ import annotations

import threading
from collections.abc import Iterable, Iterator
from typing import TypeVar

from nommatch.errors import Cancelled

T = TypeVar("T")


class CancellationToken:
    """Thread-safe flag checked by strategy loops between candidate batches.

    The caller that issues a newer query (or whose deadline expires) calls
    cancel(); every strategy of the stale pass raises Cancelled at its next
    check.
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
            raise Cancelled("matching pass cancelled")


def iter_checked(
    items: Iterable[T],
    cancel: CancellationToken | None,
    interval: int,
) -> Iterator[T]:
    """Yield items, checking the token before every `interval`-th item."""
    if cancel is None:
        yield from items
        return
    interval = max(1, interval)
    for i, item in enumerate(items):
        if i % interval == 0:
            cancel.raise_if_cancelled()
        yield item
