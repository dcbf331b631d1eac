"""
Deduplicating, attempt-limited work queue.
"""

from __future__ import annotations

from typing import Generic, Hashable, Iterator, TypeVar

T = TypeVar("T", bound=Hashable)


class WorkQueue(Generic[T]):
    """
    Insertion-ordered map of item -> remaining attempts.

    - An item is present at most once; pushing it again resets its budget.
    - drain() hands out every queued item once, spending one attempt each and
      evicting items whose budget reaches zero.
    """

    def __init__(self) -> None:
        self._attempts: dict[T, int] = {}

    def __len__(self) -> int:
        return len(self._attempts)

    def __contains__(self, item: object) -> bool:
        return item in self._attempts

    def remaining(self, item: T) -> int:
        """Remaining attempts for `item` (0 if not queued)."""
        return self._attempts.get(item, 0)

    def push(self, item: T, attempts: int) -> None:
        if attempts < 1:
            raise ValueError("attempts must be >= 1")
        # dict keeps the original position of an existing key
        self._attempts[item] = attempts

    def remove(self, item: T) -> None:
        self._attempts.pop(item, None)

    def drain(self) -> Iterator[T]:
        """
        Lazily yield the currently queued items.

        Each item's attempts are decremented right before it is yielded, and it
        is evicted when they hit zero. Items pushed during iteration wait for
        the next drain; items removed during iteration are skipped.
        """
        for item in list(self._attempts):
            attempts = self._attempts.get(item)
            if attempts is None:
                continue
            attempts -= 1
            if attempts <= 0:
                del self._attempts[item]
            else:
                self._attempts[item] = attempts
            yield item

    def clear(self) -> None:
        self._attempts.clear()
