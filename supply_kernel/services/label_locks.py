"""
LabelLockRegistry -- one in-process lock per normalized label.

Every read-modify-write of a label bucket runs while holding that label's
lock.  Operations on different labels only contend on the database write
itself; operations on the same label serialize here.
"""

import threading
from collections.abc import Iterable, Iterator
from contextlib import contextmanager

from supply_kernel.logging_config import get_logger

logger = get_logger("services.label_locks")


class LabelLockRegistry:
    """Hands out a re-entrant lock per label, creating it on first use."""

    def __init__(self) -> None:
        self._locks: dict[str, threading.RLock] = {}
        self._guard = threading.Lock()

    def lock_for(self, label: str) -> threading.RLock:
        with self._guard:
            lock = self._locks.get(label)
            if lock is None:
                lock = threading.RLock()
                self._locks[label] = lock
            return lock

    @contextmanager
    def hold(self, labels: Iterable[str]) -> Iterator[tuple[str, ...]]:
        """
        Acquire the locks of ``labels`` in sorted order, release on exit.

        Sorted acquisition means two batches naming overlapping labels can
        never deadlock against each other.
        """
        ordered = tuple(sorted(set(labels)))
        acquired: list[threading.RLock] = []
        try:
            for label in ordered:
                lock = self.lock_for(label)
                lock.acquire()
                acquired.append(lock)
            logger.debug("label_locks_acquired", extra={"labels": list(ordered)})
            yield ordered
        finally:
            for lock in reversed(acquired):
                lock.release()
