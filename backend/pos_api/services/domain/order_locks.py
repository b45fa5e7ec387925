"""
Per-order lock registry.

Serialises operations on the same order id inside one process. Across
processes the compare-and-swap status update is the guard; this registry
only keeps two threads of the same worker from racing to it.

LOCK ORDERING: _meta_lock is held only while the lock dict is read or
mutated, never while an order lock is held or acquired.
"""

from __future__ import annotations

import threading
from collections.abc import Iterator
from contextlib import contextmanager

from shared.config.logging import get_logger

logger = get_logger(__name__)


class OrderLockRegistry:
    """Hands out one re-entrant lock per order id."""

    def __init__(self, cleanup_threshold: int = 1000):
        self._cleanup_threshold = cleanup_threshold
        self._locks: dict[str, threading.RLock] = {}
        self._holders: dict[str, int] = {}
        self._meta_lock = threading.Lock()

    @property
    def lock_count(self) -> int:
        return len(self._locks)

    def _acquire_ref(self, order_id: str) -> threading.RLock:
        with self._meta_lock:
            lock = self._locks.get(order_id)
            if lock is None:
                if len(self._locks) >= self._cleanup_threshold:
                    self._cleanup_unheld_locks()
                lock = threading.RLock()
                self._locks[order_id] = lock
            self._holders[order_id] = self._holders.get(order_id, 0) + 1
            return lock

    def _release_ref(self, order_id: str) -> None:
        with self._meta_lock:
            remaining = self._holders.get(order_id, 1) - 1
            if remaining <= 0:
                self._holders.pop(order_id, None)
            else:
                self._holders[order_id] = remaining

    def _cleanup_unheld_locks(self) -> None:
        # Called under _meta_lock
        stale = [key for key in self._locks if key not in self._holders]
        for key in stale:
            del self._locks[key]
        if stale:
            logger.debug("Order locks cleaned", count=len(stale))

    @contextmanager
    def hold(self, order_id: str) -> Iterator[None]:
        """Hold the lock for `order_id` for the duration of the block."""
        lock = self._acquire_ref(order_id)
        try:
            with lock:
                yield
        finally:
            self._release_ref(order_id)


_registry = OrderLockRegistry()


def get_order_lock_registry() -> OrderLockRegistry:
    return _registry
