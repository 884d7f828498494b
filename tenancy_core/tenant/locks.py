"""
In-process per-key locks around check-then-act sequences (tenant name, admin email).
Keys are taken in sorted order so two callers holding overlapping key sets cannot deadlock.
Does not coordinate across processes.
"""
from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Dict, Iterator, List


class KeyedLocks:
    def __init__(self) -> None:
        self._guard = threading.Lock()
        # key -> [lock, holders+waiters]
        self._locks: Dict[str, list] = {}

    def _checkout(self, key: str) -> threading.RLock:
        with self._guard:
            entry = self._locks.get(key)
            if entry is None:
                entry = [threading.RLock(), 0]
                self._locks[key] = entry
            entry[1] += 1
            return entry[0]

    def _checkin(self, key: str) -> None:
        with self._guard:
            entry = self._locks.get(key)
            if entry is None:
                return
            entry[1] -= 1
            if entry[1] <= 0:
                del self._locks[key]

    @contextmanager
    def hold(self, *keys: str) -> Iterator[None]:
        ordered: List[str] = sorted({k for k in keys if k})
        acquired: List[str] = []
        try:
            for key in ordered:
                lock = self._checkout(key)
                lock.acquire()
                acquired.append(key)
            yield
        finally:
            for key in reversed(acquired):
                with self._guard:
                    lock = self._locks[key][0]
                lock.release()
                self._checkin(key)

    def active_keys(self) -> List[str]:
        with self._guard:
            return sorted(self._locks)
