# cricket_api/locks.py
from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Dict, Iterator

from cricket_api.errors import ConflictError


class MatchLocks:
    """
    One lock per match id.

    Every write for a match runs under its lock, so the read-modify-write on
    cumulative rows never interleaves. Different matches never wait on each other.
    """

    def __init__(self, timeout_seconds: float) -> None:
        self.timeout_seconds = timeout_seconds
        self._guard = threading.Lock()
        self._locks: Dict[str, threading.Lock] = {}

    def _lock_for(self, match_id: str) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(match_id)
            if lock is None:
                lock = threading.Lock()
                self._locks[match_id] = lock
            return lock

    @contextmanager
    def hold(self, match_id: str) -> Iterator[None]:
        lock = self._lock_for(match_id)
        if not lock.acquire(timeout=self.timeout_seconds):
            raise ConflictError(
                f"Match {match_id} is busy with another write; retry once it completes"
            )
        try:
            yield
        finally:
            lock.release()
