"""
In-process mutual exclusion keyed by result id.

Every ledger read-modify-write runs inside ``hold(result_id, ...)``; the
ledger also selects the Result row FOR UPDATE, which covers writers in
other processes on databases that support row locks.
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from typing import Dict, Iterator

logger = logging.getLogger(__name__)


class _Entry:
    __slots__ = ("lock", "users")

    def __init__(self):
        self.lock = threading.RLock()
        self.users = 0


class KeyedLock:
    def __init__(self):
        self._guard = threading.Lock()
        self._entries: Dict[str, _Entry] = {}

    def _checkout(self, key: str) -> _Entry:
        with self._guard:
            entry = self._entries.get(key)
            if entry is None:
                entry = self._entries[key] = _Entry()
            entry.users += 1
            return entry

    def _checkin(self, key: str, entry: _Entry) -> None:
        with self._guard:
            entry.users -= 1
            if entry.users == 0:
                self._entries.pop(key, None)

    @contextmanager
    def hold(self, *keys: str) -> Iterator[None]:
        # sorted acquisition order keeps overlapping batches deadlock free
        ordered = sorted(set(keys))
        acquired = []
        try:
            for key in ordered:
                entry = self._checkout(key)
                entry.lock.acquire()
                acquired.append((key, entry))
                logger.debug("LOCK %s acquired", key)
            yield
        finally:
            for key, entry in reversed(acquired):
                entry.lock.release()
                self._checkin(key, entry)
                logger.debug("LOCK %s released", key)

    def active_keys(self):
        with self._guard:
            return sorted(self._entries)
