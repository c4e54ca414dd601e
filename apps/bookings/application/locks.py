"""
Keyed locks

One mutex per key, created on first use and dropped once nobody holds or
waits for it. The admission pipeline keys by (venue_id, date) so attempts
for the same venue and day run one at a time while other days proceed in
parallel. Lifecycle updates key by booking id.

This only serializes callers inside one process; across processes the
gateway's conditional create is what keeps bookings from overlapping.
"""

from contextlib import contextmanager
import threading
from typing import Dict, Hashable, Iterator, List, Optional

from apps.bookings.domain.exceptions import WriteConflict


class KeyedLock:

    def __init__(self, timeout: Optional[float] = None):
        self.timeout = timeout
        self._guard = threading.Lock()
        self._locks: Dict[Hashable, threading.Lock] = {}
        self._users: Dict[Hashable, int] = {}

    def _release_user(self, key: Hashable):
        with self._guard:
            self._users[key] -= 1
            if self._users[key] == 0:
                del self._users[key]
                del self._locks[key]

    @contextmanager
    def hold(self, key: Hashable) -> Iterator[None]:
        """
        Hold the mutex for `key`

        Raises WriteConflict if the lock is not acquired within `timeout`
        seconds, so a stuck holder costs the waiter one retry instead of
        blocking it forever.
        """
        with self._guard:
            lock = self._locks.setdefault(key, threading.Lock())
            self._users[key] = self._users.get(key, 0) + 1

        acquired = lock.acquire(timeout=-1 if self.timeout is None else self.timeout)
        if not acquired:
            self._release_user(key)
            raise WriteConflict(f"Timed out waiting for lock on {key!r}")
        try:
            yield
        finally:
            lock.release()
            self._release_user(key)

    def active_keys(self) -> List[Hashable]:
        with self._guard:
            return list(self._locks)
