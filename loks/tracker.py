"""
Incarnation tracking.

The tracker remembers every container incarnation a collector was started
for. Entries are never evicted: a long running process keeps one entry per
incarnation it has ever seen.
"""

import threading
from typing import List, Set


class IncarnationTracker:
    """Thread-safe set of incarnation identities."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._seen: Set[str] = set()

    def has(self, ident: str) -> bool:
        with self._lock:
            return ident in self._seen

    def insert(self, ident: str) -> None:
        with self._lock:
            self._seen.add(ident)

    def add(self, ident: str) -> bool:
        """
        Insert ``ident`` unless it is already known.

        The membership test and the insert happen under one lock, so among
        any number of concurrent callers exactly one gets True for a given
        identity.

        Returns:
            bool: True if the identity was new and the caller owns it
        """
        with self._lock:
            if ident in self._seen:
                return False
            self._seen.add(ident)
            return True

    def snapshot(self) -> List[str]:
        with self._lock:
            return sorted(self._seen)

    def __contains__(self, ident: object) -> bool:
        with self._lock:
            return ident in self._seen

    def __len__(self) -> int:
        with self._lock:
            return len(self._seen)
