"""
Query cache façade.

Single place where cached list queries live and where they are invalidated.
Entries belong to a named group; the status updater and fan-out invalidate
whole groups. Invalidation is idempotent and safe from any thread.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable, Hashable
from typing import Any, Protocol, TypeVar

logger = logging.getLogger(__name__)

SUBMISSIONS_GROUP = "submissions"
PUBLIC_SUBMISSIONS_GROUP = "public-submissions"
COMPANIES_GROUP = "companies"

SUBMISSION_LIST_GROUPS = (SUBMISSIONS_GROUP, PUBLIC_SUBMISSIONS_GROUP)

T = TypeVar("T")


class GroupVersions(Protocol):
    """Invalidation counters visible to every process sharing the cached data."""

    def current(self, group: str) -> int: ...

    def bump(self, *groups: str) -> None: ...


class QueryCache:
    """TTL cache of query results grouped by consumer-facing list identifiers.

    With ``shared`` set, each entry is tagged with its group's shared version
    and served only while that version is unchanged, so an invalidation made
    by another worker process drops it here too.
    """

    def __init__(
        self,
        ttl: float = 30.0,
        clock: Callable[[], float] = time.monotonic,
        shared: GroupVersions | None = None,
    ) -> None:
        self.ttl = ttl
        self._clock = clock
        self._shared = shared
        self._lock = threading.Lock()
        # group -> key -> (expires_at, shared_version, value)
        self._entries: dict[str, dict[Hashable, tuple[float, int, Any]]] = {}
        # Bumped on invalidation so a load that raced an invalidation is not stored
        self._versions: dict[str, int] = {}

    def get_or_load(self, group: str, key: Hashable, loader: Callable[[], T]) -> T:
        """Return the cached value for (group, key), loading and caching it on a miss."""
        shared_version = self._shared.current(group) if self._shared is not None else 0
        now = self._clock()
        with self._lock:
            entry = self._entries.get(group, {}).get(key)
            if entry is not None and entry[0] > now and entry[1] == shared_version:
                return entry[2]
            version = self._versions.get(group, 0)

        value = loader()

        with self._lock:
            if self._versions.get(group, 0) == version:
                self._entries.setdefault(group, {})[key] = (
                    self._clock() + self.ttl,
                    shared_version,
                    value,
                )
        return value

    def invalidate(self, *groups: str) -> int:
        """Drop every entry in the given groups. Returns the number of entries dropped here."""
        dropped = 0
        with self._lock:
            for group in groups:
                dropped += len(self._entries.pop(group, {}))
                self._versions[group] = self._versions.get(group, 0) + 1
        if self._shared is not None:
            self._shared.bump(*groups)
        logger.debug("cache_invalidated: groups=%s dropped=%d", ",".join(groups), dropped)
        return dropped

    def clear(self) -> None:
        with self._lock:
            groups = list(self._entries)
            self._entries.clear()
            for group in groups:
                self._versions[group] = self._versions.get(group, 0) + 1

    def size(self, group: str | None = None) -> int:
        with self._lock:
            if group is not None:
                return len(self._entries.get(group, {}))
            return sum(len(entries) for entries in self._entries.values())
