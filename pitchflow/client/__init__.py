"""Client-side status watching (push + poll)."""

from pitchflow.client.status_watcher import (
    HttpStatusSource,
    StatusSnapshot,
    StatusSource,
    StatusWatcher,
    StoreStatusSource,
)

__all__ = [
    "HttpStatusSource",
    "StatusSnapshot",
    "StatusSource",
    "StatusWatcher",
    "StoreStatusSource",
]
