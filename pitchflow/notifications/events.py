"""In-process status event bus."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StatusEvent:
    """Status change of one submission, as seen by same-process listeners."""

    submission_id: str
    status: str
    company_id: int | None = None
    company_name: str | None = None

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"submissionId": self.submission_id, "status": self.status}
        if self.company_id is not None:
            payload["companyId"] = self.company_id
        if self.company_name:
            payload["companyName"] = self.company_name
        return payload


Listener = Callable[[StatusEvent], None]


class EventBus:
    """Thread-safe publish/subscribe for StatusEvents.

    Listeners run synchronously on the emitting thread; a listener that
    raises is logged and does not affect the others.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._listeners: list[Listener] = []

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener; returns a callable that unsubscribes it."""
        with self._lock:
            self._listeners.append(listener)
        return lambda: self.unsubscribe(listener)

    def unsubscribe(self, listener: Listener) -> None:
        with self._lock:
            try:
                self._listeners.remove(listener)
            except ValueError:
                pass

    def emit(self, event: StatusEvent) -> int:
        """Deliver event to all current listeners. Returns the number delivered."""
        with self._lock:
            listeners = list(self._listeners)
        delivered = 0
        for listener in listeners:
            try:
                listener(event)
                delivered += 1
            except Exception:
                logger.exception(
                    "event_listener_failed: submission_id=%s status=%s",
                    event.submission_id,
                    event.status,
                )
        return delivered

    @property
    def listener_count(self) -> int:
        with self._lock:
            return len(self._listeners)
