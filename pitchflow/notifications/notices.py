"""User-facing notices (success/failure toasts with optional redirect hints)."""

from __future__ import annotations

import itertools
import threading
from abc import ABC, abstractmethod
from collections import deque
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

_notice_ids = itertools.count(1)


@dataclass
class Notice:
    level: str  # success | error | info
    title: str
    message: str
    submission_id: str
    redirect_to: str | None = None
    redirect_after: float | None = None  # seconds
    id: int = field(default_factory=lambda: next(_notice_ids))
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "level": self.level,
            "title": self.title,
            "message": self.message,
            "submissionId": self.submission_id,
            "redirectTo": self.redirect_to,
            "redirectAfter": self.redirect_after,
            "createdAt": self.created_at.isoformat(),
        }


class NoticeFeed(ABC):
    """Where notices are posted and read back."""

    @abstractmethod
    def post(self, notice: Notice) -> Notice:
        """Store notice; returns it with its feed id."""

    @abstractmethod
    def recent(self, limit: int = 50, submission_id: str | None = None) -> list[Notice]:
        """Newest first, optionally filtered to one submission."""

    @abstractmethod
    def clear(self) -> None:
        ...


class NoticeBoard(NoticeFeed):
    """Bounded, thread-safe in-memory feed of recent notices (one process only)."""

    def __init__(self, maxlen: int = 200) -> None:
        self._lock = threading.Lock()
        self._notices: deque[Notice] = deque(maxlen=maxlen)

    def post(self, notice: Notice) -> Notice:
        with self._lock:
            self._notices.append(notice)
        return notice

    def recent(self, limit: int = 50, submission_id: str | None = None) -> list[Notice]:
        with self._lock:
            notices = list(self._notices)
        if submission_id is not None:
            notices = [n for n in notices if n.submission_id == submission_id]
        return list(reversed(notices))[:limit]

    def clear(self) -> None:
        with self._lock:
            self._notices.clear()
