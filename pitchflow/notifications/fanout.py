"""
Notification fan-out for submission status transitions.

Steps, in order, for every recorded transition:
1. invalidate submission-list cache groups,
2. emit a StatusEvent on the in-process bus,
3. post a success (with redirect hint) or failure notice and, when enabled,
   email the submitter.

Every step is best-effort. A failing step is logged and the next one still
runs; nothing here can undo the transition that triggered it.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from concurrent.futures import Executor, ThreadPoolExecutor
from dataclasses import dataclass
from functools import lru_cache
from typing import TYPE_CHECKING, Any

from pitchflow.notifications.cache import COMPANIES_GROUP, SUBMISSION_LIST_GROUPS, QueryCache
from pitchflow.notifications.events import EventBus, StatusEvent
from pitchflow.notifications.notices import Notice, NoticeFeed
from pitchflow.notifications.shared import DatabaseGroupVersions, StoredNoticeBoard

if TYPE_CHECKING:
    from pitchflow.config import Settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StatusTransition:
    """A transition recorded by the status updater."""

    submission_id: str
    previous_status: str | None
    status: str
    company_id: int | None = None
    company_name: str | None = None
    overall_score: float | None = None
    error: str | None = None
    submitter_email: str | None = None

    def to_event(self) -> StatusEvent:
        return StatusEvent(
            submission_id=self.submission_id,
            status=self.status,
            company_id=self.company_id,
            company_name=self.company_name,
        )


def company_path(company_id: int) -> str:
    return f"/companies/{company_id}"


class NotificationFanout:
    """Fans one status transition out to cache, event bus, notices and email."""

    def __init__(
        self,
        cache: QueryCache,
        bus: EventBus,
        notices: NoticeFeed,
        settings: Settings | None = None,
        email_sender: Callable[..., bool] | None = None,
        email_executor: Executor | None = None,
    ) -> None:
        if settings is None:
            from pitchflow.config import get_settings

            settings = get_settings()
        if email_sender is None:
            from pitchflow.services.email_service import send_analysis_outcome_email

            email_sender = send_analysis_outcome_email
        self.cache = cache
        self.bus = bus
        self.notices = notices
        self.settings = settings
        self._email_sender = email_sender
        self._email_executor = email_executor

    def publish(self, transition: StatusTransition) -> None:
        """Run every fan-out step for transition. Never raises."""
        self._safely("invalidate_cache", self._invalidate, transition)
        self._safely("emit_event", self.bus.emit, transition.to_event())
        if transition.status == "completed":
            self._safely("success_notice", self._notify_completed, transition)
        elif transition.status == "failed":
            self._safely("failure_notice", self._notify_failed, transition)

    def _safely(self, step: str, fn: Callable[..., Any], *args: Any) -> None:
        try:
            fn(*args)
        except Exception:
            submission_id = getattr(args[0], "submission_id", None) if args else None
            logger.exception("notification_step_failed: step=%s submission_id=%s", step, submission_id)

    def _invalidate(self, transition: StatusTransition) -> None:
        groups = list(SUBMISSION_LIST_GROUPS)
        if transition.company_id is not None or transition.previous_status == "completed":
            groups.append(COMPANIES_GROUP)
        self.cache.invalidate(*groups)

    def _notify_completed(self, transition: StatusTransition) -> None:
        name = transition.company_name or "Submission"
        redirect = company_path(transition.company_id) if transition.company_id is not None else None
        self.notices.post(
            Notice(
                level="success",
                title="Analysis complete",
                message=f"{name} has been analyzed.",
                submission_id=transition.submission_id,
                redirect_to=redirect,
                redirect_after=self.settings.completion_redirect_delay if redirect else None,
            )
        )
        self._queue_email(transition, redirect)

    def _notify_failed(self, transition: StatusTransition) -> None:
        self.notices.post(
            Notice(
                level="error",
                title="Analysis failed",
                message=transition.error or "Analysis failed.",
                submission_id=transition.submission_id,
            )
        )
        self._queue_email(transition, None)

    def _queue_email(self, transition: StatusTransition, redirect: str | None) -> None:
        if not self.settings.notify_email_enabled or not transition.submitter_email:
            return
        kwargs = {
            "score": transition.overall_score,
            "company_url": redirect,
            "settings": self.settings,
        }
        args = (transition.submitter_email, transition.company_name or "your company", transition.status)
        if self._email_executor is None:
            self._email_sender(*args, **kwargs)
        else:
            self._email_executor.submit(self._email_sender, *args, **kwargs)


# ── Process-wide instances ──────────────────────────────────────────

# Cache versions and notices are shared through the database. The event bus
# only reaches subscribers in this process; watchers elsewhere rely on polling.


@lru_cache(maxsize=1)
def get_query_cache() -> QueryCache:
    from pitchflow.config import get_settings

    return QueryCache(ttl=get_settings().query_cache_ttl, shared=DatabaseGroupVersions())


@lru_cache(maxsize=1)
def get_event_bus() -> EventBus:
    return EventBus()


@lru_cache(maxsize=1)
def get_notice_board() -> NoticeFeed:
    return StoredNoticeBoard()


@lru_cache(maxsize=1)
def get_notification_fanout() -> NotificationFanout:
    """Return the process-wide fan-out; email goes through a small background pool."""
    return NotificationFanout(
        cache=get_query_cache(),
        bus=get_event_bus(),
        notices=get_notice_board(),
        email_executor=ThreadPoolExecutor(max_workers=2, thread_name_prefix="notify-email"),
    )


def reset_notifications() -> None:
    """Drop the process-wide instances. Useful for testing."""
    get_notification_fanout.cache_clear()
    get_notice_board.cache_clear()
    get_event_bus.cache_clear()
    get_query_cache.cache_clear()
