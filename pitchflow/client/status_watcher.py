"""
Status watcher: observe a submission until it reaches a terminal status.

Two transports feed one deduplicating dispatcher:

- push: ``EventBus`` events (delivered on the emitting thread, marshalled
  onto the watcher's loop);
- poll: a fixed-interval read from a ``StatusSource``, bounded by
  ``max_attempts``.

The push channel has no delivery guarantee; polling alone is sufficient to
observe the terminal status. The callback fires on every observed change and
exactly once for the first terminal status, after which the watch is released.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any, Protocol

import httpx
from sqlalchemy.orm import Session

from pitchflow.models.submission import TERMINAL_STATUSES, AnalysisStatus, Submission
from pitchflow.notifications.events import EventBus, StatusEvent

logger = logging.getLogger(__name__)

_STATUS_RANK = {
    AnalysisStatus.PENDING.value: 0,
    AnalysisStatus.PROCESSING.value: 1,
    AnalysisStatus.COMPLETED.value: 2,
    AnalysisStatus.FAILED.value: 2,
}


@dataclass(frozen=True)
class StatusSnapshot:
    submission_id: str
    status: str
    company_id: int | None = None
    error: str | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> StatusSnapshot:
        """Build from a status query response body (camelCase keys)."""
        return cls(
            submission_id=payload["submissionId"],
            status=payload["status"],
            company_id=payload.get("companyId"),
            error=payload.get("error"),
        )

    @classmethod
    def from_event(cls, event: StatusEvent) -> StatusSnapshot:
        return cls(event.submission_id, event.status, company_id=event.company_id)


StatusCallback = Callable[[StatusSnapshot], Awaitable[None] | None]


class StatusSource(Protocol):
    async def fetch(self, submission_id: str) -> StatusSnapshot | None: ...


class HttpStatusSource:
    """Reads status through the public status endpoint."""

    def __init__(
        self,
        base_url: str,
        client: httpx.AsyncClient | None = None,
        timeout: float = 10.0,
    ) -> None:
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(base_url=base_url, timeout=timeout)

    async def fetch(self, submission_id: str) -> StatusSnapshot | None:
        response = await self._client.get(f"/api/submissions/{submission_id}/status")
        if response.status_code == 404:
            return None
        response.raise_for_status()
        return StatusSnapshot.from_payload(response.json())

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()


class StoreStatusSource:
    """Reads status straight from the submission store (same-process clients, scripts)."""

    def __init__(self, session_factory: Callable[[], Session] | None = None) -> None:
        if session_factory is None:
            from pitchflow.db.session import SessionLocal

            session_factory = SessionLocal
        self._session_factory = session_factory

    def _read(self, submission_id: str) -> StatusSnapshot | None:
        db = self._session_factory()
        try:
            submission = db.get(Submission, submission_id)
            if submission is None:
                return None
            return StatusSnapshot(
                submission_id=submission.id,
                status=submission.analysis_status,
                company_id=submission.company_id,
                error=submission.analysis_error,
            )
        finally:
            db.close()

    async def fetch(self, submission_id: str) -> StatusSnapshot | None:
        return await asyncio.to_thread(self._read, submission_id)


@dataclass
class _Watch:
    submission_id: str
    callback: StatusCallback
    last_status: str | None = None
    done: bool = False
    poll_task: asyncio.Task | None = None
    unsubscribe: Callable[[], None] | None = None
    attempts: int = 0
    callback_tasks: set[asyncio.Task] = field(default_factory=set)


class StatusWatcher:
    """Watches submissions over push and poll; use as ``async with StatusWatcher(...)``."""

    def __init__(
        self,
        source: StatusSource,
        event_bus: EventBus | None = None,
        interval: float = 1.0,
        max_attempts: int = 300,
    ) -> None:
        self._source = source
        self._event_bus = event_bus
        self._interval = interval
        self._max_attempts = max_attempts
        self._watches: dict[str, _Watch] = {}
        self._loop: asyncio.AbstractEventLoop | None = None

    @classmethod
    def from_settings(cls, source: StatusSource, event_bus: EventBus | None = None, settings=None):
        if settings is None:
            from pitchflow.config import get_settings

            settings = get_settings()
        return cls(
            source,
            event_bus,
            interval=settings.status_poll_interval,
            max_attempts=settings.status_poll_max_attempts,
        )

    async def __aenter__(self) -> StatusWatcher:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    # ── Public API ──────────────────────────────────────────────────

    def watch(
        self,
        submission_id: str,
        callback: StatusCallback,
        last_status: str | None = None,
    ) -> None:
        """Start watching a submission. Must be called from the running event loop.

        ``last_status`` is the status the caller already knows about; the
        callback only fires for statuses beyond it. Watching an id again
        replaces the previous watch.
        """
        self._loop = asyncio.get_running_loop()
        if submission_id in self._watches:
            self.stop(submission_id)

        watch = _Watch(submission_id, callback, last_status=last_status)
        self._watches[submission_id] = watch

        if self._event_bus is not None:
            watch.unsubscribe = self._event_bus.subscribe(self._make_listener(watch))
        if self._max_attempts > 0:
            watch.poll_task = self._loop.create_task(
                self._poll(watch), name=f"status-poll-{submission_id}"
            )
        logger.debug(
            "status_watch_started: submission_id=%s push=%s poll=%s",
            submission_id,
            self._event_bus is not None,
            self._max_attempts > 0,
        )

    def stop(self, submission_id: str) -> None:
        """Stop watching; releases the poll task and the bus subscription."""
        watch = self._watches.pop(submission_id, None)
        if watch is not None:
            self._release(watch)

    async def close(self) -> None:
        """Stop every watch and wait for the cancelled poll tasks to finish."""
        watches = list(self._watches.values())
        self._watches.clear()
        tasks: list[asyncio.Task] = []
        for watch in watches:
            if watch.poll_task is not None:
                tasks.append(watch.poll_task)
            tasks.extend(watch.callback_tasks)
            self._release(watch)
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    def is_watching(self, submission_id: str) -> bool:
        return submission_id in self._watches

    @property
    def active_count(self) -> int:
        return len(self._watches)

    # ── Transports ──────────────────────────────────────────────────

    def _make_listener(self, watch: _Watch) -> Callable[[StatusEvent], None]:
        loop = self._loop

        def listener(event: StatusEvent) -> None:
            if event.submission_id != watch.submission_id or loop.is_closed():
                return
            loop.call_soon_threadsafe(self._deliver, watch, StatusSnapshot.from_event(event))

        return listener

    async def _poll(self, watch: _Watch) -> None:
        while not watch.done and watch.attempts < self._max_attempts:
            await asyncio.sleep(self._interval)
            if watch.done:
                return
            watch.attempts += 1
            try:
                snapshot = await self._source.fetch(watch.submission_id)
            except Exception as exc:
                logger.warning(
                    "status_poll_failed: submission_id=%s attempt=%d error=%s",
                    watch.submission_id,
                    watch.attempts,
                    exc,
                )
                continue
            if snapshot is not None:
                self._deliver(watch, snapshot)

        if not watch.done:
            logger.warning(
                "status_watch_ceiling: submission_id=%s attempts=%d last_status=%s",
                watch.submission_id,
                watch.attempts,
                watch.last_status,
            )
            watch.poll_task = None
            self.stop(watch.submission_id)

    # ── Dispatch ────────────────────────────────────────────────────

    def _deliver(self, watch: _Watch, snapshot: StatusSnapshot) -> None:
        """Single entry point for both transports; runs on the watcher's loop."""
        if watch.done or self._watches.get(watch.submission_id) is not watch:
            return
        if snapshot.status == watch.last_status:
            return
        # A lagging read must not move the observed status backwards
        if _STATUS_RANK.get(snapshot.status, 0) < _STATUS_RANK.get(watch.last_status, -1):
            return

        watch.last_status = snapshot.status
        if snapshot.is_terminal:
            watch.done = True
        self._invoke(watch, snapshot)

        if watch.done:
            logger.info(
                "status_watch_finished: submission_id=%s status=%s",
                watch.submission_id,
                snapshot.status,
            )
            self._watches.pop(watch.submission_id, None)
            self._release(watch)

    def _invoke(self, watch: _Watch, snapshot: StatusSnapshot) -> None:
        try:
            result = watch.callback(snapshot)
        except Exception:
            logger.exception("status_callback_failed: submission_id=%s", watch.submission_id)
            return
        if inspect.isawaitable(result):
            task = asyncio.ensure_future(result)
            watch.callback_tasks.add(task)
            task.add_done_callback(lambda t: self._callback_done(watch, t))

    @staticmethod
    def _callback_done(watch: _Watch, task: asyncio.Task) -> None:
        watch.callback_tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error(
                "status_callback_failed: submission_id=%s error=%s",
                watch.submission_id,
                task.exception(),
            )

    def _release(self, watch: _Watch) -> None:
        watch.done = True
        if watch.unsubscribe is not None:
            watch.unsubscribe()
            watch.unsubscribe = None
        task = watch.poll_task
        watch.poll_task = None
        if task is not None and task is not _current_task() and not task.done():
            task.cancel()


def _current_task() -> asyncio.Task | None:
    try:
        return asyncio.current_task()
    except RuntimeError:
        return None
