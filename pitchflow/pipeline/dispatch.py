"""
Fire-and-forget dispatch of analysis jobs.

Callers only wait for ``submit`` to return. The job body runs elsewhere:
after the HTTP response (FastAPI BackgroundTasks) or on a worker pool
(scripts, bulk reruns).
"""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass

from fastapi import BackgroundTasks

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AnalysisJob:
    """Unit of work: analyse one submission with one routine.

    ``generation`` is set for reruns, which claim the submission before
    dispatching; fresh triggers leave it None and claim inside the job.
    """

    submission_id: str
    routine: str
    generation: int | None = None


class Dispatcher(ABC):
    """Accepts jobs without waiting for them to run."""

    @abstractmethod
    def submit(self, job: AnalysisJob) -> None: ...


class BackgroundTasksDispatcher(Dispatcher):
    """Runs jobs after the current response is sent."""

    def __init__(self, background_tasks: BackgroundTasks) -> None:
        self._background_tasks = background_tasks

    def submit(self, job: AnalysisJob) -> None:
        from pitchflow.pipeline.analysis_job import run_analysis_job

        self._background_tasks.add_task(run_analysis_job, job)
        logger.info("analysis_queued: submission_id=%s routine=%s", job.submission_id, job.routine)


class ThreadPoolDispatcher(Dispatcher):
    """Runs jobs on a worker pool owned by the dispatcher."""

    def __init__(self, max_workers: int = 4) -> None:
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="analysis")
        self._lock = threading.Lock()
        self._futures: set[Future] = set()

    def submit(self, job: AnalysisJob) -> None:
        from pitchflow.pipeline.analysis_job import run_analysis_job

        future = self._executor.submit(run_analysis_job, job)
        with self._lock:
            self._futures.add(future)
        future.add_done_callback(self._forget)
        logger.info("analysis_queued: submission_id=%s routine=%s", job.submission_id, job.routine)

    def _forget(self, future: Future) -> None:
        with self._lock:
            self._futures.discard(future)

    @property
    def in_flight(self) -> int:
        with self._lock:
            return len(self._futures)

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)


_shared_dispatcher: ThreadPoolDispatcher | None = None
_shared_lock = threading.Lock()


def get_thread_pool_dispatcher() -> ThreadPoolDispatcher:
    """Process-wide worker pool dispatcher, created on first use."""
    global _shared_dispatcher
    with _shared_lock:
        if _shared_dispatcher is None:
            _shared_dispatcher = ThreadPoolDispatcher()
        return _shared_dispatcher


def shutdown_thread_pool_dispatcher(wait: bool = True) -> None:
    global _shared_dispatcher
    with _shared_lock:
        dispatcher, _shared_dispatcher = _shared_dispatcher, None
    if dispatcher is not None:
        dispatcher.shutdown(wait=wait)
