"""Analysis dispatch: routing, background jobs, dispatchers."""

from pitchflow.pipeline.dispatch import (
    AnalysisJob,
    BackgroundTasksDispatcher,
    Dispatcher,
    ThreadPoolDispatcher,
)
from pitchflow.pipeline.router import RouteResult, SubmissionNotFoundError, resolve_routine, route_submission

__all__ = [
    "AnalysisJob",
    "BackgroundTasksDispatcher",
    "Dispatcher",
    "RouteResult",
    "SubmissionNotFoundError",
    "ThreadPoolDispatcher",
    "resolve_routine",
    "route_submission",
]
