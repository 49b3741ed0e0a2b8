"""
Analysis router.

Resolves a submission to exactly one extraction routine and dispatches it.
Returns an acknowledgement; the routine's outcome is only observable through
the submission's status.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from sqlalchemy.orm import Session

from pitchflow.models.submission import AnalysisStatus, Submission
from pitchflow.pipeline.dispatch import AnalysisJob, Dispatcher
from pitchflow.routing.loader import resolve_routine_name

logger = logging.getLogger(__name__)


class SubmissionNotFoundError(LookupError):
    """Raised when a trigger names a submission that does not exist."""

    def __init__(self, submission_id: str) -> None:
        super().__init__(f"Submission not found: {submission_id}")
        self.submission_id = submission_id


@dataclass
class RouteResult:
    submission_id: str
    analysis_function: str
    dispatched: bool
    status: str

    def to_response(self) -> dict[str, Any]:
        return {
            "success": True,
            "submissionId": self.submission_id,
            "analysisFunction": self.analysis_function,
            "result": {"dispatched": self.dispatched, "status": self.status},
        }


def resolve_routine(submission: Submission) -> str:
    """Routine for a submission. Total: unknown slugs get the default routine."""
    return resolve_routine_name(submission.form_slug, submission.source)


def route_submission(db: Session, submission_id: str, dispatcher: Dispatcher) -> RouteResult:
    """Resolve and dispatch analysis for a submission.

    Submissions that are already processing or finished are acknowledged
    without dispatching; reruns go through the status updater instead.

    Raises:
        SubmissionNotFoundError: The submission does not exist; nothing is dispatched.
    """
    submission = db.get(Submission, submission_id)
    if submission is None:
        logger.warning("route_failed: submission_id=%s not found", submission_id)
        raise SubmissionNotFoundError(submission_id)

    routine = resolve_routine(submission)
    if submission.analysis_status != AnalysisStatus.PENDING.value:
        logger.info(
            "route_skipped: submission_id=%s status=%s routine=%s",
            submission_id,
            submission.analysis_status,
            routine,
        )
        return RouteResult(submission_id, routine, dispatched=False, status=submission.analysis_status)

    dispatcher.submit(AnalysisJob(submission_id=submission_id, routine=routine))
    logger.info("route_dispatched: submission_id=%s routine=%s", submission_id, routine)
    return RouteResult(submission_id, routine, dispatched=True, status="queued")
