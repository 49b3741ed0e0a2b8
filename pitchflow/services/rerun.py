"""
Bulk analysis rerun.

Finds failed submissions and completed ones whose score is below the
family's quality threshold, resets each to processing and dispatches it,
pausing between dispatches to stay under provider rate limits.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from pitchflow.extraction.routines import family_for_routine
from pitchflow.models.company import Company
from pitchflow.models.submission import AnalysisStatus, Submission
from pitchflow.pipeline.dispatch import AnalysisJob, Dispatcher
from pitchflow.pipeline.router import resolve_routine
from pitchflow.services import status_updater
from pitchflow.services.submission_store import chunked, get_submissions_by_ids

if TYPE_CHECKING:
    from pitchflow.config import Settings

logger = logging.getLogger(__name__)


@dataclass
class RerunSummary:
    processed: int = 0
    failed: int = 0
    total: int = 0
    results: list[dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "processed": self.processed,
            "failed": self.failed,
            "total": self.total,
            "results": self.results,
        }


def _company_scores(db: Session, company_ids: Sequence[int], chunk_size: int) -> dict[int, float | None]:
    scores: dict[int, float | None] = {}
    for batch in chunked(company_ids, chunk_size):
        rows = db.execute(select(Company.id, Company.overall_score).where(Company.id.in_(batch)))
        scores.update({row.id: row.overall_score for row in rows})
    return scores


def find_rerun_candidates(
    db: Session,
    family: str | None = None,
    settings: Settings | None = None,
) -> list[Submission]:
    """Failed submissions plus completed ones scoring below their family threshold."""
    if settings is None:
        from pitchflow.config import get_settings

        settings = get_settings()

    stmt = (
        select(Submission)
        .where(
            Submission.analysis_status.in_(
                (AnalysisStatus.FAILED.value, AnalysisStatus.COMPLETED.value)
            )
        )
        .order_by(Submission.created_at)
    )
    submissions = list(db.scalars(stmt))
    company_ids = [s.company_id for s in submissions if s.company_id is not None]
    scores = _company_scores(db, company_ids, settings.id_chunk_size)

    candidates = []
    for submission in submissions:
        submission_family = family_for_routine(resolve_routine(submission))
        if family and submission_family != family:
            continue
        score = scores.get(submission.company_id) if submission.company_id is not None else None
        if status_updater.is_rerun_eligible(submission, score, submission_family, settings):
            candidates.append(submission)
    return candidates


def rerun_submissions(
    db: Session,
    dispatcher: Dispatcher,
    submission_ids: Sequence[str] | None = None,
    family: str | None = None,
    settings: Settings | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> RerunSummary:
    """Reset and re-dispatch analyses.

    With ``submission_ids`` the given submissions are rerun as long as they
    are completed or failed; otherwise eligible submissions are discovered.
    """
    if settings is None:
        from pitchflow.config import get_settings

        settings = get_settings()

    if submission_ids:
        candidates = get_submissions_by_ids(db, submission_ids, settings.id_chunk_size)
        missing = set(submission_ids) - {s.id for s in candidates}
    else:
        candidates = find_rerun_candidates(db, family=family, settings=settings)
        missing = set()

    summary = RerunSummary(total=len(candidates) + len(missing))
    for submission_id in sorted(missing):
        summary.failed += 1
        summary.results.append(
            {"submissionId": submission_id, "success": False, "error": "Submission not found"}
        )

    for index, submission in enumerate(candidates):
        if index and settings.rerun_dispatch_delay > 0:
            sleep(settings.rerun_dispatch_delay)

        submission_id = submission.id
        routine = resolve_routine(submission)
        generation = None
        try:
            generation = status_updater.request_rerun(db, submission_id)
            if generation is None:
                summary.failed += 1
                summary.results.append(
                    {
                        "submissionId": submission_id,
                        "success": False,
                        "error": "Submission is not completed or failed",
                    }
                )
                continue
            dispatcher.submit(AnalysisJob(submission_id, routine, generation))
        except Exception as exc:
            logger.exception("rerun_dispatch_failed: submission_id=%s", submission_id)
            db.rollback()
            if generation is not None:
                status_updater.fail_analysis(
                    db, submission_id, generation, f"Rerun dispatch failed: {exc}", kind="dispatch"
                )
            summary.failed += 1
            summary.results.append({"submissionId": submission_id, "success": False, "error": str(exc)})
            continue

        summary.processed += 1
        summary.results.append(
            {"submissionId": submission_id, "success": True, "analysisFunction": routine}
        )

    logger.info(
        "rerun_finished: processed=%d failed=%d total=%d",
        summary.processed,
        summary.failed,
        summary.total,
    )
    return summary
