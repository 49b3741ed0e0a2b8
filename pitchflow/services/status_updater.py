"""
Submission status updater.

The only writer of ``analysis_status``, ``analysis_result``, ``analysis_error``
and ``company_id``. States::

    pending -> processing -> completed | failed
    completed | failed -> processing        (explicit rerun)

Every write after the claim is a compare-and-set on (status, generation):
a claim or rerun bumps ``analysis_generation``, and a terminal write carrying
an older generation is discarded. This makes duplicate triggers and stale
results from abandoned invocations no-ops.

Scores are converted from the extraction scale to the 0-5 display scale here,
once, when the Company row is written. Readers never convert.
"""

from __future__ import annotations

import asyncio
import logging
import re
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import delete, select, update
from sqlalchemy.orm import Session

from pitchflow.models.company import Company
from pitchflow.models.section import Section, SectionDetail
from pitchflow.models.submission import AnalysisStatus, Submission

if TYPE_CHECKING:
    from pitchflow.config import Settings
    from pitchflow.extraction.service import ExtractionResult
    from pitchflow.notifications.fanout import NotificationFanout

logger = logging.getLogger(__name__)

DISPLAY_SCALE = 5.0
MAX_ERROR_LENGTH = 2000
MATERIALIZATION_ERROR_PREFIX = "Failed to persist analysis result"

_CONTROL_CHARS_RE = re.compile(r"[\x00-\x08\x0b-\x1f\x7f]")

PENDING = AnalysisStatus.PENDING.value
PROCESSING = AnalysisStatus.PROCESSING.value
COMPLETED = AnalysisStatus.COMPLETED.value
FAILED = AnalysisStatus.FAILED.value


# ── Pure helpers ────────────────────────────────────────────────────


def to_display_score(raw: float, scale: float = 100.0) -> float:
    """Convert a score on ``0..scale`` to the 0-5 display scale (84 of 100 -> 4.2)."""
    if scale <= 0:
        raise ValueError("score scale must be positive")
    return round(float(raw) * DISPLAY_SCALE / scale, 2)


def sanitize_error(message: str | None, limit: int = MAX_ERROR_LENGTH) -> str:
    """Strip control characters and truncate an error message for storage."""
    text = _CONTROL_CHARS_RE.sub(" ", str(message or "")).strip() or "Unknown error"
    if len(text) > limit:
        text = text[: limit - 3].rstrip() + "..."
    return text


def _now() -> datetime:
    return datetime.now(UTC)


def _publish(fanout: NotificationFanout | None, **transition: Any) -> None:
    """Hand a recorded transition to the fan-out. Failures here never reach the caller."""
    from pitchflow.notifications.fanout import StatusTransition, get_notification_fanout

    try:
        (fanout or get_notification_fanout()).publish(StatusTransition(**transition))
    except Exception:
        logger.exception(
            "status_publish_failed: submission_id=%s status=%s",
            transition.get("submission_id"),
            transition.get("status"),
        )


def _reload(db: Session, submission_id: str) -> Submission | None:
    return db.get(Submission, submission_id, populate_existing=True)


# ── Reads ───────────────────────────────────────────────────────────


async def fetch_submission_with_retry(
    db: Session,
    submission_id: str,
    attempts: int | None = None,
    backoff: float | None = None,
    settings: Settings | None = None,
) -> Submission | None:
    """Fetch a submission, retrying with linear backoff (backoff × attempt).

    A freshly inserted row may not be visible yet to this reader.
    """
    if settings is None:
        from pitchflow.config import get_settings

        settings = get_settings()
    attempts = attempts if attempts is not None else settings.submission_fetch_attempts
    backoff = backoff if backoff is not None else settings.submission_fetch_backoff

    for attempt in range(1, max(attempts, 1) + 1):
        submission = _reload(db, submission_id)
        if submission is not None:
            return submission
        if attempt < attempts:
            delay = backoff * attempt
            logger.warning(
                "submission_not_visible: submission_id=%s attempt=%d/%d retry_in=%.1fs",
                submission_id,
                attempt,
                attempts,
                delay,
            )
            await asyncio.sleep(delay)
    logger.error("submission_not_found: submission_id=%s attempts=%d", submission_id, attempts)
    return None


def is_rerun_eligible(
    submission: Submission,
    company_score: float | None,
    family: str | None,
    settings: Settings | None = None,
) -> bool:
    """Failed, or completed with a display score below the family's threshold."""
    if submission.analysis_status == FAILED:
        return True
    if submission.analysis_status != COMPLETED:
        return False
    if settings is None:
        from pitchflow.config import get_settings

        settings = get_settings()
    if company_score is None:
        return True
    return company_score < settings.rerun_threshold_for(family)


# ── Transitions ─────────────────────────────────────────────────────


def claim_for_analysis(
    db: Session,
    submission_id: str,
    expected_generation: int | None = None,
    fanout: NotificationFanout | None = None,
) -> int | None:
    """Take ownership of a submission's analysis. Returns the generation, or None.

    Without ``expected_generation`` this is the ``pending -> processing``
    transition, done as a conditional update so that only one of several
    racing triggers wins. With ``expected_generation`` (rerun path) the
    submission must already be ``processing`` at exactly that generation.
    """
    if expected_generation is not None:
        submission = _reload(db, submission_id)
        if (
            submission is None
            or submission.analysis_status != PROCESSING
            or submission.analysis_generation != expected_generation
        ):
            logger.info(
                "claim_skipped: submission_id=%s expected_generation=%s",
                submission_id,
                expected_generation,
            )
            return None
        return expected_generation

    result = db.execute(
        update(Submission)
        .where(Submission.id == submission_id, Submission.analysis_status == PENDING)
        .values(
            analysis_status=PROCESSING,
            analysis_generation=Submission.analysis_generation + 1,
            analysis_error=None,
            analysis_error_kind=None,
            updated_at=_now(),
        )
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        db.rollback()
        logger.info("claim_skipped: submission_id=%s not pending", submission_id)
        return None
    db.commit()

    submission = _reload(db, submission_id)
    logger.info(
        "analysis_claimed: submission_id=%s generation=%d",
        submission_id,
        submission.analysis_generation,
    )
    _publish(
        fanout,
        submission_id=submission_id,
        previous_status=PENDING,
        status=PROCESSING,
        company_name=submission.company_name,
    )
    return submission.analysis_generation


def _materialize_company(db: Session, submission: Submission, result: ExtractionResult) -> Company:
    """Create or refresh the submission's Company and replace its sections."""
    company = db.scalar(select(Company).where(Company.origin_submission_id == submission.id))
    if company is None:
        company = Company(origin_submission_id=submission.id, source=submission.source)
        db.add(company)
    else:
        section_ids = select(Section.id).where(Section.company_id == company.id)
        db.execute(delete(SectionDetail).where(SectionDetail.section_id.in_(section_ids)))
        db.execute(delete(Section).where(Section.company_id == company.id))
        db.expire(company, ["sections"])

    form_data = submission.form_data or {}
    company.name = submission.company_name or result.company_name or "Untitled company"
    company.overall_score = to_display_score(result.overall_score, result.score_scale)
    company.recommendation = result.recommendation
    company.scoring_reason = result.scoring_reason
    company.assessment_points = list(result.assessment_points)
    # Optional profile fields are only filled, never overwritten
    company.industry = company.industry or form_data.get("industry") or result.industry
    company.stage = company.stage or result.stage
    company.website_url = company.website_url or result.website_url
    company.email = company.email or submission.submitter_email
    company.poc_name = company.poc_name or submission.submitter_name
    company.phone = company.phone or form_data.get("phone")

    for position, scored in enumerate(result.sections):
        details = [SectionDetail(detail_type="strength", content=s) for s in scored.strengths]
        details += [SectionDetail(detail_type="weakness", content=w) for w in scored.weaknesses]
        db.add(
            Section(
                company=company,
                type=scored.type,
                title=scored.title,
                score=to_display_score(scored.score, result.section_scale),
                description=scored.description,
                position=position,
                details=details,
            )
        )
    db.flush()
    return company


def _result_document(result: ExtractionResult) -> dict[str, Any]:
    return {
        "routine": result.routine,
        "overall_score": result.overall_score,
        "score_scale": result.score_scale,
        "recommendation": result.recommendation,
        "payload": result.raw,
    }


def complete_analysis(
    db: Session,
    submission_id: str,
    generation: int,
    result: ExtractionResult,
    fanout: NotificationFanout | None = None,
) -> bool:
    """``processing -> completed``: write the result, Company and sections in one unit.

    Returns True when the submission was completed. A stale generation is a
    no-op (False). A persistence failure rolls everything back and records the
    submission as failed with a materialization error (False).
    """
    submission = _reload(db, submission_id)
    if submission is None or submission.analysis_status != PROCESSING or submission.analysis_generation != generation:
        logger.info(
            "stale_result_discarded: submission_id=%s generation=%d",
            submission_id,
            generation,
        )
        return False

    try:
        company = _materialize_company(db, submission, result)
        outcome = db.execute(
            update(Submission)
            .where(
                Submission.id == submission_id,
                Submission.analysis_status == PROCESSING,
                Submission.analysis_generation == generation,
            )
            .values(
                analysis_status=COMPLETED,
                analysis_result=_result_document(result),
                analysis_error=None,
                analysis_error_kind=None,
                company_id=company.id,
                analyzed_at=_now(),
                updated_at=_now(),
            )
            .execution_options(synchronize_session=False)
        )
        if outcome.rowcount != 1:
            db.rollback()
            logger.info(
                "stale_result_discarded: submission_id=%s generation=%d (superseded during write)",
                submission_id,
                generation,
            )
            return False
        db.commit()
    except Exception as exc:
        db.rollback()
        logger.exception("materialization_failed: submission_id=%s", submission_id)
        fail_analysis(
            db,
            submission_id,
            generation,
            f"{MATERIALIZATION_ERROR_PREFIX}: {exc}",
            kind="materialization",
            analysis_result=_result_document(result),
            fanout=fanout,
        )
        return False

    logger.info(
        "analysis_completed: submission_id=%s company_id=%d score=%.2f",
        submission_id,
        company.id,
        company.overall_score,
    )
    _publish(
        fanout,
        submission_id=submission_id,
        previous_status=PROCESSING,
        status=COMPLETED,
        company_id=company.id,
        company_name=company.name,
        overall_score=company.overall_score,
        submitter_email=submission.submitter_email,
    )
    return True


def fail_analysis(
    db: Session,
    submission_id: str,
    generation: int,
    error: str,
    kind: str = "extraction",
    analysis_result: dict[str, Any] | None = None,
    fanout: NotificationFanout | None = None,
) -> bool:
    """``processing -> failed`` with a sanitized error. Stale generations are a no-op."""
    message = sanitize_error(error)
    values: dict[str, Any] = {
        "analysis_status": FAILED,
        "analysis_error": message,
        "analysis_error_kind": kind,
        "company_id": None,
        "analyzed_at": _now(),
        "updated_at": _now(),
    }
    if analysis_result is not None:
        values["analysis_result"] = analysis_result

    outcome = db.execute(
        update(Submission)
        .where(
            Submission.id == submission_id,
            Submission.analysis_status == PROCESSING,
            Submission.analysis_generation == generation,
        )
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    if outcome.rowcount != 1:
        db.rollback()
        logger.info("stale_failure_discarded: submission_id=%s generation=%d", submission_id, generation)
        return False
    db.commit()

    submission = _reload(db, submission_id)
    logger.warning("analysis_failed: submission_id=%s kind=%s error=%s", submission_id, kind, message)
    _publish(
        fanout,
        submission_id=submission_id,
        previous_status=PROCESSING,
        status=FAILED,
        company_name=submission.company_name if submission else None,
        error=message,
        submitter_email=submission.submitter_email if submission else None,
    )
    return True


def request_rerun(
    db: Session,
    submission_id: str,
    fanout: NotificationFanout | None = None,
) -> int | None:
    """``completed | failed -> processing``. Returns the new generation, or None.

    Clears the error and detaches the Company; the Company row itself is kept
    and refreshed in place when the rerun completes.
    """
    previous = _reload(db, submission_id)
    if previous is None or previous.analysis_status not in (COMPLETED, FAILED):
        logger.info(
            "rerun_rejected: submission_id=%s status=%s",
            submission_id,
            previous.analysis_status if previous else None,
        )
        return None
    previous_status = previous.analysis_status

    outcome = db.execute(
        update(Submission)
        .where(
            Submission.id == submission_id,
            Submission.analysis_status.in_((COMPLETED, FAILED)),
        )
        .values(
            analysis_status=PROCESSING,
            analysis_generation=Submission.analysis_generation + 1,
            analysis_error=None,
            analysis_error_kind=None,
            company_id=None,
            analyzed_at=None,
            updated_at=_now(),
        )
        .execution_options(synchronize_session=False)
    )
    if outcome.rowcount != 1:
        db.rollback()
        return None
    db.commit()

    submission = _reload(db, submission_id)
    logger.info(
        "rerun_requested: submission_id=%s from=%s generation=%d",
        submission_id,
        previous_status,
        submission.analysis_generation,
    )
    _publish(
        fanout,
        submission_id=submission_id,
        previous_status=previous_status,
        status=PROCESSING,
        company_name=submission.company_name,
    )
    return submission.analysis_generation
