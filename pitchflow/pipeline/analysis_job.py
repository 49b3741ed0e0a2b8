"""
Background analysis job.

``run_analysis_job`` is what dispatchers execute: it opens its own DB session
and drives one submission through claim -> extraction -> terminal write.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

import httpx
from sqlalchemy import select
from sqlalchemy.orm import Session

from pitchflow.db.session import SessionLocal
from pitchflow.extraction.service import ExtractionError, ExtractionRequest, ExtractionService
from pitchflow.models.public_form import PublicForm
from pitchflow.models.submission import Submission
from pitchflow.pipeline.dispatch import AnalysisJob
from pitchflow.services import status_updater
from pitchflow.storage.blob_store import BlobNotFoundError, BlobStore, get_blob_store

if TYPE_CHECKING:
    from pitchflow.config import Settings
    from pitchflow.notifications.fanout import NotificationFanout

logger = logging.getLogger(__name__)

DOCUMENT_DOWNLOAD_TIMEOUT = 30.0  # seconds

# Form answer keys rendered into prompts, in order; other keys are appended after
ANSWER_LABELS = {
    "executive_summary": "Executive summary",
    "company_type": "Company type",
    "problem": "Problem being solved",
    "target_customers": "Target customers",
    "competitors": "Competitors",
    "revenue_model": "Revenue model",
    "differentiation": "Differentiation",
    "team": "Team",
    "traction": "Traction",
    "funding_ask": "Funding ask",
}
# Contact/profile fields that are not answers
_NON_ANSWER_KEYS = frozenset({"industry", "phone", "linkedin_url", "website_url", "notes"})


def format_answers(form_data: dict[str, Any] | None) -> str:
    """Render form answers as labelled paragraphs for the prompt."""
    if not form_data:
        return ""
    ordered = [k for k in ANSWER_LABELS if k in form_data]
    ordered += sorted(k for k in form_data if k not in ANSWER_LABELS and k not in _NON_ANSWER_KEYS)
    blocks = []
    for key in ordered:
        value = form_data.get(key)
        if value is None or not str(value).strip():
            continue
        label = ANSWER_LABELS.get(key) or key.replace("_", " ").capitalize()
        blocks.append(f"**{label}**\n{str(value).strip()}")
    return "\n\n".join(blocks)


async def load_submission_document(
    submission: Submission,
    blob_store: BlobStore,
    max_bytes: int,
) -> bytes | None:
    """Return the submission's document bytes, from the blob store or its attachment URL.

    Raises:
        ExtractionError: kind ``document`` when the document cannot be fetched.
    """
    if submission.document_path:
        try:
            return await asyncio.to_thread(blob_store.get, submission.document_path)
        except BlobNotFoundError as exc:
            raise ExtractionError(f"Document missing from storage: {exc}", "document") from exc

    if submission.document_url:
        try:
            async with httpx.AsyncClient(
                timeout=DOCUMENT_DOWNLOAD_TIMEOUT, follow_redirects=True
            ) as client:
                response = await client.get(submission.document_url)
                response.raise_for_status()
        except httpx.HTTPError as exc:
            raise ExtractionError(f"Document download failed: {exc}", "document") from exc
        if len(response.content) > max_bytes:
            raise ExtractionError(
                f"Document too large: {len(response.content)} bytes (limit {max_bytes})", "document"
            )
        return response.content

    return None


async def build_extraction_request(
    db: Session,
    submission: Submission,
    routine: str,
    blob_store: BlobStore,
    settings: Settings,
) -> ExtractionRequest:
    form_data = submission.form_data or {}
    form_title = None
    if submission.form_slug:
        form_title = db.scalar(select(PublicForm.title).where(PublicForm.slug == submission.form_slug))
    document = await load_submission_document(submission, blob_store, settings.max_upload_bytes)
    return ExtractionRequest(
        routine=routine,
        document=document,
        context={
            "company_name": submission.company_name or "",
            "industry": str(form_data.get("industry") or ""),
            "form_title": form_title or submission.form_slug or "",
            "answers": format_answers(form_data),
            "notes": str(form_data.get("notes") or ""),
        },
    )


async def run_analysis(
    db: Session,
    submission_id: str,
    routine: str,
    generation: int | None = None,
    *,
    extraction: ExtractionService | None = None,
    blob_store: BlobStore | None = None,
    settings: Settings | None = None,
    fanout: NotificationFanout | None = None,
) -> str | None:
    """Analyse one submission end to end. Returns its resulting status.

    Returns None when the submission never became visible; the row is then
    left as it was for the rerun path to pick up.
    """
    if settings is None:
        from pitchflow.config import get_settings

        settings = get_settings()

    submission = await status_updater.fetch_submission_with_retry(db, submission_id, settings=settings)
    if submission is None:
        logger.error("analysis_dispatch_error: submission_id=%s not found", submission_id)
        return None

    claimed = status_updater.claim_for_analysis(db, submission_id, generation, fanout=fanout)
    if claimed is None:
        current = db.get(Submission, submission_id)
        return current.analysis_status if current else None

    try:
        submission = db.get(Submission, submission_id)
        request = await build_extraction_request(
            db, submission, routine, blob_store or get_blob_store(), settings
        )
        result = await (extraction or ExtractionService(settings=settings)).extract(request)
    except ExtractionError as exc:
        status_updater.fail_analysis(db, submission_id, claimed, str(exc), kind="extraction", fanout=fanout)
        return status_updater.FAILED
    except Exception as exc:
        logger.exception("analysis_unexpected_error: submission_id=%s", submission_id)
        status_updater.fail_analysis(
            db, submission_id, claimed, f"Analysis error: {exc}", kind="extraction", fanout=fanout
        )
        return status_updater.FAILED

    if status_updater.complete_analysis(db, submission_id, claimed, result, fanout=fanout):
        return status_updater.COMPLETED
    current = db.get(Submission, submission_id)
    return current.analysis_status if current else None


def run_analysis_job(job: AnalysisJob) -> None:
    """Dispatcher entry point: own session, own event loop."""
    db = SessionLocal()
    try:
        status = asyncio.run(run_analysis(db, job.submission_id, job.routine, job.generation))
        logger.info(
            "analysis_job_finished: submission_id=%s routine=%s status=%s",
            job.submission_id,
            job.routine,
            status,
        )
    except Exception:
        logger.exception("analysis_job_crashed: submission_id=%s", job.submission_id)
    finally:
        db.close()
