"""Submission API: authenticated upload, listing, status and rerun."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from pitchflow.api.deps import get_db, get_dispatcher, require_admin, require_auth
from pitchflow.config import get_settings
from pitchflow.models.submission import AnalysisStatus, Submission
from pitchflow.models.user import User
from pitchflow.notifications.cache import SUBMISSIONS_GROUP
from pitchflow.notifications.fanout import get_query_cache
from pitchflow.pipeline.dispatch import AnalysisJob, Dispatcher
from pitchflow.pipeline.router import SubmissionNotFoundError, resolve_routine, route_submission
from pitchflow.schemas.submission import IntakeResponse, ResultSummary, StatusResponse, SubmissionRead
from pitchflow.services import submission_store
from pitchflow.services.intake import UploadedDocument, intake_upload
from pitchflow.services.status_updater import request_rerun
from pitchflow.storage.blob_store import get_blob_store

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/upload", response_model=IntakeResponse, response_model_exclude_none=True)
async def upload_submission(
    file: UploadFile | None = File(None),
    company_name: str | None = Form(None),
    submitter_email: str | None = Form(None),
    notes: str | None = Form(None),
    db: Session = Depends(get_db),
    dispatcher: Dispatcher = Depends(get_dispatcher),
    user: User = Depends(require_auth),
) -> IntakeResponse:
    """Upload a pitch deck (PDF). Analysis starts as soon as the submission is stored."""
    document = None
    if file is not None:
        document = UploadedDocument(
            filename=file.filename or "deck.pdf",
            content=await file.read(),
            content_type=file.content_type,
        )
    submission = intake_upload(
        db,
        user,
        document,
        company_name,
        blob_store=get_blob_store(),
        settings=get_settings(),
        submitter_email=submitter_email,
        notes=notes,
    )
    get_query_cache().invalidate(SUBMISSIONS_GROUP)
    route_submission(db, submission.id, dispatcher)
    return IntakeResponse(success=True, id=submission.id)


@router.get("")
def list_submissions(
    source: str | None = Query(None),
    form_slug: str | None = Query(None),
    status: AnalysisStatus | None = Query(None),
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
    _user: User = Depends(require_auth),
) -> list[dict]:
    status_value = status.value if status else None

    def load() -> list[dict]:
        rows = submission_store.list_submissions(
            db, source=source, form_slug=form_slug, status=status_value, limit=limit, offset=offset
        )
        return [SubmissionRead.model_validate(row).model_dump(mode="json") for row in rows]

    key = (source, form_slug, status_value, limit, offset)
    return get_query_cache().get_or_load(SUBMISSIONS_GROUP, key, load)


@router.get("/{submission_id}", response_model=SubmissionRead)
def get_submission(
    submission_id: str,
    db: Session = Depends(get_db),
    _user: User = Depends(require_auth),
) -> Submission:
    submission = submission_store.get_submission(db, submission_id)
    if submission is None:
        raise HTTPException(status_code=404, detail="Submission not found")
    return submission


@router.get(
    "/{submission_id}/status",
    response_model=StatusResponse,
    response_model_exclude_none=True,
)
def submission_status(submission_id: str, db: Session = Depends(get_db)) -> StatusResponse:
    """Current analysis status; polled by status watchers. No authentication."""
    submission = submission_store.get_submission(db, submission_id)
    if submission is None:
        raise HTTPException(status_code=404, detail="Submission not found")

    summary = None
    if submission.analysis_status == AnalysisStatus.COMPLETED.value and submission.company is not None:
        summary = ResultSummary(
            overall_score=submission.company.overall_score,
            recommendation=submission.company.recommendation,
            analysis_function=(submission.analysis_result or {}).get("routine"),
            analyzed_at=submission.analyzed_at,
        )
    return StatusResponse(
        submission_id=submission.id,
        status=submission.analysis_status,
        company_id=submission.company_id,
        result_summary=summary,
        error=submission.analysis_error,
    )


@router.post("/{submission_id}/rerun")
def rerun_submission(
    submission_id: str,
    db: Session = Depends(get_db),
    dispatcher: Dispatcher = Depends(get_dispatcher),
    _admin: User = Depends(require_admin),
):
    """Reset a completed or failed submission to processing and analyse it again."""
    submission = submission_store.get_submission(db, submission_id)
    if submission is None:
        raise SubmissionNotFoundError(submission_id)
    routine = resolve_routine(submission)

    generation = request_rerun(db, submission_id)
    if generation is None:
        return JSONResponse(
            status_code=409,
            content={
                "success": False,
                "error": "Submission is not completed or failed",
                "submissionId": submission_id,
            },
        )
    dispatcher.submit(AnalysisJob(submission_id, routine, generation))
    return {
        "success": True,
        "submissionId": submission_id,
        "analysisFunction": routine,
        "result": {"dispatched": True, "status": AnalysisStatus.PROCESSING.value},
    }
