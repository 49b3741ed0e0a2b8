"""Internal job endpoints for cron/scripts.

Secured with a static token (X-Internal-Token header), not cookie auth.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Body, Depends
from sqlalchemy.orm import Session

from pitchflow.api.deps import get_db, get_dispatcher, require_internal_token
from pitchflow.pipeline.dispatch import Dispatcher, get_thread_pool_dispatcher
from pitchflow.pipeline.router import route_submission
from pitchflow.schemas.submission import RerunRequest, TriggerRequest
from pitchflow.services.rerun import rerun_submissions

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/internal", include_in_schema=False)


def get_rerun_dispatcher() -> Dispatcher:
    """Worker-pool dispatcher so reruns start while the request is still pacing them."""
    return get_thread_pool_dispatcher()


@router.post("/trigger_analysis")
def trigger_analysis(
    body: TriggerRequest,
    db: Session = Depends(get_db),
    dispatcher: Dispatcher = Depends(get_dispatcher),
    _token: None = Depends(require_internal_token),
) -> dict:
    return route_submission(db, body.submission_id, dispatcher).to_response()


@router.post("/rerun_analysis")
def rerun_analysis(
    body: RerunRequest | None = Body(None),
    db: Session = Depends(get_db),
    dispatcher: Dispatcher = Depends(get_rerun_dispatcher),
    _token: None = Depends(require_internal_token),
) -> dict:
    """Rerun failed and low-scoring analyses (or the given submissionIds).

    Returns {processed, failed, total, results}.
    """
    body = body or RerunRequest()
    try:
        summary = rerun_submissions(
            db,
            dispatcher,
            submission_ids=body.submission_ids,
            family=body.family,
        )
        return {"status": "completed", **summary.to_dict()}
    except Exception as exc:
        logger.exception("Internal rerun failed")
        return {"status": "failed", "error": str(exc)}
