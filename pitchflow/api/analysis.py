"""Analysis trigger endpoint."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from pitchflow.api.deps import get_db, get_dispatcher, require_auth
from pitchflow.models.user import User
from pitchflow.pipeline.dispatch import Dispatcher
from pitchflow.pipeline.router import route_submission
from pitchflow.schemas.submission import TriggerRequest

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/trigger")
def trigger_analysis(
    body: TriggerRequest,
    db: Session = Depends(get_db),
    dispatcher: Dispatcher = Depends(get_dispatcher),
    _user: User = Depends(require_auth),
) -> dict:
    """Route a submission to its extraction routine and dispatch it.

    Returns once the job is queued. Calling again for the same submission
    is safe: submissions already processing or finished are not re-dispatched.
    """
    return route_submission(db, body.submission_id, dispatcher).to_response()
