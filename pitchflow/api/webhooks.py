"""Inbound email webhook."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Body, Depends
from sqlalchemy.orm import Session

from pitchflow.api.deps import get_db, get_dispatcher, require_webhook_token
from pitchflow.config import get_settings
from pitchflow.notifications.cache import SUBMISSIONS_GROUP
from pitchflow.notifications.fanout import get_query_cache
from pitchflow.pipeline.dispatch import Dispatcher
from pitchflow.pipeline.router import route_submission
from pitchflow.schemas.submission import IntakeResponse
from pitchflow.services.intake import intake_email

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/email", response_model=IntakeResponse, response_model_exclude_none=True)
def receive_email(
    payload: dict[str, Any] = Body(...),
    db: Session = Depends(get_db),
    dispatcher: Dispatcher = Depends(get_dispatcher),
    _token: None = Depends(require_webhook_token),
) -> IntakeResponse:
    """Store an inbound pitch email; analyse it when it carries an attachment."""
    submission = intake_email(db, payload)
    get_query_cache().invalidate(SUBMISSIONS_GROUP)
    if get_settings().email_auto_analyze and submission.document_url:
        route_submission(db, submission.id, dispatcher)
    return IntakeResponse(success=True, id=submission.id)
