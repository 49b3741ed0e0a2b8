"""Notice feed: success/failure notices with redirect hints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query

from pitchflow.api.deps import get_current_user
from pitchflow.models.user import User
from pitchflow.notifications.fanout import get_notice_board

router = APIRouter()


@router.get("")
def list_notices(
    submission_id: str | None = Query(None, alias="submissionId"),
    limit: int = Query(50, ge=1, le=200),
    user: User | None = Depends(get_current_user),
) -> list[dict]:
    """Recent notices, newest first.

    Anonymous callers (public form submitters) must name a submission.
    """
    if submission_id is None and user is None:
        raise HTTPException(status_code=401, detail="Not authenticated")
    notices = get_notice_board().recent(limit=limit, submission_id=submission_id)
    return [notice.to_dict() for notice in notices]
