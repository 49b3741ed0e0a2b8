"""Public form intake (no authentication) and form configuration."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy import select
from sqlalchemy.orm import Session
from starlette.datastructures import UploadFile

from pitchflow.api.deps import get_db, get_dispatcher, require_admin, require_auth
from pitchflow.config import get_settings
from pitchflow.models.public_form import PublicForm
from pitchflow.models.user import User
from pitchflow.notifications.cache import PUBLIC_SUBMISSIONS_GROUP, SUBMISSIONS_GROUP
from pitchflow.notifications.fanout import get_query_cache
from pitchflow.pipeline.dispatch import Dispatcher
from pitchflow.pipeline.router import route_submission
from pitchflow.schemas.forms import PublicFormCreate, PublicFormRead
from pitchflow.schemas.submission import IntakeResponse, SubmissionRead
from pitchflow.services import submission_store
from pitchflow.services.intake import IntakeError, UploadedDocument, get_active_form, intake_public_form
from pitchflow.storage.blob_store import get_blob_store

logger = logging.getLogger(__name__)

public_router = APIRouter()
forms_router = APIRouter()

MAX_FORM_FIELDS = 50
_IDENTITY_FIELDS = ("company_name", "submitter_email", "submitter_name")


@public_router.get("/forms/{slug}", response_model=PublicFormRead)
def get_public_form(slug: str, db: Session = Depends(get_db)) -> PublicForm:
    return get_active_form(db, slug)


@public_router.post(
    "/forms/{slug}/submissions",
    response_model=IntakeResponse,
    response_model_exclude_none=True,
)
async def submit_public_form(
    slug: str,
    request: Request,
    db: Session = Depends(get_db),
    dispatcher: Dispatcher = Depends(get_dispatcher),
) -> IntakeResponse:
    """Accept a public form post (multipart or urlencoded).

    Identity fields are company_name, submitter_email and submitter_name; an
    optional ``file`` carries a PDF deck; every other field is kept as an answer.
    """
    form = await request.form()
    if len(form) > MAX_FORM_FIELDS:
        raise IntakeError(f"Too many fields (limit {MAX_FORM_FIELDS})")

    document = None
    answers: dict[str, str] = {}
    for key, value in form.multi_items():
        if isinstance(value, UploadFile):
            if key in _IDENTITY_FIELDS:
                raise IntakeError(f"Field '{key}' must be text")
            if key == "file" and value.filename:
                document = UploadedDocument(
                    filename=value.filename,
                    content=await value.read(),
                    content_type=value.content_type,
                )
            continue
        if key not in _IDENTITY_FIELDS:
            answers[key] = value

    submission, form_config = intake_public_form(
        db,
        slug,
        company_name=form.get("company_name"),
        submitter_email=form.get("submitter_email"),
        submitter_name=form.get("submitter_name"),
        answers=answers,
        document=document,
        blob_store=get_blob_store(),
        settings=get_settings(),
    )
    get_query_cache().invalidate(SUBMISSIONS_GROUP, PUBLIC_SUBMISSIONS_GROUP)

    if form_config.auto_analyze:
        route_submission(db, submission.id, dispatcher)
    else:
        logger.info("auto_analyze_disabled: form=%s submission_id=%s", slug, submission.id)
    return IntakeResponse(success=True, id=submission.id)


@forms_router.post("", response_model=PublicFormRead, status_code=201)
def create_form(
    body: PublicFormCreate,
    db: Session = Depends(get_db),
    _admin: User = Depends(require_admin),
) -> PublicForm:
    if db.scalar(select(PublicForm.id).where(PublicForm.slug == body.slug)) is not None:
        raise HTTPException(status_code=409, detail=f"Form '{body.slug}' already exists")
    form = PublicForm(**body.model_dump())
    db.add(form)
    db.commit()
    db.refresh(form)
    logger.info("public_form_created: slug=%s auto_analyze=%s", form.slug, form.auto_analyze)
    return form


@forms_router.get("/{slug}/submissions")
def list_form_submissions(
    slug: str,
    status: str | None = Query(None),
    db: Session = Depends(get_db),
    _user: User = Depends(require_auth),
) -> list[dict]:
    """Submissions received through one public form (cached per slug/status)."""

    def load() -> list[dict]:
        if status:
            rows = submission_store.find_by_slug_and_status(db, slug, status)
        else:
            rows = submission_store.list_submissions(db, form_slug=slug, limit=500)
        return [SubmissionRead.model_validate(row).model_dump(mode="json") for row in rows]

    return get_query_cache().get_or_load(PUBLIC_SUBMISSIONS_GROUP, (slug, status), load)
