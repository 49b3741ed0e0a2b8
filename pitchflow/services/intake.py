"""
Intake: turn uploads, public form posts and inbound emails into submissions.

Every entrypoint validates synchronously and raises ``IntakeError`` before
anything is written; a submission only exists once its payload was accepted.
"""

from __future__ import annotations

import logging
import re
import uuid
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.orm import Session

from pitchflow.extraction.document_text import looks_like_pdf
from pitchflow.models.public_form import PublicForm
from pitchflow.models.submission import Submission, SubmissionSource
from pitchflow.schemas.webhook import EmailWebhookPayload
from pitchflow.services.submission_store import create_submission

if TYPE_CHECKING:
    from pitchflow.config import Settings
    from pitchflow.models.user import User
    from pitchflow.storage.blob_store import BlobStore

logger = logging.getLogger(__name__)

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
_FILENAME_SAFE_RE = re.compile(r"[^A-Za-z0-9._-]+")

MAX_FIELD_LENGTH = 10_000


class IntakeError(ValueError):
    """Payload rejected at an intake entrypoint; no submission was created."""

    def __init__(self, message: str, status_code: int = 400) -> None:
        super().__init__(message)
        self.status_code = status_code


@dataclass
class UploadedDocument:
    filename: str
    content: bytes
    content_type: str | None = None


# ── Validation helpers ──────────────────────────────────────────────


def _required_text(value: str | None, field_name: str, max_length: int = 255) -> str:
    text = (value or "").strip()
    if not text:
        raise IntakeError(f"Missing required field: {field_name}")
    if len(text) > max_length:
        raise IntakeError(f"Field '{field_name}' exceeds {max_length} characters")
    return text


def _optional_email(value: str | None) -> str | None:
    text = (value or "").strip()
    if not text:
        return None
    if not _EMAIL_RE.match(text):
        raise IntakeError(f"Invalid email address: {text}")
    return text.lower()


def _clean_answers(answers: dict[str, Any] | None) -> dict[str, str]:
    cleaned: dict[str, str] = {}
    for key, value in (answers or {}).items():
        if value is None:
            continue
        text = str(value).strip()
        if not text:
            continue
        if len(text) > MAX_FIELD_LENGTH:
            raise IntakeError(f"Field '{key}' exceeds {MAX_FIELD_LENGTH} characters")
        cleaned[key] = text
    return cleaned


def _validate_pdf(document: UploadedDocument, max_bytes: int) -> None:
    if not document.content:
        raise IntakeError("Uploaded file is empty")
    if len(document.content) > max_bytes:
        raise IntakeError(f"Uploaded file exceeds {max_bytes} bytes", status_code=413)
    if not looks_like_pdf(document.content):
        raise IntakeError("Only PDF pitch decks are accepted")


def _store_document(
    blob_store: BlobStore, prefix: str, document: UploadedDocument
) -> str:
    stem = _FILENAME_SAFE_RE.sub("-", document.filename.rsplit(".", 1)[0])[:60].strip("-") or "deck"
    path = f"{prefix}/{uuid.uuid4().hex}-{stem}.pdf"
    return blob_store.put(path, document.content, document.content_type or "application/pdf")


# ── Entrypoints ─────────────────────────────────────────────────────


def intake_upload(
    db: Session,
    user: User,
    document: UploadedDocument | None,
    company_name: str | None,
    blob_store: BlobStore,
    settings: Settings,
    submitter_email: str | None = None,
    notes: str | None = None,
) -> Submission:
    """Authenticated pitch-deck upload."""
    name = _required_text(company_name, "company_name")
    email = _optional_email(submitter_email) or user.email
    if document is None:
        raise IntakeError("Missing required field: file")
    _validate_pdf(document, settings.max_upload_bytes)

    path = _store_document(blob_store, f"uploads/{user.id}", document)
    form_data = _clean_answers({"notes": notes})
    return create_submission(
        db,
        source=SubmissionSource.UPLOAD.value,
        company_name=name,
        submitter_email=email,
        submitter_name=user.username,
        form_data=form_data or None,
        document_path=path,
        user_id=user.id,
    )


def get_active_form(db: Session, slug: str) -> PublicForm:
    form = db.scalar(select(PublicForm).where(PublicForm.slug == slug))
    if form is None or not form.is_active:
        raise IntakeError(f"Form not found: {slug}", status_code=404)
    return form


def intake_public_form(
    db: Session,
    slug: str,
    company_name: str | None,
    submitter_email: str | None,
    blob_store: BlobStore,
    settings: Settings,
    submitter_name: str | None = None,
    answers: dict[str, Any] | None = None,
    document: UploadedDocument | None = None,
) -> tuple[Submission, PublicForm]:
    """Unauthenticated public form post. Returns the submission and its form config."""
    form = get_active_form(db, slug)
    name = _required_text(company_name, "company_name")
    email = _optional_email(_required_text(submitter_email, "submitter_email", 320))
    form_data = _clean_answers(answers)

    path = None
    if document is not None:
        _validate_pdf(document, settings.max_upload_bytes)
        path = _store_document(blob_store, f"forms/{form.slug}", document)

    submission = create_submission(
        db,
        source=SubmissionSource.PUBLIC_FORM.value,
        form_slug=form.slug,
        company_name=name,
        submitter_email=email,
        submitter_name=(submitter_name or "").strip() or None,
        form_data=form_data or None,
        document_path=path,
    )
    return submission, form


def intake_email(db: Session, payload: dict[str, Any]) -> Submission:
    """Normalize an inbound-email webhook payload into a submission."""
    try:
        message = EmailWebhookPayload.model_validate(payload)
    except ValidationError as exc:
        first = exc.errors()[0]
        location = ".".join(str(part) for part in first.get("loc", ()))
        raise IntakeError(f"Invalid email payload: {location or 'body'}: {first.get('msg')}") from None

    sender = message.mail_sender[0]
    sender_email = _optional_email(sender.address)
    if sender_email is None:
        raise IntakeError("Invalid email payload: mail_sender.0.address: empty")

    existing = db.scalar(select(Submission.id).where(Submission.external_id == message.id))
    if existing is not None:
        raise IntakeError(f"Email {message.id} already received", status_code=409)

    attachment = next((a for a in message.mail_attachment if a.url), None)
    company_name = (message.company_name or "").strip() or (sender.name or "").strip() or sender_email
    form_data = _clean_answers(
        {
            "received_at": message.received_at,
            "attachment_name": attachment.filename if attachment else None,
        }
    )
    return create_submission(
        db,
        source=SubmissionSource.EMAIL.value,
        company_name=company_name[:255],
        submitter_email=sender_email,
        submitter_name=(sender.name or "").strip() or None,
        form_data=form_data or None,
        document_url=attachment.url if attachment else None,
        external_id=message.id,
    )
