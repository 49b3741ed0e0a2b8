"""
Submission store: creation and read access for submissions.

Status fields are deliberately absent from the write API here; they belong to
``pitchflow.services.status_updater``.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator, Sequence
from typing import Any, TypeVar

from sqlalchemy import select
from sqlalchemy.orm import Session

from pitchflow.models.submission import AnalysisStatus, Submission

logger = logging.getLogger(__name__)

T = TypeVar("T")

_CREATE_FIELDS = frozenset(
    {
        "company_name",
        "submitter_name",
        "submitter_email",
        "form_data",
        "document_path",
        "document_url",
        "external_id",
        "user_id",
    }
)


def chunked(items: Iterable[T], size: int = 100) -> Iterator[list[T]]:
    """Yield successive lists of at most size items."""
    if size < 1:
        raise ValueError("chunk size must be >= 1")
    batch: list[T] = []
    for item in items:
        batch.append(item)
        if len(batch) == size:
            yield batch
            batch = []
    if batch:
        yield batch


def create_submission(
    db: Session,
    source: str,
    form_slug: str | None = None,
    **fields: Any,
) -> Submission:
    """Insert a new submission at status ``pending`` and return it."""
    unknown = set(fields) - _CREATE_FIELDS
    if unknown:
        raise TypeError(f"Unknown submission fields: {sorted(unknown)}")
    submission = Submission(
        source=source,
        form_slug=form_slug,
        analysis_status=AnalysisStatus.PENDING.value,
        **fields,
    )
    db.add(submission)
    db.commit()
    db.refresh(submission)
    logger.info(
        "submission_created: id=%s source=%s form_slug=%s",
        submission.id,
        source,
        form_slug,
    )
    return submission


def get_submission(db: Session, submission_id: str) -> Submission | None:
    return db.get(Submission, submission_id)


def find_by_slug_and_status(db: Session, form_slug: str, status: str) -> list[Submission]:
    stmt = (
        select(Submission)
        .where(Submission.form_slug == form_slug, Submission.analysis_status == status)
        .order_by(Submission.created_at.desc())
    )
    return list(db.scalars(stmt))


def list_submissions(
    db: Session,
    source: str | None = None,
    form_slug: str | None = None,
    status: str | None = None,
    limit: int = 100,
    offset: int = 0,
) -> list[Submission]:
    stmt = select(Submission)
    if source:
        stmt = stmt.where(Submission.source == source)
    if form_slug:
        stmt = stmt.where(Submission.form_slug == form_slug)
    if status:
        stmt = stmt.where(Submission.analysis_status == status)
    stmt = stmt.order_by(Submission.created_at.desc()).offset(offset).limit(limit)
    return list(db.scalars(stmt))


def get_submissions_by_ids(
    db: Session, submission_ids: Sequence[str], chunk_size: int = 100
) -> list[Submission]:
    """Load many submissions, querying in chunks to bound IN-list size."""
    found: list[Submission] = []
    for batch in chunked(dict.fromkeys(submission_ids), chunk_size):
        found.extend(db.scalars(select(Submission).where(Submission.id.in_(batch))))
    return found
