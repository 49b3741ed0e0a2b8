"""Submission model: one row per inbound pitch deck."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from sqlalchemy import JSON, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from pitchflow.db.session import Base


class AnalysisStatus(str, Enum):
    """Lifecycle of a submission's analysis."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


TERMINAL_STATUSES = frozenset({AnalysisStatus.COMPLETED.value, AnalysisStatus.FAILED.value})


class SubmissionSource(str, Enum):
    """Intake channel that produced the submission."""

    UPLOAD = "upload"
    PUBLIC_FORM = "public_form"
    EMAIL = "email"


class Submission(Base):
    """Raw pitch-deck submission and its analysis state.

    Only the status updater writes ``analysis_status``, ``analysis_result``,
    ``analysis_error`` and ``company_id``.
    """

    __tablename__ = "submissions"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    source: Mapped[str] = mapped_column(String(32), nullable=False, index=True)
    form_slug: Mapped[str | None] = mapped_column(String(128), nullable=True, index=True)

    analysis_status: Mapped[str] = mapped_column(
        String(16), default=AnalysisStatus.PENDING.value, nullable=False, index=True
    )
    analysis_result: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    analysis_error: Mapped[str | None] = mapped_column(Text, nullable=True)
    analysis_error_kind: Mapped[str | None] = mapped_column(String(32), nullable=True)
    # Bumped on every claim/rerun; terminal writes must carry the current value
    analysis_generation: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    company_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("companies.id", ondelete="SET NULL"), nullable=True, index=True
    )

    company_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    submitter_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    submitter_email: Mapped[str | None] = mapped_column(String(320), nullable=True)
    form_data: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    document_path: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    document_url: Mapped[str | None] = mapped_column(String(2048), nullable=True)
    external_id: Mapped[str | None] = mapped_column(
        String(255), nullable=True, unique=True
    )  # email provider message id
    user_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=lambda: datetime.now(UTC), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
        nullable=False,
    )
    analyzed_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    company: Mapped["Company | None"] = relationship("Company", foreign_keys=[company_id])

    @property
    def is_terminal(self) -> bool:
        return self.analysis_status in TERMINAL_STATUSES
