"""Submission, trigger and status schemas.

Client-facing payloads use camelCase keys (``submissionId``, ``companyId``).
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class IntakeResponse(BaseModel):
    success: bool
    id: str | None = None
    error: str | None = None


class TriggerRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    submission_id: str = Field(..., alias="submissionId", min_length=1)


class RerunRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    submission_ids: list[str] | None = Field(None, alias="submissionIds")
    family: str | None = None


class ResultSummary(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    overall_score: float | None = Field(None, alias="overallScore")
    recommendation: str | None = None
    analysis_function: str | None = Field(None, alias="analysisFunction")
    analyzed_at: datetime | None = Field(None, alias="analyzedAt")


class StatusResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    submission_id: str = Field(..., alias="submissionId")
    status: str
    company_id: int | None = Field(None, alias="companyId")
    result_summary: ResultSummary | None = Field(None, alias="resultSummary")
    error: str | None = None


class SubmissionRead(BaseModel):
    """Reviewer view of a submission."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    source: str
    form_slug: str | None = None
    company_name: str | None = None
    submitter_name: str | None = None
    submitter_email: str | None = None
    analysis_status: str
    analysis_error: str | None = None
    analysis_error_kind: str | None = None
    company_id: int | None = None
    form_data: dict[str, Any] | None = None
    created_at: datetime
    analyzed_at: datetime | None = None
