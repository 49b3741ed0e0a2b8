"""Company schemas."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class SectionDetailRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    detail_type: str
    content: str


class SectionRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    type: str
    title: str
    score: float | None = None
    description: str | None = None
    details: list[SectionDetailRead] = []


class CompanyListItem(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    overall_score: float | None = None
    recommendation: str | None = None
    source: str
    industry: str | None = None
    created_at: datetime


class CompanyRead(CompanyListItem):
    scoring_reason: str | None = None
    assessment_points: list[str] = []
    stage: str | None = None
    website_url: str | None = None
    email: str | None = None
    poc_name: str | None = None
    phone: str | None = None
    introduction: str | None = None
    origin_submission_id: str | None = None
    sections: list[SectionRead] = []


class CompanyEnrichment(BaseModel):
    """Optional profile fields; only empty fields on the company are filled."""

    industry: str | None = Field(None, max_length=255)
    stage: str | None = Field(None, max_length=64)
    website_url: str | None = Field(None, max_length=2048)
    email: str | None = Field(None, max_length=320)
    poc_name: str | None = Field(None, max_length=255)
    phone: str | None = Field(None, max_length=64)
    introduction: str | None = None
    research_type: str | None = Field(None, max_length=64)
    research_content: str | None = None
    research_sources: list[str] = []
