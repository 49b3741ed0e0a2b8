"""Company model: the materialized evaluation of one submission."""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import JSON, DateTime, Float, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from pitchflow.db.session import Base


class Company(Base):
    """Company evaluated by PitchFlow.

    ``overall_score`` is stored on the 0-5 display scale; conversion from the
    extraction scale happens once, when the status updater writes the row.
    """

    __tablename__ = "companies"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    overall_score: Mapped[float | None] = mapped_column(Float, nullable=True)
    recommendation: Mapped[str | None] = mapped_column(String(64), nullable=True)
    scoring_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    assessment_points: Mapped[list[str]] = mapped_column(JSON, default=list, nullable=False)
    source: Mapped[str] = mapped_column(String(32), default="upload", nullable=False)
    # Submission that produced this company (1:1); plain column to avoid a circular FK
    origin_submission_id: Mapped[str | None] = mapped_column(
        String(36), nullable=True, unique=True, index=True
    )

    # Optional profile fields; enrichment only ever fills these when empty
    industry: Mapped[str | None] = mapped_column(String(255), nullable=True)
    stage: Mapped[str | None] = mapped_column(String(64), nullable=True)
    website_url: Mapped[str | None] = mapped_column(String(2048), nullable=True)
    email: Mapped[str | None] = mapped_column(String(320), nullable=True)
    poc_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(64), nullable=True)
    introduction: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=lambda: datetime.now(timezone.utc), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    sections: Mapped[list["Section"]] = relationship(
        "Section", back_populates="company", order_by="Section.position"
    )
    research: Mapped[list["CompanyResearch"]] = relationship(
        "CompanyResearch", back_populates="company"
    )
