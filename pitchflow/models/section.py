"""Scored section of a company evaluation and its detail lines."""

from __future__ import annotations

from sqlalchemy import Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from pitchflow.db.session import Base


class Section(Base):
    """One scored section (problem, market, team, ...) of a company evaluation."""

    __tablename__ = "sections"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    company_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("companies.id", ondelete="CASCADE"), nullable=False, index=True
    )
    type: Mapped[str] = mapped_column(String(64), nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    score: Mapped[float | None] = mapped_column(Float, nullable=True)  # 0-5 display scale
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    position: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    company: Mapped["Company"] = relationship("Company", back_populates="sections")
    details: Mapped[list["SectionDetail"]] = relationship(
        "SectionDetail", back_populates="section", order_by="SectionDetail.id"
    )


class SectionDetail(Base):
    """Strength/weakness/feedback line attached to a section."""

    __tablename__ = "section_details"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    section_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("sections.id", ondelete="CASCADE"), nullable=False, index=True
    )
    detail_type: Mapped[str] = mapped_column(String(32), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)

    section: Mapped["Section"] = relationship("Section", back_populates="details")
