"""Company reads, additive enrichment and cascading deletion."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from sqlalchemy import delete, select
from sqlalchemy.orm import Session, selectinload

from pitchflow.models.company import Company
from pitchflow.models.company_research import CompanyResearch
from pitchflow.models.section import Section, SectionDetail
from pitchflow.models.submission import Submission

if TYPE_CHECKING:
    from pitchflow.notifications.cache import QueryCache

logger = logging.getLogger(__name__)

ENRICHABLE_FIELDS = ("industry", "stage", "website_url", "email", "poc_name", "phone", "introduction")


def list_companies(db: Session, limit: int = 100, offset: int = 0) -> list[Company]:
    stmt = (
        select(Company)
        .order_by(Company.overall_score.desc().nulls_last(), Company.created_at.desc())
        .offset(offset)
        .limit(limit)
    )
    return list(db.scalars(stmt))


def get_company(db: Session, company_id: int) -> Company | None:
    stmt = (
        select(Company)
        .where(Company.id == company_id)
        .options(selectinload(Company.sections).selectinload(Section.details))
    )
    return db.scalar(stmt)


def apply_enrichment(db: Session, company_id: int, data: dict[str, Any]) -> tuple[Company | None, list[str]]:
    """Fill empty optional fields and attach a research record if given.

    Existing values are never overwritten. Returns (company, filled_field_names).
    """
    company = db.get(Company, company_id)
    if company is None:
        return None, []

    filled: list[str] = []
    for field in ENRICHABLE_FIELDS:
        value = data.get(field)
        if value is None or not str(value).strip():
            continue
        if getattr(company, field):
            continue
        setattr(company, field, str(value).strip())
        filled.append(field)

    content = (data.get("research_content") or "").strip()
    if content:
        db.add(
            CompanyResearch(
                company_id=company.id,
                research_type=data.get("research_type") or "general",
                content=content,
                sources=list(data.get("research_sources") or []),
            )
        )
        filled.append("research")

    db.commit()
    db.refresh(company)
    logger.info("company_enriched: company_id=%d fields=%s", company_id, ",".join(filled) or "-")
    return company, filled


def delete_company(db: Session, company_id: int, cache: QueryCache | None = None) -> bool:
    """Delete a company and everything that depends on it, in one transaction.

    Order: section details, sections, research, referencing submissions,
    then the company row.
    """
    company = db.get(Company, company_id)
    if company is None:
        return False

    section_ids = select(Section.id).where(Section.company_id == company_id)
    submission_filter = (Submission.company_id == company_id)
    if company.origin_submission_id:
        submission_filter = submission_filter | (Submission.id == company.origin_submission_id)

    try:
        details = db.execute(delete(SectionDetail).where(SectionDetail.section_id.in_(section_ids)))
        sections = db.execute(delete(Section).where(Section.company_id == company_id))
        research = db.execute(delete(CompanyResearch).where(CompanyResearch.company_id == company_id))
        submissions = db.execute(delete(Submission).where(submission_filter))
        db.execute(delete(Company).where(Company.id == company_id))
        db.commit()
    except Exception:
        db.rollback()
        logger.exception("company_delete_failed: company_id=%d", company_id)
        raise

    logger.info(
        "company_deleted: company_id=%d section_details=%d sections=%d research=%d submissions=%d",
        company_id,
        details.rowcount,
        sections.rowcount,
        research.rowcount,
        submissions.rowcount,
    )
    if cache is None:
        from pitchflow.notifications.fanout import get_query_cache

        cache = get_query_cache()
    from pitchflow.notifications.cache import COMPANIES_GROUP, SUBMISSION_LIST_GROUPS

    cache.invalidate(COMPANIES_GROUP, *SUBMISSION_LIST_GROUPS)
    return True
