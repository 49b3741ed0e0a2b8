"""Company API: evaluated companies, enrichment and deletion."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from pitchflow.api.deps import get_db, require_admin, require_auth
from pitchflow.models.company import Company
from pitchflow.models.user import User
from pitchflow.notifications.cache import COMPANIES_GROUP
from pitchflow.notifications.fanout import get_query_cache
from pitchflow.schemas.company import CompanyEnrichment, CompanyListItem, CompanyRead
from pitchflow.services import companies as company_service

router = APIRouter()


@router.get("")
def list_companies(
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
    _user: User = Depends(require_auth),
) -> list[dict]:
    def load() -> list[dict]:
        rows = company_service.list_companies(db, limit=limit, offset=offset)
        return [CompanyListItem.model_validate(row).model_dump(mode="json") for row in rows]

    return get_query_cache().get_or_load(COMPANIES_GROUP, (limit, offset), load)


@router.get("/{company_id}", response_model=CompanyRead)
def get_company(
    company_id: int,
    db: Session = Depends(get_db),
    _user: User = Depends(require_auth),
) -> Company:
    company = company_service.get_company(db, company_id)
    if company is None:
        raise HTTPException(status_code=404, detail="Company not found")
    return company


@router.patch("/{company_id}/enrichment")
def enrich_company(
    company_id: int,
    body: CompanyEnrichment,
    db: Session = Depends(get_db),
    _user: User = Depends(require_auth),
) -> dict:
    """Fill empty profile fields; values already present are left untouched."""
    company, filled = company_service.apply_enrichment(db, company_id, body.model_dump())
    if company is None:
        raise HTTPException(status_code=404, detail="Company not found")
    get_query_cache().invalidate(COMPANIES_GROUP)
    return {"success": True, "companyId": company.id, "filled": filled}


@router.delete("/{company_id}")
def delete_company(
    company_id: int,
    db: Session = Depends(get_db),
    _admin: User = Depends(require_admin),
) -> dict:
    """Delete the company with its sections, research and submissions."""
    if not company_service.delete_company(db, company_id):
        raise HTTPException(status_code=404, detail="Company not found")
    return {"success": True, "companyId": company_id}
