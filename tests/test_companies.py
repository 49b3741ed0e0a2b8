"""Tests for company reads, enrichment and cascading deletion."""

from __future__ import annotations

from fastapi.testclient import TestClient
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from pitchflow.extraction.routines import BARC_ROUTINE, get_routine
from pitchflow.extraction.service import parse_extraction_payload
from pitchflow.models import Company, CompanyResearch, Section, SectionDetail, Submission
from pitchflow.notifications import COMPANIES_GROUP, QueryCache
from pitchflow.services import status_updater
from pitchflow.services.companies import apply_enrichment, delete_company
from tests.fakes import make_payload, make_submission


def analysed_company(db: Session, score: float = 84, **fields) -> Company:
    submission = make_submission(db, **fields)
    generation = status_updater.claim_for_analysis(db, submission.id)
    result = parse_extraction_payload(get_routine(BARC_ROUTINE), make_payload(BARC_ROUTINE, score))
    assert status_updater.complete_analysis(db, submission.id, generation, result)
    db.expire_all()
    return db.scalar(select(Company).where(Company.origin_submission_id == submission.id))


def _count(db: Session, model) -> int:
    return db.scalar(select(func.count()).select_from(model))


class TestEnrichment:
    def test_fills_only_empty_fields(self, db: Session):
        company = analysed_company(db)
        assert company.industry == "Fintech"

        updated, filled = apply_enrichment(
            db,
            company.id,
            {"industry": "Robotics", "stage": "Seed", "website_url": " https://acme.io ", "phone": ""},
        )

        assert filled == ["stage", "website_url"]
        assert updated.industry == "Fintech"
        assert updated.stage == "Seed"
        assert updated.website_url == "https://acme.io"

    def test_research_record(self, db: Session):
        company = analysed_company(db)
        _, filled = apply_enrichment(
            db,
            company.id,
            {
                "research_type": "competitors",
                "research_content": "Three funded competitors in the EU.",
                "research_sources": ["https://example.com/report"],
            },
        )
        assert filled == ["research"]
        research = db.scalar(select(CompanyResearch).where(CompanyResearch.company_id == company.id))
        assert research.research_type == "competitors"
        assert research.sources == ["https://example.com/report"]

    def test_unknown_company(self, db: Session):
        assert apply_enrichment(db, 999, {"stage": "Seed"}) == (None, [])


class TestDelete:
    def test_cascades_to_sections_research_and_submissions(self, db: Session):
        company = analysed_company(db)
        other = analysed_company(db, company_name="Other Co")
        apply_enrichment(db, company.id, {"research_content": "Notes"})
        cache = QueryCache()
        cache.get_or_load(COMPANIES_GROUP, "all", lambda: ["stale"])

        assert delete_company(db, company.id, cache=cache) is True

        db.expire_all()
        assert db.get(Company, company.id) is None
        assert db.scalar(select(func.count()).select_from(Section).where(Section.company_id == company.id)) == 0
        assert _count(db, CompanyResearch) == 0
        assert _count(db, Submission) == 1
        assert _count(db, Section) == len(get_routine(BARC_ROUTINE).sections)
        assert _count(db, SectionDetail) == 2 * len(get_routine(BARC_ROUTINE).sections)
        assert db.get(Company, other.id) is not None
        assert cache.size(COMPANIES_GROUP) == 0

    def test_deletes_origin_submission_detached_by_rerun(self, db: Session):
        company = analysed_company(db)
        origin_id = company.origin_submission_id
        assert status_updater.request_rerun(db, origin_id) is not None

        assert delete_company(db, company.id, cache=QueryCache()) is True
        db.expire_all()
        assert db.get(Submission, origin_id) is None

    def test_unknown_company(self, db: Session):
        assert delete_company(db, 999, cache=QueryCache()) is False


class TestCompaniesApi:
    def test_list_and_detail(self, client: TestClient, db: Session, reviewer_headers):
        high = analysed_company(db, 90, company_name="High Co")
        analysed_company(db, 40, company_name="Low Co")

        listed = client.get("/api/companies", headers=reviewer_headers).json()
        assert [(c["name"], c["overall_score"]) for c in listed] == [("High Co", 4.5), ("Low Co", 2.0)]

        detail = client.get(f"/api/companies/{high.id}", headers=reviewer_headers).json()
        assert detail["origin_submission_id"] == high.origin_submission_id
        assert detail["assessment_points"] == ["Strong founders", "Unclear go-to-market"]
        assert [s["type"] for s in detail["sections"]] == [
            spec.type for spec in get_routine(BARC_ROUTINE).sections
        ]
        first = detail["sections"][0]
        assert first["score"] == 3.75
        assert {d["detail_type"] for d in first["details"]} == {"strength", "weakness"}

    def test_list_reflects_completion_after_cache(self, client: TestClient, db: Session, reviewer_headers):
        assert client.get("/api/companies", headers=reviewer_headers).json() == []
        analysed_company(db)
        assert len(client.get("/api/companies", headers=reviewer_headers).json()) == 1

    def test_enrichment_endpoint(self, client: TestClient, db: Session, reviewer_headers):
        company = analysed_company(db)
        resp = client.patch(
            f"/api/companies/{company.id}/enrichment",
            json={"stage": "Series A", "industry": "Other"},
            headers=reviewer_headers,
        )
        assert resp.json() == {"success": True, "companyId": company.id, "filled": ["stage"]}

    def test_delete_requires_admin(self, client: TestClient, db: Session, reviewer_headers, admin_headers):
        company = analysed_company(db)
        assert client.delete(f"/api/companies/{company.id}", headers=reviewer_headers).status_code == 403
        resp = client.delete(f"/api/companies/{company.id}", headers=admin_headers)
        assert resp.json() == {"success": True, "companyId": company.id}
        assert client.delete(f"/api/companies/{company.id}", headers=admin_headers).status_code == 404

    def test_missing_company(self, client: TestClient, reviewer_headers):
        assert client.get("/api/companies/999", headers=reviewer_headers).status_code == 404
        resp = client.patch("/api/companies/999/enrichment", json={}, headers=reviewer_headers)
        assert resp.status_code == 404
