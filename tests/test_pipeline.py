"""Tests for routing + background analysis jobs end to end (no HTTP)."""

from __future__ import annotations

import threading
import time

import httpx
import pytest
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from pitchflow.extraction.routines import BARC_ROUTINE, EUREKA_ROUTINE, PITCH_DECK_ROUTINE
from pitchflow.extraction.service import ExtractionService
from pitchflow.models import Company, PublicForm, Submission
from pitchflow.pipeline.analysis_job import (
    build_extraction_request,
    format_answers,
    load_submission_document,
    run_analysis,
    run_analysis_job,
)
from pitchflow.pipeline.dispatch import AnalysisJob, ThreadPoolDispatcher
from pitchflow.pipeline.router import SubmissionNotFoundError, route_submission
from pitchflow.storage.blob_store import get_blob_store
from tests.fakes import FakeLLM, RecordingDispatcher, make_pdf, make_submission


def _reload(db: Session, submission_id: str) -> Submission:
    db.expire_all()
    return db.get(Submission, submission_id)


def _company_count(db: Session) -> int:
    return db.scalar(select(func.count()).select_from(Company))


# ---------------------------------------------------------------------------
# Router
# ---------------------------------------------------------------------------


class TestRouteSubmission:
    def test_eureka_slug_dispatches_eureka_routine(self, db: Session):
        submission = make_submission(db, form_slug="eureka-sample")
        dispatcher = RecordingDispatcher()
        result = route_submission(db, submission.id, dispatcher)
        assert result.analysis_function == EUREKA_ROUTINE
        assert result.dispatched is True
        assert dispatcher.jobs == [AnalysisJob(submission.id, EUREKA_ROUTINE)]

    def test_unknown_slug_dispatches_default(self, db: Session):
        submission = make_submission(db, form_slug="xyz")
        dispatcher = RecordingDispatcher()
        result = route_submission(db, submission.id, dispatcher)
        assert result.analysis_function == BARC_ROUTINE
        assert len(dispatcher.jobs) == 1

    def test_missing_submission_raises(self, db: Session):
        dispatcher = RecordingDispatcher()
        with pytest.raises(SubmissionNotFoundError) as exc_info:
            route_submission(db, "missing", dispatcher)
        assert exc_info.value.submission_id == "missing"
        assert dispatcher.jobs == []

    @pytest.mark.parametrize("status", ["processing", "completed", "failed"])
    def test_non_pending_is_acknowledged_without_dispatch(self, db: Session, status):
        submission = make_submission(db, analysis_status=status)
        dispatcher = RecordingDispatcher()
        result = route_submission(db, submission.id, dispatcher)
        assert result.dispatched is False
        assert result.status == status
        assert dispatcher.jobs == []

    def test_response_shape(self, db: Session):
        submission = make_submission(db)
        response = route_submission(db, submission.id, RecordingDispatcher()).to_response()
        assert response == {
            "success": True,
            "submissionId": submission.id,
            "analysisFunction": BARC_ROUTINE,
            "result": {"dispatched": True, "status": "queued"},
        }


# ---------------------------------------------------------------------------
# Request building
# ---------------------------------------------------------------------------


class TestRequestBuilding:
    def test_format_answers_orders_known_labels_first(self):
        text = format_answers(
            {"zeta_question": "last", "problem": "Slow warehouses", "industry": "Robotics", "team": "Two PhDs"}
        )
        assert text.index("Problem being solved") < text.index("Team") < text.index("Zeta question")
        assert "Robotics" not in text

    def test_format_answers_empty(self):
        assert format_answers(None) == ""

    @pytest.mark.asyncio
    async def test_form_title_and_answers_in_context(self, db: Session):
        db.add(PublicForm(slug="eureka-sample", title="Eureka Sample Form"))
        db.commit()
        submission = make_submission(
            db, form_slug="eureka-sample", form_data={"industry": "Robotics", "problem": "Slow"}
        )
        request = await build_extraction_request(
            db, submission, EUREKA_ROUTINE, get_blob_store(), _settings()
        )
        assert request.context["form_title"] == "Eureka Sample Form"
        assert request.context["industry"] == "Robotics"
        assert "Slow" in request.context["answers"]
        assert request.document is None

    @pytest.mark.asyncio
    async def test_missing_blob_is_document_error(self, db: Session):
        from pitchflow.extraction.service import ExtractionError

        submission = make_submission(db, source="upload", document_path="uploads/none.pdf")
        with pytest.raises(ExtractionError) as exc_info:
            await load_submission_document(submission, get_blob_store(), 1024)
        assert exc_info.value.kind == "document"

    @pytest.mark.asyncio
    async def test_attachment_download_failure_is_document_error(self, db: Session, monkeypatch):
        from pitchflow.extraction.service import ExtractionError

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(404)

        real_client = httpx.AsyncClient
        monkeypatch.setattr(
            "pitchflow.pipeline.analysis_job.httpx.AsyncClient",
            lambda **kw: real_client(transport=httpx.MockTransport(handler), **kw),
        )
        submission = make_submission(db, source="email", document_url="https://files.example/deck.pdf")
        with pytest.raises(ExtractionError, match="Document download failed"):
            await load_submission_document(submission, get_blob_store(), 1024)

    @pytest.mark.asyncio
    async def test_attachment_downloaded(self, db: Session, monkeypatch):
        pdf = make_pdf("Deck")

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, content=pdf)

        real_client = httpx.AsyncClient
        monkeypatch.setattr(
            "pitchflow.pipeline.analysis_job.httpx.AsyncClient",
            lambda **kw: real_client(transport=httpx.MockTransport(handler), **kw),
        )
        submission = make_submission(db, source="email", document_url="https://files.example/deck.pdf")
        assert await load_submission_document(submission, get_blob_store(), 1_000_000) == pdf


def _settings():
    from pitchflow.config import get_settings

    return get_settings()


# ---------------------------------------------------------------------------
# run_analysis
# ---------------------------------------------------------------------------


class TestRunAnalysis:
    @pytest.mark.asyncio
    async def test_completes_and_materializes(self, db: Session, fake_llm: FakeLLM):
        submission = make_submission(db, form_slug="eureka-sample")
        status = await run_analysis(db, submission.id, EUREKA_ROUTINE)
        assert status == "completed"
        row = _reload(db, submission.id)
        assert row.company_id is not None
        assert db.get(Company, row.company_id).overall_score == 4.2
        assert fake_llm.labels() == [EUREKA_ROUTINE]

    @pytest.mark.asyncio
    async def test_uploaded_deck_is_read_from_blob_store(self, db: Session, fake_llm: FakeLLM):
        path = get_blob_store().put("uploads/test/deck.pdf", make_pdf("Robots for warehouses"))
        submission = make_submission(db, source="upload", document_path=path)
        assert await run_analysis(db, submission.id, PITCH_DECK_ROUTINE) == "completed"
        assert "Robots for warehouses" in fake_llm.calls[0]["prompt"]

    @pytest.mark.asyncio
    async def test_extraction_timeout_fails_submission(self, db: Session):
        """A hung extraction ends as failed with a timeout error and no company."""
        llm = FakeLLM()
        llm.hook = lambda label: time.sleep(0.5)
        submission = make_submission(db)

        status = await run_analysis(
            db, submission.id, BARC_ROUTINE, extraction=ExtractionService(llm=llm, timeout=0.05)
        )

        assert status == "failed"
        row = _reload(db, submission.id)
        assert row.analysis_status == "failed"
        assert "timeout" in row.analysis_error.lower()
        assert row.analysis_error_kind == "extraction"
        assert row.company_id is None
        assert _company_count(db) == 0

    @pytest.mark.asyncio
    async def test_malformed_output_fails_submission(self, db: Session, fake_llm: FakeLLM):
        fake_llm.queue(BARC_ROUTINE, {"overall_score": "n/a"})
        submission = make_submission(db)
        assert await run_analysis(db, submission.id, BARC_ROUTINE) == "failed"
        assert "overall_score" in _reload(db, submission.id).analysis_error

    @pytest.mark.asyncio
    async def test_missing_submission_returns_none(self, db: Session, fake_llm: FakeLLM):
        assert await run_analysis(db, "missing", BARC_ROUTINE) is None
        assert fake_llm.calls == []

    @pytest.mark.asyncio
    async def test_already_terminal_is_noop(self, db: Session, fake_llm: FakeLLM):
        submission = make_submission(db, analysis_status="completed")
        assert await run_analysis(db, submission.id, BARC_ROUTINE) == "completed"
        assert fake_llm.calls == []


# ---------------------------------------------------------------------------
# Idempotent dispatch
# ---------------------------------------------------------------------------


class TestIdempotentDispatch:
    def test_double_trigger_yields_one_terminal_write(self, db: Session, fake_llm: FakeLLM):
        submission = make_submission(db)
        dispatcher = RecordingDispatcher()
        route_submission(db, submission.id, dispatcher)
        route_submission(db, submission.id, dispatcher)
        assert len(dispatcher.jobs) == 2

        for job in dispatcher.jobs:
            run_analysis_job(job)

        assert _reload(db, submission.id).analysis_status == "completed"
        assert _company_count(db) == 1
        assert len(fake_llm.calls) == 1

    def test_job_returns_once_extraction_times_out(
        self, db: Session, fake_llm: FakeLLM, monkeypatch
    ):
        """The job thread is released at the timeout, not when the hung call returns."""
        monkeypatch.setattr(_settings(), "extraction_timeout", 0.2)
        release = threading.Event()
        fake_llm.hook = lambda label: release.wait(3)
        submission = make_submission(db)

        started = time.monotonic()
        try:
            run_analysis_job(AnalysisJob(submission.id, BARC_ROUTINE))
            elapsed = time.monotonic() - started
        finally:
            release.set()

        assert elapsed < 1.0
        row = _reload(db, submission.id)
        assert row.analysis_status == "failed"
        assert "timeout" in row.analysis_error.lower()

    def test_job_with_stale_generation_does_nothing(self, db: Session, fake_llm: FakeLLM):
        submission = make_submission(db, analysis_status="processing", analysis_generation=3)
        run_analysis_job(AnalysisJob(submission.id, BARC_ROUTINE, generation=2))
        row = _reload(db, submission.id)
        assert row.analysis_status == "processing"
        assert fake_llm.calls == []


class TestThreadPoolDispatcher:
    def test_runs_jobs_in_background(self, db: Session, fake_llm: FakeLLM):
        submission = make_submission(db)
        dispatcher = ThreadPoolDispatcher(max_workers=1)
        route_submission(db, submission.id, dispatcher)
        dispatcher.shutdown(wait=True)
        assert dispatcher.in_flight == 0
        assert _reload(db, submission.id).analysis_status == "completed"
