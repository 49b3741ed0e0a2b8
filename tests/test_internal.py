"""Tests for the internal job endpoints."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from pitchflow.api.internal import get_rerun_dispatcher
from pitchflow.extraction.routines import BARC_ROUTINE
from pitchflow.main import app
from pitchflow.models import Submission
from pitchflow.services import status_updater
from tests.fakes import FakeLLM, RecordingDispatcher, make_submission
from tests.test_constants import TEST_INTERNAL_JOB_TOKEN

INTERNAL_HEADERS = {"X-Internal-Token": TEST_INTERNAL_JOB_TOKEN}


@pytest.fixture
def rerun_dispatcher():
    dispatcher = RecordingDispatcher()
    app.dependency_overrides[get_rerun_dispatcher] = lambda: dispatcher
    yield dispatcher
    app.dependency_overrides.pop(get_rerun_dispatcher, None)


def _failed(db: Session) -> Submission:
    submission = make_submission(db)
    generation = status_updater.claim_for_analysis(db, submission.id)
    status_updater.fail_analysis(db, submission.id, generation, "upstream 503")
    return submission


class TestInternalTrigger:
    def test_trigger(self, client: TestClient, db: Session, fake_llm: FakeLLM):
        submission = make_submission(db)
        resp = client.post(
            "/internal/trigger_analysis",
            json={"submissionId": submission.id},
            headers=INTERNAL_HEADERS,
        )
        assert resp.status_code == 200
        assert resp.json()["analysisFunction"] == BARC_ROUTINE
        db.expire_all()
        assert db.get(Submission, submission.id).analysis_status == "completed"

    def test_missing_submission_id(self, client: TestClient):
        resp = client.post("/internal/trigger_analysis", json={}, headers=INTERNAL_HEADERS)
        assert resp.status_code == 422

    def test_requires_token(self, client: TestClient, db: Session):
        submission = make_submission(db)
        resp = client.post("/internal/trigger_analysis", json={"submissionId": submission.id})
        assert resp.status_code == 403


class TestInternalRerun:
    def test_rerun_without_body(self, client: TestClient, db: Session, rerun_dispatcher):
        failed = _failed(db)
        resp = client.post("/internal/rerun_analysis", headers=INTERNAL_HEADERS)
        assert resp.status_code == 200
        body = resp.json()
        assert body["status"] == "completed"
        assert (body["processed"], body["failed"], body["total"]) == (1, 0, 1)
        assert [job.submission_id for job in rerun_dispatcher.jobs] == [failed.id]

    def test_rerun_explicit_ids(self, client: TestClient, db: Session, rerun_dispatcher):
        failed = _failed(db)
        resp = client.post(
            "/internal/rerun_analysis",
            json={"submissionIds": [failed.id, "missing-id"]},
            headers=INTERNAL_HEADERS,
        )
        body = resp.json()
        assert (body["processed"], body["failed"], body["total"]) == (1, 1, 2)

    def test_rerun_error_is_reported(
        self, client: TestClient, db: Session, rerun_dispatcher, monkeypatch: pytest.MonkeyPatch
    ):
        def _boom(*args, **kwargs):
            raise RuntimeError("database unavailable")

        monkeypatch.setattr("pitchflow.api.internal.rerun_submissions", _boom)
        resp = client.post("/internal/rerun_analysis", headers=INTERNAL_HEADERS)
        assert resp.status_code == 200
        assert resp.json() == {"status": "failed", "error": "database unavailable"}

    def test_requires_token(self, client: TestClient, rerun_dispatcher):
        resp = client.post("/internal/rerun_analysis", headers={"X-Internal-Token": "wrong"})
        assert resp.status_code == 403
        assert rerun_dispatcher.jobs == []
