"""Tests for authentication: password hashing, JWT tokens and auth routes."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from pitchflow.models.user import User
from pitchflow.services.auth import create_access_token, decode_access_token
from tests.test_constants import TEST_PASSWORD, TEST_PASSWORD_WRONG, TEST_USERNAME


# ---------------------------------------------------------------------------
# Unit tests: auth service
# ---------------------------------------------------------------------------


def _make_user(username: str = "admin", password: str | None = None) -> User:
    """Create a User instance with a hashed password (no DB)."""
    user = User(id=1, username=username)
    user.set_password(password if password is not None else TEST_PASSWORD)
    return user


class TestPasswordVerification:
    def test_correct_password(self):
        assert _make_user().verify_password(TEST_PASSWORD) is True

    def test_wrong_password(self):
        assert _make_user().verify_password(TEST_PASSWORD_WRONG) is False


class TestAccessToken:
    def test_create_and_decode_token(self):
        token = create_access_token(data={"sub": "admin"})
        payload = decode_access_token(token)
        assert payload is not None
        assert payload["sub"] == "admin"
        assert "exp" in payload

    def test_invalid_token_returns_none(self):
        assert decode_access_token("not.a.valid.token") is None

    def test_tampered_token_returns_none(self):
        token = create_access_token(data={"sub": "admin"})
        assert decode_access_token(token[:-4] + "XXXX") is None


# ---------------------------------------------------------------------------
# API endpoints
# ---------------------------------------------------------------------------


class TestLoginEndpoint:
    def test_login_success_sets_cookie(self, client: TestClient, admin_user):
        resp = client.post(
            "/api/auth/login",
            json={"username": TEST_USERNAME, "password": TEST_PASSWORD},
        )
        assert resp.status_code == 200
        data = resp.json()
        assert data["token_type"] == "bearer"
        assert "access_token" in resp.cookies

    def test_login_wrong_password(self, client: TestClient, admin_user):
        resp = client.post(
            "/api/auth/login",
            json={"username": TEST_USERNAME, "password": TEST_PASSWORD_WRONG},
        )
        assert resp.status_code == 401

    def test_login_unknown_user(self, client: TestClient):
        resp = client.post("/api/auth/login", json={"username": "nobody", "password": "x"})
        assert resp.status_code == 401


class TestMeEndpoint:
    def test_me_with_bearer_token(self, client: TestClient, admin_headers):
        resp = client.get("/api/auth/me", headers=admin_headers)
        assert resp.status_code == 200
        data = resp.json()
        assert data["username"] == TEST_USERNAME
        assert data["is_admin"] is True

    def test_me_with_cookie(self, client: TestClient, admin_user):
        client.post("/api/auth/login", json={"username": TEST_USERNAME, "password": TEST_PASSWORD})
        resp = client.get("/api/auth/me")
        assert resp.status_code == 200

    def test_me_without_auth_returns_401(self, client: TestClient):
        assert client.get("/api/auth/me").status_code == 401

    def test_logout_clears_cookie(self, client: TestClient, admin_user):
        client.post("/api/auth/login", json={"username": TEST_USERNAME, "password": TEST_PASSWORD})
        resp = client.post("/api/auth/logout")
        assert resp.status_code == 200
        assert resp.json()["detail"] == "Logged out"


class TestAdminGuard:
    def test_rerun_requires_admin(self, client: TestClient, reviewer_headers):
        resp = client.post("/api/submissions/anything/rerun", headers=reviewer_headers)
        assert resp.status_code == 403

    @pytest.mark.parametrize("token", [None, "wrong-token"])
    def test_internal_endpoints_reject_bad_token(self, client: TestClient, token):
        headers = {"X-Internal-Token": token} if token else {}
        resp = client.post("/internal/rerun_analysis", headers=headers)
        assert resp.status_code == 403
