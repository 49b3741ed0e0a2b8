"""Tests for the analysis outcome email service."""

from __future__ import annotations

import smtplib as _smtplib
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

from pitchflow.services.email_service import (
    _build_html_email,
    _build_text_email,
    send_analysis_outcome_email,
)


def _make_settings(**overrides) -> SimpleNamespace:
    """Create mock settings with SMTP defaults."""
    from tests.test_constants import TEST_SMTP_PASSWORD

    defaults = dict(
        smtp_host="smtp.example.com",
        smtp_port=587,
        smtp_user="user@example.com",
        smtp_password=TEST_SMTP_PASSWORD,
        smtp_from="noreply@example.com",
    )
    defaults.update(overrides)
    return SimpleNamespace(**defaults)


def _mock_server(mock_smtp_cls: MagicMock) -> MagicMock:
    server = MagicMock()
    mock_smtp_cls.return_value.__enter__ = MagicMock(return_value=server)
    mock_smtp_cls.return_value.__exit__ = MagicMock(return_value=False)
    return server


# ── Builders ──────────────────────────────────────────────


def test_html_completed_contains_score_and_link() -> None:
    html = _build_html_email("Acme", "completed", score=4.2, company_url="/companies/7")
    assert "Analysis complete for Acme" in html
    assert "4.2 / 5" in html
    assert 'href="/companies/7"' in html


def test_html_escapes_company_name() -> None:
    html = _build_html_email("<b>Evil</b>", "completed")
    assert "<b>Evil</b>" not in html
    assert "&lt;b&gt;Evil&lt;/b&gt;" in html


def test_html_failed_has_no_score() -> None:
    html = _build_html_email("Acme", "failed", score=4.2)
    assert "could not finish" in html
    assert "4.2" not in html


def test_text_completed_readable() -> None:
    text = _build_text_email("GammaCo", "completed", score=3.0, company_url="https://x/companies/1")
    assert "Analysis complete for GammaCo" in text
    assert "Overall score: 3.0 / 5" in text
    assert "https://x/companies/1" in text


def test_text_without_score_omits_score_line() -> None:
    assert "Overall score" not in _build_text_email("GammaCo", "completed")


# ── send_analysis_outcome_email ───────────────────────────


@patch("pitchflow.services.email_service.smtplib.SMTP")
def test_send_email_success(mock_smtp_cls: MagicMock) -> None:
    from tests.test_constants import TEST_SMTP_PASSWORD

    server = _mock_server(mock_smtp_cls)
    result = send_analysis_outcome_email(
        "founder@example.com", "Acme", "completed", score=4.2, settings=_make_settings()
    )

    assert result is True
    mock_smtp_cls.assert_called_once_with("smtp.example.com", 587)
    server.starttls.assert_called_once()
    server.login.assert_called_once_with("user@example.com", TEST_SMTP_PASSWORD)
    server.sendmail.assert_called_once()
    assert server.sendmail.call_args[0][1] == ["founder@example.com"]


@patch("pitchflow.services.email_service.smtplib.SMTP")
def test_send_email_skips_login_without_user(mock_smtp_cls: MagicMock) -> None:
    server = _mock_server(mock_smtp_cls)
    assert send_analysis_outcome_email(
        "founder@example.com", "Acme", "failed", settings=_make_settings(smtp_user="")
    )
    server.login.assert_not_called()


@patch("pitchflow.services.email_service.smtplib.SMTP")
def test_send_email_connection_error(mock_smtp_cls: MagicMock) -> None:
    mock_smtp_cls.side_effect = OSError("Connection refused")
    result = send_analysis_outcome_email(
        "founder@example.com", "Acme", "completed", settings=_make_settings()
    )
    assert result is False


def test_send_email_empty_recipient() -> None:
    assert send_analysis_outcome_email("", "Acme", "completed", settings=_make_settings()) is False


def test_send_email_smtp_not_configured() -> None:
    settings = _make_settings(smtp_host="")
    assert send_analysis_outcome_email("a@b.co", "Acme", "completed", settings=settings) is False


@patch("pitchflow.services.email_service.smtplib.SMTP")
def test_send_email_auth_failure(mock_smtp_cls: MagicMock) -> None:
    server = _mock_server(mock_smtp_cls)
    server.login.side_effect = _smtplib.SMTPAuthenticationError(535, b"Bad credentials")
    result = send_analysis_outcome_email("a@b.co", "Acme", "completed", settings=_make_settings())
    assert result is False
