"""Email delivery for analysis outcome notifications."""

from __future__ import annotations

import html
import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

from pitchflow.config import get_settings

logger = logging.getLogger(__name__)


def _build_html_email(
    company_name: str,
    status: str,
    score: float | None = None,
    company_url: str | None = None,
) -> str:
    """Build the HTML body for an analysis outcome email."""
    name = html.escape(company_name or "your company")
    if status == "completed":
        score_line = (
            f'<p style="font-size:1.2rem"><strong>Overall score:</strong> {score:.1f} / 5</p>'
            if score is not None
            else ""
        )
        link = (
            f'<p><a href="{html.escape(company_url)}">View the full evaluation</a></p>'
            if company_url
            else ""
        )
        body = (
            f"<h2>Analysis complete for {name}</h2>"
            f"{score_line}"
            "<p>Your submission has been reviewed and scored section by section.</p>"
            f"{link}"
        )
    else:
        body = (
            f'<h2 style="color:#dc2626">We could not finish analysing {name}</h2>'
            "<p>Automated analysis of your submission did not complete. "
            "Our team has been notified and will re-run it.</p>"
        )
    return f"<html><body>{body}</body></html>"


def _build_text_email(
    company_name: str,
    status: str,
    score: float | None = None,
    company_url: str | None = None,
) -> str:
    """Build the plain-text body for an analysis outcome email."""
    name = company_name or "your company"
    if status == "completed":
        lines = [f"Analysis complete for {name}", "=" * 40, ""]
        if score is not None:
            lines.append(f"Overall score: {score:.1f} / 5")
        lines.append("Your submission has been reviewed and scored section by section.")
        if company_url:
            lines.append(f"View the full evaluation: {company_url}")
    else:
        lines = [
            f"We could not finish analysing {name}",
            "=" * 40,
            "",
            "Automated analysis of your submission did not complete.",
            "Our team has been notified and will re-run it.",
        ]
    return "\n".join(lines)


def send_analysis_outcome_email(
    recipient: str | None,
    company_name: str,
    status: str,
    *,
    score: float | None = None,
    company_url: str | None = None,
    settings=None,
) -> bool:
    """Send the completed/failed notification to the submitter.

    Returns True on success, False on any failure (never raises).
    """
    if settings is None:
        settings = get_settings()

    if not recipient:
        logger.warning("email_send_skipped: no recipient")
        return False

    smtp_host = getattr(settings, "smtp_host", "")
    if not smtp_host:
        logger.warning("email_send_skipped: SMTP host not configured")
        return False

    if status == "completed":
        subject = f"Your pitch analysis is ready: {company_name}"
    else:
        subject = f"Pitch analysis delayed: {company_name}"

    msg = MIMEMultipart("alternative")
    msg["Subject"] = subject
    msg["From"] = getattr(settings, "smtp_from", "")
    msg["To"] = recipient
    msg.attach(MIMEText(_build_text_email(company_name, status, score, company_url), "plain"))
    msg.attach(MIMEText(_build_html_email(company_name, status, score, company_url), "html"))

    try:
        with smtplib.SMTP(smtp_host, getattr(settings, "smtp_port", 587)) as server:
            server.starttls()
            smtp_user = getattr(settings, "smtp_user", "")
            if smtp_user:
                server.login(smtp_user, getattr(settings, "smtp_password", ""))
            server.sendmail(msg["From"], [recipient], msg.as_string())
        logger.info("email_sent: recipient=%s status=%s", recipient, status)
        return True
    except smtplib.SMTPAuthenticationError:
        logger.error("email_auth_failed: could not authenticate with SMTP server")
        return False
    except (smtplib.SMTPException, OSError) as exc:
        logger.error("email_send_failed: %s", exc)
        return False
