"""Shared FastAPI dependencies for API routes."""

from __future__ import annotations

import logging
import secrets

from fastapi import BackgroundTasks, Cookie, Depends, Header, HTTPException, status
from sqlalchemy.orm import Session

from pitchflow.config import get_settings
from pitchflow.db.session import get_db  # re-export
from pitchflow.models.user import User
from pitchflow.pipeline.dispatch import BackgroundTasksDispatcher, Dispatcher
from pitchflow.services.auth import get_user_from_token

logger = logging.getLogger(__name__)

__all__ = [
    "AUTH_COOKIE",
    "get_current_user",
    "get_db",
    "get_dispatcher",
    "require_admin",
    "require_auth",
    "require_internal_token",
    "require_webhook_token",
]

# Cookie name for browser sessions
AUTH_COOKIE = "access_token"


def get_current_user(
    db: Session = Depends(get_db),
    authorization: str | None = Header(None),
    access_token: str | None = Cookie(None),
) -> User | None:
    """Return the authenticated user or None.

    Checks the ``Authorization: Bearer <token>`` header first, then the
    ``access_token`` cookie.
    """
    token: str | None = None
    if authorization and authorization.startswith("Bearer "):
        token = authorization[len("Bearer ") :]
    if token is None and access_token:
        token = access_token
    if token is None:
        return None
    return get_user_from_token(db, token)


def require_auth(user: User | None = Depends(get_current_user)) -> User:
    """Dependency that requires an authenticated user (401 otherwise)."""
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
        )
    return user


def require_admin(user: User = Depends(require_auth)) -> User:
    """Dependency for reruns and deletions (403 for non-admin users)."""
    if not user.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")
    return user


def _check_token(provided: str | None, expected: str, label: str) -> None:
    if not expected or not provided or not secrets.compare_digest(provided, expected):
        logger.warning("%s auth failed: invalid or missing token", label)
        raise HTTPException(status_code=403, detail="Invalid token")


def require_internal_token(x_internal_token: str | None = Header(None)) -> None:
    """Validate X-Internal-Token for /internal/* endpoints (constant-time compare)."""
    _check_token(x_internal_token, get_settings().internal_job_token, "Internal endpoint")


def require_webhook_token(x_webhook_token: str | None = Header(None)) -> None:
    """Validate X-Webhook-Token for the email webhook; falls back to the internal token."""
    settings = get_settings()
    _check_token(
        x_webhook_token,
        settings.email_webhook_token or settings.internal_job_token,
        "Email webhook",
    )


def get_dispatcher(background_tasks: BackgroundTasks) -> Dispatcher:
    """Dispatcher that runs analysis jobs after the response is sent."""
    return BackgroundTasksDispatcher(background_tasks)
