"""
PitchFlow FastAPI application entry point.

Pipeline: intake → routing → extraction → status update → notification fan-out
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from pitchflow import __version__
from pitchflow.config import get_settings
from pitchflow.db.session import check_db_connection, engine
from pitchflow.pipeline.dispatch import shutdown_thread_pool_dispatcher
from pitchflow.pipeline.router import SubmissionNotFoundError
from pitchflow.services.intake import IntakeError

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: startup and shutdown."""
    logger.info("PitchFlow starting")
    try:
        try:
            check_db_connection()
            logger.info("Database connection verified")
        except Exception as e:
            logger.critical("Database unreachable: %s", e)
            raise

        # A bad routing table must stop the deploy, not the first submission.
        try:
            from pitchflow.routing.loader import load_routing_table

            load_routing_table()
            logger.info("Form routing table validated")
        except Exception as e:
            logger.critical("Routing table validation failed at startup: %s", e)
            raise

        yield
    finally:
        logger.info("PitchFlow shutting down")
        shutdown_thread_pool_dispatcher()
        engine.dispose()
        logger.info("Database connection pool closed")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()
    app = FastAPI(
        title=settings.app_name,
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
    )

    @app.exception_handler(IntakeError)
    async def intake_error_handler(request: Request, exc: IntakeError) -> JSONResponse:
        logger.info("intake_rejected: path=%s error=%s", request.url.path, exc)
        return JSONResponse(
            status_code=exc.status_code, content={"success": False, "error": str(exc)}
        )

    @app.exception_handler(SubmissionNotFoundError)
    async def not_found_handler(request: Request, exc: SubmissionNotFoundError) -> JSONResponse:
        return JSONResponse(
            status_code=404,
            content={"success": False, "error": str(exc), "submissionId": exc.submission_id},
        )

    # Mount API routes
    from pitchflow.api.analysis import router as analysis_router
    from pitchflow.api.auth import router as auth_router
    from pitchflow.api.companies import router as companies_router
    from pitchflow.api.notifications import router as notifications_router
    from pitchflow.api.public_forms import forms_router, public_router
    from pitchflow.api.submissions import router as submissions_router
    from pitchflow.api.webhooks import router as webhooks_router

    app.include_router(auth_router, prefix="/api/auth", tags=["auth"])
    app.include_router(submissions_router, prefix="/api/submissions", tags=["submissions"])
    app.include_router(analysis_router, prefix="/api/analysis", tags=["analysis"])
    app.include_router(companies_router, prefix="/api/companies", tags=["companies"])
    app.include_router(forms_router, prefix="/api/forms", tags=["forms"])
    app.include_router(public_router, prefix="/api/public", tags=["public"])
    app.include_router(webhooks_router, prefix="/api/webhooks", tags=["webhooks"])
    app.include_router(notifications_router, prefix="/api/notifications", tags=["notifications"])

    # Internal job endpoints (cron/scripts, token-authenticated)
    from pitchflow.api.internal import router as internal_router

    app.include_router(internal_router, tags=["internal"])

    @app.get("/health")
    def health() -> dict:
        """Health check endpoint. Confirms DB connectivity."""
        from sqlalchemy import text

        try:
            with engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            return {
                "status": "ok",
                "version": __version__,
                "database": "connected",
            }
        except Exception:
            return JSONResponse(
                status_code=503,
                content={
                    "status": "unhealthy",
                    "version": __version__,
                    "database": "disconnected",
                },
            )

    return app


app = create_app()
