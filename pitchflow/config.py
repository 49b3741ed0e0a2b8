"""
Application configuration. Loads from environment variables.
Secrets and sensitive config must never be hardcoded.
"""

import os

from dotenv import load_dotenv

load_dotenv()
from functools import lru_cache
from typing import Optional


@lru_cache(maxsize=1)
def get_settings() -> "Settings":
    """Return cached settings instance."""
    return Settings()


def _parse_thresholds(raw: str) -> dict[str, float]:
    """Parse ``family:value,family:value`` into a dict. Bad entries are skipped."""
    thresholds: dict[str, float] = {}
    for entry in raw.split(","):
        family, sep, value = entry.partition(":")
        if not sep or not family.strip():
            continue
        try:
            thresholds[family.strip().lower()] = float(value)
        except ValueError:
            continue
    return thresholds


class Settings:
    """Application settings loaded from environment."""

    # App
    app_name: str = "PitchFlow"
    debug: bool = False

    # Database (postgresql+psycopg for psycopg3; sqlite:// URLs for local runs and tests)
    database_url: str = "postgresql+psycopg://localhost:5432/pitchflow_dev"
    db_connect_timeout: int = 10  # seconds

    # Security
    secret_key: str = ""
    internal_job_token: str = ""  # Required for /internal/* endpoints
    email_webhook_token: str = ""  # Falls back to internal_job_token when unset

    # LLM
    llm_provider: str = "openai"
    llm_api_key: Optional[str] = None
    llm_model: str = "gpt-4o-mini"
    # Model roles: extraction=deck/form scoring, json=cheap structured calls
    llm_model_extraction: str = "gpt-4o"
    llm_model_json: str = "gpt-4o-mini"
    llm_timeout: float = 60.0
    llm_max_retries: int = 3

    # Analysis pipeline
    extraction_timeout: float = 60.0  # hard ceiling around one extraction call
    submission_fetch_attempts: int = 5
    submission_fetch_backoff: float = 1.0  # seconds, multiplied by attempt number

    # Rerun quality gate (0-5 display scale)
    rerun_score_threshold: float = 2.5
    rerun_score_thresholds: dict[str, float] = {}
    rerun_dispatch_delay: float = 0.1  # seconds between dispatches
    id_chunk_size: int = 100

    # Status watching
    status_poll_interval: float = 1.0
    status_poll_max_attempts: int = 300
    completion_redirect_delay: float = 3.0
    query_cache_ttl: float = 30.0

    # Storage
    storage_dir: str = "var/storage"
    max_upload_bytes: int = 20 * 1024 * 1024

    # Intake
    email_auto_analyze: bool = True

    # SMTP / Email
    notify_email_enabled: bool = False
    smtp_host: str = ""
    smtp_port: int = 587
    smtp_user: str = ""
    smtp_password: str = ""
    smtp_from: str = ""

    def __init__(self) -> None:
        self.app_name = os.getenv("APP_NAME", self.app_name)
        self.debug = os.getenv("DEBUG", "false").lower() == "true"

        default_user = os.getenv("PGUSER") or os.getenv("USER") or "postgres"
        default_url = (
            f"postgresql+psycopg://{default_user}:"
            f"{os.getenv('PGPASSWORD', '')}@"
            f"{os.getenv('PGHOST', 'localhost')}:"
            f"{os.getenv('PGPORT', '5432')}/"
            f"{os.getenv('PGDATABASE', 'pitchflow_dev')}"
        )
        raw_url = os.getenv("DATABASE_URL", default_url)
        # Ensure psycopg3 driver if URL uses generic postgresql://
        if raw_url.startswith("postgresql://") and not raw_url.startswith("postgresql+psycopg"):
            raw_url = raw_url.replace("postgresql://", "postgresql+psycopg://", 1)
        self.database_url = raw_url
        self.db_connect_timeout = int(os.getenv("DB_CONNECT_TIMEOUT", str(self.db_connect_timeout)))

        self.secret_key = os.getenv("SECRET_KEY", "")
        self.internal_job_token = os.getenv("INTERNAL_JOB_TOKEN", "")
        self.email_webhook_token = os.getenv("EMAIL_WEBHOOK_TOKEN", "")

        self.llm_provider = os.getenv("LLM_PROVIDER", self.llm_provider)
        self.llm_api_key = os.getenv("LLM_API_KEY")
        self.llm_model = os.getenv("LLM_MODEL", self.llm_model)
        # Role-specific models; legacy: LLM_MODEL used for all if role vars unset
        legacy_model = os.getenv("LLM_MODEL")
        self.llm_model_extraction = (
            os.getenv("LLM_MODEL_EXTRACTION") or legacy_model or self.llm_model_extraction
        )
        self.llm_model_json = os.getenv("LLM_MODEL_JSON") or legacy_model or self.llm_model_json
        self.llm_timeout = float(os.getenv("LLM_TIMEOUT", str(self.llm_timeout)))
        self.llm_max_retries = int(os.getenv("LLM_MAX_RETRIES", str(self.llm_max_retries)))

        self.extraction_timeout = float(
            os.getenv("EXTRACTION_TIMEOUT", str(self.extraction_timeout))
        )
        self.submission_fetch_attempts = int(
            os.getenv("SUBMISSION_FETCH_ATTEMPTS", str(self.submission_fetch_attempts))
        )
        self.submission_fetch_backoff = float(
            os.getenv("SUBMISSION_FETCH_BACKOFF", str(self.submission_fetch_backoff))
        )

        self.rerun_score_threshold = float(
            os.getenv("RERUN_SCORE_THRESHOLD", str(self.rerun_score_threshold))
        )
        self.rerun_score_thresholds = _parse_thresholds(os.getenv("RERUN_SCORE_THRESHOLDS", ""))
        self.rerun_dispatch_delay = float(
            os.getenv("RERUN_DISPATCH_DELAY", str(self.rerun_dispatch_delay))
        )
        self.id_chunk_size = max(1, int(os.getenv("ID_CHUNK_SIZE", str(self.id_chunk_size))))

        self.status_poll_interval = float(
            os.getenv("STATUS_POLL_INTERVAL", str(self.status_poll_interval))
        )
        self.status_poll_max_attempts = int(
            os.getenv("STATUS_POLL_MAX_ATTEMPTS", str(self.status_poll_max_attempts))
        )
        self.completion_redirect_delay = float(
            os.getenv("COMPLETION_REDIRECT_DELAY", str(self.completion_redirect_delay))
        )
        self.query_cache_ttl = float(os.getenv("QUERY_CACHE_TTL", str(self.query_cache_ttl)))

        self.storage_dir = os.getenv("STORAGE_DIR", self.storage_dir)
        self.max_upload_bytes = int(os.getenv("MAX_UPLOAD_BYTES", str(self.max_upload_bytes)))

        self.email_auto_analyze = os.getenv("EMAIL_AUTO_ANALYZE", "true").lower() == "true"

        self.notify_email_enabled = os.getenv("NOTIFY_EMAIL_ENABLED", "false").lower() == "true"
        self.smtp_host = os.getenv("SMTP_HOST", "")
        self.smtp_port = int(os.getenv("SMTP_PORT", "587"))
        self.smtp_user = os.getenv("SMTP_USER", "")
        self.smtp_password = os.getenv("SMTP_PASSWORD", "")
        self.smtp_from = os.getenv("SMTP_FROM", "")

    def rerun_threshold_for(self, family: str | None) -> float:
        """Return the rerun score threshold for a form family (falls back to the global one)."""
        if family and family.lower() in self.rerun_score_thresholds:
            return self.rerun_score_thresholds[family.lower()]
        return self.rerun_score_threshold
