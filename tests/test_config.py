"""
Configuration tests.
"""

import pytest

from pitchflow.config import Settings, _parse_thresholds, get_settings


def test_get_settings_returns_settings() -> None:
    """get_settings returns a Settings instance."""
    settings = get_settings()
    assert isinstance(settings, Settings)


def test_settings_has_required_attributes() -> None:
    settings = get_settings()
    assert settings.app_name == "PitchFlow"
    assert settings.database_url == "sqlite://"
    assert settings.internal_job_token
    assert settings.extraction_timeout == 60.0
    assert settings.status_poll_interval == 1.0
    assert settings.status_poll_max_attempts == 300
    assert settings.id_chunk_size == 100


def test_generic_postgres_url_gets_psycopg_driver(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DATABASE_URL", "postgresql://u:p@db:5432/pitchflow")
    settings = Settings()
    assert settings.database_url == "postgresql+psycopg://u:p@db:5432/pitchflow"


# ---------------------------------------------------------------------------
# LLM model roles
# ---------------------------------------------------------------------------


def test_llm_model_roles_from_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LLM_MODEL_EXTRACTION", "gpt-4o")
    monkeypatch.setenv("LLM_MODEL_JSON", "gpt-4o-mini")
    monkeypatch.setenv("LLM_TIMEOUT", "90")
    monkeypatch.setenv("LLM_MAX_RETRIES", "5")
    settings = Settings()
    assert settings.llm_model_extraction == "gpt-4o"
    assert settings.llm_model_json == "gpt-4o-mini"
    assert settings.llm_timeout == 90.0
    assert settings.llm_max_retries == 5


def test_llm_model_legacy_fallback(monkeypatch: pytest.MonkeyPatch) -> None:
    """When only LLM_MODEL is set, it is used for every role."""
    monkeypatch.delenv("LLM_MODEL_EXTRACTION", raising=False)
    monkeypatch.delenv("LLM_MODEL_JSON", raising=False)
    monkeypatch.setenv("LLM_MODEL", "gpt-4-turbo")
    settings = Settings()
    assert settings.llm_model_extraction == "gpt-4-turbo"
    assert settings.llm_model_json == "gpt-4-turbo"


# ---------------------------------------------------------------------------
# Rerun thresholds
# ---------------------------------------------------------------------------


class TestRerunThresholds:
    def test_parse_thresholds(self) -> None:
        assert _parse_thresholds("eureka:3, BARC:2.5") == {"eureka": 3.0, "barc": 2.5}

    def test_parse_thresholds_skips_bad_entries(self) -> None:
        assert _parse_thresholds("eureka:abc,:3,deck,barc:2") == {"barc": 2.0}

    def test_family_override(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("RERUN_SCORE_THRESHOLD", "2.5")
        monkeypatch.setenv("RERUN_SCORE_THRESHOLDS", "eureka:3.5")
        settings = Settings()
        assert settings.rerun_threshold_for("eureka") == 3.5
        assert settings.rerun_threshold_for("Eureka") == 3.5
        assert settings.rerun_threshold_for("barc") == 2.5
        assert settings.rerun_threshold_for(None) == 2.5

    def test_id_chunk_size_never_below_one(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("ID_CHUNK_SIZE", "0")
        assert Settings().id_chunk_size == 1
