"""Tests for environment-driven settings."""

from pathlib import Path

import pytest

from siteintel.config import Settings
from siteintel.pipeline import CrawlPipeline
from siteintel.renderer import RendererConfig
from siteintel.report_generator import ReportGenerator

ENV_VARS = [
    "OPENAI_API_KEY", "OPENAI_ORGANIZATION_ID", "OPENAI_MODEL", "REPORT_TEMPERATURE",
    "REPORT_MAX_TOKENS", "MAX_CORPUS_CHARS", "MONGODB_URI", "MONGODB_DATABASE",
    "MONGODB_COLLECTION", "REPORTS_DIR", "GCS_BUCKET_NAME", "GCS_REPORTS_PREFIX", "PROJECT_ID",
    "NAVIGATION_TIMEOUT_MS", "SELECTOR_TIMEOUT_MS", "SETTLE_DELAY_MS", "HEADLESS",
    "ENABLE_CLOUD_LOGGING", "LOG_LEVEL",
]


@pytest.fixture
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


def test_defaults(clean_env):
    settings = Settings.from_env()

    assert settings.openai_api_key is None
    assert settings.openai_model == "gpt-4o-mini"
    assert settings.report_temperature == 0.3
    assert settings.report_max_tokens == 2500
    assert settings.max_corpus_chars == 60000
    assert settings.navigation_timeout_ms == 60000
    assert settings.selector_timeout_ms == 10000
    assert settings.settle_delay_ms == 5000
    assert settings.headless is True
    assert settings.gcs_bucket_name is None
    assert settings.reports_dir == Path.cwd() / "reports"
    assert settings.enable_cloud_logging is False
    assert settings.log_level == "INFO"


def test_overrides(clean_env, tmp_path):
    clean_env.setenv("OPENAI_API_KEY", "sk-test")
    clean_env.setenv("MAX_CORPUS_CHARS", "0")
    clean_env.setenv("REPORT_TEMPERATURE", "0.5")
    clean_env.setenv("REPORTS_DIR", str(tmp_path))
    clean_env.setenv("HEADLESS", "false")
    clean_env.setenv("ENABLE_CLOUD_LOGGING", "TRUE")
    clean_env.setenv("LOG_LEVEL", "debug")

    settings = Settings.from_env()

    assert settings.openai_api_key == "sk-test"
    assert settings.max_corpus_chars == 0
    assert settings.report_temperature == 0.5
    assert settings.reports_dir == tmp_path
    assert settings.headless is False
    assert settings.enable_cloud_logging is True
    assert settings.log_level == "DEBUG"


@pytest.mark.parametrize("name", ["NAVIGATION_TIMEOUT_MS", "REPORT_TEMPERATURE"])
def test_invalid_number_names_variable(clean_env, name):
    clean_env.setenv(name, "soon")

    with pytest.raises(ValueError, match=name):
        Settings.from_env()


def test_components_from_settings(tmp_path):
    settings = Settings(
        openai_api_key="sk-test",
        max_corpus_chars=1000,
        report_max_tokens=1200,
        settle_delay_ms=0,
        reports_dir=tmp_path
    )

    renderer_config = RendererConfig.from_settings(settings)
    generator = ReportGenerator.from_settings(settings)
    pipeline = CrawlPipeline.from_settings(settings, persist=False)

    assert renderer_config.settle_delay_ms == 0
    assert generator.max_corpus_chars == 1000
    assert generator.max_output_tokens == 1200
    assert pipeline.persist is False
    assert pipeline.store is None
    assert pipeline.cloud_logger.enabled is False
