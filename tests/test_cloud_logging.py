"""Tests for the Cloud Logging crawl records."""

from unittest.mock import MagicMock, patch

from google.api_core.exceptions import ServiceUnavailable

from siteintel.cloud_logging import CrawlCloudLogger, crawl_record
from siteintel.config import Settings
from siteintel.errors import GenerationError
from siteintel.models import CrawlStage
from siteintel.pipeline import CrawlState

from conftest import ACME_URL


def failed_state() -> CrawlState:
    state = CrawlState(url=ACME_URL)
    state.advance(CrawlStage.EXTRACTING)
    state.advance(CrawlStage.VALIDATING)
    state.advance(CrawlStage.GENERATING)
    state.fail(GenerationError("service down", url=ACME_URL))
    return state


def enabled_logger() -> CrawlCloudLogger:
    with patch("siteintel.cloud_logging.cloud_logging.Client") as client_cls:
        cloud_logger = CrawlCloudLogger(Settings(enable_cloud_logging=True, project_id="acme-project"))
    assert client_cls.called
    return cloud_logger


def test_disabled_by_default():
    cloud_logger = CrawlCloudLogger(Settings())

    assert cloud_logger.enabled is False
    assert cloud_logger.log_crawl(failed_state()) is False


def test_requires_project_id():
    cloud_logger = CrawlCloudLogger(Settings(enable_cloud_logging=True))
    assert cloud_logger.enabled is False


def test_crawl_record():
    record = crawl_record(failed_state())

    assert record["url"] == ACME_URL
    assert record["status"] == "failed"
    assert record["failed_stage"] == "generating"
    assert record["error_type"] == "GenerationError"
    assert record["error"] == "[generating] service down"
    assert [entry["stage"] for entry in record["history"]] == [
        "rendering", "extracting", "validating", "generating", "failed"
    ]
    assert record["duration_seconds"] >= 0


def test_log_crawl_structured():
    cloud_logger = enabled_logger()

    assert cloud_logger.log_crawl(failed_state()) is True

    args, kwargs = cloud_logger.logger.log_struct.call_args
    assert args[0]["failed_stage"] == "generating"
    assert kwargs["severity"] == "ERROR"
    assert kwargs["labels"]["component"] == "crawl_pipeline"


def test_log_failure_never_raises():
    cloud_logger = enabled_logger()
    cloud_logger.logger = MagicMock()
    cloud_logger.logger.log_struct.side_effect = ServiceUnavailable("unavailable")

    assert cloud_logger.log_crawl(failed_state()) is False
