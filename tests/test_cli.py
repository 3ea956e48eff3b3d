"""Tests for the command-line entry point."""

import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from siteintel.cli import main
from siteintel.errors import NavigationError
from siteintel.pipeline import CrawlResult, CrawlState

from conftest import ACME_URL, make_artifact


@pytest.fixture
def pipeline():
    mock_pipeline = MagicMock()
    mock_pipeline.run = AsyncMock()
    mock_pipeline.store = None
    with patch("siteintel.cli.CrawlPipeline.from_settings", return_value=mock_pipeline) as from_settings:
        mock_pipeline.from_settings = from_settings
        yield mock_pipeline


def test_crawl_and_write_output(pipeline, tmp_path, capsys):
    state = CrawlState(url=ACME_URL)
    pipeline.run.return_value = CrawlResult(artifact=make_artifact(), report_file=None, state=state)
    output = tmp_path / "out" / "artifact.json"

    exit_code = main([ACME_URL, "--no-persist", "--output", str(output)])

    assert exit_code == 0
    assert pipeline.from_settings.call_args.kwargs["persist"] is False
    artifact = json.loads(output.read_text(encoding="utf-8"))
    assert artifact["url"] == ACME_URL
    assert artifact["businessReport"]["brandVoice"] == "Brand Voice paragraph for Acme."
    printed = capsys.readouterr().out
    assert "## Growth and Innovation" in printed


def test_crawl_failure_exit_code(pipeline, capsys):
    pipeline.run.side_effect = NavigationError("unreachable", url=ACME_URL)

    assert main([ACME_URL]) == 1
    assert "rendering" in capsys.readouterr().err


def test_invalid_url(pipeline):
    assert main(["acme.com"]) == 1
    pipeline.run.assert_not_awaited()
