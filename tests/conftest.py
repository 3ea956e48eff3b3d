"""
Shared fixtures: synthetic pages, a mocked Playwright stack, a fake report
service and an in-memory document store. No test needs a browser, MongoDB
or OpenAI.
"""

import json
from datetime import datetime, timezone
from types import SimpleNamespace
from typing import Any, Dict, List, Optional
from unittest.mock import AsyncMock, MagicMock

import pytest

from siteintel.archive import LocalReportArchive
from siteintel.dom import DomSnapshot
from siteintel.errors import PersistenceError
from siteintel.extractor import extract_structured
from siteintel.models import REPORT_SECTIONS, BusinessReport, CrawlArtifact
from siteintel.renderer import PageRenderer, RendererConfig
from siteintel.report_generator import ReportGenerator, ReportRequest


# ============================================================================
# Pages
# ============================================================================

ACME_URL = "https://acme.com/"

ACME_HTML = """<!DOCTYPE html>
<html>
<head><title>Acme</title></head>
<body>
  <p>We sell widgets.</p>
  <div><a href="https://acme.com/about">About us</a></div>
</body>
</html>
"""

CONTACT_HTML = """<html>
<head><title>Contact</title></head>
<body>
  <a href="mailto:info@acme.com">Email</a>
  <a href="tel:+15551234567">Call</a>
</body>
</html>
"""

RICH_HTML = """<!DOCTYPE html>
<html>
<head>
  <title>  Acme Widgets  </title>
  <meta name="Description" content="Industrial widgets since 1950">
  <style>body { color: red; }</style>
  <script>var tracking = "do not include";</script>
</head>
<body>
  <header>
    <a href="/">Home</a>
  </header>
  <nav>
    <a href="/products">Products</a>
    <a href="https://acme.com/pricing">Pricing</a>
  </nav>
  <p>Sidebar teaser outside the main region.</p>
  <main>
    <h1>Widgets for every job</h1>
    <p>Our widgets last a lifetime.</p>
    <h2>Support</h2>
    <p>Call us any time.</p>
    <img src="/img/widget.png" alt="Widget" title="Our widget">
    <img src="" alt="broken">
    <img alt="no source">
  </main>
  <!-- hidden comment -->
  <script>window.track = "hidden";</script>
  <a href="#top">Back to top</a>
  <a href="/relative/page">Relative</a>
  <a href="javascript:void(0)">Script link</a>
  <a href="https://www.linkedin.com/company/acme">LinkedIn</a>
  <a href="https://twitter.com/acme">Twitter</a>
  <a href="https://x.com/acme">X</a>
  <a href="mailto:sales@acme.com?subject=Hello">Sales</a>
  <a href="MAILTO:sales@acme.com">Sales again</a>
  <a href="tel:+1%20555%20000">Phone</a>
  <address>1 Main St, Springfield</address>
  <div itemprop="address">1 Main St, Springfield</div>
  <footer><div class="footer-copyright">&copy; 2024 Acme Inc.</div></footer>
</body>
</html>
"""


# ============================================================================
# Report replies
# ============================================================================

def make_report(**overrides) -> Dict[str, Any]:
    report = {name: f"{title} paragraph for Acme." for name, title in REPORT_SECTIONS}
    report.update(overrides)
    return report


def report_reply(report: Optional[Dict[str, Any]] = None) -> str:
    return json.dumps(report if report is not None else make_report())


class FakeReportService:
    """ReportService that returns a canned reply (or raises) and records requests."""

    def __init__(self, reply: Optional[str] = None, error: Optional[Exception] = None):
        self.reply = reply
        self.error = error
        self.requests: List[ReportRequest] = []

    async def complete(self, request: ReportRequest) -> Optional[str]:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return self.reply


# ============================================================================
# Store
# ============================================================================

class InMemoryArtifactStore:
    """ArtifactStore keeping documents in a list."""

    def __init__(self, fail: bool = False):
        self.documents: List[Dict[str, Any]] = []
        self.fail = fail

    def save(self, artifact: CrawlArtifact) -> None:
        if self.fail:
            raise PersistenceError("store unavailable", url=artifact.url)
        self.documents.append(artifact.to_document())

    def find_all(self) -> List[Dict[str, Any]]:
        return sorted(self.documents, key=lambda doc: doc["timestamp"], reverse=True)


# ============================================================================
# Playwright
# ============================================================================

def make_playwright(
    html: str = ACME_HTML,
    status: int = 200,
    page_url: str = ACME_URL,
    goto_error: Optional[Exception] = None
) -> SimpleNamespace:
    """
    Mocked ``async_playwright`` factory plus handles on the browser objects.

    The returned ``factory`` is passed to PageRenderer as playwright_factory.
    """
    page = MagicMock()
    page.url = page_url
    page.goto = AsyncMock(return_value=MagicMock(status=status), side_effect=goto_error)
    page.wait_for_selector = AsyncMock()
    page.wait_for_timeout = AsyncMock()
    page.content = AsyncMock(return_value=html)

    context = MagicMock()
    context.new_page = AsyncMock(return_value=page)
    context.close = AsyncMock()

    browser = MagicMock()
    browser.new_context = AsyncMock(return_value=context)
    browser.close = AsyncMock()

    playwright = MagicMock()
    playwright.chromium.launch = AsyncMock(return_value=browser)

    manager = MagicMock()
    manager.__aenter__ = AsyncMock(return_value=playwright)
    manager.__aexit__ = AsyncMock(return_value=False)

    return SimpleNamespace(
        factory=MagicMock(return_value=manager),
        playwright=playwright,
        browser=browser,
        context=context,
        page=page
    )


def make_renderer(mocked: SimpleNamespace) -> PageRenderer:
    return PageRenderer(RendererConfig(), playwright_factory=mocked.factory)


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture
def store():
    return InMemoryArtifactStore()


@pytest.fixture
def archive(tmp_path):
    return LocalReportArchive(tmp_path / "reports")


@pytest.fixture
def report_service():
    return FakeReportService(reply=report_reply())


@pytest.fixture
def report_generator(report_service):
    return ReportGenerator(report_service)


# ============================================================================
# Artifacts
# ============================================================================

TIMESTAMP = datetime(2025, 1, 31, 9, 15, 2, 123456, tzinfo=timezone.utc)


def make_artifact(timestamp: datetime = TIMESTAMP, html: str = ACME_HTML) -> CrawlArtifact:
    return CrawlArtifact(
        url=ACME_URL,
        raw_html=html,
        extracted_data=extract_structured(DomSnapshot(html, ACME_URL)),
        business_report=BusinessReport.model_validate(make_report()),
        timestamp=timestamp
    )
