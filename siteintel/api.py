"""
SiteIntel HTTP API

Endpoints:
- POST /api/crawl              crawl one URL and return the artifact
- GET  /api/data               all stored artifacts, newest first
- GET  /api/reports            HTML list of archived reports
- GET  /api/reports/{filename} HTML view of one archived report
- GET  /health                 liveness probe

Run with:
    uvicorn siteintel.api:app --reload
"""

import html
import json
import logging
from typing import Any, Dict, Optional

from fastapi import FastAPI
from fastapi.concurrency import run_in_threadpool
from fastapi.encoders import jsonable_encoder
from fastapi.responses import HTMLResponse, JSONResponse
from pydantic import BaseModel, Field

from .archive import ReportArchive, archive_from_settings
from .config import configure_logging, get_settings
from .dom import is_http_url
from .errors import CrawlError, PersistenceError
from .pipeline import CrawlPipeline
from .store import ArtifactStore, MongoArtifactStore

configure_logging()
logger = logging.getLogger(__name__)

app = FastAPI(
    title="SiteIntel API",
    description="Crawl a web page, extract its structure and generate a business report",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc"
)

_pipeline: Optional[CrawlPipeline] = None
_store: Optional[ArtifactStore] = None
_archive: Optional[ReportArchive] = None


def get_store() -> ArtifactStore:
    """Get or create the document store."""
    global _store
    if _store is None:
        _store = MongoArtifactStore.from_settings(get_settings())
    return _store


def get_archive() -> ReportArchive:
    """Get or create the report archive."""
    global _archive
    if _archive is None:
        _archive = archive_from_settings(get_settings())
    return _archive


def get_pipeline() -> CrawlPipeline:
    """Get or create the crawl pipeline (shares the store and archive)."""
    global _pipeline
    if _pipeline is None:
        _pipeline = CrawlPipeline.from_settings(
            get_settings(),
            store=get_store(),
            archive=get_archive()
        )
    return _pipeline


# ============================================================================
# Pydantic Models
# ============================================================================

class CrawlRequest(BaseModel):
    """Request model for a crawl"""
    url: Optional[str] = Field(None, description="Absolute http(s) URL to crawl")


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


# ============================================================================
# HTML
# ============================================================================

PAGE_STYLE = """
    body { font-family: Arial, sans-serif; margin: 20px; }
    h1, h2 { color: #333; }
    .report-list, .section { margin: 20px 0; }
    .report-item { padding: 10px; margin: 5px 0; background: #f5f5f5; border-radius: 4px; }
    .report-item a, .back-link a { color: #0066cc; text-decoration: none; }
    .report-item a:hover, .back-link a:hover { text-decoration: underline; }
    .back-link { margin-bottom: 20px; }
    pre { background: #f8f8f8; padding: 15px; border-radius: 4px; overflow-x: auto; }
    .no-reports { color: #666; font-style: italic; }
"""


def render_page(title: str, body: str) -> str:
    return (
        "<!DOCTYPE html>\n<html>\n<head>\n"
        f"<title>{html.escape(title)}</title>\n"
        f"<style>{PAGE_STYLE}</style>\n"
        "</head>\n<body>\n"
        f"{body}\n"
        "</body>\n</html>\n"
    )


def render_report_list(names) -> str:
    if names:
        items = "\n".join(
            f'<div class="report-item"><a href="/api/reports/{html.escape(name, quote=True)}">'
            f"{html.escape(name)}</a></div>"
            for name in names
        )
    else:
        items = '<div class="no-reports">No reports found</div>'
    body = (
        "<h1>Business Intelligence Reports</h1>\n"
        f'<div class="report-list">\n{items}\n</div>'
    )
    return render_page("Business Intelligence Reports", body)


def render_report(name: str, report: Dict[str, Any]) -> str:
    def pretty(value: Any) -> str:
        return html.escape(json.dumps(value, indent=2, ensure_ascii=False))

    body = (
        '<div class="back-link"><a href="/api/reports">&larr; Back to Reports List</a></div>\n'
        f"<h1>Report: {html.escape(name)}</h1>\n"
        '<div class="section">\n<h2>Extracted Data</h2>\n'
        f"<pre>{pretty(report.get('extractedData'))}</pre>\n</div>\n"
        '<div class="section">\n<h2>Business Report</h2>\n'
        f"<pre>{pretty(report.get('businessReport'))}</pre>\n</div>"
    )
    return render_page(f"Report: {name}", body)


# ============================================================================
# Endpoints
# ============================================================================

@app.get("/health", tags=["Health"])
async def health():
    """Liveness probe"""
    return {"status": "ok"}


@app.post("/api/crawl", tags=["Crawl"])
async def crawl(request: CrawlRequest):
    """
    Crawl one URL: render, extract, validate, generate the business report and persist.

    Returns the extracted data, the business report and the archive file name.
    """
    url = (request.url or "").strip()
    if not url:
        return error_response(400, "URL is required")
    if not is_http_url(url):
        return error_response(400, "URL must be an absolute http(s) URL")

    try:
        result = await get_pipeline().run(url)
    except CrawlError as e:
        logger.error(f"Error in /api/crawl: {e}")
        return error_response(500, "Failed to crawl website")
    except Exception as e:
        logger.error(f"Error in /api/crawl: {e}", exc_info=True)
        return error_response(500, "Failed to crawl website")

    return {
        "success": True,
        "data": result.artifact.archive_payload(),
        "reportFile": result.report_file
    }


@app.get("/api/data", tags=["Data"])
async def list_data():
    """All stored artifacts, newest first."""
    try:
        documents = await run_in_threadpool(get_store().find_all)
    except PersistenceError as e:
        logger.error(f"Error in /api/data: {e}")
        return error_response(500, "Failed to fetch data")
    return JSONResponse(content=jsonable_encoder(documents))


@app.get("/api/reports", response_class=HTMLResponse, tags=["Reports"])
async def list_reports():
    """HTML list of archived reports, newest first."""
    try:
        names = await run_in_threadpool(get_archive().list)
    except Exception as e:
        logger.error(f"Error in /api/reports: {e}", exc_info=True)
        return error_response(500, "Failed to fetch reports")
    logger.info(f"Found {len(names)} reports")
    return HTMLResponse(render_report_list(names))


@app.get("/api/reports/{filename}", response_class=HTMLResponse, tags=["Reports"])
async def view_report(filename: str):
    """HTML view of one archived report."""
    try:
        report = await run_in_threadpool(get_archive().read, filename)
    except ValueError:
        return error_response(404, "Report not found")
    except Exception as e:
        logger.error(f"Error in /api/reports/{filename}: {e}", exc_info=True)
        return error_response(500, "Failed to fetch report")

    if report is None:
        return error_response(404, "Report not found")
    return HTMLResponse(render_report(filename, report))

