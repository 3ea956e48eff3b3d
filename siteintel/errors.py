"""
Crawl error taxonomy.

Every error carries the pipeline stage that produced it so the orchestrator
can report a stage-tagged failure while callers only see "crawl failed".
"""

from typing import List, Optional

from .models import CrawlStage


class CrawlError(Exception):
    """Base class for all pipeline failures."""

    stage: CrawlStage = CrawlStage.FAILED

    def __init__(self, message: str, url: Optional[str] = None):
        super().__init__(message)
        self.url = url

    def __str__(self) -> str:
        message = super().__str__()
        return f"[{self.stage.value}] {message}"


# Rendering

class NavigationError(CrawlError):
    """Target did not resolve or respond within the navigation timeout."""
    stage = CrawlStage.RENDERING


class RenderTimeoutError(CrawlError):
    """Page never reached a quiescent state."""
    stage = CrawlStage.RENDERING


# Extraction

class ExtractionError(CrawlError):
    """Unexpected failure while reading the DOM snapshot."""
    stage = CrawlStage.EXTRACTING


# Validation

class SchemaError(CrawlError):
    """Structured record is missing a required field or has the wrong shape."""
    stage = CrawlStage.VALIDATING

    def __init__(self, field: str, message: str, url: Optional[str] = None):
        super().__init__(f"{field}: {message}", url=url)
        self.field = field


# Report generation

class GenerationError(CrawlError):
    """Report service returned nothing usable or failed outright."""
    stage = CrawlStage.GENERATING


class IncompleteReportError(GenerationError):
    """Reply parsed but one or more report sections are missing or not strings."""

    def __init__(self, missing: List[str], url: Optional[str] = None):
        super().__init__(f"missing or invalid report sections: {', '.join(missing)}", url=url)
        self.missing = list(missing)


# Persistence

class PersistenceError(CrawlError):
    """Document store or archive write failed."""
    stage = CrawlStage.PERSISTING
