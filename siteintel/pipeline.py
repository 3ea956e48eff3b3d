"""
Pipeline Orchestrator

Runs one crawl request through its stages:

    RENDERING -> EXTRACTING -> VALIDATING -> GENERATING -> PERSISTING -> DONE
                        (any stage) -> FAILED

Stages run strictly in order and nothing is retried. The browser opened by
the renderer stays open until the report is generated. It is closed on every
exit path, and always before anything is persisted. A failure in any stage
aborts the rest, is recorded in the CrawlState and re-raised as a
stage-tagged CrawlError. Either the artifact is stored and
archived, or nothing is.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Dict, List, Optional, Type, TypeVar

from .archive import ReportArchive, archive_from_settings
from .cloud_logging import CrawlCloudLogger
from .config import Settings, get_settings
from .dom import DomSnapshot
from .errors import (
    CrawlError,
    ExtractionError,
    GenerationError,
    NavigationError,
    PersistenceError,
    SchemaError,
)
from .extractor import ExtractionResult, extract
from .models import CrawlArtifact, CrawlStage, utc_now
from .renderer import PageRenderer, RenderedPage, RendererConfig
from .report_generator import ReportGenerator
from .store import ArtifactStore, MongoArtifactStore
from .validator import validate

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Transitions allowed by the state machine (FAILED reachable from any non-terminal stage)
TRANSITIONS: Dict[CrawlStage, CrawlStage] = {
    CrawlStage.RENDERING: CrawlStage.EXTRACTING,
    CrawlStage.EXTRACTING: CrawlStage.VALIDATING,
    CrawlStage.VALIDATING: CrawlStage.GENERATING,
    CrawlStage.GENERATING: CrawlStage.PERSISTING,
    CrawlStage.PERSISTING: CrawlStage.DONE,
}
TERMINAL_STAGES = (CrawlStage.DONE, CrawlStage.FAILED)


@dataclass
class StageTransition:
    stage: CrawlStage
    at: datetime = field(default_factory=utc_now)


@dataclass
class CrawlState:
    """State of one crawl request."""
    url: str
    stage: CrawlStage = CrawlStage.RENDERING
    failed_stage: Optional[CrawlStage] = None
    error: Optional[CrawlError] = None
    report_file: Optional[str] = None
    history: List[StageTransition] = field(default_factory=list)
    started_at: datetime = field(default_factory=utc_now)
    completed_at: Optional[datetime] = None

    def __post_init__(self):
        if not self.history:
            self.history.append(StageTransition(self.stage, self.started_at))

    def advance(self, stage: CrawlStage) -> None:
        expected = TRANSITIONS.get(self.stage)
        if stage != expected:
            raise RuntimeError(f"Invalid crawl transition {self.stage.value} -> {stage.value}")
        self.stage = stage
        self.history.append(StageTransition(stage))
        if stage == CrawlStage.DONE:
            self.completed_at = utc_now()
        logger.info(f"  ➡️  {self.url}: {stage.value}")

    def fail(self, error: CrawlError) -> None:
        if self.stage in TERMINAL_STAGES:
            raise RuntimeError(f"Crawl already finished with status {self.stage.value}")
        self.failed_stage = self.stage
        self.error = error
        self.stage = CrawlStage.FAILED
        self.history.append(StageTransition(CrawlStage.FAILED))
        self.completed_at = utc_now()

    @property
    def duration_seconds(self) -> Optional[float]:
        if self.completed_at is None:
            return None
        return round((self.completed_at - self.started_at).total_seconds(), 3)


@dataclass
class CrawlResult:
    artifact: CrawlArtifact
    report_file: Optional[str]
    state: CrawlState


# Error type used when an unexpected exception escapes a stage
STAGE_ERRORS: Dict[CrawlStage, Type[CrawlError]] = {
    CrawlStage.RENDERING: NavigationError,
    CrawlStage.EXTRACTING: ExtractionError,
    CrawlStage.GENERATING: GenerationError,
    CrawlStage.PERSISTING: PersistenceError,
}


def wrap_stage_error(stage: CrawlStage, error: Exception, url: str) -> CrawlError:
    if stage == CrawlStage.VALIDATING:
        return SchemaError("$", f"{type(error).__name__}: {error}", url=url)
    error_type = STAGE_ERRORS.get(stage, CrawlError)
    return error_type(f"Unexpected {type(error).__name__}: {error}", url=url)


class CrawlPipeline:
    """Crawl -> extract -> validate -> report -> persist, for one URL per run."""

    def __init__(
        self,
        renderer: PageRenderer,
        report_generator: ReportGenerator,
        store: Optional[ArtifactStore] = None,
        archive: Optional[ReportArchive] = None,
        persist: bool = True,
        cloud_logger: Optional[CrawlCloudLogger] = None
    ):
        if persist and (store is None or archive is None):
            raise ValueError("A store and an archive are required when persist=True")
        self.renderer = renderer
        self.report_generator = report_generator
        self.store = store
        self.archive = archive
        self.persist = persist
        self.cloud_logger = cloud_logger

    @classmethod
    def from_settings(
        cls,
        settings: Optional[Settings] = None,
        persist: bool = True,
        store: Optional[ArtifactStore] = None,
        archive: Optional[ReportArchive] = None
    ) -> "CrawlPipeline":
        """Wire the production collaborators from settings; a given store/archive is reused."""
        settings = settings or get_settings()
        if persist:
            store = store or MongoArtifactStore.from_settings(settings)
            archive = archive or archive_from_settings(settings)
        return cls(
            renderer=PageRenderer(RendererConfig.from_settings(settings)),
            report_generator=ReportGenerator.from_settings(settings),
            store=store,
            archive=archive,
            persist=persist,
            cloud_logger=CrawlCloudLogger(settings)
        )

    async def run(self, url: str) -> CrawlResult:
        """
        Crawl one URL end to end.

        Args:
            url: Absolute HTTP(S) URL

        Returns:
            CrawlResult with the artifact, archive file name and final state

        Raises:
            CrawlError: the stage-tagged failure of whichever stage failed
        """
        state = CrawlState(url=url)
        logger.info("=" * 70)
        logger.info(f"Crawling {url}")
        logger.info("=" * 70)

        try:
            async with self.renderer.open(url) as page:
                state.advance(CrawlStage.EXTRACTING)
                extraction = await self._in_executor(self._extract, page)

                state.advance(CrawlStage.VALIDATING)
                data = validate(extraction.data, url=url)

                state.advance(CrawlStage.GENERATING)
                report = await self.report_generator.generate(url, extraction.text)

                state.advance(CrawlStage.PERSISTING)
                artifact = CrawlArtifact(
                    url=url,
                    raw_html=page.html,
                    extracted_data=data,
                    business_report=report
                )

            # Persist only once the browser is closed
            if self.persist:
                state.report_file = await self._in_executor(self._persist, artifact)
        except CrawlError as e:
            self._fail(state, e)
            raise
        except Exception as e:
            error = wrap_stage_error(state.stage, e, url)
            self._fail(state, error)
            raise error from e

        state.advance(CrawlStage.DONE)
        logger.info(f"✅ Crawl complete for {url} in {state.duration_seconds}s")
        self._log_to_cloud(state)
        return CrawlResult(artifact=artifact, report_file=state.report_file, state=state)

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    @staticmethod
    def _extract(page: RenderedPage) -> ExtractionResult:
        snapshot = DomSnapshot.from_rendered(page)
        result = extract(snapshot)
        logger.info(
            f"  📄 Extracted {len(result.text):,} chars of text, "
            f"{len(result.data.links)} links, {len(result.data.headings)} headings"
        )
        return result

    def _persist(self, artifact: CrawlArtifact) -> str:
        """Archive then store; if the store write fails the archive file is removed."""
        report_file = self.archive.write(artifact)
        try:
            self.store.save(artifact)
        except Exception:
            try:
                self.archive.remove(report_file)
            except PersistenceError as cleanup_error:
                logger.error(f"❌ Could not roll back report file {report_file}: {cleanup_error}")
            raise
        return report_file

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    async def _in_executor(fn: Callable[..., T], *args) -> T:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, fn, *args)

    def _fail(self, state: CrawlState, error: CrawlError) -> None:
        state.fail(error)
        logger.error(
            f"❌ Crawl failed for {state.url} at stage '{state.failed_stage.value}': "
            f"{type(error).__name__}: {error}",
            exc_info=error
        )
        self._log_to_cloud(state)

    def _log_to_cloud(self, state: CrawlState) -> None:
        if self.cloud_logger is not None:
            self.cloud_logger.log_crawl(state)
