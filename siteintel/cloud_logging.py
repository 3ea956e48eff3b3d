"""
Google Cloud Logging integration for crawl runs

Mirrors one structured record per crawl (URL, outcome, failed stage, error
type, duration, stage history) to Google Cloud Logging when enabled with
ENABLE_CLOUD_LOGGING=true and PROJECT_ID. Outside GCP it stays disabled and
every call is a cheap no-op. A logging failure never fails a crawl.
"""

import logging
from pathlib import Path
from typing import Any, Dict, Optional

from google.api_core.exceptions import GoogleAPIError
from google.auth.exceptions import GoogleAuthError
from google.cloud import logging as cloud_logging
from google.oauth2 import service_account

from .config import Settings, get_settings

logger = logging.getLogger(__name__)


class CrawlCloudLogger:
    """Client for logging crawl records to Google Cloud Logging."""

    def __init__(self, settings: Optional[Settings] = None, log_name: str = "crawl_runs"):
        self.settings = settings or get_settings()
        self.log_name = log_name
        self.client: Optional[Any] = None
        self.logger: Optional[Any] = None
        self.enabled = False

        self._initialize()

    def _initialize(self) -> None:
        """Initialize the Cloud Logging client if configured."""
        if not self.settings.enable_cloud_logging:
            logger.debug("Cloud Logging disabled (ENABLE_CLOUD_LOGGING not set to 'true')")
            return

        project_id = self.settings.project_id
        if not project_id:
            logger.warning("PROJECT_ID not set. Cloud Logging disabled.")
            return

        try:
            credentials_path = Path.cwd() / "config" / "gcp.json"
            if credentials_path.exists():
                credentials = service_account.Credentials.from_service_account_file(
                    str(credentials_path)
                )
                self.client = cloud_logging.Client(project=project_id, credentials=credentials)
                logger.info(f"Cloud Logging client initialized with credentials from {credentials_path}")
            else:
                # Application Default Credentials (Cloud Run)
                self.client = cloud_logging.Client(project=project_id)
                logger.info("Cloud Logging client initialized with Application Default Credentials")

            self.logger = self.client.logger(self.log_name)
            self.enabled = True
            logger.info(f"Cloud Logging enabled for project: {project_id}, log: {self.log_name}")
        except (GoogleAPIError, GoogleAuthError, OSError, ValueError) as e:
            logger.error(f"Failed to initialize Cloud Logging: {e}")
            self.enabled = False
            self.client = None
            self.logger = None

    def log_crawl(self, state: Any) -> bool:
        """
        Log one finished crawl.

        Args:
            state: CrawlState of a finished (done or failed) crawl

        Returns:
            True if logged, False otherwise
        """
        if not self.enabled or not self.logger:
            return False

        record = crawl_record(state)
        severity = "ERROR" if record["failed_stage"] else "INFO"
        try:
            self.logger.log_struct(
                record,
                severity=severity,
                labels={
                    "component": "crawl_pipeline",
                    "status": record["status"],
                    "failed_stage": record["failed_stage"] or "none",
                }
            )
            return True
        except (GoogleAPIError, GoogleAuthError, OSError) as e:
            logger.error(f"Failed to log crawl to Cloud Logging: {e}")
            return False


def crawl_record(state: Any) -> Dict[str, Any]:
    """Structured representation of a CrawlState."""
    error = state.error
    return {
        "url": state.url,
        "status": state.stage.value,
        "failed_stage": state.failed_stage.value if state.failed_stage else None,
        "error_type": type(error).__name__ if error else None,
        "error": str(error) if error else None,
        "report_file": state.report_file,
        "started_at": state.started_at.isoformat(),
        "completed_at": state.completed_at.isoformat() if state.completed_at else None,
        "duration_seconds": state.duration_seconds,
        "history": [
            {"stage": t.stage.value, "at": t.at.isoformat()} for t in state.history
        ],
    }
