"""
Report Archive

Mirrors each successful crawl's extracted data and business report to one
pretty-printed JSON file named after the artifact timestamp:

    reports/report-2025-01-31T09-15-02-123Z.json

Two backends:
- LocalReportArchive: a directory on disk (default)
- GCSReportArchive: a bucket prefix in Google Cloud Storage (GCS_BUCKET_NAME)

Names never overwrite an existing report; a clash gets a numeric suffix.
"""

import json
import logging
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol

from google.api_core.exceptions import GoogleAPIError, NotFound, PreconditionFailed
from google.cloud import storage

from .errors import PersistenceError
from .models import CrawlArtifact

logger = logging.getLogger(__name__)

MAX_NAME_ATTEMPTS = 100
_REPORT_NAME = re.compile(r"^report-[0-9A-Za-z\-]+\.json$")

# Credentials file used for local development; ADC otherwise
CREDENTIALS_PATH = Path.cwd() / "config" / "gcp.json"


def report_filename(timestamp: datetime, attempt: int = 0) -> str:
    """
    Archive file name for a timestamp.

    ISO 8601 in UTC with millisecond precision, ':' and '.' replaced by '-'.
    """
    ts = timestamp.astimezone(timezone.utc) if timestamp.tzinfo else timestamp
    iso = ts.strftime("%Y-%m-%dT%H:%M:%S") + f".{ts.microsecond // 1000:03d}Z"
    stem = "report-" + iso.replace(":", "-").replace(".", "-")
    if attempt:
        stem = f"{stem}-{attempt}"
    return f"{stem}.json"


def is_report_name(name: str) -> bool:
    return bool(_REPORT_NAME.match(name or ""))


def serialize_payload(artifact: CrawlArtifact) -> str:
    return json.dumps(artifact.archive_payload(), indent=2, ensure_ascii=False)


class ReportArchive(Protocol):
    def write(self, artifact: CrawlArtifact) -> str:
        ...

    def remove(self, name: str) -> None:
        ...

    def list(self) -> List[str]:
        ...

    def read(self, name: str) -> Optional[Dict[str, Any]]:
        ...


# ============================================================================
# LOCAL DIRECTORY
# ============================================================================

class LocalReportArchive:
    """Archive backed by a local directory."""

    def __init__(self, reports_dir: Path):
        self.reports_dir = Path(reports_dir)

    def write(self, artifact: CrawlArtifact) -> str:
        """
        Write the artifact's archive payload to a new file.

        Returns:
            The file name (relative to the reports directory)

        Raises:
            PersistenceError: the file could not be created
        """
        content = serialize_payload(artifact)
        try:
            self.reports_dir.mkdir(parents=True, exist_ok=True)
            for attempt in range(MAX_NAME_ATTEMPTS):
                name = report_filename(artifact.timestamp, attempt)
                try:
                    with open(self.reports_dir / name, "x", encoding="utf-8") as f:
                        f.write(content)
                except FileExistsError:
                    continue
                logger.info(f"💾 Saved report to {self.reports_dir / name}")
                return name
        except OSError as e:
            raise PersistenceError(f"Failed to write report file: {e}", url=artifact.url) from e
        raise PersistenceError(
            f"No free report file name after {MAX_NAME_ATTEMPTS} attempts", url=artifact.url
        )

    def remove(self, name: str) -> None:
        path = self._path(name)
        try:
            path.unlink()
            logger.info(f"Removed report file {path}")
        except FileNotFoundError:
            pass
        except OSError as e:
            raise PersistenceError(f"Failed to remove report file {name}: {e}") from e

    def list(self) -> List[str]:
        """Report file names, newest first."""
        if not self.reports_dir.exists():
            return []
        files = [p for p in self.reports_dir.glob("*.json") if p.is_file()]
        files.sort(key=lambda p: p.stat().st_mtime, reverse=True)
        return [p.name for p in files]

    def read(self, name: str) -> Optional[Dict[str, Any]]:
        if not is_report_name(name):
            return None
        path = self._path(name)
        if not path.exists():
            return None
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)

    def _path(self, name: str) -> Path:
        if Path(name).name != name:
            raise ValueError(f"Invalid report name: {name!r}")
        return self.reports_dir / name


# ============================================================================
# GOOGLE CLOUD STORAGE
# ============================================================================

_gcs_client: Optional[storage.Client] = None


def get_gcs_client(project_id: Optional[str] = None) -> storage.Client:
    """
    Get a GCS client instance.
    Uses service account credentials from config/gcp.json if available,
    otherwise falls back to Application Default Credentials.
    """
    global _gcs_client
    if _gcs_client is not None:
        return _gcs_client

    if CREDENTIALS_PATH.exists():
        from google.oauth2 import service_account
        credentials = service_account.Credentials.from_service_account_file(str(CREDENTIALS_PATH))
        _gcs_client = storage.Client(project=project_id, credentials=credentials)
        logger.info(f"✅ GCS client initialized with credentials from {CREDENTIALS_PATH}")
    else:
        _gcs_client = storage.Client(project=project_id)
        logger.info("✅ GCS client initialized with Application Default Credentials")
    return _gcs_client


class GCSReportArchive:
    """Archive backed by a GCS bucket prefix."""

    def __init__(
        self,
        bucket_name: str,
        prefix: str = "reports",
        project_id: Optional[str] = None,
        client: Optional[storage.Client] = None
    ):
        self.bucket_name = bucket_name
        self.prefix = prefix.strip("/")
        self.project_id = project_id
        self._client = client

    @property
    def bucket(self) -> storage.Bucket:
        client = self._client or get_gcs_client(self.project_id)
        return client.bucket(self.bucket_name)

    def _blob_path(self, name: str) -> str:
        return f"{self.prefix}/{name}" if self.prefix else name

    def write(self, artifact: CrawlArtifact) -> str:
        content = serialize_payload(artifact)
        try:
            bucket = self.bucket
            for attempt in range(MAX_NAME_ATTEMPTS):
                name = report_filename(artifact.timestamp, attempt)
                blob = bucket.blob(self._blob_path(name))
                try:
                    # generation 0 = only create, never overwrite
                    blob.upload_from_string(
                        content,
                        content_type="application/json",
                        if_generation_match=0
                    )
                except PreconditionFailed:
                    continue
                logger.info(f"💾 Uploaded report to gs://{self.bucket_name}/{self._blob_path(name)}")
                return name
        except GoogleAPIError as e:
            raise PersistenceError(f"Failed to upload report to GCS: {e}", url=artifact.url) from e
        raise PersistenceError(
            f"No free report name after {MAX_NAME_ATTEMPTS} attempts", url=artifact.url
        )

    def remove(self, name: str) -> None:
        try:
            self.bucket.blob(self._blob_path(name)).delete()
            logger.info(f"Removed gs://{self.bucket_name}/{self._blob_path(name)}")
        except NotFound:
            pass
        except GoogleAPIError as e:
            raise PersistenceError(f"Failed to remove report {name} from GCS: {e}") from e

    def list(self) -> List[str]:
        prefix = f"{self.prefix}/" if self.prefix else ""
        blobs = [
            blob for blob in self.bucket.list_blobs(prefix=prefix)
            if blob.name.endswith(".json")
        ]
        blobs.sort(key=lambda blob: blob.updated or datetime.min.replace(tzinfo=timezone.utc), reverse=True)
        return [blob.name[len(prefix):] for blob in blobs]

    def read(self, name: str) -> Optional[Dict[str, Any]]:
        if not is_report_name(name):
            return None
        try:
            content = self.bucket.blob(self._blob_path(name)).download_as_text()
        except NotFound:
            logger.warning(f"File not found in GCS: gs://{self.bucket_name}/{self._blob_path(name)}")
            return None
        return json.loads(content)


def archive_from_settings(settings) -> ReportArchive:
    """GCS when a bucket is configured, else the local reports directory."""
    if settings.gcs_bucket_name:
        return GCSReportArchive(
            settings.gcs_bucket_name,
            prefix=settings.gcs_reports_prefix,
            project_id=settings.project_id
        )
    return LocalReportArchive(settings.reports_dir)
