"""
Runtime configuration.

All settings come from environment variables (a local .env file is loaded
with python-dotenv). ``get_settings()`` returns the process-wide instance;
tests build ``Settings(...)`` directly.
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import dotenv

dotenv.load_dotenv()

logger = logging.getLogger(__name__)

LOG_FORMAT = '%(asctime)s | %(levelname)s | %(name)s | %(message)s'

USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) "
    "AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)

# Timeout configuration (in milliseconds)
NAVIGATION_TIMEOUT = 60000  # page.goto with networkidle
SELECTOR_TIMEOUT = 10000    # each optional content selector wait
SETTLE_DELAY = 5000         # fixed delay after network idle

# Report service defaults
REPORT_MODEL = "gpt-4o-mini"
REPORT_TEMPERATURE = 0.3
REPORT_MAX_TOKENS = 2500
MAX_CORPUS_CHARS = 60000


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}")


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}")


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class Settings:
    """Configuration consumed by the pipeline, API and CLI."""

    # ---- Report service ----
    openai_api_key: Optional[str] = None
    openai_organization: Optional[str] = None
    openai_model: str = REPORT_MODEL
    report_temperature: float = REPORT_TEMPERATURE
    report_max_tokens: int = REPORT_MAX_TOKENS
    max_corpus_chars: int = MAX_CORPUS_CHARS

    # ---- Document store ----
    mongodb_uri: str = "mongodb://localhost:27017"
    mongodb_database: str = "siteintel"
    mongodb_collection: str = "website_data"

    # ---- Archive ----
    reports_dir: Path = field(default_factory=lambda: Path.cwd() / "reports")
    gcs_bucket_name: Optional[str] = None
    gcs_reports_prefix: str = "reports"
    project_id: Optional[str] = None

    # ---- Renderer ----
    navigation_timeout_ms: int = NAVIGATION_TIMEOUT
    selector_timeout_ms: int = SELECTOR_TIMEOUT
    settle_delay_ms: int = SETTLE_DELAY
    headless: bool = True
    user_agent: str = USER_AGENT

    # ---- Logging ----
    enable_cloud_logging: bool = False
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from the current environment."""
        reports_dir = os.getenv("REPORTS_DIR")
        return cls(
            openai_api_key=os.getenv("OPENAI_API_KEY"),
            openai_organization=os.getenv("OPENAI_ORGANIZATION_ID") or None,
            openai_model=os.getenv("OPENAI_MODEL", REPORT_MODEL),
            report_temperature=_env_float("REPORT_TEMPERATURE", REPORT_TEMPERATURE),
            report_max_tokens=_env_int("REPORT_MAX_TOKENS", REPORT_MAX_TOKENS),
            max_corpus_chars=_env_int("MAX_CORPUS_CHARS", MAX_CORPUS_CHARS),
            mongodb_uri=os.getenv("MONGODB_URI", "mongodb://localhost:27017"),
            mongodb_database=os.getenv("MONGODB_DATABASE", "siteintel"),
            mongodb_collection=os.getenv("MONGODB_COLLECTION", "website_data"),
            reports_dir=Path(reports_dir) if reports_dir else Path.cwd() / "reports",
            gcs_bucket_name=os.getenv("GCS_BUCKET_NAME") or None,
            gcs_reports_prefix=os.getenv("GCS_REPORTS_PREFIX", "reports"),
            project_id=os.getenv("PROJECT_ID") or None,
            navigation_timeout_ms=_env_int("NAVIGATION_TIMEOUT_MS", NAVIGATION_TIMEOUT),
            selector_timeout_ms=_env_int("SELECTOR_TIMEOUT_MS", SELECTOR_TIMEOUT),
            settle_delay_ms=_env_int("SETTLE_DELAY_MS", SETTLE_DELAY),
            headless=_env_bool("HEADLESS", True),
            user_agent=os.getenv("USER_AGENT", USER_AGENT),
            enable_cloud_logging=_env_bool("ENABLE_CLOUD_LOGGING", False),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )


_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get or create the process-wide settings."""
    global _settings
    if _settings is None:
        _settings = Settings.from_env()
    return _settings


def configure_logging(level: Optional[str] = None) -> None:
    """Configure root logging for entry points (API server, CLI)."""
    logging.basicConfig(
        level=getattr(logging, (level or get_settings().log_level), logging.INFO),
        format=LOG_FORMAT
    )
