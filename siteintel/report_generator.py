"""
Report Generator

Sends a page's URL and text corpus to the narrative-generation service with a
fixed analytical prompt and parses the reply into a BusinessReport.

The service sits behind the narrow ``ReportService`` capability so tests can
substitute fakes that return malformed, incomplete or slow replies.
``OpenAIReportService`` is the production implementation.

No retry happens here: one failed call fails the crawl.
"""

import json
import logging
import re
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from string import Template
from typing import Optional, Protocol

from openai import AsyncOpenAI

from .config import (
    MAX_CORPUS_CHARS,
    REPORT_MAX_TOKENS,
    REPORT_MODEL,
    REPORT_TEMPERATURE,
    Settings,
)
from .errors import CrawlError, GenerationError, IncompleteReportError
from .models import REPORT_FIELDS, BusinessReport

logger = logging.getLogger(__name__)

PROMPTS_DIR = Path(__file__).parent / "prompts"

_CODE_FENCE = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL | re.IGNORECASE)


@dataclass(frozen=True)
class ReportRequest:
    system_prompt: str
    user_prompt: str
    temperature: float = REPORT_TEMPERATURE
    max_output_tokens: int = REPORT_MAX_TOKENS


class ReportService(Protocol):
    """Anything that turns a prompt into a single text reply."""

    async def complete(self, request: ReportRequest) -> Optional[str]:
        ...


class OpenAIReportService:
    """ReportService backed by OpenAI chat completions."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        organization: Optional[str] = None,
        model: str = REPORT_MODEL,
        client: Optional[AsyncOpenAI] = None
    ):
        self.api_key = api_key
        self.organization = organization
        self.model = model
        self._client = client

    @classmethod
    def from_settings(cls, settings: Settings) -> "OpenAIReportService":
        return cls(
            api_key=settings.openai_api_key,
            organization=settings.openai_organization,
            model=settings.openai_model
        )

    def _get_client(self) -> AsyncOpenAI:
        """Get or initialize the OpenAI client."""
        if self._client is None:
            if not self.api_key:
                raise ValueError("OPENAI_API_KEY environment variable is required")
            self._client = AsyncOpenAI(api_key=self.api_key, organization=self.organization)
        return self._client

    async def complete(self, request: ReportRequest) -> Optional[str]:
        client = self._get_client()
        completion = await client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": request.system_prompt},
                {"role": "user", "content": request.user_prompt}
            ],
            temperature=request.temperature,
            max_tokens=request.max_output_tokens
        )
        if not completion.choices:
            return None
        return completion.choices[0].message.content


# ============================================================================
# PROMPTS
# ============================================================================

@lru_cache(maxsize=None)
def load_prompt(name: str) -> str:
    """Load a prompt template from the prompts directory."""
    prompt_path = PROMPTS_DIR / name
    with open(prompt_path, "r", encoding="utf-8") as f:
        return f.read().strip()


def truncate_corpus(corpus: str, max_chars: int) -> str:
    """
    Bound the corpus to ``max_chars`` characters, cutting at a line boundary.

    A ``max_chars`` of 0 or less disables the bound.
    """
    if max_chars <= 0 or len(corpus) <= max_chars:
        return corpus
    cut = corpus.rfind("\n", 0, max_chars + 1)
    if cut <= 0:
        cut = max_chars
    return corpus[:cut]


# ============================================================================
# PARSING
# ============================================================================

def parse_report(reply: Optional[str], url: Optional[str] = None) -> BusinessReport:
    """
    Parse a service reply into a BusinessReport.

    Raises:
        GenerationError: empty reply, or not a JSON object
        IncompleteReportError: any of the eleven sections missing, not a string or blank
    """
    if reply is None or not reply.strip():
        raise GenerationError("No content received from report service", url=url)

    text = reply.strip()
    fenced = _CODE_FENCE.match(text)
    if fenced:
        text = fenced.group(1)

    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise GenerationError(f"Report reply is not valid JSON: {e}", url=url) from e

    if not isinstance(data, dict):
        raise GenerationError(
            f"Report reply must be a JSON object, got {type(data).__name__}", url=url
        )

    missing = [
        name for name in REPORT_FIELDS
        if not isinstance(data.get(name), str) or not data[name].strip()
    ]
    if missing:
        raise IncompleteReportError(missing, url=url)

    extra = sorted(set(data) - set(REPORT_FIELDS))
    if extra:
        logger.debug(f"Dropping unexpected report keys: {extra}")

    return BusinessReport.model_validate({name: data[name] for name in REPORT_FIELDS})


# ============================================================================
# GENERATOR
# ============================================================================

class ReportGenerator:
    """Builds the fixed prompt, calls the service once and parses the reply."""

    def __init__(
        self,
        service: ReportService,
        temperature: float = REPORT_TEMPERATURE,
        max_output_tokens: int = REPORT_MAX_TOKENS,
        max_corpus_chars: int = MAX_CORPUS_CHARS
    ):
        self.service = service
        self.temperature = temperature
        self.max_output_tokens = max_output_tokens
        self.max_corpus_chars = max_corpus_chars

    @classmethod
    def from_settings(cls, settings: Settings) -> "ReportGenerator":
        return cls(
            service=OpenAIReportService.from_settings(settings),
            temperature=settings.report_temperature,
            max_output_tokens=settings.report_max_tokens,
            max_corpus_chars=settings.max_corpus_chars
        )

    def build_request(self, url: str, corpus: str) -> ReportRequest:
        bounded = truncate_corpus(corpus, self.max_corpus_chars)
        if len(bounded) < len(corpus):
            logger.warning(
                f"  ⚠️  Corpus truncated from {len(corpus):,} to {len(bounded):,} characters"
            )
        user_prompt = Template(load_prompt("business_report_user.md")).safe_substitute(
            url=url,
            content=bounded
        )
        return ReportRequest(
            system_prompt=load_prompt("business_report_system.md"),
            user_prompt=user_prompt,
            temperature=self.temperature,
            max_output_tokens=self.max_output_tokens
        )

    async def generate(self, url: str, corpus: str) -> BusinessReport:
        """
        Generate the business report for one page.

        Args:
            url: Page URL (shown to the model)
            corpus: Flattened page text

        Returns:
            BusinessReport with all eleven sections
        """
        request = self.build_request(url, corpus)
        logger.info(f"🤖 Requesting business report for {url} ({len(corpus):,} chars of text)")
        try:
            reply = await self.service.complete(request)
        except CrawlError:
            raise
        except Exception as e:
            raise GenerationError(f"Report service call failed: {e}", url=url) from e

        report = parse_report(reply, url=url)
        logger.info("  ✅ Business report generated")
        return report
