"""
Page Renderer

Drives headless Chromium (Playwright async API) to a URL and waits until the
page is considered stable:
- navigate with wait_until="networkidle" (60s)
- wait for common content containers (10s each, non-fatal)
- one fixed settling delay for post-idle DOM mutation

Each call launches its own browser and isolated context. Both are closed on
every exit path of ``PageRenderer.open()``, including failures raised by the
caller inside the ``async with`` block.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Callable, Dict, Optional, Tuple

from playwright.async_api import async_playwright, Browser, BrowserContext, Page
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeout

from .config import (
    NAVIGATION_TIMEOUT,
    SELECTOR_TIMEOUT,
    SETTLE_DELAY,
    USER_AGENT,
    Settings,
)
from .errors import NavigationError, RenderTimeoutError

logger = logging.getLogger(__name__)

# Content-bearing elements worth waiting for on dynamically rendered pages
CONTENT_SELECTORS: Tuple[str, ...] = ("body", "article", "main", "#content")


@dataclass
class RendererConfig:
    navigation_timeout_ms: int = NAVIGATION_TIMEOUT
    selector_timeout_ms: int = SELECTOR_TIMEOUT
    settle_delay_ms: int = SETTLE_DELAY
    headless: bool = True
    user_agent: str = USER_AGENT
    viewport: Dict[str, int] = field(default_factory=lambda: {"width": 1920, "height": 1080})

    @classmethod
    def from_settings(cls, settings: Settings) -> "RendererConfig":
        return cls(
            navigation_timeout_ms=settings.navigation_timeout_ms,
            selector_timeout_ms=settings.selector_timeout_ms,
            settle_delay_ms=settings.settle_delay_ms,
            headless=settings.headless,
            user_agent=settings.user_agent,
        )


@dataclass
class RenderedPage:
    """Snapshot of a page once it reached a stable state."""
    requested_url: str
    final_url: str
    html: str
    status: Optional[int] = None


class PageRenderer:
    """Renders one URL per ``open()`` call in a fresh browser + context."""

    def __init__(
        self,
        config: Optional[RendererConfig] = None,
        playwright_factory: Callable[[], Any] = async_playwright
    ):
        self.config = config or RendererConfig()
        self._playwright_factory = playwright_factory

    @asynccontextmanager
    async def open(self, url: str) -> AsyncIterator[RenderedPage]:
        """
        Render ``url`` and yield the stable page snapshot.

        Args:
            url: Absolute URL to render

        Yields:
            RenderedPage with the serialized DOM

        Raises:
            NavigationError: target did not resolve/respond in time
            RenderTimeoutError: page never reached a quiescent state
        """
        async with self._playwright_factory() as p:
            browser: Optional[Browser] = None
            context: Optional[BrowserContext] = None
            try:
                try:
                    browser = await p.chromium.launch(headless=self.config.headless)
                    context = await browser.new_context(
                        user_agent=self.config.user_agent,
                        viewport=self.config.viewport
                    )
                    page = await context.new_page()
                except PlaywrightError as e:
                    raise NavigationError(f"Browser could not be started: {e}", url=url) from e

                rendered = await self._render(page, url)
                yield rendered
            finally:
                await self._teardown(context, browser)

    async def _render(self, page: Page, url: str) -> RenderedPage:
        logger.info(f"🌐 Navigating to {url}")
        try:
            response = await page.goto(
                url,
                wait_until="networkidle",
                timeout=self.config.navigation_timeout_ms
            )
        except PlaywrightTimeout as e:
            if self._has_committed(page):
                raise RenderTimeoutError(
                    f"Page responded but network never went idle within "
                    f"{self.config.navigation_timeout_ms}ms", url=url
                ) from e
            raise NavigationError(
                f"No response within {self.config.navigation_timeout_ms}ms", url=url
            ) from e
        except PlaywrightError as e:
            raise NavigationError(f"Navigation failed: {e}", url=url) from e

        status = response.status if response else None
        if status is not None and status >= 400:
            logger.warning(f"  ⚠️  {url} answered HTTP {status}, extracting anyway")

        await self._wait_for_content(page)

        # Additional wait for dynamic content
        await page.wait_for_timeout(self.config.settle_delay_ms)

        try:
            html = await page.content()
        except PlaywrightError as e:
            raise RenderTimeoutError(f"Page did not settle: {e}", url=url) from e

        logger.info(f"  ✅ Page loaded ({len(html):,} chars of HTML)")
        return RenderedPage(
            requested_url=url,
            final_url=page.url or url,
            html=html,
            status=status
        )

    async def _wait_for_content(self, page: Page) -> None:
        """Wait for each content selector; expiry is not an error."""

        async def wait_for(selector: str) -> None:
            try:
                await page.wait_for_selector(selector, timeout=self.config.selector_timeout_ms)
            except PlaywrightTimeout:
                logger.debug(f"  Selector not found before timeout: {selector}")
            except PlaywrightError as e:
                logger.debug(f"  Selector wait failed for {selector}: {e}")

        await asyncio.gather(*(wait_for(selector) for selector in CONTENT_SELECTORS))

    @staticmethod
    def _has_committed(page: Page) -> bool:
        current = page.url or ""
        return bool(current) and current != "about:blank"

    @staticmethod
    async def _teardown(context: Optional[BrowserContext], browser: Optional[Browser]) -> None:
        if context is not None:
            try:
                await context.close()
            except PlaywrightError as e:
                logger.warning(f"⚠️  Failed to close browser context: {e}")
        if browser is not None:
            try:
                await browser.close()
            except PlaywrightError as e:
                logger.warning(f"⚠️  Failed to close browser: {e}")
        logger.info("Browser closed")
