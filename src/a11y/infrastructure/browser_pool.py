"""
Shared browser management.

One Chromium process is launched lazily and reused across scans for
warm-start performance. Every page analysis or link extraction gets its
own isolated browser context, which is always closed afterwards so
long-running workers do not leak tabs.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

from a11y.constants import DESKTOP_VIEWPORT_HEIGHT, DESKTOP_VIEWPORT_WIDTH, DEFAULT_USER_AGENT

logger = logging.getLogger(__name__)

LAUNCH_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-gpu",
    "--disable-extensions",
    "--disable-background-networking",
    "--disable-default-apps",
    "--disable-translate",
    "--no-first-run",
]


@dataclass
class BrowserStatus:
    """Current status of the shared browser."""
    connected: bool
    launches: int
    contexts_opened: int
    contexts_active: int
    context_errors: int
    uptime_seconds: float


class BrowserManager:
    """
    Owns the process-wide Playwright browser.

    Features:
    - Lazy launch on first use
    - Health check before every use, relaunching a disconnected browser
    - Isolated context per acquisition with guaranteed cleanup
    - Graceful shutdown
    """

    def __init__(
        self,
        headless: bool = True,
        user_agent: str = DEFAULT_USER_AGENT,
        timeout_ms: int = 30000,
    ):
        """
        Initialize browser manager.

        Args:
            headless: Run the browser in headless mode
            user_agent: User agent for every context
            timeout_ms: Default timeout for context operations
        """
        self.headless = headless
        self.user_agent = user_agent
        self.timeout_ms = timeout_ms

        self._playwright = None
        self._browser = None
        self._lock = asyncio.Lock()
        self._start_time: datetime | None = None
        self._launches = 0
        self._contexts_opened = 0
        self._contexts_active = 0
        self._context_errors = 0

    async def get_browser(self) -> Any:
        """
        Return a connected browser, launching or relaunching it as needed.
        """
        async with self._lock:
            if self._browser is not None and self._browser.is_connected():
                return self._browser

            if self._browser is not None:
                logger.warning("Browser disconnected, relaunching")
                await self._close_browser()

            await self._launch()
            return self._browser

    async def _launch(self) -> None:
        """Start Playwright and launch Chromium."""
        from playwright.async_api import async_playwright

        if self._playwright is None:
            self._playwright = await async_playwright().start()

        self._browser = await self._playwright.chromium.launch(
            headless=self.headless,
            args=LAUNCH_ARGS,
        )
        self._launches += 1
        if self._start_time is None:
            self._start_time = datetime.now()
        logger.info(f"Browser launched (headless={self.headless}, launch #{self._launches})")

    async def _close_browser(self) -> None:
        if self._browser is None:
            return
        try:
            await self._browser.close()
        except Exception as e:
            logger.warning(f"Error closing browser: {e}")
        self._browser = None

    @asynccontextmanager
    async def open_context(self):
        """
        Open an isolated browser context with a single page.

        Usage:
            async with manager.open_context() as (context, page):
                await page.goto(url)

        Yields:
            Tuple of (BrowserContext, Page)
        """
        browser = await self.get_browser()
        context = await browser.new_context(
            user_agent=self.user_agent,
            viewport={"width": DESKTOP_VIEWPORT_WIDTH, "height": DESKTOP_VIEWPORT_HEIGHT},
            ignore_https_errors=True,
            bypass_csp=True,  # axe-core is injected as an inline script
        )
        context.set_default_timeout(self.timeout_ms)
        self._contexts_opened += 1
        self._contexts_active += 1

        try:
            page = await context.new_page()
            yield context, page
        except Exception:
            self._context_errors += 1
            raise
        finally:
            self._contexts_active -= 1
            try:
                await context.close()
            except Exception as e:
                logger.debug(f"Error closing browser context: {e}")

    async def close(self) -> None:
        """
        Shutdown the browser and Playwright gracefully.
        """
        async with self._lock:
            await self._close_browser()
            if self._playwright is not None:
                try:
                    await self._playwright.stop()
                except Exception as e:
                    logger.warning(f"Error stopping playwright: {e}")
                self._playwright = None
        logger.info("Browser manager stopped")

    def get_status(self) -> BrowserStatus:
        """Get current browser status."""
        uptime = 0.0
        if self._start_time:
            uptime = (datetime.now() - self._start_time).total_seconds()

        return BrowserStatus(
            connected=self._browser is not None and self._browser.is_connected(),
            launches=self._launches,
            contexts_opened=self._contexts_opened,
            contexts_active=self._contexts_active,
            context_errors=self._context_errors,
            uptime_seconds=uptime,
        )


_manager: Optional[BrowserManager] = None


def get_browser_manager(**kwargs) -> BrowserManager:
    """Return the process-wide BrowserManager, creating it on first call.

    Keyword arguments are only applied when the manager is created.
    """
    global _manager
    if _manager is None:
        _manager = BrowserManager(**kwargs)
    return _manager


async def shutdown_browser() -> None:
    """Close the process-wide browser, if one was created."""
    global _manager
    if _manager is not None:
        await _manager.close()
        _manager = None
