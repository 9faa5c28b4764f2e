"""
Rendered-document source for the scraper.
Uses SeleniumBase (UC mode) to load pages behind Cloudflare and hands back
BeautifulSoup documents for extraction.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator, Optional, Protocol

from bs4 import BeautifulSoup
from selenium.common.exceptions import TimeoutException, WebDriverException
from selenium.webdriver.common.by import By
from selenium.webdriver.support import expected_conditions as EC
from selenium.webdriver.support.ui import WebDriverWait
from seleniumbase import Driver

from samehadaku.config import BrowserConfig

logger = logging.getLogger(__name__)

# Wait-until values mapped to WebDriver page load strategies
PAGE_LOAD_STRATEGIES = {
    "domcontentloaded": "eager",
    "networkidle": "normal",
}


class NavigationError(Exception):
    """A URL could not be loaded within its timeout, or the browser failed."""

    def __init__(self, url: str, reason: str = ""):
        self.url = url
        self.reason = reason
        super().__init__(f"Navigation to {url} failed: {reason}" if reason else f"Navigation to {url} failed")


@dataclass(frozen=True)
class WaitPolicy:
    """How long and for what to wait before reading the document."""
    load: str = "domcontentloaded"
    selector: Optional[str] = None
    selector_timeout: float = 15.0


class RenderSession(Protocol):
    async def render(
        self, url: str, wait_policy: WaitPolicy, timeout: Optional[float] = None
    ) -> BeautifulSoup: ...


class DocumentSource(Protocol):
    def session(self) -> "AsyncIterator[RenderSession]": ...


class SeleniumSession:
    """One browser, owned by a single scrape operation."""

    def __init__(self, config: BrowserConfig):
        self.config = config
        self.driver = None

    def _init_driver(self, wait_policy: WaitPolicy):
        """Initialize SeleniumBase Driver with UC mode"""
        if self.driver is None:
            strategy = PAGE_LOAD_STRATEGIES.get(wait_policy.load, "eager")
            logger.debug("Starting browser (page_load_strategy=%s)", strategy)
            self.driver = Driver(
                uc=True,
                headless=self.config.headless,
                agent=self.config.user_agent,
                block_images=self.config.block_images,
                page_load_strategy=strategy,
            )
        return self.driver

    def _render_sync(self, url: str, wait_policy: WaitPolicy, timeout: float) -> BeautifulSoup:
        try:
            driver = self._init_driver(wait_policy)
            driver.set_page_load_timeout(timeout)
            driver.get(url)
        except TimeoutException as e:
            raise NavigationError(url, f"timed out after {timeout:.0f}s") from e
        except WebDriverException as e:
            raise NavigationError(url, e.msg or type(e).__name__) from e

        if wait_policy.selector:
            try:
                WebDriverWait(driver, wait_policy.selector_timeout).until(
                    EC.presence_of_element_located((By.CSS_SELECTOR, wait_policy.selector))
                )
            except TimeoutException:
                # Extraction continues on whatever has loaded
                logger.warning("Wait selector timeout for %r on %s", wait_policy.selector, url)

        try:
            page_source = driver.page_source
        except WebDriverException as e:
            raise NavigationError(url, e.msg or type(e).__name__) from e
        return BeautifulSoup(page_source, 'html.parser')

    async def render(
        self, url: str, wait_policy: WaitPolicy, timeout: Optional[float] = None
    ) -> BeautifulSoup:
        """
        Load url and return the rendered document.

        Args:
            url: Page to load
            wait_policy: Load event and optional content selector to wait for
            timeout: Navigation timeout in seconds (defaults to config)

        Raises:
            NavigationError: page did not load or the browser failed
        """
        timeout = timeout or self.config.navigation_timeout
        return await asyncio.to_thread(self._render_sync, url, wait_policy, timeout)

    def _close_driver(self):
        """Close WebDriver"""
        if self.driver:
            try:
                self.driver.quit()
            except Exception as e:
                logger.debug("Ignoring error while closing browser: %s", e)
            self.driver = None

    async def close(self):
        await asyncio.to_thread(self._close_driver)


class SeleniumDocumentSource:
    """DocumentSource backed by a fresh SeleniumBase browser per session."""

    def __init__(self, config: Optional[BrowserConfig] = None):
        self.config = config or BrowserConfig()

    @asynccontextmanager
    async def session(self) -> AsyncIterator[SeleniumSession]:
        """Open a rendering session; the browser is released on every exit path."""
        session = SeleniumSession(self.config)
        try:
            yield session
        finally:
            await session.close()
