"""Headless browser lifecycle for screener sessions.

The BrowserManager wraps Playwright's async API behind an async context
manager that:
- launches Chromium and opens a single download-enabled context
- points Playwright's download staging area at the run's working directory
- masks the most common automation fingerprints
- tears down context, browser and driver on every exit path

Navigation waits for network idle, since screener pages hydrate their
result table through XHR after the initial document load.
"""

import random
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncGenerator, Self

from playwright.async_api import (
    Browser,
    BrowserContext,
    Error as PlaywrightError,
    Page,
    Playwright,
    TimeoutError as PlaywrightTimeoutError,
    async_playwright,
)

from config.settings import GlobalConfig, get_config
from src.exceptions import (
    BrowserInitializationError,
    NavigationError,
    NavigationTimeoutError,
)
from src.logger import get_logger

log = get_logger(__name__)

_LAUNCH_ARGS = [
    "--disable-blink-features=AutomationControlled",
    "--disable-dev-shm-usage",
    "--no-sandbox",
]

# Runs before any page script; hides the headless automation markers.
_MASK_AUTOMATION_JS = (
    "Object.defineProperty(navigator, 'webdriver', {get: () => undefined});"
    "Object.defineProperty(navigator, 'languages', {get: () => ['en-US', 'en']});"
    "window.chrome = window.chrome || {runtime: {}};"
)


class BrowserManager:
    """Owns one Playwright driver, one Chromium instance and one context.

    Attributes:
        config: Runtime configuration (headless flag, timeouts, user agents).
        downloads_path: Directory Playwright stages downloads in.
        user_agent: User-agent string applied to the context.

    Example:
        async with BrowserManager.create(config, downloads_path=workdir) as browser:
            page = await browser.new_page()
            await browser.navigate(page, request.url)
    """

    def __init__(self, config: GlobalConfig, downloads_path: Path | None = None) -> None:
        self.config = config
        self.downloads_path = downloads_path
        self.user_agent: str = random.choice(config.user_agents)
        self._playwright: Playwright | None = None
        self._browser: Browser | None = None
        self._context: BrowserContext | None = None

    @classmethod
    @asynccontextmanager
    async def create(
        cls,
        config: GlobalConfig | None = None,
        downloads_path: Path | None = None,
    ) -> AsyncGenerator[Self, None]:
        """Launch the browser for the duration of the ``async with`` block.

        Raises:
            BrowserInitializationError: If Playwright or Chromium cannot start.
        """
        manager = cls(config or get_config(), downloads_path)
        try:
            await manager._launch()
            yield manager
        finally:
            await manager._release()

    async def _launch(self) -> None:
        log.info("Launching browser", headless=self.config.headless)

        launch_options: dict = {"headless": self.config.headless, "args": _LAUNCH_ARGS}
        if self.downloads_path is not None:
            launch_options["downloads_path"] = str(self.downloads_path)

        try:
            self._playwright = await async_playwright().start()
            self._browser = await self._playwright.chromium.launch(**launch_options)
            self._context = await self._browser.new_context(
                accept_downloads=True,
                user_agent=self.user_agent,
                locale="en-US",
                viewport={"width": 1366, "height": 900},
            )
            await self._context.add_init_script(_MASK_AUTOMATION_JS)
        except Exception as exc:
            await self._release()
            raise BrowserInitializationError(reason=str(exc)) from exc

        log.info(
            "Browser ready",
            user_agent=self.user_agent[:50] + "...",
            downloads_path=str(self.downloads_path),
        )

    async def new_page(self) -> Page:
        """Open a page whose navigations default to the configured timeout."""
        if self._context is None:
            raise BrowserInitializationError(reason="new_page() called outside create()")

        page = await self._context.new_page()
        page.set_default_navigation_timeout(self.config.navigation_timeout_ms)
        return page

    async def navigate(self, page: Page, url: str) -> None:
        """Load ``url`` and wait until the network has gone quiet.

        Raises:
            NavigationTimeoutError: If network idle is not reached in time.
            NavigationError: On HTTP errors or other navigation failures.
        """
        timeout_ms = self.config.navigation_timeout_ms
        log.debug("Navigating", url=url, timeout_ms=timeout_ms)

        try:
            response = await page.goto(url, wait_until="networkidle", timeout=timeout_ms)
        except PlaywrightTimeoutError as exc:
            raise NavigationTimeoutError(url=url, timeout_ms=timeout_ms) from exc
        except PlaywrightError as exc:
            raise NavigationError(url=url, reason=exc.message) from exc

        if response is None:
            raise NavigationError(url=url, reason="no response for main document")
        if response.status >= 400:
            raise NavigationError(
                url=url,
                reason=f"HTTP {response.status}",
                status_code=response.status,
            )

        log.info("Report page loaded", url=url, status_code=response.status)

    async def _release(self) -> None:
        """Close context, browser and driver, newest first.

        A failing close is logged and does not stop the remaining ones.
        """
        handles = [
            ("context", self._context, "close"),
            ("browser", self._browser, "close"),
            ("playwright", self._playwright, "stop"),
        ]
        self._context = self._browser = self._playwright = None

        released = []
        for name, handle, method in handles:
            if handle is None:
                continue
            try:
                await getattr(handle, method)()
                released.append(name)
            except Exception as exc:
                log.warning("Failed to release browser resource", resource=name, error=str(exc))

        if released:
            log.info("Browser resources released", resources=released)

    @property
    def is_open(self) -> bool:
        return self._context is not None
