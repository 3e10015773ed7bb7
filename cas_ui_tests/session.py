"""
Browser Session Controller
==========================

Owns the automated browser for one scenario: the Playwright driver, one
browser process launched with fixed options, and one browser context whose
pages share a cookie jar.

Usage:
    from cas_ui_tests.session import cas_session

    async with cas_session(config) as session:
        page = await session.new_page()
        await page.goto_login("https://service.example/anything/cas")
        await page.login_with()

Closing is scoped: leaving the ``async with`` block releases every page,
the context, the browser and the driver, whether the scenario returned or
raised.
"""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, List, Optional

from playwright.async_api import Browser, BrowserContext, Playwright, async_playwright
from playwright.async_api import Error as PlaywrightError

from cas_ui_tests.browser import CasPage
from cas_ui_tests.config import BrowserOptions, HarnessConfig
from cas_ui_tests.errors import LaunchError

logger = logging.getLogger(__name__)

BROWSER_TYPES = ("chromium", "firefox", "webkit")


class CasSession:
    """
    One automated browser and the pages opened in it.

    Example:
        async with CasSession(config) as session:
            page = await session.new_page()
            mail = await session.new_page(name="mail")
            ...
            await page.bring_to_front()
    """

    def __init__(self, config: Optional[HarnessConfig] = None, options: Optional[BrowserOptions] = None):
        """
        Args:
            config: Harness configuration (timeouts, base URL, credentials)
            options: Launch options; defaults to ``config.browser``
        """
        self.config = config or HarnessConfig()
        self.options = options or self.config.browser
        if self.options.browser_type not in BROWSER_TYPES:
            raise ValueError(f"Unsupported browser type {self.options.browser_type!r}")

        self.pages: List[CasPage] = []
        self.active_page: Optional[CasPage] = None

        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None
        self._context: Optional[BrowserContext] = None

    async def __aenter__(self) -> "CasSession":
        await self.launch()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def launch(self) -> "CasSession":
        """Start the browser process; failure is fatal and never retried."""
        options = self.options
        logger.info(
            "Launching %s (headless=%s, ignore_https_errors=%s, viewport=%sx%s)",
            options.browser_type,
            options.headless,
            options.ignore_https_errors,
            options.viewport_width,
            options.viewport_height,
        )
        try:
            self._playwright = await async_playwright().start()
            launcher = getattr(self._playwright, options.browser_type)
            launch_kwargs = {"headless": options.headless, "slow_mo": options.slow_mo_ms}
            if options.browser_type == "chromium":
                launch_kwargs["args"] = list(options.args)
            self._browser = await launcher.launch(**launch_kwargs)
            self._context = await self._browser.new_context(
                ignore_https_errors=options.ignore_https_errors,
                viewport=options.viewport,
            )
            self._context.set_default_timeout(self.config.element_timeout * 1000)
            self._context.set_default_navigation_timeout(self.config.navigation_timeout * 1000)
        except PlaywrightError as exc:
            await self.close()
            raise LaunchError(
                operation="launch", payload={"browser_type": options.browser_type}, message=str(exc)
            ) from exc
        return self

    async def new_page(self, name: Optional[str] = None) -> CasPage:
        """Open a page in the session's context; the first one becomes active."""
        raw_page = await self.context.new_page()
        page = CasPage(raw_page, self.config, session=self, name=name or f"page{len(self.pages) + 1}")
        self.pages.append(page)
        if self.active_page is None:
            self.active_page = page
        logger.debug("Opened %s", page.name)
        return page

    async def close_page(self, page: CasPage) -> None:
        if page in self.pages:
            self.pages.remove(page)
        if self.active_page is page:
            self.active_page = self.pages[0] if self.pages else None
        await page.page.close()

    async def close(self) -> None:
        """Close all pages and release the browser and driver."""
        for page in list(self.pages):
            try:
                await page.page.close()
            except PlaywrightError as exc:
                logger.warning("Error closing %s: %s", page.name, exc)
        self.pages.clear()
        self.active_page = None

        # Every step runs even if an earlier one fails (crashed browser).
        context, self._context = self._context, None
        if context:
            try:
                await context.close()
            except PlaywrightError as exc:
                logger.warning("Error closing browser context: %s", exc)

        browser, self._browser = self._browser, None
        if browser:
            try:
                await browser.close()
            except PlaywrightError as exc:
                logger.warning("Error closing browser: %s", exc)

        playwright, self._playwright = self._playwright, None
        if playwright:
            try:
                await playwright.stop()
            except PlaywrightError as exc:
                logger.warning("Error stopping Playwright driver: %s", exc)

    @property
    def context(self) -> BrowserContext:
        if not self._context:
            raise RuntimeError("Session not launched. Use 'async with' or call launch()")
        return self._context

    @property
    def browser(self) -> Browser:
        if not self._browser:
            raise RuntimeError("Session not launched")
        return self._browser


async def launch(config: Optional[HarnessConfig] = None, options: Optional[BrowserOptions] = None) -> CasSession:
    """Start a session; the caller owns ``close()``."""
    return await CasSession(config, options).launch()


@asynccontextmanager
async def cas_session(
    config: Optional[HarnessConfig] = None,
    options: Optional[BrowserOptions] = None,
) -> AsyncIterator[CasSession]:
    """Launch a session and guarantee it is closed on every exit path."""
    session = CasSession(config, options)
    await session.launch()
    try:
        yield session
    finally:
        await session.close()
