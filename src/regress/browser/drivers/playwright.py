"""Playwright-backed browser driver.

Each driver owns its own Playwright instance, browser process, context and
page, so closing one session can never affect another.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from playwright.async_api import async_playwright

from regress.errors import UnsupportedBrowserError

if TYPE_CHECKING:
    from playwright.async_api import (
        Browser,
        BrowserContext,
        ConsoleMessage,
        Page,
        Playwright,
    )

    from regress.config.models import BrowserOptions

logger = logging.getLogger(__name__)

SCREEN_SIZE_SCRIPT = """
() => ({ width: window.screen.availWidth, height: window.screen.availHeight })
"""

MAX_CONSOLE_ENTRIES = 500


class PlaywrightDriver:
    """A single live page plus the processes behind it."""

    def __init__(
        self,
        *,
        name: str,
        playwright: Playwright,
        browser: Browser,
        context: BrowserContext,
        page: Page,
    ) -> None:
        self.name = name
        self._playwright = playwright
        self._browser = browser
        self._context = context
        self._page = page
        self._console: list[dict[str, Any]] = []
        page.on("console", self._on_console)

    @property
    def page(self) -> Page:
        return self._page

    def _on_console(self, message: ConsoleMessage) -> None:
        if len(self._console) >= MAX_CONSOLE_ENTRIES:
            self._console.pop(0)
        self._console.append({"level": message.type, "message": message.text})

    async def title(self) -> str:
        return await self._page.title()

    async def screenshot(self) -> bytes:
        return await self._page.screenshot(type="png")

    async def evaluate(self, script: str) -> Any:
        return await self._page.evaluate(script)

    async def set_viewport_size(self, width: int, height: int) -> None:
        await self._page.set_viewport_size({"width": width, "height": height})

    async def maximize(self) -> None:
        size = await self._page.evaluate(SCREEN_SIZE_SCRIPT)
        await self.set_viewport_size(int(size["width"]), int(size["height"]))

    async def set_timeouts(self, *, implicit_ms: int, page_load_ms: int) -> None:
        self._page.set_default_timeout(implicit_ms)
        self._page.set_default_navigation_timeout(page_load_ms)

    async def console_logs(self) -> list[dict[str, Any]]:
        """Drain console messages captured since the last call."""
        entries, self._console = self._console, []
        return entries

    async def close(self) -> None:
        """Close page, context, browser and Playwright in order.

        Every step is attempted; the first failure is re-raised at the end.
        """
        first_error: Exception | None = None
        for step in (self._context.close, self._browser.close, self._playwright.stop):
            try:
                await step()
            except Exception as e:
                if first_error is None:
                    first_error = e
        if first_error is not None:
            raise first_error


class PlaywrightDriverFactory:
    """Launches a fresh Playwright browser for every session."""

    async def create(
        self, options: BrowserOptions, *, ci: bool = False
    ) -> PlaywrightDriver:
        engine = options.engine
        if engine is None:
            raise UnsupportedBrowserError(options.kind)

        playwright = await async_playwright().start()
        try:
            browser_type = getattr(playwright, engine)
            browser = await browser_type.launch(
                headless=options.headless,
                args=options.launch_args(ci=ci),
            )
            context = await browser.new_context(
                viewport={
                    "width": options.window_width,
                    "height": options.window_height,
                }
            )
            page = await context.new_page()
        except BaseException:
            await playwright.stop()
            raise

        logger.debug(
            "playwright_driver_created",
            extra={"browser.kind": options.kind, "browser.engine": engine},
        )
        return PlaywrightDriver(
            name=options.kind,
            playwright=playwright,
            browser=browser,
            context=context,
            page=page,
        )
