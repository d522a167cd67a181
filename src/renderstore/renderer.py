"""Headless-browser renderer producing static, gzip-compressed snapshots.

One Chromium instance is launched lazily on first use and shared by every
render in the process. Each render gets its own browser context carrying the
internal user agent, so the page load that produces a snapshot is never
itself intercepted by the middleware.
"""

from __future__ import annotations

import asyncio
import gzip
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING

import structlog
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import async_playwright

from renderstore.config import RenderSettings
from renderstore.errors import ErrorCode, RenderStoreError

if TYPE_CHECKING:
    from playwright.async_api import Browser, Playwright

log = structlog.get_logger()

LaunchBrowser = Callable[[], Awaitable["Browser"]]

# Snapshots must be static markup: executable and embedded content is removed
# before serialization.
_STRIP_AND_SERIALIZE = """
() => {
    document.querySelectorAll('script, iframe').forEach(el => el.remove());
    return '<!DOCTYPE html>' + document.documentElement.outerHTML;
}
"""


def compress(markup: str) -> bytes:
    return gzip.compress(markup.encode("utf-8"))


def decompress(content: bytes) -> bytes:
    return gzip.decompress(content)


class Renderer:
    """Renders URLs through a lazily launched, shared Chromium instance."""

    def __init__(
        self,
        settings: RenderSettings | None = None,
        launch: LaunchBrowser | None = None,
    ) -> None:
        self._settings = settings or RenderSettings()
        self._launch = launch or self._launch_chromium
        self._playwright: Playwright | None = None
        self._browser: Browser | None = None
        self._lock = asyncio.Lock()

    @property
    def user_agent(self) -> str:
        return self._settings.user_agent

    async def _launch_chromium(self) -> Browser:
        if self._playwright is None:
            self._playwright = await async_playwright().start()
        return await self._playwright.chromium.launch(
            headless=self._settings.headless,
            args=self._settings.browser_args,
        )

    async def _ensure_browser(self) -> Browser:
        browser = self._browser
        if browser is not None and browser.is_connected():
            return browser

        async with self._lock:
            # Another task may have launched while we waited for the lock.
            if self._browser is not None and self._browser.is_connected():
                return self._browser
            try:
                self._browser = await self._launch()
            except PlaywrightError as exc:
                log.error("browser_launch_failed", error=str(exc))
                raise RenderStoreError(
                    ErrorCode.RENDER_FAILED,
                    f"Failed to launch browser: {exc}",
                    recoverable=True,
                ) from exc
            log.info("browser_launched", headless=self._settings.headless)
            return self._browser

    async def render(self, url: str) -> bytes:
        """Render *url* and return its gzip-compressed static markup.

        Raises:
            RenderStoreError: RENDER_FAILED on launch, navigation or timeout errors.
        """
        browser = await self._ensure_browser()
        try:
            context = await browser.new_context(user_agent=self._settings.user_agent)
            try:
                page = await context.new_page()
                await page.goto(
                    url,
                    wait_until=self._settings.wait_until,
                    timeout=self._settings.timeout_ms,
                )
                markup: str = await page.evaluate(_STRIP_AND_SERIALIZE)
            finally:
                await context.close()
        except PlaywrightError as exc:
            log.warning("render_failed", url=url, error=str(exc))
            raise RenderStoreError(
                ErrorCode.RENDER_FAILED,
                f"Failed to render {url}: {exc}",
                recoverable=True,
            ) from exc

        log.info("page_rendered", url=url, size=len(markup))
        return await asyncio.to_thread(compress, markup)

    async def aclose(self) -> None:
        async with self._lock:
            if self._browser is not None:
                try:
                    await self._browser.close()
                except PlaywrightError:
                    log.warning("browser_close_error", exc_info=True)
                self._browser = None
            if self._playwright is not None:
                await self._playwright.stop()
                self._playwright = None
