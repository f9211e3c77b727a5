"""Headless Chromium lifecycle: one browser process, one isolated page per request."""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, AsyncIterator

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError
from playwright.async_api import async_playwright

from .dom import DomNode, parse_document
from .errors import BrowserLaunchError, ContentNotFoundError, NavigationTimeoutError

if TYPE_CHECKING:
    from src.config import Settings

logger = logging.getLogger(__name__)

# Flags for running Chromium inside an unprivileged container.
LAUNCH_ARGS = (
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-accelerated-2d-canvas",
    "--disable-gpu",
)


@dataclass(frozen=True)
class PageOptions:
    """Browser-context settings applied to every new page."""

    viewport_width: int = 800
    viewport_height: int = 1200
    device_scale_factor: float = 2
    user_agent: str | None = None

    def context_kwargs(self) -> dict[str, Any]:
        kwargs: dict[str, Any] = {
            "viewport": {"width": self.viewport_width, "height": self.viewport_height},
            "device_scale_factor": self.device_scale_factor,
        }
        if self.user_agent:
            kwargs["user_agent"] = self.user_agent
        return kwargs


class PageHandle:
    """One browser context and its page, owned by a single request.

    ``close`` is idempotent: the underlying page is released exactly once
    no matter how many exit paths call it.
    """

    def __init__(self, session: BrowserSession, context: Any, page: Any) -> None:
        self._session = session
        self._context = context
        self._page = page
        self._closed = False

    @property
    def page(self) -> Any:
        return self._page

    @property
    def closed(self) -> bool:
        return self._closed

    async def navigate(self, url: str, *, timeout: float, wait_until: str = "networkidle") -> None:
        """Load *url*, raising a classified error instead of Playwright's."""
        try:
            await self._page.goto(url, wait_until=wait_until, timeout=timeout * 1000)
        except PlaywrightTimeoutError as exc:
            raise NavigationTimeoutError(
                f"Page did not load within {timeout:g}s", url=url
            ) from exc
        except PlaywrightError as exc:
            raise ContentNotFoundError(f"Navigation failed: {exc.message}", url=url) from exc

    async def wait_for(self, selector: str, *, timeout: float) -> bool:
        """Wait for *selector*; ``False`` when it never shows up."""
        try:
            await self._page.wait_for_selector(selector, timeout=timeout * 1000)
        except PlaywrightTimeoutError:
            return False
        except PlaywrightError as exc:
            logger.warning("selector wait failed", extra={"selector": selector, "error": exc.message})
            return False
        return True

    async def snapshot(self) -> DomNode:
        """Marshal the rendered document out of the browser."""
        try:
            html = await self._page.content()
        except PlaywrightError as exc:
            raise ContentNotFoundError(f"Could not read page content: {exc.message}") from exc
        return parse_document(html, base_url=self._page.url)

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._session._release(self)
        # Either call can fail once the browser itself is gone.
        for resource in (self._page, self._context):
            try:
                await resource.close()
            except PlaywrightError as exc:
                logger.warning("page close failed", extra={"error": str(exc)})


class BrowserSession:
    """A launched browser process and the pages currently open on it."""

    def __init__(self, playwright: Any, browser: Any, page_options: PageOptions) -> None:
        self._playwright = playwright
        self._browser = browser
        self._page_options = page_options
        self._pages: set[PageHandle] = set()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def open_page_count(self) -> int:
        return len(self._pages)

    def is_connected(self) -> bool:
        return not self._closed and self._browser.is_connected()

    async def new_page(self) -> PageHandle:
        if self._closed:
            raise BrowserLaunchError("Browser session is closed")
        try:
            context = await self._browser.new_context(**self._page_options.context_kwargs())
            page = await context.new_page()
        except PlaywrightError as exc:
            raise BrowserLaunchError(f"Could not open a page: {exc.message}") from exc
        handle = PageHandle(self, context, page)
        self._pages.add(handle)
        logger.debug("page opened", extra={"open_pages": len(self._pages)})
        return handle

    def _release(self, handle: PageHandle) -> None:
        self._pages.discard(handle)

    async def close(self) -> None:
        """Force-close outstanding pages, then the browser and the driver."""
        if self._closed:
            return
        outstanding = list(self._pages)
        if outstanding:
            logger.info("closing outstanding pages", extra={"count": len(outstanding)})
        for handle in outstanding:
            await handle.close()
        self._closed = True

        try:
            await self._browser.close()
        except PlaywrightError as exc:
            logger.warning("browser close failed", extra={"error": str(exc)})
        try:
            await self._playwright.stop()
        except PlaywrightError as exc:
            logger.warning("playwright stop failed", extra={"error": str(exc)})
        logger.info("browser closed")


class BrowserSessionManager:
    """Owns at most one running browser and hands out isolated pages.

    Launching Chromium costs hundreds of milliseconds, so ``open`` reuses a
    live session; every request still gets its own browser context.
    """

    def __init__(
        self,
        *,
        headless: bool = True,
        page_options: PageOptions | None = None,
    ) -> None:
        self._headless = headless
        self._page_options = page_options or PageOptions()
        self._session: BrowserSession | None = None
        self._lock = asyncio.Lock()

    @classmethod
    def from_settings(cls, settings: Settings) -> BrowserSessionManager:
        return cls(
            headless=settings.browser_headless,
            page_options=PageOptions(
                viewport_width=settings.viewport_width,
                viewport_height=settings.viewport_height,
                device_scale_factor=settings.device_scale_factor,
                user_agent=settings.user_agent,
            ),
        )

    @property
    def session(self) -> BrowserSession | None:
        return self._session

    async def open(self) -> BrowserSession:
        """Return the running session, launching a browser if there is none."""
        async with self._lock:
            if self._session is not None and self._session.is_connected():
                return self._session
            if self._session is not None:
                logger.warning("browser disconnected, relaunching")
                await self._session.close()
            self._session = await self._launch()
            return self._session

    async def _launch(self) -> BrowserSession:
        logger.info("launching browser", extra={"headless": self._headless})
        try:
            playwright = await async_playwright().start()
        except Exception as exc:
            raise BrowserLaunchError(f"Failed to start Playwright: {exc}") from exc

        try:
            browser = await playwright.chromium.launch(
                headless=self._headless,
                args=list(LAUNCH_ARGS),
            )
        except Exception as exc:
            await playwright.stop()
            raise BrowserLaunchError(f"Failed to launch Chromium: {exc}") from exc

        return BrowserSession(playwright, browser, self._page_options)

    async def new_page(self, session: BrowserSession | None = None) -> PageHandle:
        if session is None:
            session = await self.open()
        return await session.new_page()

    async def close(self, session: BrowserSession | None = None) -> None:
        """Tear down *session* (default: the current one). Safe to repeat."""
        async with self._lock:
            target = session or self._session
            if target is None:
                return
            await target.close()
            if target is self._session:
                self._session = None

    @asynccontextmanager
    async def page(self) -> AsyncIterator[PageHandle]:
        """Open a page on the shared browser and always close it afterwards."""
        handle = await self.new_page()
        try:
            yield handle
        finally:
            await handle.close()
