"""
CDP-driven page session for the quick analysis path.

Protocol, in order:
1. Open a blank 1920x1080 page and enable network instrumentation
2. Start the request and transfer-size counters
3. Navigate to the URL
4. Wait (settle)
5. Scroll to the bottom to trigger lazy-loaded content
6. Wait (settle)
7. Count DOM elements and measure the serialized HTML
8. Stop the counters and close the page
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Callable, Dict, Optional, Tuple
from urllib.parse import urlparse

import structlog
from playwright.async_api import Browser, CDPSession, Page
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from ecoaudit.config.config import BrowserConfig
from ecoaudit.errors import (
    CdpError,
    InvalidUrl,
    JavaScriptError,
    NavigationFailed,
    NavigationTimeout,
    PageCreationFailed,
)
from ecoaudit.observability import increment
from ecoaudit.protocols import PageMetrics

logger = structlog.get_logger(__name__)

SCROLL_TO_BOTTOM = "window.scrollTo(0, document.body.scrollHeight)"

# Elements inside an <svg> subtree are not counted; the <svg> root is.
COUNT_DOM_ELEMENTS = """
(() => {
    let count = 0;
    for (const el of document.querySelectorAll('*')) {
        if (!el.closest('svg') || el.tagName.toLowerCase() === 'svg') {
            count++;
        }
    }
    return count;
})()
"""

HTML_BYTE_SIZE = "new Blob([document.documentElement.outerHTML]).size"


def validate_url(url: str) -> str:
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise InvalidUrl(url)
    return url


class NetworkCounter:
    """
    Background counter fed by one CDP event stream.

    The CDP callback only enqueues; a dedicated task is the single writer of
    the value. ``stop()`` refuses further events, drains what was already
    queued, and returns the final value.
    """

    def __init__(self, name: str, extract: Callable[[Dict[str, Any]], int]) -> None:
        self.name = name
        self._extract = extract
        self._queue: asyncio.Queue[Dict[str, Any]] = asyncio.Queue()
        self._value = 0
        self._stopped = False
        self._task: Optional[asyncio.Task[None]] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        self._task = asyncio.create_task(self._run(), name=f"network-counter-{self.name}")

    def feed(self, event: Dict[str, Any]) -> None:
        if not self._stopped:
            self._queue.put_nowait(event)

    def _add(self, event: Dict[str, Any]) -> None:
        self._value += self._extract(event)
        increment("network_events_total", labels={"event": self.name})

    async def _run(self) -> None:
        while True:
            self._add(await self._queue.get())

    async def stop(self) -> int:
        self._stopped = True
        while not self._queue.empty():
            self._add(self._queue.get_nowait())
        value = self._value
        await self.cancel()
        return value

    async def cancel(self) -> None:
        self._stopped = True
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass


def _count_request(event: Dict[str, Any]) -> int:
    return 1


def _encoded_length(event: Dict[str, Any]) -> int:
    return int(event.get("encodedDataLength") or 0)


class BrowserSession:
    """Runs the measurement protocol against one browser."""

    def __init__(self, browser: Browser, config: Optional[BrowserConfig] = None) -> None:
        self.browser = browser
        self.config = config or BrowserConfig()

    async def collect(self, url: str) -> PageMetrics:
        """
        Collect DOM, request and transfer-size metrics for ``url``.

        Raises:
            InvalidUrl, PageCreationFailed, CdpError, NavigationFailed,
            NavigationTimeout, JavaScriptError
        """
        validate_url(url)
        requests = NetworkCounter("request", _count_request)
        transfer = NetworkCounter("transfer", _encoded_length)

        async with self._open_page() as (page, cdp):
            async with self._counting(requests, transfer):
                cdp.on("Network.requestWillBeSent", requests.feed)
                cdp.on("Network.loadingFinished", transfer.feed)

                await self._navigate(page, url)
                await asyncio.sleep(self.config.settle_seconds)

                await self._evaluate(page, SCROLL_TO_BOTTOM)
                await asyncio.sleep(self.config.settle_seconds)

                dom_elements = await self._evaluate_count(page, COUNT_DOM_ELEMENTS)
                html_bytes = await self._evaluate_count(page, HTML_BYTE_SIZE)

                request_count = await requests.stop()
                network_bytes = await transfer.stop()

        size_kb = (html_bytes + network_bytes) / 1024
        logger.info(
            "Page metrics collected",
            url=url,
            dom_elements=dom_elements,
            requests=request_count,
            size_kb=round(size_kb, 2),
        )
        return PageMetrics(dom_elements=dom_elements, requests=request_count, size_kb=size_kb)

    @asynccontextmanager
    async def _open_page(self) -> AsyncIterator[Tuple[Page, CDPSession]]:
        viewport = self.config.viewport
        try:
            page = await self.browser.new_page(viewport={"width": viewport.width, "height": viewport.height})
        except PlaywrightError as e:
            raise PageCreationFailed(str(e)) from e

        cdp: Optional[CDPSession] = None
        try:
            try:
                cdp = await page.context.new_cdp_session(page)
                await cdp.send("Network.enable")
            except PlaywrightError as e:
                raise CdpError(str(e)) from e
            yield page, cdp
        finally:
            if cdp is not None:
                try:
                    await cdp.detach()
                except PlaywrightError as e:
                    logger.debug("CDP detach failed", error=str(e))
            try:
                await page.close()
            except PlaywrightError as e:
                logger.debug("Page close failed", error=str(e))

    @asynccontextmanager
    async def _counting(self, *counters: NetworkCounter) -> AsyncIterator[None]:
        for counter in counters:
            counter.start()
        try:
            yield
        finally:
            for counter in counters:
                await counter.cancel()

    async def _navigate(self, page: Page, url: str) -> None:
        timeout = self.config.navigation_timeout_ms
        logger.debug("Navigating", url=url, timeout_ms=timeout)
        try:
            await page.goto(url, timeout=timeout)
        except PlaywrightTimeoutError as e:
            raise NavigationTimeout(timeout) from e
        except PlaywrightError as e:
            raise NavigationFailed(str(e)) from e

    async def _evaluate(self, page: Page, script: str) -> Any:
        try:
            return await page.evaluate(script)
        except PlaywrightError as e:
            raise JavaScriptError(str(e)) from e

    async def _evaluate_count(self, page: Page, script: str) -> int:
        value = await self._evaluate(page, script)
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise JavaScriptError(f"expected a number, got {value!r}")
        return int(value)
