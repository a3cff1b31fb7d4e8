"""
Chrome/Chromium launcher for the quick analysis path.
"""

from __future__ import annotations

import os
import shutil
import sys
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Optional, Tuple

import structlog
from playwright.async_api import Browser
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import async_playwright

from ecoaudit.config.config import BrowserConfig
from ecoaudit.errors import BrowserNotFound, LaunchFailed

logger = structlog.get_logger(__name__)

if sys.platform == "win32":
    _EXECUTABLE_NAMES: Tuple[str, ...] = ("chrome-headless-shell.exe", "chrome.exe", "msedge.exe")
elif sys.platform == "darwin":
    _EXECUTABLE_NAMES = ("chrome-headless-shell", "Google Chrome", "Chromium")
else:
    _EXECUTABLE_NAMES = (
        "chrome-headless-shell",
        "google-chrome",
        "google-chrome-stable",
        "chromium",
        "chromium-browser",
    )


class BrowserLauncher:
    """Resolves a browser executable and owns the launched browser process."""

    def __init__(self, config: Optional[BrowserConfig] = None) -> None:
        self.config = config or BrowserConfig()

    def resolve_executable(self) -> Optional[Path]:
        """
        Find a browser executable.

        Lookup order: configured path, ``CHROME_PATH``, known executable names
        on ``PATH``. Returns None when nothing is found so Playwright can fall
        back to its bundled Chromium.

        Raises:
            BrowserNotFound: the configured path does not exist.
        """
        configured = self.config.executable_path
        if configured is not None:
            if not configured.exists():
                raise BrowserNotFound(str(configured))
            return configured

        env_path = os.environ.get("CHROME_PATH")
        if env_path and Path(env_path).exists():
            return Path(env_path)

        for name in _EXECUTABLE_NAMES:
            found = shutil.which(name)
            if found:
                return Path(found)
        return None

    def require_executable(self) -> Path:
        """Like resolve_executable, but a concrete path is mandatory."""
        path = self.resolve_executable()
        if path is None:
            raise BrowserNotFound("no Chrome/Chromium executable configured or found on PATH")
        return path

    @asynccontextmanager
    async def launch(self) -> AsyncIterator[Browser]:
        """Launch (or attach to) a browser and close it on exit."""
        async with async_playwright() as playwright:
            browser = await self._start(playwright)
            try:
                yield browser
            finally:
                try:
                    await browser.close()
                except PlaywrightError as e:
                    logger.debug("Browser close failed", error=str(e))

    async def _start(self, playwright) -> Browser:
        if self.config.cdp_endpoint:
            logger.debug("Attaching to browser", endpoint=self.config.cdp_endpoint)
            try:
                return await playwright.chromium.connect_over_cdp(self.config.cdp_endpoint)
            except PlaywrightError as e:
                raise LaunchFailed(str(e)) from e

        executable = self.resolve_executable()
        logger.debug("Launching browser", executable=str(executable) if executable else "bundled")
        try:
            return await playwright.chromium.launch(
                executable_path=str(executable) if executable else None,
                headless=self.config.headless,
                args=list(self.config.args),
            )
        except PlaywrightError as e:
            raise LaunchFailed(str(e)) from e
