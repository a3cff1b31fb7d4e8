"""
Shared test configuration for EcoAudit.

Provides fixtures for configuration, fake audit tool scripts and Playwright
doubles so that no test needs a real browser or Node.js.
"""

# Standard library imports
import asyncio
import json
import sys
import textwrap
from pathlib import Path
from typing import AsyncGenerator, Callable, Dict, Optional
from unittest.mock import AsyncMock, MagicMock

# Third-party imports
import pytest
import pytest_asyncio

# Local imports
from ecoaudit.audit.registry import ProcessRegistry
from ecoaudit.config import AuditConfig, BrowserConfig, Config, MonitoringConfig

# ============================================================================
# Pytest Configuration
# ============================================================================


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests for individual components")
    config.addinivalue_line("markers", "integration: Integration tests across modules")
    config.addinivalue_line("markers", "slow: Tests that take >10 seconds")


@pytest_asyncio.fixture(autouse=True)
async def cleanup_tasks() -> AsyncGenerator[None, None]:
    """Cancel any asyncio task a test leaves behind."""
    tasks_before = asyncio.all_tasks()
    yield
    new_tasks = asyncio.all_tasks() - tasks_before

    for task in new_tasks:
        if not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
            except Exception as e:
                print(f"Unexpected error during task cleanup: {e}")


# ============================================================================
# Configuration Fixtures
# ============================================================================


@pytest.fixture
def fake_browser_path(tmp_path: Path) -> Path:
    """An existing file standing in for a Chrome executable."""
    path = tmp_path / "chrome"
    path.write_text("#!/bin/sh\n")
    return path


@pytest.fixture
def browser_config(fake_browser_path: Path) -> BrowserConfig:
    return BrowserConfig(executable_path=fake_browser_path, settle_seconds=0)


@pytest.fixture
def test_config(tmp_path: Path, browser_config: BrowserConfig) -> Config:
    return Config(
        browser=browser_config,
        audit=AuditConfig(node_path=sys.executable),
        monitoring=MonitoringConfig(log_level="DEBUG", log_file=str(tmp_path / "logs" / "ecoaudit.log")),
    )


@pytest.fixture
def registry() -> ProcessRegistry:
    return ProcessRegistry(kill_timeout=1.0)


# ============================================================================
# Audit Tool Fixtures
# ============================================================================


def success_payload(**overrides) -> Dict:
    """A success object as printed by the audit tool."""
    payload = {
        "url": "https://example.com/",
        "rawMetrics": {"domElements": 240, "requests": 12, "totalTransferSize": 150000},
        "resourceBreakdown": {"script": {"count": 4, "size": 90000}},
        "requests": [],
        "cacheAnalysis": [],
        "lighthouse": {
            "performance": 92,
            "accessibility": 88,
            "bestPractices": 100,
            "seo": 90,
            "fcp": 1200,
            "lcp": 1800,
            "tbt": 40,
            "cls": 0.01,
            "si": 1500,
            "tti": 2100,
        },
        "accessibilityIssues": [{"id": "color-contrast", "title": "Low contrast", "impact": "serious"}],
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def make_payload() -> Callable[..., Dict]:
    return success_payload


@pytest.fixture
def make_tool_script(tmp_path: Path) -> Callable[..., Path]:
    """
    Write a Python script that behaves like the audit tool.

    The orchestrator runs it with ``sys.executable`` as the runtime, through
    the real subprocess path.
    """

    def _make(
        stdout: str = "",
        stderr: str = "",
        exit_code: int = 0,
        sleep: float = 0.0,
        record_argv: Optional[Path] = None,
    ) -> Path:
        script = tmp_path / f"tool_{len(list(tmp_path.glob('tool_*.py')))}.py"
        argv_file = str(record_argv) if record_argv else ""
        script.write_text(
            textwrap.dedent(
                f"""
                import json, sys, time
                if {argv_file!r}:
                    with open({argv_file!r}, "w") as f:
                        json.dump(sys.argv[1:], f)
                sys.stderr.write({stderr!r})
                sys.stderr.flush()
                time.sleep({sleep!r})
                sys.stdout.write({stdout!r})
                sys.stdout.flush()
                sys.exit({exit_code!r})
                """
            )
        )
        return script

    return _make


@pytest.fixture
def tool_output() -> Callable[..., str]:
    """Format a payload the way the tool prints it: diagnostics around one JSON object."""

    def _format(payload: Dict) -> str:
        return "Launching audit...\nCollecting metrics (100%)\n" + json.dumps(payload) + "\nDone.\n"

    return _format


# ============================================================================
# Playwright Doubles
# ============================================================================


class FakeCDPSession:
    """Records handlers registered with ``on`` and lets tests emit events."""

    def __init__(self) -> None:
        self.handlers: Dict[str, list] = {}
        self.send = AsyncMock()
        self.detach = AsyncMock()

    def on(self, event: str, handler) -> None:
        self.handlers.setdefault(event, []).append(handler)

    def emit(self, event: str, params: Dict) -> None:
        for handler in self.handlers.get(event, []):
            handler(params)


@pytest.fixture
def fake_cdp() -> FakeCDPSession:
    return FakeCDPSession()


@pytest.fixture
def fake_page(fake_cdp: FakeCDPSession) -> MagicMock:
    page = MagicMock()
    page.goto = AsyncMock()
    page.close = AsyncMock()
    page.evaluate = AsyncMock(side_effect=[None, 120, 2048])
    page.context.new_cdp_session = AsyncMock(return_value=fake_cdp)
    return page


@pytest.fixture
def fake_browser(fake_page: MagicMock) -> MagicMock:
    browser = MagicMock()
    browser.new_page = AsyncMock(return_value=fake_page)
    browser.close = AsyncMock()
    return browser
