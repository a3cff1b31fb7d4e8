"""Unit tests for the analysis pipeline (both modes)."""

from __future__ import annotations

from contextlib import asynccontextmanager
from unittest.mock import AsyncMock, MagicMock

import pytest
from prometheus_client import REGISTRY
from structlog.contextvars import get_contextvars

from ecoaudit.errors import AnalysisFailed, InvalidUrl, NavigationFailed
from ecoaudit.pipeline import AnalysisPipeline
from ecoaudit.protocols import Grade, ScoreResult

URL = "https://example.com/"


def _sample(name: str, **labels) -> float:
    return REGISTRY.get_sample_value(name, labels) or 0.0


@pytest.fixture
def launcher(fake_browser):
    launcher = MagicMock()

    @asynccontextmanager
    async def launch():
        yield fake_browser

    launcher.launch = launch
    return launcher


class TestQuickAnalysis:
    @pytest.mark.asyncio
    async def test_scores_collected_metrics(self, test_config, launcher, fake_page):
        pipeline = AnalysisPipeline(test_config, launcher=launcher, orchestrator=MagicMock())
        before = _sample("ecoaudit_analyses_total", mode="quick", outcome="success")

        result = await pipeline.analyze_quick(URL)

        assert isinstance(result, ScoreResult)
        assert result.url == URL
        assert result.metrics.dom_elements == 120
        assert result.grade is Grade.A
        assert _sample("ecoaudit_analyses_total", mode="quick", outcome="success") == before + 1

    @pytest.mark.asyncio
    async def test_correlation_id_bound_during_analysis(self, test_config, launcher, fake_page):
        seen = {}

        async def goto(url, timeout):
            seen.update(get_contextvars())

        fake_page.goto.side_effect = goto
        pipeline = AnalysisPipeline(test_config, launcher=launcher, orchestrator=MagicMock())

        await pipeline.analyze_quick(URL)

        assert seen["mode"] == "quick"
        assert seen["url"] == URL
        assert len(seen["correlation_id"]) == 36
        assert "correlation_id" not in get_contextvars()

    @pytest.mark.asyncio
    async def test_failure_counted_by_error_code(self, test_config, launcher, fake_page):
        from playwright.async_api import Error as PlaywrightError

        fake_page.goto.side_effect = PlaywrightError("net::ERR_CONNECTION_REFUSED")
        pipeline = AnalysisPipeline(test_config, launcher=launcher, orchestrator=MagicMock())
        before = _sample("ecoaudit_analyses_total", mode="quick", outcome="navigation_failed")

        with pytest.raises(NavigationFailed):
            await pipeline.analyze_quick(URL)

        assert _sample("ecoaudit_analyses_total", mode="quick", outcome="navigation_failed") == before + 1

    @pytest.mark.asyncio
    async def test_invalid_url_never_launches(self, test_config):
        launcher = MagicMock()
        pipeline = AnalysisPipeline(test_config, launcher=launcher, orchestrator=MagicMock())
        with pytest.raises(InvalidUrl):
            await pipeline.analyze_quick("example.com")
        launcher.launch.assert_not_called()


class TestFullAnalysis:
    @pytest.mark.asyncio
    async def test_delegates_to_orchestrator(self, test_config):
        audit_result = MagicMock()
        audit_result.ecoindex.score = 77.7
        audit_result.ecoindex.grade = Grade.B
        audit_result.lighthouse.performance = 90
        orchestrator = MagicMock()
        orchestrator.run = AsyncMock(return_value=audit_result)

        pipeline = AnalysisPipeline(test_config, launcher=MagicMock(), orchestrator=orchestrator)
        result = await pipeline.analyze_full(URL, include_html=True)

        assert result is audit_result
        orchestrator.run.assert_awaited_once_with(URL, include_html=True)

    @pytest.mark.asyncio
    async def test_include_html_defaults_to_config(self, test_config):
        test_config.audit.include_html = True
        orchestrator = MagicMock()
        orchestrator.run = AsyncMock(side_effect=AnalysisFailed("X", "nope"))
        pipeline = AnalysisPipeline(test_config, launcher=MagicMock(), orchestrator=orchestrator)

        with pytest.raises(AnalysisFailed):
            await pipeline.analyze_full(URL)
        orchestrator.run.assert_awaited_once_with(URL, include_html=True)

    @pytest.mark.asyncio
    async def test_end_to_end_with_fake_tool(
        self, test_config, registry, make_tool_script, make_payload, tool_output
    ):
        from ecoaudit.audit import AuditOrchestrator
        from ecoaudit.browser import BrowserLauncher

        test_config.audit.script_path = make_tool_script(stdout=tool_output(make_payload()))
        launcher = BrowserLauncher(test_config.browser)
        orchestrator = AuditOrchestrator(test_config.audit, registry=registry, launcher=launcher)
        pipeline = AnalysisPipeline(test_config, launcher=launcher, orchestrator=orchestrator)

        result = await pipeline.analyze_full(URL)

        assert result.ecoindex.grade is Grade.A
        assert result.to_dict()["ecoindex"]["domElements"] == 240
        assert registry.current is None
