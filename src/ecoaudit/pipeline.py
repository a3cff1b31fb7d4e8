"""
Analysis pipeline: the two ways of scoring a page.

- quick: launch a browser, collect PageMetrics over CDP, score locally
- full: run the external audit tool, score its raw counters

Each analysis gets a correlation id bound into the structlog context and
records its outcome, duration and score in Prometheus metrics.
"""

from __future__ import annotations

import time
from contextlib import contextmanager
from typing import Iterator, Optional
from uuid import uuid4

import structlog
from structlog.contextvars import bound_contextvars

from ecoaudit.audit.orchestrator import AuditOrchestrator
from ecoaudit.browser.launcher import BrowserLauncher
from ecoaudit.browser.session import BrowserSession, validate_url
from ecoaudit.config.config import Config
from ecoaudit.errors import EcoAuditError
from ecoaudit.observability import histogram, increment
from ecoaudit.protocols import AnalysisMode, AuditResult, ScoreResult
from ecoaudit.scoring import ScoreCalculator

logger = structlog.get_logger(__name__)


class AnalysisPipeline:
    """Entry point used by the CLI for both analysis modes."""

    def __init__(
        self,
        config: Optional[Config] = None,
        launcher: Optional[BrowserLauncher] = None,
        orchestrator: Optional[AuditOrchestrator] = None,
    ) -> None:
        self.config = config or Config()
        self.launcher = launcher or BrowserLauncher(self.config.browser)
        self.orchestrator = orchestrator or AuditOrchestrator(self.config.audit, launcher=self.launcher)

    async def analyze_quick(self, url: str) -> ScoreResult:
        """Score ``url`` from metrics collected in a local browser."""
        with self._track(AnalysisMode.QUICK, url):
            validate_url(url)
            async with self.launcher.launch() as browser:
                metrics = await BrowserSession(browser, self.config.browser).collect(url)
            result = ScoreCalculator.compute(metrics, url)
            histogram("score", result.score, {"mode": AnalysisMode.QUICK.value})
            logger.info("Quick analysis complete", score=round(result.score, 2), grade=result.grade.value)
            return result

    async def analyze_full(self, url: str, include_html: Optional[bool] = None) -> AuditResult:
        """Score ``url`` with the external audit tool."""
        if include_html is None:
            include_html = self.config.audit.include_html
        with self._track(AnalysisMode.FULL, url):
            validate_url(url)
            result = await self.orchestrator.run(url, include_html=include_html)
            histogram("score", result.ecoindex.score, {"mode": AnalysisMode.FULL.value})
            logger.info(
                "Full analysis complete",
                score=result.ecoindex.score,
                grade=result.ecoindex.grade.value,
                performance=result.lighthouse.performance,
            )
            return result

    @contextmanager
    def _track(self, mode: AnalysisMode, url: str) -> Iterator[None]:
        start = time.perf_counter()
        with bound_contextvars(correlation_id=str(uuid4()), mode=mode.value, url=url):
            logger.info("Analysis started")
            try:
                yield
            except EcoAuditError as e:
                increment("analyses_total", labels={"mode": mode.value, "outcome": e.code.lower()})
                logger.error("Analysis failed", code=e.code, error=str(e))
                raise
            else:
                increment("analyses_total", labels={"mode": mode.value, "outcome": "success"})
            finally:
                histogram("analysis_duration_seconds", time.perf_counter() - start, {"mode": mode.value})
