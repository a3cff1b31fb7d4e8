"""
Defines Prometheus metrics for the analysis pipeline.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict

import structlog
from prometheus_client import REGISTRY as _PROM_REGISTRY
from prometheus_client import Counter as _OrigCounter
from prometheus_client import Gauge as _OrigGauge
from prometheus_client import Histogram as _OrigHistogram
from prometheus_client import start_http_server

if TYPE_CHECKING:
    from ecoaudit.config.config import MonitoringConfig

logger = structlog.get_logger(__name__)

# ---------------------------------------------------------------------------
# Duplicate-safe Prometheus metric wrappers
# ---------------------------------------------------------------------------
# Re-importing this module (test collection, reloads) must not raise
# "Duplicated timeseries" from the default registry.


def _duplicate_safe_factory(metric_cls):
    """Return a factory that reuses an existing collector if already present."""

    def _factory(name: str, documentation: str, *args, **kwargs):  # type: ignore[override]
        existing = _PROM_REGISTRY._names_to_collectors.get(name)
        if existing is not None:
            return existing  # type: ignore[return-value]

        try:
            return metric_cls(name, documentation, *args, **kwargs)  # type: ignore[call-arg]
        except ValueError:
            # Registration lost the race, fall back to the now-existing collector.
            return _PROM_REGISTRY._names_to_collectors[name]  # type: ignore[return-value]

    return _factory


Counter = _duplicate_safe_factory(_OrigCounter)  # type: ignore[assignment]
Gauge = _duplicate_safe_factory(_OrigGauge)  # type: ignore[assignment]
Histogram = _duplicate_safe_factory(_OrigHistogram)  # type: ignore[assignment]


def _create_metrics() -> Dict[str, Any]:
    return {
        "analyses_total": Counter(
            "ecoaudit_analyses_total",
            "Analyses run, by mode and outcome",
            ["mode", "outcome"],
        ),
        "analysis_duration_seconds": Histogram(
            "ecoaudit_analysis_duration_seconds",
            "Wall-clock duration of one analysis",
            ["mode"],
            buckets=(1, 2.5, 5, 7.5, 10, 15, 30, 60, 120, 300),
        ),
        "score": Histogram(
            "ecoaudit_score",
            "Distribution of computed scores",
            ["mode"],
            buckets=(10, 20, 31, 41, 51, 61, 71, 81, 90, 100),
        ),
        "audit_processes_running": Gauge(
            "ecoaudit_audit_processes_running",
            "External audit processes currently registered",
        ),
        "network_events_total": Counter(
            "ecoaudit_network_events_total",
            "CDP network events counted by the browser session",
            ["event"],
        ),
    }


METRICS: Dict[str, Any] = _create_metrics()


def start_metrics_server(config: MonitoringConfig) -> bool:
    """Start the Prometheus exporter if a port is configured."""
    if config.prometheus_port is None:
        return False
    try:
        start_http_server(config.prometheus_port)
    except OSError as e:
        logger.warning("Could not start metrics exporter", port=config.prometheus_port, error=str(e))
        return False
    logger.info("Metrics exporter started", port=config.prometheus_port)
    return True
