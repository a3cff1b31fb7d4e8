"""
EcoAudit - environmental footprint scoring for web pages.
"""

from __future__ import annotations

__version__ = "0.1.0"

from .config import Config
from .container import DependencyContainer
from .pipeline import AnalysisPipeline
from .protocols import AuditResult, Grade, PageMetrics, ScoreResult
from .scoring import ScoreCalculator

__all__ = [
    "__version__",
    "Config",
    "DependencyContainer",
    "AnalysisPipeline",
    "AuditResult",
    "Grade",
    "PageMetrics",
    "ScoreResult",
    "ScoreCalculator",
]
