"""
Core dataclasses shared by the scoring, browser and audit modules.

Architecture Overview:
- ScoreCalculator: pure function from PageMetrics to ScoreResult
- BrowserSession: CDP-driven fast path producing PageMetrics
- AuditOrchestrator: external audit process producing AuditResult
- ProcessRegistry: single-slot record of the running audit process
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, List, Optional

if TYPE_CHECKING:
    from ecoaudit.analytics import RequestAnalytics

# ============================================================================
# Enums
# ============================================================================


class Grade(Enum):
    """Letter grade from A (best) to G (worst)."""

    A = "A"
    B = "B"
    C = "C"
    D = "D"
    E = "E"
    F = "F"
    G = "G"

    @property
    def label(self) -> str:
        return _GRADE_LABELS[self]


_GRADE_LABELS = {
    Grade.A: "Excellent",
    Grade.B: "Very Good",
    Grade.C: "Good",
    Grade.D: "Average",
    Grade.E: "Below Average",
    Grade.F: "Poor",
    Grade.G: "Very Poor",
}


class AnalysisMode(Enum):
    """Which path produced a result."""

    QUICK = "quick"
    FULL = "full"


# ============================================================================
# Core Dataclasses
# ============================================================================


@dataclass(frozen=True)
class PageMetrics:
    """Raw metrics collected from a web page."""

    dom_elements: int = 0
    requests: int = 0
    size_kb: float = 0.0

    def __post_init__(self) -> None:
        if self.dom_elements < 0 or self.requests < 0:
            raise ValueError("Counts cannot be negative")
        if self.size_kb < 0:
            raise ValueError("Size cannot be negative")

    def to_dict(self) -> Dict[str, Any]:
        return {"domElements": self.dom_elements, "requests": self.requests, "sizeKb": self.size_kb}


@dataclass(frozen=True)
class ScoreResult:
    """Score, grade and environmental impact of one analysed page."""

    score: float
    grade: Grade
    ghg: float
    water: float
    metrics: PageMetrics
    url: str
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def __post_init__(self) -> None:
        if not 0 <= self.score <= 100:
            raise ValueError("Score must be between 0 and 100")

    def rounded(self, ndigits: int = 2) -> ScoreResult:
        """Presentation copy with score, ghg and water rounded."""
        return replace(
            self,
            score=round(self.score, ndigits),
            ghg=round(self.ghg, ndigits),
            water=round(self.water, ndigits),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "url": self.url,
            "timestamp": self.timestamp.isoformat(),
            "score": self.score,
            "grade": self.grade.value,
            "ghg": self.ghg,
            "water": self.water,
            **self.metrics.to_dict(),
        }


@dataclass(frozen=True)
class LighthouseScores:
    """Audit tool sub-scores and timing metrics, reported as-is."""

    performance: float = 0.0
    accessibility: float = 0.0
    best_practices: float = 0.0
    seo: float = 0.0
    fcp: float = 0.0
    lcp: float = 0.0
    tbt: float = 0.0
    cls: float = 0.0
    si: float = 0.0
    tti: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "performance": self.performance,
            "accessibility": self.accessibility,
            "bestPractices": self.best_practices,
            "seo": self.seo,
            "fcp": self.fcp,
            "lcp": self.lcp,
            "tbt": self.tbt,
            "cls": self.cls,
            "si": self.si,
            "tti": self.tti,
        }


@dataclass(frozen=True)
class AccessibilityIssue:
    id: str
    title: str
    impact: str

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "title": self.title, "impact": self.impact}


@dataclass
class AuditResult:
    """Result of the full audit path."""

    url: str
    ecoindex: ScoreResult
    lighthouse: LighthouseScores
    accessibility_issues: List[AccessibilityIssue] = field(default_factory=list)
    resource_breakdown: Any = None
    cache_analysis: List[Any] = field(default_factory=list)
    html_report_path: Optional[str] = None
    ttfb: Any = None
    coverage: Any = None
    compression: Any = None
    image_formats: Any = None
    analytics: Optional[RequestAnalytics] = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "url": self.url,
            "timestamp": self.timestamp.isoformat(),
            "ecoindex": self.ecoindex.to_dict(),
            "lighthouse": self.lighthouse.to_dict(),
            "accessibilityIssues": [issue.to_dict() for issue in self.accessibility_issues],
            "resourceBreakdown": self.resource_breakdown,
            "cacheAnalysis": self.cache_analysis,
        }
        optional = {
            "htmlReportPath": self.html_report_path,
            "ttfb": self.ttfb,
            "coverage": self.coverage,
            "compression": self.compression,
            "imageFormats": self.image_formats,
            "analytics": self.analytics.to_dict() if self.analytics else None,
        }
        data.update({key: value for key, value in optional.items() if value is not None})
        return data
