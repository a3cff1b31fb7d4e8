"""
Deterministic score calculator.

Turns raw page metrics into a 0-100 score, an A-G grade and per-page-view
greenhouse-gas (gCO2e) and water (cl) estimates. Both analysis paths go
through this module so there is a single scoring source of truth.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional, Sequence

from ecoaudit.protocols import Grade, PageMetrics, ScoreResult
from ecoaudit.scoring.quantiles import (
    DOM_QUANTILES,
    DOM_WEIGHT,
    GRADE_THRESHOLDS,
    REQUEST_QUANTILES,
    REQUEST_WEIGHT,
    SIZE_QUANTILES,
    SIZE_WEIGHT,
)


def quantile_position(value: float, quantiles: Sequence[float]) -> float:
    """
    Continuous position of ``value`` within an ascending quantile table.

    Returns 0 at or below the first breakpoint, ``len(quantiles) - 1`` at or
    above the last one, and a linear interpolation inside the bracketing
    interval otherwise.
    """
    last = len(quantiles) - 1
    if value <= quantiles[0]:
        return 0.0
    if value >= quantiles[last]:
        return float(last)

    for i in range(1, len(quantiles)):
        if value < quantiles[i]:
            lower = quantiles[i - 1]
            upper = quantiles[i]
            return (i - 1) + (value - lower) / (upper - lower)
    return float(last)


def compute_score(metrics: PageMetrics) -> float:
    """Score = 100 - 5 * (3*Q_dom + 2*Q_req + Q_size) / 6, clamped to [0, 100]."""
    q_dom = quantile_position(metrics.dom_elements, DOM_QUANTILES)
    q_req = quantile_position(metrics.requests, REQUEST_QUANTILES)
    q_size = quantile_position(metrics.size_kb, SIZE_QUANTILES)

    weighted = DOM_WEIGHT * q_dom + REQUEST_WEIGHT * q_req + SIZE_WEIGHT * q_size
    score = 100.0 - (5.0 * weighted) / 6.0
    return min(max(score, 0.0), 100.0)


def get_grade(score: float) -> Grade:
    for threshold, grade in GRADE_THRESHOLDS:
        if score >= threshold:
            return grade
    return Grade.G


def compute_ghg(score: float) -> float:
    """Greenhouse gas emissions in gCO2e per page view."""
    return 2.0 + 2.0 * (100.0 - score) / 100.0


def compute_water(score: float) -> float:
    """Water consumption in centiliters per page view."""
    return 3.0 + 3.0 * (100.0 - score) / 100.0


class ScoreCalculator:
    """Composes the scoring functions into a ScoreResult."""

    quantile_position = staticmethod(quantile_position)
    compute_score = staticmethod(compute_score)
    get_grade = staticmethod(get_grade)
    compute_ghg = staticmethod(compute_ghg)
    compute_water = staticmethod(compute_water)

    @staticmethod
    def compute(metrics: PageMetrics, url: str, timestamp: Optional[datetime] = None) -> ScoreResult:
        score = compute_score(metrics)
        return ScoreResult(
            score=score,
            grade=get_grade(score),
            ghg=compute_ghg(score),
            water=compute_water(score),
            metrics=metrics,
            url=url,
            timestamp=timestamp or datetime.now(timezone.utc),
        )
