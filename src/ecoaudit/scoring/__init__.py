"""Quantile-based page scoring."""

from __future__ import annotations

from .calculator import (
    ScoreCalculator,
    compute_ghg,
    compute_score,
    compute_water,
    get_grade,
    quantile_position,
)
from .quantiles import DOM_QUANTILES, GRADE_THRESHOLDS, REQUEST_QUANTILES, SIZE_QUANTILES

__all__ = [
    "ScoreCalculator",
    "quantile_position",
    "compute_score",
    "get_grade",
    "compute_ghg",
    "compute_water",
    "DOM_QUANTILES",
    "REQUEST_QUANTILES",
    "SIZE_QUANTILES",
    "GRADE_THRESHOLDS",
]
