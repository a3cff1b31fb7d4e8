"""
Quantile tables and grade thresholds used by the score calculator.

The tables partition the distribution of each metric observed over a large
HTTP Archive sample (500,000 URLs) into 20 equal-probability bands. They are
versioned data: change them only together with the published scale.
"""

from __future__ import annotations

from typing import Tuple

from ecoaudit.protocols import Grade

# DOM element count. Weight in formula: 3
DOM_QUANTILES: Tuple[float, ...] = (
    0.0, 47.0, 75.0, 159.0, 233.0, 298.0, 358.0, 417.0, 476.0, 537.0, 603.0,
    674.0, 753.0, 843.0, 949.0, 1076.0, 1237.0, 1459.0, 1801.0, 2479.0, 594_601.0,
)  # fmt: skip

# HTTP request count. Weight in formula: 2
REQUEST_QUANTILES: Tuple[float, ...] = (
    0.0, 2.0, 15.0, 25.0, 34.0, 42.0, 49.0, 56.0, 63.0, 70.0, 78.0,
    86.0, 95.0, 105.0, 117.0, 130.0, 147.0, 170.0, 205.0, 281.0, 3920.0,
)  # fmt: skip

# Transfer size in KB. Weight in formula: 1
SIZE_QUANTILES: Tuple[float, ...] = (
    0.0, 1.37, 144.7, 319.53, 479.46, 631.97, 783.38, 937.91, 1098.62, 1265.47, 1448.32,
    1648.27, 1876.08, 2142.06, 2465.37, 2866.31, 3401.59, 4155.73, 5400.08, 8037.54, 223_212.26,
)  # fmt: skip

# (minimum_score, grade), descending. The last threshold must stay 0.
GRADE_THRESHOLDS: Tuple[Tuple[float, Grade], ...] = (
    (81.0, Grade.A),
    (71.0, Grade.B),
    (61.0, Grade.C),
    (51.0, Grade.D),
    (41.0, Grade.E),
    (31.0, Grade.F),
    (0.0, Grade.G),
)

DOM_WEIGHT = 3.0
REQUEST_WEIGHT = 2.0
SIZE_WEIGHT = 1.0
