"""
Chart helpers: display range, linear trend line and population percentile.
"""

import math
from collections import Counter
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Tuple

HEADROOM = 1.15
MIN_SPAN = 5.0
MIN_SPAN_SMALL = 2.0


def _usable(values: Iterable[float]) -> List[float]:
    return [
        float(value)
        for value in values
        if isinstance(value, (int, float))
        and not isinstance(value, bool)
        and math.isfinite(value)
        and value >= 0
    ]


def compute_display_range(values: Sequence[float], thresholds: Sequence[float] = ()) -> Tuple[float, float]:
    """
    Y-axis range for a chart of ``values`` with reference lines at ``thresholds``.

    The lower bound is always 0. The upper bound is the largest value or
    threshold plus 15% headroom, with a floor so the range is never degenerate.

    Args:
        values: Plotted values; NaN, infinite and negative ones are ignored
        thresholds: Reference line positions; non-finite ones are ignored

    Returns:
        (0, upper) with upper > 0
    """
    data = _usable(values)
    limits = _usable(thresholds)
    max_threshold = max(limits, default=0.0)

    if not data:
        return 0.0, max(max_threshold * HEADROOM, MIN_SPAN)

    actual_max = max(max(data), max_threshold)
    upper = actual_max * HEADROOM

    if actual_max < 1:
        return 0.0, max(upper, MIN_SPAN_SMALL)

    return 0.0, upper


def fit_linear_trend(series: Sequence[float]) -> List[float]:
    """
    Ordinary least-squares line through ``series`` against its indices.

    Args:
        series: Values at x = 0, 1, 2, ...

    Returns:
        Fitted value per index. An empty series gives [], a single value ``v``
        gives the flat pair [v, v].
    """
    n = len(series)
    if n == 0:
        return []
    if n == 1:
        return [series[0], series[0]]

    sum_x = sum(range(n))
    sum_y = sum(series)
    sum_xy = sum(x * y for x, y in enumerate(series))
    sum_xx = sum(x * x for x in range(n))

    slope = (n * sum_xy - sum_x * sum_y) / (n * sum_xx - sum_x * sum_x)
    intercept = (sum_y - slope * sum_x) / n

    return [slope * x + intercept for x in range(n)]


def trend_slope(series: Sequence[float]) -> float:
    """Slope of the fitted trend per step; 0 for fewer than two points."""
    if len(series) < 2:
        return 0.0
    fitted = fit_linear_trend(series)
    return fitted[1] - fitted[0]


@dataclass(frozen=True)
class HistogramBin:
    """Number of users sharing one score value."""

    value: float
    count: int


def build_histogram(values: Iterable[float], precision: int = 2) -> List[HistogramBin]:
    """
    Group a population of scores into bins of equal rounded value.

    Args:
        values: One score per user; unusable values are skipped
        precision: Rounding applied before grouping

    Returns:
        Bins sorted by value ascending
    """
    counts = Counter(round(value, precision) for value in _usable(values))
    return [HistogramBin(value=value, count=count) for value, count in sorted(counts.items())]


def percentile_rank(user_value: float, histogram: Sequence[HistogramBin]) -> Optional[int]:
    """
    Share of the population scoring strictly below ``user_value``.

    Args:
        user_value: The user's latest score
        histogram: Population bins (any order)

    Returns:
        Percentile in [0, 100], or None when the histogram holds no users

    Raises:
        ValueError: If any bin has a negative count
    """
    for bin_ in histogram:
        if bin_.count < 0:
            raise ValueError(f"Histogram count must be non-negative, got {bin_.count} at {bin_.value}")

    total = sum(bin_.count for bin_ in histogram)
    if total == 0:
        return None

    below = sum(bin_.count for bin_ in histogram if bin_.value < user_value)
    return round(100 * below / total)


def age_band(age: int, width: int = 10) -> Tuple[int, int]:
    """
    Inclusive age range of ``width`` years containing ``age``.

    ``age_band(34)`` is ``(30, 39)``.
    """
    if age < 0:
        raise ValueError(f"Age must be non-negative, got {age}")
    if width < 1:
        raise ValueError(f"Age band width must be positive, got {width}")
    low = age // width * width
    return low, low + width - 1
