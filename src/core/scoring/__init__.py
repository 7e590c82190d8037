"""Exposure scoring, risk classification and trend aggregation."""

from src.core.scoring.buckets import (
    AggregatedPoint,
    Granularity,
    TimeBucket,
    aggregate,
    aggregate_entries,
    build_buckets,
)
from src.core.scoring.calculator import (
    ExposureCalculator,
    ExposureEntry,
    TemporalKey,
    TrackerProfile,
    build_tracker_profile,
    classify_risk,
    compute_total_score,
    score_entry,
    source_breakdown,
)
from src.core.scoring.catalog import RiskBand, SourceDefinition, TrackerKind
from src.core.scoring.stats import DashboardStats, MonthlyAveragePolicy, compute_stats, generate_insights
from src.core.scoring.trends import (
    HistogramBin,
    age_band,
    build_histogram,
    compute_display_range,
    fit_linear_trend,
    percentile_rank,
)

__all__ = [
    "AggregatedPoint",
    "DashboardStats",
    "ExposureCalculator",
    "ExposureEntry",
    "Granularity",
    "HistogramBin",
    "MonthlyAveragePolicy",
    "RiskBand",
    "SourceDefinition",
    "TemporalKey",
    "TimeBucket",
    "TrackerKind",
    "TrackerProfile",
    "age_band",
    "aggregate",
    "aggregate_entries",
    "build_buckets",
    "build_histogram",
    "build_tracker_profile",
    "classify_risk",
    "compute_display_range",
    "compute_stats",
    "compute_total_score",
    "fit_linear_trend",
    "generate_insights",
    "percentile_rank",
    "score_entry",
    "source_breakdown",
]
