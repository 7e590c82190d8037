"""
Dashboard summary statistics and insights.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Dict, List, Optional, Sequence

from src.core.scoring.buckets import to_local_naive
from src.core.scoring.calculator import ExposureEntry, TrackerProfile, source_breakdown
from src.core.scoring.catalog import TrackerKind

logger = logging.getLogger(__name__)

NO_DATA = "No Data"
DEFAULT_EXPECTED_WEEKS = 4
RECENT_ENTRY_COUNT = 4


class MonthlyAveragePolicy(str, Enum):
    """Which entries make up the monthly average."""

    TRAILING_30_DAYS = "trailing_30_days"
    LAST_4_ENTRIES = "last_4_entries"


@dataclass(frozen=True)
class DashboardStats:
    """Summary shown on the overview cards."""

    current_risk_tier: str
    current_score: float
    weekly_intake: float
    monthly_average: float
    data_completeness_percent: int
    weekly_change_percent: float
    total_entries: int

    @classmethod
    def empty(cls) -> "DashboardStats":
        return cls(
            current_risk_tier=NO_DATA,
            current_score=0,
            weekly_intake=0,
            monthly_average=0,
            data_completeness_percent=0,
            weekly_change_percent=0,
            total_entries=0,
        )


def _mean(values: Sequence[float]) -> float:
    return sum(values) / len(values) if values else 0.0


def latest_entry(entries: Sequence[ExposureEntry]) -> Optional[ExposureEntry]:
    """Most recently created entry, or None."""
    if not entries:
        return None
    return max(entries, key=lambda entry: to_local_naive(entry.created_at))


def compute_stats(
    entries: Sequence[ExposureEntry],
    profile: TrackerProfile,
    now: Optional[datetime] = None,
    policy: MonthlyAveragePolicy = MonthlyAveragePolicy.TRAILING_30_DAYS,
    expected_weeks: int = DEFAULT_EXPECTED_WEEKS,
) -> DashboardStats:
    """
    Summarize a tracker's entries for the dashboard.

    Args:
        entries: Scored entries in any order
        profile: Tracker profile, supplies the rounding precision
        now: Reference instant. Defaults to now.
        policy: Monthly average window
        expected_weeks: Number of distinct weeks counted as complete data

    Returns:
        DashboardStats; the "No Data" sentinel when there are no entries
    """
    if not entries:
        return DashboardStats.empty()

    now = to_local_naive(now or datetime.now())
    policy = MonthlyAveragePolicy(policy)
    latest = latest_entry(entries)
    created = [(to_local_naive(entry.created_at), entry) for entry in entries]

    if policy is MonthlyAveragePolicy.LAST_4_ENTRIES:
        recent = sorted(created, key=lambda pair: pair[0], reverse=True)[:RECENT_ENTRY_COUNT]
        monthly_scores = [entry.total_score for _, entry in recent]
    else:
        month_ago = now - timedelta(days=30)
        monthly_scores = [entry.total_score for moment, entry in created if moment >= month_ago]

    week_ago = now - timedelta(days=7)
    two_weeks_ago = week_ago - timedelta(days=7)
    baseline = _mean(
        [entry.total_score for moment, entry in created if two_weeks_ago <= moment < week_ago]
    )
    if baseline > 0:
        weekly_change = (latest.total_score - baseline) / baseline * 100
    else:
        weekly_change = 0.0

    distinct_weeks = len({entry.week_start for entry in entries})
    completeness = min(100, round(100 * distinct_weeks / max(expected_weeks, 1)))

    return DashboardStats(
        current_risk_tier=latest.risk_tier,
        current_score=latest.total_score,
        weekly_intake=latest.total_score,
        monthly_average=round(_mean(monthly_scores), profile.precision),
        data_completeness_percent=completeness,
        weekly_change_percent=round(weekly_change, 2),
        total_entries=len(entries),
    )


@dataclass(frozen=True)
class Insight:
    """A short recommendation shown next to the charts."""

    kind: str  # success, warning, danger
    title: str
    message: str


# Smallest contribution worth suggesting a reduction for
CONTRIBUTOR_FLOOR: Dict[TrackerKind, float] = {
    TrackerKind.MICROPLASTIC: 0.5,
    TrackerKind.PFAS: 0.01,
}

ALERT_TIERS = ("High", "Extreme")
MAX_INSIGHTS = 3


def generate_insights(
    latest: Optional[ExposureEntry],
    stats: DashboardStats,
    profile: TrackerProfile,
) -> List[Insight]:
    """
    Build up to three insights from the latest entry and the dashboard stats.

    Args:
        latest: Most recent entry, or None
        stats: Stats computed for the same entries
        profile: Tracker profile

    Returns:
        Insights, most actionable first
    """
    if latest is None:
        return []

    insights = []
    unit = profile.unit_label

    breakdown = source_breakdown(latest.source_counts, profile.catalog, profile.precision)
    top = breakdown[0] if breakdown else None
    if top and top.contribution > CONTRIBUTOR_FLOOR[profile.kind]:
        potential = round(top.contribution * 0.5, profile.precision)
        insights.append(
            Insight(
                kind="warning",
                title=f"Reduce {top.label}",
                message=(
                    f"Your biggest contributor ({top.percentage}% of this week). "
                    f"Halving it could lower your total by {potential} {unit}."
                ),
            )
        )

    if stats.weekly_change_percent < -10:
        insights.append(
            Insight(
                kind="success",
                title="Good Progress",
                message=f"You've reduced exposure by {abs(stats.weekly_change_percent):.1f}% this week.",
            )
        )

    if stats.current_risk_tier in ALERT_TIERS:
        insights.append(
            Insight(
                kind="danger",
                title=f"{stats.current_risk_tier} Risk Level Detected",
                message=f"Consider changes to reduce your {profile.kind.value} exposure.",
            )
        )

    logger.debug(f"Generated {len(insights)} insights for {profile.kind.value}")
    return insights[:MAX_INSIGHTS]
