"""
Time bucketing and aggregation for trend charts.

Buckets are fixed, trailing windows computed from a reference instant:
7 days, 4 Monday-anchored weeks or 12 calendar months. Entries are placed into
the first bucket containing their timestamp and each bucket reports the mean
score of its samples. Empty buckets are dropped, never filled with zeros.
"""

import logging
import math
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from enum import Enum
from typing import Iterable, List, Optional, Sequence

from src.core.scoring.calculator import ExposureEntry, TemporalKey, TrackerProfile

logger = logging.getLogger(__name__)

# Buckets are inclusive on both ends; each one stops just before the next starts
_TICK = timedelta(microseconds=1)


class Granularity(str, Enum):
    """Bucket size of a trend chart."""

    FINE = "fine"  # daily, last 7 days
    MEDIUM = "medium"  # weekly, last 4 weeks
    COARSE = "coarse"  # monthly, last 12 months


BUCKET_COUNTS = {
    Granularity.FINE: 7,
    Granularity.MEDIUM: 4,
    Granularity.COARSE: 12,
}


@dataclass
class TimeBucket:
    """A chart time window and the samples that fall inside it."""

    key: str
    label: str
    start: datetime
    end: datetime
    samples: List[float] = field(default_factory=list)
    mean: Optional[float] = None

    def contains(self, moment: datetime) -> bool:
        return self.start <= moment <= self.end


@dataclass(frozen=True)
class AggregatedPoint:
    """Mean score of one non-empty bucket."""

    key: str
    label: str
    mean: float
    sample_count: int


def to_local_naive(moment: datetime) -> datetime:
    """Express an aware datetime as naive local time; naive values pass through."""
    if moment.tzinfo is not None:
        return moment.astimezone().replace(tzinfo=None)
    return moment


def _day_label(day: date) -> str:
    return f"{day:%a} {day:%b} {day.day}"


def _range_label(start: date, end: date) -> str:
    return f"{start:%b} {start.day} - {end:%b} {end.day}"


def _shift_month(year: int, month: int, offset: int) -> date:
    index = year * 12 + (month - 1) + offset
    return date(index // 12, index % 12 + 1, 1)


def _daily_buckets(today: date) -> List[TimeBucket]:
    buckets = []
    for days_back in range(6, -1, -1):
        day = today - timedelta(days=days_back)
        start = datetime.combine(day, time.min)
        buckets.append(
            TimeBucket(
                key=f"day-{day.isoformat()}",
                label=_day_label(day),
                start=start,
                end=start + timedelta(days=1) - _TICK,
            )
        )
    return buckets


def _weekly_buckets(today: date) -> List[TimeBucket]:
    current_monday = today - timedelta(days=today.weekday())
    buckets = []
    for weeks_back in range(3, -1, -1):
        monday = current_monday - timedelta(weeks=weeks_back)
        start = datetime.combine(monday, time.min)
        buckets.append(
            TimeBucket(
                key=f"week-{monday.isoformat()}",
                label=_range_label(monday, monday + timedelta(days=6)),
                start=start,
                end=start + timedelta(weeks=1) - _TICK,
            )
        )
    return buckets


def _monthly_buckets(today: date) -> List[TimeBucket]:
    buckets = []
    for months_back in range(11, -1, -1):
        first = _shift_month(today.year, today.month, -months_back)
        following = _shift_month(first.year, first.month, 1)
        buckets.append(
            TimeBucket(
                key=f"month-{first:%Y-%m}",
                label=f"{first:%b} {first:%y}",
                start=datetime.combine(first, time.min),
                end=datetime.combine(following, time.min) - _TICK,
            )
        )
    return buckets


def build_buckets(granularity: Granularity, reference: Optional[datetime] = None) -> List[TimeBucket]:
    """
    Build the trailing time windows of a chart.

    Args:
        granularity: Bucket size
        reference: Instant the windows end at. Defaults to now.

    Returns:
        Buckets ordered oldest to newest (7, 4 or 12 of them)
    """
    granularity = Granularity(granularity)
    reference = to_local_naive(reference or datetime.now())
    today = reference.date()

    if granularity is Granularity.FINE:
        return _daily_buckets(today)
    if granularity is Granularity.MEDIUM:
        return _weekly_buckets(today)
    return _monthly_buckets(today)


def entry_timestamp(entry: ExposureEntry, temporal_key: TemporalKey) -> datetime:
    """Position of an entry on the time axis."""
    if temporal_key is TemporalKey.CREATED_AT:
        return to_local_naive(entry.created_at)
    return datetime.combine(entry.week_start, time.min)


def _safe_score(score: float) -> float:
    if isinstance(score, (int, float)) and math.isfinite(score) and score >= 0:
        return float(score)
    return 0.0


def fill_buckets(
    entries: Iterable[ExposureEntry],
    buckets: Sequence[TimeBucket],
    temporal_key: TemporalKey = TemporalKey.WEEK_START,
) -> List[TimeBucket]:
    """
    Distribute entries over copies of ``buckets`` and compute their means.

    Each entry lands in the first bucket containing its timestamp; entries
    outside every bucket are dropped. Empty buckets keep ``mean=None``.
    """
    filled = [TimeBucket(key=b.key, label=b.label, start=b.start, end=b.end) for b in buckets]
    dropped = 0

    for entry in entries:
        moment = entry_timestamp(entry, temporal_key)
        for bucket in filled:
            if bucket.contains(moment):
                bucket.samples.append(_safe_score(entry.total_score))
                break
        else:
            dropped += 1

    if dropped:
        logger.debug(f"{dropped} entries fall outside all buckets")

    for bucket in filled:
        if bucket.samples:
            bucket.mean = sum(bucket.samples) / len(bucket.samples)
    return filled


def aggregate(
    entries: Iterable[ExposureEntry],
    buckets: Sequence[TimeBucket],
    temporal_key: TemporalKey = TemporalKey.WEEK_START,
) -> List[AggregatedPoint]:
    """
    Average entry scores per bucket.

    Args:
        entries: Scored entries in any order
        buckets: Buckets ordered oldest to newest (left untouched)
        temporal_key: Entry field used for bucket membership

    Returns:
        One point per non-empty bucket, in bucket order
    """
    return [
        AggregatedPoint(
            key=bucket.key,
            label=bucket.label,
            mean=bucket.mean,
            sample_count=len(bucket.samples),
        )
        for bucket in fill_buckets(entries, buckets, temporal_key)
        if bucket.samples
    ]


def aggregate_entries(
    entries: Iterable[ExposureEntry],
    granularity: Granularity,
    profile: TrackerProfile,
    reference: Optional[datetime] = None,
) -> List[AggregatedPoint]:
    """
    Aggregation request: bucket a tracker's entries for one chart granularity.

    Args:
        entries: Scored entries of the tracker
        granularity: Bucket size
        profile: Tracker profile, supplies the temporal key
        reference: Instant the buckets end at. Defaults to now.

    Returns:
        Aggregated points, oldest first
    """
    buckets = build_buckets(granularity, reference)
    return aggregate(entries, buckets, profile.temporal_key)
