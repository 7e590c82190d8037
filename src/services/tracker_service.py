"""
Tracker service.

This service sits between the API and the scoring engine:
1. Validates raw entry records and reduces them to catalog counts
2. Scores and persists new entries (score and tier are written once)
3. Imports entries recorded in guest mode
4. Loads entries and feeds them to aggregation, stats and percentile logic
"""

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional, Sequence, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from sqlalchemy import and_, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.config import Settings, get_settings
from src.core.logging import setup_logging
from src.core.scoring import (
    AggregatedPoint,
    DashboardStats,
    ExposureCalculator,
    ExposureEntry,
    Granularity,
    HistogramBin,
    MonthlyAveragePolicy,
    TrackerKind,
    TrackerProfile,
    age_band,
    aggregate_entries,
    build_histogram,
    build_tracker_profile,
    compute_display_range,
    compute_stats,
    fit_linear_trend,
    generate_insights,
    percentile_rank,
    score_entry,
)
from src.core.scoring.calculator import ScoreResult, band_thresholds, week_start_for
from src.core.scoring.stats import Insight, latest_entry
from src.models.exposure_entry import ExposureEntryRecord
from src.models.user_profile import UserProfileRecord

logger = setup_logging("tracker_service")

_RESERVED_FIELDS = {
    "id", "userId", "user_id", "userIp",
    "weekStart", "week_start", "createdAt", "created_at",
    "sourceCounts", "source_counts",
    "totalScore", "total_score", "totalParticles", "totalPfas",
    "riskTier", "risk_tier", "riskLevel",
}


class EntryInput(BaseModel):
    """
    Entry record as submitted by a client.

    Counts may be given either in ``source_counts`` or as top-level keys
    (``{"weekStart": "2025-01-06", "bottledWater": 3}``). Client-supplied
    scores are never trusted and are dropped.
    """

    model_config = ConfigDict(populate_by_name=True)

    week_start: date = Field(alias="weekStart")
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")
    source_counts: Dict[str, float] = Field(default_factory=dict, alias="sourceCounts")

    @model_validator(mode="before")
    @classmethod
    def collect_flat_counts(cls, data: Any) -> Any:
        """Move top-level numeric source keys into ``source_counts``."""
        if not isinstance(data, dict):
            return data
        raw = data.get("source_counts", data.get("sourceCounts"))
        if raw is None:
            raw = {}
        if not isinstance(raw, dict):
            raise ValueError("sourceCounts must be an object")
        counts = dict(raw)
        for key, value in data.items():
            if key in _RESERVED_FIELDS or isinstance(value, bool):
                continue
            if isinstance(value, (int, float)):
                counts[key] = value
        known = {key: data[key] for key in ("weekStart", "week_start", "createdAt", "created_at") if key in data}
        return {**known, "source_counts": counts}

    @field_validator("week_start")
    @classmethod
    def snap_to_monday(cls, v: date) -> date:
        """Week starts are stored as the Monday of their week."""
        return week_start_for(v)

    @field_validator("source_counts")
    @classmethod
    def check_counts(cls, v: Dict[str, float]) -> Dict[str, float]:
        """Counts are weekly frequencies and cannot be negative."""
        for key, count in v.items():
            if count < 0:
                raise ValueError(f"Count for '{key}' must be non-negative, got {count}")
        return v


@dataclass
class TrendResult:
    """Chart series for one tracker and granularity."""

    granularity: Granularity
    reference: datetime
    points: List[AggregatedPoint]
    trend: List[float]
    display_range: Tuple[float, float]
    thresholds: List[float] = field(default_factory=list)


@dataclass
class PercentileResult:
    """Position of a user's latest score within all users' latest scores."""

    user_value: Optional[float]
    percentile: Optional[int]
    total_count: int
    histogram: List[HistogramBin] = field(default_factory=list)
    age_band: Optional[Tuple[int, int]] = None

    @property
    def group(self) -> str:
        if self.age_band is None:
            return "users"
        low, high = self.age_band
        return f"users aged {low}-{high}"

    @property
    def message(self) -> str:
        if self.user_value is None:
            return "No entries yet"
        if self.percentile is None:
            return "Not enough data for comparison"
        return f"Your exposure is higher than {self.percentile}% of {self.group}"


def _as_utc(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment


class TrackerService:
    """
    Service for scoring, storing and summarizing tracker entries.
    """

    def __init__(self, settings: Optional[Settings] = None):
        """
        Initialize tracker service.

        Args:
            settings: Application settings. Uses cached settings if None.

        Raises:
            ValueError: If a configured catalog, band version or policy is unknown
        """
        self.settings = settings or get_settings()
        self.policy = MonthlyAveragePolicy(self.settings.monthly_average_policy)
        self.profiles: Dict[TrackerKind, TrackerProfile] = {
            kind: build_tracker_profile(kind, self.settings) for kind in TrackerKind
        }
        self.calculators: Dict[TrackerKind, ExposureCalculator] = {
            kind: ExposureCalculator(profile) for kind, profile in self.profiles.items()
        }

        logger.info(
            "TrackerService initialized ("
            + ", ".join(
                f"{p.kind.value}=catalog:{p.catalog_version}/bands:{p.band_version}/{p.temporal_key.value}"
                for p in self.profiles.values()
            )
            + f", monthly_average={self.policy.value})"
        )

    def profile(self, kind: TrackerKind) -> TrackerProfile:
        return self.profiles[TrackerKind(kind)]

    # Scoring

    def score(self, kind: TrackerKind, source_counts: Dict[str, float]) -> ScoreResult:
        """Score counts without storing anything."""
        return self.calculators[TrackerKind(kind)].calculate(source_counts)

    def build_entry(
        self,
        kind: TrackerKind,
        payload: EntryInput,
        created_at: Optional[datetime] = None,
    ) -> ExposureEntry:
        """
        Turn a validated record into a scored entry.

        Args:
            kind: Tracker kind
            payload: Validated input record
            created_at: Submission time. Defaults to the record's own
                ``created_at``, then to now.

        Returns:
            Scored ExposureEntry
        """
        profile = self.profile(kind)
        unknown = sorted(set(payload.source_counts) - set(profile.source_keys))
        if unknown:
            logger.debug(f"Ignoring unknown {profile.kind.value} sources: {unknown}")

        created_at = created_at or payload.created_at or datetime.now(timezone.utc)
        return score_entry(profile, payload.week_start, payload.source_counts, created_at=_as_utc(created_at))

    # Persistence

    async def list_records(
        self, db: AsyncSession, user_id: str, kind: TrackerKind
    ) -> Sequence[ExposureEntryRecord]:
        """Entries of one user and tracker, newest first."""
        stmt = (
            select(ExposureEntryRecord)
            .where(
                and_(
                    ExposureEntryRecord.user_id == user_id,
                    ExposureEntryRecord.tracker == TrackerKind(kind).value,
                )
            )
            .order_by(ExposureEntryRecord.created_at.desc(), ExposureEntryRecord.id.desc())
        )
        result = await db.execute(stmt)
        return result.scalars().all()

    async def list_entries(self, db: AsyncSession, user_id: str, kind: TrackerKind) -> List[ExposureEntry]:
        return [record.to_entry() for record in await self.list_records(db, user_id, kind)]

    async def create_entry(
        self, db: AsyncSession, user_id: str, kind: TrackerKind, payload: EntryInput
    ) -> ExposureEntryRecord:
        """
        Score and store a new entry.

        The submission time is always the server's clock; a client-supplied
        ``created_at`` is only honoured on import.
        """
        entry = self.build_entry(kind, payload, created_at=datetime.now(timezone.utc))
        record = ExposureEntryRecord.from_entry(user_id, entry)
        db.add(record)
        await db.flush()

        logger.info(
            f"Created {entry.tracker.value} entry id={record.id} for user={user_id}, "
            f"week={entry.week_start}, score={entry.total_score}, tier={entry.risk_tier}"
        )
        return record

    async def import_entries(
        self,
        db: AsyncSession,
        user_id: str,
        kind: TrackerKind,
        payloads: Sequence[EntryInput],
    ) -> Tuple[List[ExposureEntryRecord], int]:
        """
        Import entries recorded in guest mode.

        Each record is scored again with the server's catalog. Records whose
        week and submission time already exist for the user are skipped, so
        repeating an import is harmless.

        Returns:
            Tuple of (created records, number skipped)
        """
        existing = {
            (record.week_start, _as_utc(record.created_at))
            for record in await self.list_records(db, user_id, kind)
        }

        created = []
        skipped = 0
        for payload in payloads:
            entry = self.build_entry(kind, payload)
            identity = (entry.week_start, entry.created_at)
            if identity in existing:
                skipped += 1
                continue
            existing.add(identity)
            record = ExposureEntryRecord.from_entry(user_id, entry)
            db.add(record)
            created.append(record)

        await db.flush()
        logger.info(
            f"Imported {len(created)} {TrackerKind(kind).value} entries for user={user_id} "
            f"({skipped} skipped as duplicates)"
        )
        return created, skipped

    async def delete_entry(self, db: AsyncSession, user_id: str, kind: TrackerKind, entry_id: int) -> bool:
        """
        Delete one of the user's entries.

        Returns:
            True if the entry existed and was deleted
        """
        stmt = select(ExposureEntryRecord).where(
            and_(
                ExposureEntryRecord.id == entry_id,
                ExposureEntryRecord.user_id == user_id,
                ExposureEntryRecord.tracker == TrackerKind(kind).value,
            )
        )
        record = (await db.execute(stmt)).scalar_one_or_none()
        if record is None:
            return False

        await db.delete(record)
        await db.flush()
        logger.info(f"Deleted {TrackerKind(kind).value} entry id={entry_id} for user={user_id}")
        return True

    async def population_scores(
        self, db: AsyncSession, kind: TrackerKind, ages: Optional[Tuple[int, int]] = None
    ) -> List[float]:
        """
        Latest score of every user who has entries for ``kind``.

        Args:
            db: Database session
            kind: Tracker kind
            ages: Inclusive age range; only users whose profile age falls in it
                are counted. None counts every user.
        """
        tracker = TrackerKind(kind).value
        latest = (
            select(
                ExposureEntryRecord.user_id,
                func.max(ExposureEntryRecord.created_at).label("max_created"),
            )
            .where(ExposureEntryRecord.tracker == tracker)
            .group_by(ExposureEntryRecord.user_id)
            .subquery()
        )
        stmt = (
            select(ExposureEntryRecord.user_id, ExposureEntryRecord.total_score)
            .join(
                latest,
                (ExposureEntryRecord.user_id == latest.c.user_id)
                & (ExposureEntryRecord.created_at == latest.c.max_created),
            )
            .where(ExposureEntryRecord.tracker == tracker)
        )
        if ages is not None:
            stmt = stmt.join(UserProfileRecord, UserProfileRecord.user_id == ExposureEntryRecord.user_id).where(
                UserProfileRecord.age.between(*ages)
            )
        result = await db.execute(stmt)
        # A user with two entries at the same instant counts once
        scores = {user_id: score for user_id, score in result.all()}
        return list(scores.values())

    # Summaries over loaded entries

    def build_trend(
        self,
        kind: TrackerKind,
        entries: Sequence[ExposureEntry],
        granularity: Granularity,
        reference: Optional[datetime] = None,
    ) -> TrendResult:
        """Aggregate entries into chart points with a trend line and y-axis range."""
        profile = self.profile(kind)
        reference = reference or datetime.now()
        points = aggregate_entries(entries, granularity, profile, reference)
        means = [point.mean for point in points]
        thresholds = band_thresholds(profile.bands)

        return TrendResult(
            granularity=Granularity(granularity),
            reference=reference,
            points=points,
            trend=fit_linear_trend(means),
            display_range=compute_display_range(means, thresholds),
            thresholds=thresholds,
        )

    def build_stats(
        self, kind: TrackerKind, entries: Sequence[ExposureEntry], now: Optional[datetime] = None
    ) -> DashboardStats:
        return compute_stats(
            entries,
            self.profile(kind),
            now=now,
            policy=self.policy,
            expected_weeks=self.settings.expected_weeks,
        )

    def build_insights(
        self, kind: TrackerKind, entries: Sequence[ExposureEntry], now: Optional[datetime] = None
    ) -> List[Insight]:
        stats = self.build_stats(kind, entries, now=now)
        return generate_insights(latest_entry(entries), stats, self.profile(kind))

    def build_percentile(
        self,
        kind: TrackerKind,
        user_value: Optional[float],
        population: Sequence[float],
        ages: Optional[Tuple[int, int]] = None,
    ) -> PercentileResult:
        """Rank a user's latest score within a population of latest scores."""
        histogram = build_histogram(population, self.profile(kind).precision)
        total = sum(bin_.count for bin_ in histogram)
        if user_value is None:
            return PercentileResult(
                user_value=None, percentile=None, total_count=total, histogram=histogram, age_band=ages
            )

        return PercentileResult(
            user_value=user_value,
            percentile=percentile_rank(user_value, histogram),
            total_count=total,
            histogram=histogram,
            age_band=ages,
        )

    # Request handlers

    async def get_trend(
        self,
        db: AsyncSession,
        user_id: str,
        kind: TrackerKind,
        granularity: Granularity,
        reference: Optional[datetime] = None,
    ) -> TrendResult:
        entries = await self.list_entries(db, user_id, kind)
        return self.build_trend(kind, entries, granularity, reference)

    async def get_stats(self, db: AsyncSession, user_id: str, kind: TrackerKind) -> DashboardStats:
        entries = await self.list_entries(db, user_id, kind)
        return self.build_stats(kind, entries)

    async def get_insights(self, db: AsyncSession, user_id: str, kind: TrackerKind) -> List[Insight]:
        entries = await self.list_entries(db, user_id, kind)
        return self.build_insights(kind, entries)

    async def get_percentile(
        self, db: AsyncSession, user_id: str, kind: TrackerKind, age: Optional[int] = None
    ) -> PercentileResult:
        """
        Rank the user's latest score among all users' latest scores.

        When ``age`` is given the population is narrowed to the age band
        containing it.
        """
        ages = age_band(age, self.settings.age_band_width) if age is not None else None
        latest = latest_entry(await self.list_entries(db, user_id, kind))
        population = await self.population_scores(db, kind, ages)
        return self.build_percentile(kind, latest.total_score if latest else None, population, ages)
