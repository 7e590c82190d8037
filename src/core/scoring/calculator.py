"""
Exposure score calculation and risk classification.

A weekly entry is a set of source counts. The total score is the weighted sum of
those counts using the tracker's source catalog, rounded to the tracker's
precision, and the risk tier is looked up in the tracker's band table. Both are
computed once when the entry is created.
"""

import math
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from enum import Enum
from numbers import Real
from typing import Dict, List, Mapping, Optional, Sequence, Union

from src.core.config import Settings, get_settings
from src.core.scoring.catalog import (
    BandTable,
    RiskBand,
    SourceCatalog,
    SourceDefinition,
    TrackerKind,
    get_bands,
    get_catalog,
)

# Decimal places kept in stored and displayed scores
SCORE_PRECISION: Dict[TrackerKind, int] = {
    TrackerKind.MICROPLASTIC: 2,
    TrackerKind.PFAS: 3,
}

UNIT_LABELS: Dict[TrackerKind, str] = {
    TrackerKind.MICROPLASTIC: "particles/mL",
    TrackerKind.PFAS: "ppt",
}


class TemporalKey(str, Enum):
    """Entry field used to place an entry on the time axis."""

    CREATED_AT = "created_at"
    WEEK_START = "week_start"


@dataclass(frozen=True)
class TrackerProfile:
    """Everything the scoring engine needs to know about one tracker."""

    kind: TrackerKind
    catalog: SourceCatalog
    bands: BandTable
    precision: int
    unit_label: str
    temporal_key: TemporalKey = TemporalKey.WEEK_START
    catalog_version: str = "v1"
    band_version: str = "v1"

    @property
    def source_keys(self) -> List[str]:
        return [source.key for source in self.catalog]


def build_tracker_profile(kind: TrackerKind, settings: Optional[Settings] = None) -> TrackerProfile:
    """
    Build the profile of a tracker from settings.

    Args:
        kind: Tracker kind
        settings: Settings to read versions from. Uses cached settings if None.

    Returns:
        TrackerProfile for the configured catalog and band versions

    Raises:
        ValueError: If a configured version or temporal key is unknown
    """
    settings = settings or get_settings()
    kind = TrackerKind(kind)

    if kind is TrackerKind.MICROPLASTIC:
        catalog_version = settings.microplastic_catalog_version
        band_version = settings.microplastic_band_version
        temporal_key = settings.microplastic_temporal_key
    else:
        catalog_version = settings.pfas_catalog_version
        band_version = settings.pfas_band_version
        temporal_key = settings.pfas_temporal_key

    return TrackerProfile(
        kind=kind,
        catalog=get_catalog(kind, catalog_version),
        bands=get_bands(kind, band_version),
        precision=SCORE_PRECISION[kind],
        unit_label=UNIT_LABELS[kind],
        temporal_key=TemporalKey(temporal_key),
        catalog_version=catalog_version,
        band_version=band_version,
    )


def normalize_count(value: object) -> float:
    """
    Coerce a raw source count to a safe non-negative number.

    Missing, non-numeric, NaN, infinite and negative values become 0.
    """
    if isinstance(value, bool) or not isinstance(value, Real):
        return 0.0
    value = float(value)
    if not math.isfinite(value) or value < 0:
        return 0.0
    return value


def compute_total_score(
    source_counts: Mapping[str, object],
    catalog: Sequence[SourceDefinition],
    precision: int = 2,
) -> float:
    """
    Weighted sum of source counts.

    Keys not present in the catalog are ignored, catalog sources missing from
    ``source_counts`` contribute nothing.

    Args:
        source_counts: Weekly count per source key
        catalog: Source definitions with per-unit weights
        precision: Decimal places of the result

    Returns:
        Total score rounded to ``precision`` decimals
    """
    total = 0.0
    for source in catalog:
        total += normalize_count(source_counts.get(source.key)) * source.weight_per_unit
    return round(total, precision)


def classify_risk(score: float, bands: Sequence[RiskBand]) -> str:
    """
    Map a total score to its risk tier label.

    Args:
        score: Total score (>= 0)
        bands: Band table in ascending order

    Returns:
        Label of the band containing ``score``

    Raises:
        ValueError: If the score is negative or not finite, or no band contains it
    """
    return find_band(score, bands).label


def find_band(score: float, bands: Sequence[RiskBand]) -> RiskBand:
    """Return the band containing ``score``. See ``classify_risk``."""
    if isinstance(score, bool) or not isinstance(score, Real) or not math.isfinite(score):
        raise ValueError(f"Score must be a finite number, got {score!r}")
    if score < 0:
        raise ValueError(f"Score must be non-negative, got {score}")

    for band in bands:
        if band.contains(score):
            return band

    raise ValueError(f"No risk band contains score {score}")


def band_thresholds(bands: Sequence[RiskBand]) -> List[float]:
    """Finite upper limits of a band table, used as chart reference lines."""
    return [band.max_value for band in bands if math.isfinite(band.max_value)]


@dataclass(frozen=True)
class SourceContribution:
    """Share of one source in a total score."""

    key: str
    label: str
    count: float
    contribution: float
    percentage: int


def source_breakdown(
    source_counts: Mapping[str, object],
    catalog: Sequence[SourceDefinition],
    precision: int = 2,
) -> List[SourceContribution]:
    """
    Per-source contributions, largest first.

    Args:
        source_counts: Weekly count per source key
        catalog: Source definitions
        precision: Decimal places of each contribution

    Returns:
        One SourceContribution per catalog source
    """
    rows = []
    for source in catalog:
        count = normalize_count(source_counts.get(source.key))
        rows.append((source, count, round(count * source.weight_per_unit, precision)))

    total = sum(contribution for _, _, contribution in rows)

    breakdown = [
        SourceContribution(
            key=source.key,
            label=source.label,
            count=count,
            contribution=contribution,
            percentage=round(contribution / total * 100) if total > 0 else 0,
        )
        for source, count, contribution in rows
    ]
    # sorted() is stable, so ties keep catalog order
    return sorted(breakdown, key=lambda item: item.contribution, reverse=True)


@dataclass(frozen=True)
class ExposureEntry:
    """One scored weekly entry. ``total_score`` and ``risk_tier`` are write-once."""

    tracker: TrackerKind
    week_start: date
    source_counts: Dict[str, float]
    total_score: float
    risk_tier: str
    created_at: datetime
    id: Optional[Union[int, str]] = None
    catalog_version: Optional[str] = None


def week_start_for(day: Union[date, datetime]) -> date:
    """Monday of the ISO week containing ``day``."""
    if isinstance(day, datetime):
        day = day.date()
    return day - timedelta(days=day.weekday())


def score_entry(
    profile: TrackerProfile,
    week_start: date,
    source_counts: Mapping[str, object],
    created_at: Optional[datetime] = None,
    entry_id: Optional[Union[int, str]] = None,
) -> ExposureEntry:
    """
    Create a scored entry from raw weekly counts.

    Only catalog keys are kept; their counts are normalized before scoring so
    the stored counts always explain the stored score.
    """
    counts = {source.key: normalize_count(source_counts.get(source.key)) for source in profile.catalog}
    total = compute_total_score(counts, profile.catalog, profile.precision)

    return ExposureEntry(
        tracker=profile.kind,
        week_start=week_start_for(week_start),
        source_counts=counts,
        total_score=total,
        risk_tier=classify_risk(total, profile.bands),
        created_at=created_at or datetime.now(),
        id=entry_id,
        catalog_version=profile.catalog_version,
    )


@dataclass
class ScoreResult:
    """Result of a calculation-only request."""

    total_score: float
    risk_tier: str
    band: RiskBand
    breakdown: List[SourceContribution] = field(default_factory=list)


class ExposureCalculator:
    """
    Score calculator bound to one tracker profile.

    The API and services hold one instance per tracker; the module-level
    functions remain usable directly with any catalog or band table.
    """

    def __init__(self, profile: TrackerProfile):
        """
        Initialize calculator.

        Args:
            profile: Tracker profile with catalog, bands and precision
        """
        self.profile = profile

    def calculate(self, source_counts: Mapping[str, object]) -> ScoreResult:
        """
        Score a set of weekly counts without creating an entry.

        Args:
            source_counts: Weekly count per source key

        Returns:
            ScoreResult with total, tier, matching band and breakdown
        """
        total = compute_total_score(source_counts, self.profile.catalog, self.profile.precision)
        band = find_band(total, self.profile.bands)
        return ScoreResult(
            total_score=total,
            risk_tier=band.label,
            band=band,
            breakdown=source_breakdown(source_counts, self.profile.catalog, self.profile.precision),
        )

    def get_risk_tier(self, score: float) -> str:
        """Risk tier label for a score."""
        return classify_risk(score, self.profile.bands)

    def thresholds(self) -> List[float]:
        """Finite band limits of this tracker."""
        return band_thresholds(self.profile.bands)
