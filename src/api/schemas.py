"""
Pydantic schemas for API request/response models.
"""

import math
from datetime import date, datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


# Catalog schemas
class SourceDefinitionResponse(BaseModel):
    """A trackable source and its weight."""

    model_config = ConfigDict(from_attributes=True)

    key: str
    label: str
    unit: str
    weight_per_unit: float
    category: str
    description: str = ""


class RiskBandResponse(BaseModel):
    """A risk band; ``max_value`` is null for the unbounded top band."""

    label: str
    min_value: float
    max_value: Optional[float] = None
    description: str = ""

    @classmethod
    def from_band(cls, band) -> "RiskBandResponse":
        return cls(
            label=band.label,
            min_value=band.min_value,
            max_value=None if math.isinf(band.max_value) else band.max_value,
            description=band.description,
        )


class CatalogResponse(BaseModel):
    """Active catalog and bands of a tracker."""

    tracker: str
    unit: str
    precision: int
    catalog_version: str
    band_version: str
    sources: List[SourceDefinitionResponse]
    bands: List[RiskBandResponse]


# Calculation schemas
class CalculationRequest(BaseModel):
    """Weekly counts to score without saving."""

    source_counts: Dict[str, float] = Field(default_factory=dict)


class SourceContributionResponse(BaseModel):
    """Contribution of one source to a total."""

    model_config = ConfigDict(from_attributes=True)

    key: str
    label: str
    count: float
    contribution: float
    percentage: int


class CalculationResponse(BaseModel):
    """Score of a set of weekly counts."""

    tracker: str
    unit: str
    total_score: float
    risk_tier: str
    sources: List[SourceContributionResponse]


# Entry schemas
class EntryResponse(BaseModel):
    """Stored entry."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    tracker: str
    week_start: date
    source_counts: Dict[str, float]
    total_score: float
    risk_tier: str
    catalog_version: Optional[str] = None
    created_at: datetime


class ImportResponse(BaseModel):
    """Result of a guest data import."""

    imported: int
    skipped: int
    entries: List[EntryResponse] = []


# Trend schemas
class TrendPointResponse(BaseModel):
    """Mean score of one time bucket and the fitted trend at that point."""

    key: str
    label: str
    mean: float
    sample_count: int
    trend: float


class TrendResponse(BaseModel):
    """Chart data for a tracker."""

    tracker: str
    granularity: str
    reference: datetime
    unit: str
    points: List[TrendPointResponse]
    y_min: float
    y_max: float
    thresholds: List[float]


# Dashboard schemas
class DashboardStatsResponse(BaseModel):
    """Overview card values."""

    model_config = ConfigDict(from_attributes=True)

    current_risk_tier: str
    current_score: float
    weekly_intake: float
    monthly_average: float
    data_completeness_percent: int
    weekly_change_percent: float
    total_entries: int


class InsightResponse(BaseModel):
    """A recommendation."""

    model_config = ConfigDict(from_attributes=True)

    kind: str
    title: str
    message: str


class PercentileResponse(BaseModel):
    """User's rank among all users' latest scores, or those of the user's age band."""

    tracker: str
    age_band: Optional[str] = None
    user_value: Optional[float] = None
    percentile: Optional[int] = None
    total_count: int
    message: str


# Profile schemas
class ProfileResponse(BaseModel):
    """Stored user profile."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    age: Optional[int] = None
    gender: Optional[str] = None
    location: Optional[str] = None


# Analytics schemas
class UserCountsResponse(BaseModel):
    total: int
    new_today: int
    new_this_week: int
    active_this_week: int


class UsageSummaryResponse(BaseModel):
    """User and entry counts across the service."""

    users: UserCountsResponse
    entries: Dict[str, int]
    timestamp: datetime


class GrowthPointResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    day: date
    new_users: int
    total_users: int


class GrowthResponse(BaseModel):
    """New users per day over the growth window."""

    days: int
    growth: List[GrowthPointResponse]
    timestamp: datetime


# Health check
class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    timestamp: datetime
    database: str
    version: str
