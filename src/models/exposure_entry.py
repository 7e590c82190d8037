"""Exposure entry model for storing scored weekly submissions."""

from datetime import date
from typing import Dict, Optional

from sqlalchemy import JSON, Date, Float, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from src.core.scoring import ExposureEntry, TrackerKind
from src.models.base import Base, TimestampMixin


class ExposureEntryRecord(Base, TimestampMixin):
    """
    One weekly submission for a tracker.

    Attributes:
        id: Unique identifier
        user_id: Owner of the entry
        tracker: Tracker kind (microplastic or pfas)
        week_start: Monday of the reporting week
        source_counts: Weekly count per catalog source key
        total_score: Weighted sum of the counts, set once at creation
        risk_tier: Risk tier of ``total_score``, set once at creation
        catalog_version: Catalog the score was computed with
        created_at: Submission timestamp
        updated_at: Record update timestamp
    """

    __tablename__ = "exposure_entries"
    __table_args__ = (Index("ix_exposure_entries_user_tracker", "user_id", "tracker"),)

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    tracker: Mapped[str] = mapped_column(String(20), nullable=False)
    week_start: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    source_counts: Mapped[Dict[str, float]] = mapped_column(JSON, nullable=False, default=dict)
    total_score: Mapped[float] = mapped_column(Float, nullable=False)
    risk_tier: Mapped[str] = mapped_column(String(20), nullable=False)
    catalog_version: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)

    @classmethod
    def from_entry(cls, user_id: str, entry: ExposureEntry) -> "ExposureEntryRecord":
        """Build a row from a freshly scored entry."""
        return cls(
            user_id=user_id,
            tracker=entry.tracker.value,
            week_start=entry.week_start,
            source_counts=dict(entry.source_counts),
            total_score=entry.total_score,
            risk_tier=entry.risk_tier,
            catalog_version=entry.catalog_version,
            created_at=entry.created_at,
        )

    def to_entry(self) -> ExposureEntry:
        """Convert the row to the scoring engine's entry type."""
        return ExposureEntry(
            tracker=TrackerKind(self.tracker),
            week_start=self.week_start,
            source_counts=dict(self.source_counts or {}),
            total_score=self.total_score,
            risk_tier=self.risk_tier,
            created_at=self.created_at,
            id=self.id,
            catalog_version=self.catalog_version,
        )

    def __repr__(self) -> str:
        return (
            f"<ExposureEntryRecord(id={self.id}, tracker='{self.tracker}', "
            f"week_start={self.week_start}, total_score={self.total_score})>"
        )
