"""
Usage analytics service.

Counts users and entries for the operator dashboard. A user is anyone who
has stored an entry or a profile; a user's first record marks when they
joined.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from typing import Dict, List, Mapping, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.config import Settings, get_settings
from src.core.logging import setup_logging
from src.core.scoring import TrackerKind
from src.models.exposure_entry import ExposureEntryRecord
from src.models.user_profile import UserProfileRecord

logger = setup_logging("analytics_service")


@dataclass
class UserActivity:
    """First and last record time of one user."""

    first_seen: datetime
    last_active: Optional[datetime] = None


@dataclass
class UsageSummary:
    total_users: int
    new_today: int
    new_this_week: int
    active_this_week: int
    entries: Dict[str, int] = field(default_factory=dict)
    timestamp: Optional[datetime] = None


@dataclass(frozen=True)
class GrowthPoint:
    """Users who joined on ``day`` and the running total within the window."""

    day: date
    new_users: int
    total_users: int


def _as_utc(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def summarize_usage(
    activity: Mapping[str, UserActivity],
    entry_counts: Mapping[str, int],
    now: datetime,
) -> UsageSummary:
    """
    Summarize user activity relative to ``now``.

    Args:
        activity: Per-user first record and last entry times
        entry_counts: Number of stored entries per tracker value
        now: Reference instant

    Returns:
        UsageSummary; every tracker is listed, with 0 when it has no entries
    """
    now = _as_utc(now)
    day_ago = now - timedelta(hours=24)
    week_ago = now - timedelta(days=7)

    joined = [_as_utc(item.first_seen) for item in activity.values()]
    active = [
        item for item in activity.values() if item.last_active is not None and _as_utc(item.last_active) > week_ago
    ]

    return UsageSummary(
        total_users=len(activity),
        new_today=sum(1 for moment in joined if moment > day_ago),
        new_this_week=sum(1 for moment in joined if moment > week_ago),
        active_this_week=len(active),
        entries={kind.value: int(entry_counts.get(kind.value, 0)) for kind in TrackerKind},
        timestamp=now,
    )


def user_growth(activity: Mapping[str, UserActivity], now: datetime, days: int = 30) -> List[GrowthPoint]:
    """
    New users per day over the last ``days`` days.

    Only days on which someone joined are listed; ``total_users`` is the
    running sum within the window.
    """
    now = _as_utc(now)
    since = now - timedelta(days=days)

    per_day: Dict[date, int] = {}
    for item in activity.values():
        moment = _as_utc(item.first_seen)
        if moment > since:
            per_day[moment.date()] = per_day.get(moment.date(), 0) + 1

    points = []
    running = 0
    for day in sorted(per_day):
        running += per_day[day]
        points.append(GrowthPoint(day=day, new_users=per_day[day], total_users=running))
    return points


class AnalyticsService:
    """Service for usage counts across all users."""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()

    async def load_activity(self, db: AsyncSession) -> Dict[str, UserActivity]:
        """First record and last entry time of every known user."""
        entry_rows = await db.execute(
            select(
                ExposureEntryRecord.user_id,
                func.min(ExposureEntryRecord.created_at),
                func.max(ExposureEntryRecord.created_at),
            ).group_by(ExposureEntryRecord.user_id)
        )
        activity = {
            user_id: UserActivity(first_seen=_as_utc(first), last_active=_as_utc(last))
            for user_id, first, last in entry_rows.all()
        }

        profile_rows = await db.execute(select(UserProfileRecord.user_id, UserProfileRecord.created_at))
        for user_id, created_at in profile_rows.all():
            created_at = _as_utc(created_at)
            if user_id not in activity:
                activity[user_id] = UserActivity(first_seen=created_at)
            elif created_at < activity[user_id].first_seen:
                activity[user_id].first_seen = created_at

        return activity

    async def entry_counts(self, db: AsyncSession) -> Dict[str, int]:
        result = await db.execute(
            select(ExposureEntryRecord.tracker, func.count(ExposureEntryRecord.id)).group_by(
                ExposureEntryRecord.tracker
            )
        )
        return {tracker: count for tracker, count in result.all()}

    async def get_summary(self, db: AsyncSession, now: Optional[datetime] = None) -> UsageSummary:
        now = now or datetime.now(timezone.utc)
        summary = summarize_usage(await self.load_activity(db), await self.entry_counts(db), now)
        logger.info(
            f"Usage summary: users={summary.total_users}, active_this_week={summary.active_this_week}, "
            f"entries={summary.entries}"
        )
        return summary

    async def get_growth(self, db: AsyncSession, now: Optional[datetime] = None) -> List[GrowthPoint]:
        now = now or datetime.now(timezone.utc)
        return user_growth(await self.load_activity(db), now, self.settings.analytics_growth_days)
