"""
Shared fixtures for the exposure tracker tests.
"""

import asyncio
from datetime import date, datetime
from typing import Dict, Optional

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from src.core.config import Settings
from src.core.scoring import ExposureEntry, TrackerKind, build_tracker_profile
from src.models import ExposureEntryRecord, UserProfileRecord  # noqa: F401 (registers tables)
from src.models.base import Base

# Wednesday
REFERENCE = datetime(2025, 3, 12, 15, 30)


@pytest.fixture
def settings():
    """Settings isolated from any local .env file."""
    return Settings(_env_file=None, log_file_path="")


@pytest.fixture
def microplastic_profile(settings):
    return build_tracker_profile(TrackerKind.MICROPLASTIC, settings)


@pytest.fixture
def pfas_profile(settings):
    return build_tracker_profile(TrackerKind.PFAS, settings)


@pytest.fixture
def make_entry():
    """Factory for already-scored entries."""

    def _make(
        score: float,
        week_start: date,
        created_at: Optional[datetime] = None,
        risk_tier: str = "Low",
        counts: Optional[Dict[str, float]] = None,
        tracker: TrackerKind = TrackerKind.MICROPLASTIC,
    ) -> ExposureEntry:
        return ExposureEntry(
            tracker=tracker,
            week_start=week_start,
            source_counts=counts or {},
            total_score=score,
            risk_tier=risk_tier,
            created_at=created_at or datetime.combine(week_start, datetime.min.time()),
        )

    return _make


@pytest.fixture
def reference():
    return REFERENCE


@pytest.fixture
def session_maker(tmp_path):
    """Session factory bound to a fresh SQLite database with all tables created."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'tracker.db'}", poolclass=NullPool)

    async def create_schema():
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    asyncio.run(create_schema())
    yield async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)
    asyncio.run(engine.dispose())


@pytest.fixture
def run_db(session_maker):
    """Run ``work(session)`` in its own session and commit, like one request."""

    def _run(work):
        async def _in_session():
            async with session_maker() as session:
                result = await work(session)
                await session.commit()
                return result

        return asyncio.run(_in_session())

    return _run
