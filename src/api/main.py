"""
FastAPI application main module.

Provides REST API endpoints for scoring weekly exposure entries, storing them
and reading back trend, dashboard and comparison data.
"""

from datetime import datetime, timezone
from typing import List, Optional

from fastapi import Depends, FastAPI, HTTPException, Query, Request, Response, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.dependencies import (
    get_analytics_service,
    get_async_db_session,
    get_profile_service,
    get_tracker_service,
    get_user_id,
    verify_token,
)
from src.api.schemas import (
    CalculationRequest,
    CalculationResponse,
    CatalogResponse,
    DashboardStatsResponse,
    EntryResponse,
    GrowthPointResponse,
    GrowthResponse,
    HealthResponse,
    ImportResponse,
    InsightResponse,
    PercentileResponse,
    ProfileResponse,
    RiskBandResponse,
    SourceContributionResponse,
    SourceDefinitionResponse,
    TrendPointResponse,
    TrendResponse,
    UsageSummaryResponse,
    UserCountsResponse,
)
from src.core.config import get_settings
from src.core.logging import setup_logging
from src.core.scoring import Granularity, TrackerKind
from src.services.analytics_service import AnalyticsService
from src.services.profile_service import ProfileInput, ProfileService
from src.services.tracker_service import EntryInput, TrackerService

settings = get_settings()
logger = setup_logging("api")

app = FastAPI(
    title=settings.api_title,
    version=settings.api_version,
    description="API for microplastic and PFAS exposure tracking",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ValueError)
async def value_error_handler(request: Request, exc: ValueError):
    """Contract violations from the scoring engine are client errors."""
    logger.warning(f"Rejected {request.method} {request.url.path}: {exc}")
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"detail": str(exc)})


# Health check endpoint (no auth required)
@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check(db: AsyncSession = Depends(get_async_db_session)):
    """
    Health check endpoint.

    Returns system status and database connectivity.
    """
    try:
        await db.execute(select(1))
        db_status = "connected"
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        db_status = "disconnected"

    return HealthResponse(
        status="healthy" if db_status == "connected" else "unhealthy",
        timestamp=datetime.now(),
        database=db_status,
        version=settings.api_version,
    )


# Catalog and calculation endpoints
@app.get(
    "/api/sources/{tracker}",
    response_model=CatalogResponse,
    dependencies=[Depends(verify_token)],
    tags=["Catalog"],
)
async def get_sources(tracker: TrackerKind, service: TrackerService = Depends(get_tracker_service)):
    """Active source catalog and risk bands of a tracker."""
    profile = service.profile(tracker)
    return CatalogResponse(
        tracker=profile.kind.value,
        unit=profile.unit_label,
        precision=profile.precision,
        catalog_version=profile.catalog_version,
        band_version=profile.band_version,
        sources=[SourceDefinitionResponse.model_validate(source) for source in profile.catalog],
        bands=[RiskBandResponse.from_band(band) for band in profile.bands],
    )


@app.post(
    "/api/calc/{tracker}",
    response_model=CalculationResponse,
    dependencies=[Depends(verify_token)],
    tags=["Catalog"],
)
async def calculate(
    tracker: TrackerKind,
    request: CalculationRequest,
    service: TrackerService = Depends(get_tracker_service),
):
    """Score weekly counts without saving them."""
    result = service.score(tracker, request.source_counts)
    return CalculationResponse(
        tracker=tracker.value,
        unit=service.profile(tracker).unit_label,
        total_score=result.total_score,
        risk_tier=result.risk_tier,
        sources=[SourceContributionResponse.model_validate(item) for item in result.breakdown],
    )


# Entry endpoints
@app.get(
    "/api/{tracker}/entries",
    response_model=List[EntryResponse],
    dependencies=[Depends(verify_token)],
    tags=["Entries"],
)
async def list_entries(
    tracker: TrackerKind,
    user_id: str = Depends(get_user_id),
    db: AsyncSession = Depends(get_async_db_session),
    service: TrackerService = Depends(get_tracker_service),
):
    """List the caller's entries, newest first."""
    return await service.list_records(db, user_id, tracker)


@app.post(
    "/api/{tracker}/entries",
    response_model=EntryResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(verify_token)],
    tags=["Entries"],
)
async def create_entry(
    tracker: TrackerKind,
    payload: EntryInput,
    user_id: str = Depends(get_user_id),
    db: AsyncSession = Depends(get_async_db_session),
    service: TrackerService = Depends(get_tracker_service),
):
    """Score and store a weekly entry."""
    return await service.create_entry(db, user_id, tracker, payload)


@app.post(
    "/api/{tracker}/entries/import",
    response_model=ImportResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(verify_token)],
    tags=["Entries"],
)
async def import_entries(
    tracker: TrackerKind,
    payloads: List[EntryInput],
    user_id: str = Depends(get_user_id),
    db: AsyncSession = Depends(get_async_db_session),
    service: TrackerService = Depends(get_tracker_service),
):
    """Import entries recorded in guest mode."""
    created, skipped = await service.import_entries(db, user_id, tracker, payloads)
    return ImportResponse(
        imported=len(created),
        skipped=skipped,
        entries=[EntryResponse.model_validate(record) for record in created],
    )


@app.delete(
    "/api/{tracker}/entries/{entry_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(verify_token)],
    tags=["Entries"],
)
async def delete_entry(
    tracker: TrackerKind,
    entry_id: int,
    user_id: str = Depends(get_user_id),
    db: AsyncSession = Depends(get_async_db_session),
    service: TrackerService = Depends(get_tracker_service),
):
    """Delete one of the caller's entries."""
    if not await service.delete_entry(db, user_id, tracker, entry_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Entry not found")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# Trend and dashboard endpoints
@app.get(
    "/api/{tracker}/trend",
    response_model=TrendResponse,
    dependencies=[Depends(verify_token)],
    tags=["Trends"],
)
async def get_trend(
    tracker: TrackerKind,
    granularity: Granularity = Query(Granularity.MEDIUM, description="fine, medium or coarse"),
    reference: Optional[datetime] = Query(None, description="End of the charted period"),
    user_id: str = Depends(get_user_id),
    db: AsyncSession = Depends(get_async_db_session),
    service: TrackerService = Depends(get_tracker_service),
):
    """Bucketed means, trend line and y-axis range for the caller's entries."""
    result = await service.get_trend(db, user_id, tracker, granularity, reference)
    y_min, y_max = result.display_range

    return TrendResponse(
        tracker=tracker.value,
        granularity=result.granularity.value,
        reference=result.reference,
        unit=service.profile(tracker).unit_label,
        points=[
            TrendPointResponse(
                key=point.key,
                label=point.label,
                mean=point.mean,
                sample_count=point.sample_count,
                trend=fitted,
            )
            for point, fitted in zip(result.points, result.trend)
        ],
        y_min=y_min,
        y_max=y_max,
        thresholds=result.thresholds,
    )


@app.get(
    "/api/{tracker}/stats",
    response_model=DashboardStatsResponse,
    dependencies=[Depends(verify_token)],
    tags=["Dashboard"],
)
async def get_stats(
    tracker: TrackerKind,
    user_id: str = Depends(get_user_id),
    db: AsyncSession = Depends(get_async_db_session),
    service: TrackerService = Depends(get_tracker_service),
):
    """Overview card values for the caller."""
    stats = await service.get_stats(db, user_id, tracker)
    return DashboardStatsResponse.model_validate(stats)


@app.get(
    "/api/{tracker}/insights",
    response_model=List[InsightResponse],
    dependencies=[Depends(verify_token)],
    tags=["Dashboard"],
)
async def get_insights(
    tracker: TrackerKind,
    user_id: str = Depends(get_user_id),
    db: AsyncSession = Depends(get_async_db_session),
    service: TrackerService = Depends(get_tracker_service),
):
    """Recommendations based on the caller's latest entry."""
    insights = await service.get_insights(db, user_id, tracker)
    return [InsightResponse.model_validate(insight) for insight in insights]


@app.get(
    "/api/{tracker}/percentile",
    response_model=PercentileResponse,
    dependencies=[Depends(verify_token)],
    tags=["Dashboard"],
)
async def get_percentile(
    tracker: TrackerKind,
    by_age: bool = Query(False, description="Compare only with users in the caller's age band"),
    user_id: str = Depends(get_user_id),
    db: AsyncSession = Depends(get_async_db_session),
    service: TrackerService = Depends(get_tracker_service),
    profiles: ProfileService = Depends(get_profile_service),
):
    """
    Where the caller's latest score sits among all users.

    With ``by_age`` the comparison is limited to the caller's age band; callers
    without a profile age are compared with everyone.
    """
    age = await profiles.get_age(db, user_id) if by_age else None
    result = await service.get_percentile(db, user_id, tracker, age=age)
    age_band = f"{result.age_band[0]}-{result.age_band[1]}" if result.age_band else None
    return PercentileResponse(
        tracker=tracker.value,
        age_band=age_band,
        user_value=result.user_value,
        percentile=result.percentile,
        total_count=result.total_count,
        message=result.message,
    )


# Profile endpoints
@app.get(
    "/api/user-profile",
    response_model=Optional[ProfileResponse],
    dependencies=[Depends(verify_token)],
    tags=["Profile"],
)
async def get_profile(
    user_id: str = Depends(get_user_id),
    db: AsyncSession = Depends(get_async_db_session),
    profiles: ProfileService = Depends(get_profile_service),
):
    """The caller's profile, or null."""
    return await profiles.get_profile(db, user_id)


@app.post(
    "/api/user-profile",
    response_model=ProfileResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(verify_token)],
    tags=["Profile"],
)
async def save_profile(
    payload: ProfileInput,
    user_id: str = Depends(get_user_id),
    db: AsyncSession = Depends(get_async_db_session),
    profiles: ProfileService = Depends(get_profile_service),
):
    """Create or replace the caller's profile."""
    return await profiles.save_profile(db, user_id, payload)


@app.put(
    "/api/user-profile/{profile_id}",
    response_model=ProfileResponse,
    dependencies=[Depends(verify_token)],
    tags=["Profile"],
)
async def update_profile(
    profile_id: int,
    payload: ProfileInput,
    user_id: str = Depends(get_user_id),
    db: AsyncSession = Depends(get_async_db_session),
    profiles: ProfileService = Depends(get_profile_service),
):
    """Update the caller's profile by id."""
    record = await profiles.update_profile(db, user_id, profile_id, payload)
    if record is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Profile not found")
    return record


# Analytics endpoints
@app.get(
    "/api/analytics/summary",
    response_model=UsageSummaryResponse,
    dependencies=[Depends(verify_token)],
    tags=["Analytics"],
)
async def get_usage_summary(
    db: AsyncSession = Depends(get_async_db_session),
    analytics: AnalyticsService = Depends(get_analytics_service),
):
    """User and entry counts across the service."""
    summary = await analytics.get_summary(db)
    return UsageSummaryResponse(
        users=UserCountsResponse(
            total=summary.total_users,
            new_today=summary.new_today,
            new_this_week=summary.new_this_week,
            active_this_week=summary.active_this_week,
        ),
        entries=summary.entries,
        timestamp=summary.timestamp,
    )


@app.get(
    "/api/analytics/growth",
    response_model=GrowthResponse,
    dependencies=[Depends(verify_token)],
    tags=["Analytics"],
)
async def get_user_growth(
    db: AsyncSession = Depends(get_async_db_session),
    analytics: AnalyticsService = Depends(get_analytics_service),
):
    """New users per day over the growth window."""
    growth = await analytics.get_growth(db)
    return GrowthResponse(
        days=analytics.settings.analytics_growth_days,
        growth=[GrowthPointResponse.model_validate(point) for point in growth],
        timestamp=datetime.now(timezone.utc),
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=settings.api_host, port=settings.api_port)
