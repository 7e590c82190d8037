"""
API dependencies for authentication, caller identity, services and database sessions.
"""

from functools import lru_cache

from fastapi import Header, HTTPException, Security, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.config import get_settings
from src.models.base import get_db
from src.services.analytics_service import AnalyticsService
from src.services.profile_service import ProfileService
from src.services.tracker_service import TrackerService

security = HTTPBearer()


async def verify_token(
    credentials: HTTPAuthorizationCredentials = Security(security),
) -> str:
    """
    Verify API token.

    Args:
        credentials: HTTP credentials

    Returns:
        Token string

    Raises:
        HTTPException: If token is invalid
    """
    settings = get_settings()

    if credentials.credentials != settings.api_token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return credentials.credentials


async def get_user_id(x_user_id: str = Header(..., min_length=1, max_length=100)) -> str:
    """
    Identity of the caller, set by the authenticating gateway in ``X-User-Id``.
    """
    user_id = x_user_id.strip()
    if not user_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing user id")
    return user_id


@lru_cache
def get_tracker_service() -> TrackerService:
    """Shared tracker service; catalogs and bands are read-only after startup."""
    return TrackerService(get_settings())


@lru_cache
def get_profile_service() -> ProfileService:
    return ProfileService()


@lru_cache
def get_analytics_service() -> AnalyticsService:
    return AnalyticsService(get_settings())


async def get_async_db_session() -> AsyncSession:
    """Dependency to get async database session."""
    async for session in get_db():
        yield session
