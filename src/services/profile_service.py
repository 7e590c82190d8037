"""
Profile service.

Stores the optional demographic details a user shares. The age is used to
scope percentile comparisons to the user's age band.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.logging import setup_logging
from src.models.user_profile import UserProfileRecord

logger = setup_logging("profile_service")


class ProfileInput(BaseModel):
    """Profile fields as submitted by a client; all optional."""

    model_config = ConfigDict(str_strip_whitespace=True)

    age: Optional[int] = Field(default=None, ge=0, le=130)
    gender: Optional[str] = Field(default=None, max_length=50)
    location: Optional[str] = Field(default=None, max_length=200)


class ProfileService:
    """Read and write user profiles."""

    async def get_profile(self, db: AsyncSession, user_id: str) -> Optional[UserProfileRecord]:
        result = await db.execute(select(UserProfileRecord).where(UserProfileRecord.user_id == user_id))
        return result.scalar_one_or_none()

    async def save_profile(self, db: AsyncSession, user_id: str, payload: ProfileInput) -> UserProfileRecord:
        """
        Create the user's profile, or overwrite it if one exists.

        Args:
            db: Database session
            user_id: Owner of the profile
            payload: Validated profile fields

        Returns:
            The stored profile
        """
        record = await self.get_profile(db, user_id)
        if record is None:
            record = UserProfileRecord(user_id=user_id)
            db.add(record)
            action = "Created"
        else:
            action = "Updated"

        record.age = payload.age
        record.gender = payload.gender
        record.location = payload.location
        await db.flush()

        logger.info(f"{action} profile id={record.id} for user={user_id}")
        return record

    async def update_profile(
        self, db: AsyncSession, user_id: str, profile_id: int, payload: ProfileInput
    ) -> Optional[UserProfileRecord]:
        """
        Update a profile by id.

        Returns:
            The updated profile, or None if ``profile_id`` is not the user's
        """
        record = await self.get_profile(db, user_id)
        if record is None or record.id != profile_id:
            logger.warning(f"Profile id={profile_id} not found for user={user_id}")
            return None
        return await self.save_profile(db, user_id, payload)

    async def get_age(self, db: AsyncSession, user_id: str) -> Optional[int]:
        record = await self.get_profile(db, user_id)
        return record.age if record else None
