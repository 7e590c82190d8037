"""Database models for the exposure tracker."""

from src.models.exposure_entry import ExposureEntryRecord
from src.models.user_profile import UserProfileRecord

__all__ = ["ExposureEntryRecord", "UserProfileRecord"]
