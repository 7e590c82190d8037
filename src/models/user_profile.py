"""User profile model for optional demographic details."""

from typing import Optional

from sqlalchemy import Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from src.models.base import Base, TimestampMixin


class UserProfileRecord(Base, TimestampMixin):
    """
    Demographic details a user may share; one profile per user.

    Attributes:
        id: Unique identifier
        user_id: Owner of the profile
        age: Age in years, used to scope population comparisons
        gender: Free-form gender
        location: Free-form location
    """

    __tablename__ = "user_profiles"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(100), nullable=False, unique=True, index=True)
    age: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, index=True)
    gender: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    location: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)

    def __repr__(self) -> str:
        return f"<UserProfileRecord(id={self.id}, user_id='{self.user_id}', age={self.age})>"
