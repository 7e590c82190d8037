"""
Configuration management for the exposure tracker service.
"""

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Database
    postgres_host: str = "localhost"
    postgres_port: int = 5432
    postgres_db: str = "exposure_tracker"
    postgres_user: str = "postgres"
    postgres_password: str = "postgres"

    # Source catalogs and risk bands
    microplastic_catalog_version: str = "v2"
    microplastic_band_version: str = "v1"
    pfas_catalog_version: str = "v1"
    pfas_band_version: str = "v2"

    # Aggregation
    microplastic_temporal_key: str = "week_start"
    pfas_temporal_key: str = "week_start"

    # Dashboard stats
    monthly_average_policy: str = "trailing_30_days"
    expected_weeks: int = Field(default=4, ge=1)

    # Population comparison
    age_band_width: int = Field(default=10, ge=1)

    # Usage analytics
    analytics_growth_days: int = Field(default=30, ge=1)

    # API
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    api_token: str = "change_me_in_production"
    api_title: str = "Exposure Tracker API"
    api_version: str = "0.1.0"

    # Logging
    log_level: str = "INFO"
    log_file_path: Path = Field(default=Path("logs/app.log"))

    # Environment
    environment: str = "development"

    @field_validator("log_file_path", mode="before")
    @classmethod
    def convert_to_path(cls, v):
        """Convert string paths to Path objects."""
        if isinstance(v, str):
            return Path(v)
        return v

    @field_validator(
        "microplastic_temporal_key", "pfas_temporal_key", "monthly_average_policy", mode="before"
    )
    @classmethod
    def normalize_choice(cls, v):
        """Accept choice values in any case."""
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @property
    def database_url(self) -> str:
        """Construct the database URL."""
        return (
            f"postgresql://{self.postgres_user}:{self.postgres_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.environment.lower() == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.environment.lower() == "production"


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Returns:
        Settings: Application settings
    """
    return Settings()
