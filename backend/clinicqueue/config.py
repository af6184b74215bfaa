"""
Settings for the clinic queue backend.
Values come from CLINICQUEUE_* environment variables or a local .env file.
"""

import os
from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="CLINICQUEUE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    db_path: str = Field(
        default=os.path.join(os.path.dirname(__file__), "data.db"),
        description="Path to the SQLite database file",
    )
    log_level: str = Field(default="INFO", description="Logging level")
    default_clinic_id: str = Field(default="main", description="Clinic served by the single-clinic routes")
    recompute_wait_on_read: bool = Field(
        default=False,
        description="Recompute queue wait minutes from arrival time before every decision",
    )
    seed_demo_data: bool = Field(default=False, description="Seed an empty clinic-day with demo patients")
    cors_origins: List[str] = Field(default_factory=lambda: ["*"])


settings = Settings()
