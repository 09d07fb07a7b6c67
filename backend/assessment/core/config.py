"""
Application configuration settings.
"""

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Literal, Self


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    APP_NAME: str = "Assessment Engine"
    APP_VERSION: str = "0.1.0"
    ENV: str = "development"
    DEBUG: bool = False

    # Logging
    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"

    # Test defaults
    DEFAULT_ATTEMPT_LIMIT: int = 1
    DUPLICATE_TITLE_SUFFIX: str = " (Copy)"

    # Grading
    # Share of possible points at or above which a manually graded answer
    # counts as correct
    MANUAL_GRADE_CORRECT_THRESHOLD: float = 0.5
    PERCENTAGE_DECIMAL_PLACES: int = 2

    # Analytics events are written to the "assessment.core.analytics" logger
    ANALYTICS_ENABLED: bool = True

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    @model_validator(mode="after")
    def validate_grading_config(self) -> Self:
        """Validate grading threshold and attempt defaults."""
        if not 0.0 <= self.MANUAL_GRADE_CORRECT_THRESHOLD <= 1.0:
            raise ValueError(
                "MANUAL_GRADE_CORRECT_THRESHOLD must be between 0 and 1, "
                f"got {self.MANUAL_GRADE_CORRECT_THRESHOLD}"
            )
        if self.DEFAULT_ATTEMPT_LIMIT < 1:
            raise ValueError(
                f"DEFAULT_ATTEMPT_LIMIT must be positive, got {self.DEFAULT_ATTEMPT_LIMIT}"
            )
        if self.PERCENTAGE_DECIMAL_PLACES < 0:
            raise ValueError("PERCENTAGE_DECIMAL_PLACES must not be negative")
        return self


settings = Settings()
