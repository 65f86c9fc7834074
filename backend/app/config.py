"""
Hinglish Meal Assistant - Configuration Management

Loads and validates environment variables for API keys, session
lifetimes and pipeline settings.
"""

from functools import lru_cache
from pydantic_settings import BaseSettings
from pydantic import Field


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # API Keys
    usda_api_key: str = Field(
        default="",
        alias="USDA_API_KEY",
        description="USDA FoodData Central API key (optional nutrition fallback)"
    )
    opik_api_key: str = Field(
        default="",
        alias="OPIK_API_KEY",
        description="Comet Opik API key for observability"
    )

    # Application Settings
    environment: str = Field(
        default="development",
        alias="ENVIRONMENT"
    )
    debug: bool = Field(
        default=True,
        alias="DEBUG"
    )
    log_level: str = Field(
        default="INFO",
        alias="LOG_LEVEL"
    )

    # Opik Settings
    opik_project_name: str = Field(
        default="hinglish-meal-assistant",
        alias="OPIK_PROJECT_NAME"
    )

    # API Settings
    api_host: str = Field(default="0.0.0.0", alias="API_HOST")
    api_port: int = Field(default=8000, alias="API_PORT")

    # Nutrition lookup
    nutrition_lookup_timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        alias="NUTRITION_LOOKUP_TIMEOUT_SECONDS"
    )

    # Conversation sessions
    session_idle_timeout_hours: float = Field(
        default=2.0,
        gt=0,
        alias="SESSION_IDLE_TIMEOUT_HOURS",
        description="Sessions idle longer than this are force-ended"
    )
    session_retention_hours: float = Field(
        default=1.0,
        ge=0,
        alias="SESSION_RETENTION_HOURS",
        description="How long an ended session stays readable before eviction"
    )
    session_cleanup_interval_seconds: int = Field(
        default=300,
        gt=0,
        alias="SESSION_CLEANUP_INTERVAL_SECONDS"
    )
    max_recent_meals: int = Field(default=10, ge=1, alias="MAX_RECENT_MEALS")
    max_active_topics: int = Field(default=5, ge=1, alias="MAX_ACTIVE_TOPICS")

    # Cultural context
    default_region_location: str = Field(
        default="",
        alias="DEFAULT_REGION_LOCATION",
        description="Location used for regional context when the caller sends none"
    )

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"

    def validate_required_keys(self) -> dict[str, bool]:
        """Check which API keys are configured."""
        return {
            "usda_api_key": bool(self.usda_api_key),
            "opik_api_key": bool(self.opik_api_key),
        }


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
