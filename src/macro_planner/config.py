"""Application configuration."""

import os

from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    openai_api_key: str
    openai_model: str = "gpt-5.2"
    openai_reasoning_effort: str | None = "medium"
    openai_store: bool = False
    nutritionix_app_id: str | None = None
    nutritionix_api_key: str | None = None
    nutritionix_base_url: str = "https://trackapi.nutritionix.com/v2"
    fdc_api_key: str | None = None
    fdc_base_url: str = "https://api.nal.usda.gov/fdc/v1"
    max_attempts: int = 10
    attempt_delay_seconds: float = 0.7
    empty_result_delay_seconds: float = 0.5
    portion_correction_enabled: bool = True
    max_correction_calories: float = 800
    profile_cache_ttl_seconds: int | None = None
    quota_backoff_default_seconds: float = 60
    quota_backoff_min_seconds: float = 10
    debug: bool = False
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )
