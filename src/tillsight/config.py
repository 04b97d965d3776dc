"""Insight service configuration."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class InsightSettings(BaseSettings):
    """Configuration for the insight service, read from the environment / .env."""

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",  # Ignore extra fields from .env
    )

    # Gemini (empty key = generator not configured)
    gemini_api_key: str = ""
    gemini_model: str = "gemini-1.5-flash"
    gemini_base_url: str = "https://generativelanguage.googleapis.com/"
    gemini_timeout_seconds: float = 12.0
    gemini_max_output_tokens: int = 800
    gemini_temperature: float = 0.2

    # Cache and rate limiting
    gemini_insights_ttl_seconds: float = 30 * 60
    gemini_rate_limit_window_seconds: float = 60
    gemini_rate_limit_max: int = 5

    # Analytics collaborator
    analytics_service_url: str = "http://127.0.0.1:8001"
    analytics_timeout_seconds: float = 5.0

    # Server settings
    host: str = "127.0.0.1"
    port: int = 8000


config = InsightSettings()
