"""
Configuration management using Pydantic Settings.
Reads from environment variables.
"""

from pydantic import ConfigDict, Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings."""

    model_config = ConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    # Text generation (Gemini)
    gemini_api_key: str | None = Field(default=None, alias="GEMINI_API_KEY")
    genai_model: str = Field(default="gemini-3-flash-preview", alias="GENAI_MODEL")
    letter_temperature: float = Field(default=0.7, alias="LETTER_TEMPERATURE")
    summary_temperature: float = Field(default=0.3, alias="SUMMARY_TEMPERATURE")
    ai_timeout_seconds: float = Field(default=15.0, alias="AI_TIMEOUT_SECONDS")

    # Submission behaviour
    allow_display_name_override: bool = Field(
        default=False, alias="ALLOW_DISPLAY_NAME_OVERRIDE"
    )
    seed_demo_data: bool = Field(default=True, alias="SEED_DEMO_DATA")

    # Application Configuration
    environment: str = Field(default="development", alias="ENVIRONMENT")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Circuit Breaker Configuration
    circuit_breaker_failure_threshold: int = Field(
        default=5, alias="CIRCUIT_BREAKER_FAILURE_THRESHOLD"
    )
    circuit_breaker_timeout: int = Field(default=60, alias="CIRCUIT_BREAKER_TIMEOUT")


# Global settings instance
settings = Settings()
