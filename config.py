"""
Tutor session configuration.

Every knob is read from the environment (or a local .env) through pydantic-settings.
"""

from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field


class Settings(BaseSettings):
    """Database, LLM provider and session pacing settings."""

    # Database Configuration
    database_url: str = Field(
        default="sqlite:///./learning_progress.db",
        description="SQLAlchemy database URL for progress storage"
    )
    db_pool_size: int = Field(
        default=5,
        description="Database connection pool size (ignored for SQLite)"
    )
    db_max_overflow: int = Field(
        default=10,
        description="Maximum overflow connections (ignored for SQLite)"
    )
    db_pool_timeout: int = Field(
        default=30,
        description="Connection pool timeout in seconds"
    )

    # LLM Configuration
    llm_provider: str = Field(
        default="openai",
        description="LLM provider: openai, anthropic, google"
    )
    llm_model: str = Field(
        default="gpt-4o-mini",
        description="Model identifier for the selected provider"
    )
    openai_api_key: str = Field(
        default="",
        description="OpenAI API key (required when provider is openai)"
    )
    gemini_api_key: str = Field(
        default="",
        description="Google Gemini API key (optional)"
    )
    anthropic_api_key: str = Field(
        default="",
        description="Anthropic API key (optional)"
    )
    llm_timeout_seconds: int = Field(
        default=60,
        description="Timeout for a single LLM call"
    )
    llm_max_retries: int = Field(
        default=3,
        description="Retries on rate limit or timeout"
    )

    # Session Tuning
    question_delay_seconds: float = Field(
        default=1.5,
        ge=0,
        description="Pause between answer feedback and the next question"
    )
    practice_question_count: int = Field(
        default=5,
        ge=1,
        description="Questions generated for non-quiz sessions"
    )
    quiz_question_count: int = Field(
        default=10,
        ge=1,
        description="Questions generated for quiz sessions"
    )
    level_history_window: int = Field(
        default=10,
        ge=1,
        description="Most recent answers considered by the level estimator"
    )
    conversation_context_messages: int = Field(
        default=10,
        ge=1,
        description="Transcript messages sent as conversational context"
    )

    # Application Settings
    log_level: str = Field(
        default="INFO",
        description="Logging level"
    )
    environment: str = Field(
        default="development",
        description="Environment: development, staging, production"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )


# Global settings instance
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """
    Get or create the global settings instance.

    Returns:
        Settings: Application settings
    """
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings():
    """Reset the global settings instance (useful for testing)."""
    global _settings
    _settings = None


_PROVIDER_KEYS = {
    "openai": "openai_api_key",
    "anthropic": "anthropic_api_key",
    "anthropic-haiku": "anthropic_api_key",
    "google": "gemini_api_key",
}


def validate_required_settings(settings: Optional[Settings] = None):
    """
    Validate that all required settings are present at runtime.

    Raises ValueError if required settings are missing.
    """
    settings = settings or get_settings()

    key_field = _PROVIDER_KEYS.get(settings.llm_provider)
    if key_field is None:
        raise ValueError(f"Unknown LLM_PROVIDER '{settings.llm_provider}'")

    if not getattr(settings, key_field):
        raise ValueError(
            f"{key_field.upper()} environment variable is required for provider "
            f"'{settings.llm_provider}' but not set."
        )

    if not settings.database_url:
        raise ValueError("DATABASE_URL is required but not set")

    return True
