"""
Configuration module using Pydantic Settings.

CRITICAL: This module uses lazy loading pattern.
No environment variables are loaded at import time.
Each service must call get_settings() explicitly.
"""

from typing import Optional

from pydantic import Field, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    IMPORTANT: Do NOT set env_file in Config.
    Environment variables must be loaded externally by the service.
    """

    model_config = SettingsConfigDict(
        env_file=None,
        case_sensitive=False,
        extra="ignore"
    )

    # Database
    database_url: str = Field(
        ...,
        description="PostgreSQL (PostGIS) connection URL"
    )
    db_pool_size: int = Field(
        default=5,
        description="Number of pooled connections to maintain"
    )
    db_max_overflow: int = Field(
        default=10,
        description="Maximum overflow connections"
    )

    # Authentication
    jwt_secret: str = Field(
        ...,
        description="Shared secret used to verify session tokens"
    )
    jwt_algorithm: str = Field(
        default="HS256",
        description="Session token signing algorithm"
    )
    access_token_expire_minutes: int = Field(
        default=60 * 24 * 7,
        description="Lifetime of tokens issued by create_access_token"
    )

    # OpenRouter LLM
    openrouter_api_key: str = Field(
        ...,
        description="OpenRouter API key for LLM access"
    )
    openrouter_base_url: str = Field(
        default="https://openrouter.ai/api/v1",
        description="OpenRouter API base URL"
    )
    llm_model_name: str = Field(
        default="openai/gpt-3.5-turbo-0125",
        description="Completion model name on OpenRouter"
    )
    llm_temperature: float = Field(
        default=0.5,
        ge=0.0,
        le=2.0,
        description="Sampling temperature for problem analysis"
    )
    solution_temperature: float = Field(
        default=0.7,
        ge=0.0,
        le=2.0,
        description="Sampling temperature for solution drafting"
    )
    llm_timeout_seconds: int = Field(
        default=120,
        description="Caller-side timeout for a single completion"
    )

    # Langfuse
    langfuse_secret_key: Optional[str] = Field(
        default=None,
        description="Langfuse secret key (tracing disabled when unset)"
    )
    langfuse_public_key: Optional[str] = Field(
        default=None,
        description="Langfuse public key"
    )
    langfuse_base_url: str = Field(
        default="https://cloud.langfuse.com",
        description="Langfuse base URL"
    )

    # Sentry
    sentry_dsn: Optional[str] = Field(
        default=None,
        description="Sentry DSN for error tracking"
    )
    sentry_environment: str = Field(
        default="development",
        description="Sentry environment name"
    )
    sentry_traces_sample_rate: float = Field(
        default=0.1,
        description="Sentry traces sample rate"
    )
    sentry_profiles_sample_rate: float = Field(
        default=1.0,
        description="Sentry profiles sample rate"
    )

    # Application
    app_name: str = Field(
        default="Civic Match API",
        description="Application name"
    )
    debug: bool = Field(
        default=False,
        description="Debug mode flag"
    )
    cors_origins: str = Field(
        default="*",
        description="Comma separated list of allowed CORS origins"
    )

    @computed_field  # type: ignore[misc]
    @property
    def allowed_origins(self) -> list[str]:
        """
        Split the configured CORS origins into a list.

        Returns:
            list: Origins accepted by the CORS middleware
        """
        return [
            origin.strip()
            for origin in self.cors_origins.split(",")
            if origin.strip()
        ]

    @computed_field  # type: ignore[misc]
    @property
    def langfuse_enabled(self) -> bool:
        """Whether both Langfuse keys are configured."""
        return bool(self.langfuse_secret_key and self.langfuse_public_key)


def get_settings() -> Settings:
    """
    Factory function to create Settings instance.

    This function should be called by each service explicitly.
    DO NOT call this at module level.

    Returns:
        Settings: Configured settings instance

    Note:
        Settings() will automatically load values from environment
        variables. Required fields must be set in the environment
        before calling this function.
    """
    return Settings()  # type: ignore[call-arg]
