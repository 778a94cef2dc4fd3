"""Application Configuration

Type-safe configuration using Pydantic Settings for environment variable handling.

Patterns Demonstrated:
- Type-safe environment variable parsing with validation
- Sensible defaults for development
- Clear separation of infrastructure vs application config
- No magic strings in the codebase
"""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings

from .domain.domain_type import StorageBackend


class Settings(BaseSettings):
    """Application settings from environment variables"""

    # =============================================================================
    # APPLICATION
    # =============================================================================

    app_name: str = Field(default="expertchat", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")
    app_description: str = Field(
        default="Multi-expert conversation orchestrator with confirmable tool calls",
        alias="APP_DESCRIPTION",
    )
    environment: str = Field(default="development", alias="ENVIRONMENT")

    # =============================================================================
    # API CONFIGURATION
    # =============================================================================

    api_host: str = Field(default="0.0.0.0", alias="API_HOST")
    api_port: int = Field(default=8000, alias="API_PORT")
    log_level: str = Field(default="info", alias="LOG_LEVEL")

    # CORS Settings
    cors_origins: str = Field(default="", alias="CORS_ORIGINS")
    cors_credentials: bool = Field(default=False, alias="CORS_CREDENTIALS")
    cors_methods: str = Field(default="GET,POST", alias="CORS_METHODS")
    cors_headers: str = Field(default="*", alias="CORS_HEADERS")

    # =============================================================================
    # STORAGE
    # =============================================================================

    storage_backend: StorageBackend = Field(default=StorageBackend.REDIS, alias="STORAGE_BACKEND")

    # Redis - conversation history and session state
    redis_url: str = Field(default="redis://localhost:6379/0", alias="REDIS_URL")
    # Retention period for history and session state; 0 keeps them forever
    session_ttl_seconds: int = Field(default=0, ge=0, alias="SESSION_TTL_SECONDS")

    # =============================================================================
    # LLM CONFIGURATION
    # =============================================================================

    openrouter_api_key: str | None = Field(default=None, alias="OPENROUTER_API_KEY")
    inference_model: str = Field(default="google/gemini-2.0-flash-001", alias="INFERENCE_MODEL")
    expert_step_budget: int = Field(default=10, ge=1, alias="EXPERT_STEP_BUDGET")

    # Comma-separated tool names whose side effects wait for user approval
    confirm_tools: str = Field(default="add_transactions", alias="CONFIRM_TOOLS")

    # =============================================================================
    # OBSERVABILITY
    # =============================================================================

    logfire_token: str | None = Field(default=None, alias="LOGFIRE_TOKEN")

    model_config = {"env_file": ".env", "case_sensitive": False, "extra": "ignore"}


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings.model_validate({})


settings = get_settings()
