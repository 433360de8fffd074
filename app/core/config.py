"""Configuration management for the Product Clarity engine."""

from functools import lru_cache

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load environment variables from .env file (only if accessible)
try:
    load_dotenv()
except (PermissionError, OSError):
    # In sandboxed environments, .env might not be accessible
    # Environment variables should be set directly
    pass


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )

    # Environment
    CLARITY_ENV: str = Field(default="dev", description="Environment: dev, staging, prod")

    # Configuration catalogs (questions, blueprints, templates, outputs)
    CONFIG_DIR: str = Field(default="config", description="Local directory holding catalog JSON")
    CONFIG_BASE_URL: str | None = Field(
        default=None, description="Fetch catalogs over HTTP from this base URL instead"
    )
    CONFIG_TIMEOUT_SECONDS: float = Field(default=10.0, description="Catalog fetch timeout")

    # External analysis service
    ANALYSIS_SERVICE_URL: str | None = Field(
        default=None, description="Base URL of the viability analysis service"
    )
    ANALYSIS_TIMEOUT_SECONDS: float = Field(
        default=30.0, description="Timeout for the viability analysis request"
    )

    # Translation
    TRANSLATION_SERVICE_URL: str | None = Field(
        default=None, description="Base URL of the translation service (tagging stub if unset)"
    )
    TRANSLATION_TIMEOUT_SECONDS: float = Field(default=15.0, description="Translation timeout")

    # Persistence
    STORAGE_DIR: str = Field(default=".clarity", description="Directory for the session blob store")
    STORAGE_KEY: str = Field(
        default="pcw_active_session_v1", description="Key of the active session blob"
    )
    MAX_ACTIVE_SESSIONS: int = Field(
        default=50, description="Sessions kept in the in-process registry before the least recent is evicted"
    )

    # Document generation
    DEFAULT_LOCALE: str = Field(default="en", description="Base locale of template catalogs")
    DEFAULT_OUTPUT_ID: str = Field(default="product-brief", description="Output used when none given")
    DOCUMENT_TITLE: str = Field(default="Product Clarity Brief", description="Generated document title")


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Returns:
        Settings instance
    """
    return Settings()
