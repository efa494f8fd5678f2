"""Configuration management for gantry."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # SQLite Configuration
    sqlite_db_path: str = Field(default="./data/gantry.db", description="Path to the SQLite database file")

    # Pydantic Logfire Configuration (optional)
    logfire_token: str | None = Field(default=None, description="Pydantic Logfire token for observability")

    # Redis Configuration (optional)
    redis_url: str | None = Field(
        default=None,
        description="Redis connection URL used to relay realtime events between workers (e.g., redis://localhost:6379)",
    )

    # Frontend / CORS
    frontend_url: str = Field(default="http://localhost:3000", description="Origin allowed to call the API")

    # Realtime presence
    presence_stop_delay_seconds: float = Field(
        default=2.0,
        description="Quiet window before a 'stop editing' presence event is broadcast",
    )

    environment: str = Field(default="development", description="Deployment environment name")

    @property
    def is_production(self) -> bool:
        """Whether the service runs in production."""
        return self.environment.lower() == "production"

    def require_credential(self, field_name: str, service_name: str) -> str:
        """Validate that a required credential is set, raising a clear error if missing.

        Args:
            field_name: Name of the field to check
            service_name: Human-readable service name for error message

        Returns:
            The credential value

        Raises:
            ValueError: If the credential is None or empty
        """
        value = getattr(self, field_name)
        if not value:
            raise ValueError(
                f"{service_name} credential not configured. "
                f"Set {field_name.upper()} environment variable or add to .env file."
            )
        return value


# Application Constants
class Constants:
    """Application-wide constants."""

    # HTTP Status Codes
    HTTP_BAD_REQUEST: int = 400
    HTTP_NOT_FOUND: int = 404
    HTTP_CONFLICT: int = 409
    HTTP_SERVER_ERROR: int = 500

    # Timeline
    TIMELINE_RANGE_PADDING_DAYS: int = 7  # Margin added on each side of the task date span
    TIMELINE_DEFAULT_WINDOW_DAYS: int = 30  # Window shown when no task carries a date
    TIMELINE_DEFAULT_VIEWPORT_PX: int = 1200

    # Hierarchy
    MAX_HIERARCHY_DEPTH: int = 1000  # Upper bound for any ancestor walk

    # Realtime
    REALTIME_CHANNEL_PREFIX: str = "project:"
    REDIS_RELAY_PREFIX: str = "gantry:"

    # Pagination Defaults
    DEFAULT_PER_PAGE_LIMIT: int = 1000  # Page size when reading a whole collection

    # Redis Configuration
    REDIS_MAX_CONNECTIONS: int = 10  # Maximum connections in Redis connection pool


def get_settings() -> Settings:
    """Get application settings (singleton pattern)."""
    return Settings()


# Global settings instance
settings = get_settings()
