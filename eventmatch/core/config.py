"""Application configuration via environment variables."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings loaded from environment variables or .env file."""
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    # Application
    app_name: str = "Event Match"
    debug: bool = False

    # Server
    host: str = "0.0.0.0"  # Bind to all interfaces for external access
    port: int = 8000
    allowed_origins: str = "*"  # Comma-separated origins, or "*" for all

    # Storage
    log_dir: str = "~/.logs/eventmatch"
    database_url: str = "sqlite:///./eventmatch.db"

    # Matching
    mutual_matches_only: bool = False  # Likes count as matches unless enabled
    use_mock_attendees: bool = False  # Demo path: seed placeholder attendees

    # Background jobs
    enrollment_refresh_minutes: int = 15
    notification_poll_seconds: int = 5
    notification_window_minutes: int = 5


settings = Settings()
