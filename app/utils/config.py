"""
Configuration management for Algo Workspace.

Uses pydantic-settings to load configuration from environment variables
and .env files.
"""

from functools import lru_cache
from pathlib import Path
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    # Workspace Configuration
    workspace_root: Path = Path("~/algo-workspace")
    default_language: str = "typescript"

    # Archive Configuration
    collision_policy: str = "timestamp"  # timestamp, overwrite, error
    archive_max_attempts: int = 100
    archive_retry_delay_ms: int = 1

    # Path Resolution
    path_cache_size: int = 100

    # Watcher Configuration
    watch_enabled: bool = True
    watch_debounce_ms: int = 300
    watch_recursive: bool = True
    watch_poll_interval: float = 1.0  # seconds between subscription health checks
    recent_events_limit: int = 200

    # API Configuration
    api_port: int = 8000
    log_level: str = "INFO"
    api_title: str = "Algo Workspace API"
    api_version: str = "1.0.0"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    def get_workspace_root(self) -> Path:
        """Workspace root with ``~`` expanded."""
        return self.workspace_root.expanduser()

    def get_retry_delay_seconds(self) -> float:
        """Delay between timestamp-suffix attempts in seconds."""
        return self.archive_retry_delay_ms / 1000.0


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
