"""
Client Configuration Module

Centralizes all configuration using environment variables with Pydantic Settings.
Supports three modes:
    - DEVELOPMENT: Talks to the in-memory mock backend (no server needed)
    - STAGING: Talks to a real server, usually a test deployment
    - PRODUCTION: Talks to the live menu management API

The ENV_MODE variable controls which transport the network service is
wired to, so the view-models and CLI behave identically against the mock
backend and a real deployment.

Usage:
    from menucraft.core.config import get_settings

    settings = get_settings()
    print(settings.api_base_url)

Version: 1.0.0
"""

import logging
import sys
from enum import Enum
from functools import lru_cache
from pathlib import Path
from urllib.parse import urlparse

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class EnvironmentMode(str, Enum):
    """
    Client environment modes.

    Attributes:
        DEVELOPMENT: Local work against the mock backend
        PRODUCTION: Live API
        STAGING: Real API, test deployment
    """
    DEVELOPMENT = "development"
    PRODUCTION = "production"
    STAGING = "staging"


class Settings(BaseSettings):
    """
    Client settings loaded from environment variables.

    All settings can be overridden via environment variables or .env file.

    Attributes:
        env_mode: Current environment (development/production/staging)
        debug: Enable verbose logging

        # API
        api_base_url: Base URL every endpoint is appended to
        auth_header_name: Header carrying the session token
        request_timeout: Per-request timeout in seconds

        # Session storage
        session_directory: Directory holding the persisted session
        session_filename: Session file name
        session_lock_timeout: Seconds to wait for the session file lock

        # Mock backend
        mock_failure_rate: Probability of a simulated 503
        mock_min_latency / mock_max_latency: Simulated latency bounds

        # Branch defaults
        default_opening_time ... default_table_count: Values sent when a
        branch form leaves them empty
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ==========================================================================
    # ENVIRONMENT
    # ==========================================================================

    env_mode: EnvironmentMode = Field(
        default=EnvironmentMode.DEVELOPMENT,
        description="Client environment mode"
    )
    debug: bool = Field(
        default=False,
        description="Enable debug mode with verbose logging"
    )

    # ==========================================================================
    # APPLICATION
    # ==========================================================================

    app_name: str = Field(
        default="MenuCraft",
        description="Application display name"
    )
    app_version: str = Field(
        default="1.0.0",
        description="Application version"
    )

    # ==========================================================================
    # API
    # ==========================================================================

    api_base_url: str = Field(
        default="http://192.168.1.50:5000/api",
        description="Base URL of the menu management API"
    )
    auth_header_name: str = Field(
        default="x-auth-token",
        description="Header used to send the session token"
    )
    request_timeout: float = Field(
        default=30.0,
        description="Request timeout in seconds"
    )

    # ==========================================================================
    # SESSION STORAGE
    # ==========================================================================

    session_directory: str = Field(
        default="~/.menucraft",
        description="Directory for the persisted session"
    )
    session_filename: str = Field(
        default="session.json",
        description="Session file name"
    )
    session_lock_timeout: int = Field(
        default=10,
        description="Seconds to wait for the session file lock"
    )

    # ==========================================================================
    # MOCK BACKEND
    # ==========================================================================

    mock_failure_rate: float = Field(
        default=0.0,
        description="Probability of a simulated server failure"
    )
    mock_min_latency: float = Field(
        default=0.0,
        description="Minimum simulated latency in seconds"
    )
    mock_max_latency: float = Field(
        default=0.0,
        description="Maximum simulated latency in seconds"
    )

    # ==========================================================================
    # BRANCH DEFAULTS
    # ==========================================================================

    default_opening_time: str = Field(default="08:00")
    default_closing_time: str = Field(default="22:00")
    default_weekday_hours: str = Field(default="08:00 AM - 10:00 PM")
    default_weekend_hours: str = Field(default="09:00 AM - 11:00 PM")
    default_table_count: int = Field(default=10)

    # ==========================================================================
    # VALIDATORS
    # ==========================================================================

    @field_validator("env_mode", mode="before")
    @classmethod
    def validate_env_mode(cls, v: str) -> EnvironmentMode:
        """Convert string to EnvironmentMode enum."""
        if isinstance(v, EnvironmentMode):
            return v
        try:
            return EnvironmentMode(v.lower())
        except ValueError:
            valid = [e.value for e in EnvironmentMode]
            raise ValueError(f"Invalid env_mode. Must be one of: {valid}")

    @field_validator("api_base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Endpoints start with '/', so the base URL must not end with one."""
        return v.rstrip("/")

    # ==========================================================================
    # COMPUTED PROPERTIES
    # ==========================================================================

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.env_mode == EnvironmentMode.DEVELOPMENT

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.env_mode == EnvironmentMode.PRODUCTION

    @property
    def is_staging(self) -> bool:
        """Check if running in staging mode."""
        return self.env_mode == EnvironmentMode.STAGING

    @property
    def use_real_services(self) -> bool:
        """Check if a real API server should be used."""
        return self.env_mode in (EnvironmentMode.PRODUCTION, EnvironmentMode.STAGING)

    @property
    def session_path(self) -> Path:
        """Full path of the session file."""
        return Path(self.session_directory).expanduser() / self.session_filename

    @property
    def session_lock_path(self) -> Path:
        """Lock file guarding the session file."""
        return self.session_path.with_name(self.session_filename + ".lock")

    # ==========================================================================
    # VALIDATION METHODS
    # ==========================================================================

    def validate_production_config(self) -> list[str]:
        """
        Validate that the settings needed to reach a real server are usable.

        Returns:
            List of misconfigured keys (empty if all present)
        """
        missing = []

        if self.use_real_services:
            parsed = urlparse(self.api_base_url)
            if parsed.scheme not in ("http", "https") or not parsed.netloc:
                missing.append("API_BASE_URL")
            if not self.auth_header_name:
                missing.append("AUTH_HEADER_NAME")

        return missing


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached client settings.

    Settings are loaded only once per process; call
    ``get_settings.cache_clear()`` after changing the environment.

    Returns:
        Settings: Configured client settings
    """
    return Settings()


# =============================================================================
# LOGGING CONFIGURATION
# =============================================================================

def setup_logging(level: int = logging.INFO) -> logging.Logger:
    """
    Configure client-wide logging.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR)

    Returns:
        Configured package logger
    """
    settings = get_settings()

    if settings.debug:
        level = logging.DEBUG

    log_format = "%(asctime)s │ %(levelname)-8s │ %(name)-25s │ %(message)s"
    date_format = "%Y-%m-%d %H:%M:%S"

    logging.basicConfig(
        level=level,
        format=log_format,
        datefmt=date_format,
        handlers=[logging.StreamHandler(sys.stdout)],
    )

    # Reduce noise from third-party libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("filelock").setLevel(logging.WARNING)

    return logging.getLogger("menucraft")


def get_logger(name: str) -> logging.Logger:
    """
    Get a named logger instance.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured logger instance
    """
    return logging.getLogger(name)
