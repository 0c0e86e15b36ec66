"""
Core module initialization.
Exports configuration, logging utilities and the API error taxonomy.
"""

from menucraft.core.config import get_settings, get_logger, setup_logging, Settings, EnvironmentMode
from menucraft.core.exceptions import APIError

__all__ = ["get_settings", "get_logger", "setup_logging", "Settings", "EnvironmentMode", "APIError"]
