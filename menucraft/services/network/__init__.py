"""
Network Service Factory

Provides a single entry point for obtaining the shared network service.
Automatically wires it to the mock backend or the real API based on
ENV_MODE configuration.

Usage:
    from menucraft.services.network import get_network_service

    service = get_network_service()
    auth = await service.login("demo@menucraft.dev", "password")

Environment Switching:
    - ENV_MODE=development → MockBackend via httpx.MockTransport
    - ENV_MODE=staging → API_BASE_URL (test deployment)
    - ENV_MODE=production → API_BASE_URL (live)
"""

import logging
from functools import lru_cache
from pathlib import Path

from menucraft.core.config import get_settings
from menucraft.services.network.mock import MockBackend
from menucraft.services.network.multipart import MultipartForm
from menucraft.services.network.service import NetworkService

logger = logging.getLogger(__name__)

MOCK_STATE_FILENAME = "mock_backend.json"


@lru_cache()
def get_network_service() -> NetworkService:
    """
    Get the shared network service instance.

    The instance is cached so every view-model talks through the same
    HTTP connection pool.

    Returns:
        NetworkService: Configured network service
    """
    settings = get_settings()

    if settings.is_development:
        logger.info("Network Service: Using MockBackend (development mode)")
        backend = MockBackend(
            failure_rate=settings.mock_failure_rate,
            min_latency=settings.mock_min_latency,
            max_latency=settings.mock_max_latency,
            state_path=Path(settings.session_directory).expanduser() / MOCK_STATE_FILENAME,
            settings=settings,
        )
        return NetworkService(transport=backend.transport(), settings=settings, provider_name="mock")

    logger.info(
        f"Network Service: Using {settings.api_base_url} "
        f"({settings.env_mode.value} mode)"
    )
    return NetworkService(settings=settings)


def reset_network_service() -> None:
    """
    Clear the cached network service instance.

    Useful for testing or when configuration changes at runtime.
    """
    get_network_service.cache_clear()
    logger.debug("Network service cache cleared")


__all__ = [
    "get_network_service",
    "reset_network_service",
    "NetworkService",
    "MockBackend",
    "MultipartForm",
]
