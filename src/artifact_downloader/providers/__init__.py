"""
Provider adapters for the supported artifact backends.
"""

from typing import Optional

from artifact_downloader.config import Settings
from artifact_downloader.constants import (
    APP_DISTRIBUTION_PROVIDER,
    APP_STORE_CONNECT_PROVIDER,
    PROVIDER_NAMES,
)
from artifact_downloader.exceptions import ConfigValidationError
from artifact_downloader.http_client import AsyncApiClient

from .app_store_connect import AppStoreConnectProvider
from .base import ArtifactProvider
from .firebase import FirebaseAppDistributionProvider


def create_provider(
    name: str, settings: Settings, client: Optional[AsyncApiClient] = None
) -> ArtifactProvider:
    """
    Build the adapter for a provider name from loaded settings.

    Credentials are validated here, before any network call is made.

    Raises:
        ConfigValidationError: If the name is unknown or its credentials are incomplete.
    """
    if name == APP_STORE_CONNECT_PROVIDER:
        return AppStoreConnectProvider(settings.require_app_store_connect(), client)
    if name == APP_DISTRIBUTION_PROVIDER:
        return FirebaseAppDistributionProvider(settings.require_firebase(), client)
    raise ConfigValidationError(
        f"Unknown provider: {name}",
        details=f"Choose from {', '.join(PROVIDER_NAMES)}",
    )


__all__ = [
    "ArtifactProvider",
    "AppStoreConnectProvider",
    "FirebaseAppDistributionProvider",
    "create_provider",
]
