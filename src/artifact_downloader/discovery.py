"""
App discovery across providers.
"""

import asyncio
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from artifact_downloader.constants import PROVIDER_DISPLAY_NAMES
from artifact_downloader.exceptions import ArtifactDownloaderError
from artifact_downloader.log_utils import logger
from artifact_downloader.models import AppSummary
from artifact_downloader.providers.base import ArtifactProvider


@dataclass
class DiscoveryResult:
    apps: List[AppSummary] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)


def _warning_for(provider: ArtifactProvider, error: Exception) -> str:
    display_name = PROVIDER_DISPLAY_NAMES.get(provider.name, provider.name)
    return f"Failed to fetch from {display_name}: {error}"


async def _list_best_effort(
    provider: ArtifactProvider, warnings: List[str]
) -> List[AppSummary]:
    try:
        return await provider.list_apps(warnings=warnings)
    except ArtifactDownloaderError as e:
        warnings.append(_warning_for(provider, e))
        return []


async def discover_apps(providers: Sequence[ArtifactProvider]) -> DiscoveryResult:
    """
    List apps from every provider concurrently.

    A provider that fails contributes a warning instead of failing the sweep,
    whatever it raises. Apps are concatenated in provider order; warnings are
    grouped per provider in the same order.
    """
    provider_warnings: List[List[str]] = [[] for _ in providers]
    listings = await asyncio.gather(
        *(
            _list_best_effort(provider, warnings)
            for provider, warnings in zip(providers, provider_warnings)
        ),
        return_exceptions=True,
    )

    result = DiscoveryResult()
    for provider, listing, warnings in zip(providers, listings, provider_warnings):
        if isinstance(listing, Exception):
            logger.debug(f"Unexpected error listing {provider.name}: {listing!r}")
            warnings.append(_warning_for(provider, listing))
        elif isinstance(listing, BaseException):
            # Cancellation and interpreter exits are not listing failures
            raise listing
        else:
            result.apps.extend(listing)
        result.warnings.extend(warnings)

    for warning in result.warnings:
        logger.warning(warning)
    logger.debug(f"Discovered {len(result.apps)} apps from {len(providers)} providers")
    return result


async def list_provider_apps(provider: ArtifactProvider) -> List[AppSummary]:
    """List apps from a single provider; any failure propagates."""
    return await provider.list_apps()


def filter_by_platform(
    apps: List[AppSummary], platform: Optional[str]
) -> List[AppSummary]:
    if not platform or platform == "all":
        return list(apps)
    return [app for app in apps if app.platform == platform]
