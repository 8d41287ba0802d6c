"""
Provider adapter interface.

An ArtifactProvider hides one backend's authentication and pagination scheme
behind four operations: app listing, artifact search, download-locator
resolution and byte transfer.
"""

import re
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from artifact_downloader.constants import MIN_OVERFETCH_COUNT, OVERFETCH_MULTIPLIER
from artifact_downloader.http_client import AsyncApiClient
from artifact_downloader.log_utils import logger
from artifact_downloader.models import (
    AppSummary,
    Artifact,
    DownloadLocator,
    Pathish,
    SearchFilter,
)


_FRACTION_RX = re.compile(r"\.(\d+)")


def parse_timestamp(raw: Any) -> datetime:
    """
    Parse an RFC 3339 timestamp from an API payload into an aware UTC datetime.

    Trailing `Z` designators and sub-microsecond precision are accepted.
    Missing or unparseable values yield the Unix epoch.
    """
    if not isinstance(raw, str) or not raw.strip():
        return datetime.fromtimestamp(0, tz=timezone.utc)

    normalized = raw.strip().replace("Z", "+00:00")
    normalized = _FRACTION_RX.sub(
        lambda m: "." + m.group(1)[:6].ljust(6, "0"), normalized, count=1
    )
    try:
        parsed = datetime.fromisoformat(normalized)
    except ValueError:
        logger.debug(f"Unparseable timestamp {raw!r}; using epoch")
        return datetime.fromtimestamp(0, tz=timezone.utc)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def data_items(payload: Any, key: str) -> List[Dict[str, Any]]:
    """
    Extract the list stored under `key` in a JSON payload, dropping malformed entries.
    """
    if not isinstance(payload, dict):
        return []
    items = payload.get(key)
    if not isinstance(items, list):
        return []
    return [item for item in items if isinstance(item, dict)]


def fetch_budget(limit: int) -> int:
    """
    Number of upstream items to scan for a search returning at most `limit` results.

    Upstream APIs cannot filter by artifact type or exact version, so searches
    over-fetch and filter client-side.
    """
    return max(limit * OVERFETCH_MULTIPLIER, MIN_OVERFETCH_COUNT)


class ArtifactProvider(ABC):
    """
    Abstract base class for artifact providers.

    Subclasses own an AsyncApiClient and a token cache. Instances are meant for a
    single logical caller and can be used as async context managers so the HTTP
    session is closed afterwards.
    """

    name: str = ""

    def __init__(self, client: Optional[AsyncApiClient] = None) -> None:
        self.client = client or AsyncApiClient()

    async def __aenter__(self) -> "ArtifactProvider":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    async def close(self) -> None:
        await self.client.close()

    @abstractmethod
    async def list_apps(
        self, warnings: Optional[List[str]] = None
    ) -> List[AppSummary]:
        """
        List the apps visible to the configured credentials.

        Parameters:
            warnings (Optional[List[str]]): When given, listing is best-effort per
                sub-source: a failing sub-source is skipped and a message appended
                here. When None, the first failure propagates.

        Returns:
            List[AppSummary]: Discovered apps.
        """

    @abstractmethod
    async def search(self, search_filter: SearchFilter) -> List[Artifact]:
        """
        Find artifacts matching the filter.

        Returns:
            List[Artifact]: At most `search_filter.limit` artifacts, newest first.
        """

    @abstractmethod
    async def resolve_download_locator(
        self, artifact: Artifact
    ) -> Optional[DownloadLocator]:
        """
        Obtain a fresh transfer location for an artifact.

        Returns:
            Optional[DownloadLocator]: The locator, or None when the provider has no
            download available (e.g. an expired or archived build).
        """

    async def fetch(self, locator: DownloadLocator, destination: Pathish) -> Path:
        """
        Stream the bytes behind a locator to a destination file.

        Returns:
            Path: The written file.
        """
        target = Path(destination)
        logger.debug(f"{self.name}: fetching {target.name}")
        await self.client.download_file(locator.url, target, headers=locator.headers)
        return target
