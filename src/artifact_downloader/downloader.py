"""
Artifact download orchestration.

A download locator is resolved immediately before each transfer and never
reused, since upstream URLs are pre-signed and short-lived.
"""

from pathlib import Path

from artifact_downloader.constants import BYTES_PER_MEGABYTE
from artifact_downloader.exceptions import ResourceNotFoundError
from artifact_downloader.formatter import format_date
from artifact_downloader.log_utils import logger
from artifact_downloader.models import Artifact, Pathish
from artifact_downloader.providers.base import ArtifactProvider


def resolve_output_path(destination: Pathish, file_name: str) -> Path:
    """
    Decide where an artifact is written.

    A destination that already ends with the artifact's file name is used
    verbatim; anything else is treated as a directory to place the file in.
    """
    if str(destination).endswith(file_name):
        return Path(destination)
    return Path(destination) / file_name


class ArtifactDownloader:
    """
    Downloads resolved artifacts through their provider.

    Usage:
        downloader = ArtifactDownloader(provider)
        path = await downloader.download(artifact, "./downloads")
    """

    def __init__(self, provider: ArtifactProvider) -> None:
        self.provider = provider

    async def download(self, artifact: Artifact, destination: Pathish) -> Path:
        """
        Download an artifact to `destination`.

        Parameters:
            artifact (Artifact): A resolved artifact from this downloader's provider.
            destination (Pathish): Directory, or full file path ending with the
                artifact's file name.

        Returns:
            Path: The written file.

        Raises:
            ResourceNotFoundError: If the provider has no download available.
        """
        output_path = resolve_output_path(destination, artifact.file_name)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        locator = await self.provider.resolve_download_locator(artifact)
        if locator is None:
            raise ResourceNotFoundError(
                f"No download URL available for {artifact.file_name}",
                details="The build may have expired or been archived",
            )

        logger.debug(f"Downloading {artifact.file_name} to {output_path}")
        path = await self.provider.fetch(locator, output_path)

        size = path.stat().st_size if path.exists() else 0
        logger.info(
            f"Downloaded {artifact.file_name} "
            f"(uploaded {format_date(artifact.uploaded_at)}, "
            f"{size / BYTES_PER_MEGABYTE:.1f} MB) to {path}"
        )
        return path
