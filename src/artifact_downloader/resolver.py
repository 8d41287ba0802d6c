"""
Artifact resolution.

Turns a ResolutionTarget into exactly one Artifact by driving a provider's
search. When the newest builds span several artifact types and no type was
requested, the choice is handed to an injected chooser.
"""

import re
from typing import Dict, List, Optional

from artifact_downloader.chooser import Chooser
from artifact_downloader.constants import (
    ID_SEARCH_LIMIT,
    LATEST_CANDIDATE_LIMIT,
    LATEST_KEYWORD,
)
from artifact_downloader.exceptions import ResourceNotFoundError, SelectionError
from artifact_downloader.log_utils import logger
from artifact_downloader.models import (
    Artifact,
    ById,
    ByVersion,
    ChoiceOption,
    Latest,
    ResolutionTarget,
    SearchFilter,
)
from artifact_downloader.providers.base import ArtifactProvider
from artifact_downloader.version import format_version, parse_version

UUID_RX = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$", re.IGNORECASE
)
# Firebase release ids are 13 lowercase alphanumerics
RELEASE_ID_RX = re.compile(r"^[0-9a-z]{13}$", re.IGNORECASE)


def parse_target(
    raw: str, app_id: str, artifact_type: Optional[str] = None
) -> ResolutionTarget:
    """
    Interpret a user-supplied artifact reference.

    `latest` (any case) selects the newest artifact, a UUID or 13-character
    alphanumeric token selects by id, and anything else is parsed as a version.
    """
    value = raw.strip()
    if value.lower() == LATEST_KEYWORD:
        selector = Latest()
    elif UUID_RX.match(value) or RELEASE_ID_RX.match(value):
        selector = ById(value)
    else:
        parsed = parse_version(value)
        selector = ByVersion(parsed.version, parsed.build_number)
    return ResolutionTarget(app_id=app_id, selector=selector, artifact_type=artifact_type)


def latest_per_type(artifacts: List[Artifact]) -> Dict[str, Artifact]:
    """
    Keep the first artifact seen for each type.

    Input is newest first, so each entry is the newest artifact of its type and
    the mapping preserves newest-first order across types.
    """
    by_type: Dict[str, Artifact] = {}
    for artifact in artifacts:
        by_type.setdefault(artifact.artifact_type, artifact)
    return by_type


def build_choice_options(artifacts: List[Artifact]) -> List[ChoiceOption]:
    return [
        ChoiceOption(
            label=(
                f"{artifact.artifact_type} - {artifact.version} "
                f"({artifact.build_number}) - {artifact.file_name}"
            ),
            value=artifact,
        )
        for artifact in artifacts
    ]


class ArtifactResolver:
    """
    Resolve a target to a single artifact using one provider.

    Parameters:
        provider (ArtifactProvider): The backend to search.
        chooser (Optional[Chooser]): Used when the latest builds offer several
            artifact types. Without one, such ambiguity raises SelectionError.
    """

    def __init__(
        self, provider: ArtifactProvider, chooser: Optional[Chooser] = None
    ) -> None:
        self.provider = provider
        self.chooser = chooser

    async def resolve(self, target: ResolutionTarget) -> Artifact:
        """
        Resolve `target` to exactly one artifact.

        Raises:
            ResourceNotFoundError: If nothing matches.
            SelectionError: If a choice is needed and cannot be made.
        """
        selector = target.selector
        if isinstance(selector, ById):
            return await self._resolve_by_id(target.app_id, selector.artifact_id)
        if isinstance(selector, ByVersion):
            return await self._resolve_by_version(
                target.app_id, selector, target.artifact_type
            )
        if isinstance(selector, Latest):
            return await self._resolve_latest(target.app_id, target.artifact_type)
        raise TypeError(f"Unsupported selector: {selector!r}")

    async def _resolve_latest(
        self, app_id: str, artifact_type: Optional[str]
    ) -> Artifact:
        if artifact_type:
            results = await self.provider.search(
                SearchFilter(app_id=app_id, artifact_type=artifact_type, limit=1)
            )
            if not results:
                raise ResourceNotFoundError(
                    f"No {artifact_type} artifacts found for {app_id}"
                )
            return results[0]

        results = await self.provider.search(
            SearchFilter(app_id=app_id, limit=LATEST_CANDIDATE_LIMIT)
        )
        candidates = list(latest_per_type(results).values())
        if not candidates:
            raise ResourceNotFoundError(f"No artifacts found for {app_id}")
        if len(candidates) == 1:
            logger.debug(f"Single artifact type available: {candidates[0].artifact_type}")
            return candidates[0]
        return self._choose(candidates)

    def _choose(self, candidates: List[Artifact]) -> Artifact:
        types = ", ".join(candidate.artifact_type for candidate in candidates)
        if self.chooser is None:
            raise SelectionError(
                "Multiple artifact types available",
                details=f"Specify an artifact type ({types})",
            )
        logger.debug(f"Asking chooser to pick one of: {types}")
        return self.chooser.choose(build_choice_options(candidates))

    async def _resolve_by_id(self, app_id: str, artifact_id: str) -> Artifact:
        # Only the newest ID_SEARCH_LIMIT artifacts are scanned
        results = await self.provider.search(
            SearchFilter(app_id=app_id, limit=ID_SEARCH_LIMIT)
        )
        for artifact in results:
            if artifact.id == artifact_id:
                return artifact
        raise ResourceNotFoundError(
            f"Artifact with ID {artifact_id} not found",
            details=f"Searched the {ID_SEARCH_LIMIT} most recent artifacts of {app_id}",
        )

    async def _resolve_by_version(
        self, app_id: str, selector: ByVersion, artifact_type: Optional[str]
    ) -> Artifact:
        results = await self.provider.search(
            SearchFilter(
                app_id=app_id,
                version=selector.version,
                build_number=selector.build_number,
                artifact_type=artifact_type,
                limit=1,
            )
        )
        if not results:
            wanted = format_version(selector.version, selector.build_number)
            suffix = f" of type {artifact_type}" if artifact_type else ""
            raise ResourceNotFoundError(
                f"No artifact found for version {wanted}{suffix} of {app_id}"
            )
        return results[0]
