"""
Core data structures for artifact resolution.

Artifacts, filters and app summaries are plain transient values: every search
produces fresh instances and nothing here is persisted between invocations.
"""

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional, Union

from artifact_downloader.constants import DEFAULT_SEARCH_LIMIT
from artifact_downloader.exceptions import ConfigValidationError

Pathish = Union[str, Path]


@dataclass(frozen=True)
class Artifact:
    """Represents a single downloadable build output from a provider."""

    id: str
    """Opaque provider-scoped identifier, unique within an app and provider"""

    version: str
    """Semantic-version-like string, or 'unknown' if undeterminable"""

    build_number: str
    """Build number as reported upstream"""

    artifact_type: str
    """Category from the classifier vocabulary (ad_hoc, apk, logs, ...)"""

    file_name: str
    """File name the artifact is saved under"""

    file_size: int
    """Size in bytes (0 when the provider does not report it)"""

    uploaded_at: datetime
    """When the build was created upstream"""

    provider: str
    """Name of the provider the artifact came from"""

    app_id: Optional[str] = None
    """App scope the artifact was found under"""

    def to_dict(self) -> Dict[str, Any]:
        """
        Render the artifact as a JSON-friendly mapping.

        Returns:
            Dict[str, Any]: Field values keyed by camelCase names, with `uploadedAt` as an ISO 8601 string.
        """
        return {
            "id": self.id,
            "version": self.version,
            "buildNumber": self.build_number,
            "artifactType": self.artifact_type,
            "fileName": self.file_name,
            "fileSize": self.file_size,
            "uploadedAt": self.uploaded_at.isoformat(),
            "provider": self.provider,
            "appId": self.app_id,
        }


@dataclass
class SearchFilter:
    """Criteria for a provider search."""

    app_id: str
    version: Optional[str] = None
    build_number: Optional[str] = None
    artifact_type: Optional[str] = None
    limit: int = DEFAULT_SEARCH_LIMIT

    def __post_init__(self) -> None:
        if not self.app_id:
            raise ConfigValidationError("An app ID is required")
        if not isinstance(self.limit, int) or self.limit < 1:
            raise ConfigValidationError(
                f"Search limit must be an integer >= 1, got {self.limit!r}"
            )


@dataclass(frozen=True)
class Latest:
    """Select the newest artifact."""


@dataclass(frozen=True)
class ById:
    """Select an artifact by its provider id."""

    artifact_id: str


@dataclass(frozen=True)
class ByVersion:
    """Select the newest artifact matching a version and optional build number."""

    version: str
    build_number: Optional[str] = None


Selector = Union[Latest, ById, ByVersion]


@dataclass(frozen=True)
class ResolutionTarget:
    """A user-supplied description of exactly one artifact to resolve."""

    app_id: str
    selector: Selector = field(default_factory=Latest)
    artifact_type: Optional[str] = None


@dataclass(frozen=True)
class AppSummary:
    """An app (or Xcode Cloud product) discovered on a provider."""

    id: str
    name: str
    platform: Optional[str] = None
    provider: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "platform": self.platform,
            "provider": self.provider,
        }


@dataclass(frozen=True)
class DownloadLocator:
    """Short-lived transfer location for an artifact. Never cached."""

    url: str
    headers: Dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class ChoiceOption:
    """One entry presented to an interactive chooser."""

    label: str
    value: Any


@dataclass(frozen=True)
class AppStoreConnectConfig:
    """Credentials for the App Store Connect API."""

    key_id: str
    issuer_id: str
    private_key_path: str


@dataclass(frozen=True)
class FirebaseConfig:
    """Credentials for Firebase App Distribution."""

    project_id: str
    service_account_path: str
