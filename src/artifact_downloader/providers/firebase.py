"""
Firebase App Distribution provider.

Apps are looked up through the Firebase Management API (Android apps first,
then iOS apps) and releases through the App Distribution API. Releases carry no
file name or size, so artifact types come from the app's metadata.
"""

import asyncio
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, AsyncIterator, Dict, List, Optional, Tuple

import google.auth.exceptions
from google.auth.transport.requests import Request
from google.oauth2 import service_account

from artifact_downloader.classifier import (
    classify_distribution_app,
    matches_artifact_type,
)
from artifact_downloader.constants import (
    AAB_EXTENSION,
    APK_EXTENSION,
    APP_DISTRIBUTION_PROVIDER,
    ARTIFACT_TYPE_AAB,
    ARTIFACT_TYPE_IPA,
    FIREBASE_DEFAULT_TOKEN_LIFETIME_SECONDS,
    FIREBASE_DISTRIBUTION_API_BASE,
    FIREBASE_MANAGEMENT_API_BASE,
    FIREBASE_MAX_PAGE_SIZE,
    FIREBASE_SCOPES,
    IPA_EXTENSION,
    PLATFORM_ANDROID,
    PLATFORM_IOS,
)
from artifact_downloader.exceptions import (
    ArtifactDownloaderError,
    AuthenticationError,
    ConfigFileError,
    ResourceNotFoundError,
)
from artifact_downloader.http_client import AsyncApiClient
from artifact_downloader.log_utils import logger
from artifact_downloader.models import (
    AppSummary,
    Artifact,
    DownloadLocator,
    FirebaseConfig,
    SearchFilter,
)
from artifact_downloader.tokens import CachedToken, TokenCache

from .base import ArtifactProvider, data_items, fetch_budget, parse_timestamp

# (platform, management API collection, identifier field)
_APP_COLLECTIONS: Tuple[Tuple[str, str, str], ...] = (
    (PLATFORM_ANDROID, "androidApps", "packageName"),
    (PLATFORM_IOS, "iosApps", "bundleId"),
)

_EXTENSIONS = {
    ARTIFACT_TYPE_IPA: IPA_EXTENSION,
    ARTIFACT_TYPE_AAB: AAB_EXTENSION,
}


def project_number_from_app_id(app_id: str) -> str:
    """
    Extract the project number from a Firebase app id.

    Firebase app ids look like `1:405368879324:android:abc123`; the second field
    is the project number used by the App Distribution API.

    Raises:
        ResourceNotFoundError: If the app id has no project number field.
    """
    parts = app_id.split(":")
    if len(parts) < 2 or not parts[1]:
        raise ResourceNotFoundError(
            f"Could not extract project number from app ID: {app_id}"
        )
    return parts[1]


class FirebaseAppDistributionProvider(ArtifactProvider):
    """
    Release distribution adapter for Firebase App Distribution.

    Authenticates with an OAuth access token minted from a service-account file.
    The token and its expiry are cached and refreshed shortly before expiry.
    """

    name = APP_DISTRIBUTION_PROVIDER

    def __init__(
        self,
        config: FirebaseConfig,
        client: Optional[AsyncApiClient] = None,
        credentials: Optional[service_account.Credentials] = None,
    ) -> None:
        super().__init__(client)
        self.config = config
        self._credentials = credentials
        self._tokens = TokenCache(self._refresh_access_token)

    # ------------------------------------------------------------------
    # Authentication
    # ------------------------------------------------------------------

    def _load_credentials(self) -> service_account.Credentials:
        if self._credentials is None:
            key_path = Path(self.config.service_account_path).expanduser()
            try:
                self._credentials = (
                    service_account.Credentials.from_service_account_file(
                        str(key_path), scopes=list(FIREBASE_SCOPES)
                    )
                )
            except (OSError, ValueError) as e:
                raise ConfigFileError(
                    f"Cannot load Firebase service account from {key_path}",
                    details=str(e),
                ) from e
        return self._credentials

    async def _refresh_access_token(self) -> CachedToken:
        """
        Mint a new access token from the service-account credentials.

        google-auth refreshes synchronously over requests, so the refresh runs
        in a worker thread.

        Raises:
            ConfigFileError: If the service-account file cannot be loaded.
            AuthenticationError: If the token exchange fails.
        """
        credentials = self._load_credentials()
        try:
            await asyncio.to_thread(credentials.refresh, Request())
        except google.auth.exceptions.GoogleAuthError as e:
            raise AuthenticationError(
                "Failed to get Firebase access token", details=str(e)
            ) from e

        if not credentials.token:
            raise AuthenticationError("Failed to get Firebase access token")

        expiry: Optional[datetime] = credentials.expiry
        if expiry is None:
            expires_at = datetime.now(timezone.utc) + timedelta(
                seconds=FIREBASE_DEFAULT_TOKEN_LIFETIME_SECONDS
            )
        elif expiry.tzinfo is None:
            # google-auth reports naive UTC expiry times
            expires_at = expiry.replace(tzinfo=timezone.utc)
        else:
            expires_at = expiry
        return CachedToken(credentials.token, expires_at)

    async def _get(self, url: str, params: Optional[Dict[str, Any]] = None) -> Any:
        token = await self._tokens.get_token()
        try:
            return await self.client.get_json(
                url, params=params, headers={"Authorization": f"Bearer {token}"}
            )
        except AuthenticationError:
            self._tokens.invalidate()
            raise

    async def _iter_paged(
        self,
        url: str,
        key: str,
        page_size: int = FIREBASE_MAX_PAGE_SIZE,
        max_items: Optional[int] = None,
    ) -> AsyncIterator[Dict[str, Any]]:
        """
        Yield the entries stored under `key` across pages, following `nextPageToken`.

        Stops once `max_items` entries have been yielded (no limit when None).
        """
        page_token: Optional[str] = None
        yielded = 0

        while True:
            params: Dict[str, Any] = {"pageSize": page_size}
            if page_token:
                params["pageToken"] = page_token
            payload = await self._get(url, params)

            for item in data_items(payload, key):
                if max_items is not None and yielded >= max_items:
                    return
                yielded += 1
                yield item

            if max_items is not None and yielded >= max_items:
                return
            if not isinstance(payload, dict):
                return
            page_token = payload.get("nextPageToken")
            if not page_token:
                return

    # ------------------------------------------------------------------
    # Apps
    # ------------------------------------------------------------------

    def _collection_url(self, collection: str) -> str:
        return (
            f"{FIREBASE_MANAGEMENT_API_BASE}/projects/{self.config.project_id}/"
            f"{collection}"
        )

    async def list_apps(
        self, warnings: Optional[List[str]] = None
    ) -> List[AppSummary]:
        """
        List Android and iOS apps registered in the Firebase project.

        Parameters:
            warnings (Optional[List[str]]): When given, a platform whose listing
                fails is skipped and a message appended here instead of raising.
        """
        apps: List[AppSummary] = []
        for platform, collection, id_field in _APP_COLLECTIONS:
            logger.debug(
                f"Fetching {platform} apps for project {self.config.project_id}"
            )
            try:
                raw_apps = [
                    app
                    async for app in self._iter_paged(
                        self._collection_url(collection), "apps"
                    )
                ]
            except ArtifactDownloaderError as e:
                if warnings is None:
                    raise
                message = f"Failed to fetch {platform} apps from Firebase: {e}"
                logger.debug(message)
                warnings.append(message)
                continue

            for app in raw_apps:
                app_id = app.get(id_field) or app.get("appId") or ""
                apps.append(
                    AppSummary(
                        id=app_id,
                        name=app.get("displayName") or app_id,
                        platform=platform,
                        provider=self.name,
                    )
                )
        return apps

    async def _find_app(self, identifier: str) -> Dict[str, Any]:
        """
        Locate an app by package name, bundle id or Firebase app id.

        Raises:
            ResourceNotFoundError: If no app in the project matches.
        """
        for platform, collection, id_field in _APP_COLLECTIONS:
            async for app in self._iter_paged(self._collection_url(collection), "apps"):
                if identifier in (app.get(id_field), app.get("appId")):
                    logger.debug(f"Found {platform} app {app.get('appId')}")
                    return app

        raise ResourceNotFoundError(
            f"App with ID {identifier} not found",
            details=f"Firebase project {self.config.project_id}",
        )

    @staticmethod
    def _releases_url(app: Dict[str, Any]) -> str:
        firebase_app_id = str(app.get("appId", ""))
        project_number = project_number_from_app_id(firebase_app_id)
        return (
            f"{FIREBASE_DISTRIBUTION_API_BASE}/projects/{project_number}/apps/"
            f"{firebase_app_id}/releases"
        )

    # ------------------------------------------------------------------
    # Releases
    # ------------------------------------------------------------------

    def _release_to_artifact(
        self, app: Dict[str, Any], release: Dict[str, Any], app_id: str
    ) -> Artifact:
        version = str(release.get("displayVersion", ""))
        build_number = str(release.get("buildVersion", ""))
        artifact_type = classify_distribution_app(
            app.get("bundleId"), app.get("packageName")
        )
        identifier = app.get("bundleId") or app.get("packageName") or app_id
        extension = _EXTENSIONS.get(artifact_type, APK_EXTENSION)
        return Artifact(
            id=str(release.get("name", "")).rsplit("/", 1)[-1],
            version=version,
            build_number=build_number,
            artifact_type=artifact_type,
            file_name=f"{identifier}_{version}_{build_number}{extension}",
            file_size=0,
            uploaded_at=parse_timestamp(release.get("createTime")),
            provider=self.name,
            app_id=app_id,
        )

    async def search(self, search_filter: SearchFilter) -> List[Artifact]:
        """
        Search an app's releases for matching artifacts, newest first.

        Raises:
            ResourceNotFoundError: If the app or its project number cannot be found.
        """
        app = await self._find_app(search_filter.app_id)
        budget = fetch_budget(search_filter.limit)
        logger.debug(f"Scanning up to {budget} releases of {app.get('appId')}")

        results: List[Artifact] = []
        releases = self._iter_paged(
            self._releases_url(app),
            "releases",
            page_size=min(budget, FIREBASE_MAX_PAGE_SIZE),
            max_items=budget,
        )
        async for release in releases:
            if (
                search_filter.build_number
                and str(release.get("buildVersion", "")) != search_filter.build_number
            ):
                continue
            if (
                search_filter.version
                and str(release.get("displayVersion", "")) != search_filter.version
            ):
                continue

            artifact = self._release_to_artifact(app, release, search_filter.app_id)
            if not matches_artifact_type(
                artifact.artifact_type, search_filter.artifact_type
            ):
                continue
            results.append(artifact)
            if len(results) >= search_filter.limit:
                await releases.aclose()
                break

        logger.debug(f"Found {len(results)} matching releases")
        return results

    async def resolve_download_locator(
        self, artifact: Artifact
    ) -> Optional[DownloadLocator]:
        if not artifact.app_id:
            raise ResourceNotFoundError(
                f"Artifact {artifact.id} has no app scope to resolve a download from"
            )
        app = await self._find_app(artifact.app_id)
        release = await self._get(f"{self._releases_url(app)}/{artifact.id}")
        download_uri = (
            release.get("binaryDownloadUri") if isinstance(release, dict) else None
        )
        if not download_uri:
            logger.debug(f"No binary download URI for release {artifact.id}")
            return None

        token = await self._tokens.get_token()
        return DownloadLocator(
            url=download_uri, headers={"Authorization": f"Bearer {token}"}
        )
