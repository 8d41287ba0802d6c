"""
App Store Connect (Xcode Cloud) provider.

Artifacts live three levels below a product: product -> build runs -> archive
actions -> artifacts. The API cannot filter artifacts by type or version, so
build runs are scanned newest first and matched client-side.
"""

from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, AsyncIterator, Dict, List, Optional

from google.auth import jwt as google_jwt
from google.auth.crypt import es256

from artifact_downloader.classifier import classify, matches_artifact_type
from artifact_downloader.constants import (
    APP_STORE_CONNECT_API_BASE,
    APP_STORE_CONNECT_AUDIENCE,
    APP_STORE_CONNECT_MAX_PAGE_SIZE,
    APP_STORE_CONNECT_PROVIDER,
    APP_STORE_CONNECT_TOKEN_LIFETIME_SECONDS,
    PLATFORM_IOS,
    UNKNOWN_VERSION,
    XCODE_CLOUD_ARCHIVE_ACTION,
)
from artifact_downloader.exceptions import (
    AuthenticationError,
    ConfigFileError,
    ResourceNotFoundError,
)
from artifact_downloader.http_client import AsyncApiClient
from artifact_downloader.log_utils import logger
from artifact_downloader.models import (
    AppStoreConnectConfig,
    AppSummary,
    Artifact,
    DownloadLocator,
    SearchFilter,
)
from artifact_downloader.tokens import CachedToken, TokenCache
from artifact_downloader.version import extract_version

from .base import ArtifactProvider, data_items, fetch_budget, parse_timestamp


class AppStoreConnectProvider(ArtifactProvider):
    """
    Build registry adapter for Xcode Cloud artifacts.

    Authenticates with an ES256-signed JWT derived from an API key. The private
    key is read once, and the signed token is reused until shortly before its
    twenty minute lifetime runs out.

    Usage:
        async with AppStoreConnectProvider(config) as provider:
            artifacts = await provider.search(SearchFilter(app_id="MyApp"))
    """

    name = APP_STORE_CONNECT_PROVIDER

    def __init__(
        self,
        config: AppStoreConnectConfig,
        client: Optional[AsyncApiClient] = None,
    ) -> None:
        super().__init__(client or AsyncApiClient(APP_STORE_CONNECT_API_BASE))
        self.config = config
        self._private_key: Optional[str] = None
        self._tokens = TokenCache(self._create_token)

    # ------------------------------------------------------------------
    # Authentication
    # ------------------------------------------------------------------

    def _load_private_key(self) -> str:
        if self._private_key is None:
            key_path = Path(self.config.private_key_path).expanduser()
            try:
                self._private_key = key_path.read_text(encoding="utf-8")
            except OSError as e:
                raise ConfigFileError(
                    f"Cannot read App Store Connect private key at {key_path}",
                    details=str(e),
                ) from e
        return self._private_key

    async def _create_token(self) -> CachedToken:
        """
        Sign a new App Store Connect API token.

        Raises:
            ConfigFileError: If the private key file cannot be read.
            AuthenticationError: If the key cannot be used for ES256 signing.
        """
        private_key = self._load_private_key()
        issued_at = datetime.now(timezone.utc).replace(microsecond=0)
        expires_at = issued_at + timedelta(
            seconds=APP_STORE_CONNECT_TOKEN_LIFETIME_SECONDS
        )
        payload = {
            "iss": self.config.issuer_id,
            "iat": int(issued_at.timestamp()),
            "exp": int(expires_at.timestamp()),
            "aud": APP_STORE_CONNECT_AUDIENCE,
        }

        try:
            signer = es256.ES256Signer.from_string(
                private_key, key_id=self.config.key_id
            )
            token = google_jwt.encode(signer, payload)
        except (ValueError, TypeError) as e:
            raise AuthenticationError(
                "Failed to sign App Store Connect token", details=str(e)
            ) from e

        if isinstance(token, bytes):
            token = token.decode("utf-8")
        return CachedToken(token, expires_at)

    async def _get(
        self, path_or_url: str, params: Optional[Dict[str, Any]] = None
    ) -> Any:
        token = await self._tokens.get_token()
        try:
            return await self.client.get_json(
                path_or_url,
                params=params,
                headers={"Authorization": f"Bearer {token}"},
            )
        except AuthenticationError:
            self._tokens.invalidate()
            raise

    async def _iter_resources(
        self,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        max_items: Optional[int] = None,
    ) -> AsyncIterator[Dict[str, Any]]:
        """
        Yield resources from a paginated collection, following `links.next`.

        Stops once `max_items` resources have been yielded (no limit when None).
        """
        url: Optional[str] = path
        query = params
        yielded = 0

        while url:
            payload = await self._get(url, query)
            for item in data_items(payload, "data"):
                if max_items is not None and yielded >= max_items:
                    return
                yielded += 1
                yield item

            if max_items is not None and yielded >= max_items:
                return
            links = payload.get("links") if isinstance(payload, dict) else None
            url = links.get("next") if isinstance(links, dict) else None
            # The next link already carries the query string
            query = None

    # ------------------------------------------------------------------
    # Products
    # ------------------------------------------------------------------

    async def _list_products(self) -> List[Dict[str, Any]]:
        return [
            product
            async for product in self._iter_resources(
                "/ciProducts",
                {
                    "filter[productType]": "APP",
                    "limit": APP_STORE_CONNECT_MAX_PAGE_SIZE,
                },
            )
        ]

    async def list_apps(
        self, warnings: Optional[List[str]] = None
    ) -> List[AppSummary]:
        """
        List Xcode Cloud products.

        There is a single sub-source here, so failures always propagate; the
        discovery sweep turns them into warnings when several providers are listed.
        """
        products = await self._list_products()
        logger.debug(f"Found {len(products)} Xcode Cloud products")
        return [
            AppSummary(
                id=product.get("id", ""),
                name=(product.get("attributes") or {}).get("name", ""),
                platform=PLATFORM_IOS,
                provider=self.name,
            )
            for product in products
        ]

    async def _find_product(self, app_id: str) -> Dict[str, Any]:
        products = await self._list_products()
        for product in products:
            attributes = product.get("attributes") or {}
            if attributes.get("name") == app_id or product.get("id") == app_id:
                return product

        available = [
            (product.get("attributes") or {}).get("name", "") for product in products
        ]
        raise ResourceNotFoundError(
            f'Product "{app_id}" not found in Xcode Cloud',
            details=(
                "Use the Xcode Cloud product name (usually the repository name), "
                "not the bundle ID. Available products: "
                + (", ".join(available) if available else "none")
            ),
        )

    # ------------------------------------------------------------------
    # Artifacts
    # ------------------------------------------------------------------

    async def _build_run_artifacts(
        self,
        run_id: str,
        build_number: str,
        uploaded_at: datetime,
        app_id: str,
    ) -> List[Artifact]:
        """
        Collect the artifacts of every archive action in a build run.

        Artifacts whose file name carries no version (logs, xcresult bundles)
        inherit the first version found among their siblings.
        """
        raw_artifacts: List[Dict[str, Any]] = []
        actions = await self._get(f"/ciBuildRuns/{run_id}/actions")
        for action in data_items(actions, "data"):
            attributes = action.get("attributes") or {}
            if attributes.get("actionType") != XCODE_CLOUD_ARCHIVE_ACTION:
                continue
            payload = await self._get(f"/ciBuildActions/{action.get('id')}/artifacts")
            raw_artifacts.extend(data_items(payload, "data"))

        file_versions = [
            extract_version((item.get("attributes") or {}).get("fileName") or "")
            for item in raw_artifacts
        ]
        run_version = next(
            (v for v in file_versions if v != UNKNOWN_VERSION), UNKNOWN_VERSION
        )

        artifacts = []
        for item, file_version in zip(raw_artifacts, file_versions):
            attributes = item.get("attributes") or {}
            file_name = attributes.get("fileName") or ""
            try:
                file_size = int(attributes.get("fileSize") or 0)
            except (TypeError, ValueError):
                file_size = 0
            artifacts.append(
                Artifact(
                    id=str(item.get("id", "")),
                    version=(
                        file_version if file_version != UNKNOWN_VERSION else run_version
                    ),
                    build_number=build_number,
                    artifact_type=classify(file_name, PLATFORM_IOS),
                    file_name=file_name,
                    file_size=file_size,
                    uploaded_at=uploaded_at,
                    provider=self.name,
                    app_id=app_id,
                )
            )
        return artifacts

    async def search(self, search_filter: SearchFilter) -> List[Artifact]:
        """
        Search Xcode Cloud build runs for matching artifacts.

        Scans up to `fetch_budget(limit)` build runs sorted by descending build
        number and stops as soon as `limit` matching artifacts are collected.

        Raises:
            ResourceNotFoundError: If no product is named `search_filter.app_id`.
        """
        product = await self._find_product(search_filter.app_id)
        budget = fetch_budget(search_filter.limit)
        logger.debug(
            f"Searching product {product.get('id')} across up to {budget} build runs"
        )

        results: List[Artifact] = []
        runs = self._iter_resources(
            f"/ciProducts/{product.get('id')}/buildRuns",
            {"limit": min(budget, APP_STORE_CONNECT_MAX_PAGE_SIZE), "sort": "-number"},
            max_items=budget,
        )
        async for run in runs:
            attributes = run.get("attributes") or {}
            build_number = str(attributes.get("number", ""))
            wanted_build = search_filter.build_number
            if wanted_build and build_number != wanted_build:
                continue

            run_artifacts = await self._build_run_artifacts(
                str(run.get("id", "")),
                build_number,
                parse_timestamp(attributes.get("createdDate")),
                search_filter.app_id,
            )
            for artifact in run_artifacts:
                if search_filter.version and artifact.version != search_filter.version:
                    continue
                if not matches_artifact_type(
                    artifact.artifact_type, search_filter.artifact_type
                ):
                    continue
                results.append(artifact)
                if len(results) >= search_filter.limit:
                    await runs.aclose()
                    return results

        return results

    async def resolve_download_locator(
        self, artifact: Artifact
    ) -> Optional[DownloadLocator]:
        payload = await self._get(f"/ciArtifacts/{artifact.id}")
        data = payload.get("data") if isinstance(payload, dict) else None
        attributes = (data or {}).get("attributes") or {}
        download_url = attributes.get("downloadUrl")
        if not download_url:
            logger.debug(f"No download URL available for artifact {artifact.id}")
            return None
        # Pre-signed URL; no Authorization header
        return DownloadLocator(url=download_url)
