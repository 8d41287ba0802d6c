from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional
from unittest.mock import AsyncMock

import platformdirs
import pytest
import requests

from artifact_downloader.constants import (
    APPSTORE_ISSUER_ID_ENV_VAR,
    APPSTORE_KEY_ID_ENV_VAR,
    APPSTORE_PRIVATE_KEY_PATH_ENV_VAR,
    FIREBASE_PROJECT_ID_ENV_VAR,
    FIREBASE_SERVICE_ACCOUNT_PATH_ENV_VAR,
)
from artifact_downloader.models import (
    AppSummary,
    Artifact,
    DownloadLocator,
    SearchFilter,
)
from artifact_downloader.providers.base import ArtifactProvider

_NETWORK_BLOCK_MSG = (
    "Network access is blocked during tests. Mock requests.* or Session.request."
)

_ASYNC_NETWORK_BLOCK_MSG = (
    "Async network access is blocked during tests. Mock aiohttp.ClientSession."
)

_CREDENTIAL_ENV_VARS = (
    APPSTORE_KEY_ID_ENV_VAR,
    APPSTORE_ISSUER_ID_ENV_VAR,
    APPSTORE_PRIVATE_KEY_PATH_ENV_VAR,
    FIREBASE_PROJECT_ID_ENV_VAR,
    FIREBASE_SERVICE_ACCOUNT_PATH_ENV_VAR,
)


def _block_network(*_args, **_kwargs):
    """
    Prevent network calls in tests by raising a RuntimeError.

    Raises:
        RuntimeError: with `_NETWORK_BLOCK_MSG` indicating that network access is blocked during tests.
    """
    raise RuntimeError(_NETWORK_BLOCK_MSG)


async def _async_block_network(*_args, **_kwargs):
    raise RuntimeError(_ASYNC_NETWORK_BLOCK_MSG)


def pytest_configure(config):
    """
    Register the markers used across the test suite.
    """
    config.addinivalue_line("markers", "asyncio: mark test as an asyncio test")
    config.addinivalue_line("markers", "unit: fast tests with no I/O beyond tmp_path")
    config.addinivalue_line(
        "markers", "providers: tests exercising provider adapters with mocked HTTP"
    )
    config.addinivalue_line("markers", "cli: command-line interface tests")


@pytest.fixture(autouse=True)
def _isolate_test_environment(tmp_path_factory, monkeypatch):
    """
    Isolate configuration lookups for every test.

    Points platformdirs at a temporary config directory, runs each test from an
    empty working directory so no project-local config.yaml is picked up, and
    clears credential environment variables.
    """
    base = tmp_path_factory.mktemp("artifact_downloader")
    config_dir = base / "config"
    work_dir = base / "work"
    for path in (config_dir, work_dir):
        path.mkdir(parents=True, exist_ok=True)

    monkeypatch.setenv("XDG_CONFIG_HOME", str(config_dir))
    monkeypatch.setattr(
        platformdirs, "user_config_dir", lambda *_args, **_kwargs: str(config_dir)
    )
    for name in _CREDENTIAL_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(work_dir)


def pytest_runtest_setup():
    """
    Prevent real network requests during tests by replacing HTTP entry points with blocking callables.
    """
    requests.get = _block_network
    requests.post = _block_network
    requests.Session.request = _block_network

    import aiohttp

    aiohttp.request = _async_block_network
    aiohttp.ClientSession.request = _async_block_network  # type: ignore[assignment]
    aiohttp.ClientSession.get = _async_block_network  # type: ignore[assignment]
    aiohttp.ClientSession.post = _async_block_network  # type: ignore[assignment]


# =============================================================================
# HTTP Fixtures
# =============================================================================


@pytest.fixture
def mock_async_response(mocker):
    """
    Provide a factory that creates configured mock aiohttp responses.

    The mock works as `async with session.get(...) as response`, exposing
    `status`, `headers`, async `json()` and `text()`, and optional
    `content.iter_chunked` chunks.
    """

    def _create_response(
        status=200, headers=None, json_data=None, text="", content_chunks=None
    ):
        import aiohttp

        response = AsyncMock(spec=aiohttp.ClientResponse)
        response.status = status
        response.headers = headers or {}
        response.json = AsyncMock(return_value=json_data if json_data is not None else {})
        response.text = AsyncMock(return_value=text)
        response.__aenter__.return_value = response
        response.__aexit__.return_value = None

        if content_chunks is not None:

            def _iter_chunked(_size):
                async def _gen():
                    for chunk in content_chunks:
                        yield chunk

                return _gen()

            mock_content = mocker.MagicMock()
            mock_content.iter_chunked = mocker.Mock(side_effect=_iter_chunked)
            response.content = mock_content

        return response

    return _create_response


@pytest.fixture
def mock_api_client(mocker):
    """
    Provide a MagicMock AsyncApiClient whose `get_json` routes by URL.

    Register responses with `client.routes[url_or_path] = payload` (a list of
    payloads is served in order); unregistered URLs raise AssertionError.
    """
    from artifact_downloader.http_client import AsyncApiClient

    client = mocker.MagicMock(spec=AsyncApiClient)
    client.routes = {}
    client.calls = []

    async def _get_json(path_or_url, params=None, headers=None):
        client.calls.append((path_or_url, params, headers))
        if path_or_url not in client.routes:
            raise AssertionError(f"Unexpected request: {path_or_url}")
        payload = client.routes[path_or_url]
        if isinstance(payload, Exception):
            raise payload
        if isinstance(payload, list):
            return payload.pop(0)
        return payload

    client.get_json = AsyncMock(side_effect=_get_json)
    client.download_file = AsyncMock(return_value=0)
    client.close = AsyncMock()
    return client


# =============================================================================
# Domain Fixtures
# =============================================================================


def _artifact(
    artifact_id: str = "a1",
    version: str = "1.0.0",
    build_number: str = "100",
    artifact_type: str = "ad_hoc",
    file_name: Optional[str] = None,
    file_size: int = 1024,
    provider: str = "app-store-connect",
    app_id: str = "MyApp",
) -> Artifact:
    return Artifact(
        id=artifact_id,
        version=version,
        build_number=build_number,
        artifact_type=artifact_type,
        file_name=file_name or f"MyApp {version} {artifact_type}.ipa",
        file_size=file_size,
        uploaded_at=datetime(2024, 3, 5, 14, 30, tzinfo=timezone.utc),
        provider=provider,
        app_id=app_id,
    )


@pytest.fixture
def make_artifact():
    """Factory fixture building Artifact instances with sensible defaults."""
    return _artifact


class FakeProvider(ArtifactProvider):
    """
    In-memory provider returning canned artifacts, newest first.

    Honors the search filter the same way real adapters do so resolver and
    downloader tests exercise realistic behavior.
    """

    name = "fake"

    def __init__(
        self,
        artifacts: Optional[List[Artifact]] = None,
        apps: Optional[List[AppSummary]] = None,
        locators: Optional[Dict[str, Optional[DownloadLocator]]] = None,
        client=None,
    ) -> None:
        super().__init__(client or AsyncMock())
        self.artifacts = artifacts or []
        self.apps = apps or []
        self.locators = locators or {}
        self.searches: List[SearchFilter] = []
        self.list_error: Optional[Exception] = None

    async def list_apps(self, warnings=None):
        if self.list_error is not None:
            raise self.list_error
        return list(self.apps)

    async def search(self, search_filter):
        from artifact_downloader.classifier import matches_artifact_type

        self.searches.append(search_filter)
        results = [
            artifact
            for artifact in self.artifacts
            if (not search_filter.version or artifact.version == search_filter.version)
            and (
                not search_filter.build_number
                or artifact.build_number == search_filter.build_number
            )
            and matches_artifact_type(artifact.artifact_type, search_filter.artifact_type)
        ]
        return results[: search_filter.limit]

    async def resolve_download_locator(self, artifact):
        return self.locators.get(
            artifact.id, DownloadLocator(url=f"https://example.com/{artifact.id}")
        )

    async def fetch(self, locator, destination):
        target = Path(destination)
        target.write_bytes(b"payload")
        return target


@pytest.fixture
def fake_provider_class():
    return FakeProvider
