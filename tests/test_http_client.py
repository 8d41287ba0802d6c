"""
Tests for the aiohttp-based API client.

Covers status-to-exception mapping, JSON decoding, session lifecycle and
streamed downloads with temporary-file cleanup.
"""

import asyncio

import aiohttp
import pytest

from artifact_downloader.exceptions import (
    AuthenticationError,
    PermissionDeniedError,
    ResourceNotFoundError,
    TransportError,
)
from artifact_downloader.http_client import (
    AsyncApiClient,
    error_for_status,
    get_user_agent,
)

pytestmark = [pytest.mark.unit]


@pytest.fixture
def client(mocker):
    api_client = AsyncApiClient("https://api.example.com/v1/")
    session = mocker.MagicMock(spec=aiohttp.ClientSession)
    session.closed = False
    session.get = mocker.MagicMock()
    session.close = mocker.AsyncMock()
    api_client._session = session
    return api_client


class TestErrorForStatus:
    @pytest.mark.parametrize(
        "status, exc_class",
        [
            (401, AuthenticationError),
            (403, PermissionDeniedError),
            (404, ResourceNotFoundError),
            (400, TransportError),
            (429, TransportError),
            (500, TransportError),
        ],
    )
    def test_mapping(self, status, exc_class):
        error = error_for_status(status, "https://x", "body")

        assert type(error) is exc_class
        assert error.status_code == status
        assert error.endpoint == "https://x"


class TestAsyncApiClientBasics:
    def test_build_url(self):
        client = AsyncApiClient("https://api.example.com/v1/")

        assert client.build_url("/apps") == "https://api.example.com/v1/apps"
        assert client.build_url("apps") == "https://api.example.com/v1/apps"
        assert client.build_url("https://other/x") == "https://other/x"

    def test_build_url_without_base(self):
        assert AsyncApiClient().build_url("/apps") == "/apps"

    def test_default_headers(self):
        headers = AsyncApiClient()._get_default_headers()

        assert headers["Accept"] == "application/json"
        assert headers["User-Agent"] == get_user_agent()
        assert get_user_agent().startswith("artifact-downloader/")

    def test_timeout_is_client_timeout(self):
        client = AsyncApiClient(timeout=12)

        assert client.timeout.total == 12


@pytest.mark.asyncio
class TestSessionLifecycle:
    async def test_close_closes_session(self, client):
        session = client._session

        await client.close()

        session.close.assert_awaited_once()
        assert client._session is None
        assert client._closed is True

    async def test_context_manager_closes(self, mocker):
        api_client = AsyncApiClient()
        mocker.patch.object(api_client, "_ensure_session", new=mocker.AsyncMock())
        mock_close = mocker.patch.object(api_client, "close", new=mocker.AsyncMock())

        async with api_client as entered:
            assert entered is api_client

        mock_close.assert_awaited_once()


@pytest.mark.asyncio
class TestGetJson:
    async def test_returns_decoded_payload(self, client, mock_async_response):
        response = mock_async_response(json_data={"data": [1, 2]})
        client._session.get.return_value = response

        result = await client.get_json(
            "/apps", params={"limit": 5}, headers={"Authorization": "Bearer t"}
        )

        assert result == {"data": [1, 2]}
        client._session.get.assert_called_once_with(
            "https://api.example.com/v1/apps",
            params={"limit": 5},
            headers={"Authorization": "Bearer t"},
        )

    @pytest.mark.parametrize(
        "status, exc_class",
        [
            (401, AuthenticationError),
            (403, PermissionDeniedError),
            (404, ResourceNotFoundError),
            (502, TransportError),
        ],
    )
    async def test_error_statuses(self, client, mock_async_response, status, exc_class):
        client._session.get.return_value = mock_async_response(
            status=status, text="upstream says no"
        )

        with pytest.raises(exc_class) as exc_info:
            await client.get_json("/apps")

        assert exc_info.value.status_code == status
        assert exc_info.value.details == "upstream says no"

    async def test_undecodable_error_body_keeps_status_mapping(
        self, client, mock_async_response
    ):
        raw = b"\xff\xfe\x00bad"

        async def _text(encoding=None, errors="strict"):
            return raw.decode(encoding or "utf-8", errors)

        response = mock_async_response(status=401)
        response.text.side_effect = _text
        client._session.get.return_value = response

        with pytest.raises(AuthenticationError) as exc_info:
            await client.get_json("/apps")

        assert exc_info.value.status_code == 401
        assert exc_info.value.details.endswith("bad")

    async def test_client_error_becomes_transport_error(self, client):
        client._session.get.side_effect = aiohttp.ClientConnectionError("refused")

        with pytest.raises(TransportError, match="Network error"):
            await client.get_json("/apps")

    async def test_timeout_becomes_transport_error(self, client):
        client._session.get.side_effect = asyncio.TimeoutError()

        with pytest.raises(TransportError, match="timed out"):
            await client.get_json("/apps")

    async def test_invalid_json_becomes_transport_error(
        self, client, mock_async_response
    ):
        response = mock_async_response()
        response.json.side_effect = ValueError("Expecting value")
        client._session.get.return_value = response

        with pytest.raises(TransportError, match="Invalid JSON"):
            await client.get_json("/apps")


@pytest.mark.asyncio
class TestDownloadFile:
    async def test_streams_chunks_to_target(
        self, client, mock_async_response, tmp_path
    ):
        client._session.get.return_value = mock_async_response(
            headers={"Content-Length": "10"}, content_chunks=[b"hello", b"world"]
        )
        target = tmp_path / "nested" / "build.ipa"

        written = await client.download_file("https://cdn/x", target)

        assert written == 10
        assert target.read_bytes() == b"helloworld"
        assert list(target.parent.iterdir()) == [target]

    async def test_error_status_leaves_no_files(
        self, client, mock_async_response, tmp_path
    ):
        client._session.get.return_value = mock_async_response(status=403)

        with pytest.raises(PermissionDeniedError):
            await client.download_file("https://cdn/x", tmp_path / "f.bin")

        assert list(tmp_path.iterdir()) == []

    async def test_interrupted_stream_removes_temp_file(
        self, client, mock_async_response, mocker, tmp_path
    ):
        async def _failing_stream():
            yield b"partial"
            raise aiohttp.ClientPayloadError("connection reset")

        response = mock_async_response()
        response.content = mocker.MagicMock()
        response.content.iter_chunked = mocker.Mock(return_value=_failing_stream())
        client._session.get.return_value = response

        with pytest.raises(TransportError, match="Download failed"):
            await client.download_file("https://cdn/x", tmp_path / "f.bin")

        assert list(tmp_path.iterdir()) == []
