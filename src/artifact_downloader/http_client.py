"""
Async HTTP Client for artifact-downloader

This module provides asynchronous HTTP operations using aiohttp, with session
management, status-to-exception mapping and streamed file downloads.

Both provider adapters share it: JSON API calls go through `get_json`, artifact
bytes go through `download_file`. Nothing is retried here.
"""

import asyncio
import importlib.metadata
import os
import time
from pathlib import Path
from typing import Any, Dict, Optional

import aiofiles  # type: ignore[import-untyped]
import aiohttp
from aiohttp import ClientSession, ClientTimeout, TCPConnector

from artifact_downloader.constants import (
    APP_NAME,
    BYTES_PER_MEGABYTE,
    DEFAULT_CHUNK_SIZE,
    DEFAULT_CONNECTOR_LIMIT,
    DEFAULT_REQUEST_TIMEOUT,
    FILE_SIZE_MB_LOGGING_THRESHOLD,
    HTTP_STATUS_ERROR_THRESHOLD,
)
from artifact_downloader.exceptions import (
    APIError,
    AuthenticationError,
    PermissionDeniedError,
    ResourceNotFoundError,
    TransportError,
)
from artifact_downloader.log_utils import logger
from artifact_downloader.models import Pathish

_USER_AGENT_CACHE: Optional[str] = None


def get_user_agent() -> str:
    """
    Get the User-Agent string used for HTTP requests.

    Returns:
        The string `artifact-downloader/{version}`, where `{version}` is the installed package version or `unknown` if it cannot be determined.
    """
    global _USER_AGENT_CACHE

    if _USER_AGENT_CACHE is None:
        try:
            app_version = importlib.metadata.version(APP_NAME)
        except importlib.metadata.PackageNotFoundError:
            app_version = "unknown"
        _USER_AGENT_CACHE = f"{APP_NAME}/{app_version}"

    return _USER_AGENT_CACHE


def error_for_status(
    status: int, url: str, details: Optional[str] = None
) -> APIError:
    """
    Map an HTTP error status to the matching domain exception.

    Parameters:
        status (int): HTTP status code (>= 400).
        url (str): The URL that produced the status.
        details (Optional[str]): Response body excerpt or other context.

    Returns:
        APIError: AuthenticationError for 401, PermissionDeniedError for 403,
        ResourceNotFoundError for 404 and TransportError for everything else.
    """
    if status == 401:
        return AuthenticationError(
            "Authentication failed", endpoint=url, status_code=status, details=details
        )
    if status == 403:
        return PermissionDeniedError(
            "Access forbidden", endpoint=url, status_code=status, details=details
        )
    if status == 404:
        return ResourceNotFoundError(
            "Resource not found", endpoint=url, status_code=status, details=details
        )
    return TransportError(
        f"HTTP error {status}", endpoint=url, status_code=status, details=details
    )


class AsyncApiClient:
    """
    Asynchronous JSON API client using aiohttp.

    Example:
        async with AsyncApiClient("https://api.example.com/v1") as client:
            data = await client.get_json("/apps", headers={"Authorization": "Bearer ..."})
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: float = DEFAULT_REQUEST_TIMEOUT,
        connector_limit: int = DEFAULT_CONNECTOR_LIMIT,
    ) -> None:
        """
        Initialize the client.

        Parameters:
            base_url (Optional[str]): Prefix for relative request paths. Absolute URLs are used as given.
            timeout (float): Total request timeout in seconds, applied by the transport.
            connector_limit (int): Maximum total connections in the pool.
        """
        self.base_url = base_url.rstrip("/") if base_url else None
        self.timeout = ClientTimeout(total=timeout)
        self.connector_limit = max(1, int(connector_limit))
        self._session: Optional[ClientSession] = None
        self._closed: bool = False

    async def __aenter__(self) -> "AsyncApiClient":
        await self._ensure_session()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    async def _ensure_session(self) -> ClientSession:
        """
        Ensure a session exists, creating one if needed.

        Returns:
            ClientSession: The active aiohttp session.
        """
        if self._session is None or self._session.closed:
            connector = TCPConnector(
                limit=self.connector_limit,
                enable_cleanup_closed=True,
            )
            self._session = ClientSession(
                connector=connector,
                timeout=self.timeout,
                headers=self._get_default_headers(),
            )
        return self._session

    def _get_default_headers(self) -> Dict[str, str]:
        return {
            "Accept": "application/json",
            "User-Agent": get_user_agent(),
        }

    async def close(self) -> None:
        """Close the client session and release resources."""
        if self._session and not self._session.closed:
            await self._session.close()
            self._session = None
        self._closed = True

    def build_url(self, path_or_url: str) -> str:
        """Resolve a relative API path against the base URL."""
        if path_or_url.startswith(("http://", "https://")) or not self.base_url:
            return path_or_url
        return f"{self.base_url}/{path_or_url.lstrip('/')}"

    async def get_json(
        self,
        path_or_url: str,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> Any:
        """
        Issue a GET request and decode the JSON response body.

        Parameters:
            path_or_url (str): API path relative to the base URL, or an absolute URL (e.g. a pagination link).
            params (Optional[Dict[str, Any]]): Query parameters.
            headers (Optional[Dict[str, str]]): Extra request headers such as Authorization.

        Returns:
            Any: The decoded JSON payload.

        Raises:
            AuthenticationError: On HTTP 401.
            PermissionDeniedError: On HTTP 403.
            ResourceNotFoundError: On HTTP 404.
            TransportError: On any other HTTP error, network failure or timeout.
        """
        session = await self._ensure_session()
        url = self.build_url(path_or_url)
        logger.debug(f"GET {url} params={params}")

        try:
            async with session.get(url, params=params, headers=headers) as response:
                logger.debug(f"Response status {response.status} for {url}")
                if response.status >= HTTP_STATUS_ERROR_THRESHOLD:
                    # Error bodies may be binary; decoding must not mask the status
                    body = await response.text(errors="replace")
                    raise error_for_status(response.status, url, body[:500] or None)
                return await response.json(content_type=None)
        except aiohttp.ClientError as e:
            logger.debug(f"Network error fetching {url}: {e}")
            raise TransportError(f"Network error: {e}", endpoint=url) from e
        except asyncio.TimeoutError as e:
            raise TransportError("Request timed out", endpoint=url) from e
        except ValueError as e:
            raise TransportError(
                "Invalid JSON in response", endpoint=url, details=str(e)
            ) from e

    async def download_file(
        self,
        url: str,
        target_path: Pathish,
        headers: Optional[Dict[str, str]] = None,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ) -> int:
        """
        Stream a URL to the given path with atomic replacement.

        Chunks are written as they arrive, so the body is never buffered in memory.
        The data goes to a temporary sibling file that replaces `target_path` only
        after the transfer completes; the temporary file is removed on failure.

        Parameters:
            url (str): Source URL to download.
            target_path (Pathish): Destination file path; parent directories are created if missing.
            headers (Optional[Dict[str, str]]): Extra request headers.
            chunk_size (int): Number of bytes to read per chunk.

        Returns:
            int: Number of bytes written.

        Raises:
            APIError: The mapped HTTP status error, or TransportError for network and filesystem failures.
        """
        session = await self._ensure_session()
        target = Path(target_path)
        target.parent.mkdir(parents=True, exist_ok=True)
        temp_path = target.with_name(
            f"{target.name}.tmp.{os.getpid()}.{int(time.time() * 1000)}"
        )

        try:
            start_time = time.time()
            async with session.get(url, headers=headers) as response:
                if response.status >= HTTP_STATUS_ERROR_THRESHOLD:
                    raise error_for_status(response.status, url)

                downloaded = 0

                async with aiofiles.open(temp_path, "wb") as f:
                    async for chunk in response.content.iter_chunked(chunk_size):
                        await f.write(chunk)
                        downloaded += len(chunk)

            temp_path.replace(target)

            elapsed = time.time() - start_time
            file_size_mb = downloaded / BYTES_PER_MEGABYTE
            logger.debug(f"Downloaded {url} in {elapsed:.2f}s ({file_size_mb:.2f} MB)")
            if file_size_mb >= FILE_SIZE_MB_LOGGING_THRESHOLD:
                logger.info(f"Downloaded: {target.name} ({file_size_mb:.1f} MB)")
            else:
                logger.info(f"Downloaded: {target.name} ({downloaded} bytes)")
            return downloaded

        except aiohttp.ClientError as e:
            _remove_quietly(temp_path)
            raise TransportError(f"Download failed: {e}", endpoint=url) from e
        except asyncio.TimeoutError as e:
            _remove_quietly(temp_path)
            raise TransportError("Download timed out", endpoint=url) from e
        except OSError as e:
            _remove_quietly(temp_path)
            raise TransportError(
                f"Filesystem error saving {target}", endpoint=url, details=str(e)
            ) from e
        except BaseException:
            _remove_quietly(temp_path)
            raise


def _remove_quietly(path: Path) -> None:
    if path.exists():
        try:
            path.unlink()
        except OSError:
            logger.debug(f"Could not remove temporary file {path}")
